#!/usr/bin/env python3
"""Command-line entry point for the content factory.

Usage:
    python -m content_factory.main init-db
    python -m content_factory.main add-domain trail.example --niche outdoors
    python -m content_factory.main submit "best hiking boots" --domain trail.example
    python -m content_factory.main worker
    python -m content_factory.main stats
"""

import asyncio
import signal
import sys
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from loguru import logger

from content_factory import constants
from content_factory.generation.client import build_client
from content_factory.generation.transport import ChatTransport
from content_factory.jobs.queue import JobQueue
from content_factory.jobs.worker import default_worker_id, process_batch, run_worker
from content_factory.models.config import PipelineConfig
from content_factory.models.jobs import JobType
from content_factory.quality.report import evaluate_quality
from content_factory.research.cache import ResearchCache
from content_factory.stages.common import StageContext
from content_factory.store import ContentStore
from content_factory.utils.config_loader import apply_env_overrides, load_pipeline_config
from content_factory.utils.logging import setup_logging
from content_factory.utils.prompt_loader import DEFAULT_PROMPTS_DIR, PromptLoader
from content_factory.utils.slug import generate_slug, slug_variants

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(help="Automated content factory: keyword to finished article through a durable job queue.")


def print_header(title: str) -> None:
    """Print a formatted header."""
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80 + "\n")


def print_stats(label: str, value: Any) -> None:
    """Print a formatted stat line."""
    print(f"  • {label}: {value}")


def build_context(
    config: PipelineConfig,
    prompts_dir: Path | str = DEFAULT_PROMPTS_DIR,
    transport: ChatTransport | None = None,
    store: ContentStore | None = None,
) -> StageContext:
    """
    Wire the store, queue, generation client and research cache once per process.

    Args:
        config: Pipeline configuration
        prompts_dir: Prompt template directory
        transport: Explicit provider transport (tests pass a fake)
        store: Existing store, or None to open ``config.database.url``

    Returns:
        StageContext shared by the worker and every stage
    """
    store = store or ContentStore(config.database.url, echo=config.database.echo)
    store.init_schema()
    queue = JobQueue(store, config.worker)
    client = build_client(config.generation, transport=transport)
    return StageContext(
        store=store,
        client=client,
        queue=queue,
        prompts=PromptLoader(prompts_dir),
        config=config,
        research_cache=ResearchCache(store, client, queue, config.research_cache),
    )


def _load_config(config_file: Path) -> PipelineConfig:
    if config_file.exists():
        return load_pipeline_config(config_file)
    logger.warning("Config file not found, using defaults", path=str(config_file))
    return apply_env_overrides(PipelineConfig())


def _config(ctx: typer.Context) -> PipelineConfig:
    return ctx.obj["config"]


def _store(ctx: typer.Context) -> ContentStore:
    config = _config(ctx)
    store = ContentStore(config.database.url, echo=config.database.echo)
    store.init_schema()
    return store


def _domain_id(store: ContentStore, domain_name: str) -> str:
    domain = store.get_domain_by_name(domain_name)
    if domain is None:
        print(f"❌ Domain not found: {domain_name}")
        raise typer.Exit(code=1)
    return domain.id


def _parse_payload(pairs: list[str] | None) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--payload")
        payload[key] = int(value) if value.lstrip("-").isdigit() else value
    return payload


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[
        Path,
        typer.Option("--config", "-c", help="Path to pipeline configuration file"),
    ] = Path("config/pipeline.yaml"),
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Load configuration and set up logging for every command."""
    config = _load_config(config_file)
    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    ctx.obj = {"config": config}


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create all tables."""
    store = _store(ctx)
    print(f"✅ Schema ready at {store.engine.url.render_as_string(hide_password=True)}")


@app.command("add-domain")
def add_domain(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Domain name, e.g. trail.example")],
    niche: Annotated[str | None, typer.Option(help="Niche, e.g. finance or outdoors")] = None,
    bucket: Annotated[str | None, typer.Option(help="build, redirect, park or defensive")] = None,
    priority: Annotated[int, typer.Option(help="Domain priority for research cache sharing")] = 0,
) -> None:
    """Register a domain."""
    store = _store(ctx)
    domain = store.create_domain(name, niche=niche, bucket=bucket, priority=priority)
    print(f"✅ Domain {name} created ({domain.id})")


@app.command()
def enqueue(
    ctx: typer.Context,
    job_type: Annotated[JobType, typer.Argument(help="Job type")],
    domain: Annotated[str | None, typer.Option(help="Domain name")] = None,
    article: Annotated[str | None, typer.Option(help="Article id")] = None,
    priority: Annotated[int, typer.Option(help="Lower runs first")] = 5,
    payload: Annotated[list[str] | None, typer.Option(help="Payload entry as key=value")] = None,
) -> None:
    """Enqueue a raw job."""
    store = _store(ctx)
    domain_id = _domain_id(store, domain) if domain else None
    queue = JobQueue(store, _config(ctx).worker)
    job_id = queue.enqueue(
        job_type, domain_id=domain_id, article_id=article, payload=_parse_payload(payload), priority=priority
    )
    print(f"✅ Enqueued {job_type.value} job {job_id}")


@app.command()
def submit(
    ctx: typer.Context,
    keyword: Annotated[str, typer.Argument(help="Target keyword")],
    domain: Annotated[str, typer.Option(help="Domain name")],
    secondary: Annotated[list[str] | None, typer.Option(help="Secondary keyword")] = None,
    priority: Annotated[int, typer.Option(help="Lower runs first")] = 5,
) -> None:
    """Create a draft article for a keyword and start its pipeline at research."""
    store = _store(ctx)
    domain_id = _domain_id(store, domain)
    base_slug = generate_slug(keyword) or "article"

    created = None
    for slug in slug_variants(base_slug, constants.KEYWORD_SLUG_ATTEMPTS):
        created = store.create_article(
            domain_id, keyword, title=keyword, slug=slug, secondary_keywords=secondary or [], status="draft"
        )
        if created is not None:
            break
    if created is None:
        print(f"❌ Could not find a free slug for {keyword!r}")
        raise typer.Exit(code=1)

    queue = JobQueue(store, _config(ctx).worker)
    job_id = queue.enqueue(
        JobType.RESEARCH,
        domain_id=domain_id,
        article_id=created.id,
        payload={"targetKeyword": keyword, "domainName": domain},
        priority=priority,
    )
    print(f"✅ Article {created.id} ({created.slug}) submitted, research job {job_id}")


@app.command("keyword-research")
def keyword_research(
    ctx: typer.Context,
    domain: Annotated[str, typer.Option(help="Domain name")],
    count: Annotated[int, typer.Option(help="Keywords to generate")] = 10,
    sub_niche: Annotated[str | None, typer.Option(help="Sub-niche hint")] = None,
) -> None:
    """Queue keyword discovery for a domain."""
    store = _store(ctx)
    domain_id = _domain_id(store, domain)
    payload: dict[str, Any] = {"domain": domain, "targetCount": count}
    if sub_niche:
        payload["subNiche"] = sub_niche
    job_id = JobQueue(store, _config(ctx).worker).enqueue(
        JobType.KEYWORD_RESEARCH, domain_id=domain_id, payload=payload
    )
    print(f"✅ Keyword research job {job_id} queued")


@app.command()
def worker(
    ctx: typer.Context,
    max_iterations: Annotated[int | None, typer.Option(help="Stop after this many polls")] = None,
    worker_id: Annotated[str | None, typer.Option(help="Worker identifier")] = None,
) -> None:
    """Run the queue worker until interrupted."""
    context = build_context(_config(ctx))

    async def _run() -> int:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                logger.debug("Signal handlers unsupported on this platform")
        return await run_worker(context, worker_id=worker_id, stop_event=stop_event, max_iterations=max_iterations)

    processed = asyncio.run(_run())
    print(f"✅ Worker stopped after {processed} job(s)")


@app.command("run-once")
def run_once(ctx: typer.Context) -> None:
    """Claim and process one batch of jobs."""
    context = build_context(_config(ctx))
    result = asyncio.run(process_batch(context, default_worker_id()))
    print_header("Batch")
    print_stats("Claimed", result.claimed)
    print_stats("Succeeded", result.succeeded)
    print_stats("Failed", result.failed)
    for error in result.errors:
        print(f"    ❌ {error}")
    if result.failed:
        raise typer.Exit(code=1)


@app.command()
def recover(
    ctx: typer.Context,
    max_age_minutes: Annotated[int | None, typer.Option(help="Processing age considered stale")] = None,
) -> None:
    """Return stale processing jobs to the queue."""
    queue = JobQueue(_store(ctx), _config(ctx).worker)
    age = timedelta(minutes=max_age_minutes) if max_age_minutes else None
    print(f"✅ Recovered {queue.recover_stale_locks(age)} stale job(s)")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show queue counts."""
    queue_stats = JobQueue(_store(ctx), _config(ctx).worker).stats()
    print_header("📈 Queue")
    print_stats("Pending", queue_stats.pending)
    print_stats("Processing", queue_stats.processing)
    print_stats("Completed", queue_stats.completed)
    print_stats("Failed", queue_stats.failed)
    print_stats("Cancelled", queue_stats.cancelled)
    for job_type, count in sorted(queue_stats.pending_by_type.items()):
        print_stats(f"Pending {job_type}", count)
    if queue_stats.oldest_pending_age_seconds is not None:
        print_stats("Oldest pending", f"{queue_stats.oldest_pending_age_seconds:.0f}s")


@app.command("retry-failed")
def retry_failed(
    ctx: typer.Context,
    job_ids: Annotated[list[str] | None, typer.Argument(help="Job ids; all failed jobs when omitted")] = None,
) -> None:
    """Reset failed jobs to pending."""
    count = JobQueue(_store(ctx), _config(ctx).worker).retry_failed(job_ids)
    print(f"✅ Re-queued {count} job(s)")


@app.command()
def cancel(ctx: typer.Context, job_id: Annotated[str, typer.Argument(help="Job id")]) -> None:
    """Cancel a pending job."""
    if not JobQueue(_store(ctx), _config(ctx).worker).cancel(job_id):
        print(f"❌ Job {job_id} is not pending")
        raise typer.Exit(code=1)
    print(f"✅ Job {job_id} cancelled")


@app.command()
def purge(
    ctx: typer.Context,
    days: Annotated[int, typer.Option(help="Delete finished jobs older than this")] = 30,
) -> None:
    """Delete old finished jobs and expired research cache entries."""
    context = build_context(_config(ctx))
    jobs = context.queue.purge_old(days)
    entries = context.research_cache.purge_expired()
    print(f"✅ Purged {jobs} job(s) and {entries} cache entr{'y' if entries == 1 else 'ies'}")


@app.command()
def scan(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Markdown file to check", exists=True, readable=True)],
) -> None:
    """Run the quality gates on a Markdown file."""
    report = evaluate_quality(file.read_text(encoding="utf-8"), _config(ctx).quality)
    print_header(f"🔍 Quality report: {file}")
    print_stats("Passed", "✅" if report.passed else "❌")
    print_stats("Burstiness", f"{report.burstiness.score:.3f} ({report.burstiness.sentence_count} sentences)")
    print_stats("Fingerprint", report.fingerprint)
    for reason in report.failure_reasons():
        print(f"    ❌ {reason}")
    if not report.passed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    sys.exit(app())
