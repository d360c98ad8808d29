"""End-to-end pipeline tests: keyword to finished article through the queue."""

import pytest

from content_factory.jobs.revisions import list_revisions
from content_factory.jobs.worker import process_batch
from content_factory.models.db import Domain
from content_factory.models.jobs import JobStatus, JobType
from content_factory.stages.common import StageContext
from content_factory.stages.research import process_research
from content_factory.store import ContentStore
from tests.conftest import ARTICLE_BODY

pytestmark = pytest.mark.integration

RESEARCH = {
    "statistics": [{"stat": "Most blisters start in the first mile", "source": "Trail survey", "date": "2025"}],
    "quotes": [{"quote": "Fit beats features.", "author": "A guide"}],
    "competitorHooks": ["Fit guides"],
    "recentDevelopments": ["Lighter midsoles"],
}

OUTLINE = {
    "title": "Best Hiking Boots for Long Trails",
    "metaDescription": "How to pick boots that fit.",
    "outline": [{"heading": "Fit first"}, {"heading": "Weight and support"}],
}

META = {
    "title": "Best Hiking Boots (2026 Guide)",
    "metaDescription": "Fit, weight and break-in advice for hiking boots.",
    "suggestedSlug": "best-hiking-boots",
}


def submit(store: ContentStore, stage_context: StageContext, domain: Domain, keyword: str) -> str:
    article = store.create_article(domain.id, keyword, title=keyword, slug="best-hiking-boots")
    stage_context.queue.enqueue(
        JobType.RESEARCH,
        domain_id=domain.id,
        article_id=article.id,
        payload={"targetKeyword": keyword, "domainName": domain.name},
    )
    return article.id


async def drain(stage_context: StageContext, max_batches: int = 20) -> int:
    """Run batches until nothing is claimable; returns jobs claimed."""
    claimed = 0
    for _ in range(max_batches):
        batch = await process_batch(stage_context, "integration-worker")
        if batch.claimed == 0:
            break
        claimed += batch.claimed
    return claimed


class TestFullPipeline:
    """Run every stage through the worker with scripted model output."""

    @pytest.mark.asyncio
    async def test_keyword_to_review(
        self, stage_context: StageContext, store: ContentStore, seeded_domain: Domain, fake_transport
    ) -> None:
        fake_transport.queue_json(RESEARCH, OUTLINE)
        fake_transport.queue(ARTICLE_BODY, ARTICLE_BODY, ARTICLE_BODY)
        fake_transport.queue_json(META)
        article_id = submit(store, stage_context, seeded_domain, "best hiking boots")

        claimed = await drain(stage_context)

        assert claimed == 6
        assert fake_transport.script == []
        article = store.get_article(article_id)
        assert article.status == "review"
        assert article.generation_passes == 4
        assert article.content_type == "review"
        assert article.title == "Best Hiking Boots (2026 Guide)"
        assert article.slug == "best-hiking-boots"
        assert article.word_count >= 100
        assert article.research_data["competitorHooks"] == ["Fit guides"]
        assert len(store.list_call_records(article_id)) == 6
        assert len(list_revisions(store, article_id)) == 5
        jobs = stage_context.queue.list_jobs(article_id=article_id)
        assert len(jobs) == 6
        assert {job.job_type for job in jobs} == {
            "research",
            "generate_outline",
            "generate_draft",
            "humanize",
            "seo_optimize",
            "generate_meta",
        }
        assert all(job.status == JobStatus.COMPLETED.value for job in jobs)

    @pytest.mark.asyncio
    async def test_keyword_research_seeds_pipeline(
        self, stage_context: StageContext, store: ContentStore, seeded_domain: Domain, fake_transport
    ) -> None:
        fake_transport.queue_json(
            {"keywords": [{"keyword": "best hiking boots", "searchVolume": 900, "difficulty": 30, "intent": "commercial"}]},
            RESEARCH,
            OUTLINE,
        )
        fake_transport.queue(ARTICLE_BODY, ARTICLE_BODY, ARTICLE_BODY)
        fake_transport.queue_json(META)
        stage_context.queue.enqueue(JobType.KEYWORD_RESEARCH, domain_id=seeded_domain.id)

        claimed = await drain(stage_context)

        assert claimed == 7
        research_job = stage_context.queue.list_jobs(job_type=JobType.RESEARCH)[0]
        article = store.get_article(research_job.article_id)
        assert article.status == "review"
        assert article.target_keyword == "best hiking boots"

    @pytest.mark.asyncio
    async def test_quality_failure_is_retried(
        self, stage_context: StageContext, store: ContentStore, seeded_domain: Domain, fake_transport, clock
    ) -> None:
        banned = ARTICLE_BODY.replace("Fit matters most.", "Let us delve into fit.")
        fake_transport.queue_json(RESEARCH, OUTLINE)
        fake_transport.queue(ARTICLE_BODY, banned, banned)
        article_id = submit(store, stage_context, seeded_domain, "best hiking boots")

        await drain(stage_context)

        humanize = stage_context.queue.list_jobs(article_id=article_id, job_type=JobType.HUMANIZE)[0]
        assert humanize.status == JobStatus.PENDING.value
        assert humanize.attempts == 1
        assert len(store.list_events("quality_violation")) == 1

        fake_transport.queue(ARTICLE_BODY, ARTICLE_BODY)
        fake_transport.queue_json(META)
        clock.advance(minutes=2)
        await drain(stage_context)

        assert store.get_article(article_id).status == "review"

    @pytest.mark.asyncio
    async def test_dead_letter_reverts_to_draft(
        self, stage_context: StageContext, store: ContentStore, seeded_domain: Domain, fake_transport, clock
    ) -> None:
        fake_transport.queue_json(RESEARCH, OUTLINE)
        fake_transport.queue(*(["Too short."] * 3))
        article_id = submit(store, stage_context, seeded_domain, "best hiking boots")

        for _ in range(3):
            await drain(stage_context)
            clock.advance(minutes=30)

        draft = stage_context.queue.list_jobs(article_id=article_id, job_type=JobType.GENERATE_DRAFT)[0]
        assert draft.status == JobStatus.FAILED.value
        assert draft.error_message.startswith("Dead letter (3/3)")
        assert store.get_article(article_id).status == "draft"


class TestCrashRecovery:
    """A crash between enqueueing the successor and completing the job."""

    @pytest.mark.asyncio
    async def test_successor_survives_crash(
        self,
        stage_context: StageContext,
        store: ContentStore,
        seeded_domain: Domain,
        fake_transport,
        clock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        fake_transport.queue_json(RESEARCH)
        article_id = submit(store, stage_context, seeded_domain, "best hiking boots")
        queue = stage_context.queue
        job = queue.claim_next("doomed-worker")

        def crash(*args, **kwargs):
            raise RuntimeError("worker killed")

        monkeypatch.setattr(queue, "complete", crash)
        with pytest.raises(RuntimeError, match="worker killed"):
            await process_research(stage_context, job)
        monkeypatch.undo()

        [outline_job] = queue.list_jobs(article_id=article_id, job_type=JobType.GENERATE_OUTLINE)
        assert outline_job.status == JobStatus.PENDING.value
        assert queue.get(job.id).status == JobStatus.PROCESSING.value
        # The article is still locked by the crashed job.
        assert queue.claim_next("other-worker") is None

        clock.advance(minutes=11)
        assert queue.recover_stale_locks() == 1

        recovered = queue.get(job.id)
        assert recovered.status == JobStatus.PENDING.value
        assert recovered.attempts == 1
        assert queue.claim_next("other-worker").article_id == article_id
