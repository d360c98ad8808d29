"""Shared plumbing for stage processors.

``StageContext`` carries the injected collaborators. ``StageRun`` wraps one
job: it loads inputs, makes and records generation calls, accumulates usage,
and finishes the job by enqueueing the successor before completing.
"""

from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from content_factory.errors import QualityGateError, StageInputError, StructuredOutputError
from content_factory.generation.client import GenerationClient
from content_factory.generation.governance import record_generation_call
from content_factory.generation.structured import repair_json
from content_factory.jobs.queue import JobQueue
from content_factory.models.config import PipelineConfig
from content_factory.models.content import ContentType
from content_factory.models.db import Article, Domain, PipelineJob
from content_factory.models.generation import (
    CallUsage,
    GenerationOptions,
    GenerationResult,
    ModelTask,
)
from content_factory.models.jobs import JobType, StageOutcome
from content_factory.research.cache import ResearchCache
from content_factory.stages.differentiation import build_differentiation_instructions
from content_factory.store import ContentStore
from content_factory.utils.prompt_loader import PromptLoader, RenderedPrompt
from content_factory.utils.text import word_count


def _is_short_form(stored: str | None) -> bool:
    try:
        return stored is not None and ContentType(stored).is_short_form
    except ValueError:
        return False


class StageContext:
    """Collaborators shared by every stage processor."""

    def __init__(
        self,
        store: ContentStore,
        client: GenerationClient,
        queue: JobQueue,
        prompts: PromptLoader,
        config: PipelineConfig,
        research_cache: ResearchCache | None = None,
    ):
        self.store = store
        self.client = client
        self.queue = queue
        self.prompts = prompts
        self.config = config
        self.research_cache = research_cache or ResearchCache(
            store, client, queue, config.research_cache
        )


class StageRun:
    """One execution of a stage processor for one job."""

    def __init__(self, ctx: StageContext, job: PipelineJob, stage: str):
        self.ctx = ctx
        self.job = job
        self.stage = stage
        self.payload: dict[str, Any] = dict(job.payload or {})
        self.tokens_used = 0
        self.cost = 0.0

    def article(self) -> Article:
        if not self.job.article_id:
            raise StageInputError(f"Job {self.job.id} has no article", self.stage)
        article = self.ctx.store.get_article(self.job.article_id)
        if article is None:
            raise StageInputError(f"Article not found: {self.job.article_id}", self.stage)
        return article

    def domain(self) -> Domain:
        if not self.job.domain_id:
            raise StageInputError(f"Job {self.job.id} has no domain", self.stage)
        domain = self.ctx.store.get_domain(self.job.domain_id)
        if domain is None:
            raise StageInputError(f"Domain not found: {self.job.domain_id}", self.stage)
        return domain

    def differentiation(self, domain: Domain, keyword: str | None = None) -> str:
        return build_differentiation_instructions(
            domain_id=domain.id,
            domain_name=domain.name,
            stage=self.stage,
            niche=domain.niche,
            bucket=domain.bucket,
            keyword=keyword,
        )

    def record(self, prompt: RenderedPrompt | str, usage: CallUsage, stage: str | None = None) -> None:
        """Record a call for audit and add its usage to the job totals."""
        record_generation_call(
            self.ctx.store,
            stage or self.stage,
            prompt,
            usage,
            article_id=self.job.article_id,
            domain_id=self.job.domain_id,
        )
        self.tokens_used += usage.total_tokens
        self.cost += usage.cost

    def rewrite_word_count(self, text: str, article: Article) -> int:
        """
        Word count of a rewritten body, refusing output that would wipe the article.

        Long-form bodies must keep at least half of ``stages.draft_min_words``;
        short-form types only need some text.

        Raises:
            QualityGateError: Rewrite is empty or far below the draft minimum
        """
        words = word_count(text)
        floor = 1 if _is_short_form(article.content_type) else max(1, self.ctx.config.stages.draft_min_words // 2)
        if words < floor:
            raise QualityGateError(
                f"Rewrite came back with {words} words, which usually indicates an error or refusal",
                self.stage,
                violations=[f"word_count<{floor}"],
            )
        return words

    def _options(self, prompt: RenderedPrompt, options: GenerationOptions | None) -> GenerationOptions:
        options = options or GenerationOptions()
        if prompt.system_prompt and not options.system_prompt:
            options = options.model_copy(update={"system_prompt": prompt.system_prompt})
        return options

    async def text(
        self,
        task: ModelTask,
        prompt: RenderedPrompt,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        result = await self.ctx.client.generate(
            task, prompt.user_prompt, self._options(prompt, options)
        )
        self.record(prompt, result)
        return result

    async def structured(
        self,
        task: ModelTask,
        prompt: RenderedPrompt,
        schema: type[BaseModel] | None = None,
        repair_fields: list[str] | None = None,
        options: GenerationOptions | None = None,
        stage: str | None = None,
    ) -> Any:
        """
        Make a structured call, repairing malformed JSON where possible.

        The call is recorded even when its output fails to parse.

        Raises:
            StructuredOutputError: Output could not be parsed or repaired, or
                does not fit ``schema``
        """
        try:
            result = await self.ctx.client.generate_structured(
                task, prompt.user_prompt, self._options(prompt, options)
            )
        except StructuredOutputError as e:
            if e.usage is None:
                raise
            self.record(prompt, e.usage, stage=stage)
            data = repair_json(e.raw, repair_fields)
            if data is None:
                raise
            logger.warning(
                "Repaired malformed JSON output",
                stage=stage or self.stage,
                job_id=self.job.id,
                keys=sorted(data),
            )
            raw = e.raw
        else:
            self.record(prompt, result, stage=stage)
            data = result.data
            raw = result.raw

        if schema is None:
            return data
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise StructuredOutputError(
                f"Response did not match {schema.__name__}: {e}", raw
            ) from e

    def finish(
        self,
        result: dict[str, Any] | None = None,
        successor: JobType | None = None,
        successor_payload: dict[str, Any] | None = None,
        successor_article_id: str | None = None,
        successor_priority: int | None = None,
    ) -> StageOutcome:
        """
        Enqueue the successor (if any), then complete this job.

        A crash between the two leaves this job processing; stale recovery
        re-runs it rather than orphaning the article.
        """
        next_job_id = None
        if successor is not None:
            next_job_id = self.ctx.queue.enqueue(
                successor,
                domain_id=self.job.domain_id,
                article_id=successor_article_id or self.job.article_id,
                payload=successor_payload,
                priority=self.job.priority if successor_priority is None else successor_priority,
            )

        self.ctx.queue.complete(self.job.id, result, self.tokens_used, self.cost)
        return StageOutcome(
            job_id=self.job.id,
            job_type=JobType(self.job.job_type),
            article_id=self.job.article_id,
            next_job_id=next_job_id,
            result=result or {},
            tokens_used=self.tokens_used,
            cost=self.cost,
        )
