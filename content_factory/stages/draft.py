"""Draft stage: first full body in the content type's format."""

import json

from loguru import logger

from content_factory.errors import QualityGateError, StageInputError
from content_factory.jobs.revisions import create_revision
from content_factory.models.content import ContentType
from content_factory.models.db import PipelineJob
from content_factory.models.generation import ModelTask
from content_factory.models.jobs import JobType, RevisionChangeType, StageOutcome
from content_factory.quality.scanner import strip_dash_variants
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.content_type import classify_content_type
from content_factory.stages.voice import get_or_create_voice_seed, voice_persona_instructions
from content_factory.utils.text import word_count

DRAFT_PROMPTS = {
    ContentType.CALCULATOR: "draft_calculator",
    ContentType.COMPARISON: "draft_comparison",
    ContentType.COST_GUIDE: "draft_cost_guide",
    ContentType.LEAD_CAPTURE: "draft_lead_capture",
    ContentType.HEALTH_DECISION: "draft_health_decision",
}


def draft_prompt_name(content_type: ContentType) -> str:
    return DRAFT_PROMPTS.get(content_type, "draft_article")


def resolve_content_type(stored: str | None, keyword: str) -> ContentType:
    """Use the type fixed at outline time, re-classifying only when it is missing."""
    if stored:
        try:
            return ContentType(stored)
        except ValueError:
            logger.warning("Unknown stored content type, re-classifying", content_type=stored)
    return classify_content_type(keyword)


async def process_draft(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """
    Write the draft from the stored outline, research and voice persona.

    Raises:
        StageInputError: Article has no outline yet
        QualityGateError: Draft is shorter than the minimum for a long-form type
    """
    run = StageRun(ctx, job, "draft")
    article = run.article()
    if not article.header_structure:
        raise StageInputError(f"Outline not found for article {article.id}", run.stage)
    domain = run.domain()

    keyword = run.payload.get("targetKeyword") or article.target_keyword
    domain_name = run.payload.get("domainName") or domain.name
    content_type = resolve_content_type(article.content_type, keyword)
    voice_seed = await get_or_create_voice_seed(ctx, domain.id, domain.name, domain.niche)

    prompt = ctx.prompts.render(
        draft_prompt_name(content_type),
        differentiation=run.differentiation(domain, keyword),
        keyword=keyword,
        domain_name=domain_name,
        outline_json=json.dumps(article.header_structure),
        research_json=json.dumps(article.research_data or {}),
        voice_instructions=voice_persona_instructions(voice_seed),
        voice_name=voice_seed.name,
        voice_quirk=voice_seed.quirk,
        voice_tone=voice_seed.tone_dial,
    )
    result = await run.text(ModelTask.DRAFT_GENERATION, prompt)

    draft, stripped = strip_dash_variants(result.content)
    words = word_count(draft)
    min_words = ctx.config.stages.draft_min_words
    if words < min_words and not content_type.is_short_form:
        raise QualityGateError(
            f"Model generated suspiciously short content ({words} words), "
            "which usually indicates an error or refusal",
            run.stage,
            violations=[f"word_count<{min_words}"],
        )

    ctx.store.set_article_body(article.id, draft, generation_passes=1)
    create_revision(
        ctx.store,
        article.id,
        title=article.title,
        content_markdown=draft,
        meta_description=article.meta_description,
        change_type=RevisionChangeType.AI_GENERATED,
        change_summary=f"Draft generated ({words} words)",
    )

    logger.info(
        "Draft stored",
        article_id=article.id,
        content_type=content_type.value,
        words=words,
        dashes_stripped=stripped,
    )

    return run.finish(
        result={"wordCount": words, "contentType": content_type.value},
        successor=JobType.HUMANIZE,
    )
