"""Keyword research stage: discover opportunities and seed the next article."""

from loguru import logger

from content_factory import constants
from content_factory.errors import PipelineError
from content_factory.models.content import KeywordIdea, KeywordResearchResponse
from content_factory.models.db import Article, PipelineJob
from content_factory.models.generation import ModelTask
from content_factory.models.jobs import JobType, StageOutcome
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.differentiation import build_intent_coverage_guidance
from content_factory.utils.slug import generate_slug, slug_variants


def intent_weight(intent: str, intent_counts: dict[str, int]) -> float:
    """
    Boost intents the domain has few keywords for.

    Examples:
        >>> intent_weight("commercial", {})
        1.2
        >>> intent_weight("commercial", {"informational": 10})
        1.4
        >>> intent_weight("informational", {"informational": 10})
        1.0
    """
    max_count = max(intent_counts.values(), default=0)
    if max_count <= 0:
        return 1.2
    count = intent_counts.get(intent, 0)
    return 1 + ((max_count - count) / max_count) * 0.4


def keyword_score(idea: KeywordIdea, intent_counts: dict[str, int]) -> float:
    return (idea.search_volume / (idea.difficulty or 1)) * intent_weight(idea.intent, intent_counts)


def pick_best_keyword(ideas: list[KeywordIdea], intent_counts: dict[str, int]) -> KeywordIdea:
    """Highest score wins; ties keep the model's order."""
    return max(ideas, key=lambda idea: keyword_score(idea, intent_counts))


def _create_draft_article(ctx: StageContext, run: StageRun, domain_id: str, best: KeywordIdea) -> Article:
    base_slug = generate_slug(best.keyword) or f"article-{run.job.id[:8]}"
    for slug in slug_variants(base_slug, constants.KEYWORD_SLUG_ATTEMPTS):
        article = ctx.store.create_article(
            domain_id,
            target_keyword=best.keyword,
            title=best.keyword,
            slug=slug,
            secondary_keywords=best.variations,
            status="draft",
        )
        if article is not None:
            return article
    raise PipelineError(f"Unable to create unique draft article slug for domain {domain_id}", run.stage)


async def process_keyword_research(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """
    Generate keyword ideas, store them, and start an article for the best one.

    An existing article for the best keyword is reused, so a re-run does not
    seed a duplicate. If that article has already moved past ``draft``, no
    research job is enqueued.

    Raises:
        PipelineError: No unique slug could be found for the new article
    """
    run = StageRun(ctx, job, "keyword_research")
    domain = run.domain()
    target_count = run.payload.get("targetCount") or ctx.config.stages.keyword_target_count
    domain_name = run.payload.get("domain") or domain.name

    intent_counts = ctx.store.intent_counts(domain.id)
    prompt = ctx.prompts.render(
        "keyword_research",
        domain_name=domain_name,
        niche=run.payload.get("niche") or domain.niche or "General",
        sub_niche=run.payload.get("subNiche") or "Not specified",
        target_count=target_count,
        differentiation=run.differentiation(domain),
        intent_guidance=build_intent_coverage_guidance(intent_counts, target_count),
    )
    response: KeywordResearchResponse = await run.structured(
        ModelTask.KEYWORD_RESEARCH, prompt, schema=KeywordResearchResponse
    )

    for idea in response.keywords:
        ctx.store.upsert_keyword(
            domain.id,
            idea.keyword,
            monthly_volume=idea.search_volume,
            difficulty=idea.difficulty,
            intent=idea.intent,
        )

    if not response.keywords:
        logger.warning("Keyword research returned no keywords", domain=domain_name)
        return run.finish(result={"keywordsGenerated": 0})

    best = pick_best_keyword(response.keywords, intent_counts)

    article = ctx.store.find_article_by_keyword(domain.id, best.keyword)
    if article is not None and article.status != "draft":
        logger.info(
            "Best keyword already has an article, skipping",
            domain=domain_name,
            best_keyword=best.keyword,
            article_id=article.id,
            status=article.status,
        )
        return run.finish(
            result={"keywordsGenerated": len(response.keywords), "articleId": article.id, "reused": True}
        )

    reused = article is not None
    if article is None:
        article = _create_draft_article(ctx, run, domain.id, best)

    logger.info(
        "Keyword research complete",
        domain=domain_name,
        keywords=len(response.keywords),
        best_keyword=best.keyword,
        article_id=article.id,
        reused=reused,
    )

    return run.finish(
        result={"keywordsGenerated": len(response.keywords), "articleId": article.id, "reused": reused},
        successor=JobType.RESEARCH,
        successor_payload={"targetKeyword": best.keyword, "domainName": domain_name},
        successor_article_id=article.id,
        successor_priority=1,
    )
