"""Finalize stage: metadata, slug, YMYL level, optional AI review and routing."""

from typing import Any

from loguru import logger

from content_factory import constants
from content_factory.errors import StageInputError
from content_factory.jobs.revisions import create_revision
from content_factory.models.content import AiReviewResponse, ArticleStatus, MetaResponse
from content_factory.models.db import Article, PipelineJob
from content_factory.models.generation import GenerationOptions, ModelTask
from content_factory.models.jobs import RevisionChangeType, StageOutcome
from content_factory.quality.duplicates import check_cross_domain_duplication
from content_factory.quality.scanner import strip_dash_variants
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.ymyl import classify_ymyl_level
from content_factory.utils.clock import utcnow
from content_factory.utils.slug import safe_slug, slug_variants

META_FIELDS = ["title", "metaDescription", "ogTitle", "ogDescription", "schemaType", "suggestedSlug"]


def unique_slug(ctx: StageContext, article: Article, base_slug: str) -> str:
    """First variant of ``base_slug`` not used by another article on the domain."""
    for candidate in slug_variants(base_slug, constants.KEYWORD_SLUG_ATTEMPTS):
        if not ctx.store.slug_taken(article.domain_id, candidate, exclude_article_id=article.id):
            return candidate
    return f"{base_slug}-{article.id[:8]}"


async def run_ai_review(
    run: StageRun, content: str, keyword: str, title: str
) -> tuple[AiReviewResponse | None, str | None]:
    """
    Ask the reviewer model whether the article can skip human review.

    Any reviewer failure is absorbed and reported as the second element, so
    the article falls back to human review instead of failing the job.
    """
    stages = run.ctx.config.stages
    prompt = run.ctx.prompts.render("ai_review", content=content, keyword=keyword, title=title)
    try:
        review = await run.structured(
            ModelTask.AI_REVIEW,
            prompt,
            schema=AiReviewResponse,
            repair_fields=["verdict", "summary"],
            options=GenerationOptions(
                model=stages.review_model,
                temperature=stages.review_temperature,
                max_tokens=stages.review_max_tokens,
            ),
            stage="classify",
        )
    except Exception as e:
        logger.warning(
            "AI reviewer failed, routing to human review",
            job_id=run.job.id,
            article_id=run.job.article_id,
            error=str(e),
        )
        return None, str(e) or type(e).__name__
    return review, None


def review_summary(review: AiReviewResponse | None, approved: bool) -> str:
    if approved:
        return "Meta generated, approved by AI reviewer"
    if review is not None:
        return "Meta generated, AI reviewer flagged for human review"
    return "Meta generated, moved to review"


async def process_meta(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """
    Finalize the article and route it to ``review`` or ``approved``.

    Only an explicit approval from the reviewer (approve verdict, no failures,
    no human review flag) approves; everything else goes to human review.
    """
    run = StageRun(ctx, job, "meta")
    article = run.article()
    if not article.content_markdown:
        raise StageInputError(f"Content not found for article {article.id}", run.stage)
    domain = run.domain()
    keyword = article.target_keyword or ""

    content, _ = strip_dash_variants(article.content_markdown)
    prompt = ctx.prompts.render(
        "meta",
        excerpt=content[: constants.META_PROMPT_CONTENT_CHARS],
        keyword=keyword,
    )
    meta: MetaResponse = await run.structured(
        ModelTask.SEO_OPTIMIZE, prompt, schema=MetaResponse, repair_fields=META_FIELDS
    )

    slug = unique_slug(ctx, article, safe_slug(meta.suggested_slug, meta.title))
    ymyl_level = classify_ymyl_level(niche=domain.niche, keyword=keyword, content_markdown=content)

    review: AiReviewResponse | None = None
    review_error: str | None = None
    if ctx.config.stages.ai_review_enabled:
        review, review_error = await run_ai_review(run, content, keyword, meta.title)

    approved = review is not None and review.approves
    status = ArticleStatus.APPROVED if approved else ArticleStatus.REVIEW
    now = utcnow()

    updated = ctx.store.set_article_body(
        article.id,
        content,
        title=meta.title,
        meta_description=meta.meta_description,
        slug=slug,
        status=status.value,
        review_requested_at=None if approved else now,
        last_reviewed_at=now if approved else None,
        generation_passes=5 if review is not None else 4,
        ymyl_level=ymyl_level.value,
    )
    create_revision(
        ctx.store,
        article.id,
        title=meta.title,
        content_markdown=content,
        meta_description=meta.meta_description,
        change_type=RevisionChangeType.AI_REFINED,
        change_summary=review_summary(review, approved),
    )

    duplicates = check_cross_domain_duplication(
        ctx.store,
        article.id,
        domain.id,
        updated.content_signature or [],
        threshold=ctx.config.quality.duplicate_threshold,
        scan_limit=ctx.config.quality.cross_domain_scan_limit,
    )

    logger.info(
        "Article finalized",
        article_id=article.id,
        status=status.value,
        slug=slug,
        ymyl_level=ymyl_level.value,
        ai_review=review.verdict if review else None,
        duplicates=len(duplicates),
    )

    result: dict[str, Any] = meta.model_dump(by_alias=True)
    if review is not None:
        result["aiReview"] = review.model_dump(by_alias=True)
    result["aiReviewerFallbackError"] = review_error
    result["finalStatus"] = status.value
    result["ymylLevel"] = ymyl_level.value
    result["duplicateMatches"] = len(duplicates)
    return run.finish(result=result)
