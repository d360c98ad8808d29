"""SEO stage: keyword placement and internal links."""

from loguru import logger

from content_factory.errors import StageInputError
from content_factory.jobs.revisions import create_revision
from content_factory.models.db import PipelineJob
from content_factory.models.generation import ModelTask
from content_factory.models.jobs import JobType, RevisionChangeType, StageOutcome
from content_factory.quality.scanner import strip_dash_variants
from content_factory.stages.common import StageContext, StageRun


def format_internal_links(links: list[tuple[str, str]]) -> str:
    """
    Examples:
        >>> format_internal_links([("Best Boots", "best-boots")])
        '- "Best Boots" (/best-boots)'
    """
    if not links:
        return "(none available)"
    return "\n".join(f'- "{title}" (/{slug})' for title, slug in links)


async def process_seo_optimize(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """Optimize headings, keyword placement and links of the humanized body."""
    run = StageRun(ctx, job, "seo")
    article = run.article()
    if not article.content_markdown:
        raise StageInputError(f"Content not found for article {article.id}", run.stage)
    domain = run.domain()
    stages = ctx.config.stages

    links: list[tuple[str, str]] = []
    if stages.internal_linking_enabled:
        links = [
            (published.title, published.slug)
            for published in ctx.store.list_published_articles(domain.id, stages.internal_link_limit)
        ]

    prompt = ctx.prompts.render(
        "seo_optimize",
        differentiation=run.differentiation(domain, article.target_keyword),
        article=article.content_markdown,
        keyword=article.target_keyword,
        secondary_keywords=", ".join(article.secondary_keywords or []),
        internal_links=format_internal_links(links),
    )
    result = await run.text(ModelTask.SEO_OPTIMIZE, prompt)
    text, _ = strip_dash_variants(result.content)
    words = run.rewrite_word_count(text, article)

    ctx.store.set_article_body(article.id, text, generation_passes=3)
    create_revision(
        ctx.store,
        article.id,
        title=article.title,
        content_markdown=text,
        meta_description=article.meta_description,
        change_type=RevisionChangeType.AI_REFINED,
        change_summary=f"SEO optimized ({words} words)",
    )

    logger.info("SEO pass stored", article_id=article.id, words=words, internal_links=len(links))
    return run.finish(
        result={"wordCount": words, "internalLinksOffered": len(links)},
        successor=JobType.GENERATE_META,
    )
