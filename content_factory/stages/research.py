"""Research stage: cache-backed fact gathering for an article."""

from loguru import logger

from content_factory.models.content import ResearchData
from content_factory.models.db import PipelineJob
from content_factory.models.jobs import JobType, StageOutcome
from content_factory.stages.common import StageContext, StageRun


async def process_research(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """
    Gather statistics, quotes and angles for the target keyword.

    Research never fails the article: a cache miss with a failed live call
    stores empty research and queues a background cache refresh.
    """
    run = StageRun(ctx, job, "research")
    article = run.article()
    domain = run.domain()

    keyword = run.payload.get("targetKeyword") or article.target_keyword
    domain_name = run.payload.get("domainName") or domain.name
    domain_priority = run.payload.get("domainPriority")
    if not isinstance(domain_priority, int):
        domain_priority = domain.priority

    prompt = ctx.prompts.render("research", keyword=keyword, domain_name=domain_name)
    outcome = await ctx.research_cache.generate_research_with_cache(
        query_text=f"{keyword} @ {domain_name}",
        prompt=prompt.user_prompt,
        empty_result=ResearchData.empty().model_dump(by_alias=True),
        domain_priority=domain_priority,
        ttl_hours=ctx.config.research_cache.ttl_hours,
    )
    run.record(prompt, outcome)

    research_data = outcome.data if isinstance(outcome.data, dict) else {"findings": outcome.data}
    ctx.store.update_article(article.id, research_data=research_data)

    logger.info(
        "Research stored",
        article_id=article.id,
        keyword=keyword,
        cache_status=outcome.cache_status,
        cache_entries=outcome.cache_entries,
    )

    return run.finish(
        result={
            **research_data,
            "cacheStatus": outcome.cache_status,
            "cacheEntries": outcome.cache_entries,
        },
        successor=JobType.GENERATE_OUTLINE,
        successor_payload={"targetKeyword": keyword, "domainName": domain_name},
    )
