"""Background research cache refresh job."""

from content_factory.models.db import PipelineJob
from content_factory.models.jobs import StageOutcome
from content_factory.stages.common import StageContext, StageRun


async def process_refresh_research_cache(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """Re-run a live research call queued after a cache miss and store it."""
    run = StageRun(ctx, job, "research_refresh")
    outcome = await ctx.research_cache.refresh_research_cache_entry(run.payload)
    run.record(run.payload["prompt"], outcome)
    return run.finish(result={"queryText": run.payload["queryText"], "refreshed": True})
