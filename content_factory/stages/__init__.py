"""Stage processors and the classifiers they share."""

from collections.abc import Awaitable, Callable

from content_factory.models.db import PipelineJob
from content_factory.models.jobs import JobType, StageOutcome
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.content_type import classify_content_type
from content_factory.stages.differentiation import (
    build_differentiation_instructions,
    build_intent_coverage_guidance,
)
from content_factory.stages.draft import process_draft
from content_factory.stages.humanize import process_humanize
from content_factory.stages.keywords import process_keyword_research
from content_factory.stages.meta import process_meta
from content_factory.stages.outline import process_outline
from content_factory.stages.refresh import process_refresh_research_cache
from content_factory.stages.research import process_research
from content_factory.stages.seo import process_seo_optimize
from content_factory.stages.voice import get_or_create_voice_seed, voice_persona_instructions
from content_factory.stages.ymyl import classify_ymyl_level

StageProcessor = Callable[[StageContext, PipelineJob], Awaitable[StageOutcome]]

PROCESSORS: dict[JobType, StageProcessor] = {
    JobType.RESEARCH: process_research,
    JobType.GENERATE_OUTLINE: process_outline,
    JobType.GENERATE_DRAFT: process_draft,
    JobType.HUMANIZE: process_humanize,
    JobType.SEO_OPTIMIZE: process_seo_optimize,
    JobType.GENERATE_META: process_meta,
    JobType.KEYWORD_RESEARCH: process_keyword_research,
    JobType.REFRESH_RESEARCH_CACHE: process_refresh_research_cache,
}

__all__ = [
    "PROCESSORS",
    "StageContext",
    "StageProcessor",
    "StageRun",
    "build_differentiation_instructions",
    "build_intent_coverage_guidance",
    "classify_content_type",
    "classify_ymyl_level",
    "get_or_create_voice_seed",
    "process_draft",
    "process_humanize",
    "process_keyword_research",
    "process_meta",
    "process_outline",
    "process_refresh_research_cache",
    "process_research",
    "process_seo_optimize",
    "voice_persona_instructions",
]
