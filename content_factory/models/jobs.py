"""Pipeline job data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class JobType(str, Enum):
    """Job types accepted by the queue."""

    RESEARCH = "research"
    GENERATE_OUTLINE = "generate_outline"
    GENERATE_DRAFT = "generate_draft"
    HUMANIZE = "humanize"
    SEO_OPTIMIZE = "seo_optimize"
    GENERATE_META = "generate_meta"
    KEYWORD_RESEARCH = "keyword_research"
    REFRESH_RESEARCH_CACHE = "refresh_research_cache"


# Stage order; each stage enqueues the next one before completing.
STAGE_SUCCESSORS: dict[JobType, JobType | None] = {
    JobType.RESEARCH: JobType.GENERATE_OUTLINE,
    JobType.GENERATE_OUTLINE: JobType.GENERATE_DRAFT,
    JobType.GENERATE_DRAFT: JobType.HUMANIZE,
    JobType.HUMANIZE: JobType.SEO_OPTIMIZE,
    JobType.SEO_OPTIMIZE: JobType.GENERATE_META,
    JobType.GENERATE_META: None,
}


class JobStatus(str, Enum):
    """Job lifecycle status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RevisionChangeType(str, Enum):
    AI_GENERATED = "ai_generated"
    AI_REFINED = "ai_refined"
    MANUAL_EDIT = "manual_edit"
    STATUS_CHANGE = "status_change"
    BULK_REFRESH = "bulk_refresh"


class StageOutcome(BaseModel):
    """What a stage processor hands back to the worker."""

    job_id: str = Field(description="Job that was processed")
    job_type: JobType
    article_id: str | None = None
    next_job_id: str | None = Field(default=None, description="Successor enqueued, if any")
    result: dict[str, Any] = Field(default_factory=dict)
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)


class QueueStats(BaseModel):
    """Counts of jobs per status plus per-type pending backlog."""

    pending: int = Field(default=0, ge=0)
    processing: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    cancelled: int = Field(default=0, ge=0)
    pending_by_type: dict[str, int] = Field(default_factory=dict)
    oldest_pending_age_seconds: float | None = None

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.completed + self.failed + self.cancelled


class BatchResult(BaseModel):
    """Result of one worker poll."""

    claimed: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
