"""Pydantic and SQLAlchemy models for the pipeline."""

from content_factory.models.config import (
    CircuitBreakerConfig,
    DatabaseConfig,
    ErrorHandlingConfig,
    GenerationConfig,
    LoggingConfig,
    PipelineConfig,
    PipelineMetadata,
    QualityConfig,
    ResearchCacheConfig,
    RetryConfig,
    StagesConfig,
    WorkerConfig,
)
from content_factory.models.content import (
    AiReviewResponse,
    ArticleStatus,
    CalculatorConfig,
    ComparisonData,
    ContentType,
    GeoData,
    KeywordIdea,
    KeywordResearchResponse,
    MetaResponse,
    OutlineResponse,
    OutlineSection,
    ResearchData,
    VoiceSeed,
    WizardConfig,
    YmylLevel,
)
from content_factory.models.db import (
    Article,
    Domain,
    GenerationCallRecord,
    Keyword,
    NotificationEvent,
    PipelineJob,
    ResearchCacheEntry,
    Revision,
)
from content_factory.models.generation import (
    CallUsage,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    GenerationOptions,
    GenerationResult,
    ModelTask,
    StructuredResult,
)
from content_factory.models.jobs import (
    BatchResult,
    JobStatus,
    JobType,
    QueueStats,
    RevisionChangeType,
    StageOutcome,
)

__all__ = [
    # Config
    "DatabaseConfig",
    "RetryConfig",
    "CircuitBreakerConfig",
    "GenerationConfig",
    "ResearchCacheConfig",
    "QualityConfig",
    "StagesConfig",
    "WorkerConfig",
    "LoggingConfig",
    "ErrorHandlingConfig",
    "PipelineMetadata",
    "PipelineConfig",
    # Content
    "ArticleStatus",
    "ContentType",
    "YmylLevel",
    "ResearchData",
    "OutlineSection",
    "OutlineResponse",
    "CalculatorConfig",
    "ComparisonData",
    "WizardConfig",
    "GeoData",
    "MetaResponse",
    "AiReviewResponse",
    "VoiceSeed",
    "KeywordIdea",
    "KeywordResearchResponse",
    # Tables
    "Domain",
    "Keyword",
    "Article",
    "PipelineJob",
    "GenerationCallRecord",
    "ResearchCacheEntry",
    "Revision",
    "NotificationEvent",
    # Generation
    "ModelTask",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "GenerationOptions",
    "CallUsage",
    "GenerationResult",
    "StructuredResult",
    # Jobs
    "JobType",
    "JobStatus",
    "RevisionChangeType",
    "StageOutcome",
    "QueueStats",
    "BatchResult",
]
