"""Configuration models for the content factory."""

from typing import Literal

from pydantic import BaseModel, Field

from content_factory import constants


class DatabaseConfig(BaseModel):
    """Relational store configuration."""

    url: str = Field(default="sqlite:///data/content_factory.db", description="SQLAlchemy URL")
    echo: bool = Field(default=False, description="Log emitted SQL")


class RetryConfig(BaseModel):
    """Bounded retry policy for provider calls."""

    max_attempts: int = Field(default=constants.DEFAULT_MAX_ATTEMPTS, ge=1, le=10)
    base_delay_seconds: float = Field(default=constants.DEFAULT_RETRY_BASE_DELAY, ge=0.0)
    max_delay_seconds: float = Field(default=constants.DEFAULT_RETRY_MAX_DELAY, ge=0.0)


class CircuitBreakerConfig(BaseModel):
    """Per-provider circuit breaker thresholds."""

    failure_threshold: int = Field(default=constants.BREAKER_FAILURE_THRESHOLD, ge=1)
    reset_timeout_seconds: float = Field(
        default=constants.BREAKER_RESET_TIMEOUT_SECONDS, ge=0.0
    )
    half_open_max_attempts: int = Field(default=constants.BREAKER_HALF_OPEN_MAX_ATTEMPTS, ge=1)
    success_threshold: int = Field(default=constants.BREAKER_SUCCESS_THRESHOLD, ge=1)


class GenerationConfig(BaseModel):
    """Generation provider and routing configuration."""

    provider: Literal["openrouter", "gemini"] = Field(default="openrouter")
    base_url: str = Field(default="https://openrouter.ai/api/v1")
    app_url: str = Field(default="https://localhost:3000", description="Sent as HTTP-Referer")
    app_title: str = Field(default="Content Factory", description="Sent as X-Title")
    timeout_seconds: int = Field(default=constants.DEFAULT_REQUEST_TIMEOUT_SECONDS, ge=1)
    temperature: float = Field(ge=0.0, le=2.0, default=constants.DEFAULT_TEMPERATURE)
    max_tokens: int = Field(default=constants.DEFAULT_MAX_TOKENS, ge=1)
    model_overrides: dict[str, str] = Field(
        default_factory=dict, description="Task name to model id overrides"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)


class ResearchCacheConfig(BaseModel):
    """Research cache configuration."""

    enabled: bool = Field(default=True)
    ttl_hours: int = Field(default=constants.RESEARCH_CACHE_TTL_HOURS, ge=1)
    staleness_hours: int = Field(default=constants.RESEARCH_CACHE_STALENESS_HOURS, ge=1)
    top_n: int = Field(default=constants.RESEARCH_CACHE_TOP_N, ge=1)
    max_scan: int = Field(default=constants.RESEARCH_CACHE_MAX_SCAN, ge=1)
    queue_refresh_on_miss: bool = Field(default=True)


class QualityConfig(BaseModel):
    """Quality gate configuration."""

    banned_words: list[str] = Field(
        default_factory=lambda: [
            "delve",
            "landscape",
            "leverage",
            "navigate",
            "robust",
            "streamline",
            "utilize",
            "facilitate",
            "comprehensive",
            "moreover",
            "furthermore",
            "paradigm",
            "game-changer",
        ]
    )
    banned_transitions: list[str] = Field(
        default_factory=lambda: [
            "in terms of",
            "it's important to note",
            "it's worth noting",
            "key takeaways",
            "at the end of the day",
        ]
    )
    burstiness_threshold: float = Field(default=constants.BURSTINESS_THRESHOLD, ge=0.0)
    burstiness_min_sentences: int = Field(default=constants.BURSTINESS_MIN_SENTENCES, ge=1)
    duplicate_threshold: float = Field(
        default=constants.DUPLICATE_SIMILARITY_THRESHOLD, ge=0.0, le=1.0
    )
    cross_domain_scan_limit: int = Field(default=constants.CROSS_DOMAIN_SCAN_LIMIT, ge=1)
    corrective_passes: int = Field(
        default=1, ge=0, le=3, description="Re-humanization passes before failing the job"
    )
    enforce_at_humanize: bool = Field(default=True)


class StagesConfig(BaseModel):
    """Stage processor configuration."""

    draft_min_words: int = Field(default=constants.DRAFT_MIN_WORDS, ge=0)
    internal_linking_enabled: bool = Field(default=False)
    internal_link_limit: int = Field(default=constants.INTERNAL_LINK_LIMIT, ge=0)
    ai_review_enabled: bool = Field(default=False)
    review_model: str | None = Field(default=None, description="Reviewer model override")
    review_temperature: float = Field(default=constants.REVIEW_TEMPERATURE, ge=0.0, le=2.0)
    review_max_tokens: int = Field(default=constants.REVIEW_MAX_TOKENS, ge=1)
    keyword_target_count: int = Field(default=10, ge=1, le=100)


class WorkerConfig(BaseModel):
    """Queue worker configuration."""

    batch_size: int = Field(default=constants.WORKER_BATCH_SIZE, ge=1)
    poll_interval_seconds: float = Field(default=constants.WORKER_POLL_INTERVAL_SECONDS, ge=0.0)
    lock_duration_minutes: int = Field(default=constants.WORKER_LOCK_DURATION_MINUTES, ge=1)
    job_timeout_minutes: int = Field(default=constants.WORKER_JOB_TIMEOUT_MINUTES, ge=1)
    stale_check_interval_seconds: float = Field(
        default=constants.WORKER_STALE_CHECK_INTERVAL_SECONDS, ge=0.0
    )
    default_max_attempts: int = Field(default=3, ge=1)
    max_backoff_minutes: int = Field(default=constants.JOB_MAX_BACKOFF_MINUTES, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration for loguru."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    serialize: bool = Field(default=True, description="Serialize logs to JSON")
    colorize: bool = Field(default=True, description="Colorize console output")
    file_path: str = Field(default="logs/content_factory.log")
    rotation: str = Field(default="500 MB", description="Log rotation size/time")
    retention: str = Field(default="30 days", description="Log retention period")
    compression: str = Field(default="zip", description="Compression format for rotated logs")


class ErrorHandlingConfig(BaseModel):
    """Error handling configuration."""

    stop_on_critical: bool = Field(default=True)
    max_consecutive_failures: int = Field(default=10, ge=1)
    notification_on_failure: bool = Field(default=True)


class PipelineMetadata(BaseModel):
    """Pipeline metadata."""

    name: str = Field(default="content-factory")
    version: str = Field(default="1.0.0")
    execution_mode: Literal["production", "development", "dry_run"] = Field(default="production")


class PipelineConfig(BaseModel):
    """Complete content factory configuration."""

    pipeline: PipelineMetadata = Field(default_factory=PipelineMetadata)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    research_cache: ResearchCacheConfig = Field(default_factory=ResearchCacheConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    stages: StagesConfig = Field(default_factory=StagesConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    error_handling: ErrorHandlingConfig = Field(default_factory=ErrorHandlingConfig)
