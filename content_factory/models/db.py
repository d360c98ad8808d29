"""SQLAlchemy ORM models for the relational store."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from content_factory.utils.clock import utcnow


def new_id() -> str:
    """Generate a new string primary key."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Domain(Base):
    """A content site owned by the portfolio."""

    __tablename__ = "domains"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    niche: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bucket: Mapped[str | None] = mapped_column(String(50), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    voice_seed: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Keyword(Base):
    """Keyword opportunity discovered for a domain."""

    __tablename__ = "keywords"
    __table_args__ = (UniqueConstraint("domain_id", "keyword", name="uq_keywords_domain_keyword"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    domain_id: Mapped[str] = mapped_column(ForeignKey("domains.id"), nullable=False)
    keyword: Mapped[str] = mapped_column(String(255), nullable=False)
    monthly_volume: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    intent: Mapped[str] = mapped_column(String(20), nullable=False, default="informational")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Article(Base):
    """The unit of work moved through the pipeline."""

    __tablename__ = "articles"
    __table_args__ = (UniqueConstraint("domain_id", "slug", name="uq_articles_domain_slug"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    domain_id: Mapped[str] = mapped_column(ForeignKey("domains.id"), nullable=False, index=True)
    target_keyword: Mapped[str] = mapped_column(String(255), nullable=False)
    secondary_keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    content_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    header_structure: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    calculator_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    comparison_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    wizard_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    geo_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    content_markdown: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    research_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    generation_passes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content_fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    content_signature: Mapped[list[str] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    ymyl_level: Mapped[str] = mapped_column(String(10), nullable=False, default="none")
    review_requested_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class PipelineJob(Base):
    """One queued unit of pipeline work."""

    __tablename__ = "pipeline_jobs"
    __table_args__ = (
        Index("ix_pipeline_jobs_claim", "status", "priority", "created_at"),
        Index("ix_pipeline_jobs_article_status", "article_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    domain_id: Mapped[str | None] = mapped_column(ForeignKey("domains.id"), nullable=True)
    article_id: Mapped[str | None] = mapped_column(ForeignKey("articles.id"), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    result: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    api_tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    api_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class GenerationCallRecord(Base):
    """Append-only audit row per provider invocation."""

    __tablename__ = "generation_call_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    article_id: Mapped[str | None] = mapped_column(ForeignKey("articles.id"), nullable=True)
    domain_id: Mapped[str | None] = mapped_column(ForeignKey("domains.id"), nullable=True)
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    model_key: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    resolved_model: Mapped[str] = mapped_column(String(255), nullable=False)
    prompt_version: Mapped[str] = mapped_column(String(50), nullable=False)
    routing_version: Mapped[str] = mapped_column(String(100), nullable=False)
    fallback_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    prompt_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prompt_body: Mapped[str] = mapped_column(Text, nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class ResearchCacheEntry(Base):
    """Cached research payload keyed by normalized query hash."""

    __tablename__ = "research_cache"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    query_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    result_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    source_model: Mapped[str] = mapped_column(String(255), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    domain_priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class Revision(Base):
    """Snapshot of an article's title, body and meta after a change."""

    __tablename__ = "revisions"
    __table_args__ = (
        UniqueConstraint("article_id", "revision_number", name="uq_revisions_article_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    article_id: Mapped[str] = mapped_column(ForeignKey("articles.id"), nullable=False, index=True)
    revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    content_markdown: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    change_type: Mapped[str] = mapped_column(String(30), nullable=False)
    change_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class NotificationEvent(Base):
    """Audit/notification event for quality-gate violations and duplication warnings."""

    __tablename__ = "notification_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="info")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    domain_id: Mapped[str | None] = mapped_column(ForeignKey("domains.id"), nullable=True)
    article_id: Mapped[str | None] = mapped_column(ForeignKey("articles.id"), nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
