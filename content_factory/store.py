"""SQLAlchemy-backed storage facade.

The store owns the engine and session factory. Stage processors, the queue and
the research cache go through it instead of opening sessions of their own.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from content_factory.models.db import (
    Article,
    Base,
    Domain,
    GenerationCallRecord,
    Keyword,
    NotificationEvent,
)
from content_factory.quality.fingerprint import content_fingerprint, content_signature
from content_factory.utils.text import word_count


class ContentStore:
    """Facade over the relational store."""

    def __init__(self, url: str = "sqlite://", echo: bool = False):
        """
        Args:
            url: SQLAlchemy URL; ``sqlite://`` is a shared in-memory database
            echo: Log emitted SQL
        """
        self.url = url
        parsed = make_url(url)
        engine_kwargs: dict[str, Any] = {"echo": echo}

        if parsed.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if not parsed.database or parsed.database == ":memory:":
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(url, **engine_kwargs)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    def init_schema(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.debug("Schema ensured", url=self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional session: commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================================
    # Domains
    # =========================================================================

    def create_domain(
        self,
        name: str,
        niche: str | None = None,
        bucket: str | None = None,
        priority: int = 0,
    ) -> Domain:
        with self.session() as session:
            domain = Domain(name=name, niche=niche, bucket=bucket, priority=priority)
            session.add(domain)
        logger.info("Domain created", domain_id=domain.id, name=name)
        return domain

    def get_domain(self, domain_id: str) -> Domain | None:
        with self.session() as session:
            return session.get(Domain, domain_id)

    def get_domain_by_name(self, name: str) -> Domain | None:
        with self.session() as session:
            return session.scalars(select(Domain).where(Domain.name == name)).one_or_none()

    def list_domains(self) -> list[Domain]:
        with self.session() as session:
            return list(session.scalars(select(Domain).order_by(Domain.name)))

    def set_voice_seed(self, domain_id: str, voice_seed: dict[str, Any]) -> None:
        with self.session() as session:
            domain = session.get(Domain, domain_id)
            if domain is not None:
                domain.voice_seed = voice_seed

    # =========================================================================
    # Articles
    # =========================================================================

    def create_article(
        self,
        domain_id: str,
        target_keyword: str,
        title: str,
        slug: str,
        **fields: Any,
    ) -> Article | None:
        """
        Insert a new article.

        Returns:
            The article, or None when the slug is already taken on the domain
        """
        article = Article(
            domain_id=domain_id,
            target_keyword=target_keyword,
            title=title,
            slug=slug,
            **fields,
        )
        try:
            with self.session() as session:
                session.add(article)
        except IntegrityError:
            logger.debug("Slug already taken", domain_id=domain_id, slug=slug)
            return None
        return article

    def get_article(self, article_id: str) -> Article | None:
        with self.session() as session:
            return session.get(Article, article_id)

    def update_article(self, article_id: str, **fields: Any) -> Article | None:
        with self.session() as session:
            article = session.get(Article, article_id)
            if article is None:
                return None
            for key, value in fields.items():
                setattr(article, key, value)
        return article

    def set_article_body(self, article_id: str, body: str, **fields: Any) -> Article | None:
        """
        Replace the article body together with its derived fields.

        Word count, fingerprint and signature are always recomputed here so
        they can never drift from the stored body.
        """
        signature = content_signature(body)
        return self.update_article(
            article_id,
            content_markdown=body,
            word_count=word_count(body),
            content_signature=signature,
            content_fingerprint=content_fingerprint(body, signature),
            **fields,
        )

    def slug_taken(self, domain_id: str, slug: str, exclude_article_id: str | None = None) -> bool:
        with self.session() as session:
            stmt = select(Article.id).where(Article.domain_id == domain_id, Article.slug == slug)
            if exclude_article_id is not None:
                stmt = stmt.where(Article.id != exclude_article_id)
            return session.scalar(stmt.limit(1)) is not None

    def find_article_by_keyword(self, domain_id: str, target_keyword: str) -> Article | None:
        """Oldest article on the domain targeting ``target_keyword``."""
        with self.session() as session:
            stmt = (
                select(Article)
                .where(Article.domain_id == domain_id, Article.target_keyword == target_keyword)
                .order_by(Article.created_at)
                .limit(1)
            )
            return session.scalar(stmt)

    def list_published_articles(self, domain_id: str, limit: int) -> list[Article]:
        with self.session() as session:
            stmt = (
                select(Article)
                .where(Article.domain_id == domain_id, Article.status == "published")
                .order_by(Article.published_at.desc(), Article.created_at.desc())
                .limit(limit)
            )
            return list(session.scalars(stmt))

    def list_other_domain_signatures(
        self, domain_id: str, limit: int
    ) -> list[tuple[str, str, list[str]]]:
        """Most recent signed articles from every domain except ``domain_id``."""
        with self.session() as session:
            stmt = (
                select(Article.id, Article.domain_id, Article.content_signature)
                .where(Article.domain_id != domain_id, Article.content_signature.is_not(None))
                .order_by(Article.created_at.desc())
                .limit(limit)
            )
            return [(row[0], row[1], list(row[2] or [])) for row in session.execute(stmt)]

    # =========================================================================
    # Keywords
    # =========================================================================

    def upsert_keyword(
        self,
        domain_id: str,
        keyword: str,
        monthly_volume: int,
        difficulty: int,
        intent: str,
    ) -> Keyword:
        with self.session() as session:
            existing = session.scalars(
                select(Keyword).where(Keyword.domain_id == domain_id, Keyword.keyword == keyword)
            ).one_or_none()
            if existing is None:
                existing = Keyword(
                    domain_id=domain_id,
                    keyword=keyword,
                    monthly_volume=monthly_volume,
                    difficulty=difficulty,
                    intent=intent,
                    status="queued",
                )
                session.add(existing)
            else:
                existing.monthly_volume = monthly_volume
                existing.difficulty = difficulty
                existing.intent = intent
        return existing

    def intent_counts(self, domain_id: str) -> dict[str, int]:
        """Keyword count per search intent for a domain."""
        with self.session() as session:
            stmt = (
                select(Keyword.intent, func.count())
                .where(Keyword.domain_id == domain_id)
                .group_by(Keyword.intent)
            )
            return {(intent or "informational"): count for intent, count in session.execute(stmt)}

    # =========================================================================
    # Audit
    # =========================================================================

    def add_call_record(self, **fields: Any) -> GenerationCallRecord:
        with self.session() as session:
            record = GenerationCallRecord(**fields)
            session.add(record)
        return record

    def list_call_records(self, article_id: str | None = None) -> list[GenerationCallRecord]:
        with self.session() as session:
            stmt = select(GenerationCallRecord).order_by(GenerationCallRecord.created_at)
            if article_id is not None:
                stmt = stmt.where(GenerationCallRecord.article_id == article_id)
            return list(session.scalars(stmt))

    def add_event(
        self,
        event_type: str,
        title: str,
        message: str,
        severity: str = "info",
        domain_id: str | None = None,
        article_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> NotificationEvent:
        with self.session() as session:
            event = NotificationEvent(
                type=event_type,
                severity=severity,
                title=title,
                message=message,
                domain_id=domain_id,
                article_id=article_id,
                details=details,
            )
            session.add(event)
        return event

    def list_events(self, event_type: str | None = None) -> list[NotificationEvent]:
        with self.session() as session:
            stmt = select(NotificationEvent).order_by(NotificationEvent.created_at)
            if event_type is not None:
                stmt = stmt.where(NotificationEvent.type == event_type)
            return list(session.scalars(stmt))
