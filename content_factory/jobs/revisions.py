"""Article revision snapshots."""

from loguru import logger
from sqlalchemy import func, select

from content_factory.models.db import Revision
from content_factory.models.jobs import RevisionChangeType
from content_factory.store import ContentStore
from content_factory.utils.hash import sha256_hex
from content_factory.utils.text import word_count


def create_revision(
    store: ContentStore,
    article_id: str,
    title: str | None,
    content_markdown: str | None,
    meta_description: str | None,
    change_type: RevisionChangeType | str,
    change_summary: str | None = None,
) -> Revision:
    """
    Snapshot an article's title, body and meta.

    Revision numbers start at 1 and increase per article. The content hash
    is the sha256 of the body, or None when there is no body yet.
    """
    change_type = RevisionChangeType(change_type)
    with store.session() as session:
        current = session.scalar(
            select(func.max(Revision.revision_number)).where(Revision.article_id == article_id)
        )
        revision = Revision(
            article_id=article_id,
            revision_number=(current or 0) + 1,
            title=title,
            content_markdown=content_markdown,
            meta_description=meta_description,
            content_hash=sha256_hex(content_markdown) if content_markdown else None,
            word_count=word_count(content_markdown),
            change_type=change_type.value,
            change_summary=change_summary,
        )
        session.add(revision)

    logger.debug(
        "Revision created",
        article_id=article_id,
        revision=revision.revision_number,
        change_type=change_type.value,
    )
    return revision


def list_revisions(store: ContentStore, article_id: str) -> list[Revision]:
    with store.session() as session:
        stmt = (
            select(Revision)
            .where(Revision.article_id == article_id)
            .order_by(Revision.revision_number)
        )
        return list(session.scalars(stmt))
