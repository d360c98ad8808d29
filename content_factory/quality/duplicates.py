"""Cross-domain duplication check.

Compares an article's signature against recent articles of other domains.
Matches are reported, never blocking.
"""

from typing import TYPE_CHECKING

from loguru import logger
from pydantic import BaseModel

from content_factory import constants
from content_factory.quality.fingerprint import jaccard_similarity

if TYPE_CHECKING:
    from content_factory.store import ContentStore


class DuplicateMatch(BaseModel):
    article_id: str
    domain_id: str
    similarity: float


def check_cross_domain_duplication(
    store: "ContentStore",
    article_id: str,
    domain_id: str,
    signature: list[str],
    threshold: float = constants.DUPLICATE_SIMILARITY_THRESHOLD,
    scan_limit: int = constants.CROSS_DOMAIN_SCAN_LIMIT,
) -> list[DuplicateMatch]:
    """
    Find other-domain articles whose signature overlaps above ``threshold``.

    Emits one ``duplicate_content`` event per match.

    Args:
        store: Content store
        article_id: Article being checked
        domain_id: Its domain (excluded from the comparison)
        signature: Its sorted shingle hashes
        threshold: Similarity strictly above which a pair is flagged
        scan_limit: Most recent other-domain articles to compare

    Returns:
        Matches above the threshold
    """
    if not signature:
        return []

    matches: list[DuplicateMatch] = []
    for candidate_id, candidate_domain, candidate_signature in store.list_other_domain_signatures(
        domain_id, limit=scan_limit
    ):
        if not candidate_signature:
            continue

        similarity = jaccard_similarity(signature, candidate_signature)
        if similarity <= threshold:
            continue

        match = DuplicateMatch(article_id=candidate_id, domain_id=candidate_domain, similarity=similarity)
        matches.append(match)
        logger.warning(
            "Cross-domain duplication detected",
            article_id=article_id,
            other_article_id=candidate_id,
            other_domain_id=candidate_domain,
            similarity=round(similarity, 3),
        )
        store.add_event(
            event_type="duplicate_content",
            severity="warning",
            title="Cross-domain duplicate content",
            message=(
                f"Article {article_id} is {similarity * 100:.1f}% similar to article "
                f"{candidate_id} on domain {candidate_domain}"
            ),
            domain_id=domain_id,
            article_id=article_id,
            details=match.model_dump(),
        )

    return matches
