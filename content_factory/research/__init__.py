"""Research cache with live fallback."""

from content_factory.research.cache import (
    ResearchCache,
    ResearchLookup,
    ResearchOutcome,
    merge_research_values,
    normalize_query,
    query_hash,
    query_tokens,
)

__all__ = [
    "ResearchCache",
    "ResearchLookup",
    "ResearchOutcome",
    "merge_research_values",
    "normalize_query",
    "query_hash",
    "query_tokens",
]
