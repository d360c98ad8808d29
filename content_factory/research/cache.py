"""Research cache.

Research payloads are cached per normalized query. Lookups rank eligible
entries (exact hash or token overlap) by relevance, recency and domain
priority, and merge the best ones deterministically. When nothing usable is
cached the live research provider is called; when that fails too, an empty
result is returned and a background refresh job is queued instead of failing
the caller.
"""

import json
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy import delete, or_, select

from content_factory import constants
from content_factory.generation.client import GenerationClient
from content_factory.jobs.queue import JobQueue
from content_factory.models.config import ResearchCacheConfig
from content_factory.models.db import ResearchCacheEntry
from content_factory.models.generation import CallUsage, GenerationOptions, ModelTask
from content_factory.models.jobs import JobType
from content_factory.store import ContentStore
from content_factory.utils.clock import utcnow
from content_factory.utils.hash import sha256_hex

CacheStatus = Literal["hit", "partial", "miss"]

CACHE_ROUTING_VERSION = f"{constants.RESEARCH_CACHE_MODEL}.{constants.MODEL_ROUTING_VERSION}"

_WHITESPACE = re.compile(r"\s+")
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_TOKEN_SEARCH_LIMIT = 5


def normalize_query(query_text: str) -> str:
    return _WHITESPACE.sub(" ", query_text.strip().lower())


def query_hash(query_text: str) -> str:
    return sha256_hex(normalize_query(query_text))


def query_tokens(query_text: str) -> list[str]:
    """
    Distinct-enough tokens for overlap matching.

    Examples:
        >>> query_tokens("Best  Hiking Boots @ trail.example")
        ['best', 'hiking', 'boots', 'trail', 'example']
    """
    tokens = [t for t in _TOKEN_SPLIT.split(normalize_query(query_text)) if t]
    return [t for t in tokens if len(t) >= constants.RESEARCH_QUERY_TOKEN_MIN_LENGTH][
        : constants.RESEARCH_QUERY_MAX_TOKENS
    ]


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def merge_research_values(values: list[Any]) -> Any:
    """
    Deterministically merge cached payloads.

    Lists are concatenated with duplicates (by JSON identity) dropped, dicts
    are merged key by key, and for anything else the first value wins.
    """
    if not values:
        return {}
    if len(values) == 1:
        return values[0]

    if all(isinstance(v, list) for v in values):
        seen: set[str] = set()
        merged_list = []
        for item in (item for value in values for item in value):
            key = json.dumps(item, sort_keys=True, default=str)
            if key not in seen:
                seen.add(key)
                merged_list.append(item)
        return merged_list

    if all(isinstance(v, dict) for v in values):
        keys: list[str] = []
        for value in values:
            keys.extend(k for k in value if k not in keys)
        merged: dict[str, Any] = {}
        for key in keys:
            key_values = [v[key] for v in values if v.get(key) is not None]
            if key_values:
                merged[key] = merge_research_values(key_values)
        return merged

    return values[0]


class ScoredEntry(BaseModel):
    id: str
    query_hash: str
    query_text: str
    result_data: Any
    fetched_at: datetime
    domain_priority: int
    score: float
    exact: bool


class ResearchLookup(BaseModel):
    """Merged cache result."""

    data: Any = None
    cache_status: CacheStatus = "miss"
    entries: list[ScoredEntry] = Field(default_factory=list)


class ResearchOutcome(CallUsage):
    """Research payload with the usage of the call that produced it."""

    data: Any
    cache_status: CacheStatus
    cache_entries: int = 0


class RefreshPayload(BaseModel):
    """Validated payload of a ``refresh_research_cache`` job."""

    query_text: str = Field(alias="queryText", min_length=1)
    prompt: str = Field(min_length=1)
    domain_priority: int = Field(default=0, alias="domainPriority", ge=0)
    ttl_hours: int = Field(default=constants.RESEARCH_CACHE_TTL_HOURS, alias="ttlHours", ge=1)


class ResearchCache:
    """Cache-first research with live fallback and background refresh."""

    def __init__(
        self,
        store: ContentStore,
        client: GenerationClient,
        queue: JobQueue,
        config: ResearchCacheConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.client = client
        self.queue = queue
        self.config = config or ResearchCacheConfig()
        self._clock = clock

    def lookup(self, query_text: str, domain_priority: int = 0) -> ResearchLookup:
        """
        Rank and merge eligible cache entries.

        An entry is eligible when it is unexpired, was fetched within the
        staleness window, and its domain priority is at least the requested one.

        Args:
            query_text: Research query
            domain_priority: Minimum entry priority the caller accepts

        Returns:
            Merged data with status ``hit`` (exact entry included), ``partial``
            (only token-overlap entries) or ``miss``
        """
        now = self._clock()
        normalized = normalize_query(query_text)
        exact_hash = sha256_hex(normalized)
        tokens = query_tokens(normalized)
        window = timedelta(hours=self.config.staleness_hours)
        stale_before = now - window

        clauses = [ResearchCacheEntry.query_hash == exact_hash]
        clauses.extend(
            ResearchCacheEntry.query_text.ilike(f"%{token}%") for token in tokens[:_TOKEN_SEARCH_LIMIT]
        )

        with self.store.session() as session:
            rows = session.scalars(
                select(ResearchCacheEntry)
                .where(or_(*clauses))
                .order_by(ResearchCacheEntry.fetched_at.desc(), ResearchCacheEntry.id)
                .limit(self.config.max_scan)
            ).all()

        eligible = [
            row
            for row in rows
            if row.expires_at > now
            and row.fetched_at >= stale_before
            and row.domain_priority >= domain_priority
        ]
        if not eligible:
            logger.debug("Research cache miss", query=normalized, scanned=len(rows))
            return ResearchLookup()

        window_seconds = window.total_seconds()
        scored = []
        for row in eligible:
            exact = row.query_hash == exact_hash
            if exact:
                relevance = 1.0
            elif tokens:
                row_text = normalize_query(row.query_text)
                relevance = sum(1 for token in tokens if token in row_text) / len(tokens)
            else:
                relevance = 0.0
            age_seconds = max(0.0, (now - row.fetched_at).total_seconds())
            recency = _clamp(1 - age_seconds / window_seconds)
            if domain_priority <= 0:
                priority_score = _clamp(row.domain_priority / 10)
            else:
                priority_score = _clamp(row.domain_priority / domain_priority)

            scored.append(
                ScoredEntry(
                    id=row.id,
                    query_hash=row.query_hash,
                    query_text=row.query_text,
                    result_data=row.result_data,
                    fetched_at=row.fetched_at,
                    domain_priority=row.domain_priority,
                    score=0.6 * relevance + 0.3 * recency + 0.1 * priority_score,
                    exact=exact,
                )
            )

        scored.sort(key=lambda e: (-e.score, -e.fetched_at.timestamp(), e.id))
        top = scored[: self.config.top_n]
        status: CacheStatus = "hit" if any(e.exact for e in top) else "partial"

        logger.info(
            "Research cache lookup",
            query=normalized,
            status=status,
            entries=len(top),
            best_score=round(top[0].score, 3),
        )
        return ResearchLookup(
            data=merge_research_values([e.result_data for e in top]),
            cache_status=status,
            entries=top,
        )

    def upsert(
        self,
        query_text: str,
        data: Any,
        source_model: str,
        domain_priority: int = 0,
        ttl_hours: int | None = None,
    ) -> None:
        """Insert or replace the entry for a query."""
        now = self._clock()
        normalized = normalize_query(query_text)
        ttl = ttl_hours or self.config.ttl_hours
        fields = {
            "query_text": normalized,
            "result_data": data,
            "source_model": source_model,
            "fetched_at": now,
            "expires_at": now + timedelta(hours=ttl),
            "domain_priority": max(0, int(domain_priority)),
        }

        with self.store.session() as session:
            entry = session.scalars(
                select(ResearchCacheEntry).where(ResearchCacheEntry.query_hash == sha256_hex(normalized))
            ).one_or_none()
            if entry is None:
                session.add(ResearchCacheEntry(query_hash=sha256_hex(normalized), **fields))
            else:
                for key, value in fields.items():
                    setattr(entry, key, value)

        logger.debug("Research cache entry stored", query=normalized, ttl_hours=ttl)

    def queue_refresh(self, query_text: str, prompt: str, domain_priority: int, ttl_hours: int | None) -> str:
        return self.queue.enqueue(
            JobType.REFRESH_RESEARCH_CACHE,
            payload={
                "queryText": query_text,
                "prompt": prompt,
                "domainPriority": domain_priority,
                "ttlHours": ttl_hours or self.config.ttl_hours,
            },
            priority=1,
        )

    def _cached_usage(self, started: datetime, fallback_used: bool) -> dict[str, Any]:
        return {
            "model_key": ModelTask.RESEARCH.value,
            "model": constants.RESEARCH_CACHE_MODEL,
            "resolved_model": constants.RESEARCH_CACHE_MODEL,
            "prompt_version": constants.RESEARCH_CACHE_PROMPT_VERSION,
            "routing_version": CACHE_ROUTING_VERSION,
            "fallback_used": fallback_used,
            "input_tokens": 0,
            "output_tokens": 0,
            "cost": 0.0,
            "duration_ms": max(0, int((self._clock() - started).total_seconds() * 1000)),
            "attempts": 0,
        }

    async def generate_research_with_cache(
        self,
        query_text: str,
        prompt: str,
        empty_result: Any,
        domain_priority: int = 0,
        ttl_hours: int | None = None,
        options: GenerationOptions | None = None,
    ) -> ResearchOutcome:
        """
        Serve research from the cache, the live provider, or an empty fallback.

        Args:
            query_text: Cache key text
            prompt: Live research prompt
            empty_result: Returned when both cache and live research fail
            domain_priority: Minimum cached entry priority; also stored on new entries
            ttl_hours: Lifetime of a newly stored entry
            options: Generation overrides for the live call

        Returns:
            Research data with usage, cache status and merged entry count
        """
        started = self._clock()
        domain_priority = max(0, int(domain_priority))

        if self.config.enabled:
            cached = self.lookup(query_text, domain_priority)
            if cached.cache_status != "miss":
                return ResearchOutcome(
                    data=cached.data,
                    cache_status=cached.cache_status,
                    cache_entries=len(cached.entries),
                    **self._cached_usage(started, fallback_used=False),
                )

        try:
            live = await self.client.generate_structured(ModelTask.RESEARCH, prompt, options)
        except Exception as e:
            logger.error(
                "Research cache miss and live research failed",
                query=normalize_query(query_text),
                error=str(e),
            )
            if self.config.queue_refresh_on_miss:
                self.queue_refresh(query_text, prompt, domain_priority, ttl_hours)
            return ResearchOutcome(
                data=empty_result,
                cache_status="miss",
                cache_entries=0,
                **self._cached_usage(started, fallback_used=True),
            )

        if self.config.enabled:
            self.upsert(
                query_text,
                live.data,
                source_model=live.resolved_model or live.model,
                domain_priority=domain_priority,
                ttl_hours=ttl_hours,
            )

        return ResearchOutcome(
            data=live.data,
            cache_status="miss",
            cache_entries=0,
            **live.model_dump(exclude={"data", "raw"}),
        )

    async def refresh_research_cache_entry(self, payload: dict[str, Any]) -> ResearchOutcome:
        """
        Run the live call for a queued refresh and store the result.

        Raises:
            pydantic.ValidationError: If the payload lacks queryText or prompt
            GenerationError: If the live call fails (the job is retried)
        """
        refresh = RefreshPayload.model_validate(payload)
        live = await self.client.generate_structured(ModelTask.RESEARCH, refresh.prompt)
        self.upsert(
            refresh.query_text,
            live.data,
            source_model=live.resolved_model or live.model,
            domain_priority=refresh.domain_priority,
            ttl_hours=refresh.ttl_hours,
        )
        logger.info("Research cache refreshed", query=normalize_query(refresh.query_text))
        return ResearchOutcome(
            data=live.data,
            cache_status="miss",
            cache_entries=0,
            **live.model_dump(exclude={"data", "raw"}),
        )

    def purge_expired(self, before: datetime | None = None) -> int:
        """Delete entries that expired before ``before`` (default: now)."""
        cutoff = before or self._clock()
        with self.store.session() as session:
            result = session.execute(
                delete(ResearchCacheEntry)
                .where(ResearchCacheEntry.expires_at < cutoff)
                .execution_options(synchronize_session=False)
            )
        logger.info("Expired research cache entries purged", count=result.rowcount)
        return result.rowcount
