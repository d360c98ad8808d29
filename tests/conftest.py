"""Shared pytest fixtures and configuration."""

import json
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from typing import Any

import pytest

from content_factory.generation.breaker import CircuitBreakerRegistry
from content_factory.generation.client import GenerationClient
from content_factory.generation.router import ModelRouter
from content_factory.jobs.queue import JobQueue
from content_factory.models.config import DatabaseConfig, PipelineConfig, WorkerConfig
from content_factory.models.db import Domain
from content_factory.models.generation import ChatRequest, ChatResponse
from content_factory.research.cache import ResearchCache
from content_factory.stages.common import StageContext
from content_factory.stages.voice import FALLBACK_VOICE_SEED
from content_factory.store import ContentStore
from content_factory.utils.prompt_loader import PromptLoader

TEST_TIER_MODELS = {
    "FAST": "test/fast",
    "SEO": "test/seo",
    "QUALITY": "test/quality",
    "REVIEW": "test/review",
    "RESEARCH": "test/research",
    "FALLBACK": "test/fallback",
}

ARTICLE_BODY = """# Best Hiking Boots

Fit matters most. A boot that pinches at mile two will ruin the whole trip, no matter how good the reviews looked when you ordered it late at night. Try them on in the afternoon. Feet swell as the day goes on, so a morning fitting lies to you about how much room your toes will really have on a long descent.

## Weight and support

Weight counts too. Heavy leather boots last for years and shrug off sharp rocks, but every extra ounce on your feet costs you energy on each of the thousands of steps you take between the trailhead and camp. Break them in slowly. Wear them around the house, then on short walks, then on a modest day hike before you trust them on anything serious.

In practice, the right pair feels boring. You stop thinking about your feet and start looking at the view, which is the whole point of going out there in the first place.
"""

Scripted = str | BaseException | Callable[[ChatRequest], str]


class FakeTransport:
    """Transport that replays scripted responses in order and records requests."""

    name = "fake"

    def __init__(self) -> None:
        self.script: list[Scripted] = []
        self.requests: list[ChatRequest] = []

    def queue(self, *items: Scripted) -> "FakeTransport":
        self.script.extend(items)
        return self

    def queue_json(self, *payloads: Any) -> "FakeTransport":
        return self.queue(*(json.dumps(payload) for payload in payloads))

    async def complete(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected provider call for model {request.model}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        content = item(request) if callable(item) else item
        return ChatResponse(
            content=content,
            model=request.model,
            prompt_tokens=120,
            completion_tokens=80,
            finish_reason="stop",
        )


class FrozenClock:
    """Manually advanced clock for the queue and the research cache."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def article_body() -> str:
    """Markdown body with varied sentence lengths and no banned patterns."""
    return ARTICLE_BODY


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """In-memory configuration with an instantly polling worker."""
    return PipelineConfig(
        database=DatabaseConfig(url="sqlite://"),
        worker=WorkerConfig(poll_interval_seconds=0, stale_check_interval_seconds=0),
    )


@pytest.fixture
def store(pipeline_config: PipelineConfig) -> Iterator[ContentStore]:
    """Fresh in-memory store per test."""
    content_store = ContentStore(pipeline_config.database.url)
    content_store.init_schema()
    yield content_store
    content_store.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def router() -> ModelRouter:
    return ModelRouter(tier_models=TEST_TIER_MODELS)


@pytest.fixture
def client(
    fake_transport: FakeTransport, router: ModelRouter, pipeline_config: PipelineConfig
) -> GenerationClient:
    """Generation client over the fake transport with retries that never sleep."""
    return GenerationClient(
        transport=fake_transport,
        router=router,
        breakers=CircuitBreakerRegistry(pipeline_config.generation.circuit_breaker),
        config=pipeline_config.generation,
        sleep=no_sleep,
    )


@pytest.fixture
def queue(store: ContentStore, pipeline_config: PipelineConfig, clock: FrozenClock) -> JobQueue:
    return JobQueue(store, pipeline_config.worker, clock=clock)


@pytest.fixture
def research_cache(
    store: ContentStore,
    client: GenerationClient,
    queue: JobQueue,
    pipeline_config: PipelineConfig,
    clock: FrozenClock,
) -> ResearchCache:
    return ResearchCache(store, client, queue, pipeline_config.research_cache, clock=clock)


@pytest.fixture
def prompts() -> PromptLoader:
    """Loader over the repository's prompts/ directory."""
    return PromptLoader()


@pytest.fixture
def stage_context(
    store: ContentStore,
    client: GenerationClient,
    queue: JobQueue,
    prompts: PromptLoader,
    pipeline_config: PipelineConfig,
    research_cache: ResearchCache,
) -> StageContext:
    return StageContext(
        store=store,
        client=client,
        queue=queue,
        prompts=prompts,
        config=pipeline_config,
        research_cache=research_cache,
    )


@pytest.fixture
def domain(store: ContentStore) -> Domain:
    """Domain without a stored voice persona."""
    return store.create_domain("trail.example", niche="outdoors", bucket="build", priority=3)


@pytest.fixture
def seeded_domain(store: ContentStore, domain: Domain) -> Domain:
    """Domain whose voice persona is already stored, so no persona call is made."""
    store.set_voice_seed(domain.id, FALLBACK_VOICE_SEED.model_dump(by_alias=True))
    return store.get_domain(domain.id)
