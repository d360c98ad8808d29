"""BDD step definitions for the research cache."""

import asyncio

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from content_factory.errors import ProviderHTTPError
from content_factory.jobs.queue import JobQueue
from content_factory.models.jobs import JobType
from content_factory.research.cache import ResearchCache

# Load scenarios from feature file
scenarios("features/research_cache.feature")

EMPTY = {"facts": [], "summary": ""}
LIVE_FACTS = {"facts": ["Waterproof boots run warm in summer"], "summary": "Pick by season."}


@pytest.fixture
def research_result() -> dict:
    """Storage for research outcomes."""
    return {}


# Given steps


@given(parsers.parse('the cache holds research for "{query}"'))
def cached_research(research_cache: ResearchCache, query: str) -> None:
    research_cache.upsert(query, {"facts": [f"cached: {query}"]}, "test/research", domain_priority=3)


@given("the model will return research facts")
def model_returns_facts(fake_transport) -> None:
    fake_transport.queue_json(LIVE_FACTS)


@given("the model will reject the request")
def model_rejects(fake_transport) -> None:
    fake_transport.queue(ProviderHTTPError("fake", 400, "bad request"))


# When steps


@when(parsers.parse('research is requested for "{query}"'))
def request_research(research_cache: ResearchCache, research_result: dict, query: str) -> None:
    research_result["outcome"] = asyncio.run(
        research_cache.generate_research_with_cache(
            query_text=query,
            prompt=f"Research {query}",
            empty_result=EMPTY,
            domain_priority=3,
        )
    )


# Then steps


@then(parsers.parse('the cache status is "{status}"'))
def cache_status(research_result: dict, status: str) -> None:
    assert research_result["outcome"].cache_status == status


@then("no model was called")
def no_model_call(fake_transport) -> None:
    assert fake_transport.requests == []


@then(parsers.parse('the outcome reports model "{model}" with {attempts:d} attempts'))
def outcome_model(research_result: dict, model: str, attempts: int) -> None:
    outcome = research_result["outcome"]
    assert outcome.model == model
    assert outcome.attempts == attempts
    assert outcome.cost == 0.0


@then("the research data contains the model's facts")
def live_facts(research_result: dict) -> None:
    assert research_result["outcome"].data == LIVE_FACTS


@then(parsers.parse('a later request for "{query}" is a cache hit'))
def later_hit(research_cache: ResearchCache, query: str) -> None:
    lookup = research_cache.lookup(query, domain_priority=3)
    assert lookup.cache_status == "hit"
    assert lookup.data == LIVE_FACTS


@then("the research data is empty")
def empty_research(research_result: dict) -> None:
    outcome = research_result["outcome"]
    assert outcome.data == EMPTY
    assert outcome.fallback_used is True


@then(parsers.parse('a refresh job is queued for "{query}" with priority {priority:d}'))
def refresh_queued(queue: JobQueue, query: str, priority: int) -> None:
    [job] = queue.list_jobs(job_type=JobType.REFRESH_RESEARCH_CACHE)
    assert job.priority == priority
    assert job.payload["queryText"] == query
    assert job.payload["domainPriority"] == 3
