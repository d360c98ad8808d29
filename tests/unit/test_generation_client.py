"""Unit tests for the generation client and structured output handling."""

import pytest
from pydantic import BaseModel

from content_factory import constants
from content_factory.errors import (
    AllModelsFailedError,
    CircuitBreakerOpenError,
    ProviderHTTPError,
    StructuredOutputError,
)
from content_factory.generation.client import GenerationClient
from content_factory.generation.structured import parse_json_response, repair_json
from content_factory.models.generation import GenerationOptions, ModelTask


class Verdict(BaseModel):
    verdict: str
    score: int


class TestGenerate:
    """Test text generation through the model chain."""

    @pytest.mark.asyncio
    async def test_first_model_succeeds(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue("hello world")

        result = await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")

        assert result.content == "hello world"
        assert result.model == "test/fast"
        assert result.model_key == "keywordResearch"
        assert result.prompt_version == "keyword.v1"
        assert result.fallback_used is False
        assert result.attempts == 1
        assert result.input_tokens == 120
        assert result.output_tokens == 80
        assert result.cost == pytest.approx(120 * 0.01 / 1000 + 80 * 0.03 / 1000)

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue(ProviderHTTPError("fake", 503), "recovered")

        result = await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")

        assert result.content == "recovered"
        assert result.attempts == 2
        assert result.fallback_used is False

    @pytest.mark.asyncio
    async def test_falls_back_after_retry_exhaustion(
        self, client: GenerationClient, fake_transport
    ) -> None:
        fake_transport.queue(*(ProviderHTTPError("fake", 429) for _ in range(3)), "from fallback")

        result = await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")

        assert result.content == "from fallback"
        assert result.model == "test/seo"
        assert result.fallback_used is True
        assert result.fallback_index == 1
        assert [r.model for r in fake_transport.requests] == ["test/fast"] * 3 + ["test/seo"]

    @pytest.mark.asyncio
    async def test_non_retryable_error_skips_chain(
        self, client: GenerationClient, fake_transport
    ) -> None:
        fake_transport.queue(ProviderHTTPError("fake", 401, "bad key"))

        with pytest.raises(ProviderHTTPError):
            await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")
        assert len(fake_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_all_models_failed(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue(*(ProviderHTTPError("fake", 500) for _ in range(9)))

        with pytest.raises(AllModelsFailedError) as exc_info:
            await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")

        assert exc_info.value.attempted == ["test/fast", "test/seo", "test/fallback"]
        assert len(fake_transport.requests) == 9

    @pytest.mark.asyncio
    async def test_open_breaker_fails_fast(self, client: GenerationClient, fake_transport) -> None:
        breaker = client.breakers.get("fake")
        for _ in range(breaker.config.failure_threshold):
            breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await client.generate(ModelTask.KEYWORD_RESEARCH, "prompt")
        assert fake_transport.requests == []

    @pytest.mark.asyncio
    async def test_options_reach_the_request(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue("ok")
        options = GenerationOptions(
            model="test/escalation", temperature=0.1, max_tokens=1200, system_prompt="Be brief."
        )

        await client.generate(ModelTask.AI_REVIEW, "review this", options)

        request = fake_transport.requests[0]
        assert request.model == "test/escalation"
        assert request.temperature == 0.1
        assert request.max_tokens == 1200
        assert [m.role for m in request.messages] == ["system", "user"]
        assert request.messages[0].content == "Be brief."


class TestGenerateStructured:
    """Test JSON generation."""

    @pytest.mark.asyncio
    async def test_parses_fenced_json(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue('```json\n{"verdict": "approve", "score": 9}\n```')

        result = await client.generate_structured(ModelTask.AI_REVIEW, "prompt", schema=Verdict)

        assert result.data == Verdict(verdict="approve", score=9)
        assert result.raw.startswith("```json")
        system = fake_transport.requests[0].messages[0]
        assert system.role == "system"
        assert system.content.endswith(constants.JSON_ONLY_INSTRUCTION)

    @pytest.mark.asyncio
    async def test_invalid_json_carries_usage(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue("Sure! Here is the JSON you asked for")

        with pytest.raises(StructuredOutputError) as exc_info:
            await client.generate_structured(ModelTask.AI_REVIEW, "prompt")

        assert exc_info.value.raw == "Sure! Here is the JSON you asked for"
        assert exc_info.value.usage is not None
        assert exc_info.value.usage.model == "test/review"

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, client: GenerationClient, fake_transport) -> None:
        fake_transport.queue('{"verdict": "approve"}')

        with pytest.raises(StructuredOutputError, match="Verdict"):
            await client.generate_structured(ModelTask.AI_REVIEW, "prompt", schema=Verdict)


class TestJsonRepair:
    """Test strict parsing and best-effort repair."""

    def test_strict_parse_rejects_prose(self) -> None:
        with pytest.raises(StructuredOutputError):
            parse_json_response("not json")

    def test_strict_parse_accepts_fences(self) -> None:
        assert parse_json_response('```\n{"a": 1}\n```') == {"a": 1}

    def test_repair_extracts_outer_object(self) -> None:
        raw = 'Here you go: {"title": "Boots", "metaDescription": "Pick boots"} Hope it helps!'

        assert repair_json(raw) == {"title": "Boots", "metaDescription": "Pick boots"}

    def test_repair_escapes_raw_newlines(self) -> None:
        raw = '{"title": "Line one\nline two", "count": 2}'

        assert repair_json(raw) == {"title": "Line one\nline two", "count": 2}

    def test_repair_salvages_named_fields(self) -> None:
        raw = '{"title": "Best Boots", "metaDescription": "Fit first", "outline": [{"heading": '

        repaired = repair_json(raw, ["title", "metaDescription", "missing"])

        assert repaired == {"title": "Best Boots", "metaDescription": "Fit first"}

    def test_repair_gives_up(self) -> None:
        assert repair_json("no braces at all", ["title"]) is None
        assert repair_json('{"broken": ') is None
