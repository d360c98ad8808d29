"""Unit tests for the Gemini transport with a mocked google-genai client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors

from content_factory.errors import ContentPolicyError, ProviderHTTPError, is_retryable
from content_factory.generation.transport import (
    DEFAULT_GEMINI_MODEL,
    GeminiTransport,
    OpenRouterTransport,
    gemini_tier_models,
)
from content_factory.models.generation import ChatMessage, ChatRequest


def make_request() -> ChatRequest:
    return ChatRequest(
        model="gemini-2.5-flash-lite",
        messages=[
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="Name one boot brand."),
        ],
        temperature=0.3,
        max_tokens=256,
    )


def make_client(response=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=error)
    return client


def gemini_response(text: str = "Lowa", block_reason: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(finish_reason="STOP")],
        usage_metadata=SimpleNamespace(prompt_token_count=12, candidates_token_count=3),
        prompt_feedback=SimpleNamespace(block_reason=block_reason) if block_reason else None,
        model_version="gemini-2.5-flash-lite-001",
    )


class TestGeminiTransport:
    """Test request mapping and error translation."""

    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiTransport(api_key="")

    @pytest.mark.asyncio
    async def test_complete(self) -> None:
        client = make_client(gemini_response())
        transport = GeminiTransport(api_key="", client=client)

        response = await transport.complete(make_request())

        assert response.content == "Lowa"
        assert response.model == "gemini-2.5-flash-lite-001"
        assert (response.prompt_tokens, response.completion_tokens) == (12, 3)
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-lite"
        assert kwargs["contents"] == "Name one boot brand."
        assert kwargs["config"].system_instruction == "Be brief."
        assert kwargs["config"].max_output_tokens == 256

    @pytest.mark.asyncio
    async def test_blocked_prompt(self) -> None:
        transport = GeminiTransport(api_key="", client=make_client(gemini_response("", block_reason="SAFETY")))

        with pytest.raises(ContentPolicyError, match="SAFETY"):
            await transport.complete(make_request())

    @pytest.mark.asyncio
    async def test_api_error_mapped(self) -> None:
        error = errors.ClientError(
            429, {"error": {"code": 429, "message": "quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )
        transport = GeminiTransport(api_key="", client=make_client(error=error))

        with pytest.raises(ProviderHTTPError) as exc_info:
            await transport.complete(make_request())

        assert exc_info.value.status == 429
        assert is_retryable(exc_info.value) is True


class TestTransportConfig:
    """Test construction helpers."""

    def test_openrouter_requires_key(self) -> None:
        with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
            OpenRouterTransport(api_key="")

    def test_gemini_tier_models(self) -> None:
        assert set(gemini_tier_models({}).values()) == {DEFAULT_GEMINI_MODEL}
        assert gemini_tier_models({"GEMINI_MODEL": "gemini-pro"})["REVIEW"] == "gemini-pro"
