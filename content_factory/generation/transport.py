"""Provider transports.

A transport turns one ``ChatRequest`` into one ``ChatResponse`` with a single
provider call. Retries, breakers and fallbacks live above this layer.
"""

import asyncio
import os
from typing import Any, Protocol

import aiohttp
from loguru import logger

from content_factory import constants
from content_factory.errors import ContentPolicyError, ProviderHTTPError, ProviderNetworkError
from content_factory.models.config import GenerationConfig
from content_factory.models.generation import ChatRequest, ChatResponse

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-lite"


class ChatTransport(Protocol):
    """One provider call per request."""

    name: str

    async def complete(self, request: ChatRequest) -> ChatResponse: ...


class OpenRouterTransport:
    """OpenAI-compatible chat completions over aiohttp."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_url: str = "https://localhost:3000",
        app_title: str = "Content Factory",
        timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY is required for the openrouter provider")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.app_url = app_url
        self.app_title = app_title
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: GenerationConfig, api_key: str | None = None) -> "OpenRouterTransport":
        return cls(
            api_key=api_key or os.getenv("OPENROUTER_API_KEY", ""),
            base_url=config.base_url,
            app_url=config.app_url,
            app_title=config.app_title,
            timeout_seconds=config.timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.app_url,
            "X-Title": self.app_title,
        }

    async def complete(self, request: ChatRequest) -> ChatResponse:
        """
        POST one chat completion.

        Raises:
            ProviderHTTPError: Non-2xx status or an error object in the body
            ProviderNetworkError: Connection failure or timeout
            ContentPolicyError: Completion stopped by the content filter
        """
        url = f"{self.base_url}/chat/completions"
        body = {
            "model": request.model,
            "messages": [message.model_dump() for message in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.post(url, json=body, headers=self._headers()) as response,
            ):
                if response.status >= 400:
                    text = await response.text()
                    raise ProviderHTTPError(self.name, response.status, text)
                data: dict[str, Any] = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderNetworkError(self.name, str(e) or type(e).__name__) from e

        return self._parse(data, request.model)

    def _parse(self, data: dict[str, Any], requested_model: str) -> ChatResponse:
        error = data.get("error")
        if error:
            code = error.get("code", 500) if isinstance(error, dict) else 500
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            status = code if isinstance(code, int) else 500
            raise ProviderHTTPError(self.name, status, message)

        choices = data.get("choices") or []
        if not choices:
            raise ProviderHTTPError(self.name, 502, "Response contained no choices")

        choice = choices[0]
        finish_reason = choice.get("finish_reason")
        if finish_reason == "content_filter":
            raise ContentPolicyError(f"{self.name} refused the request (content_filter)")

        usage = data.get("usage") or {}
        content = (choice.get("message") or {}).get("content") or ""

        logger.debug(
            "OpenRouter completion received",
            model=data.get("model", requested_model),
            finish_reason=finish_reason,
            prompt_tokens=usage.get("prompt_tokens", 0),
        )

        return ChatResponse(
            content=content,
            model=data.get("model") or requested_model,
            prompt_tokens=usage.get("prompt_tokens") or 0,
            completion_tokens=usage.get("completion_tokens") or 0,
            finish_reason=finish_reason,
        )


class GeminiTransport:
    """Google Gemini through the google-genai async client."""

    name = "gemini"

    def __init__(self, api_key: str, client: Any = None):
        """
        Args:
            api_key: Gemini API key
            client: Pre-built ``genai.Client`` (tests inject a double)
        """
        if client is None:
            if not api_key:
                raise ValueError("GEMINI_API_KEY is required for the gemini provider")
            from google import genai

            client = genai.Client(api_key=api_key)
        self.client = client

    @classmethod
    def from_env(cls) -> "GeminiTransport":
        return cls(api_key=os.getenv("GEMINI_API_KEY", ""))

    async def complete(self, request: ChatRequest) -> ChatResponse:
        """
        Generate content for the request's messages.

        Raises:
            ProviderHTTPError: API error with an HTTP code
            ProviderNetworkError: Connection failure or timeout
            ContentPolicyError: Prompt blocked by safety filters
        """
        from google.genai import errors, types

        system_parts = [m.content for m in request.messages if m.role == "system"]
        contents = "\n\n".join(m.content for m in request.messages if m.role != "system")

        generation_config = types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_tokens,
            system_instruction="\n\n".join(system_parts) or None,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=request.model,
                contents=contents,
                config=generation_config,
            )
        except errors.APIError as e:
            raise ProviderHTTPError(self.name, e.code or 500, e.message or str(e)) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderNetworkError(self.name, str(e) or type(e).__name__) from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ContentPolicyError(f"{self.name} blocked the prompt: {feedback.block_reason}")

        usage = getattr(response, "usage_metadata", None)
        finish_reason = None
        if response.candidates:
            reason = getattr(response.candidates[0], "finish_reason", None)
            finish_reason = str(reason) if reason is not None else None

        return ChatResponse(
            content=response.text or "",
            model=getattr(response, "model_version", None) or request.model,
            prompt_tokens=(usage.prompt_token_count or 0) if usage else 0,
            completion_tokens=(usage.candidates_token_count or 0) if usage else 0,
            finish_reason=finish_reason,
        )


def gemini_tier_models(env: dict[str, str] | None = None) -> dict[str, str]:
    """Every tier pinned to one Gemini model (GEMINI_MODEL or the default)."""
    env = dict(os.environ) if env is None else env
    model = (env.get("GEMINI_MODEL") or "").strip() or DEFAULT_GEMINI_MODEL
    return {tier: model for tier in ("FAST", "SEO", "QUALITY", "REVIEW", "RESEARCH", "FALLBACK")}
