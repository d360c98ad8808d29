"""Generation client: routing, breaker, retry and fallback around one transport.

For each model in a task's chain the call runs as breaker(retry(transport)).
Retry exhaustion on a transient error moves to the next model. Permanent
errors and an open breaker propagate immediately.
"""

import os
import time
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from content_factory import constants
from content_factory.errors import AllModelsFailedError, StructuredOutputError, is_retryable
from content_factory.generation.breaker import CircuitBreakerRegistry
from content_factory.generation.retry import RetryExecutor, RetryPolicy
from content_factory.generation.router import ModelRouter, tier_models_from_env
from content_factory.generation.structured import parse_json_response
from content_factory.generation.transport import (
    ChatTransport,
    GeminiTransport,
    OpenRouterTransport,
    gemini_tier_models,
)
from content_factory.models.config import GenerationConfig
from content_factory.models.generation import (
    ChatMessage,
    ChatRequest,
    GenerationOptions,
    GenerationResult,
    ModelTask,
    StructuredResult,
)


class GenerationClient:
    """Single entry point for model calls."""

    def __init__(
        self,
        transport: ChatTransport,
        router: ModelRouter,
        breakers: CircuitBreakerRegistry,
        retry_policy: RetryPolicy | None = None,
        config: GenerationConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        """
        Args:
            transport: Provider transport
            router: Task to model router
            breakers: Breaker registry shared by the process
            retry_policy: Per-model retry policy
            config: Default temperature and max tokens
            sleep: Async sleep override for retry backoff (tests pass a no-op)
        """
        self.transport = transport
        self.router = router
        self.breakers = breakers
        self.config = config or GenerationConfig()
        self.executor = RetryExecutor(
            retry_policy or RetryPolicy.from_config(self.config.retry), sleep=sleep
        )

    def _messages(self, prompt: str, system_prompt: str | None) -> list[ChatMessage]:
        messages = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=prompt))
        return messages

    async def generate(
        self,
        task: ModelTask | str,
        prompt: str,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """
        Generate text for a logical task.

        Args:
            task: Logical task name
            prompt: User prompt
            options: Model, temperature, max tokens and system prompt overrides

        Returns:
            Text plus routing, usage and cost metadata

        Raises:
            AllModelsFailedError: Every model in the chain exhausted its retries
            GenerationError: A non-retryable provider error or an open breaker
        """
        task = ModelTask(task)
        options = options or GenerationOptions()
        chain = self.router.model_chain(task, options.model)
        messages = self._messages(prompt, options.system_prompt)
        breaker = self.breakers.get(self.transport.name)
        started = time.perf_counter()
        last_error: BaseException | None = None

        for index, model in enumerate(chain):
            request = ChatRequest(
                model=model,
                messages=messages,
                temperature=(
                    options.temperature if options.temperature is not None else self.config.temperature
                ),
                max_tokens=options.max_tokens or self.config.max_tokens,
            )
            label = f"{task.value}:{model}"

            async def attempt(request: ChatRequest = request, label: str = label):
                return await self.executor.run(lambda: self.transport.complete(request), label=label)

            try:
                response, attempts = await breaker.call(attempt)
            except Exception as e:
                if not is_retryable(e):
                    raise
                last_error = e
                logger.warning(
                    "Model exhausted retries, trying next in chain",
                    task=task.value,
                    model=model,
                    fallback_index=index,
                    error=str(e),
                )
                continue

            duration_ms = int((time.perf_counter() - started) * 1000)
            result = GenerationResult(
                content=response.content,
                model_key=task.value,
                model=model,
                resolved_model=response.model or model,
                prompt_version=options.prompt_version or self.router.prompt_version(task),
                routing_version=self.router.routing_version,
                fallback_used=index > 0,
                fallback_index=index,
                input_tokens=response.prompt_tokens,
                output_tokens=response.completion_tokens,
                cost=self.router.calculate_cost(
                    model, response.prompt_tokens, response.completion_tokens
                ),
                duration_ms=duration_ms,
                attempts=attempts,
            )
            logger.info(
                "Generation complete",
                task=task.value,
                model=model,
                resolved_model=result.resolved_model,
                fallback_used=result.fallback_used,
                attempts=attempts,
                tokens=result.total_tokens,
                cost=round(result.cost, 6),
            )
            return result

        raise AllModelsFailedError(task.value, chain, last_error)

    async def generate_structured(
        self,
        task: ModelTask | str,
        prompt: str,
        options: GenerationOptions | None = None,
        schema: type[BaseModel] | None = None,
    ) -> StructuredResult:
        """
        Generate and parse a JSON response.

        Args:
            task: Logical task name
            prompt: User prompt
            options: Generation overrides
            schema: Optional pydantic model the parsed JSON must validate against

        Raises:
            StructuredOutputError: Output is not JSON or fails the schema; carries
                the raw text and the call usage
        """
        options = options or GenerationOptions()
        system_prompt = (
            f"{options.system_prompt}\n\n{constants.JSON_ONLY_INSTRUCTION}"
            if options.system_prompt
            else constants.JSON_ONLY_INSTRUCTION
        )
        result = await self.generate(
            task, prompt, options.model_copy(update={"system_prompt": system_prompt})
        )

        try:
            data: Any = parse_json_response(result.content)
        except StructuredOutputError as e:
            e.usage = result
            raise

        if schema is not None:
            try:
                data = schema.model_validate(data)
            except ValidationError as e:
                raise StructuredOutputError(
                    f"Response did not match {schema.__name__}: {e}", result.content, usage=result
                ) from e

        return StructuredResult(
            **result.model_dump(exclude={"content"}), data=data, raw=result.content
        )


def build_client(
    config: GenerationConfig,
    transport: ChatTransport | None = None,
    breakers: CircuitBreakerRegistry | None = None,
) -> GenerationClient:
    """
    Build the process-wide generation client from configuration.

    Args:
        config: Generation configuration
        transport: Explicit transport (tests pass a fake)
        breakers: Breaker registry; a new one is created when omitted

    Returns:
        Configured GenerationClient
    """
    if config.provider == "gemini":
        tier_models = gemini_tier_models(dict(os.environ))
        transport = transport or GeminiTransport.from_env()
    else:
        tier_models = tier_models_from_env()
        transport = transport or OpenRouterTransport.from_config(config)

    router = ModelRouter(tier_models=tier_models, overrides=config.model_overrides)
    logger.info(
        "Generation client ready",
        provider=config.provider,
        transport=transport.name,
        routing_version=router.routing_version,
    )
    return GenerationClient(
        transport=transport,
        router=router,
        breakers=breakers or CircuitBreakerRegistry(config.circuit_breaker),
        config=config,
    )
