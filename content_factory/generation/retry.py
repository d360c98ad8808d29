"""Bounded retry policy and its executor.

The policy is a plain value object; the executor is the only place retries
happen, built on tenacity's ``AsyncRetrying``.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from content_factory import constants
from content_factory.errors import is_retryable
from content_factory.models.config import RetryConfig

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """Max attempts, exponential backoff curve and retryable predicate."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    max_attempts: int = Field(default=constants.DEFAULT_MAX_ATTEMPTS, ge=1)
    base_delay: float = Field(default=constants.DEFAULT_RETRY_BASE_DELAY, ge=0.0)
    max_delay: float = Field(default=constants.DEFAULT_RETRY_MAX_DELAY, ge=0.0)
    retryable: Callable[[BaseException], bool] = Field(default=is_retryable)

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
        )


class RetryExecutor:
    """Run an async callable under a retry policy."""

    def __init__(
        self,
        policy: RetryPolicy,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ):
        """
        Args:
            policy: Retry policy to enforce
            sleep: Optional async sleep replacement (tests pass a no-op)
        """
        self.policy = policy
        self._sleep = sleep

    def _retrying(self, label: str) -> AsyncRetrying:
        policy = self.policy

        def log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Retrying provider call",
                label=label,
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                error=str(exc),
            )

        kwargs: dict[str, Any] = {
            "stop": stop_after_attempt(policy.max_attempts),
            "wait": wait_exponential(
                multiplier=policy.base_delay, min=policy.base_delay, max=policy.max_delay
            ),
            "retry": retry_if_exception(policy.retryable),
            "reraise": True,
            "before_sleep": log_retry,
        }
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return AsyncRetrying(**kwargs)

    async def run(self, fn: Callable[[], Awaitable[T]], label: str = "") -> tuple[T, int]:
        """
        Execute ``fn`` until it succeeds, a non-retryable error occurs, or attempts run out.

        Args:
            fn: Zero-argument coroutine factory
            label: Context for log lines

        Returns:
            Tuple of (result, attempts made)

        Raises:
            The last exception raised by ``fn``
        """
        attempts = 0
        async for attempt in self._retrying(label):
            with attempt:
                attempts = attempt.retry_state.attempt_number
                result = await fn()
        return result, attempts
