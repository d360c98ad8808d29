"""Per-provider circuit breaker.

Closed breakers pass calls through. After ``failure_threshold`` failures the
breaker opens and short-circuits calls until ``reset_timeout`` elapses; it then
lets a limited number of trial calls through (half-open) and closes again after
``success_threshold`` successes. A success while closed decays the failure
count by one.
"""

import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from loguru import logger

from content_factory.errors import CircuitBreakerOpenError, is_retryable
from content_factory.models.config import CircuitBreakerConfig

T = TypeVar("T")


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """Breaker state for a single provider."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        counts_as_failure: Callable[[BaseException], bool] = is_retryable,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._counts_as_failure = counts_as_failure
        self._state = BreakerState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.half_open_attempts = 0
        self.opened_at: float | None = None
        self.total_requests = 0
        self.total_failures = 0

    @property
    def state(self) -> BreakerState:
        """Current state, moving open to half-open once the cool-down has elapsed."""
        if self._state is BreakerState.OPEN and self.opened_at is not None:
            if self._clock() - self.opened_at >= self.config.reset_timeout_seconds:
                self._transition(BreakerState.HALF_OPEN)
        return self._state

    def retry_after(self) -> float:
        if self._state is not BreakerState.OPEN or self.opened_at is None:
            return 0.0
        elapsed = self._clock() - self.opened_at
        return max(0.0, self.config.reset_timeout_seconds - elapsed)

    def allows_request(self) -> bool:
        state = self.state
        if state is BreakerState.CLOSED:
            return True
        if state is BreakerState.OPEN:
            return False
        return self.half_open_attempts < self.config.half_open_max_attempts

    def record_success(self) -> None:
        self.total_requests += 1
        self.success_count += 1
        if self._state is BreakerState.HALF_OPEN:
            self.half_open_attempts += 1
            if self.success_count >= self.config.success_threshold:
                self._transition(BreakerState.CLOSED)
        elif self._state is BreakerState.CLOSED:
            self.failure_count = max(0, self.failure_count - 1)

    def record_failure(self, error: BaseException | None = None) -> None:
        self.total_requests += 1
        self.total_failures += 1
        self.failure_count += 1
        self.success_count = 0

        if self._state is BreakerState.HALF_OPEN:
            self.half_open_attempts += 1
            if self.half_open_attempts >= self.config.half_open_max_attempts:
                self._transition(BreakerState.OPEN)
        elif self.failure_count >= self.config.failure_threshold:
            self._transition(BreakerState.OPEN)

        logger.warning(
            "Provider call failed",
            breaker=self.name,
            state=self._state.value,
            failure_count=self.failure_count,
            error=str(error) if error else None,
        )

    def reset(self) -> None:
        self._transition(BreakerState.CLOSED)

    def _transition(self, new_state: BreakerState) -> None:
        if new_state is self._state:
            return
        previous = self._state
        self._state = new_state
        if new_state is BreakerState.OPEN:
            self.opened_at = self._clock()
            self.half_open_attempts = 0
            self.success_count = 0
        elif new_state is BreakerState.HALF_OPEN:
            self.half_open_attempts = 0
            self.success_count = 0
        else:
            self.opened_at = None
            self.failure_count = 0
            self.success_count = 0
            self.half_open_attempts = 0
        logger.info(
            "Circuit breaker state change",
            breaker=self.name,
            previous=previous.value,
            state=new_state.value,
        )

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``fn`` through the breaker.

        Raises:
            CircuitBreakerOpenError: If the breaker rejects the call
        """
        if not self.allows_request():
            raise CircuitBreakerOpenError(self.name, self.retry_after())

        try:
            result = await fn()
        except Exception as e:
            if self._counts_as_failure(e):
                self.record_failure(e)
            raise
        self.record_success()
        return result


class CircuitBreakerRegistry:
    """Breakers keyed by provider name, owned by the process root."""

    def __init__(
        self,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, provider: str) -> CircuitBreaker:
        if provider not in self._breakers:
            self._breakers[provider] = CircuitBreaker(provider, self.config, clock=self._clock)
        return self._breakers[provider]

    def snapshot(self) -> dict[str, str]:
        return {name: breaker.state.value for name, breaker in self._breakers.items()}
