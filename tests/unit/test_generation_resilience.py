"""Unit tests for the retry executor and the circuit breaker."""

import pytest

from content_factory.errors import (
    CircuitBreakerOpenError,
    ContentPolicyError,
    ProviderHTTPError,
    ProviderNetworkError,
    is_retryable,
)
from content_factory.generation.breaker import BreakerState, CircuitBreaker, CircuitBreakerRegistry
from content_factory.generation.retry import RetryExecutor, RetryPolicy
from content_factory.models.config import CircuitBreakerConfig


async def no_sleep(_: float) -> None:
    return None


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class Flaky:
    """Callable failing with the given errors before succeeding."""

    def __init__(self, *errors: BaseException, result: str = "ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.fixture
def breaker_config() -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_threshold=2, reset_timeout_seconds=10, half_open_max_attempts=2, success_threshold=2
    )


class TestRetryClassification:
    """Test which provider errors are retryable."""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503])
    def test_transient_statuses(self, status: int) -> None:
        assert is_retryable(ProviderHTTPError("openrouter", status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_permanent_statuses(self, status: int) -> None:
        assert is_retryable(ProviderHTTPError("openrouter", status)) is False

    def test_network_and_timeout(self) -> None:
        assert is_retryable(ProviderNetworkError("openrouter", "reset")) is True
        assert is_retryable(TimeoutError()) is True

    def test_policy_rejection(self) -> None:
        assert is_retryable(ContentPolicyError("blocked")) is False


class TestRetryExecutor:
    """Test bounded retries."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self) -> None:
        fn = Flaky(ProviderHTTPError("p", 503), ProviderNetworkError("p", "reset"))
        executor = RetryExecutor(RetryPolicy(max_attempts=3), sleep=no_sleep)

        result, attempts = await executor.run(fn)

        assert result == "ok"
        assert attempts == 3
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        fn = Flaky(*(ProviderHTTPError("p", 429) for _ in range(5)))
        executor = RetryExecutor(RetryPolicy(max_attempts=3), sleep=no_sleep)

        with pytest.raises(ProviderHTTPError):
            await executor.run(fn)
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self) -> None:
        fn = Flaky(ProviderHTTPError("p", 401))
        executor = RetryExecutor(RetryPolicy(max_attempts=3), sleep=no_sleep)

        with pytest.raises(ProviderHTTPError):
            await executor.run(fn)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_backoff_delays_are_capped(self) -> None:
        delays: list[float] = []

        async def record_sleep(seconds: float) -> None:
            delays.append(seconds)

        fn = Flaky(*(ProviderHTTPError("p", 500) for _ in range(3)))
        policy = RetryPolicy(max_attempts=4, base_delay=1.0, max_delay=3.0)
        await RetryExecutor(policy, sleep=record_sleep).run(fn)

        assert delays == [1.0, 2.0, 3.0]


class TestCircuitBreaker:
    """Test breaker state transitions."""

    def test_opens_after_threshold(self, breaker_config: CircuitBreakerConfig) -> None:
        breaker = CircuitBreaker("p", breaker_config, clock=FakeMonotonic())

        breaker.record_failure()
        assert breaker.state is BreakerState.CLOSED
        breaker.record_failure()

        assert breaker.state is BreakerState.OPEN
        assert breaker.allows_request() is False

    def test_success_while_closed_decays_failures(self, breaker_config: CircuitBreakerConfig) -> None:
        breaker = CircuitBreaker("p", breaker_config, clock=FakeMonotonic())

        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state is BreakerState.CLOSED
        assert breaker.failure_count == 1

    def test_half_open_then_closed(self, breaker_config: CircuitBreakerConfig) -> None:
        clock = FakeMonotonic()
        breaker = CircuitBreaker("p", breaker_config, clock=clock)
        breaker.record_failure()
        breaker.record_failure()

        clock.value += 10
        assert breaker.state is BreakerState.HALF_OPEN
        assert breaker.allows_request() is True

        breaker.record_success()
        breaker.record_success()
        assert breaker.state is BreakerState.CLOSED
        assert breaker.failure_count == 0

    def test_half_open_failures_reopen(self, breaker_config: CircuitBreakerConfig) -> None:
        clock = FakeMonotonic()
        breaker = CircuitBreaker("p", breaker_config, clock=clock)
        breaker.record_failure()
        breaker.record_failure()
        clock.value += 10
        assert breaker.state is BreakerState.HALF_OPEN

        breaker.record_failure()
        breaker.record_failure()

        assert breaker.state is BreakerState.OPEN
        assert breaker.retry_after() == pytest.approx(10)

    @pytest.mark.asyncio
    async def test_open_breaker_short_circuits(self, breaker_config: CircuitBreakerConfig) -> None:
        breaker = CircuitBreaker("p", breaker_config, clock=FakeMonotonic())
        breaker.record_failure()
        breaker.record_failure()
        fn = Flaky()

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            await breaker.call(fn)

        assert fn.calls == 0
        assert exc_info.value.provider == "p"

    @pytest.mark.asyncio
    async def test_non_retryable_errors_do_not_count(self, breaker_config: CircuitBreakerConfig) -> None:
        breaker = CircuitBreaker("p", breaker_config, clock=FakeMonotonic())

        for _ in range(3):
            with pytest.raises(ProviderHTTPError):
                await breaker.call(Flaky(ProviderHTTPError("p", 400)))

        assert breaker.state is BreakerState.CLOSED
        assert breaker.failure_count == 0

    def test_registry_reuses_breakers(self, breaker_config: CircuitBreakerConfig) -> None:
        registry = CircuitBreakerRegistry(breaker_config, clock=FakeMonotonic())

        first = registry.get("openrouter")
        first.record_failure()
        first.record_failure()

        assert registry.get("openrouter") is first
        assert registry.snapshot() == {"openrouter": "open"}
