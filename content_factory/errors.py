"""Exception hierarchy for the content factory."""

import asyncio
from typing import Any

import aiohttp

RETRYABLE_STATUS_CODES = {408, 429}


class ContentFactoryError(Exception):
    """Base exception for all content factory errors."""


# =============================================================================
# Generation errors
# =============================================================================


class GenerationError(ContentFactoryError):
    """Base exception for provider and model routing failures."""


class ProviderHTTPError(GenerationError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status: int, body: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider} API error: {status} - {body[:300]}")


class ProviderNetworkError(GenerationError):
    """Connection failure or timeout talking to a provider."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider} network error: {message}")


class ContentPolicyError(GenerationError):
    """Provider refused the request on content policy grounds."""


class CircuitBreakerOpenError(GenerationError):
    """Provider breaker is open; the call was short-circuited."""

    def __init__(self, provider: str, retry_after: float):
        self.provider = provider
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker open for {provider}, retry in {retry_after:.1f}s")


class AllModelsFailedError(GenerationError):
    """Every model in a task's fallback chain failed."""

    def __init__(self, task: str, attempted: list[str], last_error: BaseException | None = None):
        self.task = task
        self.attempted = attempted
        self.last_error = last_error
        message = f'All configured models failed for task "{task}" (attempted: {", ".join(attempted)})'
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)


class StructuredOutputError(GenerationError):
    """Structured generation returned text that is not valid JSON for the schema.

    ``usage`` carries the call metadata when the provider call itself succeeded,
    so the call can still be recorded.
    """

    def __init__(self, message: str, raw: str, usage: Any = None):
        self.raw = raw
        self.usage = usage
        super().__init__(message)


def is_retryable(error: BaseException) -> bool:
    """Classify an exception as transient.

    Rate limiting, server-side 5xx and network/timeout failures are retryable.
    Bad requests, auth failures and policy rejections are not.
    """
    if isinstance(error, ProviderHTTPError):
        return error.status in RETRYABLE_STATUS_CODES or error.status >= 500
    if isinstance(error, ProviderNetworkError):
        return True
    if isinstance(error, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return True
    return False


def should_retry_job(error: BaseException) -> bool:
    """Whether a job that raised ``error`` should go back to the queue.

    Provider rejections such as a bad request or a refused key would fail the
    same way again, so they end the job. Malformed output and an open
    breaker are worth another run later.
    """
    if isinstance(error, AllModelsFailedError):
        return error.last_error is None or is_retryable(error.last_error)
    if isinstance(error, (StructuredOutputError, CircuitBreakerOpenError)):
        return True
    if isinstance(error, GenerationError):
        return is_retryable(error)
    return True


# =============================================================================
# Pipeline errors
# =============================================================================


class PipelineError(ContentFactoryError):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, stage: str, recoverable: bool = False):
        self.stage = stage
        self.recoverable = recoverable
        super().__init__(message)


class CriticalError(PipelineError):
    """Critical error that stops the worker."""

    def __init__(self, message: str, stage: str):
        super().__init__(message, stage, recoverable=False)


class RecoverableError(PipelineError):
    """Recoverable error that allows the job to be retried."""

    def __init__(self, message: str, stage: str):
        super().__init__(message, stage, recoverable=True)


class StageInputError(RecoverableError):
    """Article, domain or content required by a stage is missing."""


class QualityGateError(RecoverableError):
    """Generated text failed a quality gate (banned patterns, low burstiness, too short)."""

    def __init__(self, message: str, stage: str, violations: list[str] | None = None):
        self.violations = violations or []
        super().__init__(message, stage)


class JobNotFoundError(ContentFactoryError):
    """Referenced pipeline job does not exist."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")
