"""Model routing, resilience and provider access."""

from content_factory.generation.breaker import BreakerState, CircuitBreaker, CircuitBreakerRegistry
from content_factory.generation.client import GenerationClient, build_client
from content_factory.generation.governance import record_generation_call
from content_factory.generation.retry import RetryExecutor, RetryPolicy
from content_factory.generation.router import ModelRouter, tier_models_from_env
from content_factory.generation.structured import parse_json_response, repair_json
from content_factory.generation.transport import ChatTransport, GeminiTransport, OpenRouterTransport

__all__ = [
    "BreakerState",
    "ChatTransport",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "GeminiTransport",
    "GenerationClient",
    "ModelRouter",
    "OpenRouterTransport",
    "RetryExecutor",
    "RetryPolicy",
    "build_client",
    "parse_json_response",
    "record_generation_call",
    "repair_json",
    "tier_models_from_env",
]
