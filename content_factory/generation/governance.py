"""Generation governance: an append-only record of every provider call."""

from typing import TYPE_CHECKING

from loguru import logger

from content_factory.models.db import GenerationCallRecord
from content_factory.models.generation import CallUsage
from content_factory.utils.hash import normalize_prompt_body, prompt_hash
from content_factory.utils.prompt_loader import RenderedPrompt

if TYPE_CHECKING:
    from content_factory.store import ContentStore


def record_generation_call(
    store: "ContentStore",
    stage: str,
    prompt: RenderedPrompt | str,
    usage: CallUsage,
    article_id: str | None = None,
    domain_id: str | None = None,
) -> GenerationCallRecord:
    """
    Persist the prompt, routing and usage of one generation call.

    Args:
        store: Content store
        stage: Pipeline stage that made the call
        prompt: Prompt sent (system and user text are recorded together)
        usage: Routing and usage metadata from the client
        article_id: Article the call was made for
        domain_id: Domain the call was made for

    Returns:
        The inserted record
    """
    body = normalize_prompt_body(prompt.body if isinstance(prompt, RenderedPrompt) else prompt)

    record = store.add_call_record(
        article_id=article_id,
        domain_id=domain_id,
        stage=stage,
        model_key=usage.model_key,
        model=usage.model,
        resolved_model=usage.resolved_model,
        prompt_version=usage.prompt_version,
        routing_version=usage.routing_version,
        fallback_used=usage.fallback_used,
        prompt_hash=prompt_hash(body),
        prompt_body=body,
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cost=usage.cost,
        duration_ms=usage.duration_ms,
        attempts=usage.attempts,
    )
    logger.debug(
        "Generation call recorded",
        stage=stage,
        model_key=usage.model_key,
        article_id=article_id,
        cost=round(usage.cost, 6),
    )
    return record
