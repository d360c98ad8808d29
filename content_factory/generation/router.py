"""Model router: task-to-model mapping, fallback chains and pricing.

Each logical task resolves to exactly one default model. A routing profile adds
the fallback tasks whose models are tried next and the prompt version recorded
for governance. Models come from tier environment variables so a deployment can
swap providers without code changes.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

from content_factory import constants
from content_factory.models.generation import ModelTask


class ModelPricing(BaseModel):
    """Price per 1K tokens plus an optional flat fee per request."""

    input: float = Field(ge=0.0)
    output: float = Field(ge=0.0)
    per_request_fee: float = Field(default=0.0, ge=0.0)


class RoutingProfile(BaseModel):
    fallback_tasks: list[ModelTask] = Field(default_factory=list)
    prompt_version: str


MODEL_PRICING: dict[str, ModelPricing] = {
    "x-ai/grok-3-fast": ModelPricing(input=0.005, output=0.025),
    "anthropic/claude-sonnet-4-5-20250929": ModelPricing(input=0.003, output=0.015),
    "anthropic/claude-3-5-haiku-20241022": ModelPricing(input=0.0008, output=0.004),
    "perplexity/sonar-reasoning": ModelPricing(input=0.001, output=0.005, per_request_fee=0.01),
}

DEFAULT_PRICING = ModelPricing(
    input=constants.DEFAULT_PRICE_PER_1K_INPUT,
    output=constants.DEFAULT_PRICE_PER_1K_OUTPUT,
)

ROUTING_REGISTRY: dict[ModelTask, RoutingProfile] = {
    ModelTask.KEYWORD_RESEARCH: RoutingProfile(
        fallback_tasks=[ModelTask.SEO_OPTIMIZE], prompt_version="keyword.v1"
    ),
    ModelTask.DOMAIN_CLASSIFY: RoutingProfile(
        fallback_tasks=[ModelTask.SEO_OPTIMIZE], prompt_version="domain-classify.v1"
    ),
    ModelTask.TITLE_GENERATION: RoutingProfile(
        fallback_tasks=[ModelTask.SEO_OPTIMIZE], prompt_version="title.v1"
    ),
    ModelTask.SEO_OPTIMIZE: RoutingProfile(
        fallback_tasks=[ModelTask.HUMANIZATION], prompt_version="seo.v1"
    ),
    ModelTask.OUTLINE_GENERATION: RoutingProfile(
        fallback_tasks=[ModelTask.HUMANIZATION, ModelTask.SEO_OPTIMIZE],
        prompt_version="outline.v1",
    ),
    ModelTask.DRAFT_GENERATION: RoutingProfile(
        fallback_tasks=[ModelTask.HUMANIZATION, ModelTask.SEO_OPTIMIZE],
        prompt_version="draft.v1",
    ),
    ModelTask.HUMANIZATION: RoutingProfile(
        fallback_tasks=[ModelTask.DRAFT_GENERATION, ModelTask.SEO_OPTIMIZE],
        prompt_version="humanize.v2",
    ),
    ModelTask.BULK_OPERATIONS: RoutingProfile(
        fallback_tasks=[ModelTask.KEYWORD_RESEARCH, ModelTask.SEO_OPTIMIZE],
        prompt_version="bulk.v1",
    ),
    ModelTask.VOICE_SEED_GENERATION: RoutingProfile(
        fallback_tasks=[ModelTask.DRAFT_GENERATION, ModelTask.SEO_OPTIMIZE],
        prompt_version="voice-seed.v1",
    ),
    ModelTask.AI_REVIEW: RoutingProfile(
        fallback_tasks=[ModelTask.HUMANIZATION, ModelTask.SEO_OPTIMIZE],
        prompt_version="ai-review.v1",
    ),
    ModelTask.RESEARCH: RoutingProfile(
        fallback_tasks=[ModelTask.SEO_OPTIMIZE], prompt_version="research.v1"
    ),
    ModelTask.BLOCK_CONTENT: RoutingProfile(
        fallback_tasks=[ModelTask.DRAFT_GENERATION, ModelTask.HUMANIZATION],
        prompt_version="block-content.v1",
    ),
}

# Tier each task draws its default model from.
TASK_TIERS: dict[ModelTask, str] = {
    ModelTask.KEYWORD_RESEARCH: "FAST",
    ModelTask.DOMAIN_CLASSIFY: "FAST",
    ModelTask.SEO_OPTIMIZE: "SEO",
    ModelTask.TITLE_GENERATION: "FAST",
    ModelTask.OUTLINE_GENERATION: "QUALITY",
    ModelTask.DRAFT_GENERATION: "QUALITY",
    ModelTask.HUMANIZATION: "QUALITY",
    ModelTask.BULK_OPERATIONS: "FAST",
    ModelTask.VOICE_SEED_GENERATION: "QUALITY",
    ModelTask.AI_REVIEW: "REVIEW",
    ModelTask.RESEARCH: "RESEARCH",
    ModelTask.BLOCK_CONTENT: "QUALITY",
}


def _env_model(env: Mapping[str, str], key: str, fallback: str) -> str:
    value = env.get(key)
    if not isinstance(value, str):
        return fallback
    trimmed = value.strip()
    return trimmed if trimmed else fallback


def tier_models_from_env(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Read OPENROUTER_MODEL_<TIER> variables, defaulting to automatic selection."""
    env = os.environ if env is None else env
    auto = constants.DEFAULT_AUTO_MODEL
    return {
        "FAST": _env_model(env, "OPENROUTER_MODEL_FAST", auto),
        "SEO": _env_model(env, "OPENROUTER_MODEL_SEO", auto),
        "QUALITY": _env_model(env, "OPENROUTER_MODEL_QUALITY", auto),
        "REVIEW": _env_model(env, "OPENROUTER_MODEL_REVIEW", constants.DEFAULT_REVIEW_MODEL),
        "RESEARCH": _env_model(env, "OPENROUTER_MODEL_RESEARCH", auto),
        "FALLBACK": _env_model(env, "OPENROUTER_MODEL_FALLBACK", auto),
    }


class ModelRouter:
    """Resolve logical tasks to concrete models."""

    def __init__(
        self,
        tier_models: Mapping[str, str] | None = None,
        overrides: Mapping[str, str] | None = None,
        pricing: Mapping[str, ModelPricing] | None = None,
    ):
        """
        Args:
            tier_models: Model per tier (FAST, SEO, QUALITY, REVIEW, RESEARCH, FALLBACK)
            overrides: Task name to model overrides, e.g. from configuration
            pricing: Price table; defaults to the built-in table
        """
        self.tier_models = dict(tier_models or tier_models_from_env())
        self.overrides = {ModelTask(k): v for k, v in (overrides or {}).items()}
        self.pricing = dict(MODEL_PRICING if pricing is None else pricing)
        self.routing_version = constants.MODEL_ROUTING_VERSION

    @property
    def emergency_fallback(self) -> str:
        return self.tier_models.get("FALLBACK", constants.DEFAULT_AUTO_MODEL)

    def resolve(self, task: ModelTask | str) -> str:
        """Default model for a task."""
        task = ModelTask(task)
        if task in self.overrides:
            return self.overrides[task]
        return self.tier_models.get(TASK_TIERS[task], constants.DEFAULT_AUTO_MODEL)

    def profile(self, task: ModelTask | str) -> RoutingProfile:
        return ROUTING_REGISTRY[ModelTask(task)]

    def prompt_version(self, task: ModelTask | str) -> str:
        return self.profile(task).prompt_version

    def model_chain(self, task: ModelTask | str, override: str | None = None) -> list[str]:
        """
        Ordered, de-duplicated models to try for a task.

        The explicit override (or the task default) comes first, then the
        defaults of the fallback tasks, then the emergency fallback.
        """
        task = ModelTask(task)
        configured = [override or self.resolve(task)]
        configured.extend(self.resolve(fallback) for fallback in self.profile(task).fallback_tasks)
        configured.append(self.emergency_fallback)

        chain: list[str] = []
        for model in configured:
            if model not in chain:
                chain.append(model)
        return chain

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Deterministic cost in USD from the static price table."""
        pricing = self.pricing.get(model, DEFAULT_PRICING)
        return (
            input_tokens * pricing.input / 1000
            + output_tokens * pricing.output / 1000
            + pricing.per_request_fee
        )
