"""Generation request/response models."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ModelTask(str, Enum):
    """Logical task names routed to concrete models."""

    KEYWORD_RESEARCH = "keywordResearch"
    DOMAIN_CLASSIFY = "domainClassify"
    SEO_OPTIMIZE = "seoOptimize"
    TITLE_GENERATION = "titleGeneration"
    OUTLINE_GENERATION = "outlineGeneration"
    DRAFT_GENERATION = "draftGeneration"
    HUMANIZATION = "humanization"
    BULK_OPERATIONS = "bulkOperations"
    VOICE_SEED_GENERATION = "voiceSeedGeneration"
    AI_REVIEW = "aiReview"
    RESEARCH = "research"
    BLOCK_CONTENT = "blockContent"


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Provider-neutral chat completion request."""

    model: str
    messages: list[ChatMessage]
    temperature: float = Field(ge=0.0, le=2.0)
    max_tokens: int = Field(ge=1)


class ChatResponse(BaseModel):
    """Provider-neutral chat completion response."""

    content: str
    model: str
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    finish_reason: str | None = None


class GenerationOptions(BaseModel):
    """Per-call overrides."""

    model: str | None = Field(default=None, description="Explicit model, e.g. an escalation path")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    system_prompt: str | None = None
    prompt_version: str | None = None


class CallUsage(BaseModel):
    """Routing and usage metadata shared by all generation results."""

    model_config = ConfigDict(protected_namespaces=())

    model_key: str = Field(description="Logical task name")
    model: str = Field(description="Model requested from the provider")
    resolved_model: str = Field(description="Model the provider reports having used")
    prompt_version: str
    routing_version: str
    fallback_used: bool = False
    fallback_index: int = Field(default=0, ge=0)
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)
    duration_ms: int = Field(default=0, ge=0)
    attempts: int = Field(default=1, ge=0, description="Provider calls made for the winning model")

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class GenerationResult(CallUsage):
    """Plain text generation result."""

    content: str


class StructuredResult(CallUsage):
    """Parsed JSON generation result."""

    data: Any
    raw: str = ""
