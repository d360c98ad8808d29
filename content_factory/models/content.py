"""Content data models: enums, AI response schemas and per-type configs."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model that accepts camelCase keys from AI JSON and snake_case from code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StrictCamelModel(CamelModel):
    """Camel-case model that rejects unknown keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ArticleStatus(str, Enum):
    """Article lifecycle status."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    FAILED = "failed"


class ContentType(str, Enum):
    """Closed set of page formats, resolved once from the target keyword."""

    ARTICLE = "article"
    COMPARISON = "comparison"
    CALCULATOR = "calculator"
    COST_GUIDE = "cost_guide"
    LEAD_CAPTURE = "lead_capture"
    HEALTH_DECISION = "health_decision"
    CHECKLIST = "checklist"
    FAQ = "faq"
    REVIEW = "review"
    WIZARD = "wizard"
    CONFIGURATOR = "configurator"
    QUIZ = "quiz"
    SURVEY = "survey"
    ASSESSMENT = "assessment"
    INTERACTIVE_INFOGRAPHIC = "interactive_infographic"
    INTERACTIVE_MAP = "interactive_map"

    @property
    def is_short_form(self) -> bool:
        """Interactive formats exempt from the draft minimum length."""
        return self in SHORT_FORM_TYPES

    @property
    def is_interactive_flow(self) -> bool:
        return self in {
            ContentType.WIZARD,
            ContentType.CONFIGURATOR,
            ContentType.QUIZ,
            ContentType.SURVEY,
            ContentType.ASSESSMENT,
        }


SHORT_FORM_TYPES = frozenset(
    {
        ContentType.CALCULATOR,
        ContentType.WIZARD,
        ContentType.CONFIGURATOR,
        ContentType.QUIZ,
        ContentType.SURVEY,
        ContentType.ASSESSMENT,
        ContentType.INTERACTIVE_INFOGRAPHIC,
        ContentType.INTERACTIVE_MAP,
    }
)


class YmylLevel(str, Enum):
    """Your-money-or-your-life sensitivity of a topic."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


# =============================================================================
# Research
# =============================================================================


class ResearchStatistic(CamelModel):
    stat: str
    source: str = ""
    date: str = ""
    url: str | None = None


class ResearchQuote(CamelModel):
    quote: str
    author: str = ""
    source: str = ""


class ResearchData(CamelModel):
    """Structured findings stored on the article by the research stage."""

    statistics: list[ResearchStatistic] = Field(default_factory=list)
    quotes: list[ResearchQuote] = Field(default_factory=list)
    competitor_hooks: list[str] = Field(default_factory=list)
    recent_developments: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "ResearchData":
        return cls()


# =============================================================================
# Outline and per-type configs
# =============================================================================


class OutlineSubheading(CamelModel):
    heading: str
    level: int = 3


class OutlineSection(CamelModel):
    heading: str
    level: int = 2
    subheadings: list[OutlineSubheading] = Field(default_factory=list)
    notes: str | None = None


class OutlineFaq(CamelModel):
    question: str
    answer_hint: str = ""


class CalculatorInput(StrictCamelModel):
    id: str
    label: str
    type: Literal["number", "select", "range"]
    default: float | None = None
    min: float | None = None
    max: float | None = None
    step: float | None = None
    options: list[dict[str, Any]] | None = None


class CalculatorOutput(StrictCamelModel):
    id: str
    label: str
    format: Literal["currency", "percent", "number"]
    decimals: int | None = Field(default=None, ge=0, le=10)


class CalculatorConfig(StrictCamelModel):
    """Inputs, outputs and formula for a calculator page."""

    inputs: list[CalculatorInput] = Field(min_length=1)
    outputs: list[CalculatorOutput] = Field(min_length=1)
    formula: str | None = None
    assumptions: list[str] | None = None
    methodology: str | None = None


class ComparisonOption(StrictCamelModel):
    name: str
    url: str | None = None
    badge: str | None = None
    scores: dict[str, float | str]


class ComparisonColumn(StrictCamelModel):
    key: str
    label: str
    type: Literal["number", "text", "rating"]
    sortable: bool | None = None


class ComparisonData(StrictCamelModel):
    """Comparison table for comparison and infographic pages."""

    options: list[ComparisonOption] = Field(min_length=1)
    columns: list[ComparisonColumn] = Field(min_length=1)
    default_sort: str | None = None
    verdict: str | None = None


class WizardFieldOption(StrictCamelModel):
    value: str
    label: str


class WizardField(StrictCamelModel):
    id: str = Field(min_length=1)
    type: Literal["radio", "checkbox", "select", "number", "text"]
    label: str = Field(min_length=1)
    options: list[WizardFieldOption] | None = None
    required: bool | None = None

    @model_validator(mode="after")
    def require_options_for_choices(self) -> "WizardField":
        """Choice fields must offer at least one option."""
        if self.type in ("radio", "checkbox", "select") and not self.options:
            raise ValueError("options is required and must be non-empty for radio, checkbox, and select types")
        return self


class WizardBranch(StrictCamelModel):
    condition: str = Field(min_length=1)
    go_to: str = Field(min_length=1)


class WizardStep(StrictCamelModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    fields: list[WizardField] = Field(min_length=1)
    next_step: str | None = None
    branches: list[WizardBranch] | None = None


class CallToAction(StrictCamelModel):
    text: str = Field(min_length=1)
    url: str


class WizardResultRule(StrictCamelModel):
    condition: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    cta: CallToAction | None = None


class ScoreBand(StrictCamelModel):
    min: float = Field(ge=0, le=100)
    max: float = Field(ge=0, le=100)
    label: str = Field(min_length=1)
    description: str | None = None

    @model_validator(mode="after")
    def check_range(self) -> "ScoreBand":
        if self.max < self.min:
            raise ValueError("Band max must be greater than or equal to min")
        return self


class ScoreOutcome(StrictCamelModel):
    min: float = Field(ge=0, le=100)
    max: float = Field(ge=0, le=100)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    cta: CallToAction | None = None

    @model_validator(mode="after")
    def check_range(self) -> "ScoreOutcome":
        if self.max < self.min:
            raise ValueError("Outcome max must be greater than or equal to min")
        return self


class WizardScoring(StrictCamelModel):
    method: Literal["completion", "weighted"] | None = None
    weights: dict[str, float] | None = None
    value_map: dict[str, dict[str, float]] | None = None
    bands: list[ScoreBand] | None = None
    outcomes: list[ScoreOutcome] | None = None


class WizardLeadCapture(StrictCamelModel):
    fields: list[str] = Field(min_length=1)
    consent_text: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)

    @field_validator("endpoint")
    @classmethod
    def internal_or_https(cls, v: str) -> str:
        """Lead endpoints must be internal paths or HTTPS URLs."""
        if v.startswith("/") and not v.startswith("//"):
            return v
        if v.startswith("https://"):
            return v
        raise ValueError("Endpoint must be an internal path or an HTTPS URL")


class WizardConfig(StrictCamelModel):
    """Multi-step flow for wizard, configurator, quiz, survey and assessment pages."""

    steps: list[WizardStep] = Field(min_length=1)
    result_rules: list[WizardResultRule] = Field(min_length=1)
    result_template: Literal["summary", "recommendation", "score", "eligibility"]
    collect_lead: WizardLeadCapture | None = None
    scoring: WizardScoring | None = None


class GeoRegion(StrictCamelModel):
    content: str = Field(min_length=1)
    label: str | None = None


class GeoData(StrictCamelModel):
    """Region blocks for interactive map pages."""

    regions: dict[str, GeoRegion] | None = None
    fallback: str = Field(min_length=1)


class OutlineResponse(CamelModel):
    """Structured outline returned by the outline stage."""

    title: str
    meta_description: str = ""
    outline: list[OutlineSection] = Field(default_factory=list)
    faqs: list[OutlineFaq] = Field(default_factory=list)
    estimated_word_count: int = Field(default=2500, ge=0)
    calculator_config: dict[str, Any] | None = None
    comparison_data: dict[str, Any] | None = None
    wizard_config: dict[str, Any] | None = None
    geo_data: dict[str, Any] | None = None


# =============================================================================
# Finalize
# =============================================================================


class MetaResponse(CamelModel):
    """SEO metadata generated at finalize."""

    title: str
    meta_description: str = ""
    og_title: str = ""
    og_description: str = ""
    schema_type: str = "Article"
    suggested_slug: str = ""


class AiReviewResponse(CamelModel):
    """Raw reviewer verdict as returned by the reviewer model."""

    verdict: str = "reject"
    confidence: float = 0.0
    requires_human_review: bool = True
    failures: list[str] = Field(default_factory=list)
    summary: str = ""

    @field_validator("failures", mode="before")
    @classmethod
    def coerce_failures(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v]

    @field_validator("requires_human_review", mode="before")
    @classmethod
    def default_to_human_review(cls, v: Any) -> bool:
        """Anything other than an explicit false requires a human."""
        return v is not False

    @property
    def approves(self) -> bool:
        """Approval needs an approve verdict, no failures and no human review flag."""
        return (
            self.verdict == "approve"
            and self.requires_human_review is False
            and len(self.failures) == 0
        )


# =============================================================================
# Voice and keywords
# =============================================================================


class VoiceSeed(CamelModel):
    """Persisted per-domain writer persona."""

    name: str
    background: str = ""
    quirk: str = ""
    tone_dial: int = Field(default=5, ge=1, le=10)
    tangents: str = ""
    pet_phrase: str = ""
    formatting: str = ""

    @field_validator("tone_dial", mode="before")
    @classmethod
    def clamp_tone(cls, v: Any) -> int:
        try:
            value = int(v)
        except (TypeError, ValueError):
            return 5
        return max(1, min(10, value))


KeywordIntent = Literal["informational", "commercial", "transactional", "navigational"]


class KeywordIdea(CamelModel):
    keyword: str
    search_volume: int = Field(default=0, ge=0)
    difficulty: int = Field(default=0, ge=0, le=100)
    intent: str = "informational"
    variations: list[str] = Field(default_factory=list)

    @field_validator("intent", mode="before")
    @classmethod
    def normalize_intent(cls, v: Any) -> str:
        allowed = {"informational", "commercial", "transactional", "navigational"}
        return v if v in allowed else "informational"


class KeywordResearchResponse(CamelModel):
    keywords: list[KeywordIdea] = Field(default_factory=list)
