"""Unit tests for content and structured-config models."""

import pytest
from pydantic import ValidationError

from content_factory.models.content import (
    AiReviewResponse,
    CalculatorConfig,
    ContentType,
    MetaResponse,
    OutlineResponse,
    ResearchData,
    ScoreBand,
    WizardConfig,
    WizardField,
    WizardLeadCapture,
)
from content_factory.stages.outline import type_specific_sections, validated_configs


class TestOutlineResponse:
    """Test OutlineResponse model."""

    def test_camel_case_aliases(self) -> None:
        """Test camelCase input and output."""
        outline = OutlineResponse.model_validate(
            {"title": "Boots", "metaDescription": "Fit first", "estimatedWordCount": 1800}
        )
        assert outline.meta_description == "Fit first"
        assert outline.model_dump(by_alias=True)["estimatedWordCount"] == 1800

    def test_defaults(self) -> None:
        """Test missing sections default to empty."""
        outline = OutlineResponse(title="Boots")
        assert outline.outline == []
        assert outline.calculator_config is None


class TestResearchData:
    """Test ResearchData model."""

    def test_empty(self) -> None:
        """Test the empty research payload shape."""
        assert ResearchData.empty().model_dump(by_alias=True) == {
            "statistics": [],
            "quotes": [],
            "competitorHooks": [],
            "recentDevelopments": [],
        }


class TestMetaResponse:
    """Test MetaResponse model."""

    def test_defaults(self) -> None:
        """Test only the title is required."""
        meta = MetaResponse.model_validate({"title": "Boots"})
        assert meta.schema_type == "Article"
        assert meta.suggested_slug == ""

    def test_title_required(self) -> None:
        """Test missing title raises."""
        with pytest.raises(ValidationError):
            MetaResponse.model_validate({"metaDescription": "x"})


class TestAiReviewResponse:
    """Test reviewer verdict normalization."""

    def test_explicit_approval(self) -> None:
        """Test approval needs every condition."""
        review = AiReviewResponse.model_validate(
            {"verdict": "approve", "requiresHumanReview": False, "failures": []}
        )
        assert review.approves is True

    def test_missing_flag_requires_human(self) -> None:
        """Test anything but an explicit false requires review."""
        assert AiReviewResponse.model_validate({"verdict": "approve"}).approves is False
        assert AiReviewResponse.model_validate({"verdict": "approve", "requiresHumanReview": "false"}).approves is False

    def test_failures_coerced(self) -> None:
        """Test non-list failures become empty and items become strings."""
        assert AiReviewResponse.model_validate({"failures": "none"}).failures == []
        assert AiReviewResponse.model_validate({"failures": [1, "x"]}).failures == ["1", "x"]

    def test_failures_block_approval(self) -> None:
        """Test any failure blocks approval."""
        review = AiReviewResponse.model_validate(
            {"verdict": "approve", "requiresHumanReview": False, "failures": ["no sources"]}
        )
        assert review.approves is False


class TestStructuredConfigs:
    """Test per-type interactive config schemas."""

    def test_calculator_valid(self) -> None:
        """Test a minimal calculator."""
        config = CalculatorConfig.model_validate(
            {
                "inputs": [{"id": "amount", "label": "Amount", "type": "number", "default": 1000}],
                "outputs": [{"id": "payment", "label": "Payment", "format": "currency", "decimals": 2}],
            }
        )
        assert config.inputs[0].default == 1000

    def test_calculator_rejects_unknown_keys(self) -> None:
        """Test strict configs forbid extra keys."""
        with pytest.raises(ValidationError):
            CalculatorConfig.model_validate({"inputs": [], "outputs": [], "extra": 1})

    def test_choice_field_needs_options(self) -> None:
        """Test radio fields require options."""
        with pytest.raises(ValidationError, match="options is required"):
            WizardField(id="goal", type="radio", label="Goal")

    def test_score_band_range(self) -> None:
        """Test band max must not be below min."""
        with pytest.raises(ValidationError):
            ScoreBand(min=50, max=10, label="Bad")

    def test_lead_endpoint(self) -> None:
        """Test lead endpoints must be internal or HTTPS."""
        assert WizardLeadCapture(fields=["email"], consent_text="ok", endpoint="/api/leads").endpoint == "/api/leads"
        with pytest.raises(ValidationError):
            WizardLeadCapture(fields=["email"], consent_text="ok", endpoint="http://leads.example")
        with pytest.raises(ValidationError):
            WizardLeadCapture(fields=["email"], consent_text="ok", endpoint="//leads.example")

    def test_wizard_config(self) -> None:
        """Test a complete flow validates."""
        config = WizardConfig.model_validate(
            {
                "steps": [
                    {
                        "id": "step_1",
                        "title": "Start",
                        "fields": [
                            {
                                "id": "goal",
                                "type": "radio",
                                "label": "Goal",
                                "options": [{"value": "save", "label": "Save"}],
                            }
                        ],
                    }
                ],
                "resultRules": [{"condition": "goal == 'save'", "title": "Save", "body": "Go cheap."}],
                "resultTemplate": "recommendation",
            }
        )
        assert config.result_template == "recommendation"

    def test_validated_configs_keeps_valid_only(self) -> None:
        """Test invalid configs are dropped and valid ones dumped by alias."""
        outline = OutlineResponse.model_validate(
            {
                "title": "Calc",
                "calculatorConfig": {
                    "inputs": [{"id": "amount", "label": "Amount", "type": "number"}],
                    "outputs": [{"id": "payment", "label": "Payment", "format": "currency"}],
                },
                "geoData": {"fallback": ""},
            }
        )

        fields = validated_configs(outline, "article-1")

        assert list(fields) == ["calculator_config"]
        assert fields["calculator_config"]["inputs"][0] == {"id": "amount", "label": "Amount", "type": "number"}

    def test_type_specific_sections(self) -> None:
        """Test scoring instructions only for quiz and assessment flows."""
        quiz_instructions, quiz_fields = type_specific_sections(ContentType.QUIZ)
        wizard_instructions, wizard_fields = type_specific_sections(ContentType.WIZARD)

        assert "scoring" in quiz_instructions
        assert '"scoring"' in quiz_fields
        assert '"scoring"' not in wizard_fields
        assert "INTERACTIVE FLOW" in wizard_instructions
        assert type_specific_sections(ContentType.ARTICLE) == ("", "")
