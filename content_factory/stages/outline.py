"""Outline stage: structure, title and per-type interactive config."""

import json
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from content_factory.jobs.revisions import create_revision
from content_factory.models.content import (
    CalculatorConfig,
    ComparisonData,
    ContentType,
    GeoData,
    OutlineResponse,
    WizardConfig,
)
from content_factory.models.db import PipelineJob
from content_factory.models.generation import ModelTask
from content_factory.models.jobs import JobType, RevisionChangeType, StageOutcome
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.content_type import classify_content_type

CALCULATOR_INSTRUCTIONS = """
This is a CALCULATOR/TOOL page. In addition to the outline, design the calculator:
- Define input fields (what the user enters)
- Define output fields (what the calculator shows)
- Describe the formula/logic
- List key assumptions
- Include a methodology section explaining the math"""

CALCULATOR_FIELDS = """,
  "calculatorConfig": {
    "inputs": [{"id": "loan_amount", "label": "Loan Amount", "type": "number", "default": 250000, "min": 0, "max": 10000000, "step": 1000}],
    "outputs": [{"id": "monthly_payment", "label": "Monthly Payment", "format": "currency", "decimals": 2}],
    "formula": "description of the formula logic",
    "assumptions": ["30-year fixed rate", "No PMI"],
    "methodology": "Explanation of how calculations work"
  }"""

COMPARISON_INSTRUCTIONS = """
This is a COMPARISON page. In addition to the outline, design the comparison table:
- Define 3-8 options being compared
- Define comparison columns/criteria
- Include a verdict/recommendation
- Each option should have scores for each column"""

COMPARISON_FIELDS = """,
  "comparisonData": {
    "options": [{"name": "Option A", "badge": "Best Overall", "scores": {"price": 4, "features": 5}}],
    "columns": [{"key": "price", "label": "Price", "type": "rating", "sortable": true}],
    "defaultSort": "price",
    "verdict": "Our top pick is..."
  }"""

FLOW_INSTRUCTIONS = """
This is an INTERACTIVE FLOW page. In addition to the outline, design a multi-step flow:
- Define 3-6 steps with clear question prompts
- Define fields per step (radio, checkbox, select, number, text)
- Define result rules and recommendation outcomes
- Include optional lead capture consent if appropriate"""

SCORING_INSTRUCTIONS = """
- Define scoring logic using `scoring` with weighted fields and named score bands"""

SCORING_FIELDS = """,
    "scoring": {
      "method": "weighted",
      "weights": {"goal": 50, "budget": 50},
      "valueMap": {
        "goal": {"save": 90, "speed": 60},
        "budget": {"low": 40, "medium": 70, "high": 95}
      },
      "bands": [
        {"min": 0, "max": 39, "label": "Early Stage", "description": "Foundational work needed first."},
        {"min": 40, "max": 69, "label": "Developing", "description": "Good baseline with room to optimize."},
        {"min": 70, "max": 100, "label": "Ready", "description": "Strong position for immediate action."}
      ],
      "outcomes": [
        {"min": 0, "max": 39, "title": "Build fundamentals first", "body": "Focus on reducing risk and gathering more data."},
        {"min": 40, "max": 69, "title": "Promising with caveats", "body": "You can proceed, but optimize weak areas first."},
        {"min": 70, "max": 100, "title": "Strong fit", "body": "This looks like a high-confidence match for immediate action."}
      ]
    }"""

FLOW_FIELDS = """,
  "wizardConfig": {
    "steps": [
      {
        "id": "step_1",
        "title": "Start",
        "description": "Gather baseline information",
        "fields": [
          {
            "id": "goal",
            "type": "radio",
            "label": "What is your goal?",
            "options": [{"value": "save", "label": "Save money"}, {"value": "speed", "label": "Save time"}],
            "required": true
          }
        ]
      }
    ],
    "resultRules": [
      {"condition": "goal == 'save'", "title": "Savings-first path", "body": "You should focus on low-cost options first."}
    ],
    "resultTemplate": "recommendation"%s
  }"""

INFOGRAPHIC_INSTRUCTIONS = """
This is an INTERACTIVE INFOGRAPHIC page:
- Define visual comparison blocks and key metrics
- Provide grouped categories for filtering
- Include a short narrative summary for each metric"""

INFOGRAPHIC_FIELDS = """,
  "comparisonData": {
    "options": [{"name": "Category A", "badge": "Top", "scores": {"impact": 4, "cost": 3}}],
    "columns": [{"key": "impact", "label": "Impact", "type": "rating", "sortable": true}],
    "verdict": "Category A stands out for most readers."
  }"""

MAP_INSTRUCTIONS = """
This is an INTERACTIVE MAP page:
- Include region/state-level sections
- Provide a fallback national summary
- Keep each region block concise and actionable"""

MAP_FIELDS = """,
  "geoData": {
    "regions": {
      "west": {"label": "West", "content": "<p>Regional guidance for western states.</p>"},
      "midwest": {"label": "Midwest", "content": "<p>Regional guidance for midwest states.</p>"}
    },
    "fallback": "<p>General nationwide guidance for all readers.</p>"
  }"""

# Response field, article column and schema for each structured config
STRUCTURED_CONFIGS: list[tuple[str, str, type[BaseModel]]] = [
    ("calculator_config", "calculator_config", CalculatorConfig),
    ("comparison_data", "comparison_data", ComparisonData),
    ("wizard_config", "wizard_config", WizardConfig),
    ("geo_data", "geo_data", GeoData),
]


def type_specific_sections(content_type: ContentType) -> tuple[str, str]:
    """Extra outline instructions and JSON example fields for a content type."""
    if content_type is ContentType.CALCULATOR:
        return CALCULATOR_INSTRUCTIONS, CALCULATOR_FIELDS
    if content_type is ContentType.COMPARISON:
        return COMPARISON_INSTRUCTIONS, COMPARISON_FIELDS
    if content_type.is_interactive_flow:
        needs_scoring = content_type in (ContentType.QUIZ, ContentType.ASSESSMENT)
        instructions = FLOW_INSTRUCTIONS + (SCORING_INSTRUCTIONS if needs_scoring else "")
        return instructions, FLOW_FIELDS % (SCORING_FIELDS if needs_scoring else "")
    if content_type is ContentType.INTERACTIVE_INFOGRAPHIC:
        return INFOGRAPHIC_INSTRUCTIONS, INFOGRAPHIC_FIELDS
    if content_type is ContentType.INTERACTIVE_MAP:
        return MAP_INSTRUCTIONS, MAP_FIELDS
    return "", ""


def validated_configs(outline: OutlineResponse, article_id: str) -> dict[str, Any]:
    """Structured configs that pass their schema; invalid ones are logged and dropped."""
    fields: dict[str, Any] = {}
    for attr, column, schema in STRUCTURED_CONFIGS:
        raw = getattr(outline, attr)
        if raw is None:
            continue
        try:
            fields[column] = schema.model_validate(raw).model_dump(by_alias=True, exclude_none=True)
        except ValidationError as e:
            logger.warning(
                "Invalid structured config from model, skipping",
                article_id=article_id,
                config=attr,
                errors=e.error_count(),
            )
    return fields


async def process_outline(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """Generate the outline, resolve the content type and store both."""
    run = StageRun(ctx, job, "outline")
    article = run.article()
    domain = run.domain()

    keyword = run.payload.get("targetKeyword") or article.target_keyword
    domain_name = run.payload.get("domainName") or domain.name
    content_type = classify_content_type(keyword)
    type_instructions, type_fields = type_specific_sections(content_type)

    prompt = ctx.prompts.render(
        "outline",
        keyword=keyword,
        domain_name=domain_name,
        research_json=json.dumps(article.research_data or {}),
        type_instructions=type_instructions,
        type_json_fields=type_fields,
        differentiation=run.differentiation(domain, keyword),
    )
    outline: OutlineResponse = await run.structured(
        ModelTask.OUTLINE_GENERATION,
        prompt,
        schema=OutlineResponse,
        repair_fields=["title", "metaDescription"],
    )

    fields = validated_configs(outline, article.id)
    ctx.store.update_article(
        article.id,
        title=outline.title,
        meta_description=outline.meta_description,
        header_structure=[section.model_dump(by_alias=True) for section in outline.outline],
        content_type=content_type.value,
        **fields,
    )
    create_revision(
        ctx.store,
        article.id,
        title=outline.title,
        content_markdown=None,
        meta_description=outline.meta_description,
        change_type=RevisionChangeType.AI_GENERATED,
        change_summary="Outline generated by AI",
    )

    logger.info(
        "Outline stored",
        article_id=article.id,
        content_type=content_type.value,
        sections=len(outline.outline),
        configs=sorted(fields),
    )

    return run.finish(
        result=outline.model_dump(by_alias=True, exclude_none=True),
        successor=JobType.GENERATE_DRAFT,
        successor_payload={"targetKeyword": keyword, "domainName": domain_name},
    )
