"""BDD step definitions for the quality gates."""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from content_factory.models.config import QualityConfig
from content_factory.quality.report import evaluate_quality
from content_factory.quality.scanner import ViolationCategory
from tests.conftest import ARTICLE_BODY

# Load scenarios from feature file
scenarios("features/quality_gates.feature")


@pytest.fixture
def quality_result() -> dict:
    """Storage for the body under test and its report."""
    return {}


# Given steps


@given("the default quality configuration")
def default_config(quality_result: dict) -> None:
    quality_result["config"] = QualityConfig()
    assert "delve" in quality_result["config"].banned_words


@given("the sample article body")
def sample_body(quality_result: dict) -> None:
    quality_result["body"] = ARTICLE_BODY


@given(parsers.parse('the sample article body with "{old}" replaced by "{new}"'))
def edited_body(quality_result: dict, old: str, new: str) -> None:
    assert old in ARTICLE_BODY
    quality_result["body"] = ARTICLE_BODY.replace(old, new)


@given(parsers.parse("a body of {count:d} sentences with the same length"))
def monotone_body(quality_result: dict, count: int) -> None:
    quality_result["body"] = " ".join(["The trail climbs past the old mill today."] * count)


# When steps


@when("the quality gates evaluate the body")
def evaluate(quality_result: dict) -> None:
    quality_result["report"] = evaluate_quality(quality_result["body"], quality_result["config"])


# Then steps


@then("the body passes")
def body_passes(quality_result: dict) -> None:
    report = quality_result["report"]
    assert report.passed, report.failure_reasons()


@then("the body fails")
def body_fails(quality_result: dict) -> None:
    assert not quality_result["report"].passed


@then(parsers.parse("the report has a fingerprint of {length:d} hex characters"))
def fingerprint_length(quality_result: dict, length: int) -> None:
    fingerprint = quality_result["report"].fingerprint
    assert len(fingerprint) == length
    int(fingerprint, 16)


@then(parsers.parse('a "{category}" violation for "{pattern}" is reported on line {line:d}'))
def violation_reported(quality_result: dict, category: str, pattern: str, line: int) -> None:
    violations = [
        (v.category, v.pattern, v.line) for v in quality_result["report"].violations
    ]
    assert (ViolationCategory(category), pattern, line) in violations


@then("the failure reasons mention low burstiness")
def low_burstiness(quality_result: dict) -> None:
    reasons = quality_result["report"].failure_reasons()
    assert any(reason.startswith("low burstiness") for reason in reasons)
