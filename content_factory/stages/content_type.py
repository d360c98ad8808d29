"""Keyword-driven content type classifier.

Rules are checked in order and the first match wins. Matching is word-boundary
based so that, for example, "Elvis" never reads as "vs" and "toolkit" never
reads as "tool".
"""

import re

from content_factory.models.content import ContentType


def _words(*patterns: str) -> list[re.Pattern[str]]:
    return [re.compile(p) for p in patterns]


def _has_any(text: str, regexes: list[re.Pattern[str]], phrases: tuple[str, ...] = ()) -> bool:
    return any(r.search(text) for r in regexes) or any(p in text for p in phrases)


_QUIZ = _words(r"\bquiz\b")
_SURVEY = _words(r"\bsurvey\b", r"\bquestionnaire\b", r"\bpoll\b")
_ASSESSMENT = _words(r"\bassessment\b", r"\bself[- ]assessment\b")
_CONFIGURATOR = _words(r"\bconfigurator\b")
_INFOGRAPHIC = _words(r"\binfographic\b")
_MAP = _words(r"\binteractive map\b")
_COMPARISON = _words(r"\bvs\b", r"\bversus\b")
_CALCULATOR = _words(r"\bcalculator\b", r"\bestimator\b", r"\bcompute\b")
_TOOL = re.compile(r"\btool\b")
_TOOL_EXCLUSIONS = _words(r"\btoolkit\b", r"\btoolbox\b", r"\btools\b")
_COST = _words(r"\bcost\b", r"\bprice\b", r"\bfee\b")
_ELIGIBILITY = _words(r"\beligib", r"\bqualify\b")
_WHICH = re.compile(r"\bwhich\b")
_LEGAL = _words(r"\blawyer\b", r"\battorney\b")
_CLAIM = re.compile(r"\bclaim\b")
_CASE = re.compile(r"\bcase\b")
_HEALTH = _words(r"\bsafe\b", r"\btreatment\b", r"\bsymptom\b", r"\bdiagnosis\b")
_FAQ = _words(r"\bfaq\b", r"\bquestions\b", r"\banswered\b")
_CHECKLIST = _words(r"\bchecklist\b")
_REVIEW = re.compile(r"\breview\b")
_BEST = re.compile(r"\bbest\s")
_TOP_N = re.compile(r"\btop\s\d")


def classify_content_type(keyword: str) -> ContentType:
    """
    Pick the page format for a target keyword.

    Examples:
        >>> classify_content_type("Elvis Presley biography").value
        'article'
        >>> classify_content_type("roth vs traditional ira").value
        'comparison'
        >>> classify_content_type("best hiking boots").value
        'review'
    """
    text = keyword.lower()

    if _has_any(text, _QUIZ, ("knowledge check", "test yourself")):
        return ContentType.QUIZ
    if _has_any(text, _SURVEY):
        return ContentType.SURVEY
    if _has_any(text, _ASSESSMENT, ("score yourself",)):
        return ContentType.ASSESSMENT
    if _has_any(text, _CONFIGURATOR, ("build your own", "customize")):
        return ContentType.CONFIGURATOR
    if _has_any(text, _INFOGRAPHIC, ("data visualization", "visual breakdown")):
        return ContentType.INTERACTIVE_INFOGRAPHIC
    if _has_any(text, _MAP, ("map by state", "regional map")):
        return ContentType.INTERACTIVE_MAP

    if _has_any(text, _COMPARISON, ("compared to",)):
        return ContentType.COMPARISON

    if _has_any(text, _CALCULATOR):
        return ContentType.CALCULATOR
    if _TOOL.search(text) and not _has_any(text, _TOOL_EXCLUSIONS):
        return ContentType.CALCULATOR

    if _has_any(text, _COST, ("how much",)):
        return ContentType.COST_GUIDE

    if _has_any(text, _ELIGIBILITY, ("find out if", "do i qualify")):
        return ContentType.WIZARD
    if _WHICH.search(text) and "right for" in text:
        return ContentType.WIZARD
    if "should i" in text and (" or " in text or "choose" in text):
        return ContentType.WIZARD

    if _has_any(text, _LEGAL, ("get a quote",)):
        return ContentType.LEAD_CAPTURE
    if _CLAIM.search(text) and "claim to" not in text:
        return ContentType.LEAD_CAPTURE
    if _CASE.search(text) and "case study" not in text and "showcase" not in text:
        return ContentType.LEAD_CAPTURE

    if _has_any(text, _HEALTH, ("side effects",)):
        return ContentType.HEALTH_DECISION

    if _has_any(text, _FAQ, ("q&a",)):
        return ContentType.FAQ

    if _has_any(text, _CHECKLIST, ("step by step", "steps to")):
        return ContentType.CHECKLIST

    if _REVIEW.search(text):
        return ContentType.REVIEW
    if _BEST.search(text) and "best practice" not in text and "best way to" not in text:
        return ContentType.REVIEW
    if _TOP_N.search(text):
        return ContentType.REVIEW

    return ContentType.ARTICLE
