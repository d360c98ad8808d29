"""Your-money-or-your-life sensitivity classification.

The domain niche decides first; a non-sensitive niche falls back to keyword
terms, then to terms in the opening of the body.
"""

import re

from content_factory import constants
from content_factory.models.content import YmylLevel

NICHE_LEVELS: dict[str, YmylLevel] = {
    "finance": YmylLevel.HIGH,
    "health": YmylLevel.HIGH,
    "legal": YmylLevel.HIGH,
    "insurance": YmylLevel.HIGH,
    "medical": YmylLevel.HIGH,
    "tax": YmylLevel.HIGH,
    "real_estate": YmylLevel.MEDIUM,
    "education": YmylLevel.MEDIUM,
    "technology": YmylLevel.LOW,
    "business": YmylLevel.LOW,
}

HIGH_TERMS = (
    "mortgage",
    "loan",
    "calculator",
    "treatment",
    "diagnosis",
    "symptom",
    "medication",
    "dosage",
    "lawsuit",
    "attorney",
    "lawyer",
    "bankruptcy",
    "insurance",
)
MEDIUM_TERMS = ("invest", "retirement", "cost", "credit", "salary", "budget", "savings")


def _term_regex(terms: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(r"\b(" + "|".join(re.escape(t) for t in terms) + ")", re.IGNORECASE)


_HIGH = _term_regex(HIGH_TERMS)
_MEDIUM = _term_regex(MEDIUM_TERMS)


def _level_from_text(text: str) -> YmylLevel:
    if _HIGH.search(text):
        return YmylLevel.HIGH
    if _MEDIUM.search(text):
        return YmylLevel.MEDIUM
    return YmylLevel.NONE


def classify_ymyl_level(
    niche: str | None = None,
    keyword: str | None = None,
    content_markdown: str | None = None,
) -> YmylLevel:
    """
    Classify topic sensitivity.

    Examples:
        >>> classify_ymyl_level(niche="Finance").value
        'high'
        >>> classify_ymyl_level(niche="general", keyword="roof replacement cost").value
        'medium'
    """
    niche_level = NICHE_LEVELS.get((niche or "").strip().lower(), YmylLevel.NONE)
    if niche_level is not YmylLevel.NONE:
        return niche_level

    if keyword:
        keyword_level = _level_from_text(keyword)
        if keyword_level is not YmylLevel.NONE:
            return keyword_level

    if content_markdown:
        return _level_from_text(content_markdown[: constants.YMYL_CONTENT_SCAN_CHARS])

    return YmylLevel.NONE
