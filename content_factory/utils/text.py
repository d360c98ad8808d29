"""Small text helpers shared by stages and gates."""

import re

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_CODE_FENCE_END = re.compile(r"\n?```\s*$")


def word_count(text: str | None) -> int:
    """Whitespace-delimited word count."""
    if not text:
        return 0
    return len(text.split())


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` or ```json fence if present."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = _CODE_FENCE_START.sub("", stripped)
        stripped = _CODE_FENCE_END.sub("", stripped)
    return stripped.strip()
