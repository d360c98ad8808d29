"""Banned-pattern scanner.

Flags single "AI fingerprint" words (word-boundary, case-insensitive), overused
transition phrases (substring), and em/en dash variants, each with its 1-based
line number so a corrective rewrite can target them.
"""

import re
from collections.abc import Iterable
from enum import Enum

from pydantic import BaseModel, Field

DASH_VARIANTS = "‒–—―﹘－"
DASH_VARIANT_REGEX = re.compile(f"[{DASH_VARIANTS}]")
DASH_PATTERN_LABEL = "em/en dash"


class ViolationCategory(str, Enum):
    BANNED_WORD = "banned_word"
    BANNED_TRANSITION = "banned_transition"
    EM_DASH = "em_dash"


class Violation(BaseModel):
    """One banned pattern occurrence."""

    pattern: str = Field(description="Word, phrase or dash label that matched")
    line: int = Field(ge=1, description="1-based line number")
    category: ViolationCategory


class BannedPatternScanner:
    """Scanner with precompiled patterns, built once per word list."""

    def __init__(self, banned_words: Iterable[str], banned_transitions: Iterable[str]):
        self._word_regexes = [
            (word, re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)) for word in banned_words
        ]
        self._transitions = [(phrase, phrase.lower()) for phrase in banned_transitions]

    def scan(self, markdown: str) -> list[Violation]:
        """
        Scan markdown for banned words, transitions and dash variants.

        Args:
            markdown: Body text

        Returns:
            Violations in line order
        """
        violations: list[Violation] = []

        for index, line in enumerate(markdown.split("\n")):
            line_number = index + 1
            line_lower = line.lower()

            for pattern, regex in self._word_regexes:
                if regex.search(line):
                    violations.append(
                        Violation(pattern=pattern, line=line_number, category=ViolationCategory.BANNED_WORD)
                    )

            for pattern, lower in self._transitions:
                if lower in line_lower:
                    violations.append(
                        Violation(
                            pattern=pattern,
                            line=line_number,
                            category=ViolationCategory.BANNED_TRANSITION,
                        )
                    )

            if DASH_VARIANT_REGEX.search(line):
                violations.append(
                    Violation(pattern=DASH_PATTERN_LABEL, line=line_number, category=ViolationCategory.EM_DASH)
                )

        return violations


def format_violations_for_prompt(violations: list[Violation]) -> str:
    """
    Group violations by pattern into an instruction for a corrective rewrite.

    Examples:
        >>> v = [Violation(pattern="delve", line=2, category="banned_word"),
        ...      Violation(pattern="delve", line=7, category="banned_word")]
        >>> format_violations_for_prompt(v).splitlines()[1]
        '"delve" on lines 2, 7'
    """
    if not violations:
        return ""

    grouped: dict[str, list[int]] = {}
    for violation in violations:
        grouped.setdefault(violation.pattern, []).append(violation.line)

    parts = []
    for pattern, lines in grouped.items():
        plural = "s" if len(lines) > 1 else ""
        parts.append(f'"{pattern}" on line{plural} {", ".join(str(n) for n in lines)}')

    header = "The following banned AI patterns were found and MUST be replaced with natural alternatives:"
    return header + "\n" + "\n".join(parts)


def strip_dash_variants(content: str) -> tuple[str, bool]:
    """Collapse every em/en dash variant to a plain hyphen.

    Returns:
        Tuple of (sanitized text, whether anything changed)
    """
    sanitized = DASH_VARIANT_REGEX.sub("-", content)
    return sanitized, sanitized != content
