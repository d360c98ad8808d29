"""Sentence burstiness estimator.

Burstiness is the population standard deviation of sentence lengths (in words)
divided by their mean. Human prose mixes short and long sentences; uniform
cadence scores low.
"""

import math
import re

from pydantic import BaseModel, Field

from content_factory import constants

PLACEHOLDER = "\0"

_HEADING = re.compile(r"^#{1,6}\s+.*$", re.MULTILINE)
_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_LINK = re.compile(r"\[([^\]]*)\]\(.*?\)")
_EMPHASIS = re.compile(r"[*_~`]+")
_BULLET = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
_NUMBERED = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
_BLANK_LINES = re.compile(r"\n{2,}")

_URL = re.compile(r"https?://[^\s]+")
_DECIMAL = re.compile(r"(\d+)\.(\d)")
_ACRONYM = re.compile(r"\b([A-Z]\.){2,}")
_ABBREVIATION = re.compile(
    r"\b(Mr|Mrs|Ms|Dr|Prof|Sr|Jr|vs|etc|approx|dept|govt|inc|corp|ltd|assn|est|vol|no|gen"
    r"|sgt|pvt|cpl|fig|ed|rev|tr|univ)\.",
    re.IGNORECASE,
)
_ELLIPSIS = re.compile(r"\.{2,}")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z\"])")


class BurstinessResult(BaseModel):
    avg_length: float = Field(ge=0.0)
    std_dev: float = Field(ge=0.0)
    score: float = Field(ge=0.0)
    passed: bool
    sentence_count: int = Field(ge=0)


def markdown_to_prose(markdown: str) -> str:
    """Strip headings, images, link markup, emphasis and list markers."""
    plain = _HEADING.sub("", markdown)
    plain = _IMAGE.sub("", plain)
    plain = _LINK.sub(r"\1", plain)
    plain = _EMPHASIS.sub("", plain)
    plain = _BULLET.sub("", plain)
    plain = _NUMBERED.sub("", plain)
    plain = _BLANK_LINES.sub("\n", plain)
    return plain.strip()


def _protect_periods(text: str) -> str:
    """Replace periods that do not end a sentence with a placeholder."""

    def hide(match: re.Match) -> str:
        return match.group(0).replace(".", PLACEHOLDER)

    text = _URL.sub(hide, text)
    text = _DECIMAL.sub(rf"\1{PLACEHOLDER}\2", text)
    text = _ACRONYM.sub(hide, text)
    text = _ABBREVIATION.sub(lambda m: m.group(0).replace(".", PLACEHOLDER, 1), text)
    text = _ELLIPSIS.sub(hide, text)
    return text


def split_sentences(markdown: str, min_words: int = constants.BURSTINESS_MIN_WORDS_PER_SENTENCE) -> list[str]:
    """Split markdown into sentences of at least ``min_words`` words."""
    protected = _protect_periods(markdown_to_prose(markdown))
    sentences = []
    for raw in _SENTENCE_BOUNDARY.split(protected):
        sentence = raw.replace(PLACEHOLDER, ".").strip()
        if sentence and len(sentence.split()) >= min_words:
            sentences.append(sentence)
    return sentences


def measure_burstiness(
    markdown: str,
    threshold: float = constants.BURSTINESS_THRESHOLD,
    min_sentences: int = constants.BURSTINESS_MIN_SENTENCES,
) -> BurstinessResult:
    """
    Measure sentence-length variance.

    Content with fewer than ``min_sentences`` qualifying sentences passes with
    score 1.0, since there is too little signal to judge.

    Examples:
        >>> text = " ".join(["The cat sat on the mat today."] * 20)
        >>> measure_burstiness(text).passed
        False
    """
    sentences = split_sentences(markdown)

    if len(sentences) < min_sentences:
        return BurstinessResult(
            avg_length=0.0, std_dev=0.0, score=1.0, passed=True, sentence_count=len(sentences)
        )

    lengths = [len(sentence.split()) for sentence in sentences]
    avg_length = sum(lengths) / len(lengths)
    variance = sum((length - avg_length) ** 2 for length in lengths) / len(lengths)
    std_dev = math.sqrt(variance)
    score = std_dev / avg_length if avg_length > 0 else 0.0

    return BurstinessResult(
        avg_length=avg_length,
        std_dev=std_dev,
        score=score,
        passed=score >= threshold,
        sentence_count=len(sentences),
    )
