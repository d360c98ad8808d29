"""Content fingerprinting via hashed word 3-grams."""

import re
from collections import Counter

from content_factory import constants
from content_factory.utils.hash import sha256_hex

_HEADING_MARKER = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_LINK = re.compile(r"\[([^\]]*)\]\(.*?\)")
_EMPHASIS = re.compile(r"[*_~`]+")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_for_fingerprint(markdown: str) -> str:
    """Lowercase plain text with markup and punctuation removed."""
    plain = markdown.lower()
    plain = _HEADING_MARKER.sub("", plain)
    plain = _IMAGE.sub("", plain)
    plain = _LINK.sub(r"\1", plain)
    plain = _EMPHASIS.sub("", plain)
    plain = _NON_ALNUM.sub("", plain)
    return _WHITESPACE.sub(" ", plain).strip()


def content_signature(
    markdown: str,
    shingle_size: int = constants.FINGERPRINT_SHINGLE_SIZE,
    top: int = constants.FINGERPRINT_TOP_SHINGLES,
) -> list[str]:
    """
    Sorted short hashes of the most frequent word shingles.

    Shingles are ranked by count descending, then alphabetically, so the
    signature is stable for identical text.

    Returns:
        Sorted list of 16-char hex hashes; empty when the text is too short
    """
    words = normalize_for_fingerprint(markdown).split()
    if len(words) < shingle_size:
        return []

    counts = Counter(
        " ".join(words[i : i + shingle_size]) for i in range(len(words) - shingle_size + 1)
    )
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:top]

    return sorted(sha256_hex(shingle)[: constants.FINGERPRINT_HASH_LENGTH] for shingle, _ in ranked)


def content_fingerprint(markdown: str, signature: list[str] | None = None) -> str:
    """SHA256 over the joined signature, or over the normalized text when it has none."""
    hashes = content_signature(markdown) if signature is None else signature
    if not hashes:
        return sha256_hex(normalize_for_fingerprint(markdown))
    return sha256_hex("".join(hashes))


def jaccard_similarity(left: list[str], right: list[str]) -> float:
    """
    Jaccard similarity of two sorted signatures using a merge walk.

    Examples:
        >>> jaccard_similarity(["a", "b"], ["a", "b"])
        1.0
        >>> jaccard_similarity([], [])
        0.0
    """
    if not left and not right:
        return 0.0

    i = j = intersection = 0
    while i < len(left) and j < len(right):
        if left[i] == right[j]:
            intersection += 1
            i += 1
            j += 1
        elif left[i] < right[j]:
            i += 1
        else:
            j += 1

    union = len(left) + len(right) - intersection
    return intersection / union if union > 0 else 0.0
