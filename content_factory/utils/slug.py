"""URL slug generation utilities."""

from slugify import slugify


def generate_slug(text: str, max_length: int = 80) -> str:
    """Generate a URL-safe slug from text.

    Args:
        text: Input text (e.g., article title)
        max_length: Maximum slug length

    Returns:
        URL-safe slug, or an empty string when nothing survives

    Examples:
        >>> generate_slug("Best Hiking Boots 2025")
        'best-hiking-boots-2025'
    """
    return slugify(text or "", max_length=max_length, word_boundary=True, separator="-")


def safe_slug(*candidates: str | None, default: str = "untitled") -> str:
    """First non-empty slug among candidates, else the default.

    Examples:
        >>> safe_slug("", "My Title")
        'my-title'
        >>> safe_slug("!!!", None)
        'untitled'
    """
    for candidate in candidates:
        slug = generate_slug(candidate or "")
        if slug:
            return slug
    return default


def slug_variants(base_slug: str, attempts: int):
    """
    Yield the base slug followed by numbered variants.

    Examples:
        >>> list(slug_variants("boots", 3))
        ['boots', 'boots-2', 'boots-3']
    """
    for attempt in range(attempts):
        yield base_slug if attempt == 0 else f"{base_slug}-{attempt + 1}"
