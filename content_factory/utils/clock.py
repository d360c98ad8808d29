"""Time helpers.

The store keeps naive UTC datetimes so SQLite round-trips compare cleanly.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)
