"""Datetime helpers for wire timestamps."""

from datetime import datetime, timezone
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime value from various formats.

    Handles:
    - ISO format strings with "Z" suffix (Zulu/UTC time)
    - ISO format strings with timezone offset
    - datetime objects (pass-through)
    - None values

    Naive results are taken to be UTC so they compare with aware ones.

    Raises:
        ValueError: If a string is not ISO-8601
    """
    if value is None:
        return None
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
    return None


def to_epoch_ms(value: Any) -> int:
    """Epoch milliseconds of an ISO string or datetime; 0 for None/empty."""
    if not value:
        return 0
    parsed = parse_datetime(value)
    if parsed is None:
        return 0
    return int(parsed.timestamp() * 1000)


__all__ = ["parse_datetime", "to_epoch_ms"]
