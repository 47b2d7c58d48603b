"""Shared field helpers for ride and photo records.

Records travel as JSON between the REST API, the offline cache and the
in-memory mirror. These helpers keep the wire formats for ids, dates and
timestamps in one place.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Union

from ridelog.errors import ValidationError

# Servers backed by a JSON file hand out integer ids, document databases
# hand out strings. Both are opaque to the store.
RecordId = Union[int, str]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp as ISO 8601 with a ``Z`` suffix for UTC."""
    if value is None:
        return None
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp, accepting a trailing ``Z``.

    Returns None for empty values.

    Raises:
        ValueError: If the value is not a valid timestamp.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_date(value: Any) -> date:
    """Parse a calendar date.

    Accepts ``YYYY-MM-DD`` as well as full timestamps such as
    ``2024-05-01T00:00:00.000Z`` (only the date part is kept).

    Raises:
        ValueError: If the value is not a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"Invalid date: {value!r}")
    if len(value) > 10:
        if value[10] not in "T ":
            raise ValueError(f"Invalid date: {value!r}")
        # Reject garbage in the time part too
        parse_timestamp(value)
    return date.fromisoformat(value[:10])


def is_number(value: Any) -> bool:
    """Check for a real, finite number (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def require_non_negative(data: dict[str, Any], key: str) -> float:
    """Read an optional non-negative number, defaulting to 0.

    Raises:
        ValidationError: If present but not a non-negative number.
    """
    value = data.get(key)
    if value is None or value == "":
        return 0.0
    if not is_number(value) or value < 0:
        raise ValidationError(f"{key} must be a non-negative number", field=key)
    return float(value)
