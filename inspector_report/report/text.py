"""Text normalisation and timestamp formatting for report fields.

Every helper here is total: malformed input degrades to a fallback string
instead of raising, so the renderers can draw any (already sanitised)
event without special-casing.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime

FALLBACK_VALUE = "n/a"
DEFAULT_MAX_LENGTH = 2000
ELLIPSIS = "..."

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _as_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def clean(
    value: object,
    fallback: str = FALLBACK_VALUE,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> str:
    """Return *value* as printable text, or *fallback* when it is missing.

    Control characters are stripped and the result is hard-truncated to
    *max_length* characters (no ellipsis).
    """
    if value is None or value == "":
        return fallback
    text = _CONTROL_CHARS.sub("", _as_text(value))
    if not text:
        return fallback
    return text[: max(0, max_length)]


def truncate_for_display(value: object, max_length: int) -> str:
    """Clean *value* and shorten it to *max_length* with a trailing ellipsis."""
    normalized = clean(value)
    if normalized == FALLBACK_VALUE or len(normalized) <= max_length:
        return normalized
    if max_length < len(ELLIPSIS):
        return normalized[: max(0, max_length)]
    return normalized[: max_length - len(ELLIPSIS)] + ELLIPSIS


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 date or date-time string into an aware UTC datetime."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        # Offsets can shift values at the ends of the calendar out of range.
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError):
        return None


def format_datetime(moment: datetime) -> str:
    """Render *moment* as a medium en-US date and time, e.g. ``Jan 5, 2024, 3:04:05 PM``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{_MONTHS[moment.month - 1]} {moment.day}, {moment.year}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    )


def format_timestamp(value: object) -> str:
    if isinstance(value, datetime):
        try:
            return format_datetime(value)
        except OverflowError:
            return FALLBACK_VALUE
    parsed = parse_timestamp(value)
    if parsed is None:
        return FALLBACK_VALUE
    return format_datetime(parsed)
