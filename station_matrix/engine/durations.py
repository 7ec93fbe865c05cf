"""Duration parsing and formatting for matrix times."""

from __future__ import annotations

import re

_NON_DURATION_CHARS = re.compile(r"[^\d:]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_leading_int(value: object) -> int | None:
    """Return the integer prefix of ``value`` the way a lenient form field reads it.

    ``"45min"`` gives 45, ``"abc"`` and ``None`` give ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def parse_duration_to_minutes(duration: str | None) -> int | None:
    """Parse ``"90"``, ``"1:30"`` or ``"1:30:00"`` into minutes.

    Seconds are ignored. Returns ``None`` for blank or malformed input.
    """

    if not duration or not duration.strip():
        return None

    cleaned = _NON_DURATION_CHARS.sub("", duration.strip())
    if not cleaned:
        return None

    parts = cleaned.split(":")
    if len(parts) == 1:
        return parse_leading_int(parts[0])
    if len(parts) in (2, 3):
        hours = parse_leading_int(parts[0])
        minutes = parse_leading_int(parts[1])
        if hours is None or minutes is None or not 0 <= minutes < 60:
            return None
        return hours * 60 + minutes
    return None


def format_duration(minutes: int | None) -> str:
    if minutes is None or minutes < 0:
        return "0 min"
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours} h"
    return f"{hours}:{rest:02d} h"
