"""Representative duration per service, derived from its station records."""

from __future__ import annotations

from collections.abc import Iterable

from station_matrix.gateway.records import CellRecord

FALLBACK_DEFAULT_MINUTES = 60


def resolve_default_time(
    records: Iterable[CellRecord],
    fallback: int = FALLBACK_DEFAULT_MINUTES,
) -> int:
    """Return the most common ``base_time_minutes`` among active records.

    Ties go to the value seen first. A record without a time counts as the
    fallback. With no active records the fallback is returned.
    """

    counts: dict[int, int] = {}
    for record in records:
        if not record.is_active:
            continue
        minutes = record.base_time_minutes if record.base_time_minutes is not None else fallback
        counts[minutes] = counts.get(minutes, 0) + 1

    best: int | None = None
    for minutes, count in counts.items():
        if best is None or count > counts[best]:
            best = minutes
    return fallback if best is None else best
