from __future__ import annotations

import uuid

import pytest

from station_matrix.engine.cells import UNSUPPORTED, CellMatrix, MatrixCell, normalize_cell
from station_matrix.engine.default_time import resolve_default_time
from station_matrix.engine.durations import format_duration, parse_duration_to_minutes, parse_leading_int
from station_matrix.gateway.records import CellRecord


def _record(minutes: int, active: bool = True) -> CellRecord:
    return CellRecord(
        service_id=uuid.uuid4(),
        station_id=uuid.uuid4(),
        is_active=active,
        base_time_minutes=minutes,
    )


def test_unsupported_cell_normalizes_auxiliary_fields_away() -> None:
    raw = MatrixCell(
        supported=False,
        default_time=40,
        station_time=99,
        remote_booking_allowed=True,
        approval_needed=True,
    )

    normalized = normalize_cell(raw)

    assert normalized == UNSUPPORTED
    assert normalized.station_time is None
    assert normalized.remote_booking_allowed is False
    assert normalized.approval_needed is False
    assert normalize_cell(None) == normalized


def test_supported_cell_keeps_values_and_coerces_missing_flags() -> None:
    normalized = normalize_cell(MatrixCell(supported=True, default_time=30, station_time=45))

    assert normalized.supported is True
    assert normalized.station_time == 45
    assert normalized.default_time == 30
    assert normalized.remote_booking_allowed is False
    assert normalized.approval_needed is False


def test_cell_matrix_clone_is_independent() -> None:
    service_id, station_a, station_b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    matrix = CellMatrix()
    matrix.set(service_id, station_a, MatrixCell(supported=True, station_time=30))

    copy = matrix.clone()
    copy.set(service_id, station_b, MatrixCell(supported=True, station_time=60))
    copy.drop_column(station_a)

    assert matrix.station_ids(service_id) == [station_a]
    assert copy.station_ids(service_id) == [station_b]
    assert matrix != copy


def test_cell_matrix_drop_row_and_replace_row() -> None:
    service_id, station_id = uuid.uuid4(), uuid.uuid4()
    matrix = CellMatrix([((service_id, station_id), MatrixCell(supported=True))])

    matrix.replace_row(service_id, {})
    assert matrix.has_row(service_id)
    assert len(matrix) == 0

    matrix.drop_row(service_id)
    assert not matrix.has_row(service_id)


def test_default_time_excludes_inactive_records() -> None:
    records = [_record(30), _record(30), _record(45), _record(45, active=False)]

    assert resolve_default_time(records) == 30


def test_default_time_tie_goes_to_first_seen_value() -> None:
    assert resolve_default_time([_record(30), _record(45)]) == 30
    assert resolve_default_time([_record(45), _record(30)]) == 45
    assert resolve_default_time([_record(90), _record(15), _record(15), _record(90)]) == 90


def test_default_time_falls_back_without_active_records() -> None:
    assert resolve_default_time([]) == 60
    assert resolve_default_time([_record(20, active=False)]) == 60
    assert resolve_default_time([], fallback=25) == 25


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("90", 90),
        ("1:30", 90),
        ("1:30:00", 90),
        (" 2:05 h", 125),
        ("0:75", None),
        ("", None),
        ("   ", None),
        ("abc", None),
        (None, None),
        ("1:2:3:4", None),
    ],
)
def test_parse_duration_to_minutes(raw: str | None, expected: int | None) -> None:
    assert parse_duration_to_minutes(raw) == expected


def test_parse_leading_int_reads_prefix() -> None:
    assert parse_leading_int("45min") == 45
    assert parse_leading_int("0") == 0
    assert parse_leading_int("-5") == -5
    assert parse_leading_int("min") is None
    assert parse_leading_int(12) == 12
    assert parse_leading_int(True) is None


def test_format_duration() -> None:
    assert format_duration(45) == "45 min"
    assert format_duration(120) == "2 h"
    assert format_duration(95) == "1:35 h"
    assert format_duration(-1) == "0 min"
