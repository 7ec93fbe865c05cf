"""Row-level comparison of the working copy against the baseline."""

from __future__ import annotations

from uuid import UUID

from station_matrix.engine.cells import CellMatrix, normalize_cell


def is_row_dirty(working: CellMatrix, baseline: CellMatrix, service_id: UUID) -> bool:
    station_ids = dict.fromkeys(working.station_ids(service_id))
    station_ids.update(dict.fromkeys(baseline.station_ids(service_id)))
    for station_id in station_ids:
        current = normalize_cell(working.get(service_id, station_id))
        initial = normalize_cell(baseline.get(service_id, station_id))
        if current != initial:
            return True
    return False


def dirty_service_ids(working: CellMatrix, baseline: CellMatrix) -> list[UUID]:
    service_ids = dict.fromkeys(working.service_ids())
    service_ids.update(dict.fromkeys(baseline.service_ids()))
    return [service_id for service_id in service_ids if is_row_dirty(working, baseline, service_id)]
