"""Working copy and baseline of the service/station matrix."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Literal
from uuid import UUID

from station_matrix.engine.cells import CellMatrix, MatrixCell
from station_matrix.engine.default_time import FALLBACK_DEFAULT_MINUTES, resolve_default_time
from station_matrix.engine.diff import dirty_service_ids, is_row_dirty
from station_matrix.engine.durations import parse_leading_int
from station_matrix.engine.notifier import LoggingNotifier, Notifier
from station_matrix.gateway.records import CellRecord, StationRecord

logger = logging.getLogger(__name__)

ServiceStatus = Literal["none", "some", "all"]

# Stored for unsupported cells so every upserted record carries a valid duration.
UNSUPPORTED_BASE_TIME = 60


class MatrixStore:
    """In-memory matrix with synchronous mutation primitives.

    Mutations only ever touch ``working``. ``baseline`` changes through
    :meth:`load` and :meth:`advance_baseline_row`, which callers invoke after
    the gateway confirmed a write.
    """

    def __init__(
        self,
        *,
        fallback_minutes: int = FALLBACK_DEFAULT_MINUTES,
        notifier: Notifier | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.fallback_minutes = fallback_minutes
        self.notifier = notifier or LoggingNotifier()
        self.on_change = on_change
        self.working = CellMatrix()
        self.baseline = CellMatrix()
        self.active_station_ids: list[UUID] = []
        self._saving_row_ids: set[UUID] = set()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # Loading and baseline

    def load(
        self,
        service_ids: Iterable[UUID],
        stations: list[StationRecord],
        records: Iterable[CellRecord],
    ) -> None:
        """Rebuild both matrices from gateway data.

        Every service gets a cell per station, inactive stations included.
        The default time only looks at records of active stations.
        """

        self.active_station_ids = [station.id for station in stations if station.is_active]
        active = set(self.active_station_ids)

        by_service: dict[UUID, dict[UUID, CellRecord]] = {}
        for record in records:
            by_service.setdefault(record.service_id, {})[record.station_id] = record

        working = CellMatrix()
        for service_id in service_ids:
            entries = by_service.get(service_id, {})
            default_time = resolve_default_time(
                (entry for entry in entries.values() if entry.station_id in active),
                fallback=self.fallback_minutes,
            )
            row: dict[UUID, MatrixCell] = {}
            for station in stations:
                entry = entries.get(station.id)
                supported = bool(entry and entry.is_active)
                if supported:
                    row[station.id] = MatrixCell(
                        supported=True,
                        default_time=default_time,
                        station_time=entry.base_time_minutes or self.fallback_minutes,
                        remote_booking_allowed=entry.remote_booking_allowed,
                        approval_needed=entry.requires_approval,
                    )
                else:
                    row[station.id] = MatrixCell(
                        supported=False,
                        default_time=default_time,
                        remote_booking_allowed=False,
                        approval_needed=False,
                    )
            working.replace_row(service_id, row)

        self.working = working
        self.baseline = working.clone()
        logger.info("Matrix loaded", extra={"count": len(working)})
        self._changed()

    def restore(self, working: CellMatrix, baseline: CellMatrix, active_station_ids: list[UUID]) -> None:
        self.working = working.clone()
        self.baseline = baseline.clone()
        self.active_station_ids = list(active_station_ids)
        self._changed()

    def row_snapshot(self, service_id: UUID) -> dict[UUID, MatrixCell]:
        return self.working.row(service_id)

    def advance_baseline_row(self, service_id: UUID, snapshot: dict[UUID, MatrixCell]) -> None:
        self.baseline.replace_row(service_id, dict(snapshot))
        self._changed()

    def remove_service(self, service_id: UUID) -> None:
        self.working.drop_row(service_id)
        self.baseline.drop_row(service_id)
        self._changed()

    def remove_station(self, station_id: UUID) -> None:
        self.working.drop_column(station_id)
        self.baseline.drop_column(station_id)
        if station_id in self.active_station_ids:
            self.active_station_ids.remove(station_id)
        self._changed()

    # Reads

    def cell(self, service_id: UUID, station_id: UUID) -> MatrixCell | None:
        return self.working.get(service_id, station_id)

    def default_time_for(self, service_id: UUID) -> int | None:
        row = self.working.row(service_id)
        for cell in row.values():
            if cell.supported and cell.default_time is not None:
                return cell.default_time
        for cell in row.values():
            if cell.default_time is not None:
                return cell.default_time
        return None

    def service_status(self, service_id: UUID) -> ServiceStatus:
        total = len(self.active_station_ids)
        enabled = 0
        for station_id in self.active_station_ids:
            cell = self.working.get(service_id, station_id)
            if cell is not None and cell.supported:
                enabled += 1
        if total == 0 or enabled == 0:
            return "none"
        if enabled == total:
            return "all"
        return "some"

    def is_row_dirty(self, service_id: UUID) -> bool:
        return is_row_dirty(self.working, self.baseline, service_id)

    def dirty_service_ids(self) -> list[UUID]:
        return dirty_service_ids(self.working, self.baseline)

    # Single-cell mutations

    def _enabled(self, service_id: UUID, cell: MatrixCell | None) -> MatrixCell:
        default_time = self.default_time_for(service_id) or self.fallback_minutes
        cell = cell or MatrixCell()
        return replace(
            cell,
            supported=True,
            default_time=default_time,
            station_time=cell.station_time if cell.station_time is not None else default_time,
            remote_booking_allowed=cell.remote_booking_allowed or False,
            approval_needed=cell.approval_needed or False,
        )

    @staticmethod
    def _disabled(cell: MatrixCell | None) -> MatrixCell:
        return replace(
            cell or MatrixCell(),
            supported=False,
            station_time=None,
            remote_booking_allowed=False,
            approval_needed=False,
        )

    def set_supported(self, service_id: UUID, station_id: UUID, value: bool) -> None:
        cell = self.working.get(service_id, station_id)
        if value:
            updated = self._enabled(service_id, cell)
        else:
            updated = self._disabled(cell)
        self.working.set(service_id, station_id, updated)
        self._changed()

    def toggle_supported(self, service_id: UUID, station_id: UUID) -> None:
        cell = self.working.get(service_id, station_id)
        self.set_supported(service_id, station_id, not (cell is not None and cell.supported))

    def set_station_time(self, service_id: UUID, station_id: UUID, minutes: int | str | None) -> bool:
        """Override one cell's duration. Non-positive or unparsable input is ignored."""

        value = parse_leading_int(minutes)
        if value is None or value <= 0:
            return False
        cell = self.working.get(service_id, station_id)
        if cell is None or not cell.supported:
            return False
        self.working.set(service_id, station_id, replace(cell, station_time=value))
        self._changed()
        return True

    def toggle_remote_booking(self, service_id: UUID, station_id: UUID) -> bool:
        cell = self.working.get(service_id, station_id)
        if cell is None or not cell.supported:
            return False
        self.working.set(
            service_id,
            station_id,
            replace(cell, remote_booking_allowed=not cell.remote_booking_allowed),
        )
        self._changed()
        return True

    def toggle_approval(self, service_id: UUID, station_id: UUID) -> bool:
        cell = self.working.get(service_id, station_id)
        if cell is None or not cell.supported:
            return False
        self.working.set(service_id, station_id, replace(cell, approval_needed=not cell.approval_needed))
        self._changed()
        return True

    # Row mutations

    def set_default_time(self, service_id: UUID, minutes: int | str | None) -> bool:
        """Set the service default on supported cells; cells without an override follow it."""

        value = parse_leading_int(minutes)
        if value is None or value <= 0:
            return False
        for station_id, cell in self.working.row(service_id).items():
            if not cell.supported:
                continue
            self.working.set(
                service_id,
                station_id,
                replace(
                    cell,
                    default_time=value,
                    station_time=value if cell.station_time is None else cell.station_time,
                ),
            )
        self._changed()
        return True

    def apply_default_to_all(self, service_id: UUID) -> bool:
        default_time = self.default_time_for(service_id)
        if default_time is None or default_time <= 0:
            self.notifier.error("Set a default time first")
            return False
        for station_id, cell in self.working.row(service_id).items():
            if cell.supported:
                self.working.set(
                    service_id,
                    station_id,
                    replace(cell, default_time=default_time, station_time=default_time),
                )
        self._changed()
        return True

    def turn_on_all(self, service_id: UUID) -> None:
        for station_id in self.active_station_ids:
            cell = self.working.get(service_id, station_id)
            self.working.set(service_id, station_id, self._enabled(service_id, cell))
        self._changed()

    def turn_off_all(self, service_id: UUID) -> None:
        for station_id in self.active_station_ids:
            cell = self.working.get(service_id, station_id)
            if cell is not None:
                self.working.set(service_id, station_id, self._disabled(cell))
        self._changed()

    def mark_all_remote_booking(self, service_id: UUID, allowed: bool) -> None:
        for station_id in self.active_station_ids:
            cell = self.working.get(service_id, station_id)
            if cell is not None and cell.supported:
                self.working.set(service_id, station_id, replace(cell, remote_booking_allowed=allowed))
        self._changed()

    def mark_all_approval_needed(self, service_id: UUID, needed: bool) -> None:
        for station_id in self.active_station_ids:
            cell = self.working.get(service_id, station_id)
            if cell is not None and cell.supported:
                self.working.set(service_id, station_id, replace(cell, approval_needed=needed))
        self._changed()

    def revert_row(self, service_id: UUID) -> bool:
        if not self.baseline.has_row(service_id):
            return False
        self.working.replace_row(service_id, self.baseline.row(service_id))
        self._changed()
        return True

    # Persistence records

    def build_row_records(
        self,
        service_id: UUID,
        snapshot: dict[UUID, MatrixCell] | None = None,
    ) -> list[CellRecord]:
        """Complete upsert records for one row, active stations included even when untouched."""

        row = self.working.row(service_id) if snapshot is None else snapshot
        default_time = self.default_time_for(service_id) or self.fallback_minutes
        station_ids = dict.fromkeys(row)
        station_ids.update(dict.fromkeys(self.active_station_ids))

        records = []
        for station_id in station_ids:
            cell = row.get(station_id)
            if cell is not None and cell.supported:
                records.append(
                    CellRecord(
                        service_id=service_id,
                        station_id=station_id,
                        is_active=True,
                        base_time_minutes=cell.station_time or default_time,
                        remote_booking_allowed=bool(cell.remote_booking_allowed),
                        requires_approval=bool(cell.approval_needed),
                    )
                )
            else:
                records.append(
                    CellRecord(
                        service_id=service_id,
                        station_id=station_id,
                        is_active=False,
                        base_time_minutes=UNSUPPORTED_BASE_TIME,
                    )
                )
        return records

    def build_matrix_records(self) -> list[CellRecord]:
        records: list[CellRecord] = []
        for service_id in self.working.service_ids():
            records.extend(self.build_row_records(service_id))
        return records

    # Advisory save guard

    @property
    def saving_row_ids(self) -> frozenset[UUID]:
        return frozenset(self._saving_row_ids)

    def is_saving(self, service_id: UUID) -> bool:
        return service_id in self._saving_row_ids

    def begin_saving(self, service_id: UUID) -> bool:
        if service_id in self._saving_row_ids:
            return False
        self._saving_row_ids.add(service_id)
        return True

    def finish_saving(self, service_id: UUID) -> None:
        self._saving_row_ids.discard(service_id)
