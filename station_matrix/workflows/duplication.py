"""Copy a station or a service, optionally with its matrix relationships."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from station_matrix.engine.editor import MatrixEditor
from station_matrix.engine.errors import FanoutResult, PersistenceError, TargetResult, ValidationError
from station_matrix.gateway.records import CellRecord, ServiceRecord, StationRecord

logger = logging.getLogger(__name__)

COPIED_TIME_FALLBACK = 60


class DuplicationWorkflow:
    """Runs duplication as a sequence of independent gateway calls.

    Existing-target copies process targets one by one. A failing target is
    recorded in the returned ``FanoutResult`` and earlier targets stay
    updated.
    """

    def __init__(self, editor: MatrixEditor) -> None:
        self.editor = editor
        self.gateway = editor.gateway
        self.notifier = editor.notifier

    # ---------- Helpers ----------
    def _rejected(self, message: str) -> ValidationError:
        self.notifier.error(message)
        return ValidationError(message)

    def _station(self, station_id: UUID) -> StationRecord:
        for station in self.editor.all_stations:
            if station.id == station_id:
                return station
        raise self._rejected("Source station not found")

    def _service(self, service_id: UUID) -> ServiceRecord:
        for service in self.editor.services:
            if service.id == service_id:
                return service
        raise self._rejected("Source service not found")

    def _validate_targets(self, source_id: UUID, target_ids: list[UUID], kind: str) -> None:
        if not target_ids:
            raise self._rejected(f"At least one target {kind} is required")
        if source_id in target_ids:
            raise self._rejected(f"The source {kind} cannot be one of the targets")

    def station_relation_records(self, source_station_id: UUID, target_station_id: UUID) -> list[CellRecord]:
        """Supported cells of the source column, re-keyed onto the target station."""

        working = self.editor.store.working
        records = []
        for service_id in working.service_ids():
            cell = working.get(service_id, source_station_id)
            if cell is None or not cell.supported:
                continue
            records.append(
                CellRecord(
                    service_id=service_id,
                    station_id=target_station_id,
                    is_active=True,
                    base_time_minutes=cell.station_time or COPIED_TIME_FALLBACK,
                    remote_booking_allowed=bool(cell.remote_booking_allowed),
                    requires_approval=bool(cell.approval_needed),
                )
            )
        return records

    def service_relation_records(self, source_service_id: UUID, target_service_id: UUID) -> list[CellRecord]:
        """Supported cells of the source row, re-keyed onto the target service."""

        records = []
        for station_id, cell in self.editor.store.working.row(source_service_id).items():
            if not cell.supported:
                continue
            records.append(
                CellRecord(
                    service_id=target_service_id,
                    station_id=station_id,
                    is_active=True,
                    base_time_minutes=cell.station_time or COPIED_TIME_FALLBACK,
                    remote_booking_allowed=bool(cell.remote_booking_allowed),
                    requires_approval=bool(cell.approval_needed),
                )
            )
        return records

    def _reload_after_fanout(self, kind: str) -> None:
        try:
            self.editor.load()
        except PersistenceError as exc:
            logger.warning("Reload after copying to %ss failed: %s", kind, exc.message)

    def _report_fanout(self, result: FanoutResult, kind: str) -> None:
        if result.all_ok:
            self.notifier.success(f"Copied to {len(result.succeeded)} {kind}s")
            return
        failed = ", ".join(f"{row.target_id}: {row.error}" for row in result.failed)
        self.notifier.error(
            f"Copied to {len(result.succeeded)} of {len(result.results)} {kind}s; failed: {failed}"
        )

    # ---------- Stations ----------
    def duplicate_station(
        self,
        source_station_id: UUID,
        name: str,
        *,
        copy_details: bool = False,
        copy_relations: bool = False,
    ) -> StationRecord:
        name = name.strip()
        if not name:
            raise self._rejected("Station name is required")
        source = self._station(source_station_id)

        try:
            station = self.gateway.create_station(name, source.is_active if copy_details else True)
            hours = self.gateway.list_working_hours(source.id)
            if hours:
                self.gateway.replace_working_hours(station.id, hours)
            if copy_relations:
                self.gateway.upsert_matrix_cells(self.station_relation_records(source.id, station.id))

            self.editor.reload_stations()
            selected = self.editor.paginator.selected_station_ids
            if station.id not in selected:
                self.editor.paginator.selected_station_ids = [*selected, station.id]
            self.editor.reload_matrix()
        except PersistenceError as exc:
            logger.warning("Station duplication failed: %s", exc.message, extra={"station_id": source.id})
            self.notifier.error(exc.message)
            raise

        logger.info(
            "Station duplicated",
            extra={"station_id": source.id, "target_id": station.id, "count": len(hours)},
        )
        self.notifier.success("Station duplicated")
        return station

    def copy_station_to_existing(
        self,
        source_station_id: UUID,
        target_station_ids: list[UUID],
        *,
        copy_details: bool = False,
        copy_relations: bool = False,
    ) -> FanoutResult:
        self._validate_targets(source_station_id, target_station_ids, "station")
        source = self._station(source_station_id)

        result = FanoutResult()
        for target_id in target_station_ids:
            try:
                if copy_details:
                    self.gateway.update_station(target_id, is_active=source.is_active)
                    hours = self.gateway.list_working_hours(source.id)
                    self.gateway.replace_working_hours(target_id, hours)
                if copy_relations:
                    self.gateway.upsert_matrix_cells(self.station_relation_records(source.id, target_id))
            except PersistenceError as exc:
                logger.warning("Copy to station failed: %s", exc.message, extra={"target_id": target_id})
                result.results.append(TargetResult(target_id=target_id, ok=False, error=exc.message))
                continue
            result.results.append(TargetResult(target_id=target_id, ok=True))

        self._reload_after_fanout("station")
        self._report_fanout(result, "station")
        return result

    # ---------- Services ----------
    def duplicate_service(
        self,
        source_service_id: UUID,
        name: str,
        *,
        copy_details: bool = True,
        copy_relations: bool = False,
    ) -> ServiceRecord:
        name = name.strip()
        if not name:
            raise self._rejected("Service name is required")
        source = self._service(source_service_id)

        try:
            service = self.gateway.create_service(
                name,
                source.base_price if copy_details else Decimal("0"),
                source.description if copy_details else None,
            )
            if copy_relations:
                self.gateway.upsert_matrix_cells(self.service_relation_records(source.id, service.id))
            self.editor.load()
        except PersistenceError as exc:
            logger.warning("Service duplication failed: %s", exc.message, extra={"service_id": source.id})
            self.notifier.error(exc.message)
            raise

        logger.info("Service duplicated", extra={"service_id": source.id, "target_id": service.id})
        self.notifier.success("Service duplicated")
        return service

    def copy_service_to_existing(
        self,
        source_service_id: UUID,
        target_service_ids: list[UUID],
        *,
        copy_details: bool = False,
        copy_relations: bool = False,
    ) -> FanoutResult:
        self._validate_targets(source_service_id, target_service_ids, "service")
        source = self._service(source_service_id)

        result = FanoutResult()
        for target_id in target_service_ids:
            try:
                if copy_details:
                    self.gateway.update_service(
                        target_id,
                        base_price=source.base_price,
                        description=source.description,
                    )
                if copy_relations:
                    self.gateway.upsert_matrix_cells(self.service_relation_records(source.id, target_id))
            except PersistenceError as exc:
                logger.warning("Copy to service failed: %s", exc.message, extra={"target_id": target_id})
                result.results.append(TargetResult(target_id=target_id, ok=False, error=exc.message))
                continue
            result.results.append(TargetResult(target_id=target_id, ok=True))

        self._reload_after_fanout("service")
        self._report_fanout(result, "service")
        return result
