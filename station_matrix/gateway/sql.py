"""In-process gateway adapter backed by a SQLAlchemy session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from station_matrix.engine.errors import PersistenceError
from station_matrix.gateway.base import PersistenceGateway
from station_matrix.gateway.records import (
    CellRecord,
    ServiceRecord,
    StationOrderUpdate,
    StationRecord,
    WorkingHoursRecord,
)
from station_matrix.models.entities import Service, ServiceStationMatrixEntry, Station, StationWorkingHours
from station_matrix.services.catalog_service import (
    CatalogService,
    DisplayOrderUpdate,
    MatrixCellInput,
    ServiceCreateData,
    ServiceUpdateData,
    StationCreateData,
    StationUpdateData,
    WorkingHoursInput,
)

logger = logging.getLogger(__name__)


def _service_record(row: Service) -> ServiceRecord:
    return ServiceRecord(id=row.id, name=row.name, base_price=row.base_price, description=row.description)


def _station_record(row: Station) -> StationRecord:
    return StationRecord(id=row.id, name=row.name, is_active=row.is_active, display_order=row.display_order)


def _cell_record(row: ServiceStationMatrixEntry) -> CellRecord:
    return CellRecord(
        service_id=row.service_id,
        station_id=row.station_id,
        is_active=row.is_active,
        base_time_minutes=row.base_time_minutes,
        remote_booking_allowed=row.remote_booking_allowed,
        requires_approval=row.requires_staff_approval,
    )


def _working_hours_record(row: StationWorkingHours) -> WorkingHoursRecord:
    return WorkingHoursRecord(
        weekday=row.weekday,
        open_time=row.open_time,
        close_time=row.close_time,
        shift_order=row.shift_order,
    )


class SqlPersistenceGateway(PersistenceGateway):
    """Gateway that runs every call through ``CatalogService`` on one session."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.catalog = CatalogService(db)

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except HTTPException as exc:
            self.db.rollback()
            logger.warning("%s rejected: %s", operation, exc.detail)
            raise PersistenceError(str(exc.detail)) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("%s failed", operation)
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    def list_services(self) -> list[ServiceRecord]:
        with self._translate_errors("list_services"):
            return [_service_record(row) for row in self.catalog.list_services()]

    def list_stations(self, include_inactive: bool) -> list[StationRecord]:
        with self._translate_errors("list_stations"):
            rows = self.catalog.list_stations(include_inactive=include_inactive)
            return [_station_record(row) for row in rows]

    def list_matrix_cells(self, service_ids: Iterable[UUID], station_ids: Iterable[UUID]) -> list[CellRecord]:
        with self._translate_errors("list_matrix_cells"):
            rows = self.catalog.list_matrix_cells(service_ids=set(service_ids), station_ids=set(station_ids))
            return [_cell_record(row) for row in rows]

    def upsert_matrix_cells(self, records: list[CellRecord]) -> None:
        if not records:
            return
        with self._translate_errors("upsert_matrix_cells"):
            self.catalog.bulk_upsert_matrix_cells(
                [
                    MatrixCellInput(
                        service_id=record.service_id,
                        station_id=record.station_id,
                        is_active=record.is_active,
                        base_time_minutes=record.base_time_minutes,
                        remote_booking_allowed=record.remote_booking_allowed,
                        requires_approval=record.requires_approval,
                    )
                    for record in records
                ]
            )

    def create_service(
        self,
        name: str,
        base_price: Decimal,
        description: str | None = None,
    ) -> ServiceRecord:
        with self._translate_errors("create_service"):
            row = self.catalog.create_service(
                ServiceCreateData(name=name, base_price=base_price, description=description)
            )
            return _service_record(row)

    def update_service(self, service_id: UUID, *, base_price: Decimal, description: str | None) -> ServiceRecord:
        with self._translate_errors("update_service"):
            row = self.catalog.update_service(
                service_id,
                ServiceUpdateData(base_price=base_price, description=description, description_provided=True),
            )
            return _service_record(row)

    def delete_service(self, service_id: UUID) -> None:
        with self._translate_errors("delete_service"):
            self.catalog.delete_service(service_id)

    def create_station(self, name: str, is_active: bool) -> StationRecord:
        with self._translate_errors("create_station"):
            row = self.catalog.create_station(StationCreateData(name=name, is_active=is_active))
            return _station_record(row)

    def update_station(self, station_id: UUID, *, is_active: bool) -> StationRecord:
        with self._translate_errors("update_station"):
            row = self.catalog.update_station(station_id, StationUpdateData(is_active=is_active))
            return _station_record(row)

    def delete_station(self, station_id: UUID) -> None:
        with self._translate_errors("delete_station"):
            self.catalog.delete_station(station_id)

    def reorder_stations(self, updates: list[StationOrderUpdate]) -> None:
        for update in updates:
            with self._translate_errors("reorder_stations"):
                self.catalog.reorder_stations(
                    [DisplayOrderUpdate(station_id=update.station_id, display_order=update.display_order)]
                )

    def list_working_hours(self, station_id: UUID) -> list[WorkingHoursRecord]:
        with self._translate_errors("list_working_hours"):
            return [_working_hours_record(row) for row in self.catalog.list_working_hours(station_id)]

    def replace_working_hours(self, station_id: UUID, records: list[WorkingHoursRecord]) -> None:
        with self._translate_errors("replace_working_hours"):
            self.catalog.replace_working_hours(
                station_id,
                [
                    WorkingHoursInput(
                        weekday=record.weekday,
                        open_time=record.open_time,
                        close_time=record.close_time,
                        shift_order=record.shift_order,
                    )
                    for record in records
                ],
            )

    def transfer_appointments(self, from_station_id: UUID, to_station_id: UUID) -> int:
        with self._translate_errors("transfer_appointments"):
            return self.catalog.transfer_appointments(from_station_id=from_station_id, to_station_id=to_station_id)
