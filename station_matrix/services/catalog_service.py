"""Application service for the service/station catalog and matrix persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from station_matrix.models.entities import (
    Service,
    ServiceStationMatrixEntry,
    Station,
    StationWorkingHours,
)
from station_matrix.repositories.catalog_repository import CatalogRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(slots=True)
class ServiceCreateData:
    name: str
    base_price: Decimal = ZERO
    description: str | None = None


@dataclass(slots=True)
class ServiceUpdateData:
    name: str | None = None
    base_price: Decimal | None = None
    description: str | None = None
    # When set, ``description`` is written even if None, clearing the field.
    description_provided: bool = False


@dataclass(slots=True)
class StationCreateData:
    name: str
    is_active: bool = True


@dataclass(slots=True)
class StationUpdateData:
    name: str | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class DisplayOrderUpdate:
    station_id: UUID
    display_order: int


@dataclass(slots=True)
class MatrixCellInput:
    service_id: UUID
    station_id: UUID
    is_active: bool
    base_time_minutes: int
    remote_booking_allowed: bool
    requires_approval: bool


@dataclass(slots=True)
class WorkingHoursInput:
    weekday: int
    open_time: time
    close_time: time
    shift_order: int = 0


def format_time(value: time) -> str:
    return value.isoformat()


class CatalogService:
    """Service implementing catalog CRUD, matrix upsert and station lifecycle rules."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = CatalogRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_service(service: Service) -> dict[str, object]:
        return {
            "id": str(service.id),
            "name": service.name,
            "base_price": str(service.base_price),
            "description": service.description,
        }

    @staticmethod
    def serialize_station(station: Station) -> dict[str, object]:
        return {
            "id": str(station.id),
            "name": station.name,
            "is_active": station.is_active,
            "display_order": station.display_order,
        }

    @staticmethod
    def serialize_matrix_entry(entry: ServiceStationMatrixEntry) -> dict[str, object]:
        return {
            "service_id": str(entry.service_id),
            "station_id": str(entry.station_id),
            "is_active": entry.is_active,
            "base_time_minutes": entry.base_time_minutes,
            "remote_booking_allowed": entry.remote_booking_allowed,
            "requires_approval": entry.requires_staff_approval,
        }

    @staticmethod
    def serialize_working_hours(row: StationWorkingHours) -> dict[str, object]:
        return {
            "station_id": str(row.station_id),
            "weekday": row.weekday,
            "open_time": format_time(row.open_time),
            "close_time": format_time(row.close_time),
            "shift_order": row.shift_order,
        }

    # ---------- Lookups ----------
    def _get_service_or_404(self, service_id: UUID) -> Service:
        service = self.repo.get_service(service_id)
        if service is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found.")
        return service

    def _get_station_or_404(self, station_id: UUID) -> Station:
        station = self.repo.get_station(station_id)
        if station is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Station not found.")
        return station

    # ---------- Services ----------
    def list_services(self) -> list[Service]:
        return self.repo.list_services()

    def create_service(self, data: ServiceCreateData) -> Service:
        name = data.name.strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Service name is required.",
            )

        now = datetime.utcnow()
        service = Service(
            name=name,
            base_price=data.base_price,
            description=data.description,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_service(service)
        self.db.commit()
        self.db.refresh(service)
        logger.info("Service created", extra={"service_id": service.id})
        return service

    def update_service(self, service_id: UUID, data: ServiceUpdateData) -> Service:
        service = self._get_service_or_404(service_id)

        if data.name is not None:
            name = data.name.strip()
            if not name:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Service name cannot be empty.",
                )
            service.name = name
        if data.base_price is not None:
            service.base_price = data.base_price
        if data.description_provided or data.description is not None:
            service.description = data.description
        service.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(service)
        return service

    def delete_service(self, service_id: UUID) -> None:
        service = self._get_service_or_404(service_id)
        if self.repo.appointment_count_for_service(service.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Service has appointment history and cannot be deleted.",
            )

        self.repo.delete_service(service)
        self.db.commit()
        logger.info("Service deleted", extra={"service_id": service_id})

    # ---------- Stations ----------
    def list_stations(self, *, include_inactive: bool) -> list[Station]:
        return self.repo.list_stations(include_inactive=include_inactive)

    def create_station(self, data: StationCreateData) -> Station:
        name = data.name.strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Station name is required.",
            )

        now = datetime.utcnow()
        station = Station(
            name=name,
            is_active=data.is_active,
            display_order=self.repo.next_display_order(),
            created_at=now,
            updated_at=now,
        )
        self.repo.add_station(station)
        self.db.commit()
        self.db.refresh(station)
        logger.info("Station created", extra={"station_id": station.id})
        return station

    def update_station(self, station_id: UUID, data: StationUpdateData) -> Station:
        station = self._get_station_or_404(station_id)

        if data.name is not None:
            name = data.name.strip()
            if not name:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Station name cannot be empty.",
                )
            station.name = name
        if data.is_active is not None:
            station.is_active = data.is_active
        station.updated_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(station)
        return station

    def delete_station(self, station_id: UUID) -> None:
        station = self._get_station_or_404(station_id)
        if self.repo.appointment_count_for_station(station.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Station still has appointments; transfer them before deleting.",
            )

        self.repo.delete_station(station)
        self.db.commit()
        logger.info("Station deleted", extra={"station_id": station_id})

    def reorder_stations(self, updates: list[DisplayOrderUpdate]) -> list[Station]:
        stations: list[Station] = []
        for update in updates:
            if update.display_order < 0:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="display_order must be greater or equal zero.",
                )
            stations.append(self._get_station_or_404(update.station_id))

        now = datetime.utcnow()
        for station, update in zip(stations, updates):
            station.display_order = update.display_order
            station.updated_at = now

        self.db.commit()
        return self.repo.list_stations(include_inactive=True)

    # ---------- Matrix ----------
    def list_matrix_cells(
        self,
        *,
        service_ids: set[UUID] | None,
        station_ids: set[UUID] | None,
    ) -> list[ServiceStationMatrixEntry]:
        return self.repo.list_matrix_entries(service_ids=service_ids, station_ids=station_ids)

    def bulk_upsert_matrix_cells(self, cells: list[MatrixCellInput]) -> int:
        seen_keys: set[tuple[UUID, UUID]] = set()
        for cell in cells:
            if cell.base_time_minutes <= 0:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="base_time_minutes must be greater than zero.",
                )
            key = (cell.service_id, cell.station_id)
            if key in seen_keys:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Duplicate matrix cell key in bulk payload.",
                )
            seen_keys.add(key)

        service_ids = {cell.service_id for cell in cells}
        station_ids = {cell.station_id for cell in cells}
        known_services = {service.id for service in self.repo.list_services() if service.id in service_ids}
        known_stations = {
            station.id
            for station in self.repo.list_stations(include_inactive=True)
            if station.id in station_ids
        }
        if known_services != service_ids or known_stations != station_ids:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Matrix cells must reference existing services and stations.",
            )

        now = datetime.utcnow()
        try:
            with self.db.begin_nested():
                for cell in cells:
                    row = self.repo.get_matrix_entry(service_id=cell.service_id, station_id=cell.station_id)
                    if row is None:
                        row = self.repo.add_matrix_entry(
                            ServiceStationMatrixEntry(
                                service_id=cell.service_id,
                                station_id=cell.station_id,
                                price_adjustment=ZERO,
                            )
                        )
                    row.is_active = cell.is_active
                    row.base_time_minutes = cell.base_time_minutes
                    row.remote_booking_allowed = cell.remote_booking_allowed
                    row.requires_staff_approval = cell.requires_approval
                    row.updated_at = now
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Bulk matrix save violated cell uniqueness constraints.",
            ) from exc

        logger.info("Matrix cells upserted", extra={"count": len(cells)})
        return len(cells)

    # ---------- Working hours ----------
    def list_working_hours(self, station_id: UUID) -> list[StationWorkingHours]:
        self._get_station_or_404(station_id)
        return self.repo.list_working_hours(station_id)

    def replace_working_hours(self, station_id: UUID, rows: list[WorkingHoursInput]) -> list[StationWorkingHours]:
        self._get_station_or_404(station_id)
        for row in rows:
            if row.weekday < 0 or row.weekday > 6:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="weekday must be between 0 and 6.",
                )
            if row.close_time <= row.open_time:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="close_time must be later than open_time.",
                )

        self.repo.delete_working_hours(station_id)
        for row in rows:
            self.repo.add_working_hours(
                StationWorkingHours(
                    station_id=station_id,
                    weekday=row.weekday,
                    open_time=row.open_time,
                    close_time=row.close_time,
                    shift_order=row.shift_order,
                )
            )
        self.db.commit()
        return self.repo.list_working_hours(station_id)

    # ---------- Appointments ----------
    def transfer_appointments(self, *, from_station_id: UUID, to_station_id: UUID) -> int:
        if from_station_id == to_station_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Appointments cannot be transferred to the same station.",
            )
        self._get_station_or_404(from_station_id)
        self._get_station_or_404(to_station_id)

        count = self.repo.reassign_appointments(from_station_id=from_station_id, to_station_id=to_station_id)
        self.db.commit()
        logger.info(
            "Appointments transferred",
            extra={"station_id": from_station_id, "target_id": to_station_id, "count": count},
        )
        return count
