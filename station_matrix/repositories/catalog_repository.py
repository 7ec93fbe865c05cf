"""Repository helpers for the service/station catalog and matrix domain."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session

from station_matrix.models.entities import (
    Appointment,
    Service,
    ServiceStationMatrixEntry,
    Station,
    StationWorkingHours,
)


class CatalogRepository:
    """Persistence operations used by catalog, matrix and lifecycle services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Services ----------
    def list_services(self) -> list[Service]:
        return self.db.scalars(select(Service).order_by(Service.name.asc())).all()

    def get_service(self, service_id: UUID) -> Service | None:
        return self.db.scalar(select(Service).where(Service.id == service_id))

    def add_service(self, service: Service) -> Service:
        self.db.add(service)
        self.db.flush()
        return service

    def delete_service(self, service: Service) -> None:
        entries = self.db.scalars(
            select(ServiceStationMatrixEntry).where(ServiceStationMatrixEntry.service_id == service.id)
        ).all()
        for entry in entries:
            self.db.delete(entry)
        self.db.delete(service)
        self.db.flush()

    # ---------- Stations ----------
    def list_stations(self, *, include_inactive: bool = True) -> list[Station]:
        query = select(Station)
        if not include_inactive:
            query = query.where(Station.is_active.is_(True))
        return self.db.scalars(query.order_by(Station.display_order.asc(), Station.name.asc())).all()

    def get_station(self, station_id: UUID) -> Station | None:
        return self.db.scalar(select(Station).where(Station.id == station_id))

    def next_display_order(self) -> int:
        current = self.db.scalar(select(func.max(Station.display_order)))
        return 0 if current is None else current + 1

    def add_station(self, station: Station) -> Station:
        self.db.add(station)
        self.db.flush()
        return station

    def delete_station(self, station: Station) -> None:
        # Matrix cells and working hours go with the station.
        entries = self.db.scalars(
            select(ServiceStationMatrixEntry).where(ServiceStationMatrixEntry.station_id == station.id)
        ).all()
        for entry in entries:
            self.db.delete(entry)
        self.delete_working_hours(station.id)
        self.db.delete(station)
        self.db.flush()

    # ---------- Matrix entries ----------
    def list_matrix_entries(
        self,
        *,
        service_ids: set[UUID] | None = None,
        station_ids: set[UUID] | None = None,
    ) -> list[ServiceStationMatrixEntry]:
        conditions = []
        if service_ids is not None:
            conditions.append(ServiceStationMatrixEntry.service_id.in_(service_ids))
        if station_ids is not None:
            conditions.append(ServiceStationMatrixEntry.station_id.in_(station_ids))

        query = select(ServiceStationMatrixEntry)
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(
            query.order_by(
                ServiceStationMatrixEntry.service_id.asc(),
                ServiceStationMatrixEntry.station_id.asc(),
            )
        ).all()

    def get_matrix_entry(self, *, service_id: UUID, station_id: UUID) -> ServiceStationMatrixEntry | None:
        return self.db.scalar(
            select(ServiceStationMatrixEntry).where(
                and_(
                    ServiceStationMatrixEntry.service_id == service_id,
                    ServiceStationMatrixEntry.station_id == station_id,
                )
            )
        )

    def add_matrix_entry(self, entry: ServiceStationMatrixEntry) -> ServiceStationMatrixEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    # ---------- Working hours ----------
    def list_working_hours(self, station_id: UUID) -> list[StationWorkingHours]:
        return self.db.scalars(
            select(StationWorkingHours)
            .where(StationWorkingHours.station_id == station_id)
            .order_by(StationWorkingHours.weekday.asc(), StationWorkingHours.shift_order.asc())
        ).all()

    def add_working_hours(self, row: StationWorkingHours) -> StationWorkingHours:
        self.db.add(row)
        self.db.flush()
        return row

    def delete_working_hours(self, station_id: UUID) -> None:
        rows = self.db.scalars(
            select(StationWorkingHours).where(StationWorkingHours.station_id == station_id)
        ).all()
        for row in rows:
            self.db.delete(row)
        self.db.flush()

    # ---------- Appointments ----------
    def reassign_appointments(self, *, from_station_id: UUID, to_station_id: UUID) -> int:
        result = self.db.execute(
            update(Appointment)
            .where(Appointment.station_id == from_station_id)
            .values(station_id=to_station_id)
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount or 0

    # ---------- Existence checks used for safe deletes ----------
    def appointment_count_for_service(self, service_id: UUID) -> int:
        return (
            self.db.scalar(
                select(func.count()).select_from(Appointment).where(Appointment.service_id == service_id)
            )
            or 0
        )

    def appointment_count_for_station(self, station_id: UUID) -> int:
        return (
            self.db.scalar(
                select(func.count()).select_from(Appointment).where(Appointment.station_id == station_id)
            )
            or 0
        )
