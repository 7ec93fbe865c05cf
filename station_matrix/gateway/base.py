"""Persistence gateway port used by the matrix editor and workflows."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from station_matrix.gateway.records import (
    CellRecord,
    ServiceRecord,
    StationOrderUpdate,
    StationRecord,
    WorkingHoursRecord,
)


class PersistenceGateway(ABC):
    """Request/response contract for fetching and persisting matrix data.

    Every method raises ``PersistenceError`` when the remote call fails.
    Calls are independent: nothing here groups several calls into one
    transaction.
    """

    @abstractmethod
    def list_services(self) -> list[ServiceRecord]:
        """Return all services ordered by name."""
        raise NotImplementedError

    @abstractmethod
    def list_stations(self, include_inactive: bool) -> list[StationRecord]:
        """Return stations ordered by display order, then name."""
        raise NotImplementedError

    @abstractmethod
    def list_matrix_cells(self, service_ids: Iterable[UUID], station_ids: Iterable[UUID]) -> list[CellRecord]:
        raise NotImplementedError

    @abstractmethod
    def upsert_matrix_cells(self, records: list[CellRecord]) -> None:
        """Insert or update cells keyed by ``(service_id, station_id)``."""
        raise NotImplementedError

    @abstractmethod
    def create_service(
        self,
        name: str,
        base_price: Decimal,
        description: str | None = None,
    ) -> ServiceRecord:
        raise NotImplementedError

    @abstractmethod
    def update_service(self, service_id: UUID, *, base_price: Decimal, description: str | None) -> ServiceRecord:
        """Overwrite scalar fields; a None description clears it. The name is never changed here."""
        raise NotImplementedError

    @abstractmethod
    def delete_service(self, service_id: UUID) -> None:
        """Delete a service; refused when it has appointment history."""
        raise NotImplementedError

    @abstractmethod
    def create_station(self, name: str, is_active: bool) -> StationRecord:
        raise NotImplementedError

    @abstractmethod
    def update_station(self, station_id: UUID, *, is_active: bool) -> StationRecord:
        raise NotImplementedError

    @abstractmethod
    def delete_station(self, station_id: UUID) -> None:
        """Delete a station together with its matrix cells and working hours."""
        raise NotImplementedError

    @abstractmethod
    def reorder_stations(self, updates: list[StationOrderUpdate]) -> None:
        """Persist display orders one station at a time, in list order.

        A failure part-way leaves earlier writes in place.
        """
        raise NotImplementedError

    @abstractmethod
    def list_working_hours(self, station_id: UUID) -> list[WorkingHoursRecord]:
        """Return shifts ordered by weekday, then shift order."""
        raise NotImplementedError

    @abstractmethod
    def replace_working_hours(self, station_id: UUID, records: list[WorkingHoursRecord]) -> None:
        """Delete the station's shifts, then insert ``records``."""
        raise NotImplementedError

    @abstractmethod
    def transfer_appointments(self, from_station_id: UUID, to_station_id: UUID) -> int:
        """Move every appointment of one station to another; return the count."""
        raise NotImplementedError
