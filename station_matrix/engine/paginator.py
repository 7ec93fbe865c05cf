"""Row filtering and independent row/column windows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from uuid import UUID

from station_matrix.engine.durations import parse_duration_to_minutes
from station_matrix.engine.store import MatrixStore
from station_matrix.gateway.records import ServiceRecord, StationRecord


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    search_term: str = ""
    column_station_id: UUID | None = None
    is_active: bool | None = None
    remote_booking: bool | None = None
    needs_approval: bool | None = None
    duration_min: str = ""
    duration_max: str = ""


def filter_services(
    services: list[ServiceRecord],
    store: MatrixStore,
    criteria: FilterCriteria,
) -> list[ServiceRecord]:
    """Apply the search term, then the column filters when a column is chosen."""

    search = criteria.search_term.strip().lower()
    min_minutes = parse_duration_to_minutes(criteria.duration_min)
    max_minutes = parse_duration_to_minutes(criteria.duration_max)

    filtered = []
    for service in services:
        if search and search not in service.name.lower():
            continue

        if criteria.column_station_id is not None:
            cell = store.cell(service.id, criteria.column_station_id)
            supported = bool(cell and cell.supported)
            if criteria.is_active is not None and supported != criteria.is_active:
                continue
            remote = bool(cell and cell.remote_booking_allowed)
            if criteria.remote_booking is not None and remote != criteria.remote_booking:
                continue
            approval = bool(cell and cell.approval_needed)
            if criteria.needs_approval is not None and approval != criteria.needs_approval:
                continue
            if min_minutes is not None or max_minutes is not None:
                duration = cell.station_time if cell is not None else None
                if duration is None:
                    duration = store.default_time_for(service.id) or store.fallback_minutes
                if min_minutes is not None and duration < min_minutes:
                    continue
                if max_minutes is not None and duration > max_minutes:
                    continue

        filtered.append(service)
    return filtered


class AxisPaginator:
    """Service pages of fixed size and a sliding station window without wraparound."""

    def __init__(self, *, services_per_page: int, stations_per_view: int) -> None:
        self.services_per_page = services_per_page
        self.stations_per_view = stations_per_view
        self.service_page = 0
        self.station_page = 0
        self.criteria = FilterCriteria()
        self.filtered_services: list[ServiceRecord] = []
        self.stations: list[StationRecord] = []
        self.selected_station_ids: list[UUID] = []
        self._applied_criteria = FilterCriteria()

    # Rows

    def set_filtered(self, filtered_services: list[ServiceRecord], criteria: FilterCriteria) -> None:
        """Store the filtered rows. The row page resets only when the criteria changed."""

        self.filtered_services = list(filtered_services)
        self.criteria = criteria
        if criteria != self._applied_criteria:
            self.service_page = 0
            self._applied_criteria = criteria

    @property
    def max_service_page(self) -> int:
        return max(0, math.ceil(len(self.filtered_services) / self.services_per_page) - 1)

    @property
    def current_service_page(self) -> int:
        """The stored page, clamped to the pages the filtered rows fill."""

        return min(self.service_page, self.max_service_page)

    @property
    def visible_services(self) -> list[ServiceRecord]:
        start = self.current_service_page * self.services_per_page
        return self.filtered_services[start : start + self.services_per_page]

    @property
    def can_go_previous_service(self) -> bool:
        return self.current_service_page > 0

    @property
    def can_go_next_service(self) -> bool:
        return self.current_service_page < self.max_service_page

    def next_service_page(self) -> None:
        if self.can_go_next_service:
            self.service_page = self.current_service_page + 1

    def previous_service_page(self) -> None:
        if self.can_go_previous_service:
            self.service_page = self.current_service_page - 1

    # Columns

    @property
    def selected_stations(self) -> list[StationRecord]:
        selected = set(self.selected_station_ids)
        return [station for station in self.stations if station.id in selected]

    @property
    def max_station_page(self) -> int:
        return max(0, len(self.selected_stations) - self.stations_per_view)

    @property
    def visible_stations(self) -> list[StationRecord]:
        selected = self.selected_stations
        if self.criteria.column_station_id is not None:
            return [station for station in selected if station.id == self.criteria.column_station_id]
        start = min(self.station_page, self.max_station_page)
        return selected[start : start + self.stations_per_view]

    @property
    def can_go_previous_station(self) -> bool:
        return self.station_page > 0

    @property
    def can_go_next_station(self) -> bool:
        return self.station_page < self.max_station_page

    def next_station_page(self) -> None:
        if self.can_go_next_station:
            self.station_page += 1

    def previous_station_page(self) -> None:
        if self.can_go_previous_station:
            self.station_page -= 1

    def toggle_station_selection(self, station_id: UUID) -> None:
        if station_id in self.selected_station_ids:
            self.selected_station_ids = [value for value in self.selected_station_ids if value != station_id]
        else:
            self.selected_station_ids = [*self.selected_station_ids, station_id]
        self.station_page = 0
