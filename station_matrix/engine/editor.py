"""Matrix editor: loading, filtering, saving and cache sync around the store."""

from __future__ import annotations

import enum
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from station_matrix.core.config import get_settings
from station_matrix.engine.errors import PersistenceError, ValidationError
from station_matrix.engine.notifier import LoggingNotifier, Notifier
from station_matrix.engine.paginator import AxisPaginator, FilterCriteria, filter_services
from station_matrix.engine.session_cache import MatrixViewState, SessionCache
from station_matrix.engine.store import MatrixStore
from station_matrix.gateway.base import PersistenceGateway
from station_matrix.gateway.records import ServiceRecord, StationRecord

logger = logging.getLogger(__name__)


class CacheSyncState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESTORING = "restoring"


class MatrixEditor:
    """Client-side state behind the service/station matrix screen.

    Store mutations go straight through ``editor.store``; the editor listens
    for them to re-filter rows and to refresh the session cache. Failed
    gateway calls are reported on the notifier and re-raised, leaving the
    working copy untouched for a retry.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        cache: SessionCache | None = None,
        notifier: Notifier | None = None,
        services_per_page: int | None = None,
        stations_per_view: int | None = None,
        default_duration_minutes: int | None = None,
    ) -> None:
        settings = get_settings()
        self.gateway = gateway
        self.cache = cache
        self.notifier = notifier or LoggingNotifier()
        self.store = MatrixStore(
            fallback_minutes=default_duration_minutes or settings.default_duration_minutes,
            notifier=self.notifier,
            on_change=self._on_store_change,
        )
        self.paginator = AxisPaginator(
            services_per_page=services_per_page or settings.services_per_page,
            stations_per_view=stations_per_view or settings.stations_per_view,
        )
        self.services: list[ServiceRecord] = []
        self.all_stations: list[StationRecord] = []
        self.sync_state = CacheSyncState.IDLE
        self.is_loading = False
        self.is_saving = False

    # Derived state

    @property
    def active_stations(self) -> list[StationRecord]:
        return [station for station in self.all_stations if station.is_active]

    @property
    def selected_station_ids(self) -> list[UUID]:
        return list(self.paginator.selected_station_ids)

    @property
    def filtered_services(self) -> list[ServiceRecord]:
        return list(self.paginator.filtered_services)

    @property
    def visible_services(self) -> list[ServiceRecord]:
        return self.paginator.visible_services

    @property
    def visible_stations(self) -> list[StationRecord]:
        return self.paginator.visible_stations

    def service_name(self, service_id: UUID) -> str:
        for service in self.services:
            if service.id == service_id:
                return service.name
        return "service"

    # Cache synchronisation

    def snapshot(self) -> MatrixViewState:
        return MatrixViewState(
            services=list(self.services),
            filtered_services=list(self.paginator.filtered_services),
            active_stations=self.active_stations,
            all_stations=list(self.all_stations),
            visible_stations=self.paginator.visible_stations,
            selected_station_ids=list(self.paginator.selected_station_ids),
            station_page=self.paginator.station_page,
            service_page=self.paginator.service_page,
            working=self.store.working,
            baseline=self.store.baseline,
            criteria=self.paginator.criteria,
        )

    def settle(self) -> None:
        """Capture the current state unless a load or restore is in progress."""

        if self.cache is None or self.sync_state is not CacheSyncState.IDLE:
            return
        self.cache.set(self.snapshot())

    def _on_store_change(self) -> None:
        self._refresh_rows()
        self.settle()

    def _refresh_rows(self) -> None:
        criteria = self.paginator.criteria
        self.paginator.set_filtered(filter_services(self.services, self.store, criteria), criteria)

    def mount(self) -> bool:
        """Restore from a fresh cache slot, or load. Returns True on restore."""

        cached = self.cache.get() if self.cache is not None else None
        if cached is None:
            self.load()
            return False
        self._restore(cached)
        return True

    def _restore(self, state: MatrixViewState) -> None:
        self.sync_state = CacheSyncState.RESTORING
        try:
            self.services = state.services
            self.all_stations = state.all_stations
            self.paginator.stations = list(state.all_stations)
            self.paginator.selected_station_ids = list(state.selected_station_ids)
            self.paginator.set_filtered(state.filtered_services, state.criteria)
            self.paginator.service_page = state.service_page
            self.paginator.station_page = state.station_page
            self.store.restore(state.working, state.baseline, [station.id for station in state.active_stations])
            self.paginator.filtered_services = list(state.filtered_services)
            self.is_loading = False
        finally:
            self.sync_state = CacheSyncState.IDLE
        logger.info("Matrix restored from session cache", extra={"count": len(self.services)})

    # Loading

    def _fail(self, message: str, exc: PersistenceError, **extra: Any) -> None:
        logger.warning("%s: %s", message, exc.message, extra=extra)
        self.notifier.error(exc.message or message)

    def _set_stations(self, stations: list[StationRecord]) -> None:
        self.all_stations = list(stations)
        self.paginator.stations = list(stations)

    def reload_stations(self) -> list[StationRecord]:
        stations = self.gateway.list_stations(include_inactive=True)
        self._set_stations(stations)
        return stations

    def reload_matrix(self) -> None:
        """Refetch cells for the known services and stations. Replaces the baseline wholesale."""

        records = self.gateway.list_matrix_cells(
            [service.id for service in self.services],
            [station.id for station in self.all_stations],
        )
        self.store.load([service.id for service in self.services], self.all_stations, records)

    def load(self) -> None:
        self.sync_state = CacheSyncState.LOADING
        self.is_loading = True
        try:
            self.services = self.gateway.list_services()
            stations = self.reload_stations()
            if not self.paginator.selected_station_ids:
                self.paginator.selected_station_ids = [station.id for station in stations if station.is_active]
            self.reload_matrix()
        except PersistenceError as exc:
            self._fail("Could not load the matrix", exc)
            raise
        finally:
            self.is_loading = False
            self.sync_state = CacheSyncState.IDLE
        self._refresh_rows()
        self.settle()

    # Filters and navigation

    def set_filters(self, criteria: FilterCriteria) -> None:
        self.paginator.set_filtered(filter_services(self.services, self.store, criteria), criteria)
        self.settle()

    def set_search_term(self, search_term: str) -> None:
        self.set_filters(replace(self.paginator.criteria, search_term=search_term))

    def toggle_station_selection(self, station_id: UUID) -> None:
        self.paginator.toggle_station_selection(station_id)
        self.settle()

    def next_station_page(self) -> None:
        self.paginator.next_station_page()
        self.settle()

    def previous_station_page(self) -> None:
        self.paginator.previous_station_page()
        self.settle()

    def next_service_page(self) -> None:
        self.paginator.next_service_page()
        self.settle()

    def previous_service_page(self) -> None:
        self.paginator.previous_service_page()
        self.settle()

    # Saving

    def save_row(self, service_id: UUID) -> bool:
        """Persist one row. Returns False when there is nothing to save or a save is pending."""

        if not self.store.is_row_dirty(service_id):
            return False
        if not self.store.begin_saving(service_id):
            return False

        name = self.service_name(service_id)
        snapshot = self.store.row_snapshot(service_id)
        records = self.store.build_row_records(service_id, snapshot)
        try:
            self.gateway.upsert_matrix_cells(records)
        except PersistenceError as exc:
            self._fail(f"Could not save changes for {name}", exc, service_id=service_id)
            raise
        finally:
            self.store.finish_saving(service_id)

        self.store.advance_baseline_row(service_id, snapshot)
        logger.info("Row saved", extra={"service_id": service_id, "count": len(records)})
        self.notifier.success(f"Changes for {name} saved")
        return True

    def revert_row(self, service_id: UUID) -> bool:
        return self.store.revert_row(service_id)

    def save_all(self) -> bool:
        if self.is_saving:
            return False
        self.is_saving = True
        try:
            records = self.store.build_matrix_records()
            try:
                self.gateway.upsert_matrix_cells(records)
            except PersistenceError as exc:
                self._fail("Could not save the matrix", exc)
                raise
            logger.info("Matrix saved", extra={"count": len(records)})
            self.notifier.success("Matrix saved")
            self.load()
        finally:
            self.is_saving = False
        return True

    # Entities

    def add_service(self, name: str, base_price: Decimal = Decimal("0")) -> ServiceRecord:
        name = name.strip()
        if not name:
            self.notifier.error("Service name is required")
            raise ValidationError("Service name is required")

        try:
            service = self.gateway.create_service(name, base_price)
            self.services = sorted([*self.services, service], key=lambda row: row.name)
            self.reload_matrix()
        except PersistenceError as exc:
            self._fail("Could not add the service", exc)
            raise

        logger.info("Service created", extra={"service_id": service.id})
        self.notifier.success("Service added")
        return service

    def add_station(self, name: str) -> StationRecord:
        name = name.strip()
        if not name:
            self.notifier.error("Station name is required")
            raise ValidationError("Station name is required")

        try:
            station = self.gateway.create_station(name, True)
            self.reload_stations()
            if station.id not in self.paginator.selected_station_ids:
                self.paginator.selected_station_ids = [*self.paginator.selected_station_ids, station.id]
            self.reload_matrix()
        except PersistenceError as exc:
            self._fail("Could not add the station", exc)
            raise

        logger.info("Station created", extra={"station_id": station.id})
        self.notifier.success("Station added")
        return station

    def delete_service(self, service_id: UUID) -> None:
        try:
            self.gateway.delete_service(service_id)
        except PersistenceError as exc:
            self._fail("Could not delete the service", exc, service_id=service_id)
            raise

        self.store.remove_service(service_id)
        logger.info("Service deleted", extra={"service_id": service_id})
        self.notifier.success("Service deleted")
        self.load()
