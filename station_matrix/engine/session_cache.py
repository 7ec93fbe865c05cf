"""Single-slot, time-boxed snapshot of the editor's visible state."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import UUID

from station_matrix.core.config import get_settings
from station_matrix.engine.cells import CellMatrix
from station_matrix.engine.paginator import FilterCriteria
from station_matrix.gateway.records import ServiceRecord, StationRecord

logger = logging.getLogger(__name__)


@dataclass
class MatrixViewState:
    services: list[ServiceRecord]
    filtered_services: list[ServiceRecord]
    active_stations: list[StationRecord]
    all_stations: list[StationRecord]
    visible_stations: list[StationRecord]
    selected_station_ids: list[UUID]
    station_page: int
    service_page: int
    working: CellMatrix
    baseline: CellMatrix
    criteria: FilterCriteria = field(default_factory=FilterCriteria)

    def copy(self) -> MatrixViewState:
        return MatrixViewState(
            services=list(self.services),
            filtered_services=list(self.filtered_services),
            active_stations=list(self.active_stations),
            all_stations=list(self.all_stations),
            visible_stations=list(self.visible_stations),
            selected_station_ids=list(self.selected_station_ids),
            station_page=self.station_page,
            service_page=self.service_page,
            working=self.working.clone(),
            baseline=self.baseline.clone(),
            criteria=self.criteria,
        )


class SessionCache:
    """Holds at most one state, valid for ``ttl_seconds`` after it was stored.

    Values are copied on the way in and on the way out, so a restored editor
    never shares matrices with the cache slot.
    """

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().matrix_cache_ttl_seconds
        self.clock = clock
        self._timestamp: float | None = None
        self._state: MatrixViewState | None = None

    def get(self) -> MatrixViewState | None:
        if self._state is None or self._timestamp is None:
            return None
        age = self.clock() - self._timestamp
        if age >= self.ttl_seconds:
            logger.debug("Session cache expired after %.1fs", age)
            return None
        return self._state.copy()

    def set(self, state: MatrixViewState) -> None:
        self._state = state.copy()
        self._timestamp = self.clock()

    def clear(self) -> None:
        self._state = None
        self._timestamp = None

    @property
    def timestamp(self) -> float | None:
        return self._timestamp
