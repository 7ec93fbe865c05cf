"""Plain records exchanged with the persistence gateway."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    id: UUID
    name: str
    base_price: Decimal
    description: str | None = None


@dataclass(frozen=True, slots=True)
class StationRecord:
    id: UUID
    name: str
    is_active: bool
    display_order: int = 0


@dataclass(frozen=True, slots=True)
class CellRecord:
    service_id: UUID
    station_id: UUID
    is_active: bool
    base_time_minutes: int
    remote_booking_allowed: bool = False
    requires_approval: bool = False


@dataclass(frozen=True, slots=True)
class WorkingHoursRecord:
    weekday: int
    open_time: time
    close_time: time
    shift_order: int = 0


@dataclass(frozen=True, slots=True)
class StationOrderUpdate:
    station_id: UUID
    display_order: int
