"""Station lifecycle, working hours and appointment transfer endpoints."""

from __future__ import annotations

from datetime import time
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from station_matrix.db.dependencies import get_db_session
from station_matrix.services.catalog_service import (
    CatalogService,
    DisplayOrderUpdate,
    StationCreateData,
    StationUpdateData,
    WorkingHoursInput,
)

router = APIRouter(tags=["stations"])


class StationCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = True


class StationUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None


class DisplayOrderEntryPayload(BaseModel):
    id: UUID
    display_order: int = Field(ge=0)


class DisplayOrderPayload(BaseModel):
    updates: list[DisplayOrderEntryPayload]


class WorkingHoursEntryPayload(BaseModel):
    weekday: int = Field(ge=0, le=6)
    open_time: time
    close_time: time
    shift_order: int = Field(default=0, ge=0)


class WorkingHoursPayload(BaseModel):
    items: list[WorkingHoursEntryPayload]


class AppointmentTransferPayload(BaseModel):
    from_station_id: UUID
    to_station_id: UUID


def _catalog_service(db: Session) -> CatalogService:
    return CatalogService(db)


@router.get("/stations")
def list_stations(
    include_inactive: bool = True,
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _catalog_service(db)
    rows = service.list_stations(include_inactive=include_inactive)
    return {"items": [service.serialize_station(row) for row in rows]}


@router.post("/stations", status_code=status.HTTP_201_CREATED)
def create_station(payload: StationCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _catalog_service(db)
    row = service.create_station(StationCreateData(name=payload.name, is_active=payload.is_active))
    return service.serialize_station(row)


@router.put("/stations/display-order")
def reorder_stations(payload: DisplayOrderPayload, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _catalog_service(db)
    rows = service.reorder_stations(
        [DisplayOrderUpdate(station_id=entry.id, display_order=entry.display_order) for entry in payload.updates]
    )
    return {"items": [service.serialize_station(row) for row in rows]}


@router.patch("/stations/{station_id}")
def update_station(
    station_id: UUID,
    payload: StationUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog_service(db)
    row = service.update_station(
        station_id,
        StationUpdateData(name=payload.name, is_active=payload.is_active),
    )
    return service.serialize_station(row)


@router.delete("/stations/{station_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_station(station_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _catalog_service(db).delete_station(station_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stations/{station_id}/working-hours")
def list_working_hours(station_id: UUID, db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _catalog_service(db)
    rows = service.list_working_hours(station_id)
    return {"items": [service.serialize_working_hours(row) for row in rows]}


@router.put("/stations/{station_id}/working-hours")
def replace_working_hours(
    station_id: UUID,
    payload: WorkingHoursPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _catalog_service(db)
    rows = service.replace_working_hours(
        station_id,
        [
            WorkingHoursInput(
                weekday=entry.weekday,
                open_time=entry.open_time,
                close_time=entry.close_time,
                shift_order=entry.shift_order,
            )
            for entry in payload.items
        ],
    )
    return {"items": [service.serialize_working_hours(row) for row in rows]}


@router.post("/appointments/transfer")
def transfer_appointments(
    payload: AppointmentTransferPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, int]:
    count = _catalog_service(db).transfer_appointments(
        from_station_id=payload.from_station_id,
        to_station_id=payload.to_station_id,
    )
    return {"transferred": count}
