"""Matrix read/write endpoints for service-station cells."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from station_matrix.db.dependencies import get_db_session
from station_matrix.services.catalog_service import CatalogService, MatrixCellInput

router = APIRouter(tags=["matrix"])


class MatrixCellQueryPayload(BaseModel):
    service_ids: list[UUID] | None = None
    station_ids: list[UUID] | None = None


class MatrixCellPayload(BaseModel):
    service_id: UUID
    station_id: UUID
    is_active: bool
    base_time_minutes: int = Field(gt=0)
    remote_booking_allowed: bool = False
    requires_approval: bool = False


class MatrixBulkUpsertPayload(BaseModel):
    cells: list[MatrixCellPayload]


def _catalog_service(db: Session) -> CatalogService:
    return CatalogService(db)


@router.post("/matrix/cells:query")
@router.post("/matrix/cells/query")
def query_matrix_cells(
    payload: MatrixCellQueryPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _catalog_service(db)
    rows = service.list_matrix_cells(
        service_ids=set(payload.service_ids) if payload.service_ids is not None else None,
        station_ids=set(payload.station_ids) if payload.station_ids is not None else None,
    )
    return {"items": [service.serialize_matrix_entry(row) for row in rows]}


@router.put("/matrix/cells:bulk")
@router.put("/matrix/cells/bulk")
def put_matrix_cells_bulk(
    payload: MatrixBulkUpsertPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, int]:
    service = _catalog_service(db)
    updated = service.bulk_upsert_matrix_cells(
        [
            MatrixCellInput(
                service_id=cell.service_id,
                station_id=cell.station_id,
                is_active=cell.is_active,
                base_time_minutes=cell.base_time_minutes,
                remote_booking_allowed=cell.remote_booking_allowed,
                requires_approval=cell.requires_approval,
            )
            for cell in payload.cells
        ]
    )
    return {"updated_cells": updated}
