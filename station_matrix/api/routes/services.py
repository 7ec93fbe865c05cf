"""Service catalog endpoints."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from station_matrix.db.dependencies import get_db_session
from station_matrix.services.catalog_service import CatalogService, ServiceCreateData, ServiceUpdateData

router = APIRouter(tags=["services"])


class ServiceCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    base_price: Decimal = Field(default=Decimal("0.00"), ge=0)
    description: str | None = Field(default=None, max_length=2000)


class ServiceUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    base_price: Decimal | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)


def _catalog_service(db: Session) -> CatalogService:
    return CatalogService(db)


@router.get("/services")
def list_services(db: Session = Depends(get_db_session)) -> dict[str, list[object]]:
    service = _catalog_service(db)
    return {"items": [service.serialize_service(row) for row in service.list_services()]}


@router.post("/services", status_code=status.HTTP_201_CREATED)
def create_service(payload: ServiceCreatePayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _catalog_service(db)
    row = service.create_service(
        ServiceCreateData(
            name=payload.name,
            base_price=payload.base_price,
            description=payload.description,
        )
    )
    return service.serialize_service(row)


@router.patch("/services/{service_id}")
def update_service(
    service_id: UUID,
    payload: ServiceUpdatePayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog_service(db)
    row = service.update_service(
        service_id,
        ServiceUpdateData(
            name=payload.name,
            base_price=payload.base_price,
            description=payload.description,
            description_provided="description" in payload.model_fields_set,
        ),
    )
    return service.serialize_service(row)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(service_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _catalog_service(db).delete_service(service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
