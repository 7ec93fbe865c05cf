"""Gateway adapter that talks to the HTTP API with httpx."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import time
from decimal import Decimal
from typing import Any
from uuid import UUID

import httpx

from station_matrix.engine.errors import PersistenceError
from station_matrix.gateway.base import PersistenceGateway
from station_matrix.gateway.records import (
    CellRecord,
    ServiceRecord,
    StationOrderUpdate,
    StationRecord,
    WorkingHoursRecord,
)

logger = logging.getLogger(__name__)


def _service_record(payload: dict[str, Any]) -> ServiceRecord:
    return ServiceRecord(
        id=UUID(payload["id"]),
        name=payload["name"],
        base_price=Decimal(str(payload["base_price"])),
        description=payload.get("description"),
    )


def _station_record(payload: dict[str, Any]) -> StationRecord:
    return StationRecord(
        id=UUID(payload["id"]),
        name=payload["name"],
        is_active=bool(payload["is_active"]),
        display_order=int(payload.get("display_order") or 0),
    )


def _cell_record(payload: dict[str, Any]) -> CellRecord:
    return CellRecord(
        service_id=UUID(payload["service_id"]),
        station_id=UUID(payload["station_id"]),
        is_active=bool(payload["is_active"]),
        base_time_minutes=int(payload["base_time_minutes"]),
        remote_booking_allowed=bool(payload["remote_booking_allowed"]),
        requires_approval=bool(payload["requires_approval"]),
    )


def _working_hours_record(payload: dict[str, Any]) -> WorkingHoursRecord:
    return WorkingHoursRecord(
        weekday=int(payload["weekday"]),
        open_time=time.fromisoformat(payload["open_time"]),
        close_time=time.fromisoformat(payload["close_time"]),
        shift_order=int(payload.get("shift_order") or 0),
    )


class HttpPersistenceGateway(PersistenceGateway):
    """Gateway over the JSON API. Accepts any ``httpx.Client``."""

    def __init__(self, client: httpx.Client, api_prefix: str = "/api/v1") -> None:
        self.client = client
        self.api_prefix = api_prefix.rstrip("/")

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_prefix}{path}"
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s transport failure: %s", method, url, exc)
            raise PersistenceError(f"Request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.warning("%s %s returned %s: %s", method, url, response.status_code, detail)
            raise PersistenceError(detail)
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        detail = payload.get("detail") if isinstance(payload, dict) else None
        if isinstance(detail, str):
            return detail
        if detail:
            return str(detail)
        return f"HTTP {response.status_code}"

    def list_services(self) -> list[ServiceRecord]:
        items = self._request("GET", "/services").json()["items"]
        return [_service_record(item) for item in items]

    def list_stations(self, include_inactive: bool) -> list[StationRecord]:
        response = self._request(
            "GET",
            "/stations",
            params={"include_inactive": "true" if include_inactive else "false"},
        )
        return [_station_record(item) for item in response.json()["items"]]

    def list_matrix_cells(self, service_ids: Iterable[UUID], station_ids: Iterable[UUID]) -> list[CellRecord]:
        response = self._request(
            "POST",
            "/matrix/cells/query",
            json={
                "service_ids": [str(value) for value in service_ids],
                "station_ids": [str(value) for value in station_ids],
            },
        )
        return [_cell_record(item) for item in response.json()["items"]]

    def upsert_matrix_cells(self, records: list[CellRecord]) -> None:
        if not records:
            return
        self._request(
            "PUT",
            "/matrix/cells/bulk",
            json={
                "cells": [
                    {
                        "service_id": str(record.service_id),
                        "station_id": str(record.station_id),
                        "is_active": record.is_active,
                        "base_time_minutes": record.base_time_minutes,
                        "remote_booking_allowed": record.remote_booking_allowed,
                        "requires_approval": record.requires_approval,
                    }
                    for record in records
                ]
            },
        )

    def create_service(
        self,
        name: str,
        base_price: Decimal,
        description: str | None = None,
    ) -> ServiceRecord:
        response = self._request(
            "POST",
            "/services",
            json={"name": name, "base_price": str(base_price), "description": description},
        )
        return _service_record(response.json())

    def update_service(self, service_id: UUID, *, base_price: Decimal, description: str | None) -> ServiceRecord:
        response = self._request(
            "PATCH",
            f"/services/{service_id}",
            json={"base_price": str(base_price), "description": description},
        )
        return _service_record(response.json())

    def delete_service(self, service_id: UUID) -> None:
        self._request("DELETE", f"/services/{service_id}")

    def create_station(self, name: str, is_active: bool) -> StationRecord:
        response = self._request("POST", "/stations", json={"name": name, "is_active": is_active})
        return _station_record(response.json())

    def update_station(self, station_id: UUID, *, is_active: bool) -> StationRecord:
        response = self._request("PATCH", f"/stations/{station_id}", json={"is_active": is_active})
        return _station_record(response.json())

    def delete_station(self, station_id: UUID) -> None:
        self._request("DELETE", f"/stations/{station_id}")

    def reorder_stations(self, updates: list[StationOrderUpdate]) -> None:
        for update in updates:
            self._request(
                "PUT",
                "/stations/display-order",
                json={"updates": [{"id": str(update.station_id), "display_order": update.display_order}]},
            )

    def list_working_hours(self, station_id: UUID) -> list[WorkingHoursRecord]:
        response = self._request("GET", f"/stations/{station_id}/working-hours")
        return [_working_hours_record(item) for item in response.json()["items"]]

    def replace_working_hours(self, station_id: UUID, records: list[WorkingHoursRecord]) -> None:
        self._request(
            "PUT",
            f"/stations/{station_id}/working-hours",
            json={
                "items": [
                    {
                        "weekday": record.weekday,
                        "open_time": record.open_time.isoformat(),
                        "close_time": record.close_time.isoformat(),
                        "shift_order": record.shift_order,
                    }
                    for record in records
                ]
            },
        )

    def transfer_appointments(self, from_station_id: UUID, to_station_id: UUID) -> int:
        response = self._request(
            "POST",
            "/appointments/transfer",
            json={"from_station_id": str(from_station_id), "to_station_id": str(to_station_id)},
        )
        return int(response.json()["transferred"])
