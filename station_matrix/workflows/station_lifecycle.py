"""Station reordering and delete-with-transfer."""

from __future__ import annotations

import enum
import logging
from uuid import UUID

from station_matrix.engine.editor import MatrixEditor
from station_matrix.engine.errors import PersistenceError, ValidationError
from station_matrix.gateway.records import StationOrderUpdate, StationRecord

logger = logging.getLogger(__name__)


class DeleteState(str, enum.Enum):
    IDLE = "idle"
    CONFIRM_DELETE = "confirm_delete"
    CHOOSE_TRANSFER_TARGET = "choose_transfer_target"


def display_order_updates(
    ordered_selected_ids: list[UUID],
    stations: list[StationRecord],
) -> list[StationOrderUpdate]:
    """Dense orders: selected stations first, then the rest in their current order."""

    updates = [
        StationOrderUpdate(station_id=station_id, display_order=index)
        for index, station_id in enumerate(ordered_selected_ids)
    ]
    selected = set(ordered_selected_ids)
    unselected = [station for station in stations if station.id not in selected]
    updates.extend(
        StationOrderUpdate(station_id=station.id, display_order=len(ordered_selected_ids) + index)
        for index, station in enumerate(unselected)
    )
    return updates


class StationLifecycleWorkflow:
    def __init__(self, editor: MatrixEditor) -> None:
        self.editor = editor
        self.gateway = editor.gateway
        self.notifier = editor.notifier
        self.delete_state = DeleteState.IDLE
        self.station_to_delete: UUID | None = None

    def _rejected(self, message: str) -> ValidationError:
        self.notifier.error(message)
        return ValidationError(message)

    # ---------- Reorder ----------
    def move_station(self, active_id: UUID, over_id: UUID) -> bool:
        """Drop ``active_id`` at the position of ``over_id`` in the selection."""

        order = list(self.editor.paginator.selected_station_ids)
        if active_id == over_id or active_id not in order or over_id not in order:
            return False
        new_index = order.index(over_id)
        order.remove(active_id)
        order.insert(new_index, active_id)
        self.reorder(order)
        return True

    def reorder(self, new_order: list[UUID]) -> None:
        """Persist a new selection order, then adopt the order the server reports.

        On failure the selection goes back to its previous order. Display
        orders already written are left as they are.
        """

        paginator = self.editor.paginator
        previous = list(paginator.selected_station_ids)
        if sorted(new_order, key=str) != sorted(previous, key=str):
            raise self._rejected("New order must contain exactly the selected stations")

        paginator.selected_station_ids = list(new_order)
        updates = display_order_updates(new_order, self.editor.all_stations)
        try:
            self.gateway.reorder_stations(updates)
            stations = self.editor.reload_stations()
        except PersistenceError as exc:
            paginator.selected_station_ids = previous
            logger.warning("Station reorder failed: %s", exc.message)
            self.notifier.error(exc.message)
            self.editor.settle()
            raise

        selected = set(new_order)
        paginator.selected_station_ids = [station.id for station in stations if station.id in selected]
        logger.info("Stations reordered", extra={"count": len(updates)})
        self.notifier.success("Station order updated")
        self.editor.settle()

    # ---------- Delete ----------
    def request_delete(self, station_id: UUID) -> None:
        if not any(station.id == station_id for station in self.editor.all_stations):
            raise self._rejected("Station not found")
        self.station_to_delete = station_id
        self.delete_state = DeleteState.CONFIRM_DELETE

    def confirm_delete(self) -> None:
        if self.delete_state is not DeleteState.CONFIRM_DELETE:
            raise self._rejected("No station deletion to confirm")
        self.delete_state = DeleteState.CHOOSE_TRANSFER_TARGET

    def cancel_delete(self) -> None:
        self.delete_state = DeleteState.IDLE
        self.station_to_delete = None

    def transfer_and_delete(self, target_station_id: UUID | None) -> int:
        """Move the station's appointments to the target, then delete the station.

        Returns the number of transferred appointments. A failed remote call
        keeps the workflow waiting for a transfer target.
        """

        if self.delete_state is not DeleteState.CHOOSE_TRANSFER_TARGET or self.station_to_delete is None:
            raise self._rejected("Confirm the station deletion first")
        if target_station_id is None:
            raise self._rejected("Choose a station to receive the appointments")
        station_id = self.station_to_delete
        if target_station_id == station_id:
            raise self._rejected("Appointments cannot be transferred to the same station")
        if not any(station.id == target_station_id for station in self.editor.all_stations):
            raise self._rejected("Transfer station not found")

        try:
            transferred = self.gateway.transfer_appointments(station_id, target_station_id)
            self.gateway.delete_station(station_id)
        except PersistenceError as exc:
            logger.warning(
                "Station delete failed: %s",
                exc.message,
                extra={"station_id": station_id, "target_id": target_station_id},
            )
            self.notifier.error(exc.message)
            raise

        self.delete_state = DeleteState.IDLE
        self.station_to_delete = None
        paginator = self.editor.paginator
        paginator.selected_station_ids = [value for value in paginator.selected_station_ids if value != station_id]
        self.editor.store.remove_station(station_id)
        logger.info(
            "Station deleted after transfer",
            extra={"station_id": station_id, "target_id": target_station_id, "count": transferred},
        )

        try:
            self.editor.reload_stations()
            self.editor.reload_matrix()
        except PersistenceError as exc:
            self.notifier.error(exc.message)
            raise

        self.notifier.success("Station deleted and appointments transferred")
        return transferred
