from __future__ import annotations

import pytest

from station_matrix.engine.editor import MatrixEditor
from station_matrix.engine.errors import PersistenceError, ValidationError
from station_matrix.engine.notifier import RecordingNotifier
from station_matrix.gateway.records import StationOrderUpdate
from station_matrix.gateway.sql import SqlPersistenceGateway
from station_matrix.workflows.station_lifecycle import DeleteState, StationLifecycleWorkflow, display_order_updates
from tests.conftest import RecordingGateway, SeededCatalog


@pytest.fixture()
def lifecycle(editor: MatrixEditor) -> StationLifecycleWorkflow:
    return StationLifecycleWorkflow(editor)


def test_display_order_updates_put_unselected_after_selected(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    updates = display_order_updates([catalog.station_b.id, catalog.station_a.id], editor.all_stations)

    assert updates == [
        StationOrderUpdate(station_id=catalog.station_b.id, display_order=0),
        StationOrderUpdate(station_id=catalog.station_a.id, display_order=1),
        StationOrderUpdate(station_id=catalog.station_c.id, display_order=2),
    ]


def test_move_station_persists_and_adopts_server_order(
    lifecycle: StationLifecycleWorkflow,
    editor: MatrixEditor,
    catalog: SeededCatalog,
    gateway: SqlPersistenceGateway,
    recording_gateway: RecordingGateway,
) -> None:
    recording_gateway.calls.clear()

    assert lifecycle.move_station(catalog.station_b.id, catalog.station_a.id) is True

    assert editor.selected_station_ids == [catalog.station_b.id, catalog.station_a.id]
    assert [station.name for station in gateway.list_stations(include_inactive=True)] == [
        "Station B",
        "Station A",
        "Station C",
    ]
    assert recording_gateway.names() == ["reorder_stations", "list_stations"]


def test_move_station_ignores_drop_on_itself(lifecycle: StationLifecycleWorkflow, catalog: SeededCatalog) -> None:
    assert lifecycle.move_station(catalog.station_a.id, catalog.station_a.id) is False
    assert lifecycle.move_station(catalog.station_c.id, catalog.station_a.id) is False


def test_failed_reorder_rolls_back_selection(
    lifecycle: StationLifecycleWorkflow,
    editor: MatrixEditor,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
) -> None:
    recording_gateway.fail("list_stations")

    with pytest.raises(PersistenceError):
        lifecycle.reorder([catalog.station_b.id, catalog.station_a.id])

    assert editor.selected_station_ids == [catalog.station_a.id, catalog.station_b.id]
    assert notifier.errors == ["list_stations failed"]


def test_reorder_rejects_foreign_ids(lifecycle: StationLifecycleWorkflow, catalog: SeededCatalog) -> None:
    with pytest.raises(ValidationError):
        lifecycle.reorder([catalog.station_c.id, catalog.station_a.id])


def test_delete_without_target_is_rejected_before_remote_calls(
    lifecycle: StationLifecycleWorkflow,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
) -> None:
    lifecycle.request_delete(catalog.station_b.id)
    lifecycle.confirm_delete()
    recording_gateway.calls.clear()

    with pytest.raises(ValidationError):
        lifecycle.transfer_and_delete(None)
    with pytest.raises(ValidationError):
        lifecycle.transfer_and_delete(catalog.station_b.id)

    assert recording_gateway.calls == []
    assert lifecycle.delete_state is DeleteState.CHOOSE_TRANSFER_TARGET


def test_delete_requires_confirmation(lifecycle: StationLifecycleWorkflow, catalog: SeededCatalog) -> None:
    lifecycle.request_delete(catalog.station_b.id)

    with pytest.raises(ValidationError):
        lifecycle.transfer_and_delete(catalog.station_a.id)

    lifecycle.cancel_delete()
    assert lifecycle.delete_state is DeleteState.IDLE
    with pytest.raises(ValidationError):
        lifecycle.confirm_delete()


def test_transfer_runs_before_delete(
    lifecycle: StationLifecycleWorkflow,
    editor: MatrixEditor,
    catalog: SeededCatalog,
    gateway: SqlPersistenceGateway,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
) -> None:
    station_a, station_b = catalog.station_a.id, catalog.station_b.id
    appointment_id = catalog.appointment.id
    lifecycle.request_delete(station_b)
    lifecycle.confirm_delete()
    recording_gateway.calls.clear()

    transferred = lifecycle.transfer_and_delete(station_a)

    assert transferred == 1
    assert recording_gateway.calls[:2] == [
        ("transfer_appointments", (station_b, station_a)),
        ("delete_station", (station_b,)),
    ]
    assert lifecycle.delete_state is DeleteState.IDLE
    assert station_b not in editor.selected_station_ids
    assert station_b not in [station.id for station in editor.all_stations]
    assert editor.store.cell(catalog.haircut.id, station_b) is None
    assert gateway.list_matrix_cells([catalog.haircut.id], [station_b]) == []
    assert catalog.appointment.station_id == station_a
    assert catalog.appointment.id == appointment_id
    assert notifier.successes[-1] == "Station deleted and appointments transferred"


def test_failed_delete_keeps_waiting_for_target(
    lifecycle: StationLifecycleWorkflow,
    editor: MatrixEditor,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
) -> None:
    recording_gateway.fail("delete_station")
    lifecycle.request_delete(catalog.station_b.id)
    lifecycle.confirm_delete()

    with pytest.raises(PersistenceError):
        lifecycle.transfer_and_delete(catalog.station_a.id)

    assert lifecycle.delete_state is DeleteState.CHOOSE_TRANSFER_TARGET
    assert catalog.station_b.id in editor.selected_station_ids


def test_station_with_appointments_cannot_be_deleted_directly(
    gateway: SqlPersistenceGateway,
    catalog: SeededCatalog,
) -> None:
    with pytest.raises(PersistenceError) as exc_info:
        gateway.delete_station(catalog.station_b.id)

    assert "transfer" in exc_info.value.message
