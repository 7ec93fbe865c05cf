from __future__ import annotations

import pytest

from station_matrix.engine.editor import MatrixEditor
from station_matrix.engine.errors import PersistenceError, ValidationError
from station_matrix.engine.notifier import RecordingNotifier
from station_matrix.gateway.sql import SqlPersistenceGateway
from tests.conftest import RecordingGateway, SeededCatalog


def _stored_cells(gateway: SqlPersistenceGateway, catalog: SeededCatalog, service_id):
    records = gateway.list_matrix_cells(
        [service_id],
        [catalog.station_a.id, catalog.station_b.id, catalog.station_c.id],
    )
    return {record.station_id: record for record in records}


def test_load_populates_rows_columns_and_selection(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
) -> None:
    assert [service.name for service in editor.services] == ["Bath", "Haircut"]
    assert [station.name for station in editor.all_stations] == ["Station A", "Station B", "Station C"]
    assert [station.name for station in editor.active_stations] == ["Station A", "Station B"]
    assert editor.selected_station_ids == [catalog.station_a.id, catalog.station_b.id]
    assert [service.name for service in editor.visible_services] == ["Bath"]
    assert [station.name for station in editor.visible_stations] == ["Station A"]
    assert recording_gateway.names() == ["list_services", "list_stations", "list_matrix_cells"]

    bath_b = editor.store.cell(catalog.bath.id, catalog.station_b.id)
    assert bath_b.supported is False
    assert editor.store.default_time_for(catalog.bath.id) == 30
    assert editor.store.default_time_for(catalog.haircut.id) == 45


def test_save_row_persists_complete_row_and_advances_baseline(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    gateway: SqlPersistenceGateway,
    notifier: RecordingNotifier,
) -> None:
    editor.store.set_station_time(catalog.bath.id, catalog.station_a.id, "40")
    assert editor.store.dirty_service_ids() == [catalog.bath.id]

    assert editor.save_row(catalog.bath.id) is True

    assert editor.store.is_row_dirty(catalog.bath.id) is False
    assert notifier.successes[-1] == "Changes for Bath saved"
    stored = _stored_cells(gateway, catalog, catalog.bath.id)
    assert stored[catalog.station_a.id].base_time_minutes == 40
    assert stored[catalog.station_a.id].is_active is True
    assert stored[catalog.station_b.id].is_active is False
    assert stored[catalog.station_b.id].base_time_minutes == 60
    assert stored[catalog.station_c.id].is_active is False


def test_save_row_skips_clean_rows(editor: MatrixEditor, catalog: SeededCatalog, recording_gateway: RecordingGateway) -> None:
    assert editor.save_row(catalog.haircut.id) is False
    assert "upsert_matrix_cells" not in recording_gateway.names()


def test_save_row_skips_row_already_saving(editor: MatrixEditor, catalog: SeededCatalog, recording_gateway: RecordingGateway) -> None:
    editor.store.toggle_supported(catalog.bath.id, catalog.station_b.id)
    editor.store.begin_saving(catalog.bath.id)

    assert editor.save_row(catalog.bath.id) is False
    assert "upsert_matrix_cells" not in recording_gateway.names()


def test_failed_row_save_keeps_row_dirty(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
) -> None:
    recording_gateway.fail("upsert_matrix_cells")
    editor.store.turn_on_all(catalog.bath.id)

    with pytest.raises(PersistenceError):
        editor.save_row(catalog.bath.id)

    assert editor.store.is_row_dirty(catalog.bath.id) is True
    assert editor.store.saving_row_ids == frozenset()
    assert notifier.errors == ["upsert_matrix_cells failed"]
    assert editor.store.cell(catalog.bath.id, catalog.station_b.id).supported is True


def test_revert_row_restores_baseline(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    editor.store.turn_off_all(catalog.haircut.id)
    assert editor.store.is_row_dirty(catalog.haircut.id)

    assert editor.revert_row(catalog.haircut.id) is True

    assert editor.store.is_row_dirty(catalog.haircut.id) is False
    assert editor.store.cell(catalog.haircut.id, catalog.station_a.id).remote_booking_allowed is True


def test_save_all_persists_and_reloads(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    gateway: SqlPersistenceGateway,
    recording_gateway: RecordingGateway,
) -> None:
    editor.store.turn_on_all(catalog.bath.id)
    editor.store.mark_all_approval_needed(catalog.haircut.id, False)

    assert editor.save_all() is True

    assert editor.store.dirty_service_ids() == []
    assert editor.is_saving is False
    assert recording_gateway.names()[-4:] == [
        "upsert_matrix_cells",
        "list_services",
        "list_stations",
        "list_matrix_cells",
    ]
    bath = _stored_cells(gateway, catalog, catalog.bath.id)
    assert bath[catalog.station_b.id].is_active is True
    assert bath[catalog.station_b.id].base_time_minutes == 30
    haircut = _stored_cells(gateway, catalog, catalog.haircut.id)
    assert haircut[catalog.station_b.id].requires_approval is False


def test_failed_save_all_keeps_working_copy(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
) -> None:
    recording_gateway.fail("upsert_matrix_cells")
    editor.store.turn_on_all(catalog.bath.id)

    with pytest.raises(PersistenceError):
        editor.save_all()

    assert editor.store.dirty_service_ids() == [catalog.bath.id]
    assert editor.is_saving is False
    assert len(notifier.errors) == 1


def test_add_service_requires_name(editor: MatrixEditor, recording_gateway: RecordingGateway) -> None:
    with pytest.raises(ValidationError):
        editor.add_service("   ")

    assert "create_service" not in recording_gateway.names()


def test_add_service_sorts_and_builds_row(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    service = editor.add_service("  Aromatherapy ")

    assert service.name == "Aromatherapy"
    assert [row.name for row in editor.services] == ["Aromatherapy", "Bath", "Haircut"]
    assert editor.store.service_status(service.id) == "none"
    assert editor.store.default_time_for(service.id) == 60


def test_add_station_joins_selection(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    station = editor.add_station("Station D")

    assert station.display_order == 3
    assert editor.selected_station_ids[-1] == station.id
    assert station.id in editor.store.active_station_ids
    assert editor.store.cell(catalog.bath.id, station.id).supported is False


def test_delete_service_with_history_is_refused(
    editor: MatrixEditor,
    catalog: SeededCatalog,
    notifier: RecordingNotifier,
) -> None:
    with pytest.raises(PersistenceError) as exc_info:
        editor.delete_service(catalog.haircut.id)

    assert "appointment history" in exc_info.value.message
    assert notifier.errors == [exc_info.value.message]
    assert editor.store.working.has_row(catalog.haircut.id)


def test_delete_service_removes_row(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    bath_id = catalog.bath.id

    editor.delete_service(bath_id)

    assert [service.name for service in editor.services] == ["Haircut"]
    assert not editor.store.working.has_row(bath_id)
    assert not editor.store.baseline.has_row(bath_id)


def test_search_resets_service_page_only_on_criteria_change(editor: MatrixEditor, catalog: SeededCatalog) -> None:
    editor.next_service_page()
    assert editor.paginator.service_page == 1

    editor.store.set_station_time(catalog.haircut.id, catalog.station_a.id, 50)
    assert editor.paginator.service_page == 1

    editor.set_search_term("x")
    assert editor.paginator.service_page == 0
    assert editor.filtered_services == []


def test_load_failure_is_reported(
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
) -> None:
    recording_gateway.fail("list_matrix_cells")
    matrix_editor = MatrixEditor(recording_gateway, notifier=notifier)

    with pytest.raises(PersistenceError):
        matrix_editor.load()

    assert notifier.errors == ["list_matrix_cells failed"]
    assert matrix_editor.is_loading is False
