from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from station_matrix.db.base import Base
from station_matrix.db.dependencies import get_db_session
import station_matrix.models.entities  # noqa: F401
from station_matrix.engine.editor import MatrixEditor
from station_matrix.engine.errors import PersistenceError
from station_matrix.engine.notifier import RecordingNotifier
from station_matrix.engine.session_cache import SessionCache
from station_matrix.gateway.base import PersistenceGateway
from station_matrix.gateway.sql import SqlPersistenceGateway
from station_matrix.main import create_app
from station_matrix.models.entities import (
    Appointment,
    Service,
    ServiceStationMatrixEntry,
    Station,
    StationWorkingHours,
)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@dataclass
class SeededCatalog:
    bath: Service
    haircut: Service
    station_a: Station
    station_b: Station
    station_c: Station
    appointment: Appointment


@pytest.fixture()
def catalog(db_session: Session) -> SeededCatalog:
    """Two services, two active stations and one inactive station.

    Bath: A supported (30 min), B stored but disabled.
    Haircut: A (45 min, remote booking), B (45 min, needs approval).
    One appointment sits on station B.
    """

    bath = Service(name="Bath", base_price=Decimal("120.00"), description="Full bath")
    haircut = Service(name="Haircut", base_price=Decimal("200.00"))
    station_a = Station(name="Station A", is_active=True, display_order=0)
    station_b = Station(name="Station B", is_active=True, display_order=1)
    station_c = Station(name="Station C", is_active=False, display_order=2)
    db_session.add_all([bath, haircut, station_a, station_b, station_c])
    db_session.flush()

    db_session.add_all(
        [
            ServiceStationMatrixEntry(
                service_id=bath.id, station_id=station_a.id, base_time_minutes=30, is_active=True
            ),
            ServiceStationMatrixEntry(
                service_id=bath.id, station_id=station_b.id, base_time_minutes=90, is_active=False
            ),
            ServiceStationMatrixEntry(
                service_id=haircut.id,
                station_id=station_a.id,
                base_time_minutes=45,
                is_active=True,
                remote_booking_allowed=True,
            ),
            ServiceStationMatrixEntry(
                service_id=haircut.id,
                station_id=station_b.id,
                base_time_minutes=45,
                is_active=True,
                requires_staff_approval=True,
            ),
            StationWorkingHours(station_id=station_a.id, weekday=1, open_time=time(14), close_time=time(18), shift_order=1),
            StationWorkingHours(station_id=station_a.id, weekday=1, open_time=time(8), close_time=time(12), shift_order=0),
            StationWorkingHours(station_id=station_a.id, weekday=0, open_time=time(9), close_time=time(17), shift_order=0),
        ]
    )
    start = datetime(2026, 3, 2, 10, 0)
    appointment = Appointment(
        station_id=station_b.id,
        service_id=haircut.id,
        start_at=start,
        end_at=start + timedelta(minutes=45),
    )
    db_session.add(appointment)
    db_session.commit()
    return SeededCatalog(
        bath=bath,
        haircut=haircut,
        station_a=station_a,
        station_b=station_b,
        station_c=station_c,
        appointment=appointment,
    )


@pytest.fixture()
def gateway(db_session: Session) -> SqlPersistenceGateway:
    return SqlPersistenceGateway(db_session)


class RecordingGateway(PersistenceGateway):
    """Delegating gateway that logs every call and can fail chosen calls."""

    def __init__(self, inner: PersistenceGateway) -> None:
        self.inner = inner
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, list[Any]] = {}

    def fail(self, method: str, when: Any = None) -> None:
        """Fail ``method``; when ``when`` is given only for calls whose first argument equals it."""

        self.failures.setdefault(method, []).append(when)

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((method, args + tuple(kwargs.values())))
        for when in self.failures.get(method, []):
            if when is None or (args and args[0] == when):
                raise PersistenceError(f"{method} failed")
        return getattr(self.inner, method)(*args, **kwargs)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def list_services(self):
        return self._call("list_services")

    def list_stations(self, include_inactive: bool):
        return self._call("list_stations", include_inactive)

    def list_matrix_cells(self, service_ids, station_ids):
        return self._call("list_matrix_cells", list(service_ids), list(station_ids))

    def upsert_matrix_cells(self, records):
        return self._call("upsert_matrix_cells", records)

    def create_service(self, name, base_price, description=None):
        return self._call("create_service", name, base_price, description)

    def update_service(self, service_id, *, base_price, description):
        return self._call("update_service", service_id, base_price=base_price, description=description)

    def delete_service(self, service_id):
        return self._call("delete_service", service_id)

    def create_station(self, name, is_active):
        return self._call("create_station", name, is_active)

    def update_station(self, station_id, *, is_active):
        return self._call("update_station", station_id, is_active=is_active)

    def delete_station(self, station_id):
        return self._call("delete_station", station_id)

    def reorder_stations(self, updates):
        return self._call("reorder_stations", updates)

    def list_working_hours(self, station_id):
        return self._call("list_working_hours", station_id)

    def replace_working_hours(self, station_id, records):
        return self._call("replace_working_hours", station_id, records)

    def transfer_appointments(self, from_station_id, to_station_id):
        return self._call("transfer_appointments", from_station_id, to_station_id)


@pytest.fixture()
def recording_gateway(gateway: SqlPersistenceGateway) -> RecordingGateway:
    return RecordingGateway(gateway)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def session_cache(clock: FakeClock) -> SessionCache:
    return SessionCache(ttl_seconds=300, clock=clock)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def editor(
    catalog: SeededCatalog,
    recording_gateway: RecordingGateway,
    notifier: RecordingNotifier,
    session_cache: SessionCache,
) -> MatrixEditor:
    matrix_editor = MatrixEditor(
        recording_gateway,
        cache=session_cache,
        notifier=notifier,
        services_per_page=1,
        stations_per_view=1,
        default_duration_minutes=60,
    )
    matrix_editor.load()
    return matrix_editor