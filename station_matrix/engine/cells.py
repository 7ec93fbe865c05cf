"""Matrix cells and the flat two-axis cell map."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import NamedTuple
from uuid import UUID

CellKey = tuple[UUID, UUID]


@dataclass(frozen=True, slots=True)
class MatrixCell:
    supported: bool = False
    default_time: int | None = None
    station_time: int | None = None
    remote_booking_allowed: bool | None = None
    approval_needed: bool | None = None


class NormalizedCell(NamedTuple):
    supported: bool
    station_time: int | None
    default_time: int | None
    remote_booking_allowed: bool
    approval_needed: bool


UNSUPPORTED = NormalizedCell(
    supported=False,
    station_time=None,
    default_time=None,
    remote_booking_allowed=False,
    approval_needed=False,
)


def normalize_cell(cell: MatrixCell | None) -> NormalizedCell:
    """Project a cell onto the fields that matter for comparison and persistence.

    An absent cell and an unsupported cell normalize to the same value: every
    auxiliary field collapses to ``None``/``False`` when the cell is off.
    """

    if cell is None or not cell.supported:
        return UNSUPPORTED
    return NormalizedCell(
        supported=True,
        station_time=cell.station_time,
        default_time=cell.default_time,
        remote_booking_allowed=bool(cell.remote_booking_allowed),
        approval_needed=bool(cell.approval_needed),
    )


class CellMatrix:
    """Cells keyed by ``(service_id, station_id)`` with a per-service index.

    Cells are immutable, so :meth:`clone` only copies the containers. Two
    matrices never share a mutable structure after cloning.
    """

    __slots__ = ("_cells", "_rows")

    def __init__(self, cells: Iterable[tuple[CellKey, MatrixCell]] = ()) -> None:
        self._cells: dict[CellKey, MatrixCell] = {}
        self._rows: dict[UUID, dict[UUID, None]] = {}
        for (service_id, station_id), cell in cells:
            self.set(service_id, station_id, cell)

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, key: object) -> bool:
        return key in self._cells

    def __iter__(self) -> Iterator[CellKey]:
        return iter(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellMatrix):
            return NotImplemented
        return self._cells == other._cells

    def items(self) -> Iterator[tuple[CellKey, MatrixCell]]:
        return iter(self._cells.items())

    def get(self, service_id: UUID, station_id: UUID) -> MatrixCell | None:
        return self._cells.get((service_id, station_id))

    def set(self, service_id: UUID, station_id: UUID, cell: MatrixCell) -> None:
        self._cells[(service_id, station_id)] = cell
        self._rows.setdefault(service_id, {})[station_id] = None

    def service_ids(self) -> list[UUID]:
        return list(self._rows)

    def has_row(self, service_id: UUID) -> bool:
        return service_id in self._rows

    def station_ids(self, service_id: UUID) -> list[UUID]:
        return list(self._rows.get(service_id, ()))

    def row(self, service_id: UUID) -> dict[UUID, MatrixCell]:
        return {
            station_id: self._cells[(service_id, station_id)]
            for station_id in self._rows.get(service_id, ())
        }

    def replace_row(self, service_id: UUID, cells: dict[UUID, MatrixCell]) -> None:
        self.drop_row(service_id)
        self._rows[service_id] = {}
        for station_id, cell in cells.items():
            self.set(service_id, station_id, cell)

    def drop_row(self, service_id: UUID) -> None:
        for station_id in self._rows.pop(service_id, {}):
            self._cells.pop((service_id, station_id), None)

    def drop_column(self, station_id: UUID) -> None:
        for service_id, stations in self._rows.items():
            if station_id in stations:
                del stations[station_id]
                self._cells.pop((service_id, station_id), None)

    def clone(self) -> CellMatrix:
        copy = CellMatrix()
        copy._cells = dict(self._cells)
        copy._rows = {service_id: dict(stations) for service_id, stations in self._rows.items()}
        return copy
