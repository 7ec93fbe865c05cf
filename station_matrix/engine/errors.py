"""Error taxonomy for the matrix editing engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


class MatrixError(RuntimeError):
    """Base error carrying a message fit for the notification channel."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MatrixError):
    """Raised when input is rejected locally, before any remote call."""


class PersistenceError(MatrixError):
    """Raised when a gateway call fails or returns an error payload."""


@dataclass(frozen=True)
class TargetResult:
    target_id: UUID
    ok: bool
    error: str | None = None


@dataclass
class FanoutResult:
    """Per-target outcome of a multi-target duplication. Never rolled back."""

    results: list[TargetResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[UUID]:
        return [row.target_id for row in self.results if row.ok]

    @property
    def failed(self) -> list[TargetResult]:
        return [row for row in self.results if not row.ok]

    @property
    def all_ok(self) -> bool:
        return all(row.ok for row in self.results)
