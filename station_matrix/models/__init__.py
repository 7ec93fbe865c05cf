"""ORM model package."""

from station_matrix.models.entities import (
    Appointment,
    Service,
    ServiceStationMatrixEntry,
    Station,
    StationWorkingHours,
)

__all__ = [
    "Appointment",
    "Service",
    "ServiceStationMatrixEntry",
    "Station",
    "StationWorkingHours",
]
