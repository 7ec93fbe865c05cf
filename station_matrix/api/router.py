"""Top-level API router."""

from fastapi import APIRouter

from station_matrix.api.routes.health import router as health_router
from station_matrix.api.routes.matrix import router as matrix_router
from station_matrix.api.routes.services import router as services_router
from station_matrix.api.routes.stations import router as stations_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(services_router)
api_router.include_router(stations_router)
api_router.include_router(matrix_router)
