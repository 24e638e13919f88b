from fastapi import APIRouter

from outstocked.api.dashboard import router as dashboard_router
from outstocked.api.health import router as health_router
from outstocked.api.invite import router as invite_router
from outstocked.api.locations import router as locations_router
from outstocked.api.requests import router as requests_router
from outstocked.api.team import router as team_router

api_router = APIRouter()

# Include sub-routers
api_router.include_router(health_router, tags=["health"])
api_router.include_router(invite_router)
api_router.include_router(team_router)
api_router.include_router(requests_router)
api_router.include_router(locations_router)
api_router.include_router(dashboard_router)
