"""Top-level API router."""

from fastapi import APIRouter

from capacity_planner.api.routes.calendar import router as calendar_router
from capacity_planner.api.routes.commitments import router as commitments_router
from capacity_planner.api.routes.health import router as health_router
from capacity_planner.api.routes.organisations import router as organisations_router
from capacity_planner.api.routes.people import router as people_router
from capacity_planner.api.routes.projects import router as projects_router
from capacity_planner.api.routes.reports import router as reports_router
from capacity_planner.api.routes.teams import router as teams_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(organisations_router)
api_router.include_router(people_router)
api_router.include_router(teams_router)
api_router.include_router(projects_router)
api_router.include_router(commitments_router)
api_router.include_router(calendar_router)
api_router.include_router(reports_router)
