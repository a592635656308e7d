"""API v1 routes."""

from fastapi import APIRouter

from pyforecast.api.v1 import formulas, health, workspaces

router = APIRouter()

# Include all v1 routes
router.include_router(health.router, tags=["health"])
router.include_router(formulas.router, tags=["formulas"])
router.include_router(workspaces.router, prefix="/workspaces", tags=["workspaces"])
