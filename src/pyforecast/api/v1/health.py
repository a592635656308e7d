"""
Health check endpoints.

Provides endpoints for monitoring application health.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from pyforecast.api.deps import FormulaStore
from pyforecast.core.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    environment: str
    version: str
    workspaces: int = Field(..., description="Workspaces with a loaded formula registry")


@router.get("/health", response_model=HealthResponse)
async def health_check(store: FormulaStore) -> HealthResponse:
    """Basic health check."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        version=settings.app_version,
        workspaces=len(store),
    )
