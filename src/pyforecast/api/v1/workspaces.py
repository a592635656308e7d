"""
Workspace formula endpoints.

Keep a workspace's formula registry in sync with the CRUD layer and
calculate, validate and diagnose formulas against it.
"""

from fastapi import APIRouter, status

from pyforecast.api.deps import FormulaStore, WorkspaceService
from pyforecast.formula.diagnostics import RegistryDebugReport, debug_formulas
from pyforecast.formula.results import FormulaCalculation
from pyforecast.schemas.formula import (
    CalculateAllResponse,
    EntityListResponse,
    EntityRegisterRequest,
    FormulaValidateRequest,
)

router = APIRouter()

# =============================================================================
# Workspace Lifecycle
# =============================================================================


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def drop_workspace(workspace_id: str, store: FormulaStore) -> None:
    """Discard a workspace's registry and every entity registered in it."""
    store.drop(workspace_id)


# =============================================================================
# Entity Registration
# =============================================================================


@router.put("/{workspace_id}/entities", response_model=EntityListResponse)
async def register_entities(
    workspace_id: str,
    payload: EntityRegisterRequest,
    store: FormulaStore,
) -> EntityListResponse:
    """
    Register or replace entities in a workspace.

    Idempotent per ``<type>_<id>``; the last write wins.
    """
    service = store.register_entities(workspace_id, payload.entities)
    entities = service.registry.all_entities()
    return EntityListResponse(items=entities, total=len(entities))


@router.get("/{workspace_id}/entities", response_model=EntityListResponse)
async def list_entities(service: WorkspaceService) -> EntityListResponse:
    """List the entities registered in a workspace."""
    entities = service.registry.all_entities()
    return EntityListResponse(items=entities, total=len(entities))


@router.delete(
    "/{workspace_id}/entities/{entity_type}/{entity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unregister_entity(
    workspace_id: str,
    entity_type: str,
    entity_id: int,
    store: FormulaStore,
) -> None:
    """Remove an entity from a workspace."""
    store.unregister_entity(workspace_id, entity_type, entity_id)


# =============================================================================
# Calculation
# =============================================================================


@router.post("/{workspace_id}/calculate", response_model=CalculateAllResponse)
async def calculate_workspace(service: WorkspaceService) -> CalculateAllResponse:
    """
    Recalculate every entity in a workspace.

    Any circular reference halts the whole calculation.
    """
    registry = service.registry
    success = registry.calculate_all()
    return CalculateAllResponse(
        success=success,
        values=registry.calculated_values(),
        circular=[e.key for e in registry.circular_entities()],
        errors=registry.last_errors,
    )


@router.post(
    "/{workspace_id}/formulas/validate",
    response_model=FormulaCalculation,
    response_model_exclude_none=True,
)
async def validate_formula(
    payload: FormulaValidateRequest,
    service: WorkspaceService,
) -> FormulaCalculation:
    """
    Validate and evaluate a candidate formula against the workspace.

    References must name registered entities unless given in ``variables``.
    Circular references are reported as a warning.
    """
    target = None
    if payload.target_type is not None and payload.target_id is not None:
        target = (payload.target_type, payload.target_id)
    return service.validate_and_calculate(payload.formula, payload.variables, target=target)


@router.get(
    "/{workspace_id}/diagnostics",
    response_model=RegistryDebugReport,
)
async def workspace_diagnostics(service: WorkspaceService) -> RegistryDebugReport:
    """Report cycles and invalid formulas in a workspace."""
    return debug_formulas(service)
