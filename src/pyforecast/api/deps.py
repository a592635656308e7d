"""
FastAPI dependency injection functions.

Provides reusable dependencies for the workspace registry store and
per-workspace formula services.
"""

from typing import Annotated

from fastapi import Depends, Path, Request

from pyforecast.formula.service import FormulaService
from pyforecast.services.workspace import WorkspaceFormulaStore


def get_formula_store(request: Request) -> WorkspaceFormulaStore:
    """Get the application's workspace registry store."""
    return request.app.state.formula_store


def get_workspace_service(
    store: Annotated[WorkspaceFormulaStore, Depends(get_formula_store)],
    workspace_id: Annotated[str, Path(min_length=1, max_length=255)],
) -> FormulaService:
    """Get (or lazily create) the formula façade of a workspace."""
    return store.get_or_create(workspace_id)


def get_adhoc_service(
    store: Annotated[WorkspaceFormulaStore, Depends(get_formula_store)],
) -> FormulaService:
    """Façade with an empty registry, for "what-if" calculation from explicit variables."""
    return FormulaService(engine=store.engine)


# Type aliases for dependency injection
FormulaStore = Annotated[WorkspaceFormulaStore, Depends(get_formula_store)]
WorkspaceService = Annotated[FormulaService, Depends(get_workspace_service)]
AdhocService = Annotated[FormulaService, Depends(get_adhoc_service)]
