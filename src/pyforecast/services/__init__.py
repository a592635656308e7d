"""Service layer modules."""

from pyforecast.services.workspace import WorkspaceFormulaStore

__all__ = ["WorkspaceFormulaStore"]
