"""Per-workspace formula registries.

Each workspace gets its own ``EntityRegistry`` and ``FormulaService`` so
entities and cached values never leak between workspaces or sessions.
"""

from pyforecast.core.exceptions import (
    EntityNotFoundError,
    InvalidEntityTypeError,
    WorkspaceNotFoundError,
)
from pyforecast.core.logging import get_logger
from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.entities import EntityType, FormulaEntity, reference_key
from pyforecast.formula.registry import EntityRegistry
from pyforecast.formula.service import FormulaService

logger = get_logger(__name__)


class WorkspaceFormulaStore:
    """Service for workspace registry operations."""

    def __init__(self, engine: FormulaEngine | None = None):
        # The engine is stateless apart from its parse cache, so it is shared
        self.engine = engine or FormulaEngine()
        self._services: dict[str, FormulaService] = {}

    def get_or_create(self, workspace_id: str) -> FormulaService:
        """Get the workspace's façade, creating an empty registry on first use."""
        service = self._services.get(workspace_id)
        if service is None:
            registry = EntityRegistry(engine=self.engine)
            service = FormulaService(registry=registry, engine=self.engine)
            self._services[workspace_id] = service
            logger.info("Created formula registry", extra={"workspace_id": workspace_id})
        return service

    def get(self, workspace_id: str) -> FormulaService:
        """
        Get an existing workspace's façade.

        Raises:
            WorkspaceNotFoundError: Nothing was ever registered for the workspace
        """
        service = self._services.get(workspace_id)
        if service is None:
            raise WorkspaceNotFoundError(workspace_id)
        return service

    def drop(self, workspace_id: str) -> None:
        """Forget a workspace and everything registered in it."""
        if self._services.pop(workspace_id, None) is None:
            raise WorkspaceNotFoundError(workspace_id)

    def register_entities(self, workspace_id: str, entities: list[FormulaEntity]) -> FormulaService:
        """Register (upsert) entities into a workspace."""
        service = self.get_or_create(workspace_id)
        for entity in entities:
            service.registry.register(entity)
        return service

    def unregister_entity(self, workspace_id: str, entity_type: str, entity_id: int) -> None:
        """
        Remove one entity from a workspace.

        Raises:
            InvalidEntityTypeError: Unknown entity type
            EntityNotFoundError: Entity not registered
        """
        try:
            entity_type = EntityType(entity_type)
        except ValueError:
            raise InvalidEntityTypeError(entity_type) from None

        service = self.get(workspace_id)
        if not service.registry.unregister(entity_type, entity_id):
            raise EntityNotFoundError(reference_key(entity_type, entity_id))

    def __len__(self) -> int:
        return len(self._services)
