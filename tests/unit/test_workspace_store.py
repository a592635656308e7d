"""Unit tests for WorkspaceFormulaStore."""

import pytest

from pyforecast.core.exceptions import (
    EntityNotFoundError,
    InvalidEntityTypeError,
    WorkspaceNotFoundError,
)
from pyforecast.services.workspace import WorkspaceFormulaStore


@pytest.fixture
def store(engine) -> WorkspaceFormulaStore:
    return WorkspaceFormulaStore(engine=engine)


class TestWorkspaceFormulaStore:
    """Tests for WorkspaceFormulaStore."""

    def test_get_or_create_is_stable(self, store):
        """The same workspace always gets the same façade."""
        assert store.get_or_create("acme") is store.get_or_create("acme")
        assert len(store) == 1

    def test_workspaces_share_the_engine(self, store):
        """Registries are separate but the engine is shared."""
        first = store.get_or_create("acme")
        second = store.get_or_create("globex")
        assert first.registry is not second.registry
        assert first.engine is second.engine is store.engine

    def test_register_entities(self, store, make_entity):
        """Entities land in the workspace registry."""
        service = store.register_entities(
            "acme", [make_entity("stream", 1, value=10), make_entity("driver", 1, value=2)]
        )
        assert len(service.registry) == 2
        assert len(store.get_or_create("globex").registry) == 0

    def test_get_unknown_workspace(self, store):
        """get does not create workspaces."""
        with pytest.raises(WorkspaceNotFoundError):
            store.get("acme")

    def test_drop(self, store):
        """Dropped workspaces are forgotten."""
        store.get_or_create("acme")
        store.drop("acme")
        assert len(store) == 0
        with pytest.raises(WorkspaceNotFoundError):
            store.drop("acme")

    def test_unregister_entity(self, store, make_entity):
        """Unregistering checks the type and the entity."""
        store.register_entities("acme", [make_entity("stream", 1, value=10)])

        with pytest.raises(InvalidEntityTypeError):
            store.unregister_entity("acme", "asset", 1)

        store.unregister_entity("acme", "stream", 1)
        with pytest.raises(EntityNotFoundError):
            store.unregister_entity("acme", "stream", 1)
