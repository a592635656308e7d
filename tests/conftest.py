"""
Pytest configuration and fixtures for PyForecast tests.
"""

from collections.abc import AsyncGenerator
from datetime import date

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.entities import FormulaEntity
from pyforecast.formula.registry import EntityRegistry
from pyforecast.formula.service import FormulaService
from pyforecast.main import create_app

TODAY = date(2024, 6, 15)


@pytest.fixture(scope="session")
def engine() -> FormulaEngine:
    """Shared formula engine (stateless apart from its parse cache)."""
    return FormulaEngine()


@pytest.fixture
def registry(engine: FormulaEngine) -> EntityRegistry:
    """Empty registry with a fixed calendar date."""
    return EntityRegistry(engine=engine, clock=lambda: TODAY)


@pytest.fixture
def service(registry: EntityRegistry) -> FormulaService:
    """Façade over the test registry."""
    return FormulaService(registry=registry)


@pytest.fixture
def make_entity():
    """Build entity snapshots with sensible defaults."""

    def _make(entity_type: str, entity_id: int, value: float = 0, formula: str | None = None, **kwargs):
        return FormulaEntity(
            id=entity_id,
            type=entity_type,
            name=kwargs.pop("name", f"{entity_type} {entity_id}"),
            value=value,
            formula=formula,
            **kwargs,
        )

    return _make


@pytest.fixture
def app() -> FastAPI:
    """Fresh application so workspace registries do not leak between tests."""
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
