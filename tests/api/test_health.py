"""Tests for the health endpoint."""

import pytest
from httpx import ASGITransport, AsyncClient


class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        """Health reports status and the number of loaded workspaces."""
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["workspaces"] == 0

    @pytest.mark.asyncio
    async def test_health_counts_workspaces(self, client: AsyncClient):
        """Workspaces are counted once they have a registry."""
        await client.get("/api/v1/workspaces/acme/entities")

        response = await client.get("/api/v1/health")
        assert response.json()["workspaces"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_payload(self, app):
        """Unhandled errors become a 500 INTERNAL_ERROR payload."""
        app.state.formula_store = None

        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as client:
            response = await client.get("/api/v1/health")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
