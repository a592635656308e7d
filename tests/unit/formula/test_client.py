"""Unit tests for FormulaClient."""

import json

import httpx
import pytest
from httpx import ASGITransport

from pyforecast.formula.client import CALCULATE_PATH, FormulaClient

BASE_URL = "http://formulas.test/api/v1"


def make_client(service, handler) -> FormulaClient:
    return FormulaClient(BASE_URL, local=service, transport=httpx.MockTransport(handler))


class TestFormulaClient:
    """Tests for FormulaClient.calculate."""

    @pytest.mark.asyncio
    async def test_server_result(self, service):
        """A successful server answer is returned with source=server."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"isValid": True, "result": 42.0})

        result = await make_client(service, handler).calculate("x * 2", {"x": 21})

        assert seen["path"] == "/api/v1" + CALCULATE_PATH
        assert seen["body"] == {"formula": "x * 2", "variables": {"x": 21}}
        assert result.result == 42
        assert result.source == "server"
        assert result.fallback is False

    @pytest.mark.asyncio
    async def test_server_validation_error_is_returned(self, service):
        """A 400 answer is the server's verdict, not a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "isValid": False,
                    "error": {"message": "Invalid formula syntax", "type": "syntax"},
                },
            )

        result = await make_client(service, handler).calculate("1 + * 2")

        assert result.is_valid is False
        assert result.error.message == "Invalid formula syntax"
        assert result.source == "server"
        assert result.fallback is False

    @pytest.mark.asyncio
    async def test_connection_error_falls_back(self, service):
        """Unreachable servers fall back to the local façade."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await make_client(service, handler).calculate("x + 1", {"x": 1})

        assert result.result == 2
        assert result.source == "local"
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_server_error_falls_back(self, service):
        """5xx responses fall back to the local façade."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": {"code": "SERVICE_UNAVAILABLE"}})

        result = await make_client(service, handler).calculate("3 * 3")

        assert result.result == 9
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_unreadable_payload_falls_back(self, service):
        """Non-JSON answers fall back to the local façade."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        result = await make_client(service, handler).calculate("3 * 3")
        assert result.fallback is True

    @pytest.mark.asyncio
    async def test_no_server_configured(self, service):
        """Without a base URL the local façade answers directly."""
        result = await FormulaClient("", local=service).calculate("2 + 2")

        assert result.result == 4
        assert result.source == "local"
        assert result.fallback is False

    @pytest.mark.asyncio
    async def test_against_application(self, app, service):
        """The client speaks the application's own endpoint."""
        client = FormulaClient(
            "http://test/api/v1",
            local=service,
            transport=ASGITransport(app=app),
        )

        result = await client.calculate("stream_1 * 0.1", {"stream_1": 1000})
        assert result.source == "server"
        assert result.result == 100

        invalid = await client.calculate("(1 + 2")
        assert invalid.source == "server"
        assert invalid.is_valid is False
        assert invalid.error.message == "Unbalanced parentheses"
