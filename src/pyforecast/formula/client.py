"""Client for the authoritative server-side formula calculation.

Interactive callers preview formulas locally but ask the server for the
result that will be persisted. If the server cannot be reached the local
façade answers instead and the result is flagged as a fallback.
"""

from typing import Mapping

import httpx
from pydantic import ValidationError as PydanticValidationError

from pyforecast.core.config import settings
from pyforecast.core.logging import LoggerMixin
from pyforecast.formula.results import FormulaCalculation
from pyforecast.formula.service import FormulaService

CALCULATE_PATH = "/calculate-formula"


class FormulaClient(LoggerMixin):
    """
    Calculates formulas on the server, falling back to local evaluation.

    Args:
        base_url: API root of the server (e.g. ``http://host/api/v1``);
            defaults to ``FORMULA_SERVER_URL``
        local: Façade used for fallback and when no server is configured
        timeout: Request timeout in seconds
        transport: Custom httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        local: FormulaService | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url if base_url is not None else settings.formula_server_url
        self.local = local or FormulaService()
        self.timeout = timeout if timeout is not None else settings.formula_server_timeout
        self._transport = transport

    async def calculate(
        self,
        formula: str,
        variables: Mapping[str, float] | None = None,
    ) -> FormulaCalculation:
        """
        Calculate ``formula`` on the server.

        Server answers for invalid formulas (HTTP 400) are returned as-is.
        Transport failures, 5xx responses and unreadable payloads fall back
        to the local façade with ``fallback=True``.
        """
        variables = dict(variables or {})
        if not self.base_url:
            return self.local.validate_and_calculate(formula, variables)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    CALCULATE_PATH,
                    json={"formula": formula, "variables": variables},
                )
                if response.status_code >= 500:
                    response.raise_for_status()
                calculation = FormulaCalculation.model_validate(response.json())
        except (httpx.HTTPError, PydanticValidationError, ValueError) as e:
            self.logger.warning(
                "Server formula calculation failed, using local result",
                extra={"error": str(e), "base_url": self.base_url},
            )
            local = self.local.validate_and_calculate(formula, variables)
            return local.model_copy(update={"fallback": True})

        return calculation.model_copy(update={"source": "server"})
