"""
Formula endpoints.

Server-side formula calculation. Uses the same ``FormulaService`` as the
interactive formula builders, so previews and persisted results agree.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from pyforecast.api.deps import AdhocService
from pyforecast.core.exceptions import ValidationError
from pyforecast.core.logging import get_logger
from pyforecast.schemas.formula import FormulaCalculateRequest

logger = get_logger(__name__)

router = APIRouter()


@router.post("/calculate-formula")
async def calculate_formula(
    request: FormulaCalculateRequest,
    service: AdhocService,
) -> JSONResponse:
    """
    Validate and evaluate a formula from explicit variables.

    Entity references must be supplied in ``variables``; nothing needs to
    be registered. Returns ``{isValid, result}`` on success and
    ``{isValid: false, error}`` with status 400 otherwise.
    """
    if not request.formula.strip():
        raise ValidationError(
            "Formula is required and must be a string",
            errors=[{"field": "formula", "message": "Formula cannot be empty"}],
        )

    calculation = service.validate_and_calculate(request.formula, request.variables)
    if not calculation.is_valid:
        logger.info(
            "Formula rejected",
            extra={"formula": request.formula, "kind": calculation.error.kind.value},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK if calculation.is_valid else status.HTTP_400_BAD_REQUEST,
        content=calculation.to_payload(),
    )
