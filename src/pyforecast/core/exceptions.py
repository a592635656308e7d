"""
Custom exceptions for PyForecast.

Provides a hierarchy of exceptions that map to HTTP status codes
and include structured error information.
"""

from typing import Any


class PyForecastException(Exception):
    """
    Base exception for all PyForecast errors.

    All custom exceptions should inherit from this class.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# HTTP 400 - Bad Request Errors
# =============================================================================


class BadRequestError(PyForecastException):
    """Invalid request parameters or payload."""

    status_code = 400


class ValidationError(BadRequestError):
    """Request validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"errors": errors or []},
        )


class InvalidEntityTypeError(BadRequestError):
    """Entity type outside stream/driver/expense/personnel."""

    def __init__(self, entity_type: str) -> None:
        super().__init__(
            message=f"Invalid entity type: {entity_type}",
            code="INVALID_ENTITY_TYPE",
            details={"entity_type": entity_type},
        )


# =============================================================================
# HTTP 404 - Not Found Errors
# =============================================================================


class NotFoundError(PyForecastException):
    """Requested resource not found."""

    status_code = 404

    def __init__(
        self,
        resource: str,
        identifier: str | None = None,
    ) -> None:
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID '{identifier}' not found"

        super().__init__(
            message=message,
            code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class WorkspaceNotFoundError(NotFoundError):
    """Workspace registry not found."""

    def __init__(self, workspace_id: str | None = None) -> None:
        super().__init__(resource="Workspace", identifier=workspace_id)


class EntityNotFoundError(NotFoundError):
    """Entity not registered."""

    def __init__(self, reference: str | None = None) -> None:
        super().__init__(resource="Entity", identifier=reference)


# =============================================================================
# HTTP 422 - Unprocessable Entity
# =============================================================================


class UnprocessableEntityError(PyForecastException):
    """Request cannot be processed."""

    status_code = 422


class FormulaError(UnprocessableEntityError):
    """Formula parsing or execution error."""

    def __init__(
        self,
        formula: str,
        error: str,
        code: str = "FORMULA_ERROR",
        message: str | None = None,
    ) -> None:
        super().__init__(
            message=message or f"Formula error: {error}",
            code=code,
            details={"formula": formula, "error": error},
        )
        self.formula = formula
        self.error = error


class FormulaSyntaxError(FormulaError):
    """Formula failed validation."""

    def __init__(self, formula: str, error: str, position: int | None = None) -> None:
        super().__init__(formula, error, code="FORMULA_SYNTAX_ERROR", message=error)
        self.position = position
        if position is not None:
            self.details["position"] = position


class FormulaEvaluationError(FormulaError):
    """Formula was valid but could not be evaluated with the given values."""

    def __init__(self, formula: str, error: str) -> None:
        super().__init__(
            formula,
            error,
            code="FORMULA_EVALUATION_ERROR",
            message=f"Error evaluating formula: {error}",
        )
