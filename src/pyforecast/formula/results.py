"""Result types returned by the formula engine.

Expected failures (bad syntax, unknown references, cycles, numeric
problems) travel as values rather than exceptions. They serialise to the
payload shape the UI renders inline::

    {"isValid": false, "error": {"message": ..., "type": "syntax", "details": ..., "position": 3}}
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FormulaErrorKind(str, Enum):
    """Error taxonomy shared by validation and calculation."""

    SYNTAX = "syntax"
    CIRCULAR = "circular"
    REFERENCE = "reference"
    CALCULATION = "calculation"


class FormulaIssue(BaseModel):
    """An error or warning attached to a formula."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    kind: FormulaErrorKind = Field(..., alias="type")
    details: str | None = None
    position: int | None = Field(
        default=None, description="Character offset into the formula text"
    )


class ValidationResult(BaseModel):
    """Outcome of validating a formula. Produced fresh on every call."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    error: FormulaIssue | None = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def invalid(
        cls,
        kind: FormulaErrorKind,
        message: str,
        details: str | None = None,
        position: int | None = None,
    ) -> "ValidationResult":
        return cls(
            is_valid=False,
            error=FormulaIssue(message=message, kind=kind, details=details, position=position),
        )


class CalculationResult(BaseModel):
    """Either a computed value or the issue that prevented it."""

    value: float | None = None
    error: FormulaIssue | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: float) -> "CalculationResult":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: FormulaErrorKind,
        message: str,
        details: str | None = None,
    ) -> "CalculationResult":
        return cls(error=FormulaIssue(message=message, kind=kind, details=details))


class FormulaCalculation(BaseModel):
    """
    Answer to "is this formula valid and what does it evaluate to".

    ``warning`` is advisory (a cycle somewhere in the registry) and does not
    make the formula invalid. ``fallback`` marks a lower-confidence result
    computed locally because the authoritative server could not be reached.
    """

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    result: float | None = None
    error: FormulaIssue | None = None
    warning: FormulaIssue | None = None
    source: Literal["local", "server"] = "local"
    fallback: bool = False

    def to_payload(self) -> dict:
        """Wire representation with camelCase keys and empty fields dropped."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            mode="json",
            exclude={"source", "fallback"},
        )
