"""Debug reports for troubleshooting formulas.

Used by the diagnostics endpoint and handy from a shell when a workspace
stops calculating.
"""

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from pyforecast.core.exceptions import FormulaError
from pyforecast.core.logging import get_logger
from pyforecast.formula.references import extract_references
from pyforecast.formula.results import ValidationResult
from pyforecast.formula.service import FormulaService

logger = get_logger(__name__)


class InvalidFormulaReport(BaseModel):
    entity: str
    name: str
    formula: str
    validation: ValidationResult


class RegistryDebugReport(BaseModel):
    """Registry-wide health summary."""

    model_config = ConfigDict(populate_by_name=True)

    has_circular_dependencies: bool = Field(..., alias="hasCircularDependencies")
    circular_entities: list[str] = Field(default_factory=list, alias="circularEntities")
    invalid_formulas: list[InvalidFormulaReport] = Field(
        default_factory=list, alias="invalidFormulas"
    )
    total_entities: int = Field(..., alias="totalEntities")
    entities_with_formulas: int = Field(..., alias="entitiesWithFormulas")


class ReferenceReport(BaseModel):
    type: str
    id: int


class FormulaDebugReport(BaseModel):
    """Everything known about a single formula."""

    model_config = ConfigDict(populate_by_name=True)

    formula: str
    validation: ValidationResult
    result: float | None = None
    evaluation_error: str | None = Field(default=None, alias="evaluationError")
    referenced_entities: list[ReferenceReport] = Field(
        default_factory=list, alias="referencedEntities"
    )
    missing_entities: list[ReferenceReport] = Field(
        default_factory=list, alias="missingEntities"
    )


def debug_formulas(service: FormulaService) -> RegistryDebugReport:
    """Check a registry for cycles and invalid formulas."""
    registry = service.registry
    has_circular = registry.check_circular_dependencies()

    entities = registry.all_entities()
    with_formulas = [e for e in entities if e.formula]

    invalid = []
    for entity in with_formulas:
        validation = service.engine.validate_with_details(entity.formula)
        if not validation.is_valid:
            invalid.append(
                InvalidFormulaReport(
                    entity=entity.key,
                    name=entity.name,
                    formula=entity.formula,
                    validation=validation,
                )
            )

    logger.info(
        "Formula diagnostics",
        extra={
            "has_circular": has_circular,
            "invalid_formulas": len(invalid),
            "total_entities": len(entities),
        },
    )
    return RegistryDebugReport(
        has_circular_dependencies=has_circular,
        circular_entities=[e.key for e in registry.circular_entities()],
        invalid_formulas=invalid,
        total_entities=len(entities),
        entities_with_formulas=len(with_formulas),
    )


def debug_single_formula(
    service: FormulaService,
    formula: str,
    variables: Mapping[str, float] | None = None,
) -> FormulaDebugReport:
    """Validate, evaluate and resolve the references of one formula."""
    validation = service.engine.validate_with_details(formula)

    result = None
    evaluation_error = None
    if validation.is_valid:
        try:
            result = service.engine.evaluate(formula, variables or {})
        except FormulaError as e:
            evaluation_error = e.message

    references = [
        ReferenceReport(type=ref.type.value, id=ref.id) for ref in extract_references(formula)
    ]
    missing = [ref for ref in references if f"{ref.type}_{ref.id}" not in service.registry]

    return FormulaDebugReport(
        formula=formula,
        validation=validation,
        result=result,
        evaluation_error=evaluation_error,
        referenced_entities=references,
        missing_entities=missing,
    )
