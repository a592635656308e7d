"""Validation and calculation façade.

``FormulaService`` is the single entry point used both by interactive
formula builders (live preview) and by the server-side calculation
endpoint, so both produce the same answer for the same formula and
variables.
"""

import math
from typing import Mapping

from pyforecast.core.exceptions import FormulaError
from pyforecast.core.logging import LoggerMixin
from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.entities import EntityType
from pyforecast.formula.references import extract_references, unique_references
from pyforecast.formula.registry import EntityRegistry
from pyforecast.formula.results import (
    FormulaCalculation,
    FormulaErrorKind,
    FormulaIssue,
    ValidationResult,
)


class FormulaService(LoggerMixin):
    """
    Answers "is this formula valid, and what does it evaluate to".

    Never raises for expected problems; everything is reported in the
    returned ``ValidationResult`` / ``FormulaCalculation``. Stored entities
    are never modified.
    """

    def __init__(
        self,
        registry: EntityRegistry | None = None,
        engine: FormulaEngine | None = None,
    ):
        if registry is None:
            registry = EntityRegistry(engine=engine)
        self.registry = registry
        self.engine = engine or registry.engine

    def validate_with_details(
        self,
        formula: str,
        variables: Mapping[str, float] | None = None,
    ) -> ValidationResult:
        """
        Validate syntax, then check every entity reference resolves.

        A reference resolves if it is supplied in ``variables`` or names a
        registered entity.
        """
        validation = self.engine.validate_with_details(formula)
        if not validation.is_valid:
            return validation

        variables = variables or {}
        for ref in extract_references(formula):
            if ref.token in variables or ref.key in self.registry:
                continue
            return ValidationResult.invalid(
                FormulaErrorKind.REFERENCE,
                f"Invalid reference: {ref.token}",
                details=f"No {ref.type.value} with id {ref.id} exists",
                position=ref.position,
            )
        return validation

    def validate_and_calculate(
        self,
        formula: str,
        variables: Mapping[str, float] | None = None,
        target: tuple[EntityType | str, int] | None = None,
    ) -> FormulaCalculation:
        """
        Validate a formula and evaluate it against the current registry.

        Args:
            formula: Candidate formula
            variables: Explicit values; these win over registry values, which
                allows "what-if" calculation without registering anything
            target: ``(type, id)`` of the entity being edited, to warn when
                the candidate formula would make it depend on itself

        Returns:
            Calculation result; a registry cycle is reported as a warning
        """
        variables = dict(variables or {})

        validation = self.validate_with_details(formula, variables)
        if not validation.is_valid:
            return FormulaCalculation(is_valid=False, error=validation.error)

        warning = self._circular_warning(formula, target)

        values: dict[str, float] = {}
        for ref in unique_references(formula):
            if ref.token in variables:
                continue
            outcome = self.registry.current_value(ref.type, ref.id)
            if not outcome.ok:
                return FormulaCalculation(is_valid=False, error=outcome.error, warning=warning)
            values[ref.token] = outcome.value
        values.update(variables)

        try:
            result = self.engine.evaluate(formula, values)
        except FormulaError as e:
            return FormulaCalculation(
                is_valid=False,
                error=FormulaIssue(
                    message=e.message, kind=FormulaErrorKind.CALCULATION, details=e.error
                ),
                warning=warning,
            )

        if not math.isfinite(result):
            return FormulaCalculation(
                is_valid=False,
                error=FormulaIssue(
                    message="Invalid result",
                    kind=FormulaErrorKind.CALCULATION,
                    details="The formula evaluation resulted in NaN or Infinity",
                ),
                warning=warning,
            )

        return FormulaCalculation(is_valid=True, result=result, warning=warning)

    def _circular_warning(
        self,
        formula: str,
        target: tuple[EntityType | str, int] | None,
    ) -> FormulaIssue | None:
        if target is not None:
            node = self.registry.graph.node_key(*target)
            depends_on = {
                self.registry.graph.node_key(ref.type, ref.id)
                for ref in extract_references(formula)
            }
            if self.registry.graph.detect_circular_reference(node, depends_on):
                return FormulaIssue(
                    message="Circular reference detected",
                    kind=FormulaErrorKind.CIRCULAR,
                    details=f"This formula would make {node} depend on itself",
                )

        cycle = self.registry.find_cycle()
        if cycle:
            self.logger.info(
                "Formula checked against a registry with a cycle",
                extra={"entities": [e.key for e in cycle]},
            )
            return FormulaIssue(
                message="Circular reference detected",
                kind=FormulaErrorKind.CIRCULAR,
                details="Entities involved: " + ", ".join(e.key for e in cycle),
            )
        return None
