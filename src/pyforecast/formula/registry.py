"""Entity registry and calculation orchestrator.

Owns the live set of entities for one workspace, keeps the dependency
graph in sync with their formulas and recalculates every entity's
effective value in dependency order.
"""

from datetime import date
from typing import Callable

from pyforecast.core.config import settings
from pyforecast.core.exceptions import (
    EntityNotFoundError,
    FormulaEvaluationError,
    FormulaSyntaxError,
)
from pyforecast.core.logging import LoggerMixin
from pyforecast.formula.dependencies import FormulaDependencyGraph
from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.entities import EntityType, FormulaEntity, reference_key
from pyforecast.formula.references import extract_references
from pyforecast.formula.results import CalculationResult, FormulaErrorKind, FormulaIssue

# A dangling reference (entity not registered) contributes nothing. This is
# deliberately different from validation, which binds unknown variables to 1.
MISSING_REFERENCE_VALUE = 0.0


class EntityRegistry(LoggerMixin):
    """
    Registry of entities with memoised, dependency-aware calculation.

    One instance per workspace or session; nothing here is process-global.

    Example:
        >>> registry = EntityRegistry()
        >>> registry.register(FormulaEntity(id=1, type="driver", value=5))
        >>> registry.register(FormulaEntity(id=1, type="expense", formula="driver_1 * 2"))
        >>> registry.calculate_all()
        True
        >>> registry.get_value("expense", 1)
        10.0
    """

    def __init__(
        self,
        engine: FormulaEngine | None = None,
        *,
        max_depth: int | None = None,
        legacy_id_keys: bool | None = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Args:
            engine: Expression evaluator shared with the validation façade
            max_depth: Longest dependency chain followed before giving up
            legacy_id_keys: Key the dependency graph by bare numeric id
            clock: Supplies "today" for activity windows and date variables
        """
        self.engine = engine or FormulaEngine()
        self.max_depth = max_depth if max_depth is not None else settings.formula_max_depth
        if legacy_id_keys is None:
            legacy_id_keys = settings.formula_legacy_id_keys
        self.graph = FormulaDependencyGraph(key_by_id=legacy_id_keys)
        self.clock = clock

        self._entities: dict[str, FormulaEntity] = {}
        self._calculated: dict[str, float] = {}
        self._circular: list[FormulaEntity] = []
        self.last_errors: dict[str, FormulaIssue] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, entity: FormulaEntity) -> None:
        """
        Add or replace an entity (last write wins).

        Cached values are all discarded: dependents are not tracked for
        targeted invalidation.
        """
        self._entities[entity.key] = entity
        self.graph.register_edges(self._node(entity.type, entity.id), entity.formula)
        self._calculated.clear()
        self.logger.debug(
            "Registered entity",
            extra={"entity": entity.key, "has_formula": entity.formula is not None},
        )

    def unregister(self, entity_type: EntityType | str, entity_id: int) -> bool:
        """
        Remove an entity. Formulas still referencing it will see 0.

        Returns:
            True if the entity was registered
        """
        key = reference_key(entity_type, entity_id)
        entity = self._entities.pop(key, None)
        if entity is None:
            return False
        self.graph.remove_node(self._node(entity.type, entity.id))
        self._calculated.clear()
        self.last_errors.pop(key, None)
        return True

    def get_entity(self, entity_type: EntityType | str, entity_id: int) -> FormulaEntity | None:
        return self._entities.get(reference_key(entity_type, entity_id))

    def all_entities(self) -> list[FormulaEntity]:
        return list(self._entities.values())

    def __contains__(self, key: str) -> bool:
        return key in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def _node(self, entity_type: EntityType | str, entity_id: int) -> str:
        return self.graph.node_key(entity_type, entity_id)

    # =========================================================================
    # Cycles
    # =========================================================================

    def has_cycle(self) -> bool:
        """Whether the registry contains a circular reference. Read-only."""
        return self.graph.has_cycle()

    def find_cycle(self) -> list[FormulaEntity]:
        """Entities on the first cycle found, without updating registry state."""
        members = []
        for node in self.graph.find_cycle_members():
            members.extend(
                entity
                for entity in self._entities.values()
                if self._node(entity.type, entity.id) == node
            )
        return members

    def check_circular_dependencies(self) -> bool:
        """Detect cycles and remember the entities involved."""
        self._circular = self.find_cycle()
        return bool(self._circular)

    def circular_entities(self) -> list[FormulaEntity]:
        """Entities found by the last ``check_circular_dependencies``."""
        return list(self._circular)

    # =========================================================================
    # Calculation
    # =========================================================================

    def calculate_all(self) -> bool:
        """
        Recalculate every entity.

        A cycle anywhere halts the whole pass: nothing is calculated and
        False is returned. Otherwise each entity is attempted; failures are
        logged and make the result False without stopping the others.
        """
        self._calculated.clear()
        self.last_errors = {}

        if self.check_circular_dependencies():
            self.logger.warning(
                "Circular dependency detected, calculation halted",
                extra={"entities": [e.key for e in self._circular]},
            )
            return False

        calculation = _CalculationPass(self)
        success = True
        for key, entity in self._entities.items():
            result = calculation.calculate(entity)
            if not result.ok:
                success = False
                self.last_errors[key] = result.error
                self.logger.error(
                    f"Error calculating {entity.type.value} {entity.id}: {result.error.message}",
                    extra={"entity": key, "kind": result.error.kind.value},
                )

        self._calculated = calculation.values
        self.logger.info(
            "Calculated entities",
            extra={
                "entities": len(self._entities),
                "calculated": len(self._calculated),
                "failed": len(self.last_errors),
            },
        )
        return success

    def get_value(self, entity_type: EntityType | str, entity_id: int) -> float | None:
        """Value from the last ``calculate_all``, or None if not calculated."""
        return self._calculated.get(reference_key(entity_type, entity_id))

    def calculated_values(self) -> dict[str, float]:
        return dict(self._calculated)

    def current_value(self, entity_type: EntityType | str, entity_id: int) -> CalculationResult:
        """
        Effective value of one entity right now.

        Uses the cache from the last ``calculate_all`` and computes anything
        missing in a scratch pass, leaving the registry untouched.

        Raises:
            EntityNotFoundError: The entity is not registered
        """
        key = reference_key(entity_type, entity_id)
        entity = self._entities.get(key)
        if entity is None:
            raise EntityNotFoundError(key)
        if key in self._calculated:
            return CalculationResult.success(self._calculated[key])
        return _CalculationPass(self, seed=self._calculated).calculate(entity)


class _CalculationPass:
    """Memoising recursive calculator for one pass over a registry."""

    def __init__(self, registry: EntityRegistry, seed: dict[str, float] | None = None):
        self.registry = registry
        self.values: dict[str, float] = dict(seed or {})
        self.in_progress: set[str] = set()
        self.today = registry.clock()

    def calculate(self, entity: FormulaEntity, depth: int = 0) -> CalculationResult:
        key = entity.key
        if key in self.values:
            return CalculationResult.success(self.values[key])

        # Cycle detection runs first, so this only trips on inconsistent state
        if key in self.in_progress:
            return CalculationResult.failure(
                FormulaErrorKind.CIRCULAR,
                f"Circular dependency detected in {entity.type.value} {entity.id}",
            )
        if depth > self.registry.max_depth:
            return CalculationResult.failure(
                FormulaErrorKind.CALCULATION,
                f"Formula dependency chain deeper than {self.registry.max_depth} at {key}",
            )

        self.in_progress.add(key)
        try:
            result = self._compute(entity, depth)
        finally:
            self.in_progress.discard(key)

        if result.ok:
            self.values[key] = result.value
        return result

    def _compute(self, entity: FormulaEntity, depth: int) -> CalculationResult:
        if not entity.is_active_on(self.today):
            return CalculationResult.success(0.0)

        if entity.formula is None:
            return CalculationResult.success(entity.value)

        variables = self._implicit_variables(entity)
        for ref in extract_references(entity.formula):
            if ref.token in variables:
                continue
            dependency = self.registry.get_entity(ref.type, ref.id)
            if dependency is None:
                variables[ref.token] = MISSING_REFERENCE_VALUE
                continue
            dep_result = self.calculate(dependency, depth + 1)
            if not dep_result.ok:
                return dep_result
            variables[ref.token] = dep_result.value

        try:
            return CalculationResult.success(
                self.registry.engine.evaluate(entity.formula, variables)
            )
        except FormulaSyntaxError as e:
            return CalculationResult.failure(FormulaErrorKind.SYNTAX, e.message)
        except FormulaEvaluationError as e:
            return CalculationResult.failure(FormulaErrorKind.CALCULATION, e.message, e.error)

    def _implicit_variables(self, entity: FormulaEntity) -> dict[str, float]:
        variables: dict[str, float] = {
            "current_month": float(self.today.month),
            "current_year": float(self.today.year),
            "current_day": float(self.today.day),
        }
        if entity.type is EntityType.PERSONNEL:
            variables["headcount"] = entity.value
        variables.update(entity.variables)
        return variables
