"""Formula engine for PyForecast.

This module provides formula support for forecast entities:
- Arithmetic (+, -, *, /, %, ^) and comparisons (=, !=, <, >, <=, >=)
- Functions (sum, min, max, avg, round, floor, ceil, sqrt, log, ...)
- Entity references (stream_1, driver_2, expense_3, personnel_4)
- Cycle detection between entities
- Memoised recalculation of a whole registry
"""

from pyforecast.formula.dependencies import FormulaDependencyGraph
from pyforecast.formula.engine import FormulaEngine
from pyforecast.formula.entities import EntityType, FormulaEntity, reference_key
from pyforecast.formula.evaluator import FormulaEvaluator
from pyforecast.formula.functions import FORMULA_FUNCTIONS, register_function
from pyforecast.formula.parser import FormulaParser
from pyforecast.formula.references import EntityReference, extract_references
from pyforecast.formula.registry import EntityRegistry
from pyforecast.formula.results import (
    CalculationResult,
    FormulaCalculation,
    FormulaErrorKind,
    FormulaIssue,
    ValidationResult,
)
from pyforecast.formula.service import FormulaService

__all__ = [
    "FormulaParser",
    "FormulaEvaluator",
    "FormulaEngine",
    "FORMULA_FUNCTIONS",
    "register_function",
    "FormulaDependencyGraph",
    "EntityType",
    "FormulaEntity",
    "reference_key",
    "EntityReference",
    "extract_references",
    "EntityRegistry",
    "FormulaService",
    "CalculationResult",
    "FormulaCalculation",
    "FormulaErrorKind",
    "FormulaIssue",
    "ValidationResult",
]
