"""Expression evaluator front end.

``FormulaEngine`` knows nothing about entities: it validates a formula
string and evaluates it against a plain ``name -> number`` mapping.
Entity references such as ``stream_1`` are ordinary variables here.
"""

from typing import Any, Mapping

from pyforecast.core.exceptions import FormulaEvaluationError, FormulaSyntaxError
from pyforecast.core.logging import get_logger
from pyforecast.formula.evaluator import (
    ArgumentCountError,
    FormulaEvaluator,
    UnknownFunctionError,
)
from pyforecast.formula.parser import (
    BinaryOpNode,
    FormulaParser,
    FunctionCallNode,
    NumberNode,
    UnaryOpNode,
    VariableNode,
    collect_variables,
)
from pyforecast.formula.results import FormulaErrorKind, ValidationResult

logger = get_logger(__name__)

# Every variable is bound to this while validating, so syntax can be checked
# before values are known and live typing never divides by a zero placeholder.
VALIDATION_PLACEHOLDER = 1.0

# Binding strength used by format_formula to decide on parentheses
_PRECEDENCE = {
    "=": 1,
    "!=": 1,
    "<": 1,
    ">": 1,
    "<=": 1,
    ">=": 1,
    "+": 2,
    "-": 2,
    "*": 3,
    "/": 3,
    "%": 3,
    "^": 5,
}
_UNARY_PRECEDENCE = 4
_ATOM_PRECEDENCE = 6


class FormulaEngine:
    """
    Validates and evaluates arithmetic formulas.

    Example:
        >>> engine = FormulaEngine()
        >>> engine.evaluate("stream_1 + 10", {"stream_1": 90})
        100.0
    """

    def __init__(self, parser: FormulaParser | None = None):
        self.parser = parser or FormulaParser()

    def validate(self, formula: str) -> bool:
        """Whether ``formula`` is syntactically valid."""
        return self.validate_with_details(formula).is_valid

    def validate_with_details(self, formula: str) -> ValidationResult:
        """
        Validate a formula and explain what is wrong with it.

        Checks emptiness, parenthesis balance and grammar, then runs the
        formula once with every variable set to 1 to catch unknown
        functions and wrong argument counts. Numeric problems (division by
        zero, math domain errors) are not syntax errors and are left for
        evaluation.
        """
        if formula is None or not formula.strip():
            return ValidationResult.invalid(FormulaErrorKind.SYNTAX, "Formula cannot be empty")

        opening = formula.count("(")
        closing = formula.count(")")
        if opening != closing:
            return ValidationResult.invalid(
                FormulaErrorKind.SYNTAX,
                "Unbalanced parentheses",
                details=f"Found {opening} opening and {closing} closing parentheses",
            )

        try:
            ast = self.parser.parse(formula)
        except FormulaSyntaxError as e:
            return ValidationResult.invalid(
                FormulaErrorKind.SYNTAX,
                "Invalid formula syntax",
                details=e.error,
                position=e.position,
            )

        placeholders = {name: VALIDATION_PLACEHOLDER for name in collect_variables(ast)}
        try:
            FormulaEvaluator(placeholders).evaluate(ast)
        except (UnknownFunctionError, ArgumentCountError) as e:
            return ValidationResult.invalid(
                FormulaErrorKind.SYNTAX,
                "Invalid formula syntax",
                details=str(e),
            )
        except (ArithmeticError, ValueError):
            pass

        return ValidationResult.valid()

    def evaluate(self, formula: str, variables: Mapping[str, float]) -> float:
        """
        Evaluate ``formula`` with the caller's variable values.

        Raises:
            FormulaSyntaxError: The formula failed validation
            FormulaEvaluationError: A variable is missing or the math failed
        """
        validation = self.validate_with_details(formula)
        if not validation.is_valid:
            error = validation.error
            message = error.message
            if error.details:
                message = f"{message}: {error.details}"
            raise FormulaSyntaxError(formula, message, error.position)

        ast = self.parser.parse(formula)
        try:
            return FormulaEvaluator(variables).evaluate(ast)
        except (ArithmeticError, ValueError, TypeError) as e:
            logger.debug("Formula evaluation failed", extra={"formula": formula, "error": str(e)})
            raise FormulaEvaluationError(formula, str(e)) from e

    def get_variables(self, formula: str) -> list[str]:
        """Variable names used by ``formula``; empty for invalid formulas."""
        try:
            return self.parser.get_variables(formula)
        except FormulaSyntaxError:
            return []

    def format_formula(self, formula: str) -> str:
        """
        Pretty-print a formula with single spaces around operators.

        Cosmetic only: returns the input unchanged if it cannot be parsed.
        """
        try:
            text, _ = _render(self.parser.parse(formula))
            return text.strip()
        except Exception:
            return formula


def _render(node: Any) -> tuple[str, int]:
    """Render an AST node, returning its text and binding strength."""
    if isinstance(node, NumberNode):
        return repr(node.value), _ATOM_PRECEDENCE

    if isinstance(node, VariableNode):
        return node.name, _ATOM_PRECEDENCE

    if isinstance(node, FunctionCallNode):
        args = ", ".join(_render(arg)[0] for arg in node.arguments)
        return f"{node.name}({args})", _ATOM_PRECEDENCE

    if isinstance(node, UnaryOpNode):
        operand, strength = _render(node.operand)
        if strength < _UNARY_PRECEDENCE:
            operand = f"({operand})"
        return f"{node.operator}{operand}", _UNARY_PRECEDENCE

    if isinstance(node, BinaryOpNode):
        strength = _PRECEDENCE[node.operator]
        left, left_strength = _render(node.left)
        right, right_strength = _render(node.right)
        if node.operator == "^":
            # Right-associative; the base must be an atom
            if left_strength < _ATOM_PRECEDENCE:
                left = f"({left})"
            if right_strength < _UNARY_PRECEDENCE:
                right = f"({right})"
        else:
            if left_strength < strength:
                left = f"({left})"
            if right_strength <= strength:
                right = f"({right})"
        return f"{left} {node.operator} {right}", strength

    raise ValueError(f"Unknown node type: {type(node).__name__}")
