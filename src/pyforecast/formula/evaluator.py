"""Formula evaluator for PyForecast.

Evaluates parsed formula ASTs against a variable-value mapping.
"""

from typing import Any, Mapping

from pyforecast.formula.functions import FORMULA_FUNCTIONS, divide, modulo, power
from pyforecast.formula.parser import (
    BinaryOpNode,
    FunctionCallNode,
    NumberNode,
    UnaryOpNode,
    VariableNode,
)


class UndefinedVariableError(ValueError):
    """A variable has no value in the supplied mapping."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Undefined variable: {name}")
        self.name = name


class UnknownFunctionError(ValueError):
    """A function call names a function that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}")
        self.name = name


class ArgumentCountError(TypeError):
    """A function was called with an unsupported number of arguments."""

    def __init__(self, name: str, count: int) -> None:
        super().__init__(f"Function {name} does not accept {count} argument(s)")
        self.name = name


class FormulaEvaluator:
    """
    Evaluates formula ASTs to floats.

    Comparisons evaluate to 1.0 or 0.0 so every formula has a numeric result.
    """

    def __init__(self, variables: Mapping[str, float] | None = None):
        """
        Initialize evaluator with optional variable values.

        Args:
            variables: Dictionary mapping variable names to their values
        """
        self._variables: Mapping[str, float] = variables or {}

    def evaluate(
        self,
        ast: Any,
        variables: Mapping[str, float] | None = None,
    ) -> float:
        """
        Evaluate an AST node.

        Args:
            ast: AST node to evaluate
            variables: Optional variable values (overrides constructor values)

        Returns:
            Evaluation result

        Raises:
            UndefinedVariableError: A variable is missing from the mapping
            UnknownFunctionError: A function is not registered
            ArgumentCountError: A function got the wrong number of arguments
            ArithmeticError, ValueError: Math domain errors from functions
        """
        if variables is not None:
            self._variables = variables

        return self._eval(ast)

    def _eval(self, root: Any) -> float:
        """
        Evaluate an AST without recursion.

        Long formulas such as ``1 + 1 + ... + 1`` produce trees deeper than
        the interpreter stack, so nodes are visited from an explicit stack
        in the same left-to-right order a recursive walk would use.
        """
        values: list[float] = []
        # (node, children_done)
        stack: list[tuple[Any, bool]] = [(root, False)]

        while stack:
            node, children_done = stack.pop()

            if isinstance(node, NumberNode):
                values.append(float(node.value))

            elif isinstance(node, VariableNode):
                if node.name not in self._variables:
                    raise UndefinedVariableError(node.name)
                values.append(float(self._variables[node.name]))

            elif isinstance(node, FunctionCallNode):
                if children_done:
                    count = len(node.arguments)
                    args = values[len(values) - count:]
                    del values[len(values) - count:]
                    values.append(float(FORMULA_FUNCTIONS[node.name].func(*args)))
                else:
                    self._check_function(node)
                    stack.append((node, True))
                    stack.extend((arg, False) for arg in reversed(node.arguments))

            elif isinstance(node, BinaryOpNode):
                if children_done:
                    right = values.pop()
                    left = values.pop()
                    values.append(self._eval_binary(node.operator, left, right))
                else:
                    stack.append((node, True))
                    stack.append((node.right, False))
                    stack.append((node.left, False))

            elif isinstance(node, UnaryOpNode):
                if children_done:
                    values.append(self._eval_unary(node.operator, values.pop()))
                else:
                    stack.append((node, True))
                    stack.append((node.operand, False))

            else:
                raise ValueError(f"Unknown node type: {type(node).__name__}")

        return values.pop()

    def _check_function(self, node: FunctionCallNode) -> None:
        """Reject unknown functions and bad argument counts before evaluating arguments."""
        function = FORMULA_FUNCTIONS.get(node.name)
        if function is None:
            raise UnknownFunctionError(node.name)
        if not function.accepts(len(node.arguments)):
            raise ArgumentCountError(node.name, len(node.arguments))

    def _eval_binary(self, op: str, left: float, right: float) -> float:
        """Apply a binary operator."""
        # Arithmetic operators
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            return divide(left, right)
        if op == "%":
            return modulo(left, right)
        if op == "^":
            return power(left, right)

        # Comparison operators
        if op == "=":
            return float(left == right)
        if op == "!=":
            return float(left != right)
        if op == "<":
            return float(left < right)
        if op == ">":
            return float(left > right)
        if op == "<=":
            return float(left <= right)
        if op == ">=":
            return float(left >= right)

        raise ValueError(f"Unknown operator: {op}")

    def _eval_unary(self, op: str, operand: float) -> float:
        """Apply a unary operator."""
        if op == "-":
            return -operand
        raise ValueError(f"Unknown unary operator: {op}")
