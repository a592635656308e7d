"""Formula parser for PyForecast.

Parses formula strings into an AST using the Lark LALR parser.
"""

from dataclasses import dataclass
from typing import Any

from lark import Lark, Transformer, v_args
from lark.exceptions import (
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
)

from pyforecast.core.exceptions import FormulaSyntaxError
from pyforecast.formula.grammar import FORMULA_GRAMMAR


# AST Node types
@dataclass
class NumberNode:
    value: float | int


@dataclass
class VariableNode:
    name: str
    position: int | None = None


@dataclass
class FunctionCallNode:
    name: str
    arguments: list[Any]


@dataclass
class BinaryOpNode:
    operator: str
    left: Any
    right: Any


@dataclass
class UnaryOpNode:
    operator: str
    operand: Any


def _binary(operator: str):
    @v_args(inline=True)
    def build(self, left, right):
        return BinaryOpNode(operator, left, right)

    return build


class FormulaTransformer(Transformer):
    """Transform Lark parse tree into AST nodes."""

    @v_args(inline=True)
    def number(self, token):
        value = float(token)
        # Keep as int if no decimal
        if value.is_integer() and "e" not in token.lower():
            value = int(value)
        return NumberNode(value)

    @v_args(inline=True)
    def variable(self, token):
        return VariableNode(str(token), getattr(token, "start_pos", None))

    def function_call(self, items):
        # Function names are case-insensitive
        name = str(items[0]).lower()
        args = list(items[1]) if len(items) > 1 and items[1] else []
        return FunctionCallNode(name, args)

    def arguments(self, items):
        return list(items)

    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("%")
    pow = _binary("^")

    eq = _binary("=")
    ne = _binary("!=")
    lt = _binary("<")
    gt = _binary(">")
    le = _binary("<=")
    ge = _binary(">=")

    @v_args(inline=True)
    def neg(self, operand):
        return UnaryOpNode("-", operand)

    @v_args(inline=True)
    def pos(self, operand):
        return operand  # Positive is a no-op


def _describe_parse_error(error: UnexpectedInput) -> tuple[str, int | None]:
    """Turn a Lark error into a one-line message and a character offset."""
    position = getattr(error, "pos_in_stream", None)
    if position is not None and position < 0:
        position = None

    if isinstance(error, UnexpectedCharacters):
        return f"Unexpected character '{error.char}' at position {position}", position
    if isinstance(error, UnexpectedEOF):
        return "Unexpected end of formula", None
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "Unexpected end of formula", None
        return f"Unexpected '{error.token}' at position {position}", position
    return str(error), position


class FormulaParser:
    """
    Parser for PyForecast formulas.

    Parses formula strings into an AST that can be evaluated. Parsed ASTs
    are cached by formula text; the AST nodes must be treated as read-only.
    """

    def __init__(self, cache_size: int = 1024):
        self._parser = Lark(
            FORMULA_GRAMMAR,
            parser="lalr",
            propagate_positions=False,
            transformer=FormulaTransformer(),
        )
        self._cache: dict[str, Any] = {}
        self._cache_size = cache_size

    def parse(self, formula: str) -> Any:
        """
        Parse a formula string into an AST.

        Args:
            formula: Formula string to parse

        Returns:
            AST root node

        Raises:
            FormulaSyntaxError: If formula syntax is invalid
        """
        cached = self._cache.get(formula)
        if cached is not None:
            return cached

        try:
            ast = self._parser.parse(formula)
        except UnexpectedInput as e:
            message, position = _describe_parse_error(e)
            raise FormulaSyntaxError(formula, message, position) from e

        if self._cache_size:
            if len(self._cache) >= self._cache_size:
                # Drop the oldest entry
                self._cache.pop(next(iter(self._cache)))
            self._cache[formula] = ast
        return ast

    def get_variables(self, formula: str) -> list[str]:
        """
        Extract all variable names (including entity references) from a formula.

        Args:
            formula: Formula string

        Returns:
            Distinct variable names in order of first appearance
        """
        return collect_variables(self.parse(formula))


def collect_variables(ast: Any) -> list[str]:
    """Distinct variable names of an AST in order of first appearance."""
    names: list[str] = []
    # Explicit stack: long formulas nest deeper than the interpreter allows
    stack = [ast]
    while stack:
        node = stack.pop()
        if isinstance(node, VariableNode):
            names.append(node.name)
        elif isinstance(node, BinaryOpNode):
            stack.append(node.right)
            stack.append(node.left)
        elif isinstance(node, UnaryOpNode):
            stack.append(node.operand)
        elif isinstance(node, FunctionCallNode):
            stack.extend(reversed(node.arguments))
    return list(dict.fromkeys(names))
