"""Formula functions for PyForecast.

Implements the built-in functions available in formulas. Everything works
on floats and follows IEEE-754 behaviour where Python's ``math`` module
would raise instead (overflow gives ``inf``, ``log(0)`` gives ``-inf``).
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable


@dataclass(frozen=True)
class FormulaFunction:
    """A callable exposed to formulas together with its accepted arity."""

    name: str
    func: Callable[..., float]
    min_args: int
    max_args: int | None

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args


# Registry of formula functions, keyed by lower-case name
FORMULA_FUNCTIONS: dict[str, FormulaFunction] = {}


def register_function(
    name: str,
    min_args: int = 1,
    max_args: int | None = 1,
) -> Callable[[Callable[..., float]], Callable[..., float]]:
    """Decorator to register a formula function."""

    def decorator(func: Callable[..., float]) -> Callable[..., float]:
        key = name.lower()
        FORMULA_FUNCTIONS[key] = FormulaFunction(key, func, min_args, max_args)
        return func

    return decorator


# =============================================================================
# Arithmetic shared with the operators
# =============================================================================


def divide(left: float, right: float) -> float:
    """IEEE division: x/0 is +-inf, 0/0 is nan."""
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def modulo(left: float, right: float) -> float:
    """Floored modulo; ``x % 0`` is ``x``."""
    if right == 0:
        return left
    return left % right


def power(base: float, exponent: float) -> float:
    """Exponentiation without Python's complex/ZeroDivision surprises."""
    if base == 0 and exponent < 0:
        return math.inf
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and exponent.is_integer() and int(exponent) % 2:
            return -math.inf
        return math.inf


# =============================================================================
# Aggregate Functions
# =============================================================================


@register_function("sum", min_args=1, max_args=None)
def func_sum(*args: float) -> float:
    """Sum of the arguments."""
    return math.fsum(args)


@register_function("min", min_args=1, max_args=None)
def func_min(*args: float) -> float:
    """Smallest argument."""
    return min(args)


@register_function("max", min_args=1, max_args=None)
def func_max(*args: float) -> float:
    """Largest argument."""
    return max(args)


@register_function("avg", min_args=1, max_args=None)
def func_avg(*args: float) -> float:
    """Arithmetic mean of the arguments."""
    return math.fsum(args) / len(args)


# =============================================================================
# Rounding Functions
# =============================================================================


@register_function("round", min_args=1, max_args=2)
def func_round(value: float, decimals: float = 0) -> float:
    """Round half away from zero to ``decimals`` places."""
    if not math.isfinite(value):
        return value
    exponent = Decimal(1).scaleb(-int(decimals))
    return float(Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP))


@register_function("floor")
def func_floor(value: float) -> float:
    if not math.isfinite(value):
        return value
    return float(math.floor(value))


@register_function("ceil")
def func_ceil(value: float) -> float:
    if not math.isfinite(value):
        return value
    return float(math.ceil(value))


# =============================================================================
# Math Functions
# =============================================================================


@register_function("abs")
def func_abs(value: float) -> float:
    return abs(value)


@register_function("sqrt")
def func_sqrt(value: float) -> float:
    return math.sqrt(value)


@register_function("pow", min_args=2, max_args=2)
def func_pow(base: float, exponent: float) -> float:
    return power(base, exponent)


@register_function("exp")
def func_exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


@register_function("log", min_args=1, max_args=2)
def func_log(value: float, base: float | None = None) -> float:
    """Natural logarithm, or logarithm in ``base`` when given."""
    if value == 0:
        return -math.inf
    if base is None:
        return math.log(value)
    return math.log(value, base)


@register_function("sin")
def func_sin(value: float) -> float:
    return math.sin(value)


@register_function("cos")
def func_cos(value: float) -> float:
    return math.cos(value)


@register_function("tan")
def func_tan(value: float) -> float:
    return math.tan(value)


@register_function("asin")
def func_asin(value: float) -> float:
    return math.asin(value)


@register_function("acos")
def func_acos(value: float) -> float:
    return math.acos(value)


@register_function("atan")
def func_atan(value: float) -> float:
    return math.atan(value)
