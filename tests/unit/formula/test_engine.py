"""Unit tests for FormulaEngine."""

import math

import pytest

from pyforecast.core.exceptions import FormulaEvaluationError, FormulaSyntaxError
from pyforecast.formula.results import FormulaErrorKind


class TestValidation:
    """Tests for FormulaEngine.validate_with_details."""

    def test_valid_formula(self, engine):
        """Test a well-formed formula."""
        result = engine.validate_with_details("stream_1 * 0.1 + driver_2")
        assert result.is_valid is True
        assert result.error is None
        assert engine.validate("stream_1 * 0.1 + driver_2") is True

    @pytest.mark.parametrize("formula", ["", "   "])
    def test_empty_formula(self, engine, formula):
        """Blank formulas are rejected."""
        result = engine.validate_with_details(formula)
        assert result.is_valid is False
        assert result.error.kind == FormulaErrorKind.SYNTAX
        assert result.error.message == "Formula cannot be empty"

    def test_unbalanced_parentheses(self, engine):
        """Parenthesis counts are compared before parsing."""
        result = engine.validate_with_details("(stream_1 + 5")
        assert result.is_valid is False
        assert result.error.message == "Unbalanced parentheses"
        assert result.error.details == "Found 1 opening and 0 closing parentheses"

    def test_invalid_syntax_has_position(self, engine):
        """Grammar errors keep the parser's position."""
        result = engine.validate_with_details("stream_1 + * 2")
        assert result.is_valid is False
        assert result.error.message == "Invalid formula syntax"
        assert result.error.position == 11

    def test_unknown_function_is_syntax_error(self, engine):
        """Unknown functions are caught during validation."""
        result = engine.validate_with_details("median(stream_1)")
        assert result.is_valid is False
        assert result.error.kind == FormulaErrorKind.SYNTAX
        assert "median" in result.error.details

    def test_wrong_arity_is_syntax_error(self, engine):
        """Bad argument counts are caught during validation."""
        assert engine.validate("sqrt(1, 2)") is False

    def test_division_by_placeholder_is_not_an_error(self, engine):
        """Unknown variables bind to 1, so division never fails validation."""
        assert engine.validate("stream_1 / driver_2") is True

    def test_domain_errors_are_left_to_evaluation(self, engine):
        """Math domain errors are not syntax errors."""
        assert engine.validate("sqrt(0 - headcount)") is True


class TestEvaluation:
    """Tests for FormulaEngine.evaluate."""

    def test_basic_evaluation(self, engine):
        """Test evaluating a formula with entity values."""
        assert engine.evaluate("stream_1 + 10", {"stream_1": 90}) == 100

    def test_round(self, engine):
        """Test the round function."""
        assert engine.evaluate("round(x, 2)", {"x": 1.005}) == 1.01
        assert engine.evaluate("round(-2.5)", {}) == -3

    def test_division_by_zero(self, engine):
        """Division by zero produces infinity."""
        assert engine.evaluate("stream_1 / driver_1", {"stream_1": 5, "driver_1": 0}) == math.inf

    def test_invalid_formula_raises_syntax_error(self, engine):
        """Invalid formulas raise FormulaSyntaxError."""
        with pytest.raises(FormulaSyntaxError) as exc_info:
            engine.evaluate("(1 + 2", {})
        assert "Unbalanced parentheses" in exc_info.value.error

    def test_missing_variable_raises_evaluation_error(self, engine):
        """A missing variable is an evaluation error, not a default."""
        with pytest.raises(FormulaEvaluationError, match="Undefined variable: stream_9"):
            engine.evaluate("stream_9 * 2", {})

    def test_domain_error_raises_evaluation_error(self, engine):
        """Domain errors surface as FormulaEvaluationError."""
        with pytest.raises(FormulaEvaluationError):
            engine.evaluate("sqrt(x)", {"x": -4})


class TestHelpers:
    """Tests for get_variables and format_formula."""

    def test_get_variables(self, engine):
        """Test extracting variables."""
        assert engine.get_variables("stream_1 + driver_2 * stream_1") == ["stream_1", "driver_2"]

    def test_get_variables_of_invalid_formula(self, engine):
        """Invalid formulas have no variables."""
        assert engine.get_variables("1 + * 2") == []

    def test_format_formula(self, engine):
        """Operators get single spaces around them."""
        assert engine.format_formula("stream_1*0.1+driver_2") == "stream_1 * 0.1 + driver_2"
        assert engine.format_formula("round( x ,2 )") == "round(x, 2)"

    def test_format_formula_keeps_needed_parentheses(self, engine):
        """Parentheses that change meaning are kept."""
        assert engine.format_formula("(a+b)*c") == "(a + b) * c"
        assert engine.format_formula("a-(b-c)") == "a - (b - c)"
        assert engine.format_formula("-(a+b)") == "-(a + b)"

    def test_format_formula_returns_input_when_invalid(self, engine):
        """Unparseable formulas come back unchanged."""
        assert engine.format_formula("1 +* 2") == "1 +* 2"


class TestLongFormulas:
    """Formulas whose trees are deeper than the interpreter stack."""

    LONG_SUM = " + ".join(["1"] * 600)

    def test_validate_long_sum(self, engine):
        """Validation succeeds instead of overflowing the stack."""
        assert engine.validate_with_details(self.LONG_SUM).is_valid is True

    def test_evaluate_long_sum(self, engine):
        """Evaluation handles long sums of references."""
        formula = " + ".join(f"stream_{i}" for i in range(2000))
        values = {f"stream_{i}": 0.5 for i in range(2000)}
        assert engine.evaluate(formula, values) == 1000

    def test_format_long_sum_returns_input(self, engine):
        """Formatting never raises; it gives up and returns the text."""
        formula = "+".join(["1"] * 5000)
        assert engine.format_formula(formula) in (formula, " + ".join(["1"] * 5000))
