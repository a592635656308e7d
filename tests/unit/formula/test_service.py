"""Unit tests for FormulaService."""

import pytest

from pyforecast.formula.results import FormulaErrorKind


class TestValidateWithDetails:
    """Tests for FormulaService.validate_with_details."""

    @pytest.mark.parametrize("formula", ["(1 + 2", "1 + 2)"])
    def test_unbalanced_parentheses(self, service, formula):
        """Both directions of imbalance are syntax errors."""
        result = service.validate_with_details(formula)
        assert result.is_valid is False
        assert result.error.kind == FormulaErrorKind.SYNTAX

    def test_unknown_reference(self, service):
        """References to unregistered entities are rejected."""
        result = service.validate_with_details("stream_999")

        assert result.is_valid is False
        assert result.error.kind == FormulaErrorKind.REFERENCE
        assert result.error.message == "Invalid reference: stream_999"
        assert result.error.details == "No stream with id 999 exists"
        assert result.error.position == 0

    def test_registered_reference(self, service, registry, make_entity):
        """References to registered entities are accepted."""
        registry.register(make_entity("stream", 1, value=10))
        assert service.validate_with_details("stream_1 * 2").is_valid is True

    def test_reference_supplied_as_variable(self, service):
        """An explicit value makes a reference resolvable."""
        assert service.validate_with_details("stream_7 + 1", {"stream_7": 3}).is_valid is True

    def test_payload_shape(self, service):
        """Results serialise with the camelCase wire keys."""
        payload = service.validate_with_details("stream_999").model_dump(
            by_alias=True, exclude_none=True
        )
        assert payload["isValid"] is False
        assert payload["error"]["type"] == "reference"


class TestValidateAndCalculate:
    """Tests for FormulaService.validate_and_calculate."""

    def test_explicit_variables(self, service):
        """Formulas can be calculated from variables alone."""
        result = service.validate_and_calculate("stream_1 + 10", {"stream_1": 90})
        assert result.is_valid is True
        assert result.result == 100

    def test_registry_values(self, service, registry, make_entity):
        """Registered entities supply their effective values."""
        registry.register(make_entity("driver", 1, value=5))
        registry.register(make_entity("expense", 1, formula="driver_1 * 2"))

        result = service.validate_and_calculate("expense_1 + driver_1")
        assert result.is_valid is True
        assert result.result == 15

    def test_variables_override_registry(self, service, registry, make_entity):
        """Explicit values win over registered ones."""
        registry.register(make_entity("stream", 1, value=100))
        result = service.validate_and_calculate("stream_1 * 2", {"stream_1": 1})
        assert result.result == 2

    def test_personnel_variables(self, service):
        """headcount and salary can be passed directly."""
        result = service.validate_and_calculate(
            "headcount * salary", {"headcount": 4, "salary": 50000}
        )
        assert result.result == 200000

    def test_syntax_error_short_circuits(self, service):
        """Invalid formulas are not evaluated."""
        result = service.validate_and_calculate("1 + * 2")
        assert result.is_valid is False
        assert result.result is None
        assert result.error.kind == FormulaErrorKind.SYNTAX

    def test_missing_plain_variable(self, service):
        """Plain variables without a value are calculation errors."""
        result = service.validate_and_calculate("headcount * salary", {"headcount": 4})
        assert result.is_valid is False
        assert result.error.kind == FormulaErrorKind.CALCULATION
        assert "salary" in result.error.details

    def test_division_by_zero_is_invalid_result(self, service):
        """Non-finite results are reported as calculation errors."""
        result = service.validate_and_calculate("stream_1 / 0", {"stream_1": 5})
        assert result.is_valid is False
        assert result.error.message == "Invalid result"
        assert result.error.details == "The formula evaluation resulted in NaN or Infinity"

    def test_target_self_reference_warns(self, service, registry, make_entity):
        """Editing an entity to depend on itself produces a warning."""
        registry.register(make_entity("stream", 1, value=10))
        registry.register(make_entity("driver", 1, formula="stream_1 * 2"))

        result = service.validate_and_calculate("driver_1 + 1", target=("stream", 1))
        assert result.is_valid is True
        assert result.result == 21
        assert result.warning.kind == FormulaErrorKind.CIRCULAR
        assert result.warning.details == "This formula would make stream_1 depend on itself"

    def test_registry_cycle_warns(self, service, registry, make_entity):
        """A cycle elsewhere in the registry is reported as a warning."""
        registry.register(make_entity("expense", 1, formula="expense_2 + 1"))
        registry.register(make_entity("expense", 2, formula="expense_1 + 1"))

        result = service.validate_and_calculate("5 * 2")
        assert result.is_valid is True
        assert result.result == 10
        assert result.warning.message == "Circular reference detected"
        assert result.warning.details == "Entities involved: expense_1, expense_2"

    def test_no_warning_without_cycle(self, service):
        """Clean registries produce no warning."""
        result = service.validate_and_calculate("1 + 1")
        assert result.warning is None
        assert result.to_payload() == {"isValid": True, "result": 2.0}

    def test_does_not_modify_registry(self, service, registry, make_entity):
        """Calculation never changes stored entities or cached values."""
        registry.register(make_entity("stream", 1, value=10))
        service.validate_and_calculate("stream_1 * 3")

        assert registry.get_entity("stream", 1).value == 10
        assert registry.calculated_values() == {}

    def test_idempotent(self, service):
        """The same formula and variables give the same answer."""
        first = service.validate_and_calculate("round(x / 3, 2)", {"x": 10})
        second = service.validate_and_calculate("round(x / 3, 2)", {"x": 10})
        assert first == second
        assert first.result == 3.33

    def test_long_sum(self, service):
        """Long valid formulas are calculated, not rejected."""
        result = service.validate_and_calculate(" + ".join(["1"] * 600))
        assert result.is_valid is True
        assert result.result == 600
