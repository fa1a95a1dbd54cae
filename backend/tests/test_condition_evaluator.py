"""
Unit tests for ConditionEvaluator.
"""

from decimal import Decimal

import pytest

from app.core.enums import ConditionOperator as Op
from app.services.rule_engine import ConditionEvaluator, EvaluationContext, parse_boolean, parse_number
from tests.factories import condition


def context_with(**fields: str) -> EvaluationContext:
    context = EvaluationContext()
    for key, value in fields.items():
        context.put(key.replace("__", "."), value)
    return context


class TestValueParsing:
    """Test cases for the shared numeric and boolean parsers."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("650", Decimal("650")),
            (" 12.5 ", Decimal("12.5")),
            ("-3", Decimal("-3")),
            ("", None),
            ("   ", None),
            (None, None),
            ("abc", None),
            ("NaN", None),
            ("Infinity", None),
            ("1e3", Decimal("1000")),
            (".5", Decimal("0.5")),
            ("+7.", Decimal("7")),
        ],
    )
    def test_parse_number(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", ["1_000", "٣", "５０", "0x10", "1,000", "5e"])
    def test_parse_number_rejects_non_ascii_literals(self, raw):
        assert parse_number(raw) is None

    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", " Yes "])
    def test_parse_boolean_true(self, raw):
        assert parse_boolean(raw) is True

    @pytest.mark.parametrize("raw", ["false", "False", "0", "no", "NO"])
    def test_parse_boolean_false(self, raw):
        assert parse_boolean(raw) is False

    def test_parse_boolean_rejects_other_values(self):
        with pytest.raises(ValueError, match="Cannot parse 'maybe' as a boolean"):
            parse_boolean("maybe")


class TestEvaluationContext:
    """Test cases for EvaluationContext."""

    def test_put_stores_strings_and_skips_none(self):
        context = EvaluationContext()
        context.put("applicant.cibilScore", 750).put("loan.purpose", None)

        assert context.get("applicant.cibilScore") == "750"
        assert not context.has_field("loan.purpose")
        assert len(context) == 1

    def test_typed_getters(self):
        context = context_with(applicant__monthlyIncome="50000.50", applicant__irrigatedLand="yes")

        assert context.get_as_number("applicant.monthlyIncome") == Decimal("50000.50")
        assert context.get_as_boolean("applicant.irrigatedLand") is True
        assert context.get_as_number("applicant.missing") is None
        assert context.get_as_boolean("applicant.monthlyIncome") is None


class TestConditionEvaluator:
    """Test cases for ConditionEvaluator."""

    def test_every_operator_has_a_handler(self, condition_evaluator):
        assert set(condition_evaluator._handlers) == set(Op)

    def test_missing_handler_fails_construction(self):
        class IncompleteEvaluator(ConditionEvaluator):
            def _register_default_handlers(self):
                super()._register_default_handlers()
                del self._handlers[Op.CONTAINS]

        with pytest.raises(ValueError, match="CONTAINS"):
            IncompleteEvaluator()

    # ===== Presence =====

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_is_null_matches_absent_or_blank(self, condition_evaluator, value):
        context = context_with(loan__purpose=value) if value is not None else EvaluationContext()

        result = condition_evaluator.evaluate(condition("loan.purpose", Op.IS_NULL), context)

        assert result.matched is True
        assert result.reason == "Field is null/empty"

    @pytest.mark.parametrize("value", ["0", "false", "anything"])
    def test_is_not_null_ignores_value_type(self, condition_evaluator, value):
        context = context_with(property__estimatedValue=value)

        result = condition_evaluator.evaluate(
            condition("property.estimatedValue", Op.IS_NOT_NULL), context
        )

        assert result.matched is True
        assert result.reason == f"Field has value: {value}"

    def test_is_not_null_on_missing_field(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("property.estimatedValue", Op.IS_NOT_NULL), EvaluationContext()
        )

        assert result.matched is False
        assert result.actual_value is None

    # ===== Missing fields =====

    def test_missing_field_is_a_normal_non_match(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", Op.GREATER_THAN, value="650"),
            EvaluationContext(),
        )

        assert result.matched is False
        assert result.reason == "Field 'applicant.cibilScore' not found in evaluation context"

    # ===== Equality =====

    @pytest.mark.parametrize(
        "actual, expected, matched",
        [
            ("50000.00", "50000", True),
            ("650", "651", False),
            (" salaried ", "SALARIED", True),
            ("SALARIED", "BUSINESS", False),
        ],
    )
    def test_equals(self, condition_evaluator, actual, expected, matched):
        result = condition_evaluator.evaluate(
            condition("applicant.employmentType", Op.EQUALS, value=expected),
            context_with(applicant__employmentType=actual),
        )

        assert result.matched is matched

    def test_not_equals(self, condition_evaluator):
        context = context_with(loan__branchCode="MUM001")

        same = condition_evaluator.evaluate(
            condition("loan.branchCode", Op.NOT_EQUALS, value="mum001"), context
        )
        different = condition_evaluator.evaluate(
            condition("loan.branchCode", Op.NOT_EQUALS, value="DEL002"), context
        )

        assert same.matched is False
        assert different.matched is True

    # ===== Numeric comparison =====

    @pytest.mark.parametrize(
        "operator, expected, matched",
        [
            (Op.GREATER_THAN, "749", True),
            (Op.GREATER_THAN, "750", False),
            (Op.GREATER_THAN_OR_EQUAL, "750", True),
            (Op.LESS_THAN, "750", False),
            (Op.LESS_THAN, "750.5", True),
            (Op.LESS_THAN_OR_EQUAL, "750", True),
        ],
    )
    def test_numeric_comparisons(self, condition_evaluator, applicant_context, operator, expected, matched):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", operator, value=expected), applicant_context
        )

        assert result.matched is matched
        assert result.reason.endswith("PASS" if matched else "FAIL")

    def test_comparison_reason_format(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", Op.GREATER_THAN_OR_EQUAL, value="650"),
            applicant_context,
        )

        assert result.reason == "'750' GREATER_THAN_OR_EQUAL 650 -> PASS"
        assert result.actual_value == "750"
        assert result.expected_value == "650"
        assert result.operator == "GREATER_THAN_OR_EQUAL"

    @pytest.mark.parametrize(
        "operator",
        [Op.GREATER_THAN, Op.GREATER_THAN_OR_EQUAL, Op.LESS_THAN, Op.LESS_THAN_OR_EQUAL],
    )
    def test_non_numeric_actual_is_recoverable(self, condition_evaluator, operator):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", operator, value="650"),
            context_with(applicant__cibilScore="excellent"),
        )

        assert result.matched is False
        assert result.reason == (
            "Evaluation error: Cannot parse 'excellent' as a number for comparison"
        )

    def test_digit_separator_is_not_a_number(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("loan.requestedAmount", Op.GREATER_THAN, value="500"),
            context_with(loan__requestedAmount="1_000"),
        )

        assert result.matched is False
        assert result.reason == "Evaluation error: Cannot parse '1_000' as a number for comparison"

    def test_non_numeric_expected_is_recoverable(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", Op.LESS_THAN, value="six hundred"),
            applicant_context,
        )

        assert result.matched is False
        assert "Cannot parse 'six hundred'" in result.reason

    def test_missing_expected_value_is_recoverable(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", Op.GREATER_THAN), applicant_context
        )

        assert result.matched is False
        assert result.reason.startswith("Evaluation error:")

    # ===== Collection =====

    def test_in_compares_numerically_when_possible(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("loan.tenureMonths", Op.IN, values=["12", "36.0", "sixty"]),
            context_with(loan__tenureMonths="36"),
        )

        assert result.matched is True
        assert result.expected_value == "[12, 36.0, sixty]"

    def test_in_falls_back_to_case_insensitive_strings(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.employmentType", Op.IN, values=["salaried", "professional"]),
            applicant_context,
        )

        assert result.matched is True

    def test_in_with_no_candidates(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.employmentType", Op.IN), applicant_context
        )

        assert result.matched is False

    def test_not_in(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.employmentType", Op.NOT_IN, values=["BUSINESS", "SELF_EMPLOYED"]),
            applicant_context,
        )

        assert result.matched is True

    # ===== Range =====

    @pytest.mark.parametrize(
        "age, matched",
        [("21", True), ("58", True), ("35", True), ("19", False), ("58.01", False)],
    )
    def test_between_is_inclusive(self, condition_evaluator, age, matched):
        result = condition_evaluator.evaluate(
            condition("applicant.age", Op.BETWEEN, min_value="21", max_value="58"),
            context_with(applicant__age=age),
        )

        assert result.matched is matched
        assert result.expected_value == "[21, 58]"

    def test_between_with_bad_bound_is_recoverable(self, condition_evaluator, applicant_context):
        result = condition_evaluator.evaluate(
            condition("applicant.age", Op.BETWEEN, min_value="adult", max_value="58"),
            applicant_context,
        )

        assert result.matched is False
        assert result.reason == "Evaluation error: Cannot parse min value 'adult' as a number"

    def test_between_with_non_numeric_actual(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("applicant.age", Op.BETWEEN, min_value="21", max_value="58"),
            context_with(applicant__age="thirty"),
        )

        assert result.matched is False
        assert "for BETWEEN" in result.reason

    # ===== String matching =====

    def test_contains_is_case_insensitive(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("loan.purpose", Op.CONTAINS, value="RENOV"),
            context_with(loan__purpose="Home renovation"),
        )

        assert result.matched is True

    def test_starts_with_is_case_insensitive(self, condition_evaluator):
        context = context_with(loan__branchCode="MUM001")

        assert condition_evaluator.evaluate(
            condition("loan.branchCode", Op.STARTS_WITH, value="mum"), context
        ).matched is True
        assert condition_evaluator.evaluate(
            condition("loan.branchCode", Op.STARTS_WITH, value="001"), context
        ).matched is False

    def test_contains_without_value_is_recoverable(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("loan.purpose", Op.CONTAINS),
            context_with(loan__purpose="Home renovation"),
        )

        assert result.matched is False
        assert result.reason == "Evaluation error: Operator CONTAINS requires a value"

    # ===== Boolean =====

    @pytest.mark.parametrize(
        "raw, is_true, is_false",
        [("true", True, False), ("YES", True, False), ("0", False, True), ("no", False, True)],
    )
    def test_boolean_operators(self, condition_evaluator, raw, is_true, is_false):
        context = context_with(applicant__landOwnership=raw)

        assert condition_evaluator.evaluate(
            condition("applicant.landOwnership", Op.IS_TRUE), context
        ).matched is is_true
        assert condition_evaluator.evaluate(
            condition("applicant.landOwnership", Op.IS_FALSE), context
        ).matched is is_false

    def test_unparseable_boolean_is_recoverable(self, condition_evaluator):
        result = condition_evaluator.evaluate(
            condition("applicant.landOwnership", Op.IS_TRUE),
            context_with(applicant__landOwnership="maybe"),
        )

        assert result.matched is False
        assert result.reason == "Evaluation error: Cannot parse 'maybe' as a boolean"

    @pytest.mark.parametrize("operator", list(Op))
    def test_evaluate_never_raises(self, condition_evaluator, operator):
        result = condition_evaluator.evaluate(
            condition("applicant.cibilScore", operator, value="x", min_value="y", max_value="z"),
            context_with(applicant__cibilScore="not-a-number"),
        )

        assert result.reason
        assert result.field == "applicant.cibilScore"
