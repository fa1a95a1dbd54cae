"""Condition evaluator for the 15 policy condition operators."""

import logging
from typing import Callable, Dict, Optional

from app.core.enums import ConditionOperator
from app.models.schemas.evaluation import ConditionResult
from app.models.schemas.policy import Condition
from app.services.rule_engine.base import (
    EvaluationContext,
    parse_boolean,
    parse_number,
)

logger = logging.getLogger(__name__)

OperatorHandler = Callable[[Optional[str], Condition], bool]

# Operators that are evaluated even when the field is absent
PRESENCE_OPERATORS = frozenset({ConditionOperator.IS_NULL, ConditionOperator.IS_NOT_NULL})


class ConditionEvaluator:
    """
    Evaluates a single policy condition against an evaluation context.

    Supported operators:
    - Comparison: EQUALS, NOT_EQUALS, GREATER_THAN, GREATER_THAN_OR_EQUAL,
      LESS_THAN, LESS_THAN_OR_EQUAL
    - Collection: IN, NOT_IN
    - Range: BETWEEN (inclusive)
    - String: CONTAINS, STARTS_WITH (case-insensitive)
    - Boolean: IS_TRUE, IS_FALSE
    - Presence: IS_NULL, IS_NOT_NULL

    evaluate() always returns a ConditionResult. Missing fields and
    unparseable operands produce a non-matching result with the reason
    recorded, so one malformed condition never aborts a policy evaluation.
    """

    def __init__(self):
        """Initialize the evaluator with its operator registry."""
        self._handlers: Dict[ConditionOperator, OperatorHandler] = {}
        self._register_default_handlers()

        missing = set(ConditionOperator) - set(self._handlers)
        if missing:
            raise ValueError(
                "No handler registered for condition operators: "
                + ", ".join(sorted(op.value for op in missing))
            )

    def _register_default_handlers(self) -> None:
        """Register a handler for every condition operator."""
        ops = ConditionOperator

        # Presence
        self._handlers[ops.IS_NULL] = lambda actual, c: _is_blank(actual)
        self._handlers[ops.IS_NOT_NULL] = lambda actual, c: not _is_blank(actual)

        # Equality
        self._handlers[ops.EQUALS] = lambda actual, c: _equals(actual, c.value)
        self._handlers[ops.NOT_EQUALS] = lambda actual, c: not _equals(actual, c.value)

        # Numeric comparison
        self._handlers[ops.GREATER_THAN] = lambda actual, c: _compare(actual, c.value) > 0
        self._handlers[ops.GREATER_THAN_OR_EQUAL] = lambda actual, c: _compare(actual, c.value) >= 0
        self._handlers[ops.LESS_THAN] = lambda actual, c: _compare(actual, c.value) < 0
        self._handlers[ops.LESS_THAN_OR_EQUAL] = lambda actual, c: _compare(actual, c.value) <= 0

        # Collection membership
        self._handlers[ops.IN] = lambda actual, c: _is_in(actual, c.values)
        self._handlers[ops.NOT_IN] = lambda actual, c: not _is_in(actual, c.values)

        # Range
        self._handlers[ops.BETWEEN] = lambda actual, c: _between(actual, c.min_value, c.max_value)

        # String matching
        self._handlers[ops.CONTAINS] = (
            lambda actual, c: _require_value(c).lower() in actual.lower()
        )
        self._handlers[ops.STARTS_WITH] = (
            lambda actual, c: actual.lower().startswith(_require_value(c).lower())
        )

        # Boolean
        self._handlers[ops.IS_TRUE] = lambda actual, c: parse_boolean(actual) is True
        self._handlers[ops.IS_FALSE] = lambda actual, c: parse_boolean(actual) is False

    def evaluate(
        self, condition: Condition, context: EvaluationContext
    ) -> ConditionResult:
        """
        Evaluate a condition against the context.

        Args:
            condition: The condition to evaluate
            context: Flat field map of the application being evaluated

        Returns:
            ConditionResult with match status, compared values and reason
        """
        field_path = condition.field
        operator = condition.operator
        actual = context.get(field_path)
        handler = self._handlers[operator]

        logger.debug(
            f"Evaluating condition: {field_path} {operator.value} {expected_display(condition)}"
        )

        if operator in PRESENCE_OPERATORS:
            matched = handler(actual, condition)
            if _is_blank(actual):
                reason = "Field is null/empty"
            else:
                reason = f"Field has value: {actual}"
            return self._build_result(condition, actual, matched, reason)

        if actual is None:
            return self._build_result(
                condition,
                None,
                False,
                f"Field '{field_path}' not found in evaluation context",
            )

        try:
            matched = handler(actual, condition)
        except Exception as e:
            logger.warning(
                f"Error evaluating condition {field_path} {operator.value} "
                f"{expected_display(condition)}: {e}"
            )
            return self._build_result(
                condition, actual, False, f"Evaluation error: {e}"
            )

        outcome = "PASS" if matched else "FAIL"
        reason = (
            f"'{actual}' {operator.value} {expected_display(condition)} -> {outcome}"
        )
        return self._build_result(condition, actual, matched, reason)

    @staticmethod
    def _build_result(
        condition: Condition,
        actual: Optional[str],
        matched: bool,
        reason: str,
    ) -> ConditionResult:
        return ConditionResult(
            field=condition.field,
            operator=condition.operator.value,
            expected_value=expected_display(condition),
            actual_value=actual,
            matched=matched,
            reason=reason,
        )


def expected_display(condition: Condition) -> str:
    """Display form of the expected value for logs and the audit trail."""
    operator = condition.operator
    if operator == ConditionOperator.BETWEEN:
        return f"[{condition.min_value}, {condition.max_value}]"
    if operator in (ConditionOperator.IN, ConditionOperator.NOT_IN):
        return "[" + ", ".join(condition.values or ()) + "]"
    if operator in PRESENCE_OPERATORS or operator in (
        ConditionOperator.IS_TRUE,
        ConditionOperator.IS_FALSE,
    ):
        return ""
    return condition.value if condition.value is not None else ""


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _require_value(condition: Condition) -> str:
    if condition.value is None:
        raise ValueError(f"Operator {condition.operator.value} requires a value")
    return condition.value


def _equals(actual: str, expected: Optional[str]) -> bool:
    """Numeric equality when both sides parse, else trimmed case-insensitive match."""
    if expected is None:
        return False

    actual_num = parse_number(actual)
    expected_num = parse_number(expected)
    if actual_num is not None and expected_num is not None:
        return actual_num == expected_num

    return actual.strip().lower() == expected.strip().lower()


def _compare(actual: str, expected: Optional[str]) -> int:
    """Three-way numeric comparison; both sides must be numbers."""
    actual_num = parse_number(actual)
    expected_num = parse_number(expected)

    if actual_num is None:
        raise ValueError(f"Cannot parse '{actual}' as a number for comparison")
    if expected_num is None:
        raise ValueError(f"Cannot parse '{expected}' as a number for comparison")

    if actual_num > expected_num:
        return 1
    if actual_num < expected_num:
        return -1
    return 0


def _is_in(actual: str, values: Optional[tuple[str, ...]]) -> bool:
    """Numeric membership when the actual value parses, else case-insensitive."""
    if not values:
        return False

    actual_num = parse_number(actual)
    if actual_num is not None:
        return any(
            parse_number(candidate) == actual_num
            for candidate in values
            if parse_number(candidate) is not None
        )

    normalized = actual.strip().lower()
    return any(
        candidate is not None and candidate.strip().lower() == normalized
        for candidate in values
    )


def _between(
    actual: str, min_value: Optional[str], max_value: Optional[str]
) -> bool:
    """Inclusive numeric range check."""
    actual_num = parse_number(actual)
    min_num = parse_number(min_value)
    max_num = parse_number(max_value)

    if actual_num is None:
        raise ValueError(f"Cannot parse '{actual}' as a number for BETWEEN")
    if min_num is None:
        raise ValueError(f"Cannot parse min value '{min_value}' as a number")
    if max_num is None:
        raise ValueError(f"Cannot parse max value '{max_value}' as a number")

    return min_num <= actual_num <= max_num
