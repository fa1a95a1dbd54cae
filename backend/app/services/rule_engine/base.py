"""Rule engine foundation: the flat evaluation context and shared value parsing."""

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_TRUE_VALUES = frozenset({"true", "1", "yes"})
_FALSE_VALUES = frozenset({"false", "0", "no"})

# Plain ASCII decimal or exponent literal: no digit separators, no NaN/Infinity
_NUMBER_LITERAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def parse_number(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a context or condition value as a number.

    Args:
        value: Raw string value

    Returns:
        Decimal value, or None if blank or not a plain numeric literal
    """
    if value is None:
        return None
    text = value.strip()
    if not _NUMBER_LITERAL.fullmatch(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_boolean(value: str) -> bool:
    """
    Parse a context value as a boolean.

    Accepts true/1/yes and false/0/no, case-insensitive.

    Raises:
        ValueError: If the value is not a recognised boolean literal
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot parse '{value}' as a boolean")


@dataclass
class EvaluationContext:
    """
    Flat map of dotted field paths to string values.

    All facts are stored as strings and parsed on demand by the condition
    evaluator, so policies never depend on the caller's native types.

    Standard field paths:
        loan.type, loan.requestedAmount, loan.tenureMonths, loan.purpose, loan.branchCode
        applicant.cibilScore, applicant.riskCategory, applicant.age
        applicant.employmentType, applicant.monthlyIncome, applicant.yearsOfExperience
        property.estimatedValue, property.type
    """

    data: dict[str, str] = field(default_factory=dict)

    def put(self, field_path: str, value: Any) -> "EvaluationContext":
        """Store a value as a string; None values are skipped."""
        if value is not None:
            self.data[field_path] = str(value)
        return self

    def get(self, field_path: str) -> Optional[str]:
        return self.data.get(field_path)

    def has_field(self, field_path: str) -> bool:
        return field_path in self.data

    def get_as_number(self, field_path: str) -> Optional[Decimal]:
        return parse_number(self.data.get(field_path))

    def get_as_boolean(self, field_path: str) -> Optional[bool]:
        """Boolean value of a field, or None if missing or unparseable."""
        value = self.data.get(field_path)
        if value is None or not value.strip():
            return None
        try:
            return parse_boolean(value)
        except ValueError:
            return None

    def __len__(self) -> int:
        return len(self.data)
