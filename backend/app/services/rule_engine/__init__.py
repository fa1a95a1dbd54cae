"""Rule engine for evaluating loan applications against active policies."""

from .actions import ActionResolver
from .base import EvaluationContext, parse_boolean, parse_number
from .conditions import ConditionEvaluator
from .rules import RuleEvaluator

__all__ = [
    "ActionResolver",
    "ConditionEvaluator",
    "EvaluationContext",
    "RuleEvaluator",
    "parse_boolean",
    "parse_number",
]
