import pytest

from app.services.rule_engine import (
    ActionResolver,
    ConditionEvaluator,
    EvaluationContext,
    RuleEvaluator,
)


@pytest.fixture
def condition_evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


@pytest.fixture
def rule_evaluator() -> RuleEvaluator:
    return RuleEvaluator()


@pytest.fixture
def action_resolver() -> ActionResolver:
    return ActionResolver()


@pytest.fixture
def applicant_context() -> EvaluationContext:
    """Salaried applicant with a good CIBIL score."""
    context = EvaluationContext()
    context.put("applicant.cibilScore", "750")
    context.put("applicant.age", "35")
    context.put("applicant.employmentType", "SALARIED")
    return context

