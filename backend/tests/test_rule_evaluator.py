"""
Unit tests for RuleEvaluator.
"""

import pytest

from app.core.enums import ActionType, ConditionOperator as Op, LogicalOperator
from app.services.rule_engine import EvaluationContext
from tests.factories import action, approve_rule, condition, rule


class TestRuleEvaluator:
    """Test cases for RuleEvaluator."""

    def test_salaried_applicant_matches_approval_rule(self, rule_evaluator, applicant_context):
        """All three conditions pass, one APPROVE action is triggered."""
        result = rule_evaluator.evaluate(approve_rule(priority=10), applicant_context, "POL-2026-000001")

        assert result.matched is True
        assert result.rule_name == "Salaried Approval"
        assert [c.matched for c in result.condition_results] == [True, True, True]
        assert len(result.triggered_actions) == 1

        triggered = result.triggered_actions[0]
        assert triggered.action_type == ActionType.APPROVE
        assert triggered.priority == 10
        assert triggered.source_policy_code == "POL-2026-000001"
        assert triggered.source_rule_name == "Salaried Approval"

    def test_and_rule_records_every_condition_after_failure(self, rule_evaluator, applicant_context):
        applicant_context.put("applicant.cibilScore", "600")

        result = rule_evaluator.evaluate(approve_rule(), applicant_context, "POL-1")

        assert result.matched is False
        assert len(result.condition_results) == 3
        assert [c.matched for c in result.condition_results] == [False, True, True]
        assert result.triggered_actions == []

    def test_or_rule_matches_on_any_condition(self, rule_evaluator, applicant_context):
        or_rule = rule(
            "High Risk",
            conditions=[
                condition("applicant.cibilScore", Op.LESS_THAN, value="500"),
                condition("applicant.employmentType", Op.EQUALS, value="SALARIED"),
            ],
            actions=[action(ActionType.FLAG_RISK, reason="test")],
            logical_operator=LogicalOperator.OR,
        )

        result = rule_evaluator.evaluate(or_rule, applicant_context, "POL-1")

        assert result.matched is True
        assert result.logical_operator == LogicalOperator.OR
        assert result.triggered_actions[0].parameters == {"reason": "test"}

    def test_or_rule_without_any_match(self, rule_evaluator, applicant_context):
        or_rule = rule(
            "High Risk",
            conditions=[
                condition("applicant.cibilScore", Op.LESS_THAN, value="500"),
                condition("applicant.riskCategory", Op.EQUALS, value="HIGH"),
            ],
            actions=[action(ActionType.FLAG_RISK)],
            logical_operator=LogicalOperator.OR,
        )

        result = rule_evaluator.evaluate(or_rule, applicant_context, "POL-1")

        assert result.matched is False
        assert result.triggered_actions == []

    @pytest.mark.parametrize("operator", [LogicalOperator.AND, LogicalOperator.OR])
    def test_rule_without_conditions_always_matches(self, rule_evaluator, operator):
        catch_all = rule(
            "Notify Credit Team",
            actions=[action(ActionType.NOTIFY, channel="email")],
            logical_operator=operator,
        )

        result = rule_evaluator.evaluate(catch_all, EvaluationContext(), "POL-1")

        assert result.matched is True
        assert result.condition_results == []
        assert result.triggered_actions[0].action_type == ActionType.NOTIFY

    def test_triggered_actions_keep_rule_action_order(self, rule_evaluator, applicant_context):
        multi = rule(
            "Pricing",
            actions=[
                action(ActionType.APPROVE),
                action(ActionType.SET_MAX_AMOUNT, amount="2000000"),
                action(ActionType.SET_INTEREST_RATE, rate="12.5", type="FIXED"),
            ],
            priority=7,
        )

        result = rule_evaluator.evaluate(multi, applicant_context, "POL-9")

        assert [a.action_type for a in result.triggered_actions] == [
            ActionType.APPROVE,
            ActionType.SET_MAX_AMOUNT,
            ActionType.SET_INTEREST_RATE,
        ]
        assert {a.priority for a in result.triggered_actions} == {7}

    def test_malformed_condition_does_not_raise(self, rule_evaluator):
        context = EvaluationContext().put("applicant.cibilScore", "n/a")
        bad = rule(
            "Bad Data",
            conditions=[condition("applicant.cibilScore", Op.GREATER_THAN, value="650")],
            actions=[action(ActionType.APPROVE)],
        )

        result = rule_evaluator.evaluate(bad, context, "POL-1")

        assert result.matched is False
        assert result.condition_results[0].reason.startswith("Evaluation error:")
