"""
Unit tests for ActionResolver.
"""

import pytest

from app.core.enums import ACTION_KINDS, ActionKind, ActionType, Decision
from tests.factories import triggered


class TestActionKinds:
    """Test cases for the static action classification."""

    def test_every_action_type_is_classified(self):
        assert set(ACTION_KINDS) == set(ActionType)

    @pytest.mark.parametrize(
        "action_type, kind",
        [
            (ActionType.SET_INTEREST_RATE, ActionKind.SETTING),
            (ActionType.ASSIGN_TO_ROLE, ActionKind.SETTING),
            (ActionType.REQUIRE_DOCUMENT, ActionKind.ACCUMULATING),
            (ActionType.NOTIFY, ActionKind.ACCUMULATING),
            (ActionType.REJECT, ActionKind.DECISION),
            (ActionType.FLAG_RISK, ActionKind.DECISION),
        ],
    )
    def test_kind(self, action_type, kind):
        assert action_type.kind == kind


class TestResolveDecision:
    """Test cases for ActionResolver.resolve_decision."""

    def test_no_actions_is_no_match(self, action_resolver):
        assert action_resolver.resolve_decision([]) == Decision.NO_MATCH
        assert action_resolver.resolve_decision(None) == Decision.NO_MATCH

    def test_reject_overrides_any_number_of_approvals(self, action_resolver):
        actions = [triggered(ActionType.APPROVE, priority=1) for _ in range(5)]
        actions.append(triggered(ActionType.REJECT, priority=500))

        assert action_resolver.resolve_decision(actions) == Decision.REJECTED

    @pytest.mark.parametrize("action_type", [ActionType.REFER, ActionType.FLAG_RISK])
    def test_refer_or_flag_risk_is_referred(self, action_resolver, action_type):
        actions = [triggered(ActionType.APPROVE, priority=1), triggered(action_type, priority=50)]

        assert action_resolver.resolve_decision(actions) == Decision.REFERRED

    def test_approve_only(self, action_resolver):
        actions = [
            triggered(ActionType.APPROVE, priority=10),
            triggered(ActionType.SET_INTEREST_RATE, priority=10, rate="12.5"),
        ]

        assert action_resolver.resolve_decision(actions) == Decision.APPROVED

    def test_only_setting_and_accumulating_is_no_decision(self, action_resolver):
        actions = [
            triggered(ActionType.SET_MAX_AMOUNT, priority=10, amount="100000"),
            triggered(ActionType.NOTIFY, priority=20),
        ]

        assert action_resolver.resolve_decision(actions) == Decision.NO_DECISION


class TestResolveActions:
    """Test cases for ActionResolver.resolve_actions."""

    def test_lowest_priority_setting_wins(self, action_resolver):
        actions = [
            triggered(ActionType.SET_INTEREST_RATE, priority=20, rate="15.0"),
            triggered(ActionType.SET_INTEREST_RATE, priority=10, rate="12.5"),
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert len(resolved) == 1
        assert resolved[0].parameters == {"rate": "12.5"}
        assert resolved[0].priority == 10

    def test_accumulating_actions_are_all_kept(self, action_resolver):
        actions = [
            triggered(ActionType.REQUIRE_DOCUMENT, priority=10, documentType="PAN"),
            triggered(ActionType.REQUIRE_DOCUMENT, priority=10, documentType="SALARY_SLIP"),
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert [a.parameters["documentType"] for a in resolved] == ["PAN", "SALARY_SLIP"]

    def test_one_instance_per_decision_type(self, action_resolver):
        actions = [
            triggered(ActionType.APPROVE, priority=30, rule_name="late"),
            triggered(ActionType.APPROVE, priority=10, rule_name="early"),
            triggered(ActionType.REJECT, priority=5),
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert [(a.action_type, a.priority) for a in resolved] == [
            (ActionType.REJECT, 5),
            (ActionType.APPROVE, 10),
        ]
        assert resolved[1].source_rule_name == "early"

    def test_equal_priority_keeps_first_seen(self, action_resolver):
        actions = [
            triggered(ActionType.SET_MAX_AMOUNT, priority=10, rule_name="first", amount="1"),
            triggered(ActionType.SET_MAX_AMOUNT, priority=10, rule_name="second", amount="2"),
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert len(resolved) == 1
        assert resolved[0].source_rule_name == "first"

    def test_result_sorted_by_priority(self, action_resolver):
        actions = [
            triggered(ActionType.NOTIFY, priority=40),
            triggered(ActionType.SET_MAX_TENURE, priority=5, months="360"),
            triggered(ActionType.REQUIRE_DOCUMENT, priority=20, documentType="ITR"),
            triggered(ActionType.ASSIGN_TO_ROLE, priority=15, role="SENIOR_UNDERWRITER"),
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert [a.priority for a in resolved] == [5, 15, 20, 40]

    def test_survivor_has_minimum_priority_per_setting_type(self, action_resolver):
        priorities = [50, 7, 23, 7, 100]
        actions = [
            triggered(ActionType.SET_PROCESSING_FEE, priority=p, percentage=str(p))
            for p in priorities
        ]

        resolved = action_resolver.resolve_actions(actions)

        assert len(resolved) == 1
        assert resolved[0].priority == min(priorities)

    def test_empty_input(self, action_resolver):
        assert action_resolver.resolve_actions([]) == []
        assert action_resolver.resolve_actions(None) == []
