"""Rule evaluator combining condition results with AND/OR."""

import logging
from typing import List, Optional

from app.core.enums import LogicalOperator
from app.models.schemas.evaluation import (
    ConditionResult,
    RuleMatchResult,
    TriggeredAction,
)
from app.models.schemas.policy import PolicyRule
from app.services.rule_engine.base import EvaluationContext
from app.services.rule_engine.conditions import ConditionEvaluator

logger = logging.getLogger(__name__)


class RuleEvaluator:
    """
    Evaluates a complete policy rule (conditions + actions).

    Every condition is evaluated, even once the outcome is known, so the
    audit trail always carries all condition results. A matched rule turns
    each of its actions into a TriggeredAction tagged with the source
    policy code, rule name and rule priority.
    """

    def __init__(self, condition_evaluator: Optional[ConditionEvaluator] = None):
        self.condition_evaluator = condition_evaluator or ConditionEvaluator()

    def evaluate(
        self,
        rule: PolicyRule,
        context: EvaluationContext,
        policy_code: str,
    ) -> RuleMatchResult:
        """
        Evaluate a policy rule against the context.

        Args:
            rule: The rule to evaluate
            context: The evaluation context
            policy_code: Code of the owning policy, used for action provenance

        Returns:
            RuleMatchResult with condition details and triggered actions
        """
        logger.debug(f"Evaluating rule: '{rule.name}' (operator: {rule.logical_operator.value})")

        condition_results = [
            self.condition_evaluator.evaluate(condition, context)
            for condition in rule.conditions
        ]

        matched = combine_results(rule.logical_operator, condition_results)

        triggered_actions: List[TriggeredAction] = []
        if matched:
            triggered_actions = [
                TriggeredAction(
                    action_type=action.type,
                    parameters=dict(action.parameters),
                    description=action.description,
                    source_policy_code=policy_code,
                    source_rule_name=rule.name,
                    priority=rule.priority,
                )
                for action in rule.actions
            ]

        matched_count = sum(1 for result in condition_results if result.matched)
        logger.debug(
            f"Rule '{rule.name}' evaluation result: {'MATCHED' if matched else 'NOT MATCHED'} "
            f"({len(condition_results)} conditions, {matched_count} matched)"
        )

        return RuleMatchResult(
            rule_name=rule.name,
            matched=matched,
            logical_operator=rule.logical_operator,
            condition_results=condition_results,
            triggered_actions=triggered_actions,
        )


def combine_results(
    operator: LogicalOperator, results: List[ConditionResult]
) -> bool:
    """
    Combine condition results with the rule's logical operator.

    An empty condition list always matches, so catch-all rules can carry
    actions only.
    """
    if not results:
        return True
    if operator == LogicalOperator.OR:
        return any(result.matched for result in results)
    return all(result.matched for result in results)
