"""Policy evaluation service: runs a loan application through all active policies."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, Sequence

from app.cache.redis_cache import PolicyCache
from app.core.enums import Decision, LoanType
from app.models.schemas.evaluation import (
    EvaluationLogEntry,
    PolicyEvaluationRequest,
    PolicyEvaluationResponse,
    PolicyMatchResult,
    TriggeredAction,
)
from app.models.schemas.policy import PolicySnapshot
from app.services.rule_engine.actions import ActionResolver
from app.services.rule_engine.base import EvaluationContext
from app.services.rule_engine.rules import RuleEvaluator

logger = logging.getLogger(__name__)


class ActivePolicySource(Protocol):
    """Anything that can list active policies for a loan type (e.g. PolicyRepository)."""

    async def find_active_policies_for_loan_type(self, loan_type: LoanType) -> Sequence[Any]:
        ...


class PolicyEvaluationService:
    """
    Orchestrates policy evaluation for a single loan application.

    This service:
    - Builds the evaluation context from the request
    - Loads active policies for the loan type (cache first, then the store)
    - Evaluates enabled rules of every effective policy in priority order
    - Resolves conflicting actions and the overall decision
    - Records an audit log of every step
    """

    def __init__(
        self,
        policy_store: ActivePolicySource,
        cache: Optional[PolicyCache] = None,
        rule_evaluator: Optional[RuleEvaluator] = None,
        action_resolver: Optional[ActionResolver] = None,
    ):
        """
        Initialize the evaluation service.

        Args:
            policy_store: Source of active policies
            cache: Optional policy cache; evaluation works the same without it
            rule_evaluator: Rule evaluator (default instance if omitted)
            action_resolver: Action resolver (default instance if omitted)
        """
        self.policy_store = policy_store
        self.cache = cache
        self.rule_evaluator = rule_evaluator or RuleEvaluator()
        self.action_resolver = action_resolver or ActionResolver()

    async def evaluate(self, request: PolicyEvaluationRequest) -> PolicyEvaluationResponse:
        """
        Evaluate a loan application against all applicable active policies.

        Args:
            request: Loan application facts

        Returns:
            Decision, counts, resolved actions and the evaluation log

        Raises:
            Exception: Policy store failures propagate unchanged
        """
        started = time.perf_counter()
        logger.info(
            f"Starting policy evaluation for application: {request.application_id}, "
            f"loanType: {request.loan_type}"
        )

        evaluation_log: List[EvaluationLogEntry] = [
            EvaluationLogEntry.info(f"Starting evaluation for application {request.application_id}")
        ]

        context = request.to_evaluation_context()
        evaluation_log.append(
            EvaluationLogEntry.info(f"Evaluation context built with {len(context)} fields")
        )

        loan_type = parse_loan_type(request.loan_type)
        if loan_type is None:
            logger.error(f"Invalid loan type: {request.loan_type}")
            return self._error_response(
                request, f"Invalid loan type: {request.loan_type}", started, evaluation_log
            )

        policies = await self._get_active_policies(loan_type)
        evaluation_log.append(
            EvaluationLogEntry.info(f"Found {len(policies)} active policies for {loan_type.value}")
        )

        if not policies:
            logger.info(f"No active policies found for loan type: {loan_type.value}")
            return self._no_match_response(request, started, evaluation_log)

        # sorted() is stable, equal priorities keep their load order
        policies = sorted(policies, key=lambda policy: policy.priority)

        match_results: List[PolicyMatchResult] = []
        all_triggered: List[TriggeredAction] = []
        rules_evaluated = 0
        rules_matched = 0
        now = datetime.now(timezone.utc)

        for policy in policies:
            if not policy.is_effective(now):
                evaluation_log.append(
                    EvaluationLogEntry.info(f"Skipping policy {policy.policy_code} (not effective)")
                )
                continue

            policy_result = self._evaluate_policy(policy, context, evaluation_log)
            match_results.append(policy_result)

            rules_evaluated += len(policy_result.rule_results)
            for rule_result in policy_result.rule_results:
                if rule_result.matched:
                    rules_matched += 1
                    all_triggered.extend(rule_result.triggered_actions)

        resolved_actions = self.action_resolver.resolve_actions(all_triggered)
        decision = self.action_resolver.resolve_decision(all_triggered)

        duration_ms = _elapsed_ms(started)
        policies_matched = sum(1 for result in match_results if result.matched)

        evaluation_log.append(
            EvaluationLogEntry.info(
                f"Evaluation complete: decision={decision.value}, "
                f"policies={policies_matched}/{len(match_results)} matched, "
                f"rules={rules_matched}/{rules_evaluated} matched, duration={duration_ms}ms"
            )
        )
        logger.info(
            f"Policy evaluation complete for {request.application_id}: decision={decision.value}, "
            f"policies matched={policies_matched}/{len(match_results)}, duration={duration_ms}ms"
        )

        return PolicyEvaluationResponse(
            application_id=request.application_id,
            loan_type=request.loan_type,
            overall_decision=decision,
            policies_evaluated=len(match_results),
            policies_matched=policies_matched,
            rules_evaluated=rules_evaluated,
            rules_matched=rules_matched,
            matched_policies=match_results,
            triggered_actions=resolved_actions,
            evaluation_log=evaluation_log,
            evaluation_duration_ms=duration_ms,
        )

    def _evaluate_policy(
        self,
        policy: PolicySnapshot,
        context: EvaluationContext,
        evaluation_log: List[EvaluationLogEntry],
    ) -> PolicyMatchResult:
        """Evaluate every enabled rule of one policy."""
        logger.debug(f"Evaluating policy: {policy.name} ({policy.policy_code})")
        evaluation_log.append(
            EvaluationLogEntry.info(f"Evaluating policy: {policy.name} [{policy.policy_code}]")
        )

        rule_results = []
        for rule in policy.enabled_rules():
            rule_result = self.rule_evaluator.evaluate(rule, context, policy.policy_code)
            rule_results.append(rule_result)

            if rule_result.matched:
                evaluation_log.append(
                    EvaluationLogEntry.info(
                        f"  Rule MATCHED: {rule.name} -> "
                        f"{len(rule_result.triggered_actions)} actions"
                    )
                )
            else:
                evaluation_log.append(EvaluationLogEntry.info(f"  Rule not matched: {rule.name}"))

        return PolicyMatchResult(
            policy_id=str(policy.id) if policy.id is not None else None,
            policy_code=policy.policy_code,
            policy_name=policy.name,
            category=policy.category.value if policy.category is not None else None,
            priority=policy.priority,
            matched=any(result.matched for result in rule_results),
            rule_results=rule_results,
        )

    async def _get_active_policies(self, loan_type: LoanType) -> List[PolicySnapshot]:
        """Active policies for a loan type, read through the cache when one is configured."""
        if self.cache is not None:
            cached = await self.cache.get_active_policies(loan_type)
            if cached is not None:
                return cached

        rows = await self.policy_store.find_active_policies_for_loan_type(loan_type)
        policies = [PolicySnapshot.model_validate(row) for row in rows]

        if self.cache is not None:
            await self.cache.set_active_policies(loan_type, policies)

        return policies

    def _no_match_response(
        self,
        request: PolicyEvaluationRequest,
        started: float,
        evaluation_log: List[EvaluationLogEntry],
    ) -> PolicyEvaluationResponse:
        evaluation_log.append(
            EvaluationLogEntry.warn("No active policies found - evaluation skipped")
        )
        return PolicyEvaluationResponse(
            application_id=request.application_id,
            loan_type=request.loan_type,
            overall_decision=Decision.NO_MATCH,
            evaluation_log=evaluation_log,
            evaluation_duration_ms=_elapsed_ms(started),
        )

    def _error_response(
        self,
        request: PolicyEvaluationRequest,
        message: str,
        started: float,
        evaluation_log: List[EvaluationLogEntry],
    ) -> PolicyEvaluationResponse:
        evaluation_log.append(EvaluationLogEntry.warn(f"Evaluation error: {message}"))
        return PolicyEvaluationResponse(
            application_id=request.application_id,
            loan_type=request.loan_type,
            overall_decision=Decision.ERROR,
            evaluation_log=evaluation_log,
            evaluation_duration_ms=_elapsed_ms(started),
        )


def parse_loan_type(value: Optional[str]) -> Optional[LoanType]:
    """Parse a loan type name (case-insensitive, surrounding whitespace ignored)."""
    if value is None:
        return None
    try:
        return LoanType(value.strip().upper())
    except ValueError:
        return None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
