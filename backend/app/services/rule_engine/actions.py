"""Action resolver: conflict resolution and overall decision."""

import logging
from typing import Dict, List, Optional

from app.core.enums import ActionKind, ActionType, Decision
from app.models.schemas.evaluation import TriggeredAction

logger = logging.getLogger(__name__)


class ActionResolver:
    """
    Merges the actions triggered across all matched rules and policies.

    - Setting actions (SET_INTEREST_RATE, SET_PROCESSING_FEE, SET_MAX_AMOUNT,
      SET_MAX_TENURE, ASSIGN_TO_ROLE): lowest priority number wins.
    - Accumulating actions (REQUIRE_DOCUMENT, NOTIFY): all kept.
    - Decision actions (APPROVE, REJECT, REFER, FLAG_RISK): one instance per
      type kept for the audit trail, lowest priority number wins.

    The overall decision ignores priorities: the most conservative decision
    present wins (REJECT > REFER/FLAG_RISK > APPROVE).
    """

    def resolve_decision(
        self, actions: Optional[List[TriggeredAction]]
    ) -> Decision:
        """
        Resolve the overall decision from all triggered actions.

        Args:
            actions: Every triggered action, before deduplication

        Returns:
            REJECTED, REFERRED, APPROVED, NO_DECISION, or NO_MATCH if empty
        """
        if not actions:
            return Decision.NO_MATCH

        action_types = {action.action_type for action in actions}

        if ActionType.REJECT in action_types:
            logger.info("Decision: REJECTED (reject action triggered)")
            return Decision.REJECTED
        if ActionType.REFER in action_types:
            logger.info("Decision: REFERRED (refer action triggered)")
            return Decision.REFERRED
        if ActionType.FLAG_RISK in action_types:
            logger.info("Decision: REFERRED (risk flag triggered)")
            return Decision.REFERRED
        if ActionType.APPROVE in action_types:
            logger.info("Decision: APPROVED (approve action triggered)")
            return Decision.APPROVED

        logger.info("Decision: NO_DECISION (no decision actions in triggered set)")
        return Decision.NO_DECISION

    def resolve_actions(
        self, actions: Optional[List[TriggeredAction]]
    ) -> List[TriggeredAction]:
        """
        Deduplicate conflicting actions and order by priority.

        Args:
            actions: Every triggered action (may contain conflicts)

        Returns:
            Surviving actions sorted by ascending priority
        """
        if not actions:
            return []

        by_type: Dict[ActionType, List[TriggeredAction]] = {}
        for action in actions:
            by_type.setdefault(action.action_type, []).append(action)

        resolved: List[TriggeredAction] = []
        for action_type, candidates in by_type.items():
            if action_type.kind == ActionKind.ACCUMULATING:
                resolved.extend(candidates)
                continue

            # min() keeps the first candidate on equal priority
            winner = min(candidates, key=lambda action: action.priority)
            resolved.append(winner)

            if len(candidates) > 1:
                logger.debug(
                    f"Resolved conflicting {action_type.value} actions: "
                    f"{len(candidates)} candidates, picked priority {winner.priority}"
                )

        resolved.sort(key=lambda action: action.priority)
        return resolved
