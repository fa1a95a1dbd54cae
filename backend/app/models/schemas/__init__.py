"""Pydantic schemas for API validation and serialization."""

from app.models.schemas.evaluation import (
    ConditionResult,
    EvaluationLogEntry,
    PolicyEvaluationRequest,
    PolicyEvaluationResponse,
    PolicyMatchResult,
    RuleMatchResult,
    TriggeredAction,
)
from app.models.schemas.policy import (
    Action,
    Condition,
    PolicyCreate,
    PolicyResponse,
    PolicyRule,
    PolicySnapshot,
    PolicyStatsResponse,
)

__all__ = [
    # Policy definition schemas
    "Action",
    "Condition",
    "PolicyRule",
    "PolicySnapshot",
    "PolicyCreate",
    "PolicyResponse",
    "PolicyStatsResponse",
    # Evaluation schemas
    "PolicyEvaluationRequest",
    "PolicyEvaluationResponse",
    "PolicyMatchResult",
    "RuleMatchResult",
    "ConditionResult",
    "TriggeredAction",
    "EvaluationLogEntry",
]
