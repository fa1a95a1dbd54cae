"""Service layer for business logic."""

from app.services.policy_evaluation_service import PolicyEvaluationService
from app.services.policy_service import PolicyNotFoundError, PolicyService
from app.services.policy_templates import seed_policy_templates

__all__ = [
    "PolicyEvaluationService",
    "PolicyNotFoundError",
    "PolicyService",
    "seed_policy_templates",
]
