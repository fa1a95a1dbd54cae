"""Policy evaluation endpoint."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache.redis_cache import PolicyCache
from app.deps import get_policy_cache, get_session
from app.models.schemas.evaluation import PolicyEvaluationRequest, PolicyEvaluationResponse
from app.repositories.policy_repository import PolicyRepository
from app.services.policy_evaluation_service import PolicyEvaluationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/",
    response_model=PolicyEvaluationResponse,
    summary="Evaluate a loan application",
    description="Run a loan application through every active policy for its loan type",
)
async def evaluate_application(
    request: PolicyEvaluationRequest,
    db: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[Optional[PolicyCache], Depends(get_policy_cache)],
) -> PolicyEvaluationResponse:
    """
    Evaluate a loan application.

    The response always carries a decision: an unknown loan type yields
    ERROR and a loan type without active policies yields NO_MATCH.
    Otherwise the most conservative triggered decision wins
    (REJECTED > REFERRED > APPROVED > NO_DECISION).
    """
    try:
        service = PolicyEvaluationService(PolicyRepository(db), cache=cache)
        return await service.evaluate(request)

    except Exception as e:
        logger.error(
            f"Error evaluating application {request.application_id}: {str(e)}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to evaluate application",
        )
