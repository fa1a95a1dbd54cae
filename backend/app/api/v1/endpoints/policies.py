"""Policy management endpoints."""

import logging
from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache.redis_cache import PolicyCache
from app.core.enums import PolicyCategory
from app.deps import get_policy_cache, get_session
from app.models.schemas.policy import (
    PolicyCreate,
    PolicyListResponse,
    PolicyResponse,
    PolicyRule,
    PolicyStatsResponse,
    PolicyUpdate,
)
from app.services.policy_service import PolicyNotFoundError, PolicyService

logger = logging.getLogger(__name__)

router = APIRouter()

UserHeader = Annotated[Optional[str], Header(alias="X-User-Id")]


@router.post(
    "/",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a policy",
    description="Create a new DRAFT policy with its rules",
)
async def create_policy(
    policy_data: PolicyCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    """
    Create a new policy.

    Policies start as DRAFT and receive a generated code such as
    POL-2026-482913. Names must be unique (case-insensitive).
    """
    try:
        service = PolicyService(db)
        policy = await service.create_policy(policy_data, created_by=user_id)
        return PolicyResponse.model_validate(policy)

    except ValueError as e:
        logger.error(f"Validation error creating policy: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error creating policy: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create policy",
        )


@router.get(
    "/stats",
    response_model=PolicyStatsResponse,
    summary="Policy statistics",
    description="Count policies by status",
)
async def get_policy_stats(
    db: Annotated[AsyncSession, Depends(get_session)],
) -> PolicyStatsResponse:
    service = PolicyService(db)
    return await service.get_stats()


@router.get(
    "/",
    response_model=PolicyListResponse,
    summary="List all policies",
    description="Retrieve every policy version with pagination",
)
async def list_policies(
    db: Annotated[AsyncSession, Depends(get_session)],
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    page_size: Annotated[
        int, Query(ge=1, le=100, description="Number of items per page")
    ] = 20,
) -> PolicyListResponse:
    service = PolicyService(db)
    policies, total = await service.list_policies(skip=(page - 1) * page_size, limit=page_size)
    return _page(policies, total, page, page_size)


@router.get(
    "/search",
    response_model=PolicyListResponse,
    summary="Search policies",
    description="Case-insensitive search on policy name and description",
)
async def search_policies(
    db: Annotated[AsyncSession, Depends(get_session)],
    q: Annotated[str, Query(min_length=1, description="Text to search for")],
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    page_size: Annotated[
        int, Query(ge=1, le=100, description="Number of items per page")
    ] = 20,
) -> PolicyListResponse:
    service = PolicyService(db)
    policies, total = await service.search_policies(
        q, skip=(page - 1) * page_size, limit=page_size
    )
    return _page(policies, total, page, page_size)


@router.get(
    "/category/{category}",
    response_model=PolicyListResponse,
    summary="List policies by category",
    description="Retrieve policies of one category with pagination",
)
async def list_policies_by_category(
    category: str,
    db: Annotated[AsyncSession, Depends(get_session)],
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    page_size: Annotated[
        int, Query(ge=1, le=100, description="Number of items per page")
    ] = 20,
) -> PolicyListResponse:
    try:
        parsed = PolicyCategory(category.strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid policy category: {category}",
        )

    service = PolicyService(db)
    policies, total = await service.list_policies_by_category(
        parsed, skip=(page - 1) * page_size, limit=page_size
    )
    return _page(policies, total, page, page_size)


@router.get(
    "/code/{policy_code}",
    response_model=PolicyResponse,
    summary="Get policy by code",
    description="Retrieve the latest version of a policy",
)
async def get_policy_by_code(
    policy_code: str,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> PolicyResponse:
    service = PolicyService(db)
    policy = await service.get_policy_by_code(policy_code)

    if not policy:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Policy not found with code: {policy_code}",
        )

    return PolicyResponse.model_validate(policy)


@router.get(
    "/code/{policy_code}/versions",
    response_model=List[PolicyResponse],
    summary="Get policy version history",
    description="Retrieve every version of a policy, newest first",
)
async def get_version_history(
    policy_code: str,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> List[PolicyResponse]:
    try:
        service = PolicyService(db)
        versions = await service.get_version_history(policy_code)
        return [PolicyResponse.model_validate(policy) for policy in versions]

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get(
    "/active/{loan_type}",
    response_model=List[PolicyResponse],
    summary="List active policies for a loan type",
    description="Active policies that apply to a loan type, global policies included",
)
async def get_active_policies(
    loan_type: str,
    db: Annotated[AsyncSession, Depends(get_session)],
    category: Annotated[
        Optional[PolicyCategory], Query(description="Only policies of this category")
    ] = None,
) -> List[PolicyResponse]:
    try:
        service = PolicyService(db)
        policies = await service.get_active_policies(loan_type, category=category)
        return [PolicyResponse.model_validate(policy) for policy in policies]

    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get(
    "/{policy_id}",
    response_model=PolicyResponse,
    summary="Get policy by ID",
    description="Retrieve a single policy version",
)
async def get_policy(
    policy_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> PolicyResponse:
    service = PolicyService(db)
    policy = await service.get_policy(policy_id)

    if not policy:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Policy with ID {policy_id} not found",
        )

    return PolicyResponse.model_validate(policy)


@router.put(
    "/{policy_id}",
    response_model=PolicyResponse,
    summary="Update a policy",
    description="Update a DRAFT or INACTIVE policy",
)
async def update_policy(
    policy_id: UUID,
    update_data: PolicyUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    """
    Update a policy.

    Supports partial updates; a rules list replaces the existing rules.
    Active and archived policies must be changed through a new version.
    """
    try:
        service = PolicyService(db)
        policy = await service.update_policy(policy_id, update_data, modified_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        logger.error(f"Validation error updating policy: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error updating policy: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update policy",
        )


@router.delete(
    "/{policy_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a policy",
    description="Delete a DRAFT policy",
)
async def delete_policy(
    policy_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> None:
    try:
        service = PolicyService(db)
        await service.delete_policy(policy_id)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.post(
    "/{policy_id}/rules",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a rule",
    description="Append a rule to a DRAFT or INACTIVE policy",
)
async def add_policy_rule(
    policy_id: UUID,
    rule: PolicyRule,
    db: Annotated[AsyncSession, Depends(get_session)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    try:
        service = PolicyService(db)
        policy = await service.add_rule(policy_id, rule, modified_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.delete(
    "/{policy_id}/rules/{rule_name}",
    response_model=PolicyResponse,
    summary="Remove a rule",
    description="Remove a rule by name from a DRAFT or INACTIVE policy",
)
async def remove_policy_rule(
    policy_id: UUID,
    rule_name: str,
    db: Annotated[AsyncSession, Depends(get_session)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    try:
        service = PolicyService(db)
        policy = await service.remove_rule(policy_id, rule_name, modified_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.patch(
    "/{policy_id}/activate",
    response_model=PolicyResponse,
    summary="Activate a policy",
    description="Make a policy take part in evaluations",
)
async def activate_policy(
    policy_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[Optional[PolicyCache], Depends(get_policy_cache)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    """
    Activate a policy.

    A policy without rules cannot be activated.
    """
    try:
        service = PolicyService(db, cache=cache)
        policy = await service.activate_policy(policy_id, modified_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        logger.error(f"Validation error activating policy: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error activating policy: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to activate policy",
        )


@router.patch(
    "/{policy_id}/deactivate",
    response_model=PolicyResponse,
    summary="Deactivate a policy",
    description="Take a policy out of evaluations",
)
async def deactivate_policy(
    policy_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[Optional[PolicyCache], Depends(get_policy_cache)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    try:
        service = PolicyService(db, cache=cache)
        policy = await service.deactivate_policy(policy_id, modified_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error deactivating policy: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to deactivate policy",
        )


@router.post(
    "/{policy_id}/versions",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new policy version",
    description="Copy a policy into a new DRAFT version, archiving it if active",
)
async def create_policy_version(
    policy_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[Optional[PolicyCache], Depends(get_policy_cache)],
    user_id: UserHeader = None,
) -> PolicyResponse:
    """
    Create a new version of a policy.

    Active and archived policies are immutable; edits go into the new
    DRAFT version, which must be activated separately.
    """
    try:
        service = PolicyService(db, cache=cache)
        policy = await service.create_new_version(policy_id, created_by=user_id)
        return PolicyResponse.model_validate(policy)

    except PolicyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error creating policy version: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create policy version",
        )


def _page(policies, total: int, page: int, page_size: int) -> PolicyListResponse:
    total_pages = (total + page_size - 1) // page_size if total > 0 else 1
    return PolicyListResponse(
        items=[PolicyResponse.model_validate(policy) for policy in policies],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )
