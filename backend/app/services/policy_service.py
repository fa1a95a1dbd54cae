"""Policy administration: creation, editing, lookup, versioning and lifecycle transitions."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache.redis_cache import PolicyCache
from app.core.enums import LoanType, PolicyCategory, PolicyStatus
from app.models.domain.policy import Policy
from app.models.schemas.policy import (
    PolicyCreate,
    PolicyRule,
    PolicyStatsResponse,
    PolicyUpdate,
)
from app.repositories.policy_repository import PolicyRepository

logger = logging.getLogger(__name__)


class PolicyNotFoundError(ValueError):
    """Raised when a policy ID or code does not exist."""


class PolicyService:
    """
    Policy service for managing versioned policies.

    Every status change evicts the active-policy cache for the affected
    loan type so the next evaluation sees the new state. Edits are only
    allowed on DRAFT and INACTIVE policies, which are never cached.
    """

    def __init__(self, db: AsyncSession, cache: Optional[PolicyCache] = None):
        """
        Initialize the policy service.

        Args:
            db: Async database session
            cache: Optional active-policy cache to invalidate
        """
        self.db = db
        self.repo = PolicyRepository(db)
        self.cache = cache

    # ==================== CRUD ====================

    async def create_policy(self, data: PolicyCreate, created_by: Optional[str] = None) -> Policy:
        """
        Create a new DRAFT policy.

        Args:
            data: Policy definition
            created_by: Author recorded for audit

        Returns:
            Created policy

        Raises:
            ValueError: If a policy with the same name already exists
        """
        if await self.repo.exists_by_name_ignore_case(data.name):
            raise ValueError(f"Policy with name '{data.name}' already exists")

        policy = Policy(
            policy_code=Policy.generate_policy_code(),
            name=data.name,
            description=data.description,
            category=data.category,
            loan_type=data.loan_type,
            status=PolicyStatus.DRAFT,
            version_number=1,
            rules=[rule.model_dump(mode="json") for rule in data.rules],
            priority=data.priority,
            effective_from=data.effective_from,
            effective_until=data.effective_until,
            tags=list(data.tags),
            created_by=created_by,
            modified_by=created_by,
        )
        saved = await self.repo.save(policy)
        logger.info(f"Created policy: {saved.policy_code} ({saved.name})")
        return saved

    async def get_policy(self, policy_id: UUID) -> Optional[Policy]:
        return await self.repo.get_by_id(policy_id)

    async def get_policy_by_code(self, policy_code: str) -> Optional[Policy]:
        """Latest version of a policy by code."""
        return await self.repo.find_latest_by_code(policy_code)

    async def get_version_history(self, policy_code: str) -> List[Policy]:
        """
        All versions of a policy, newest first.

        Raises:
            PolicyNotFoundError: If no version exists for the code
        """
        versions = await self.repo.find_versions_by_code(policy_code)
        if not versions:
            raise PolicyNotFoundError(f"Policy not found with code: {policy_code}")
        return versions

    async def update_policy(
        self,
        policy_id: UUID,
        data: PolicyUpdate,
        modified_by: Optional[str] = None,
    ) -> Policy:
        """
        Update a DRAFT or INACTIVE policy.

        Only the fields present in the update are changed; a rules list
        replaces the existing rules.

        Raises:
            PolicyNotFoundError: If the policy does not exist
            ValueError: If the policy is ACTIVE or ARCHIVED, or the new name is taken
        """
        policy = await self._get_or_raise(policy_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "rules" in changes:
            changes["rules"] = [rule.model_dump(mode="json") for rule in data.rules]

        new_name = changes.get("name")
        if (
            new_name is not None
            and new_name.lower() != policy.name.lower()
            and await self.repo.exists_by_name_ignore_case(new_name)
        ):
            raise ValueError(f"Policy with name '{new_name}' already exists")

        policy.apply_changes(changes)
        policy.modified_by = modified_by

        saved = await self.repo.save(policy)
        logger.info(f"Updated policy: {saved.policy_code} v{saved.version_number}")
        return saved

    async def delete_policy(self, policy_id: UUID) -> None:
        """
        Delete a DRAFT policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
            ValueError: If the policy is not a DRAFT
        """
        policy = await self._get_or_raise(policy_id)

        if policy.status != PolicyStatus.DRAFT:
            raise ValueError(
                f"Only DRAFT policies can be deleted. Current status: {policy.status.value}"
            )

        await self.repo.delete(policy)
        logger.info(f"Deleted policy: {policy_id} (code: {policy.policy_code})")

    # ==================== Rule Editing ====================

    async def add_rule(
        self, policy_id: UUID, rule: PolicyRule, modified_by: Optional[str] = None
    ) -> Policy:
        """
        Append a rule to a DRAFT or INACTIVE policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
            ValueError: If the policy is locked or already has a rule with this name
        """
        policy = await self._get_or_raise(policy_id)

        if any(existing.name == rule.name for existing in policy.rule_definitions()):
            raise ValueError(
                f"Policy {policy.policy_code} already has a rule named '{rule.name}'"
            )

        policy.add_rule(rule)
        policy.modified_by = modified_by

        saved = await self.repo.save(policy)
        logger.info(f"Added rule '{rule.name}' to policy {saved.policy_code}")
        return saved

    async def remove_rule(
        self, policy_id: UUID, rule_name: str, modified_by: Optional[str] = None
    ) -> Policy:
        """
        Remove a rule by name from a DRAFT or INACTIVE policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
            ValueError: If the policy is locked or has no rule with this name
        """
        policy = await self._get_or_raise(policy_id)

        if not policy.remove_rule(rule_name):
            raise ValueError(f"Policy {policy.policy_code} has no rule named '{rule_name}'")
        policy.modified_by = modified_by

        saved = await self.repo.save(policy)
        logger.info(f"Removed rule '{rule_name}' from policy {saved.policy_code}")
        return saved

    # ==================== Queries ====================

    async def list_policies(self, skip: int = 0, limit: int = 100) -> Tuple[List[Policy], int]:
        """One page of all policies, with the total count."""
        policies = await self.repo.get_all(skip=skip, limit=limit)
        return policies, await self.repo.count()

    async def list_policies_by_category(
        self, category: PolicyCategory, skip: int = 0, limit: int = 100
    ) -> Tuple[List[Policy], int]:
        """One page of policies in a category, with the category total."""
        policies = await self.repo.find_by_category(category, skip=skip, limit=limit)
        return policies, await self.repo.count(category=category)

    async def search_policies(
        self, search_text: str, skip: int = 0, limit: int = 100
    ) -> Tuple[List[Policy], int]:
        """One page of policies whose name or description contains the text."""
        policies = await self.repo.search_by_text(search_text, skip=skip, limit=limit)
        return policies, await self.repo.count_search(search_text)

    async def get_active_policies(
        self, loan_type: str, category: Optional[PolicyCategory] = None
    ) -> List[Policy]:
        """
        Active policies applicable to a loan type, global ones included.

        Args:
            loan_type: Loan type name (case-insensitive)
            category: Optional category filter

        Raises:
            ValueError: If the loan type is unknown
        """
        try:
            parsed = LoanType(loan_type.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid loan type: {loan_type}")

        if category is not None:
            return await self.repo.find_active_policies_by_category_and_loan_type(
                category, parsed
            )
        return await self.repo.find_active_policies_for_loan_type(parsed)

    # ==================== Lifecycle ====================

    async def activate_policy(self, policy_id: UUID, modified_by: Optional[str] = None) -> Policy:
        """
        Activate a policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
            ValueError: If the policy has no rules
        """
        policy = await self._get_or_raise(policy_id)
        policy.activate()
        policy.modified_by = modified_by

        saved = await self.repo.save(policy)
        await self._evict(saved.loan_type)
        logger.info(f"Activated policy: {saved.policy_code} v{saved.version_number}")
        return saved

    async def deactivate_policy(self, policy_id: UUID, modified_by: Optional[str] = None) -> Policy:
        """
        Deactivate a policy.

        Raises:
            PolicyNotFoundError: If the policy does not exist
        """
        policy = await self._get_or_raise(policy_id)
        policy.deactivate()
        policy.modified_by = modified_by

        saved = await self.repo.save(policy)
        await self._evict(saved.loan_type)
        logger.info(f"Deactivated policy: {saved.policy_code} v{saved.version_number}")
        return saved

    async def create_new_version(self, policy_id: UUID, created_by: Optional[str] = None) -> Policy:
        """
        Create a DRAFT copy of a policy with the next version number.

        An ACTIVE source version is archived first.

        Raises:
            PolicyNotFoundError: If the policy does not exist
        """
        current = await self._get_or_raise(policy_id)

        if current.status == PolicyStatus.ACTIVE:
            current.archive()
            await self.repo.save(current)
            await self._evict(current.loan_type)

        new_version = current.create_new_version()
        new_version.created_by = created_by
        new_version.modified_by = created_by

        saved = await self.repo.save(new_version)
        logger.info(f"Created new version: {saved.policy_code} v{saved.version_number}")
        return saved

    async def get_stats(self) -> PolicyStatsResponse:
        """Counts by status, and active counts for categories that have any."""
        active_by_category = {}
        for category in PolicyCategory:
            count = await self.repo.count_by_category_and_status(category, PolicyStatus.ACTIVE)
            if count > 0:
                active_by_category[category.value] = count

        return PolicyStatsResponse(
            total_policies=await self.repo.count(),
            active_policies=await self.repo.count_by_status(PolicyStatus.ACTIVE),
            draft_policies=await self.repo.count_by_status(PolicyStatus.DRAFT),
            inactive_policies=await self.repo.count_by_status(PolicyStatus.INACTIVE),
            archived_policies=await self.repo.count_by_status(PolicyStatus.ARCHIVED),
            active_by_category=active_by_category,
        )

    async def _get_or_raise(self, policy_id: UUID) -> Policy:
        policy = await self.repo.get_by_id(policy_id)
        if policy is None:
            raise PolicyNotFoundError(f"Policy not found with id: {policy_id}")
        return policy

    async def _evict(self, loan_type: Optional[LoanType]) -> None:
        if self.cache is not None:
            await self.cache.evict(loan_type)
