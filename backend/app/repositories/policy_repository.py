"""Repository for policy data access used by evaluation and administration."""

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import LoanType, PolicyCategory, PolicyStatus
from app.models.domain.policy import Policy
from app.repositories.base import BaseRepository


class PolicyRepository(BaseRepository[Policy]):
    """
    Repository for the Policy aggregate.

    The evaluation engine only reads through find_active_policies_for_loan_type();
    writes belong to policy administration.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the policy repository.

        Args:
            db: Async database session
        """
        super().__init__(Policy, db)

    async def find_active_policies_for_loan_type(
        self, loan_type: LoanType
    ) -> List[Policy]:
        """
        Retrieve ACTIVE policies applicable to a loan type.

        Includes global policies (loan_type NULL or ALL) alongside the
        type-specific ones.

        Args:
            loan_type: Loan type being evaluated

        Returns:
            Active policies ordered by priority
        """
        stmt = (
            select(Policy)
            .where(Policy.status == PolicyStatus.ACTIVE, _applies_to(loan_type))
            .order_by(Policy.priority, Policy.policy_code)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_active_policies_by_category_and_loan_type(
        self, category: PolicyCategory, loan_type: LoanType
    ) -> List[Policy]:
        """Active policies of one category for a loan type, global ones included."""
        stmt = (
            select(Policy)
            .where(
                Policy.status == PolicyStatus.ACTIVE,
                Policy.category == category,
                _applies_to(loan_type),
            )
            .order_by(Policy.priority, Policy.policy_code)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_category(
        self, category: PolicyCategory, skip: int = 0, limit: int = 100
    ) -> List[Policy]:
        """
        Retrieve policies of a category with pagination.

        Args:
            category: Policy category
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return

        Returns:
            Policies of the category, oldest first
        """
        stmt = (
            select(Policy)
            .where(Policy.category == category)
            .order_by(Policy.created_at, Policy.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def search_by_text(
        self, search_text: str, skip: int = 0, limit: int = 100
    ) -> List[Policy]:
        """
        Search policies whose name or description contains the text.

        Args:
            search_text: Case-insensitive substring
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return

        Returns:
            Matching policies, oldest first
        """
        stmt = (
            select(Policy)
            .where(_matches_text(search_text))
            .order_by(Policy.created_at, Policy.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_search(self, search_text: str) -> int:
        stmt = select(func.count()).select_from(Policy).where(_matches_text(search_text))
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def exists_by_name_ignore_case(self, name: str) -> bool:
        """
        Check whether a policy with this name exists (case-insensitive).

        Args:
            name: Policy name

        Returns:
            True if any version of any policy uses the name
        """
        stmt = select(Policy.id).where(func.lower(Policy.name) == name.lower()).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_latest_by_code(self, policy_code: str) -> Optional[Policy]:
        """Latest version of a policy by its code."""
        stmt = (
            select(Policy)
            .where(Policy.policy_code == policy_code)
            .order_by(Policy.version_number.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_versions_by_code(self, policy_code: str) -> List[Policy]:
        """All versions of a policy, newest first."""
        stmt = (
            select(Policy)
            .where(Policy.policy_code == policy_code)
            .order_by(Policy.version_number.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(self, status: PolicyStatus) -> int:
        return await self.count(status=status)

    async def count_by_category_and_status(
        self, category: PolicyCategory, status: PolicyStatus
    ) -> int:
        return await self.count(category=category, status=status)


def _applies_to(loan_type: LoanType):
    return or_(
        Policy.loan_type == loan_type,
        Policy.loan_type == LoanType.ALL,
        Policy.loan_type.is_(None),
    )


def _matches_text(search_text: str):
    # Escape LIKE wildcards so the text is matched literally
    escaped = (
        search_text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    pattern = f"%{escaped}%"
    return or_(
        Policy.name.ilike(pattern, escape="\\"),
        Policy.description.ilike(pattern, escape="\\"),
    )
