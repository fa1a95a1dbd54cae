"""Policy aggregate: a versioned bundle of rules for a loan type and category."""

import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.enums import LoanType, PolicyCategory, PolicyStatus
from app.db.base import BaseModel
from app.models.schemas.policy import PolicyRule

_LOCKED_STATUSES = (PolicyStatus.ACTIVE, PolicyStatus.ARCHIVED)


class Policy(BaseModel):
    """
    Policy aggregate root.

    Rules (conditions + actions) are stored as a JSONB document on the row.
    Active and archived policies are immutable; changes go through
    create_new_version(), which produces a DRAFT copy.
    """

    __tablename__ = "policies"
    __table_args__ = (
        UniqueConstraint("policy_code", "version_number", name="uq_policies_code_version"),
    )

    # Identification (policy_code is stable across versions)
    policy_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    category: Mapped[PolicyCategory] = mapped_column(
        SQLEnum(PolicyCategory, name="policy_category"),
        nullable=False,
        index=True,
    )
    loan_type: Mapped[Optional[LoanType]] = mapped_column(
        SQLEnum(LoanType, name="loan_type"),
        nullable=True,
        index=True,
    )  # NULL or ALL = applies to every loan type

    # Lifecycle
    status: Mapped[PolicyStatus] = mapped_column(
        SQLEnum(PolicyStatus, name="policy_status"),
        default=PolicyStatus.DRAFT,
        nullable=False,
        index=True,
    )
    version_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    previous_version_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    # Rules document (JSONB)
    # [
    #   {
    #     "name": "Low CIBIL Rejection",
    #     "logical_operator": "AND",
    #     "conditions": [{"field": "applicant.cibilScore", "operator": "LESS_THAN", "value": "500"}],
    #     "actions": [{"type": "REJECT", "parameters": {}, "description": "..."}],
    #     "priority": 5,
    #     "enabled": true
    #   }
    # ]
    rules: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)

    # Evaluation order across policies (lower = evaluated first)
    priority: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    # Effective window (NULL = unbounded)
    effective_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    effective_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    tags: Mapped[Optional[list[str]]] = mapped_column(ARRAY(String(50)), nullable=True)

    # Audit
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    modified_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ==================== Business Methods ====================

    @staticmethod
    def generate_policy_code(now: Optional[datetime] = None) -> str:
        """Generate a policy code such as POL-2026-482913."""
        year = (now or datetime.now(timezone.utc)).year
        return f"POL-{year}-{secrets.randbelow(1_000_000):06d}"

    def rule_definitions(self) -> list[PolicyRule]:
        """Parse the JSONB rules document into rule value objects."""
        return [PolicyRule.model_validate(rule) for rule in (self.rules or [])]

    def activate(self) -> None:
        """
        Activate this policy.

        Raises:
            ValueError: If the policy has no rules
        """
        if self.status == PolicyStatus.ACTIVE:
            return
        if not self.rules:
            raise ValueError("Cannot activate a policy with no rules")
        self.status = PolicyStatus.ACTIVE

    def deactivate(self) -> None:
        self.status = PolicyStatus.INACTIVE

    def archive(self) -> None:
        """Archive this policy (typically when a newer version replaces it)."""
        self.status = PolicyStatus.ARCHIVED

    def create_new_version(self) -> "Policy":
        """Return a DRAFT copy of this policy with the next version number."""
        return Policy(
            policy_code=self.policy_code,
            name=self.name,
            description=self.description,
            category=self.category,
            loan_type=self.loan_type,
            status=PolicyStatus.DRAFT,
            version_number=(self.version_number or 1) + 1,
            previous_version_id=self.id,
            rules=[dict(rule) for rule in (self.rules or [])],
            priority=self.priority,
            effective_from=self.effective_from,
            effective_until=self.effective_until,
            tags=list(self.tags or []),
            created_by=self.modified_by,
        )

    def apply_changes(self, changes: dict[str, Any]) -> None:
        """
        Overwrite fields of a DRAFT or INACTIVE policy.

        Args:
            changes: Column values keyed by attribute name (rules as JSON dicts)

        Raises:
            ValueError: If the policy is active or archived
        """
        self._ensure_editable()
        for field_name, value in changes.items():
            setattr(self, field_name, value)

    def add_rule(self, rule: PolicyRule) -> None:
        """
        Append a rule to a DRAFT or INACTIVE policy.

        Raises:
            ValueError: If the policy is active or archived
        """
        self._ensure_editable()
        # Reassign so SQLAlchemy detects the JSONB change
        self.rules = [*(self.rules or []), rule.model_dump(mode="json")]

    def remove_rule(self, rule_name: str) -> bool:
        """
        Remove a rule by name.

        Returns:
            True if a rule was removed

        Raises:
            ValueError: If the policy is active or archived
        """
        self._ensure_editable()
        remaining = [rule for rule in (self.rules or []) if rule.get("name") != rule_name]
        removed = len(remaining) != len(self.rules or [])
        self.rules = remaining
        return removed

    @property
    def rule_count(self) -> int:
        return len(self.rules or [])

    def _ensure_editable(self) -> None:
        if self.status in _LOCKED_STATUSES:
            raise ValueError(
                f"Cannot modify an {self.status.value} policy. Create a new version first."
            )

    def __repr__(self) -> str:
        return (
            f"<Policy(id={self.id}, code={self.policy_code!r}, name={self.name!r}, "
            f"status={self.status.value if self.status else None}, v{self.version_number})>"
        )
