"""Pydantic schemas for policy definitions and policy administration."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.enums import (
    ActionType,
    ConditionOperator,
    LoanType,
    LogicalOperator,
    PolicyCategory,
    PolicyStatus,
)

DEFAULT_PRIORITY = 100


# ==================== Rule Definition Value Objects ====================


class Condition(BaseModel):
    """
    A single predicate of a policy rule.

    Examples:
        {"field": "applicant.age", "operator": "BETWEEN", "min_value": "21", "max_value": "58"}
        {"field": "applicant.employmentType", "operator": "IN", "values": ["SALARIED"]}
    """

    field: str = Field(..., min_length=1, description="Dotted path into the evaluation context")
    operator: ConditionOperator
    value: Optional[str] = None
    values: Optional[tuple[str, ...]] = None
    min_value: Optional[str] = None
    max_value: Optional[str] = None

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)


class Action(BaseModel):
    """An effect triggered when a rule matches, e.g. SET_INTEREST_RATE {"rate": "12.5"}."""

    type: ActionType
    parameters: dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value):
        return {} if value is None else value


class PolicyRule(BaseModel):
    """
    Conditions joined by a logical operator, plus the actions to trigger.

    Lower priority numbers take precedence when actions of the same type
    conflict across rules.
    """

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    logical_operator: LogicalOperator = LogicalOperator.AND
    conditions: tuple[Condition, ...] = ()
    actions: tuple[Action, ...] = ()
    priority: int = DEFAULT_PRIORITY
    enabled: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("logical_operator", mode="before")
    @classmethod
    def _default_operator(cls, value):
        return LogicalOperator.AND if value is None else value

    @field_validator("conditions", "actions", mode="before")
    @classmethod
    def _default_sequence(cls, value):
        return () if value is None else value

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value):
        return DEFAULT_PRIORITY if value is None else value


class PolicySnapshot(BaseModel):
    """
    Read-only view of a policy used during evaluation.

    Built from a Policy row (from_attributes) or from cached JSON; the
    evaluation engine only ever reads snapshots.
    """

    id: Optional[UUID] = None
    policy_code: str
    name: str
    description: Optional[str] = None
    category: Optional[PolicyCategory] = None
    loan_type: Optional[LoanType] = None
    status: PolicyStatus = PolicyStatus.DRAFT
    version_number: int = 1
    priority: int = DEFAULT_PRIORITY
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None
    rules: tuple[PolicyRule, ...] = ()

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("rules", mode="before")
    @classmethod
    def _default_rules(cls, value):
        return () if value is None else value

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value):
        return DEFAULT_PRIORITY if value is None else value

    def is_effective(self, now: Optional[datetime] = None) -> bool:
        """Active and inside the optional effective window."""
        if self.status != PolicyStatus.ACTIVE:
            return False
        now = _as_utc(now or datetime.now(timezone.utc))
        if self.effective_from is not None and now < _as_utc(self.effective_from):
            return False
        if self.effective_until is not None and now > _as_utc(self.effective_until):
            return False
        return True

    def enabled_rules(self) -> list[PolicyRule]:
        """Enabled rules ordered by rule priority."""
        return sorted(
            (rule for rule in self.rules if rule.enabled),
            key=lambda rule: rule.priority,
        )


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ==================== Policy Administration Schemas ====================


class PolicyBase(BaseModel):
    """Base schema for policy with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: PolicyCategory
    loan_type: Optional[LoanType] = Field(
        None, description="Loan type this policy applies to (null or ALL = every loan type)"
    )
    priority: int = Field(DEFAULT_PRIORITY, ge=0, description="Lower values are evaluated first")
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)
    rules: list[PolicyRule] = Field(default_factory=list)


class PolicyCreate(PolicyBase):
    """Schema for creating a policy (always created as DRAFT)."""

    pass


class PolicyUpdate(BaseModel):
    """Schema for updating a DRAFT or INACTIVE policy (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[PolicyCategory] = None
    loan_type: Optional[LoanType] = None
    priority: Optional[int] = Field(None, ge=0)
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None
    tags: Optional[list[str]] = None
    rules: Optional[list[PolicyRule]] = None


class PolicyResponse(PolicyBase):
    """Schema for policy response."""

    id: UUID
    policy_code: str
    status: PolicyStatus
    version_number: int
    previous_version_id: Optional[UUID] = None
    created_by: Optional[str] = None
    modified_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _default_tags(cls, value):
        return [] if value is None else value


class PolicyStatsResponse(BaseModel):
    """Policy counts by status, plus active counts per category."""

    total_policies: int
    active_policies: int
    draft_policies: int
    inactive_policies: int
    archived_policies: int
    active_by_category: dict[str, int] = Field(default_factory=dict)


class PolicyListResponse(BaseModel):
    """Schema for paginated list of policies."""

    items: list[PolicyResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
