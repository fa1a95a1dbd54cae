"""Pydantic schemas for policy evaluation requests, results and audit trail."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.enums import ActionType, Decision, LogicalOperator

if TYPE_CHECKING:
    from app.services.rule_engine.base import EvaluationContext


# ==================== Request ====================


class PolicyEvaluationRequest(BaseModel):
    """
    Loan application facts to evaluate against active policies.

    Named fields map onto the standard context paths; anything else can be
    passed through additional_fields using its dotted path as the key.
    """

    application_id: str = Field(..., min_length=1, description="Loan application ID (audit trail)")
    loan_type: str = Field(..., min_length=1, description="Must match a LoanType value")
    requested_amount: Decimal = Field(..., ge=0)
    tenure_months: int = Field(..., ge=0)
    purpose: Optional[str] = None
    branch_code: Optional[str] = None

    cibil_score: Optional[int] = None
    risk_category: Optional[str] = Field(None, description="LOW, MEDIUM or HIGH")
    applicant_age: Optional[int] = None

    employment_type: Optional[str] = Field(
        None, description="SALARIED, SELF_EMPLOYED, BUSINESS or PROFESSIONAL"
    )
    monthly_income: Optional[Decimal] = None
    years_of_experience: Optional[int] = None

    property_value: Optional[Decimal] = None
    property_type: Optional[str] = None

    additional_fields: dict[str, Optional[str]] = Field(default_factory=dict)

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @field_validator("additional_fields", mode="before")
    @classmethod
    def _scalars_to_str(cls, value):
        """Accept JSON scalars (booleans, numbers) as extra facts."""
        if not isinstance(value, dict):
            return value
        return {key: _scalar_to_str(item) for key, item in value.items()}

    def to_evaluation_context(self) -> "EvaluationContext":
        """Flatten the request into dotted context paths."""
        # Imported here: the rule engine package imports these schemas
        from app.services.rule_engine.base import EvaluationContext

        context = EvaluationContext()

        # Loan
        context.put("loan.type", self.loan_type)
        context.put("loan.requestedAmount", self.requested_amount)
        context.put("loan.tenureMonths", self.tenure_months)
        context.put("loan.purpose", self.purpose)
        context.put("loan.branchCode", self.branch_code)

        # Applicant
        context.put("applicant.cibilScore", self.cibil_score)
        context.put("applicant.riskCategory", self.risk_category)
        context.put("applicant.age", self.applicant_age)

        # Employment
        context.put("applicant.employmentType", self.employment_type)
        context.put("applicant.monthlyIncome", self.monthly_income)
        context.put("applicant.yearsOfExperience", self.years_of_experience)

        # Property
        context.put("property.estimatedValue", self.property_value)
        context.put("property.type", self.property_type)

        for field_path, value in self.additional_fields.items():
            context.put(field_path, value)

        return context


def _scalar_to_str(value: Any) -> Any:
    # bool before int: True is an int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


# ==================== Audit Trail ====================


class ConditionResult(BaseModel):
    """Outcome of one condition."""

    field: str
    operator: str
    expected_value: str = ""
    actual_value: Optional[str] = None
    matched: bool
    reason: str


class TriggeredAction(BaseModel):
    """An action emitted by a matched rule, tagged with its provenance."""

    action_type: ActionType
    parameters: dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = None
    source_policy_code: str
    source_rule_name: str
    priority: int


class RuleMatchResult(BaseModel):
    """Outcome of one rule, with every condition result."""

    rule_name: str
    matched: bool
    logical_operator: LogicalOperator
    condition_results: list[ConditionResult] = Field(default_factory=list)
    triggered_actions: list[TriggeredAction] = Field(default_factory=list)


class PolicyMatchResult(BaseModel):
    """Outcome of one policy (matched when any enabled rule matched)."""

    policy_id: Optional[str] = None
    policy_code: str
    policy_name: str
    category: Optional[str] = None
    priority: int
    matched: bool
    rule_results: list[RuleMatchResult] = Field(default_factory=list)


class EvaluationLogEntry(BaseModel):
    """Audit log line recorded during an evaluation."""

    level: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def info(cls, message: str) -> "EvaluationLogEntry":
        return cls(level="INFO", message=message)

    @classmethod
    def warn(cls, message: str) -> "EvaluationLogEntry":
        return cls(level="WARN", message=message)


# ==================== Response ====================


class PolicyEvaluationResponse(BaseModel):
    """Decision, counts, deduplicated actions and audit trail of one evaluation."""

    application_id: str
    loan_type: str
    overall_decision: Decision
    policies_evaluated: int = Field(
        0,
        description=(
            "Active policies inside their effective window that were evaluated; "
            "active policies skipped as not yet effective or expired are not counted"
        ),
    )
    policies_matched: int = 0
    rules_evaluated: int = 0
    rules_matched: int = 0
    matched_policies: list[PolicyMatchResult] = Field(default_factory=list)
    triggered_actions: list[TriggeredAction] = Field(default_factory=list)
    evaluation_log: list[EvaluationLogEntry] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    evaluation_duration_ms: int = 0
