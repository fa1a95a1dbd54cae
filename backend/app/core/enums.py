"""Core enums for type safety across the application."""

from enum import Enum


class PolicyCategory(str, Enum):
    """Categories of loan policies."""

    ELIGIBILITY = "ELIGIBILITY"
    PRICING = "PRICING"
    CREDIT_LIMIT = "CREDIT_LIMIT"
    DOCUMENT_REQUIREMENT = "DOCUMENT_REQUIREMENT"
    WORKFLOW = "WORKFLOW"
    RISK_SCORING = "RISK_SCORING"


class PolicyStatus(str, Enum):
    """Policy lifecycle states."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class LoanType(str, Enum):
    """Loan products the policy engine supports."""

    PERSONAL_LOAN = "PERSONAL_LOAN"
    HOME_LOAN = "HOME_LOAN"
    VEHICLE_LOAN = "VEHICLE_LOAN"
    EDUCATION_LOAN = "EDUCATION_LOAN"
    GOLD_LOAN = "GOLD_LOAN"
    BUSINESS_LOAN = "BUSINESS_LOAN"
    KCC = "KCC"  # Kisan Credit Card
    LAP = "LAP"  # Loan Against Property
    ALL = "ALL"  # Applies to every loan type


class LogicalOperator(str, Enum):
    """How the conditions of a rule are combined."""

    AND = "AND"
    OR = "OR"


class ConditionOperator(str, Enum):
    """Operators for policy condition evaluation."""

    # Comparison
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"

    # Collection
    IN = "IN"
    NOT_IN = "NOT_IN"

    # Range
    BETWEEN = "BETWEEN"

    # String
    CONTAINS = "CONTAINS"
    STARTS_WITH = "STARTS_WITH"

    # Boolean
    IS_TRUE = "IS_TRUE"
    IS_FALSE = "IS_FALSE"

    # Presence
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"


class ActionKind(str, Enum):
    """How triggered actions of one type are merged across rules."""

    SETTING = "setting"  # one value wins, lowest priority number
    ACCUMULATING = "accumulating"  # every instance kept
    DECISION = "decision"  # one instance kept, feeds the overall decision


class ActionType(str, Enum):
    """Effects a matched rule can trigger."""

    # Decisions
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REFER = "REFER"
    FLAG_RISK = "FLAG_RISK"

    # Value setters
    SET_INTEREST_RATE = "SET_INTEREST_RATE"
    SET_PROCESSING_FEE = "SET_PROCESSING_FEE"
    SET_MAX_AMOUNT = "SET_MAX_AMOUNT"
    SET_MAX_TENURE = "SET_MAX_TENURE"
    ASSIGN_TO_ROLE = "ASSIGN_TO_ROLE"

    # Accumulating
    REQUIRE_DOCUMENT = "REQUIRE_DOCUMENT"
    NOTIFY = "NOTIFY"

    @property
    def kind(self) -> ActionKind:
        """Merge classification of this action type."""
        return ACTION_KINDS[self]


ACTION_KINDS: dict[ActionType, ActionKind] = {
    ActionType.APPROVE: ActionKind.DECISION,
    ActionType.REJECT: ActionKind.DECISION,
    ActionType.REFER: ActionKind.DECISION,
    ActionType.FLAG_RISK: ActionKind.DECISION,
    ActionType.SET_INTEREST_RATE: ActionKind.SETTING,
    ActionType.SET_PROCESSING_FEE: ActionKind.SETTING,
    ActionType.SET_MAX_AMOUNT: ActionKind.SETTING,
    ActionType.SET_MAX_TENURE: ActionKind.SETTING,
    ActionType.ASSIGN_TO_ROLE: ActionKind.SETTING,
    ActionType.REQUIRE_DOCUMENT: ActionKind.ACCUMULATING,
    ActionType.NOTIFY: ActionKind.ACCUMULATING,
}


class Decision(str, Enum):
    """Overall evaluation outcome returned to callers."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REFERRED = "REFERRED"
    NO_DECISION = "NO_DECISION"
    NO_MATCH = "NO_MATCH"
    ERROR = "ERROR"
