"""Pre-built DRAFT eligibility policy templates seeded at startup."""

import logging
from typing import Callable, List

from app.core.enums import (
    ActionType,
    ConditionOperator,
    LoanType,
    PolicyCategory,
    PolicyStatus,
)
from app.models.domain.policy import Policy
from app.models.schemas.policy import Action, Condition, PolicyRule
from app.repositories.policy_repository import PolicyRepository

logger = logging.getLogger(__name__)

TEMPLATE_AUTHOR = "system"


def _template(
    name: str,
    description: str,
    loan_type: LoanType,
    tags: List[str],
    rules: List[PolicyRule],
) -> Policy:
    return Policy(
        policy_code=Policy.generate_policy_code(),
        name=name,
        description=description,
        category=PolicyCategory.ELIGIBILITY,
        loan_type=loan_type,
        status=PolicyStatus.DRAFT,
        version_number=1,
        priority=100,
        tags=tags,
        rules=[rule.model_dump(mode="json") for rule in rules],
        created_by=TEMPLATE_AUTHOR,
        modified_by=TEMPLATE_AUTHOR,
    )


def build_personal_loan_template() -> Policy:
    """
    Personal Loan eligibility.

    Rules:
        Low CIBIL Rejection (5): cibilScore < 500 -> REJECT
        Salaried Applicant Approval (10): salaried/professional, CIBIL >= 650,
            age 21-60, income >= 25K -> APPROVE
        Borderline CIBIL Referral (15): CIBIL 500-649 -> REFER
        Self-Employed Applicant Approval (20): self-employed/business,
            CIBIL >= 700, age 25-55, income >= 40K -> APPROVE
    """
    rules = [
        PolicyRule(
            name="Low CIBIL Rejection",
            description="Reject applicants with CIBIL score below 500",
            conditions=(
                Condition(field="applicant.cibilScore", operator=ConditionOperator.LESS_THAN, value="500"),
            ),
            actions=(
                Action(type=ActionType.REJECT, description="CIBIL score below minimum threshold of 500"),
            ),
            priority=5,
        ),
        PolicyRule(
            name="Salaried Applicant Approval",
            description="Approve salaried/professional applicants meeting eligibility criteria",
            conditions=(
                Condition(
                    field="applicant.employmentType",
                    operator=ConditionOperator.IN,
                    values=("SALARIED", "PROFESSIONAL"),
                ),
                Condition(
                    field="applicant.cibilScore",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="650",
                ),
                Condition(
                    field="applicant.age",
                    operator=ConditionOperator.BETWEEN,
                    min_value="21",
                    max_value="60",
                ),
                Condition(
                    field="applicant.monthlyIncome",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="25000",
                ),
            ),
            actions=(
                Action(type=ActionType.APPROVE, description="Eligible for personal loan (salaried applicant)"),
                Action(
                    type=ActionType.SET_MAX_AMOUNT,
                    parameters={"amount": "2000000"},
                    description="Maximum loan amount: INR 20 lakhs",
                ),
                Action(
                    type=ActionType.SET_INTEREST_RATE,
                    parameters={"rate": "12.5", "type": "FIXED"},
                    description="Standard interest rate for salaried applicants",
                ),
            ),
            priority=10,
        ),
        PolicyRule(
            name="Borderline CIBIL Referral",
            description="Refer applicants with borderline CIBIL (500-649) to senior underwriter",
            conditions=(
                Condition(
                    field="applicant.cibilScore",
                    operator=ConditionOperator.BETWEEN,
                    min_value="500",
                    max_value="649",
                ),
            ),
            actions=(
                Action(
                    type=ActionType.REFER,
                    description="Borderline CIBIL score requires senior underwriter review",
                ),
                Action(
                    type=ActionType.ASSIGN_TO_ROLE,
                    parameters={"role": "SENIOR_UNDERWRITER"},
                    description="Assign to senior underwriter for manual review",
                ),
                Action(
                    type=ActionType.FLAG_RISK,
                    parameters={"reason": "Borderline CIBIL score"},
                    description="Flag for risk review",
                ),
            ),
            priority=15,
        ),
        PolicyRule(
            name="Self-Employed Applicant Approval",
            description="Approve self-employed/business applicants with stricter criteria",
            conditions=(
                Condition(
                    field="applicant.employmentType",
                    operator=ConditionOperator.IN,
                    values=("SELF_EMPLOYED", "BUSINESS"),
                ),
                Condition(
                    field="applicant.cibilScore",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="700",
                ),
                Condition(
                    field="applicant.age",
                    operator=ConditionOperator.BETWEEN,
                    min_value="25",
                    max_value="55",
                ),
                Condition(
                    field="applicant.monthlyIncome",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="40000",
                ),
            ),
            actions=(
                Action(
                    type=ActionType.APPROVE,
                    description="Eligible for personal loan (self-employed applicant)",
                ),
                Action(
                    type=ActionType.SET_MAX_AMOUNT,
                    parameters={"amount": "1500000"},
                    description="Maximum loan amount: INR 15 lakhs",
                ),
                Action(
                    type=ActionType.SET_INTEREST_RATE,
                    parameters={"rate": "14.0", "type": "FIXED"},
                    description="Standard interest rate for self-employed applicants",
                ),
            ),
            priority=20,
        ),
    ]

    return _template(
        name="Personal Loan - Eligibility Template",
        description=(
            "Pre-built eligibility template for Personal Loans. Covers salaried and "
            "self-employed approval, CIBIL-based rejection, and borderline referral rules."
        ),
        loan_type=LoanType.PERSONAL_LOAN,
        tags=["template", "personal-loan", "eligibility"],
        rules=rules,
    )


def build_home_loan_template() -> Policy:
    """
    Home Loan eligibility.

    Rules:
        Low CIBIL Rejection (5): cibilScore < 600 -> REJECT
        Insufficient Income Rejection (6): monthlyIncome < 40K -> REJECT
        High Value Loan Referral (10): requestedAmount > 50L -> REFER
        Standard Home Loan Approval (20): CIBIL >= 700, age 21-65,
            income >= 40K, property value present -> APPROVE
    """
    rules = [
        PolicyRule(
            name="Low CIBIL Rejection",
            description="Reject applicants with CIBIL score below 600 for Home Loans",
            conditions=(
                Condition(field="applicant.cibilScore", operator=ConditionOperator.LESS_THAN, value="600"),
            ),
            actions=(
                Action(
                    type=ActionType.REJECT,
                    description="CIBIL score below Home Loan minimum threshold of 600",
                ),
            ),
            priority=5,
        ),
        PolicyRule(
            name="Insufficient Income Rejection",
            description="Reject applicants with monthly income below INR 40,000",
            conditions=(
                Condition(
                    field="applicant.monthlyIncome",
                    operator=ConditionOperator.LESS_THAN,
                    value="40000",
                ),
            ),
            actions=(
                Action(
                    type=ActionType.REJECT,
                    description="Monthly income below minimum requirement of INR 40,000",
                ),
            ),
            priority=6,
        ),
        PolicyRule(
            name="High Value Loan Referral",
            description="Refer loans above INR 50 lakhs to senior underwriter",
            conditions=(
                Condition(
                    field="loan.requestedAmount",
                    operator=ConditionOperator.GREATER_THAN,
                    value="5000000",
                ),
            ),
            actions=(
                Action(
                    type=ActionType.REFER,
                    description="High value loan requires senior underwriter review",
                ),
                Action(
                    type=ActionType.ASSIGN_TO_ROLE,
                    parameters={"role": "SENIOR_UNDERWRITER"},
                    description="Assign to senior underwriter",
                ),
                Action(
                    type=ActionType.REQUIRE_DOCUMENT,
                    parameters={"documentType": "VALUATION_REPORT", "mandatory": "true"},
                    description="Require property valuation report for high-value loans",
                ),
            ),
            priority=10,
        ),
        PolicyRule(
            name="Standard Home Loan Approval",
            description="Approve applicants meeting all Home Loan eligibility criteria",
            conditions=(
                Condition(
                    field="applicant.cibilScore",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="700",
                ),
                Condition(
                    field="applicant.age",
                    operator=ConditionOperator.BETWEEN,
                    min_value="21",
                    max_value="65",
                ),
                Condition(
                    field="applicant.monthlyIncome",
                    operator=ConditionOperator.GREATER_THAN_OR_EQUAL,
                    value="40000",
                ),
                Condition(field="property.estimatedValue", operator=ConditionOperator.IS_NOT_NULL),
            ),
            actions=(
                Action(type=ActionType.APPROVE, description="Eligible for Home Loan"),
                Action(
                    type=ActionType.SET_MAX_TENURE,
                    parameters={"months": "360"},
                    description="Maximum tenure: 30 years",
                ),
                Action(
                    type=ActionType.SET_INTEREST_RATE,
                    parameters={"rate": "8.5", "type": "FLOATING"},
                    description="Standard floating rate for Home Loans",
                ),
                Action(
                    type=ActionType.REQUIRE_DOCUMENT,
                    parameters={"documentType": "PROPERTY_PAPERS", "mandatory": "true"},
                    description="Require property ownership documents",
                ),
            ),
            priority=20,
        ),
    ]

    return _template(
        name="Home Loan - Eligibility Template",
        description=(
            "Pre-built eligibility template for Home Loans. Covers standard approval, "
            "high-value referral, CIBIL rejection, and income check rules."
        ),
        loan_type=LoanType.HOME_LOAN,
        tags=["template", "home-loan", "eligibility"],
        rules=rules,
    )


def build_kcc_template() -> Policy:
    """
    Kisan Credit Card eligibility.

    Land and crop facts are not named request fields; they arrive through
    additional_fields (applicant.landOwnership, applicant.landArea,
    applicant.irrigatedLand, applicant.cropType).
    """
    rules = [
        PolicyRule(
            name="No Land Ownership Rejection",
            description="Reject applicants without land ownership for KCC",
            conditions=(
                Condition(field="applicant.landOwnership", operator=ConditionOperator.IS_FALSE),
            ),
            actions=(
                Action(type=ActionType.REJECT, description="Land ownership is required for KCC"),
            ),
            priority=5,
        ),
        PolicyRule(
            name="Large Farmer Enhanced Limit",
            description="Enhanced credit limits for large farmers with irrigated land (>5 acres)",
            conditions=(
                Condition(field="applicant.landArea", operator=ConditionOperator.GREATER_THAN, value="5"),
                Condition(field="applicant.irrigatedLand", operator=ConditionOperator.IS_TRUE),
            ),
            actions=(
                Action(
                    type=ActionType.SET_MAX_AMOUNT,
                    parameters={"amount": "500000"},
                    description="Enhanced limit: INR 5 lakhs for large farmers",
                ),
                Action(
                    type=ActionType.SET_INTEREST_RATE,
                    parameters={"rate": "3.5", "type": "FIXED"},
                    description="Preferential rate for large farmers",
                ),
            ),
            priority=10,
        ),
        PolicyRule(
            name="Standard KCC Approval",
            description="Standard KCC approval for farmers with land and crop cultivation",
            conditions=(
                Condition(field="applicant.landOwnership", operator=ConditionOperator.IS_TRUE),
                Condition(field="applicant.cropType", operator=ConditionOperator.IS_NOT_NULL),
            ),
            actions=(
                Action(type=ActionType.APPROVE, description="Eligible for Kisan Credit Card"),
                Action(
                    type=ActionType.SET_MAX_AMOUNT,
                    parameters={"amount": "300000"},
                    description="Standard KCC limit: INR 3 lakhs",
                ),
                Action(
                    type=ActionType.SET_INTEREST_RATE,
                    parameters={"rate": "4.0", "type": "FIXED"},
                    description="Standard KCC interest rate (subsidized)",
                ),
                Action(
                    type=ActionType.SET_PROCESSING_FEE,
                    parameters={"percentage": "0.5"},
                    description="Minimal processing fee for KCC",
                ),
            ),
            priority=20,
        ),
    ]

    return _template(
        name="KCC - Eligibility Template",
        description=(
            "Pre-built eligibility template for Kisan Credit Card (KCC). Covers standard KCC "
            "approval, large farmer enhanced limits, and land ownership rejection."
        ),
        loan_type=LoanType.KCC,
        tags=["template", "kcc", "kisan-credit-card", "eligibility", "agriculture"],
        rules=rules,
    )


TEMPLATE_BUILDERS: List[Callable[[], Policy]] = [
    build_personal_loan_template,
    build_home_loan_template,
    build_kcc_template,
]


async def seed_policy_templates(repo: PolicyRepository) -> int:
    """
    Save every template whose name is not taken yet.

    Args:
        repo: Policy repository

    Returns:
        Number of templates created
    """
    logger.info("Checking for policy templates to initialize...")
    created = 0

    for build in TEMPLATE_BUILDERS:
        template = build()
        if await repo.exists_by_name_ignore_case(template.name):
            logger.debug(f"Template already exists: '{template.name}', skipping.")
            continue

        saved = await repo.save(template)
        created += 1
        logger.info(
            f"Created policy template: '{saved.name}' (code: {saved.policy_code}, "
            f"loanType: {saved.loan_type.value}, rules: {saved.rule_count})"
        )

    if created:
        logger.info(f"Policy template initialization complete. Created {created} new template(s).")
    else:
        logger.info("All policy templates already exist. No new templates created.")
    return created

