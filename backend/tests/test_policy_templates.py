"""
Unit tests for the seeded policy templates.
"""

from decimal import Decimal
from typing import List

import pytest

from app.core.enums import ActionType, Decision, LoanType, PolicyCategory, PolicyStatus
from app.models.domain.policy import Policy
from app.models.schemas.policy import PolicySnapshot
from app.services.policy_evaluation_service import PolicyEvaluationService
from app.services.policy_templates import (
    TEMPLATE_BUILDERS,
    build_home_loan_template,
    build_kcc_template,
    build_personal_loan_template,
    seed_policy_templates,
)
from tests.factories import FakePolicyStore, evaluation_request


class FakeTemplateRepository:
    """Records saved templates; names are matched case-insensitively."""

    def __init__(self, existing_names: List[str] = ()):
        self.names = {name.lower() for name in existing_names}
        self.saved: List[Policy] = []

    async def exists_by_name_ignore_case(self, name: str) -> bool:
        return name.lower() in self.names

    async def save(self, policy: Policy) -> Policy:
        self.names.add(policy.name.lower())
        self.saved.append(policy)
        return policy


def active(template: Policy) -> PolicySnapshot:
    return PolicySnapshot.model_validate(template).model_copy(update={"status": PolicyStatus.ACTIVE})


class TestTemplateDefinitions:
    """Test cases for template builders."""

    @pytest.mark.parametrize(
        "build, loan_type, rule_priorities",
        [
            (build_personal_loan_template, LoanType.PERSONAL_LOAN, [5, 10, 15, 20]),
            (build_home_loan_template, LoanType.HOME_LOAN, [5, 6, 10, 20]),
            (build_kcc_template, LoanType.KCC, [5, 10, 20]),
        ],
    )
    def test_template_shape(self, build, loan_type, rule_priorities):
        template = build()

        assert template.status == PolicyStatus.DRAFT
        assert template.category == PolicyCategory.ELIGIBILITY
        assert template.loan_type == loan_type
        assert template.version_number == 1
        assert template.created_by == "system"
        assert "template" in template.tags
        assert [r.priority for r in template.rule_definitions()] == rule_priorities

    def test_templates_can_be_activated(self):
        for build in TEMPLATE_BUILDERS:
            template = build()
            template.activate()
            assert template.status == PolicyStatus.ACTIVE


class TestTemplateSeeding:
    """Test cases for seed_policy_templates."""

    @pytest.mark.asyncio
    async def test_seeds_all_templates_once(self):
        repo = FakeTemplateRepository()

        assert await seed_policy_templates(repo) == 3
        assert await seed_policy_templates(repo) == 0
        assert len(repo.saved) == 3

    @pytest.mark.asyncio
    async def test_skips_existing_names_case_insensitively(self):
        repo = FakeTemplateRepository(existing_names=["home loan - eligibility template"])

        created = await seed_policy_templates(repo)

        assert created == 2
        assert {p.loan_type for p in repo.saved} == {LoanType.PERSONAL_LOAN, LoanType.KCC}


class TestTemplateEvaluation:
    """Templates evaluated end to end once activated."""

    @pytest.mark.asyncio
    async def test_personal_loan_salaried_approval(self):
        service = PolicyEvaluationService(FakePolicyStore([active(build_personal_loan_template())]))

        response = await service.evaluate(evaluation_request())

        assert response.overall_decision == Decision.APPROVED
        rates = [a for a in response.triggered_actions if a.action_type == ActionType.SET_INTEREST_RATE]
        assert rates[0].parameters == {"rate": "12.5", "type": "FIXED"}

    @pytest.mark.asyncio
    async def test_personal_loan_borderline_referral(self):
        service = PolicyEvaluationService(FakePolicyStore([active(build_personal_loan_template())]))

        response = await service.evaluate(evaluation_request(cibil_score=600))

        assert response.overall_decision == Decision.REFERRED
        assert {a.action_type for a in response.triggered_actions} == {
            ActionType.REFER,
            ActionType.ASSIGN_TO_ROLE,
            ActionType.FLAG_RISK,
        }

    @pytest.mark.asyncio
    async def test_home_loan_high_value_with_low_income_is_rejected(self):
        service = PolicyEvaluationService(FakePolicyStore([active(build_home_loan_template())]))

        response = await service.evaluate(
            evaluation_request(
                loan_type="HOME_LOAN",
                requested_amount=Decimal("7500000"),
                monthly_income=Decimal("30000"),
                property_value=Decimal("9000000"),
            )
        )

        assert response.overall_decision == Decision.REJECTED
        documents = [a for a in response.triggered_actions if a.action_type == ActionType.REQUIRE_DOCUMENT]
        assert documents[0].parameters["documentType"] == "VALUATION_REPORT"

    @pytest.mark.asyncio
    async def test_kcc_uses_additional_fields(self):
        service = PolicyEvaluationService(FakePolicyStore([active(build_kcc_template())]))

        rejected = await service.evaluate(
            evaluation_request(loan_type="KCC", additional_fields={"applicant.landOwnership": "false"})
        )
        approved = await service.evaluate(
            evaluation_request(
                loan_type="KCC",
                additional_fields={
                    "applicant.landOwnership": "true",
                    "applicant.cropType": "PADDY",
                    "applicant.landArea": "8",
                    "applicant.irrigatedLand": "yes",
                },
            )
        )

        assert rejected.overall_decision == Decision.REJECTED
        assert approved.overall_decision == Decision.APPROVED
        max_amounts = [a for a in approved.triggered_actions if a.action_type == ActionType.SET_MAX_AMOUNT]
        assert max_amounts[0].parameters == {"amount": "500000"}
