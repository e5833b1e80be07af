"""
Tests for MarketplaceWorkflow -- the transactional facade.

Covers:
- The full customer/provider flow end to end, committed
- Atomicity of the acceptance cascade (injected failure in the sibling step)
- Domain errors pass through; store errors become StoreError
- Operation logging with bound context
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace_kernel.domain.dtos import InvitationStats, PublishOutcome
from marketplace_kernel.exceptions import (
    DuplicateProposalError,
    DuplicateProviderError,
    InvalidStatusTransitionError,
    MilestoneNotFoundError,
    PaymentPercentageExceededError,
    ProjectNotFoundError,
    ProposalAlreadyResolvedError,
    QuoteOutOfRangeError,
    StoreError,
    ValidationError,
)
from marketplace_kernel.models.invitation import InvitationStatus
from marketplace_kernel.models.milestone import MilestoneStatus
from marketplace_kernel.models.project import ProjectStatus, ServiceCategory
from marketplace_kernel.models.proposal import ProposalStatus
from marketplace_kernel.services.proposal_service import ProposalService


def _failing_reject_siblings(self, project, accepted_id):
    raise OperationalError("UPDATE project_proposals", {}, Exception("disk I/O error"))


def bid(workflow, project, provider, quote="7500", start=date(2024, 3, 10)):
    return workflow.submit_proposal(project.id, provider, quote, start, actor_id=provider)


class TestEndToEnd:

    def test_publish_bid_accept_complete(
        self, workflow, customer_id, register_provider, make_draft, deterministic_clock
    ):
        """The whole lifecycle of one project, each step committed."""
        alpha = register_provider(business_name="Alpha Kitchens")
        beta = register_provider(business_name="Beta Remodel")
        register_provider(categories=[ServiceCategory.ROOFING])

        project = workflow.create_project(customer_id, make_draft(), actor_id=customer_id)
        published = workflow.publish_project(project.id, actor_id=customer_id)
        assert published.outcome == PublishOutcome.INVITATIONS_SENT
        assert set(published.fan_out.created) == {alpha, beta}

        workflow.respond_to_invitation(project.id, alpha, "accepted", actor_id=alpha)
        first = bid(workflow, project, alpha, quote="9000")
        deterministic_clock.advance(60)
        second = bid(workflow, project, beta, quote="6500")

        by_price = workflow.list_proposals(project.id, "quote_amount", "asc")
        assert [p.id for p in by_price] == [second.id, first.id]
        assert by_price[0].provider.business_name == "Beta Remodel"

        result = workflow.accept_proposal(first.id, project.id, actor_id=customer_id)
        assert result.rejected_ids == (second.id,)

        assert workflow.get_project(project.id).status == ProjectStatus.IN_PROGRESS
        assert workflow.get_proposal(first.id).status == ProposalStatus.ACCEPTED
        assert workflow.get_proposal(second.id).status == ProposalStatus.REJECTED

        milestone = workflow.create_milestone(
            project.id, "Cabinets installed", date(2024, 4, 15), "50", actor_id=customer_id
        )
        done = workflow.set_milestone_status(milestone.id, MilestoneStatus.COMPLETED, actor_id=alpha)
        assert done.completion_date == deterministic_clock.now()

        workflow.complete_project(project.id, actor_id=customer_id)
        inbox = workflow.provider_inbox(alpha)
        assert inbox.stats == InvitationStats(pending=0, active=0, completed=1)
        assert inbox.requests[0].invitation.status == InvitationStatus.COMPLETED

    def test_unpublish_and_republish(self, workflow, published_project, customer_id):
        project, providers = published_project
        assert len(workflow.list_project_invitations(project.id)) == 2

        workflow.unpublish_project(project.id, actor_id=customer_id)
        assert workflow.list_project_invitations(project.id) == []
        assert workflow.get_project(project.id).status == ProjectStatus.DRAFT

        again = workflow.publish_project(project.id, actor_id=customer_id)
        assert again.invited_count == 2

    def test_republish_without_new_providers(self, workflow, published_project, customer_id):
        project, _ = published_project

        again = workflow.publish_project(project.id, actor_id=customer_id)

        assert again.outcome == PublishOutcome.ALL_ALREADY_INVITED
        assert len(workflow.list_project_invitations(project.id)) == 2

    def test_second_bid_from_same_provider(self, workflow, published_project):
        project, (alpha, _) = published_project
        bid(workflow, project, alpha)

        with pytest.raises(DuplicateProposalError):
            bid(workflow, project, alpha, quote="8000")

        assert len(workflow.list_provider_proposals(alpha)) == 1

    def test_accepting_second_proposal_fails(self, workflow, published_project, customer_id):
        project, (alpha, beta) = published_project
        a = bid(workflow, project, alpha)
        b = bid(workflow, project, beta)
        workflow.accept_proposal(a.id, project.id, actor_id=customer_id)

        with pytest.raises(ProposalAlreadyResolvedError):
            workflow.accept_proposal(b.id, project.id, actor_id=customer_id)

        accepted = [
            p for p in workflow.list_proposals(project.id)
            if p.proposal.status == ProposalStatus.ACCEPTED
        ]
        assert [p.id for p in accepted] == [a.id]

    def test_milestone_ceiling(self, workflow, published_project, customer_id):
        project, _ = published_project
        workflow.create_milestone(project.id, "Deposit", date(2024, 3, 1), "30", actor_id=customer_id)
        workflow.create_milestone(project.id, "Midway", date(2024, 4, 1), "60", actor_id=customer_id)

        with pytest.raises(PaymentPercentageExceededError):
            workflow.create_milestone(
                project.id, "Final", date(2024, 6, 1), "20", actor_id=customer_id
            )

        assert workflow.milestone_total(project.id) == Decimal("90")
        assert [m.title for m in workflow.list_milestones(project.id)] == ["Deposit", "Midway"]


class TestAtomicity:

    def test_failed_sibling_rejection_rolls_back_cascade(
        self, workflow, published_project, customer_id, monkeypatch
    ):
        """A store failure in the third cascade step leaves every row untouched."""
        project, (alpha, beta) = published_project
        a = bid(workflow, project, alpha)
        b = bid(workflow, project, beta)

        monkeypatch.setattr(ProposalService, "_reject_siblings", _failing_reject_siblings)

        with pytest.raises(StoreError) as exc_info:
            workflow.accept_proposal(a.id, project.id, actor_id=customer_id)

        assert isinstance(exc_info.value.cause, OperationalError)
        assert exc_info.value.__cause__ is exc_info.value.cause
        assert exc_info.value.operation == "accept_proposal"
        assert workflow.get_proposal(a.id).status == ProposalStatus.PENDING
        assert workflow.get_proposal(b.id).status == ProposalStatus.PENDING
        assert workflow.get_project(project.id).status == ProjectStatus.PUBLISHED

    def test_cascade_succeeds_after_transient_failure(
        self, workflow, published_project, customer_id, monkeypatch
    ):
        """Nothing half-applied blocks a later attempt."""
        project, (alpha, beta) = published_project
        a = bid(workflow, project, alpha)
        bid(workflow, project, beta)

        with monkeypatch.context() as m:
            m.setattr(ProposalService, "_reject_siblings", _failing_reject_siblings)
            with pytest.raises(StoreError):
                workflow.accept_proposal(a.id, project.id, actor_id=customer_id)

        result = workflow.accept_proposal(a.id, project.id, actor_id=customer_id)
        assert result.already_accepted is False
        assert len(result.rejected_ids) == 1

    def test_domain_error_passes_through_and_rolls_back(
        self, workflow, published_project, captured_logs
    ):
        project, (alpha, _) = published_project

        with pytest.raises(QuoteOutOfRangeError):
            bid(workflow, project, alpha, quote="50")

        assert workflow.list_provider_proposals(alpha) == []
        rolled_back = [r for r in captured_logs() if r["message"] == "operation_rolled_back"]
        assert rolled_back[-1]["operation"] == "submit_proposal"
        assert rolled_back[-1]["error_code"] == "QUOTE_OUT_OF_RANGE"


class TestOperationLogging:

    def test_started_and_committed_with_context(
        self, workflow, published_project, customer_id, captured_logs
    ):
        project, _ = published_project

        workflow.publish_project(project.id, actor_id=customer_id)

        records = [r for r in captured_logs() if r.get("operation") == "publish_project"]
        assert [r["message"] for r in records] == ["operation_started", "operation_committed"]
        for record in records:
            assert record["actor_id"] == str(customer_id)
            assert record["project_id"] == str(project.id)

    def test_kernel_events_logged(self, workflow, published_project, customer_id, captured_logs):
        project, (alpha, _) = published_project

        bid(workflow, project, alpha)

        messages = [r["message"] for r in captured_logs()]
        assert "proposal_submitted" in messages


class TestFacadeMaintenance:

    def test_provider_profile_changes(self, workflow, register_provider):
        provider = register_provider()

        workflow.set_provider_categories(provider, [ServiceCategory.ROOFING, "Plumbing"])
        assert provider in workflow.find_eligible_providers(ServiceCategory.ROOFING)
        assert provider not in workflow.find_eligible_providers(ServiceCategory.KITCHEN_REMODELING)

        workflow.set_provider_availability(provider, False)
        info = workflow.get_provider(provider)
        assert info.available is False
        assert set(info.categories) == {ServiceCategory.ROOFING, ServiceCategory.PLUMBING}

    def test_update_and_list_customer_projects(self, workflow, customer_id, make_draft):
        first = workflow.create_project(customer_id, make_draft(), actor_id=customer_id)
        workflow.create_project(customer_id, make_draft(name="Roof"), actor_id=customer_id)

        updated = workflow.update_project(
            first.id, {"budget_max": "12000", "location": "Salem, OR"}, actor_id=customer_id
        )

        assert updated.budget_max == Decimal("12000")
        assert updated.location == "Salem, OR"
        assert len(workflow.list_customer_projects(customer_id)) == 2

    def test_delete_project_removes_children(self, workflow, published_project, customer_id):
        project, (alpha, _) = published_project
        bid(workflow, project, alpha)
        workflow.create_milestone(project.id, "Deposit", date(2024, 3, 1), "25", actor_id=customer_id)

        workflow.delete_project(project.id, actor_id=customer_id)

        with pytest.raises(ProjectNotFoundError):
            workflow.get_project(project.id)
        assert workflow.list_provider_proposals(alpha) == []
        assert workflow.provider_inbox(alpha).requests == ()

    def test_cancel_then_complete_is_refused(self, workflow, published_project, customer_id):
        project, _ = published_project

        cancelled = workflow.cancel_project(project.id, actor_id=customer_id)
        assert cancelled.status == ProjectStatus.CANCELLED

        with pytest.raises(InvalidStatusTransitionError):
            workflow.complete_project(project.id, actor_id=customer_id)

    def test_reject_single_proposal(self, workflow, published_project, customer_id):
        project, (alpha, beta) = published_project
        a = bid(workflow, project, alpha)
        b = bid(workflow, project, beta)

        rejected = workflow.reject_proposal(a.id, actor_id=customer_id)

        assert rejected.status == ProposalStatus.REJECTED
        assert workflow.get_proposal(b.id).status == ProposalStatus.PENDING
        assert workflow.get_project(project.id).status == ProjectStatus.PUBLISHED

    def test_update_and_delete_milestone(self, workflow, published_project, customer_id):
        project, _ = published_project
        milestone = workflow.create_milestone(
            project.id, "Deposit", date(2024, 3, 1), "30", actor_id=customer_id
        )

        updated = workflow.update_milestone(
            milestone.id, {"payment_percentage": "100", "title": "Full payment"},
            actor_id=customer_id,
        )
        assert updated.title == "Full payment"
        assert workflow.milestone_total(project.id) == Decimal("100")

        workflow.delete_milestone(milestone.id, actor_id=customer_id)
        assert workflow.list_milestones(project.id) == []
        with pytest.raises(MilestoneNotFoundError):
            workflow.delete_milestone(milestone.id, actor_id=customer_id)

    def test_unknown_category_is_a_validation_error(self, workflow):
        with pytest.raises(ValidationError):
            workflow.find_eligible_providers("Landscaping")

    def test_duplicate_registration_is_a_conflict(self, workflow, register_provider):
        provider = register_provider()

        with pytest.raises(DuplicateProviderError):
            workflow.register_provider(provider, "Again Inc")

        assert workflow.get_provider(provider).business_name == "Acme Builders"
