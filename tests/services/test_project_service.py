"""
Tests for ProjectService.

Covers:
- Creation and input validation
- Publish: fan-out outcomes, re-publish, state guards
- Unpublish: invitation cleanup
- Update: merged-field validation, unknown fields
- Delete cascade, complete, cancel, listing
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from marketplace_kernel.domain.dtos import PublishOutcome
from marketplace_kernel.exceptions import (
    BudgetRangeError,
    DateRangeError,
    InvalidStatusTransitionError,
    MissingFieldError,
    NotProjectOwnerError,
    ProjectNotFoundError,
    UnknownFieldError,
)
from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.models.milestone import Milestone
from marketplace_kernel.models.project import ProjectStatus, ServiceCategory
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.services.milestone_service import MilestoneService
from marketplace_kernel.services.project_service import ProjectService
from marketplace_kernel.services.proposal_service import ProposalService


@pytest.fixture
def projects(session, deterministic_clock) -> ProjectService:
    return ProjectService(session, deterministic_clock)


def invitation_count(session, project_id) -> int:
    return session.execute(
        select(func.count()).select_from(ProjectProvider).where(
            ProjectProvider.project_id == project_id
        )
    ).scalar_one()


class TestCreate:

    def test_create_draft(self, projects, customer_id, make_draft):
        """A new project starts in draft with the given fields."""
        project = projects.create(customer_id, make_draft(), customer_id)

        assert project.status == ProjectStatus.DRAFT
        assert project.customer_id == customer_id
        assert project.category == ServiceCategory.KITCHEN_REMODELING
        assert project.budget_min == Decimal("5000")
        assert not project.is_accepting_proposals

    def test_inverted_budget_rejected(self, projects, customer_id, make_draft):
        with pytest.raises(BudgetRangeError):
            projects.create(
                customer_id,
                make_draft(budget_min=Decimal("900"), budget_max=Decimal("100")),
                customer_id,
            )

    def test_end_before_start_rejected(self, projects, customer_id, make_draft):
        with pytest.raises(DateRangeError):
            projects.create(
                customer_id,
                make_draft(start_date=date(2024, 5, 1), end_date=date(2024, 4, 1)),
                customer_id,
            )

    def test_blank_name_rejected(self, projects, customer_id, make_draft):
        with pytest.raises(MissingFieldError):
            projects.create(customer_id, make_draft(name="  "), customer_id)

    def test_customer_can_only_create_for_self(self, projects, customer_id, other_actor_id, make_draft):
        with pytest.raises(NotProjectOwnerError):
            projects.create(customer_id, make_draft(), other_actor_id)

    def test_get_unknown_project(self, projects, other_actor_id):
        with pytest.raises(ProjectNotFoundError):
            projects.get(other_actor_id)


class TestPublish:

    def test_publish_invites_every_eligible_provider(
        self, session, projects, create_project, create_provider, customer_id
    ):
        """Providers offering the category get one pending invitation each."""
        a = create_provider()
        b = create_provider(categories=[ServiceCategory.KITCHEN_REMODELING, ServiceCategory.PLUMBING])
        create_provider(categories=[ServiceCategory.ROOFING])
        project = create_project()

        result = projects.publish(project.id, customer_id)

        assert result.project.status == ProjectStatus.PUBLISHED
        assert result.outcome == PublishOutcome.INVITATIONS_SENT
        assert set(result.fan_out.created) == {a, b}
        assert result.invited_count == 2
        assert result.message == "Project published successfully! 2 providers notified."
        invitations = projects.list_invitations(project.id)
        assert {i.provider_id for i in invitations} == {a, b}
        assert all(i.status == InvitationStatus.PENDING for i in invitations)

    def test_publish_with_no_eligible_providers_still_publishes(
        self, projects, create_project, create_provider, customer_id
    ):
        """Zero matches is informational, not an error."""
        create_provider(categories=[ServiceCategory.ROOFING])
        project = create_project()

        result = projects.publish(project.id, customer_id)

        assert result.project.status == ProjectStatus.PUBLISHED
        assert result.outcome == PublishOutcome.NO_ELIGIBLE_PROVIDERS
        assert result.invited_count == 0
        assert result.message == "No providers found for this service category"

    def test_unavailable_provider_not_invited(
        self, projects, create_project, create_provider, customer_id
    ):
        available = create_provider()
        create_provider(available=False)
        project = create_project()

        result = projects.publish(project.id, customer_id)

        assert result.fan_out.created == (available,)

    def test_republish_is_idempotent(
        self, session, projects, create_project, create_provider, customer_id
    ):
        """A second publish creates no duplicate invitations."""
        create_provider()
        create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)

        again = projects.publish(project.id, customer_id)

        assert again.outcome == PublishOutcome.ALL_ALREADY_INVITED
        assert again.invited_count == 0
        assert invitation_count(session, project.id) == 2

    def test_republish_invites_newly_eligible_provider(
        self, projects, create_project, create_provider, customer_id
    ):
        create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)
        newcomer = create_provider()

        again = projects.publish(project.id, customer_id)

        assert again.fan_out.created == (newcomer,)
        assert len(again.fan_out.already_linked) == 1

    def test_only_owner_may_publish(self, projects, create_project, other_actor_id):
        project = create_project()
        with pytest.raises(NotProjectOwnerError):
            projects.publish(project.id, other_actor_id)

    def test_cannot_publish_cancelled_project(self, projects, create_project, customer_id):
        project = create_project()
        projects.cancel(project.id, customer_id)
        with pytest.raises(InvalidStatusTransitionError):
            projects.publish(project.id, customer_id)


class TestUnpublish:

    def test_unpublish_deletes_invitations(
        self, session, projects, create_project, create_provider, customer_id
    ):
        create_provider()
        create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)

        info = projects.unpublish(project.id, customer_id)

        assert info.status == ProjectStatus.DRAFT
        assert invitation_count(session, project.id) == 0

    def test_publish_after_unpublish_invites_again(
        self, session, projects, create_project, create_provider, customer_id
    ):
        create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)
        projects.unpublish(project.id, customer_id)

        result = projects.publish(project.id, customer_id)

        assert result.outcome == PublishOutcome.INVITATIONS_SENT
        assert invitation_count(session, project.id) == 1

    def test_unpublish_draft_is_noop(self, projects, create_project, customer_id):
        project = create_project()
        assert projects.unpublish(project.id, customer_id).status == ProjectStatus.DRAFT


class TestUpdate:

    def test_update_fields(self, projects, create_project, customer_id):
        project = create_project()

        info = projects.update(
            project.id,
            {"name": "Bigger kitchen", "budget_max": "12000"},
            customer_id,
        )

        assert info.name == "Bigger kitchen"
        assert info.budget_max == Decimal("12000")

    def test_merged_dates_validated(self, projects, create_project, customer_id):
        """A new start date after the stored end date is rejected and nothing changes."""
        project = create_project()

        with pytest.raises(DateRangeError):
            projects.update(project.id, {"start_date": date(2024, 7, 1)}, customer_id)

        assert projects.get(project.id).start_date == date(2024, 3, 1)

    def test_merged_budget_validated(self, projects, create_project, customer_id):
        project = create_project()
        with pytest.raises(BudgetRangeError):
            projects.update(project.id, {"budget_min": "20000"}, customer_id)
        assert projects.get(project.id).budget_min == Decimal("5000")

    def test_status_is_not_editable(self, projects, create_project, customer_id):
        project = create_project()
        with pytest.raises(UnknownFieldError) as exc_info:
            projects.update(project.id, {"status": "completed"}, customer_id)
        assert exc_info.value.field_names == ["status"]

    def test_only_owner_may_update(self, projects, create_project, other_actor_id):
        project = create_project()
        with pytest.raises(NotProjectOwnerError):
            projects.update(project.id, {"name": "Mine now"}, other_actor_id)


class TestDelete:

    def test_delete_removes_dependents(
        self, session, deterministic_clock, projects, create_project, create_provider, customer_id
    ):
        """Invitations, proposals and milestones go with the project."""
        provider = create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)
        ProposalService(session, deterministic_clock).submit(
            project.id, provider, "6000", date(2024, 3, 5), provider
        )
        MilestoneService(session, deterministic_clock).create(
            project.id, "Demolition", date(2024, 3, 15), "25", customer_id
        )

        projects.delete(project.id, customer_id)

        with pytest.raises(ProjectNotFoundError):
            projects.get(project.id)
        for model in (ProjectProvider, Proposal, Milestone):
            count = session.execute(select(func.count()).select_from(model)).scalar_one()
            assert count == 0, model.__name__

    def test_only_owner_may_delete(self, projects, create_project, other_actor_id):
        project = create_project()
        with pytest.raises(NotProjectOwnerError):
            projects.delete(project.id, other_actor_id)


class TestCompleteAndCancel:

    def test_complete_requires_in_progress(self, projects, create_project, customer_id):
        project = create_project()
        with pytest.raises(InvalidStatusTransitionError):
            projects.complete(project.id, customer_id)

    def test_complete_marks_winner_invitation_completed(
        self, session, deterministic_clock, projects, create_project, create_provider, customer_id
    ):
        winner = create_provider()
        loser = create_provider()
        project = create_project()
        projects.publish(project.id, customer_id)
        proposals = ProposalService(session, deterministic_clock, projects=projects)
        bid = proposals.submit(project.id, winner, "7000", date(2024, 3, 10), winner)
        proposals.accept(bid.id, project.id, customer_id)

        info = projects.complete(project.id, customer_id)

        assert info.status == ProjectStatus.COMPLETED
        statuses = {i.provider_id: i.status for i in projects.list_invitations(project.id)}
        assert statuses[winner] == InvitationStatus.COMPLETED
        assert statuses[loser] == InvitationStatus.PENDING

    def test_cancel_from_draft(self, projects, create_project, customer_id):
        project = create_project()
        assert projects.cancel(project.id, customer_id).status == ProjectStatus.CANCELLED

    def test_cancelled_is_terminal(self, projects, create_project, customer_id):
        project = create_project()
        projects.cancel(project.id, customer_id)
        with pytest.raises(InvalidStatusTransitionError):
            projects.cancel(project.id, customer_id)


class TestListing:

    def test_list_for_customer_newest_first(
        self, projects, create_project, deterministic_clock, customer_id
    ):
        first = create_project(name="First")
        deterministic_clock.advance(60)
        second = create_project(name="Second")

        listed = projects.list_for_customer(customer_id)

        assert [p.id for p in listed] == [second.id, first.id]

    def test_list_for_customer_excludes_other_customers(self, projects, other_actor_id):
        assert projects.list_for_customer(other_actor_id) == []
