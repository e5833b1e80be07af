"""
ProjectService -- CRUD and status transitions for customer projects.

Responsibility:
    Creates draft projects, publishes them (delegating invitation fan-out
    to ProviderMatchingService), unpublishes them, validates edits, and
    drives the project through completion or cancellation.

Architecture position:
    Kernel > Services.  Flush-only; MarketplaceWorkflow owns the
    transaction around every call.

Invariants enforced:
    - Only the owning customer may publish, unpublish, update, delete,
      complete or cancel a project.
    - Every status write goes through PROJECT_LIFECYCLE.
    - update() validates the merged field values BEFORE touching the row,
      so a rejected edit leaves the stored project untouched.
    - unpublish() deletes all invitations of the project; history is not
      kept.

Failure modes:
    - ProjectNotFoundError, NotProjectOwnerError,
      InvalidStatusTransitionError, ValidationError subclasses.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from marketplace_kernel.domain.access import require_project_owner
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import (
    InvitationInfo,
    ProjectDraft,
    ProjectInfo,
    PublishOutcome,
    PublishResult,
)
from marketplace_kernel.domain.lifecycles import INVITATION_LIFECYCLE, PROJECT_LIFECYCLE
from marketplace_kernel.domain.validation import (
    require_category,
    require_date,
    require_decimal,
    require_text,
    validate_budget_range,
    validate_date_range,
)
from marketplace_kernel.domain.workflow import ensure_transition
from marketplace_kernel.exceptions import ProjectNotFoundError, UnknownFieldError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.models.project import Project, ProjectStatus
from marketplace_kernel.models.proposal import Proposal, ProposalStatus
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.matching_service import ProviderMatchingService

logger = get_logger("services.project")

EDITABLE_FIELDS = frozenset({
    "name",
    "description",
    "start_date",
    "end_date",
    "location",
    "category",
    "budget_min",
    "budget_max",
})


class ProjectService(BaseService[Project]):
    """
    Service for customer projects.

    All public methods return ProjectInfo DTOs (or result objects built
    from them), not ORM Project rows.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        matching: ProviderMatchingService | None = None,
    ):
        super().__init__(session, clock)
        self._matching = matching or ProviderMatchingService(session, self.clock)

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get_by_id(self, project_id: UUID) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project

    def lock(self, project_id: UUID) -> Project:
        """
        Load the project row with SELECT ... FOR UPDATE.

        Held until the surrounding transaction ends; this serializes
        publish, acceptance and milestone writes on the same project.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
        """
        stmt = (
            select(Project)
            .where(Project.id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        project = self.session.execute(stmt).scalar_one_or_none()
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return project

    def get(self, project_id: UUID) -> ProjectInfo:
        """
        Get project by ID.

        Raises:
            ProjectNotFoundError: If project doesn't exist.
        """
        return self._get_by_id(project_id).to_dto()

    def list_for_customer(self, customer_id: UUID) -> list[ProjectInfo]:
        """A customer's projects, newest first."""
        stmt = (
            select(Project)
            .where(Project.customer_id == customer_id)
            .order_by(Project.created_at.desc(), Project.id)
        )
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]

    def list_invitations(self, project_id: UUID) -> list[InvitationInfo]:
        """Invitations of a project, oldest first."""
        stmt = (
            select(ProjectProvider)
            .where(ProjectProvider.project_id == project_id)
            .order_by(ProjectProvider.created_at, ProjectProvider.provider_id)
        )
        return [i.to_dto() for i in self.session.execute(stmt).scalars()]

    # =========================================================================
    # Create / update / delete
    # =========================================================================

    def create(self, customer_id: UUID, draft: ProjectDraft, actor_id: UUID) -> ProjectInfo:
        """
        Create a new project in status draft.

        Args:
            customer_id: Owning customer.
            draft: Project fields.
            actor_id: Caller identity; must be the customer.

        Returns:
            Created ProjectInfo DTO.

        Raises:
            NotProjectOwnerError: If actor_id is not customer_id.
            ValidationError: Missing name/location, inverted or negative
                budget, end date before start date.
        """
        require_project_owner(None, customer_id, actor_id)

        name = require_text("name", draft.name)
        location = require_text("location", draft.location)
        category = require_category(draft.category)
        start_date = require_date("start_date", draft.start_date)
        end_date = require_date("end_date", draft.end_date)
        budget_min = require_decimal("budget_min", draft.budget_min)
        budget_max = require_decimal("budget_max", draft.budget_max)
        validate_date_range(start_date, end_date)
        validate_budget_range(budget_min, budget_max)

        project = Project(
            customer_id=customer_id,
            name=name,
            description=draft.description,
            start_date=start_date,
            end_date=end_date,
            location=location,
            category=category.value,
            budget_min=budget_min,
            budget_max=budget_max,
            status=PROJECT_LIFECYCLE.initial_state,
        )
        self._stamp_new(project)
        self.session.add(project)
        self.session.flush()

        logger.info(
            "project_created",
            extra={"project_id": str(project.id), "category": category.value},
        )
        return project.to_dto()

    def update(
        self,
        project_id: UUID,
        fields: Mapping[str, Any],
        actor_id: UUID,
    ) -> ProjectInfo:
        """
        Update editable project fields.

        The merged result (stored values overlaid with ``fields``) must
        satisfy end_date >= start_date and budget_min <= budget_max.

        Raises:
            UnknownFieldError: For fields outside EDITABLE_FIELDS (status
                included -- status moves only through lifecycle operations).
            ValidationError: If the merged values are invalid; nothing is
                written in that case.
        """
        unknown = sorted(set(fields) - EDITABLE_FIELDS)
        if unknown:
            raise UnknownFieldError("project", unknown)

        project = self._get_by_id(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)

        changes: dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = require_text("name", fields["name"])
        if "description" in fields:
            changes["description"] = fields["description"]
        if "location" in fields:
            changes["location"] = require_text("location", fields["location"])
        if "category" in fields:
            changes["category"] = require_category(fields["category"]).value
        if "start_date" in fields:
            changes["start_date"] = require_date("start_date", fields["start_date"])
        if "end_date" in fields:
            changes["end_date"] = require_date("end_date", fields["end_date"])
        if "budget_min" in fields:
            changes["budget_min"] = require_decimal("budget_min", fields["budget_min"])
        if "budget_max" in fields:
            changes["budget_max"] = require_decimal("budget_max", fields["budget_max"])

        validate_date_range(
            changes.get("start_date", project.start_date),
            changes.get("end_date", project.end_date),
        )
        validate_budget_range(
            changes.get("budget_min", project.budget_min),
            changes.get("budget_max", project.budget_max),
        )

        for key, value in changes.items():
            setattr(project, key, value)
        self._touch(project)
        self.session.flush()

        logger.info(
            "project_updated",
            extra={"project_id": str(project.id), "fields": sorted(changes)},
        )
        return project.to_dto()

    def delete(self, project_id: UUID, actor_id: UUID) -> None:
        """
        Delete a project.

        Invitations, proposals and milestones go with it (store-level
        cascade).
        """
        project = self.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        self.session.delete(project)
        self.session.flush()
        logger.info("project_deleted", extra={"project_id": str(project_id)})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def publish(self, project_id: UUID, actor_id: UUID) -> PublishResult:
        """
        Publish a project and invite every eligible provider.

        Allowed from draft and from published (re-publish invites providers
        that became eligible since).  Zero eligible providers is reported
        through ``PublishResult.outcome``, not raised.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            NotProjectOwnerError: If the caller is not the owner.
            InvalidStatusTransitionError: From in_progress, completed or
                cancelled.
            DuplicateInvitationError: If a concurrent publish raced this one.
        """
        project = self.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        transition = ensure_transition(
            PROJECT_LIFECYCLE, project.status, "publish", "project", project.id
        )

        fan_out = self._matching.fan_out(project.id, project.category)

        project.status = transition.to_state
        self._touch(project)
        self.session.flush()

        if not fan_out.eligible:
            outcome = PublishOutcome.NO_ELIGIBLE_PROVIDERS
        elif fan_out.created_count == 0:
            outcome = PublishOutcome.ALL_ALREADY_INVITED
        else:
            outcome = PublishOutcome.INVITATIONS_SENT

        logger.info(
            "project_published",
            extra={
                "project_id": str(project.id),
                "outcome": outcome.value,
                "invited_count": fan_out.created_count,
            },
        )
        return PublishResult(project=project.to_dto(), fan_out=fan_out, outcome=outcome)

    def unpublish(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        """
        Return a project to draft, deleting all of its invitations.

        Pending and accepted invitations are discarded, not archived; a
        later publish invites every currently eligible provider afresh.
        """
        project = self.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        transition = ensure_transition(
            PROJECT_LIFECYCLE, project.status, "unpublish", "project", project.id
        )

        result = self.session.execute(
            delete(ProjectProvider).where(ProjectProvider.project_id == project.id)
        )
        self.session.expire(project, ["invitations"])

        project.status = transition.to_state
        self._touch(project)
        self.session.flush()

        logger.info(
            "project_unpublished",
            extra={"project_id": str(project.id), "invitations_deleted": result.rowcount},
        )
        return project.to_dto()

    def start(self, project: Project) -> None:
        """Move a locked project to in_progress (acceptance cascade, step 2)."""
        transition = ensure_transition(
            PROJECT_LIFECYCLE, project.status, "accept_proposal", "project", project.id
        )
        project.status = transition.to_state
        self._touch(project)
        self.session.flush()

    def complete(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        """
        Mark an in-progress project completed.

        The winning provider's invitation, if any, is marked completed too.
        """
        project = self.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        transition = ensure_transition(
            PROJECT_LIFECYCLE, project.status, "complete", "project", project.id
        )
        project.status = transition.to_state
        self._touch(project)

        winner_stmt = select(Proposal.provider_id).where(
            Proposal.project_id == project.id,
            Proposal.status == ProposalStatus.ACCEPTED.value,
        )
        winner = self.session.execute(winner_stmt).scalar_one_or_none()
        if winner is not None:
            invitation = self.session.execute(
                select(ProjectProvider).where(
                    ProjectProvider.project_id == project.id,
                    ProjectProvider.provider_id == winner,
                )
            ).scalar_one_or_none()
            if invitation is not None and INVITATION_LIFECYCLE.find(
                invitation.status, "complete"
            ):
                invitation.status = InvitationStatus.COMPLETED.value
                self._touch(invitation)

        self.session.flush()
        logger.info("project_completed", extra={"project_id": str(project.id)})
        return project.to_dto()

    def cancel(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        """Cancel a project from any non-terminal state."""
        project = self.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        transition = ensure_transition(
            PROJECT_LIFECYCLE, project.status, "cancel", "project", project.id
        )
        previous = project.status
        project.status = transition.to_state
        self._touch(project)
        self.session.flush()
        logger.info(
            "project_cancelled",
            extra={"project_id": str(project.id), "from_status": previous},
        )
        return project.to_dto()

    @staticmethod
    def is_accepting_proposals(project: Project) -> bool:
        return project.status == ProjectStatus.PUBLISHED.value
