"""
Service layer for project milestones.

A milestone carries a share of the project's payment.  The shares of one
project never add up to more than 100%: create() and update() sum every
OTHER milestone of the project and refuse a value that would overflow.
The workflow facade holds the project row lock around the sum and the
write so that two concurrent creates cannot both pass the check.

Status may be written freely between pending, in_progress and completed.
completion_date follows the status: set to now when completed, cleared
otherwise.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace_kernel.domain.access import require_project_owner
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import MilestoneInfo
from marketplace_kernel.domain.lifecycles import MILESTONE_LIFECYCLE
from marketplace_kernel.domain.validation import (
    require_date,
    require_decimal,
    require_text,
    validate_payment_percentage,
    validate_percentage_total,
)
from marketplace_kernel.domain.workflow import ensure_transition
from marketplace_kernel.exceptions import (
    MilestoneNotFoundError,
    NotProjectOwnerError,
    UnknownFieldError,
    ValidationError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.milestone import Milestone, MilestoneStatus
from marketplace_kernel.models.project import Project
from marketplace_kernel.models.proposal import Proposal, ProposalStatus
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.project_service import ProjectService

logger = get_logger("services.milestone")

EDITABLE_FIELDS = frozenset({"title", "description", "due_date", "payment_percentage"})


class MilestoneService(BaseService[Milestone]):
    """Create, edit and track the milestones of a project."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        projects: ProjectService | None = None,
    ):
        super().__init__(session, clock)
        self._projects = projects or ProjectService(session, self.clock)

    def _get_by_id(self, milestone_id: UUID) -> Milestone:
        milestone = self.session.get(Milestone, milestone_id)
        if milestone is None:
            raise MilestoneNotFoundError(str(milestone_id))
        return milestone

    def get(self, milestone_id: UUID) -> MilestoneInfo:
        return self._get_by_id(milestone_id).to_dto()

    def _other_percentages(self, project_id: UUID, exclude_id: UUID | None = None) -> list[Decimal]:
        stmt = select(Milestone.payment_percentage).where(Milestone.project_id == project_id)
        if exclude_id is not None:
            stmt = stmt.where(Milestone.id != exclude_id)
        return list(self.session.execute(stmt).scalars())

    def total_percentage(self, project_id: UUID) -> Decimal:
        """Sum of payment_percentage over the project's milestones."""
        stmt = select(func.coalesce(func.sum(Milestone.payment_percentage), 0)).where(
            Milestone.project_id == project_id
        )
        return Decimal(str(self.session.execute(stmt).scalar_one()))

    def list_for_project(self, project_id: UUID) -> list[MilestoneInfo]:
        """Milestones of a project, earliest due date first."""
        stmt = (
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.due_date, Milestone.created_at, Milestone.id)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def create(
        self,
        project_id: UUID,
        title: str,
        due_date: date | str,
        payment_percentage: Decimal | int | str,
        actor_id: UUID,
        description: str | None = None,
    ) -> MilestoneInfo:
        """
        Add a milestone to a project.

        Raises:
            ProjectNotFoundError: Unknown project.
            NotProjectOwnerError: Caller does not own the project.
            PaymentPercentageError: Percentage outside [0, 100].
            PaymentPercentageExceededError: Project total would pass 100.
        """
        project = self._projects.lock(project_id)
        require_project_owner(project.id, project.customer_id, actor_id)

        title = require_text("title", title)
        due = require_date("due_date", due_date)
        percentage = require_decimal("payment_percentage", payment_percentage)
        validate_payment_percentage(percentage)
        total = validate_percentage_total(
            project.id, self._other_percentages(project.id), percentage
        )

        milestone = Milestone(
            project_id=project.id,
            title=title,
            description=description,
            due_date=due,
            payment_percentage=percentage,
            status=MILESTONE_LIFECYCLE.initial_state,
            completion_date=None,
        )
        self._stamp_new(milestone)
        self.session.add(milestone)
        self.session.flush()

        logger.info(
            "milestone_created",
            extra={
                "project_id": str(project.id),
                "milestone_id": str(milestone.id),
                "payment_percentage": str(percentage),
                "total_percentage": str(total),
            },
        )
        return milestone.to_dto()

    def update(
        self,
        milestone_id: UUID,
        fields: Mapping[str, Any],
        actor_id: UUID,
    ) -> MilestoneInfo:
        """
        Edit title, description, due date or payment percentage.

        A new percentage is checked against the sum of the project's other
        milestones.  Status is changed through set_status() only.
        """
        unknown = sorted(set(fields) - EDITABLE_FIELDS)
        if unknown:
            raise UnknownFieldError("milestone", unknown)

        milestone = self._get_by_id(milestone_id)
        project = self._projects.lock(milestone.project_id)
        require_project_owner(project.id, project.customer_id, actor_id)

        changes: dict[str, Any] = {}
        if "title" in fields:
            changes["title"] = require_text("title", fields["title"])
        if "description" in fields:
            changes["description"] = fields["description"]
        if "due_date" in fields:
            changes["due_date"] = require_date("due_date", fields["due_date"])
        if "payment_percentage" in fields:
            percentage = require_decimal("payment_percentage", fields["payment_percentage"])
            validate_payment_percentage(percentage)
            validate_percentage_total(
                project.id,
                self._other_percentages(project.id, exclude_id=milestone.id),
                percentage,
            )
            changes["payment_percentage"] = percentage

        for key, value in changes.items():
            setattr(milestone, key, value)
        self._touch(milestone)
        self.session.flush()

        logger.info(
            "milestone_updated",
            extra={"milestone_id": str(milestone.id), "fields": sorted(changes)},
        )
        return milestone.to_dto()

    def delete(self, milestone_id: UUID, actor_id: UUID) -> None:
        milestone = self._get_by_id(milestone_id)
        project = self._projects.lock(milestone.project_id)
        require_project_owner(project.id, project.customer_id, actor_id)
        self.session.delete(milestone)
        self.session.flush()
        logger.info(
            "milestone_deleted",
            extra={"project_id": str(project.id), "milestone_id": str(milestone_id)},
        )

    def set_status(
        self,
        milestone_id: UUID,
        status: MilestoneStatus | str,
        actor_id: UUID,
    ) -> MilestoneInfo:
        """
        Write a milestone status.

        completed stamps completion_date with the clock; pending and
        in_progress clear it.  Allowed for the project owner and for the
        provider whose proposal was accepted.
        """
        try:
            status = MilestoneStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown milestone status: {status}") from None

        milestone = self._get_by_id(milestone_id)
        project = self._projects.lock(milestone.project_id)
        self._require_milestone_actor(project, actor_id)

        previous = milestone.status
        transition = ensure_transition(
            MILESTONE_LIFECYCLE, milestone.status, status.value, "milestone", milestone.id
        )
        milestone.status = transition.to_state
        if status == MilestoneStatus.COMPLETED:
            milestone.completion_date = self.clock.now()
        else:
            milestone.completion_date = None
        self._touch(milestone)
        self.session.flush()

        logger.info(
            "milestone_status_changed",
            extra={
                "milestone_id": str(milestone.id),
                "from_status": previous,
                "to_status": status.value,
            },
        )
        return milestone.to_dto()

    def _require_milestone_actor(self, project: Project, actor_id: UUID) -> None:
        if actor_id == project.customer_id:
            return
        stmt = select(Proposal.provider_id).where(
            Proposal.project_id == project.id,
            Proposal.status == ProposalStatus.ACCEPTED.value,
        )
        if self.session.execute(stmt).scalar_one_or_none() == actor_id:
            return
        raise NotProjectOwnerError(str(project.id), str(actor_id))
