"""
Read paths for the provider side of projects.

The provider inbox lists every invitation a provider holds together with
the project it points at, plus counts per status bucket: pending,
active (invitation accepted) and completed.  Rejected invitations are
listed but not counted.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.dtos import InvitationStats, ProjectRequest, ProviderInbox
from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.models.project import Project
from marketplace_kernel.selectors.base import BaseSelector


class ProjectSelector(BaseSelector[Project]):

    def provider_inbox(self, provider_id: UUID) -> ProviderInbox:
        """Invitations of ``provider_id``, newest first, with status counts."""
        stmt = (
            select(ProjectProvider, Project)
            .join(Project, Project.id == ProjectProvider.project_id)
            .where(ProjectProvider.provider_id == provider_id)
            .order_by(ProjectProvider.created_at.desc(), ProjectProvider.id)
        )
        requests = tuple(
            ProjectRequest(invitation=invitation.to_dto(), project=project.to_dto())
            for invitation, project in self.session.execute(stmt).all()
        )

        statuses = [r.invitation.status for r in requests]
        stats = InvitationStats(
            pending=statuses.count(InvitationStatus.PENDING),
            active=statuses.count(InvitationStatus.ACCEPTED),
            completed=statuses.count(InvitationStatus.COMPLETED),
        )
        return ProviderInbox(requests=requests, stats=stats)

