"""
Service layer for a provider's answer to an invitation.

Invitations are created by fan-out on publish.  The invited provider may
accept or reject a pending invitation once; completion is written by
ProjectService.complete() and unpublish deletes the rows outright.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.access import require_invited_provider
from marketplace_kernel.domain.dtos import InvitationInfo, ProviderInbox
from marketplace_kernel.domain.lifecycles import INVITATION_LIFECYCLE
from marketplace_kernel.domain.workflow import ensure_transition
from marketplace_kernel.exceptions import InvitationNotFoundError, ValidationError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.selectors.project_selector import ProjectSelector
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.invitation")

# Status a provider may answer with, mapped to the lifecycle action
RESPONSES = {
    InvitationStatus.ACCEPTED: "accept",
    InvitationStatus.REJECTED: "reject",
}


class InvitationService(BaseService[ProjectProvider]):

    def _get(self, project_id: UUID, provider_id: UUID) -> ProjectProvider:
        stmt = select(ProjectProvider).where(
            ProjectProvider.project_id == project_id,
            ProjectProvider.provider_id == provider_id,
        )
        invitation = self.session.execute(stmt).scalar_one_or_none()
        if invitation is None:
            raise InvitationNotFoundError(str(project_id), str(provider_id))
        return invitation

    def get(self, project_id: UUID, provider_id: UUID) -> InvitationInfo:
        return self._get(project_id, provider_id).to_dto()

    def respond(
        self,
        project_id: UUID,
        provider_id: UUID,
        status: InvitationStatus | str,
        actor_id: UUID,
    ) -> InvitationInfo:
        """
        Accept or reject a pending invitation.

        Raises:
            NotInvitedProviderError: If actor_id is not provider_id.
            ValidationError: If status is not accepted or rejected.
            InvitationNotFoundError: No invitation for the pair.
            InvalidStatusTransitionError: Invitation already answered.
        """
        require_invited_provider(provider_id, actor_id)
        try:
            action = RESPONSES[InvitationStatus(status)]
        except (ValueError, KeyError):
            raise ValidationError(
                f"Invitation response must be accepted or rejected, got {status}"
            ) from None

        invitation = self._get(project_id, provider_id)
        transition = ensure_transition(
            INVITATION_LIFECYCLE, invitation.status, action, "invitation", invitation.id
        )
        invitation.status = transition.to_state
        self._touch(invitation)
        self.session.flush()

        logger.info(
            "invitation_answered",
            extra={
                "project_id": str(project_id),
                "provider_id": str(provider_id),
                "status": invitation.status,
            },
        )
        return invitation.to_dto()

    def inbox(self, provider_id: UUID) -> ProviderInbox:
        """Invitations held by a provider, newest first, with status counts."""
        return ProjectSelector(self.session).provider_inbox(provider_id)
