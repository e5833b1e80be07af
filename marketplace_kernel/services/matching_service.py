"""
ProviderMatchingService -- selects providers for a project and fans out
invitations.

Responsibility:
    ``find_eligible_providers`` is a pure read: providers that declare the
    category and are available.  ``fan_out`` inserts one pending invitation
    per eligible provider that is not linked to the project yet.

Architecture position:
    Kernel > Services.  Called by ProjectService.publish; never commits.

Invariants enforced:
    - Idempotent fan-out: the set difference eligible - already_linked is
      the only rows inserted, so a second run with no new eligible
      providers inserts nothing.
    - (project_id, provider_id) is unique at the store level; a racing
      double fan-out surfaces as DuplicateInvitationError rather than
      duplicate rows.

Failure modes:
    - DuplicateInvitationError when the unique constraint fires.
    - ValidationError for an unknown service category.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from marketplace_kernel.domain.dtos import FanOutResult
from marketplace_kernel.domain.validation import require_category
from marketplace_kernel.exceptions import DuplicateInvitationError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.models.project import ServiceCategory
from marketplace_kernel.models.provider import ProviderProfile, ProviderService
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.matching")


class ProviderMatchingService(BaseService[ProjectProvider]):
    """Computes eligible providers and creates missing invitations."""

    def find_eligible_providers(self, category: ServiceCategory | str) -> frozenset[UUID]:
        """
        Providers whose declared services include ``category``.

        Providers marked unavailable are left out.  No mutation.
        """
        category = require_category(category)
        stmt = (
            select(ProviderService.provider_id)
            .join(ProviderProfile, ProviderProfile.id == ProviderService.provider_id)
            .where(ProviderService.category == category.value)
            .where(ProviderProfile.available.is_(True))
        )
        return frozenset(self.session.execute(stmt).scalars())

    def linked_providers(self, project_id: UUID) -> frozenset[UUID]:
        stmt = select(ProjectProvider.provider_id).where(
            ProjectProvider.project_id == project_id
        )
        return frozenset(self.session.execute(stmt).scalars())

    def fan_out(self, project_id: UUID, category: ServiceCategory | str) -> FanOutResult:
        """
        Invite every eligible provider not yet linked to the project.

        Args:
            project_id: Project being published.
            category: The project's service category.

        Returns:
            FanOutResult with the eligible set, the already-linked set and
            the provider ids invited by this call (sorted for stable output).

        Raises:
            DuplicateInvitationError: A concurrent fan-out inserted the same
                (project, provider) pair first.
        """
        category = require_category(category)
        eligible = self.find_eligible_providers(category)
        already_linked = self.linked_providers(project_id)
        to_invite = sorted(eligible - already_linked, key=str)

        for provider_id in to_invite:
            invitation = ProjectProvider(
                project_id=project_id,
                provider_id=provider_id,
                status=InvitationStatus.PENDING.value,
            )
            self._stamp_new(invitation)
            self.session.add(invitation)

        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateInvitationError(str(project_id)) from exc

        logger.info(
            "fan_out_completed",
            extra={
                "project_id": str(project_id),
                "category": category.value,
                "eligible_count": len(eligible),
                "already_linked_count": len(already_linked),
                "created_count": len(to_invite),
            },
        )

        return FanOutResult(
            project_id=project_id,
            category=category,
            eligible=eligible,
            already_linked=already_linked,
            created=tuple(to_invite),
        )
