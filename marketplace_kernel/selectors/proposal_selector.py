"""
Read paths for proposals.

``list_for_project`` is what the customer's proposal-comparison view
shows: each bid next to the submitting provider's public profile, in the
order the customer picked.  Ordering happens in memory through
``sort_proposals`` so that the tie-break rules live in one place.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.dtos import EnrichedProposal, ProposalInfo, ProviderSummary
from marketplace_kernel.domain.sorting import ProposalSortField, SortOrder, sort_proposals
from marketplace_kernel.models.proposal import Proposal
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.selectors.base import BaseSelector


def _summary(provider_id: UUID, profile: ProviderProfile | None) -> ProviderSummary:
    if profile is None:
        # Profile removed after the bid was placed
        return ProviderSummary(
            provider_id=provider_id,
            business_name=None,
            average_rating=Decimal("0"),
            total_reviews=0,
        )
    return profile.to_summary()


class ProposalSelector(BaseSelector[Proposal]):
    """Joined, ordered views of proposals."""

    def list_for_project(
        self,
        project_id: UUID,
        sort_field: ProposalSortField | str = ProposalSortField.SUBMITTED_AT,
        sort_order: SortOrder | str = SortOrder.DESC,
    ) -> list[EnrichedProposal]:
        """
        All proposals of a project, each enriched with its provider summary.

        Raises:
            ValueError: If ``sort_field`` or ``sort_order`` is unknown.
        """
        field = ProposalSortField(sort_field)
        order = SortOrder(sort_order)

        stmt = (
            select(Proposal, ProviderProfile)
            .outerjoin(ProviderProfile, ProviderProfile.id == Proposal.provider_id)
            .where(Proposal.project_id == project_id)
        )
        enriched = [
            EnrichedProposal(
                proposal=proposal.to_dto(),
                provider=_summary(proposal.provider_id, profile),
            )
            for proposal, profile in self.session.execute(stmt).all()
        ]
        return sort_proposals(enriched, field, order)

    def list_for_provider(self, provider_id: UUID) -> list[ProposalInfo]:
        """A provider's own proposals, newest first."""
        stmt = select(Proposal).where(Proposal.provider_id == provider_id)
        proposals = [p.to_dto() for p in self.session.execute(stmt).scalars()]
        return sort_proposals(proposals, ProposalSortField.SUBMITTED_AT, SortOrder.DESC)
