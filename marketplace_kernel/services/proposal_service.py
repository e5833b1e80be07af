"""
ProposalService -- provider bids and the acceptance cascade.

Responsibility:
    Validates and records proposals, and resolves them: accepting one
    proposal moves it to accepted, the project to in_progress and every
    sibling proposal to rejected.

Architecture position:
    Kernel > Services.  Flush-only.  The acceptance cascade is three
    writes that must land together; MarketplaceWorkflow runs them in one
    transaction with the project row locked.

Invariants enforced:
    - At most one proposal per (project, provider).  Checked up front and
      backed by uq_proposal_project_provider for racing submits.
    - budget_min <= quote_amount <= budget_max at submit time.
    - At most one accepted proposal per project.  A second accept finds
      the target already rejected by the first cascade.
    - Proposal status never leaves accepted or rejected.

Failure modes:
    - ProjectNotFoundError, ProposalNotFoundError, ProviderNotFoundError.
    - QuoteOutOfRangeError, ProposalStartDateError,
      ProposalProjectMismatchError (validation).
    - DuplicateProposalError, ProposalAlreadyResolvedError,
      ProjectNotAcceptingProposalsError, InvalidStatusTransitionError
      (conflict).
    - NotProposalProviderError, NotProjectOwnerError (authorization).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace_kernel.domain.access import require_named_provider, require_project_owner
from marketplace_kernel.domain.clock import Clock
from marketplace_kernel.domain.dtos import AcceptanceResult, EnrichedProposal, ProposalInfo
from marketplace_kernel.domain.lifecycles import PROJECT_LIFECYCLE, PROPOSAL_LIFECYCLE
from marketplace_kernel.domain.sorting import ProposalSortField, SortOrder
from marketplace_kernel.domain.validation import (
    require_date,
    require_decimal,
    validate_proposal_start,
    validate_quote,
)
from marketplace_kernel.domain.workflow import ensure_transition
from marketplace_kernel.exceptions import (
    DuplicateProposalError,
    ProjectNotAcceptingProposalsError,
    ProposalAlreadyResolvedError,
    ProposalNotFoundError,
    ProposalProjectMismatchError,
    ProviderNotFoundError,
    ValidationError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.project import Project
from marketplace_kernel.models.proposal import Proposal, ProposalStatus
from marketplace_kernel.models.provider import ProviderProfile
from marketplace_kernel.selectors.proposal_selector import ProposalSelector
from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.project_service import ProjectService

logger = get_logger("services.proposal")


class ProposalService(BaseService[Proposal]):
    """
    Service for proposals.

    All public methods return ProposalInfo DTOs or result objects built
    from them.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        projects: ProjectService | None = None,
    ):
        super().__init__(session, clock)
        self._projects = projects or ProjectService(session, self.clock)
        self._selector = ProposalSelector(session)

    def _get_by_id(self, proposal_id: UUID) -> Proposal:
        proposal = self.session.get(Proposal, proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(str(proposal_id))
        return proposal

    def get(self, proposal_id: UUID) -> ProposalInfo:
        """
        Get proposal by ID.

        Raises:
            ProposalNotFoundError: If the proposal doesn't exist.
        """
        return self._get_by_id(proposal_id).to_dto()

    def _find_existing(self, project_id: UUID, provider_id: UUID) -> Proposal | None:
        stmt = select(Proposal).where(
            Proposal.project_id == project_id,
            Proposal.provider_id == provider_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    # =========================================================================
    # Submit
    # =========================================================================

    def submit(
        self,
        project_id: UUID,
        provider_id: UUID,
        quote_amount: Decimal | int | str,
        start_date: date | str,
        actor_id: UUID,
        comments: str = "",
        portfolio_items: Iterable[UUID | str] = (),
    ) -> ProposalInfo:
        """
        Record a provider's bid on a published project.

        Args:
            project_id: Project bid on.
            provider_id: Submitting provider; must equal actor_id.
            quote_amount: Quoted price, inside the project budget.
            start_date: Proposed start, inside the project timeline.
            actor_id: Caller identity.
            comments: Free text for the customer.
            portfolio_items: Ids of portfolio entries to show with the bid.

        Returns:
            The stored ProposalInfo, status pending.

        Raises:
            NotProposalProviderError: If actor_id is not provider_id.
            ProjectNotFoundError / ProviderNotFoundError: Unknown ids.
            ProjectNotAcceptingProposalsError: Project is not published.
            QuoteOutOfRangeError / ProposalStartDateError: Bad bid values.
            DuplicateProposalError: The provider already bid on this project.
        """
        require_named_provider(provider_id, actor_id)

        project = self._projects.lock(project_id)
        if self.session.get(ProviderProfile, provider_id) is None:
            raise ProviderNotFoundError(str(provider_id))
        if not ProjectService.is_accepting_proposals(project):
            raise ProjectNotAcceptingProposalsError(str(project.id), project.status)

        quote = require_decimal("quote_amount", quote_amount)
        start = require_date("start_date", start_date)
        validate_quote(quote, project.budget_min, project.budget_max)
        validate_proposal_start(start, project.start_date, project.end_date)

        if self._find_existing(project.id, provider_id) is not None:
            raise DuplicateProposalError(str(project.id), str(provider_id))

        proposal = Proposal(
            project_id=project.id,
            provider_id=provider_id,
            quote_amount=quote,
            start_date=start,
            comments=comments or "",
            portfolio_items=[str(item) for item in portfolio_items],
            status=PROPOSAL_LIFECYCLE.initial_state,
        )
        self._stamp_new(proposal)
        self.session.add(proposal)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateProposalError(str(project.id), str(provider_id)) from exc

        logger.info(
            "proposal_submitted",
            extra={
                "project_id": str(project.id),
                "proposal_id": str(proposal.id),
                "provider_id": str(provider_id),
                "quote_amount": str(quote),
            },
        )
        return proposal.to_dto()

    # =========================================================================
    # Resolve
    # =========================================================================

    def accept(self, proposal_id: UUID, project_id: UUID, actor_id: UUID) -> AcceptanceResult:
        """
        Accept a proposal: the acceptance cascade.

        1. target proposal -> accepted
        2. project -> in_progress
        3. every other proposal of the project -> rejected

        Accepting an already-accepted proposal changes nothing and reports
        ``already_accepted=True``.

        Raises:
            ProposalNotFoundError / ProjectNotFoundError: Unknown ids.
            ProposalProjectMismatchError: Proposal belongs elsewhere.
            NotProjectOwnerError: Caller does not own the project.
            ProposalAlreadyResolvedError: Proposal was rejected.
            InvalidStatusTransitionError: Project not published.
        """
        project = self._projects.lock(project_id)
        proposal = self._get_by_id(proposal_id)
        if proposal.project_id != project.id:
            raise ProposalProjectMismatchError(str(proposal.id), str(project.id))
        require_project_owner(project.id, project.customer_id, actor_id)

        if proposal.status == ProposalStatus.ACCEPTED.value:
            logger.info(
                "proposal_accept_noop",
                extra={"project_id": str(project.id), "proposal_id": str(proposal.id)},
            )
            return AcceptanceResult(
                proposal=proposal.to_dto(),
                project=project.to_dto(),
                rejected_ids=(),
                already_accepted=True,
            )
        if proposal.status != ProposalStatus.PENDING.value:
            raise ProposalAlreadyResolvedError(str(proposal.id), proposal.status, "accept")
        ensure_transition(
            PROJECT_LIFECYCLE, project.status, "accept_proposal", "project", project.id
        )

        accept = ensure_transition(
            PROPOSAL_LIFECYCLE, proposal.status, "accept", "proposal", proposal.id
        )
        proposal.status = accept.to_state
        self._touch(proposal)

        self._projects.start(project)

        rejected_ids = self._reject_siblings(project, proposal.id)

        logger.info(
            "proposal_accepted",
            extra={
                "project_id": str(project.id),
                "proposal_id": str(proposal.id),
                "provider_id": str(proposal.provider_id),
                "rejected_count": len(rejected_ids),
            },
        )
        return AcceptanceResult(
            proposal=proposal.to_dto(),
            project=project.to_dto(),
            rejected_ids=rejected_ids,
            already_accepted=False,
        )

    def _reject_siblings(self, project: Project, accepted_id: UUID) -> tuple[UUID, ...]:
        stmt = (
            select(Proposal)
            .where(Proposal.project_id == project.id)
            .where(Proposal.id != accepted_id)
            .where(Proposal.status == ProposalStatus.PENDING.value)
        )
        rejected: list[UUID] = []
        for sibling in self.session.execute(stmt).scalars():
            sibling.status = ProposalStatus.REJECTED.value
            self._touch(sibling)
            rejected.append(sibling.id)
        self.session.flush()
        return tuple(sorted(rejected, key=str))

    def reject(self, proposal_id: UUID, actor_id: UUID) -> ProposalInfo:
        """
        Reject a single proposal.  No cascade.

        Re-rejecting is a no-op; rejecting an accepted proposal raises
        ProposalAlreadyResolvedError.
        """
        proposal = self._get_by_id(proposal_id)
        project = self._projects.lock(proposal.project_id)
        require_project_owner(project.id, project.customer_id, actor_id)

        if proposal.status == ProposalStatus.REJECTED.value:
            return proposal.to_dto()
        if proposal.status != ProposalStatus.PENDING.value:
            raise ProposalAlreadyResolvedError(str(proposal.id), proposal.status, "reject")

        transition = ensure_transition(
            PROPOSAL_LIFECYCLE, proposal.status, "reject", "proposal", proposal.id
        )
        proposal.status = transition.to_state
        self._touch(proposal)
        self.session.flush()

        logger.info(
            "proposal_rejected",
            extra={"project_id": str(project.id), "proposal_id": str(proposal.id)},
        )
        return proposal.to_dto()

    # =========================================================================
    # Listing
    # =========================================================================

    def list_for_project(
        self,
        project_id: UUID,
        sort_field: ProposalSortField | str = ProposalSortField.SUBMITTED_AT,
        sort_order: SortOrder | str = SortOrder.DESC,
    ) -> list[EnrichedProposal]:
        """
        Proposals of a project with provider summaries, in display order.

        Raises:
            ProjectNotFoundError: If the project doesn't exist.
            ValidationError: Unknown sort field or order.
        """
        self._projects.get(project_id)
        try:
            return self._selector.list_for_project(project_id, sort_field, sort_order)
        except ValueError as exc:
            raise ValidationError(f"Invalid proposal ordering: {exc}") from exc

    def list_for_provider(self, provider_id: UUID) -> list[ProposalInfo]:
        return self._selector.list_for_provider(provider_id)
