"""
Marketplace workflow facade (``marketplace_services.workflow``).

Responsibility
--------------
The public entry point for every marketplace operation.  Each method opens
a session, composes the flush-only kernel services on it, and owns the
transaction boundary: ``commit`` on success, ``rollback`` on any exception.

Architecture position
---------------------
**Services layer** -- above ``marketplace_kernel``.  Kernel services never
commit; this facade is what makes a multi-write operation (the acceptance
cascade, publish with fan-out, unpublish with invitation cleanup) atomic.

Invariants enforced
-------------------
* One transaction per public method.  Partial writes never survive a
  failure.
* Same-project writes lock the project row (``SELECT ... FOR UPDATE``)
  before reading anything they validate against, so publish, acceptance,
  bid submission and the milestone percentage check serialize per project.
* No retries.  A failed operation is reported to the caller as is.

Failure modes
-------------
* Domain errors (``MarketplaceError`` subclasses) propagate unchanged after
  rollback.
* Any ``SQLAlchemyError`` is rolled back and re-raised as ``StoreError``
  with the original chained.

Audit relevance
---------------
Structured log events ``operation_started``, ``operation_committed`` and
``operation_rolled_back`` are emitted for every call, bound to the actor
and project through ``LogContext``.

Usage::

    workflow = MarketplaceWorkflow(get_session_factory())
    project = workflow.create_project(customer_id, draft, actor_id=customer_id)
    result = workflow.publish_project(project.id, actor_id=customer_id)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.domain.dtos import (
    AcceptanceResult,
    EnrichedProposal,
    InvitationInfo,
    MilestoneInfo,
    ProjectDraft,
    ProjectInfo,
    ProposalInfo,
    ProviderInbox,
    ProviderInfo,
    PublishResult,
)
from marketplace_kernel.domain.sorting import ProposalSortField, SortOrder
from marketplace_kernel.exceptions import StoreError
from marketplace_kernel.logging_config import LogContext, get_logger
from marketplace_kernel.models.invitation import InvitationStatus
from marketplace_kernel.models.milestone import MilestoneStatus
from marketplace_kernel.models.project import ServiceCategory
from marketplace_kernel.services.invitation_service import InvitationService
from marketplace_kernel.services.matching_service import ProviderMatchingService
from marketplace_kernel.services.milestone_service import MilestoneService
from marketplace_kernel.services.project_service import ProjectService
from marketplace_kernel.services.proposal_service import ProposalService
from marketplace_kernel.services.provider_service import ProviderDirectoryService

logger = get_logger("workflow")

T = TypeVar("T")


@dataclass(frozen=True)
class _Services:
    """Kernel services sharing one session and one clock."""

    session: Session
    providers: ProviderDirectoryService
    matching: ProviderMatchingService
    projects: ProjectService
    proposals: ProposalService
    milestones: MilestoneService
    invitations: InvitationService

    @classmethod
    def build(cls, session: Session, clock: Clock) -> "_Services":
        matching = ProviderMatchingService(session, clock)
        projects = ProjectService(session, clock, matching=matching)
        return cls(
            session=session,
            providers=ProviderDirectoryService(session, clock),
            matching=matching,
            projects=projects,
            proposals=ProposalService(session, clock, projects=projects),
            milestones=MilestoneService(session, clock, projects=projects),
            invitations=InvitationService(session, clock),
        )


class MarketplaceWorkflow:
    """
    Transactional facade over the marketplace kernel.

    Contract:
        Every public method runs in its own transaction and returns frozen
        DTOs that stay valid after the session is closed.
    Guarantees:
        - Commit on success, rollback on any exception.
        - ``SQLAlchemyError`` surfaces as ``StoreError``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    # =========================================================================
    # Transaction boundary
    # =========================================================================

    def _run(
        self,
        operation: str,
        fn: Callable[[_Services], T],
        actor_id: UUID | None = None,
        project_id: UUID | None = None,
        proposal_id: UUID | None = None,
    ) -> T:
        with LogContext.bind(actor_id=actor_id, project_id=project_id, proposal_id=proposal_id):
            session = self._session_factory()
            logger.info("operation_started", extra={"operation": operation})
            try:
                result = fn(_Services.build(session, self._clock))
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error(
                    "operation_rolled_back",
                    extra={"operation": operation, "error": type(exc).__name__},
                )
                raise StoreError(operation, exc) from exc
            except Exception as exc:
                session.rollback()
                logger.warning(
                    "operation_rolled_back",
                    extra={
                        "operation": operation,
                        "error": type(exc).__name__,
                        "error_code": getattr(exc, "code", None),
                    },
                )
                raise
            finally:
                session.close()
            logger.info("operation_committed", extra={"operation": operation})
            return result

    # =========================================================================
    # Providers
    # =========================================================================

    def register_provider(
        self,
        provider_id: UUID,
        business_name: str | None,
        categories: Iterable[ServiceCategory | str] = (),
        business_description: str | None = None,
        average_rating: Decimal = Decimal("0"),
        total_reviews: int = 0,
        available: bool = True,
    ) -> ProviderInfo:
        categories = tuple(categories)
        return self._run(
            "register_provider",
            lambda s: s.providers.register(
                provider_id,
                business_name,
                categories=categories,
                business_description=business_description,
                average_rating=average_rating,
                total_reviews=total_reviews,
                available=available,
            ),
            actor_id=provider_id,
        )

    def set_provider_categories(
        self,
        provider_id: UUID,
        categories: Iterable[ServiceCategory | str],
    ) -> ProviderInfo:
        categories = tuple(categories)
        return self._run(
            "set_provider_categories",
            lambda s: s.providers.set_categories(provider_id, categories),
            actor_id=provider_id,
        )

    def set_provider_availability(self, provider_id: UUID, available: bool) -> ProviderInfo:
        return self._run(
            "set_provider_availability",
            lambda s: s.providers.set_availability(provider_id, available),
            actor_id=provider_id,
        )

    def get_provider(self, provider_id: UUID) -> ProviderInfo:
        return self._run("get_provider", lambda s: s.providers.get(provider_id))

    def find_eligible_providers(self, category: ServiceCategory | str) -> frozenset[UUID]:
        return self._run(
            "find_eligible_providers",
            lambda s: s.matching.find_eligible_providers(category),
        )

    # =========================================================================
    # Projects
    # =========================================================================

    def create_project(self, customer_id: UUID, draft: ProjectDraft, actor_id: UUID) -> ProjectInfo:
        return self._run(
            "create_project",
            lambda s: s.projects.create(customer_id, draft, actor_id),
            actor_id=actor_id,
        )

    def get_project(self, project_id: UUID) -> ProjectInfo:
        return self._run(
            "get_project",
            lambda s: s.projects.get(project_id),
            project_id=project_id,
        )

    def update_project(
        self,
        project_id: UUID,
        fields: Mapping[str, Any],
        actor_id: UUID,
    ) -> ProjectInfo:
        fields = dict(fields)
        return self._run(
            "update_project",
            lambda s: s.projects.update(project_id, fields, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def delete_project(self, project_id: UUID, actor_id: UUID) -> None:
        return self._run(
            "delete_project",
            lambda s: s.projects.delete(project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def publish_project(self, project_id: UUID, actor_id: UUID) -> PublishResult:
        """Publish and fan out invitations in one transaction."""
        return self._run(
            "publish_project",
            lambda s: s.projects.publish(project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def unpublish_project(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        """Back to draft; the status write and invitation deletion land together."""
        return self._run(
            "unpublish_project",
            lambda s: s.projects.unpublish(project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def complete_project(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        return self._run(
            "complete_project",
            lambda s: s.projects.complete(project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def cancel_project(self, project_id: UUID, actor_id: UUID) -> ProjectInfo:
        return self._run(
            "cancel_project",
            lambda s: s.projects.cancel(project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def list_customer_projects(self, customer_id: UUID) -> list[ProjectInfo]:
        return self._run(
            "list_customer_projects",
            lambda s: s.projects.list_for_customer(customer_id),
            actor_id=customer_id,
        )

    def list_project_invitations(self, project_id: UUID) -> list[InvitationInfo]:
        return self._run(
            "list_project_invitations",
            lambda s: s.projects.list_invitations(project_id),
            project_id=project_id,
        )

    # =========================================================================
    # Proposals
    # =========================================================================

    def submit_proposal(
        self,
        project_id: UUID,
        provider_id: UUID,
        quote_amount: Decimal | int | str,
        start_date: date | str,
        actor_id: UUID,
        comments: str = "",
        portfolio_items: Iterable[UUID | str] = (),
    ) -> ProposalInfo:
        portfolio_items = tuple(portfolio_items)
        return self._run(
            "submit_proposal",
            lambda s: s.proposals.submit(
                project_id,
                provider_id,
                quote_amount,
                start_date,
                actor_id,
                comments=comments,
                portfolio_items=portfolio_items,
            ),
            actor_id=actor_id,
            project_id=project_id,
        )

    def accept_proposal(
        self,
        proposal_id: UUID,
        project_id: UUID,
        actor_id: UUID,
    ) -> AcceptanceResult:
        """
        Run the acceptance cascade atomically.

        The accepted proposal, the in_progress project and every rejected
        sibling commit together or not at all.
        """
        return self._run(
            "accept_proposal",
            lambda s: s.proposals.accept(proposal_id, project_id, actor_id),
            actor_id=actor_id,
            project_id=project_id,
            proposal_id=proposal_id,
        )

    def reject_proposal(self, proposal_id: UUID, actor_id: UUID) -> ProposalInfo:
        return self._run(
            "reject_proposal",
            lambda s: s.proposals.reject(proposal_id, actor_id),
            actor_id=actor_id,
            proposal_id=proposal_id,
        )

    def get_proposal(self, proposal_id: UUID) -> ProposalInfo:
        return self._run(
            "get_proposal",
            lambda s: s.proposals.get(proposal_id),
            proposal_id=proposal_id,
        )

    def list_proposals(
        self,
        project_id: UUID,
        sort_field: ProposalSortField | str = ProposalSortField.SUBMITTED_AT,
        sort_order: SortOrder | str = SortOrder.DESC,
    ) -> list[EnrichedProposal]:
        return self._run(
            "list_proposals",
            lambda s: s.proposals.list_for_project(project_id, sort_field, sort_order),
            project_id=project_id,
        )

    def list_provider_proposals(self, provider_id: UUID) -> list[ProposalInfo]:
        return self._run(
            "list_provider_proposals",
            lambda s: s.proposals.list_for_provider(provider_id),
            actor_id=provider_id,
        )

    # =========================================================================
    # Milestones
    # =========================================================================

    def create_milestone(
        self,
        project_id: UUID,
        title: str,
        due_date: date | str,
        payment_percentage: Decimal | int | str,
        actor_id: UUID,
        description: str | None = None,
    ) -> MilestoneInfo:
        return self._run(
            "create_milestone",
            lambda s: s.milestones.create(
                project_id,
                title,
                due_date,
                payment_percentage,
                actor_id,
                description=description,
            ),
            actor_id=actor_id,
            project_id=project_id,
        )

    def update_milestone(
        self,
        milestone_id: UUID,
        fields: Mapping[str, Any],
        actor_id: UUID,
    ) -> MilestoneInfo:
        fields = dict(fields)
        return self._run(
            "update_milestone",
            lambda s: s.milestones.update(milestone_id, fields, actor_id),
            actor_id=actor_id,
        )

    def delete_milestone(self, milestone_id: UUID, actor_id: UUID) -> None:
        return self._run(
            "delete_milestone",
            lambda s: s.milestones.delete(milestone_id, actor_id),
            actor_id=actor_id,
        )

    def set_milestone_status(
        self,
        milestone_id: UUID,
        status: MilestoneStatus | str,
        actor_id: UUID,
    ) -> MilestoneInfo:
        return self._run(
            "set_milestone_status",
            lambda s: s.milestones.set_status(milestone_id, status, actor_id),
            actor_id=actor_id,
        )

    def list_milestones(self, project_id: UUID) -> list[MilestoneInfo]:
        return self._run(
            "list_milestones",
            lambda s: s.milestones.list_for_project(project_id),
            project_id=project_id,
        )

    def milestone_total(self, project_id: UUID) -> Decimal:
        return self._run(
            "milestone_total",
            lambda s: s.milestones.total_percentage(project_id),
            project_id=project_id,
        )

    # =========================================================================
    # Invitations
    # =========================================================================

    def respond_to_invitation(
        self,
        project_id: UUID,
        provider_id: UUID,
        status: InvitationStatus | str,
        actor_id: UUID,
    ) -> InvitationInfo:
        return self._run(
            "respond_to_invitation",
            lambda s: s.invitations.respond(project_id, provider_id, status, actor_id),
            actor_id=actor_id,
            project_id=project_id,
        )

    def provider_inbox(self, provider_id: UUID) -> ProviderInbox:
        return self._run(
            "provider_inbox",
            lambda s: s.invitations.inbox(provider_id),
            actor_id=provider_id,
        )
