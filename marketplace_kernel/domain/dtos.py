"""
Data Transfer Objects -- immutable results of marketplace operations.

Responsibility:
    Frozen dataclasses that services and selectors return instead of ORM
    rows.  Each joined result type names exactly the fields it carries;
    there is no catch-all "row plus whatever was joined" shape.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from marketplace_kernel.models.invitation import InvitationStatus
from marketplace_kernel.models.milestone import MilestoneStatus
from marketplace_kernel.models.project import ProjectStatus, ServiceCategory
from marketplace_kernel.models.proposal import ProposalStatus


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectDraft:
    """Customer input for a new project."""
    name: str
    start_date: date
    end_date: date
    location: str
    category: ServiceCategory
    budget_min: Decimal
    budget_max: Decimal
    description: str | None = None


@dataclass(frozen=True)
class ProjectInfo:
    """A stored project."""
    id: UUID
    customer_id: UUID
    name: str
    description: str | None
    start_date: date
    end_date: date
    location: str
    category: ServiceCategory
    budget_min: Decimal
    budget_max: Decimal
    status: ProjectStatus
    created_at: datetime | None
    updated_at: datetime | None

    @property
    def is_accepting_proposals(self) -> bool:
        return self.status == ProjectStatus.PUBLISHED


class PublishOutcome(str, Enum):
    """Informational result of a publish; none of these is an error."""

    INVITATIONS_SENT = "invitations_sent"
    NO_ELIGIBLE_PROVIDERS = "no_eligible_providers"
    ALL_ALREADY_INVITED = "all_already_invited"


@dataclass(frozen=True)
class FanOutResult:
    """Eligible providers, those already linked, and invitations created now."""
    project_id: UUID
    category: ServiceCategory
    eligible: frozenset[UUID]
    already_linked: frozenset[UUID]
    created: tuple[UUID, ...]

    @property
    def created_count(self) -> int:
        return len(self.created)


@dataclass(frozen=True)
class PublishResult:
    project: ProjectInfo
    fan_out: FanOutResult
    outcome: PublishOutcome

    @property
    def invited_count(self) -> int:
        return self.fan_out.created_count

    @property
    def message(self) -> str:
        if self.outcome == PublishOutcome.NO_ELIGIBLE_PROVIDERS:
            return "No providers found for this service category"
        if self.outcome == PublishOutcome.ALL_ALREADY_INVITED:
            return "All eligible providers are already linked to this project"
        return f"Project published successfully! {self.invited_count} providers notified."


# ---------------------------------------------------------------------------
# Providers and invitations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderInfo:
    id: UUID
    business_name: str | None
    average_rating: Decimal
    total_reviews: int
    available: bool
    categories: tuple[ServiceCategory, ...]


@dataclass(frozen=True)
class ProviderSummary:
    """Public profile fields shown beside a proposal."""
    provider_id: UUID
    business_name: str | None
    average_rating: Decimal
    total_reviews: int


@dataclass(frozen=True)
class InvitationInfo:
    id: UUID
    project_id: UUID
    provider_id: UUID
    status: InvitationStatus
    created_at: datetime | None


@dataclass(frozen=True)
class ProjectRequest:
    """An invitation as seen by the provider, with the project it points at."""
    invitation: InvitationInfo
    project: ProjectInfo


@dataclass(frozen=True)
class InvitationStats:
    pending: int = 0
    active: int = 0
    completed: int = 0


@dataclass(frozen=True)
class ProviderInbox:
    requests: tuple[ProjectRequest, ...]
    stats: InvitationStats


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProposalInfo:
    id: UUID
    project_id: UUID
    provider_id: UUID
    quote_amount: Decimal
    start_date: date
    comments: str
    portfolio_items: tuple[str, ...]
    status: ProposalStatus
    created_at: datetime | None


@dataclass(frozen=True)
class EnrichedProposal:
    """A proposal joined with the submitting provider's public profile."""
    proposal: ProposalInfo
    provider: ProviderSummary

    # Shortcuts used by sorting
    @property
    def id(self) -> UUID:
        return self.proposal.id

    @property
    def quote_amount(self) -> Decimal:
        return self.proposal.quote_amount

    @property
    def start_date(self) -> date:
        return self.proposal.start_date

    @property
    def created_at(self) -> datetime | None:
        return self.proposal.created_at


@dataclass(frozen=True)
class AcceptanceResult:
    """
    Outcome of the acceptance cascade.

    ``rejected_ids`` lists siblings moved to rejected by THIS call; the
    caller uses it to notify losing providers.  ``already_accepted`` is
    True when the target was accepted before this call (idempotent re-accept).
    """
    proposal: ProposalInfo
    project: ProjectInfo
    rejected_ids: tuple[UUID, ...] = field(default_factory=tuple)
    already_accepted: bool = False


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MilestoneInfo:
    id: UUID
    project_id: UUID
    title: str
    description: str | None
    due_date: date
    payment_percentage: Decimal
    status: MilestoneStatus
    completion_date: datetime | None
