"""
Domain layer of the marketplace kernel.

Immutable result types, status lifecycles, pure validators, proposal
ordering, ownership checks and the injectable clock.  Nothing here
performs I/O.
"""

from marketplace_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from marketplace_kernel.domain.dtos import (
    AcceptanceResult,
    EnrichedProposal,
    FanOutResult,
    InvitationInfo,
    InvitationStats,
    MilestoneInfo,
    ProjectDraft,
    ProjectInfo,
    ProjectRequest,
    ProposalInfo,
    ProviderInbox,
    ProviderInfo,
    ProviderSummary,
    PublishOutcome,
    PublishResult,
)
from marketplace_kernel.domain.lifecycles import (
    INVITATION_LIFECYCLE,
    MILESTONE_LIFECYCLE,
    PROJECT_LIFECYCLE,
    PROPOSAL_LIFECYCLE,
)
from marketplace_kernel.domain.sorting import ProposalSortField, SortOrder, sort_proposals
from marketplace_kernel.domain.workflow import Transition, Workflow, ensure_transition

__all__ = [
    "AcceptanceResult",
    "Clock",
    "DeterministicClock",
    "EnrichedProposal",
    "FanOutResult",
    "INVITATION_LIFECYCLE",
    "InvitationInfo",
    "InvitationStats",
    "MILESTONE_LIFECYCLE",
    "MilestoneInfo",
    "PROJECT_LIFECYCLE",
    "PROPOSAL_LIFECYCLE",
    "ProjectDraft",
    "ProjectInfo",
    "ProjectRequest",
    "ProposalInfo",
    "ProposalSortField",
    "ProviderInbox",
    "ProviderInfo",
    "ProviderSummary",
    "PublishOutcome",
    "PublishResult",
    "SortOrder",
    "SystemClock",
    "Transition",
    "Workflow",
    "ensure_transition",
    "sort_proposals",
]
