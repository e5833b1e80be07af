"""ORM models for the marketplace kernel."""

from marketplace_kernel.models.invitation import InvitationStatus, ProjectProvider
from marketplace_kernel.models.milestone import Milestone, MilestoneStatus
from marketplace_kernel.models.project import Project, ProjectStatus, ServiceCategory
from marketplace_kernel.models.proposal import Proposal, ProposalStatus
from marketplace_kernel.models.provider import ProviderProfile, ProviderService

__all__ = [
    "InvitationStatus",
    "Milestone",
    "MilestoneStatus",
    "Project",
    "ProjectProvider",
    "ProjectStatus",
    "Proposal",
    "ProposalStatus",
    "ProviderProfile",
    "ProviderService",
    "ServiceCategory",
]
