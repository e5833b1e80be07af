"""
Flush-only kernel services.

Every service takes the caller's Session (and optionally a Clock) and
never commits.  See ``marketplace_services.workflow`` for the
transactional facade.
"""

from marketplace_kernel.services.base import BaseService
from marketplace_kernel.services.invitation_service import InvitationService
from marketplace_kernel.services.matching_service import ProviderMatchingService
from marketplace_kernel.services.milestone_service import MilestoneService
from marketplace_kernel.services.project_service import ProjectService
from marketplace_kernel.services.proposal_service import ProposalService
from marketplace_kernel.services.provider_service import ProviderDirectoryService

__all__ = [
    "BaseService",
    "InvitationService",
    "MilestoneService",
    "ProjectService",
    "ProposalService",
    "ProviderDirectoryService",
    "ProviderMatchingService",
]
