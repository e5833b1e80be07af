"""Read-only selectors for the marketplace kernel."""

from marketplace_kernel.selectors.base import BaseSelector
from marketplace_kernel.selectors.project_selector import ProjectSelector
from marketplace_kernel.selectors.proposal_selector import ProposalSelector

__all__ = [
    "BaseSelector",
    "ProjectSelector",
    "ProposalSelector",
]
