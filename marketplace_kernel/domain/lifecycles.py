"""Status lifecycles of projects, proposals, invitations and milestones."""

from __future__ import annotations

from marketplace_kernel.domain.workflow import Transition, Workflow

PROJECT_LIFECYCLE = Workflow(
    name="project_lifecycle",
    description="Customer project from draft to completion",
    initial_state="draft",
    states=("draft", "published", "in_progress", "completed", "cancelled"),
    transitions=(
        Transition("draft", "published", action="publish"),
        # Re-publishing fans out to providers that became eligible since
        Transition("published", "published", action="publish"),
        Transition("draft", "draft", action="unpublish"),
        Transition("published", "draft", action="unpublish"),
        Transition("published", "in_progress", action="accept_proposal"),
        Transition("in_progress", "completed", action="complete"),
        Transition("draft", "cancelled", action="cancel"),
        Transition("published", "cancelled", action="cancel"),
        Transition("in_progress", "cancelled", action="cancel"),
    ),
    terminal_states=("completed", "cancelled"),
)

PROPOSAL_LIFECYCLE = Workflow(
    name="proposal_lifecycle",
    description="Provider bid, resolved once by the project owner",
    initial_state="pending",
    states=("pending", "accepted", "rejected"),
    transitions=(
        Transition("pending", "accepted", action="accept"),
        Transition("pending", "rejected", action="reject"),
    ),
    terminal_states=("accepted", "rejected"),
)

INVITATION_LIFECYCLE = Workflow(
    name="invitation_lifecycle",
    description="Provider response to a project invitation",
    initial_state="pending",
    states=("pending", "accepted", "rejected", "completed"),
    transitions=(
        Transition("pending", "accepted", action="accept"),
        Transition("pending", "rejected", action="reject"),
        # The winning provider may bid without answering the invitation first
        Transition("pending", "completed", action="complete"),
        Transition("accepted", "completed", action="complete"),
    ),
    terminal_states=("rejected", "completed"),
)

# Any status may be written from any other; completion_date follows status.
_MILESTONE_STATES = ("pending", "in_progress", "completed")

MILESTONE_LIFECYCLE = Workflow(
    name="milestone_lifecycle",
    description="Progress of a payment checkpoint",
    initial_state="pending",
    states=_MILESTONE_STATES,
    transitions=tuple(
        Transition(src, dst, action=dst)
        for src in _MILESTONE_STATES
        for dst in _MILESTONE_STATES
    ),
)
