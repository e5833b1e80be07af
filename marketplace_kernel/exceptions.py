"""
Typed Exception Hierarchy for the Marketplace Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, jobs, tests) must be able to tell a missing project
from an over-budget quote from a duplicate submission without parsing
message text.  Therefore:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. The message is a single human-readable sentence for end users

Example - WRONG way to handle errors:
    try:
        workflow.submit_proposal(...)
    except Exception as e:
        if "budget" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        workflow.submit_proposal(...)
    except QuoteOutOfRangeError as e:
        api_response(code=e.code, minimum=e.budget_min, maximum=e.budget_max)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from MarketplaceError:

    MarketplaceError (base)
    |
    +-- NotFoundError
    |   +-- ProjectNotFoundError
    |   +-- ProposalNotFoundError
    |   +-- MilestoneNotFoundError
    |   +-- ProviderNotFoundError
    |   +-- InvitationNotFoundError
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- UnknownFieldError
    |   +-- BudgetRangeError
    |   +-- DateRangeError
    |   +-- QuoteOutOfRangeError
    |   +-- ProposalStartDateError
    |   +-- ProposalProjectMismatchError
    |   +-- PaymentPercentageError
    |   +-- PaymentPercentageExceededError
    |
    +-- ConflictError
    |   +-- DuplicateProposalError
    |   +-- DuplicateInvitationError
    |   +-- DuplicateProviderError
    |   +-- ProposalAlreadyResolvedError
    |   +-- InvalidStatusTransitionError
    |   +-- ProjectNotAcceptingProposalsError
    |
    +-- AuthorizationError
    |   +-- NotProjectOwnerError
    |   +-- NotProposalProviderError
    |   +-- NotInvitedProviderError
    |
    +-- StoreError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                           | When Raised
----------------|--------------------------------|--------------------------------------
Not found       | PROJECT_NOT_FOUND              | Project ID doesn't exist
                | PROPOSAL_NOT_FOUND             | Proposal ID doesn't exist
                | MILESTONE_NOT_FOUND            | Milestone ID doesn't exist
                | PROVIDER_NOT_FOUND             | Provider has no profile
                | INVITATION_NOT_FOUND           | No invitation for (project, provider)
----------------|--------------------------------|--------------------------------------
Validation      | MISSING_FIELD                  | Required field empty
                | UNKNOWN_FIELD                  | Field not editable / not known
                | BUDGET_RANGE                   | budget_min > budget_max or negative
                | DATE_RANGE                     | end_date < start_date
                | QUOTE_OUT_OF_RANGE             | Quote outside [budget_min, budget_max]
                | PROPOSAL_START_DATE            | Start outside project timeline
                | PROPOSAL_PROJECT_MISMATCH      | Proposal belongs to another project
                | PAYMENT_PERCENTAGE             | Outside [0, 100] or over 2 places
                | PAYMENT_PERCENTAGE_EXCEEDED    | Milestone total would exceed 100%
----------------|--------------------------------|--------------------------------------
Conflict        | DUPLICATE_PROPOSAL             | Provider already bid on project
                | DUPLICATE_INVITATION           | Provider already invited
                | DUPLICATE_PROVIDER             | Provider profile already exists
                | PROPOSAL_ALREADY_RESOLVED      | Proposal is in a terminal state
                | INVALID_STATUS_TRANSITION      | Lifecycle forbids the transition
                | PROJECT_NOT_ACCEPTING_PROPOSALS| Project is not published
----------------|--------------------------------|--------------------------------------
Authorization   | NOT_PROJECT_OWNER              | Caller is not the owning customer
                | NOT_PROPOSAL_PROVIDER          | Caller is not the named provider
                | NOT_INVITED_PROVIDER           | Caller is not the invited provider
----------------|--------------------------------|--------------------------------------
Store           | STORE_ERROR                    | The database operation failed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and authorization errors are raised BEFORE any write, so no
   partial state exists when they surface.

2. ConflictError on submit is the correct outcome of a retried submit:

    try:
        workflow.submit_proposal(...)
    except DuplicateProposalError:
        pass  # the first attempt went through

3. StoreError wraps the driver/ORM error; ``e.cause`` keeps the original.
   The surrounding transaction has already been rolled back.
"""


class MarketplaceError(Exception):
    """
    Base exception for all marketplace kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MARKETPLACE_ERROR"


# Not-found exceptions


class NotFoundError(MarketplaceError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project with given ID was not found."""

    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProposalNotFoundError(NotFoundError):
    """Proposal with given ID was not found."""

    code: str = "PROPOSAL_NOT_FOUND"

    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__(f"Proposal not found: {proposal_id}")


class MilestoneNotFoundError(NotFoundError):
    """Milestone with given ID was not found."""

    code: str = "MILESTONE_NOT_FOUND"

    def __init__(self, milestone_id: str):
        self.milestone_id = milestone_id
        super().__init__(f"Milestone not found: {milestone_id}")


class ProviderNotFoundError(NotFoundError):
    """Provider has no registered profile."""

    code: str = "PROVIDER_NOT_FOUND"

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider not found: {provider_id}")


class InvitationNotFoundError(NotFoundError):
    """No invitation links the provider to the project."""

    code: str = "INVITATION_NOT_FOUND"

    def __init__(self, project_id: str, provider_id: str):
        self.project_id = project_id
        self.provider_id = provider_id
        super().__init__(
            f"No invitation for provider {provider_id} on project {project_id}"
        )


# Validation exceptions


class ValidationError(MarketplaceError):
    """Base exception for rejected input. Raised before any write."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is missing or empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field '{field_name}' is required")


class UnknownFieldError(ValidationError):
    """A field is not known or may not be changed through this operation."""

    code: str = "UNKNOWN_FIELD"

    def __init__(self, entity_type: str, field_names: list[str]):
        self.entity_type = entity_type
        self.field_names = field_names
        super().__init__(
            f"Cannot update {entity_type} field(s): {', '.join(field_names)}"
        )


class BudgetRangeError(ValidationError):
    """Budget bounds are negative or inverted."""

    code: str = "BUDGET_RANGE"

    def __init__(self, budget_min: str, budget_max: str):
        self.budget_min = budget_min
        self.budget_max = budget_max
        super().__init__(
            f"Invalid budget range {budget_min} - {budget_max}: "
            "both must be non-negative and the minimum cannot exceed the maximum"
        )


class DateRangeError(ValidationError):
    """End date precedes start date."""

    code: str = "DATE_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"End date {end_date} cannot be before start date {start_date}"
        )


class QuoteOutOfRangeError(ValidationError):
    """Proposal quote lies outside the project budget."""

    code: str = "QUOTE_OUT_OF_RANGE"

    def __init__(self, quote_amount: str, budget_min: str, budget_max: str):
        self.quote_amount = quote_amount
        self.budget_min = budget_min
        self.budget_max = budget_max
        super().__init__(
            f"Quote amount {quote_amount} must be within project budget range "
            f"{budget_min} - {budget_max}"
        )


class ProposalStartDateError(ValidationError):
    """Proposed start date lies outside the project timeline."""

    code: str = "PROPOSAL_START_DATE"

    def __init__(self, start_date: str, project_start: str, project_end: str):
        self.start_date = start_date
        self.project_start = project_start
        self.project_end = project_end
        super().__init__(
            f"Proposed start date {start_date} must fall within the project "
            f"timeline {project_start} - {project_end}"
        )


class ProposalProjectMismatchError(ValidationError):
    """Proposal was submitted against a different project."""

    code: str = "PROPOSAL_PROJECT_MISMATCH"

    def __init__(self, proposal_id: str, project_id: str):
        self.proposal_id = proposal_id
        self.project_id = project_id
        super().__init__(
            f"Proposal {proposal_id} does not belong to project {project_id}"
        )


class PaymentPercentageError(ValidationError):
    """A single milestone percentage is outside [0, 100] or finer than 0.01."""

    code: str = "PAYMENT_PERCENTAGE"

    def __init__(self, payment_percentage: str):
        self.payment_percentage = payment_percentage
        super().__init__(
            f"Payment percentage {payment_percentage} must be between 0 and 100"
            " with at most 2 decimal places"
        )


class PaymentPercentageExceededError(ValidationError):
    """Milestone percentages of a project would sum above 100."""

    code: str = "PAYMENT_PERCENTAGE_EXCEEDED"

    def __init__(self, project_id: str, current_total: str, requested: str):
        self.project_id = project_id
        self.current_total = current_total
        self.requested = requested
        super().__init__("Total payment percentage cannot exceed 100%")


# Conflict exceptions


class ConflictError(MarketplaceError):
    """Base exception for operations that clash with existing state."""

    code: str = "CONFLICT"


class DuplicateProposalError(ConflictError):
    """Provider already submitted a proposal for this project."""

    code: str = "DUPLICATE_PROPOSAL"

    def __init__(self, project_id: str, provider_id: str):
        self.project_id = project_id
        self.provider_id = provider_id
        super().__init__("You have already submitted a proposal for this project")


class DuplicateInvitationError(ConflictError):
    """Provider is already linked to this project."""

    code: str = "DUPLICATE_INVITATION"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(
            f"Invitations for project {project_id} were created concurrently"
        )


class DuplicateProviderError(ConflictError):
    """A provider profile with this id is already registered."""

    code: str = "DUPLICATE_PROVIDER"

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Provider {provider_id} is already registered")


class ProposalAlreadyResolvedError(ConflictError):
    """Proposal is accepted or rejected and cannot move again."""

    code: str = "PROPOSAL_ALREADY_RESOLVED"

    def __init__(self, proposal_id: str, status: str, requested: str):
        self.proposal_id = proposal_id
        self.status = status
        self.requested = requested
        super().__init__(
            f"Proposal {proposal_id} is already {status} and cannot be {requested}"
        )


class InvalidStatusTransitionError(ConflictError):
    """The entity's lifecycle does not allow the requested transition."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, from_status: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} while it is {from_status}"
        )


class ProjectNotAcceptingProposalsError(ConflictError):
    """Proposals are only taken while a project is published."""

    code: str = "PROJECT_NOT_ACCEPTING_PROPOSALS"

    def __init__(self, project_id: str, status: str):
        self.project_id = project_id
        self.status = status
        super().__init__(
            f"Project {project_id} is {status} and is not accepting proposals"
        )


# Authorization exceptions


class AuthorizationError(MarketplaceError):
    """Base exception for callers acting on entities they do not own."""

    code: str = "AUTHORIZATION_ERROR"


class NotProjectOwnerError(AuthorizationError):
    """Caller is not the project's owning customer."""

    code: str = "NOT_PROJECT_OWNER"

    def __init__(self, project_id: str, actor_id: str):
        self.project_id = project_id
        self.actor_id = actor_id
        super().__init__("Only the project owner can perform this action")


class NotProposalProviderError(AuthorizationError):
    """Caller is not the provider named on the proposal."""

    code: str = "NOT_PROPOSAL_PROVIDER"

    def __init__(self, provider_id: str, actor_id: str):
        self.provider_id = provider_id
        self.actor_id = actor_id
        super().__init__("Proposals can only be submitted by the provider themselves")


class NotInvitedProviderError(AuthorizationError):
    """Caller is not the provider the invitation was sent to."""

    code: str = "NOT_INVITED_PROVIDER"

    def __init__(self, provider_id: str, actor_id: str):
        self.provider_id = provider_id
        self.actor_id = actor_id
        super().__init__("Only the invited provider can respond to this request")


# Store exceptions


class StoreError(MarketplaceError):
    """
    The backing store operation failed.

    Wraps the SQLAlchemy / driver exception; the original is kept on
    ``cause`` and chained as ``__cause__``.
    """

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation.replace('_', ' ')}")
