"""
Ownership checks run before every mutating operation.

Identity itself comes from the external identity provider; callers pass
the authenticated user's id as ``actor_id``.  These helpers only compare
ids, so they stay pure.
"""

from __future__ import annotations

from uuid import UUID

from marketplace_kernel.exceptions import (
    NotInvitedProviderError,
    NotProjectOwnerError,
    NotProposalProviderError,
)


def require_project_owner(project_id: UUID, customer_id: UUID, actor_id: UUID) -> None:
    if actor_id != customer_id:
        raise NotProjectOwnerError(str(project_id), str(actor_id))


def require_named_provider(provider_id: UUID, actor_id: UUID) -> None:
    if actor_id != provider_id:
        raise NotProposalProviderError(str(provider_id), str(actor_id))


def require_invited_provider(provider_id: UUID, actor_id: UUID) -> None:
    if actor_id != provider_id:
        raise NotInvitedProviderError(str(provider_id), str(actor_id))
