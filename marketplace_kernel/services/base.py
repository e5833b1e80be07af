"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback themselves.  The caller
    (``marketplace_services.workflow.MarketplaceWorkflow`` or a test) owns
    commit/rollback, which is what makes the three writes of the acceptance
    cascade atomic.

Failure modes:
    - If a subclass calls ``session.commit()``, multi-step operations lose
      their all-or-nothing guarantee.
"""

from abc import ABC
from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from marketplace_kernel.db.base import Base, TrackedBase
from marketplace_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.  Time comes from the injected ``Clock``.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide list/report queries -- those belong in
          ``marketplace_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for row timestamps; defaults to SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()

    def _stamp_new(self, row: TrackedBase) -> datetime:
        """Set created_at/updated_at on a row about to be inserted."""
        now = self.clock.now()
        row.created_at = now
        row.updated_at = now
        return now

    def _touch(self, row: TrackedBase) -> datetime:
        """Refresh updated_at on a row being modified."""
        now = self.clock.now()
        row.updated_at = now
        return now
