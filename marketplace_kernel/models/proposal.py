"""
Module: marketplace_kernel.models.proposal
Responsibility: ORM persistence for provider bids against projects.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one proposal per (project, provider): uq_proposal_project_provider.
    - Status moves pending -> accepted | rejected only, and never back
      (enforced by ProposalService against domain/lifecycles.py).
    - quote_amount within the project's budget and start_date within its
      timeline are checked at submit time by the service.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from marketplace_kernel.models.project import Project


class ProposalStatus(str, Enum):
    """Proposal lifecycle status. accepted and rejected are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Proposal(TrackedBase):
    """A provider's bid on a project: quote, start date and portfolio refs."""

    __tablename__ = "project_proposals"

    __table_args__ = (
        UniqueConstraint(
            "project_id", "provider_id", name="uq_proposal_project_provider"
        ),
        Index("idx_proposal_provider", "provider_id"),
        Index("idx_proposal_status", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    provider_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quote_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Portfolio item ids, stored as strings
    portfolio_items: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProposalStatus.PENDING.value,
    )

    project: Mapped["Project"] = relationship("Project", back_populates="proposals")

    def to_dto(self):
        from marketplace_kernel.domain.dtos import ProposalInfo

        return ProposalInfo(
            id=self.id,
            project_id=self.project_id,
            provider_id=self.provider_id,
            quote_amount=self.quote_amount,
            start_date=self.start_date,
            comments=self.comments,
            portfolio_items=tuple(self.portfolio_items or ()),
            status=ProposalStatus(self.status),
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<Proposal {self.provider_id} {self.quote_amount} [{self.status}]>"
