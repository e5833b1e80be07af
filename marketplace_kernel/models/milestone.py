"""
Module: marketplace_kernel.models.milestone
Responsibility: ORM persistence for payment-bearing project checkpoints.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (by MilestoneService, not by a DB constraint):
    - Sum of payment_percentage across a project's milestones <= 100.
    - completion_date is set iff status == completed.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from marketplace_kernel.models.project import Project


class MilestoneStatus(str, Enum):
    """Milestone progress status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Milestone(TrackedBase):
    """A checkpoint of a project carrying a share of the total payment."""

    __tablename__ = "project_milestones"

    __table_args__ = (
        Index("idx_milestone_project", "project_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MilestoneStatus.PENDING.value,
    )

    completion_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    project: Mapped["Project"] = relationship("Project", back_populates="milestones")

    def to_dto(self):
        from marketplace_kernel.domain.dtos import MilestoneInfo

        return MilestoneInfo(
            id=self.id,
            project_id=self.project_id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            payment_percentage=self.payment_percentage,
            status=MilestoneStatus(self.status),
            completion_date=self.completion_date,
        )

    def __repr__(self) -> str:
        return f"<Milestone {self.title} {self.payment_percentage}% [{self.status}]>"
