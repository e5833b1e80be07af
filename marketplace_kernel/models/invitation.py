"""
Module: marketplace_kernel.models.invitation
Responsibility: ORM persistence for invitations (project_providers rows)
    linking a published project to each provider that offers its category.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one invitation per (project, provider): uq_project_provider.
      This is what turns a racing double fan-out into an IntegrityError
      instead of duplicate rows.
    - Rows are created only by fan-out and deleted wholesale by unpublish.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from marketplace_kernel.models.project import Project


class InvitationStatus(str, Enum):
    """Provider's response to an invitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ProjectProvider(TrackedBase):
    """An invitation of one provider to one published project."""

    __tablename__ = "project_providers"

    __table_args__ = (
        UniqueConstraint("project_id", "provider_id", name="uq_project_provider"),
        Index("idx_project_provider_provider", "provider_id"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    provider_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvitationStatus.PENDING.value,
    )

    project: Mapped["Project"] = relationship("Project", back_populates="invitations")

    def to_dto(self):
        from marketplace_kernel.domain.dtos import InvitationInfo

        return InvitationInfo(
            id=self.id,
            project_id=self.project_id,
            provider_id=self.provider_id,
            status=InvitationStatus(self.status),
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        return f"<ProjectProvider {self.project_id} -> {self.provider_id} [{self.status}]>"
