"""
Module: marketplace_kernel.models.project
Responsibility: ORM persistence for customer-posted renovation projects.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced (at the service layer, this model is the data source):
    - budget_min <= budget_max, both >= 0.
    - end_date >= start_date.
    - status follows the project lifecycle in domain/lifecycles.py.

Failure modes:
    - IntegrityError if a NOT NULL column is left empty on raw inserts.

Relationships:
    Deleting a project removes its invitations, proposals and milestones
    (ORM cascade, backed by ON DELETE CASCADE foreign keys).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from marketplace_kernel.models.invitation import ProjectProvider
    from marketplace_kernel.models.milestone import Milestone
    from marketplace_kernel.models.proposal import Proposal


class ServiceCategory(str, Enum):
    """Trade a project needs and a provider offers.

    Contract: a Project requires exactly one category; a provider may
    declare several.
    """

    GENERAL_RENOVATION = "General Renovation"
    KITCHEN_REMODELING = "Kitchen Remodeling"
    BATHROOM_REMODELING = "Bathroom Remodeling"
    ROOM_ADDITION = "Room Addition"
    OUTDOOR_SPACE = "Outdoor Space"
    ROOFING = "Roofing"
    ELECTRICAL_WORK = "Electrical Work"
    PLUMBING = "Plumbing"
    FLOORING = "Flooring"
    PAINTING = "Painting"
    WINDOWS_AND_DOORS = "Windows and Doors"
    HVAC = "HVAC"
    OTHER = "Other"


class ProjectStatus(str, Enum):
    """Project lifecycle status.

    Contract: draft -> published -> in_progress -> completed, with
    published -> draft on unpublish and any non-terminal state -> cancelled.
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Project(TrackedBase):
    """
    A unit of work posted by a customer and open to provider bids.

    Guarantees:
        - customer_id identifies the only party allowed to mutate the row.
        - category is single-valued and drives provider fan-out.
        - budget_min / budget_max bound every accepted quote.
    """

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_customer", "customer_id"),
        Index("idx_project_status", "status"),
        Index("idx_project_category", "category"),
    )

    customer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    location: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    budget_min: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    budget_max: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.DRAFT.value,
    )

    invitations: Mapped[list["ProjectProvider"]] = relationship(
        "ProjectProvider",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    proposals: Mapped[list["Proposal"]] = relationship(
        "Proposal",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    milestones: Mapped[list["Milestone"]] = relationship(
        "Milestone",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dto(self):
        from marketplace_kernel.domain.dtos import ProjectInfo

        return ProjectInfo(
            id=self.id,
            customer_id=self.customer_id,
            name=self.name,
            description=self.description,
            start_date=self.start_date,
            end_date=self.end_date,
            location=self.location,
            category=ServiceCategory(self.category),
            budget_min=self.budget_min,
            budget_max=self.budget_max,
            status=ProjectStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Project {self.name} [{self.status}]>"
