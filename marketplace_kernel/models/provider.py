"""
Module: marketplace_kernel.models.provider
Responsibility: ORM persistence for service providers: the public profile
    shown next to each proposal, and the service categories a provider
    declares.  Declared categories are the sole input to provider matching.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A provider declares a category at most once (uq_provider_service).
    - The profile id IS the provider id (one profile per provider).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TrackedBase, UUIDString


class ProviderProfile(TrackedBase):
    """
    Public profile of a service provider.

    Guarantees:
        - id equals the provider's identity id.
        - average_rating / total_reviews are what proposals are enriched with.
        - available=False hides the provider from matching.
    """

    __tablename__ = "provider_profiles"

    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    business_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    average_rating: Mapped[Decimal] = mapped_column(
        Numeric(3, 2),
        nullable=False,
        default=Decimal("0"),
    )

    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    services: Mapped[list["ProviderService"]] = relationship(
        "ProviderService",
        back_populates="provider",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dto(self):
        from marketplace_kernel.domain.dtos import ProviderInfo
        from marketplace_kernel.models.project import ServiceCategory

        return ProviderInfo(
            id=self.id,
            business_name=self.business_name,
            average_rating=self.average_rating,
            total_reviews=self.total_reviews,
            available=self.available,
            categories=tuple(
                sorted((ServiceCategory(s.category) for s in self.services), key=lambda c: c.value)
            ),
        )

    def to_summary(self):
        from marketplace_kernel.domain.dtos import ProviderSummary

        return ProviderSummary(
            provider_id=self.id,
            business_name=self.business_name,
            average_rating=self.average_rating,
            total_reviews=self.total_reviews,
        )

    def __repr__(self) -> str:
        return f"<ProviderProfile {self.business_name or self.id}>"


class ProviderService(TrackedBase):
    """A service category offered by a provider, with its rate band."""

    __tablename__ = "provider_services"

    __table_args__ = (
        UniqueConstraint("provider_id", "category", name="uq_provider_service"),
        Index("idx_provider_service_category", "category"),
    )

    provider_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("provider_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(String(50), nullable=False)

    # hourly, fixed, per_sqft, ...
    rate_type: Mapped[str] = mapped_column(String(20), nullable=False, default="fixed")

    rate_range_min: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    rate_range_max: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    provider: Mapped[ProviderProfile] = relationship(
        "ProviderProfile",
        back_populates="services",
    )

    def __repr__(self) -> str:
        return f"<ProviderService {self.provider_id}: {self.category}>"
