"""
Service layer for provider profiles and declared service categories.

Providers are matched to projects purely on the categories they declare
here.  Replacing a provider's categories follows the profile form of the
web app: existing rows are deleted and the new set inserted.

Returns ProviderInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from marketplace_kernel.domain.dtos import ProviderInfo
from marketplace_kernel.domain.validation import require_category
from marketplace_kernel.exceptions import DuplicateProviderError, ProviderNotFoundError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.project import ServiceCategory
from marketplace_kernel.models.provider import ProviderProfile, ProviderService
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.provider")


class ProviderDirectoryService(BaseService[ProviderProfile]):
    """
    Register providers and maintain the categories they offer.

    All public methods return ProviderInfo DTOs, not ORM rows.
    """

    def _get_by_id(self, provider_id: UUID) -> ProviderProfile:
        """Get provider by ID, raising if not found."""
        provider = self.session.get(ProviderProfile, provider_id)
        if provider is None:
            raise ProviderNotFoundError(str(provider_id))
        return provider

    def get(self, provider_id: UUID) -> ProviderInfo:
        """
        Get a provider by ID.

        Raises:
            ProviderNotFoundError: If the provider has no profile.
        """
        return self._get_by_id(provider_id).to_dto()

    def exists(self, provider_id: UUID) -> bool:
        return self.session.get(ProviderProfile, provider_id) is not None

    def register(
        self,
        provider_id: UUID,
        business_name: str | None,
        categories: Iterable[ServiceCategory | str] = (),
        business_description: str | None = None,
        average_rating: Decimal = Decimal("0"),
        total_reviews: int = 0,
        available: bool = True,
    ) -> ProviderInfo:
        """
        Create a provider profile and its declared categories.

        Args:
            provider_id: Identity id of the provider (becomes the profile id).
            business_name: Public business name.
            categories: Service categories offered.
            business_description: Free-text description.
            average_rating: Current rating shown on proposals.
            total_reviews: Number of reviews behind the rating.
            available: Whether the provider takes new work.

        Returns:
            Created ProviderInfo DTO.

        Raises:
            DuplicateProviderError: A profile with this id already exists.
        """
        if self.exists(provider_id):
            raise DuplicateProviderError(str(provider_id))
        provider = ProviderProfile(
            id=provider_id,
            business_name=business_name,
            business_description=business_description,
            average_rating=average_rating,
            total_reviews=total_reviews,
            available=available,
        )
        self._stamp_new(provider)
        self.session.add(provider)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateProviderError(str(provider_id)) from exc
        self._insert_services(provider, categories)
        logger.info(
            "provider_registered",
            extra={
                "provider_id": str(provider_id),
                "categories": [c.category for c in provider.services],
            },
        )
        return provider.to_dto()

    def set_categories(
        self,
        provider_id: UUID,
        categories: Iterable[ServiceCategory | str],
    ) -> ProviderInfo:
        """Replace the provider's declared categories with ``categories``."""
        provider = self._get_by_id(provider_id)
        self.session.execute(
            delete(ProviderService).where(ProviderService.provider_id == provider_id)
        )
        self.session.expire(provider, ["services"])
        self._insert_services(provider, categories)
        self._touch(provider)
        self.session.flush()
        return provider.to_dto()

    def set_availability(self, provider_id: UUID, available: bool) -> ProviderInfo:
        provider = self._get_by_id(provider_id)
        provider.available = available
        self._touch(provider)
        self.session.flush()
        return provider.to_dto()

    def categories_of(self, provider_id: UUID) -> frozenset[ServiceCategory]:
        stmt = select(ProviderService.category).where(
            ProviderService.provider_id == provider_id
        )
        return frozenset(ServiceCategory(c) for c in self.session.execute(stmt).scalars())

    def _insert_services(
        self,
        provider: ProviderProfile,
        categories: Iterable[ServiceCategory | str],
    ) -> None:
        seen: set[ServiceCategory] = set()
        for raw in categories:
            category = require_category(raw)
            if category in seen:
                continue
            seen.add(category)
            service = ProviderService(provider_id=provider.id, category=category.value)
            self._stamp_new(service)
            self.session.add(service)
        self.session.flush()
        self.session.refresh(provider, ["services"])
