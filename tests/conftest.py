"""
Pytest fixtures for the marketplace test suite.

Provides:
- A fresh in-memory SQLite database per test (schema created from the ORM)
- A flush-only session for kernel service tests
- A MarketplaceWorkflow bound to the same database for transactional tests
- Deterministic clock, actor ids, provider and project factories
- Structured log capture

SQLite has no row locks; the per-project locking itself is exercised only
against PostgreSQL deployments.  Everything else (constraints, cascades,
rollback) behaves the same.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from marketplace_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from marketplace_kernel.domain.clock import DeterministicClock
from marketplace_kernel.domain.dtos import ProjectDraft
from marketplace_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from marketplace_kernel.models.project import ServiceCategory
from marketplace_kernel.services.project_service import ProjectService
from marketplace_kernel.services.provider_service import ProviderDirectoryService
from marketplace_services.workflow import MarketplaceWorkflow

TEST_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture marketplace_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.publish_project(...)
            logs = captured_logs()
            assert any(r["message"] == "project_published" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("marketplace_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """A fresh in-memory database with every marketplace table."""
    eng = init_engine_from_url(TEST_DATABASE_URL)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    """Session for kernel service tests.  Services only flush; nothing is committed."""
    sess = get_session()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


# =============================================================================
# Actors and clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def customer_id() -> UUID:
    """The customer who owns the projects under test."""
    return uuid4()


@pytest.fixture
def other_actor_id() -> UUID:
    """Someone who owns nothing."""
    return uuid4()


# =============================================================================
# Factories
# =============================================================================


def _make_draft(**overrides) -> ProjectDraft:
    fields = {
        "name": "Kitchen refresh",
        "description": "New cabinets and counters",
        "start_date": date(2024, 3, 1),
        "end_date": date(2024, 6, 30),
        "location": "Portland, OR",
        "category": ServiceCategory.KITCHEN_REMODELING,
        "budget_min": Decimal("5000"),
        "budget_max": Decimal("10000"),
    }
    fields.update(overrides)
    return ProjectDraft(**fields)


@pytest.fixture
def make_draft():
    """Build a ProjectDraft; keyword arguments override the kitchen defaults."""
    return _make_draft


@pytest.fixture
def create_provider(session, deterministic_clock):
    """Register a provider through ProviderDirectoryService."""
    service = ProviderDirectoryService(session, deterministic_clock)

    def _create(
        categories=(ServiceCategory.KITCHEN_REMODELING,),
        business_name="Acme Builders",
        available=True,
        average_rating=Decimal("4.50"),
        total_reviews=12,
    ) -> UUID:
        provider_id = uuid4()
        service.register(
            provider_id,
            business_name,
            categories=categories,
            average_rating=average_rating,
            total_reviews=total_reviews,
            available=available,
        )
        return provider_id

    return _create


@pytest.fixture
def create_project(session, deterministic_clock, customer_id):
    """Create a draft project owned by ``customer_id``."""
    service = ProjectService(session, deterministic_clock)

    def _create(**overrides):
        return service.create(customer_id, _make_draft(**overrides), customer_id)

    return _create


@pytest.fixture
def workflow(session_factory, deterministic_clock) -> MarketplaceWorkflow:
    return MarketplaceWorkflow(session_factory, clock=deterministic_clock)


@pytest.fixture
def register_provider(workflow):
    """Register a provider through the workflow (committed)."""

    def _register(
        categories=(ServiceCategory.KITCHEN_REMODELING,),
        business_name="Acme Builders",
        available=True,
        average_rating=Decimal("4.50"),
        total_reviews=12,
    ) -> UUID:
        provider_id = uuid4()
        workflow.register_provider(
            provider_id,
            business_name,
            categories=categories,
            average_rating=average_rating,
            total_reviews=total_reviews,
            available=available,
        )
        return provider_id

    return _register


@pytest.fixture
def published_project(workflow, customer_id, register_provider):
    """A published kitchen project with two invited providers.

    Returns (project, [provider_a, provider_b]).
    """
    providers = [
        register_provider(business_name="Alpha Kitchens"),
        register_provider(business_name="Beta Remodel"),
    ]
    project = workflow.create_project(customer_id, _make_draft(), actor_id=customer_id)
    workflow.publish_project(project.id, actor_id=customer_id)
    return workflow.get_project(project.id), providers
