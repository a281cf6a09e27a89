"""
Pytest configuration and fixtures for the calendar backend.

Provides shared fixtures for:
- In-memory database sessions
- Directory users and API tokens
- Event service and engine components
- A FastAPI test client bound to the test database
"""

import os

# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from portal_calendar.core.limiter import limiter
from portal_calendar.core.security import create_access_token
from portal_calendar.db import get_session
from portal_calendar.main import app
from portal_calendar.models import Event, User
from portal_calendar.schemas import EventCreate, RecurrenceRule
from portal_calendar.services.events import EventService
from portal_calendar.services.materializer import InstanceMaterializer
from portal_calendar.services.repository import SqlEventRepository
from portal_calendar.services.series import SeriesEditor, SeriesPruner


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create a test database session."""
    with Session(test_db_engine) as session:
        yield session


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def repository(test_db_session):
    return SqlEventRepository(test_db_session)


@pytest.fixture
def materializer(repository):
    return InstanceMaterializer(repository)


@pytest.fixture
def editor(repository, materializer):
    return SeriesEditor(repository, materializer)


@pytest.fixture
def pruner(repository):
    return SeriesPruner(repository)


@pytest.fixture
def event_service(test_db_session):
    return EventService(test_db_session)


# ============================================================================
# Sample Data Factories
# ============================================================================

@pytest.fixture
def sample_user(test_db_session):
    """Factory for directory users."""

    def _create(email="owner@example.com", full_name="Owner", is_active=True):
        user = User(email=email, full_name=full_name, is_active=is_active)
        test_db_session.add(user)
        test_db_session.commit()
        test_db_session.refresh(user)
        return user

    return _create


@pytest.fixture
def owner(sample_user):
    return sample_user()


@pytest.fixture
def sample_template(repository, owner):
    """Factory for stored (not yet expanded) recurring templates."""

    def _create(
        rule=None,
        starts_at=datetime(2025, 1, 1, 9, 0),
        ends_at=datetime(2025, 1, 1, 10, 0),
        title="Standup",
        invited_users=None,
    ):
        if rule is None:
            rule = RecurrenceRule(pattern="daily", end_after=5)
        template = Event(
            title=title,
            starts_at=starts_at,
            ends_at=ends_at,
            owner_id=owner.id,
            owner_email=owner.email,
            invited_users=invited_users or [],
            recurrence=rule.to_storage(),
        )
        return repository.add(template)

    return _create


@pytest.fixture
def sample_series(event_service, owner):
    """Factory creating a recurring event through the service."""

    def _create(rule=None, starts_at=datetime(2025, 1, 1, 9, 0), title="Standup", **extra):
        payload = EventCreate(
            title=title,
            starts_at=starts_at,
            ends_at=starts_at.replace(hour=starts_at.hour + 1),
            recurrence=rule or RecurrenceRule(pattern="daily", end_after=5),
            **extra,
        )
        return event_service.create_event(payload, owner)

    return _create


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def client(test_db_engine):
    """TestClient whose requests use the in-memory database."""

    def _get_session():
        with Session(test_db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.id, user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers
