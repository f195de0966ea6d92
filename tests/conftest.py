"""Pytest fixtures and configuration for blockwise tests."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from blockwise.database.database import Base
from blockwise.database.calendar_block_repository import CalendarBlockRepository
from blockwise.database.notification_repository import NotificationRepository
from blockwise.database.sent_reminder_repository import SentReminderLedger
from blockwise.models.calendar_block import CalendarBlock, BlockStatus, BlockPriority, DemandType, RecurrenceType


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine shared by every session of one test."""
    from blockwise.database import models  # noqa: F401

    # StaticPool keeps a single connection so all sessions see the same in-memory DB
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine (used by reminder ticks)."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session(session_factory, test_user_id):
    """Create a database session for testing.

    Also creates a test user in the database (required for foreign keys).
    """
    from blockwise.database.models import UserDB

    session = session_factory()
    now = datetime.utcnow()
    session.add(
        UserDB(
            id=test_user_id,
            email="test@example.com",
            name="Test User",
            created_at=now,
            updated_at=now,
        )
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def block_repository(db_session: Session):
    """Create a CalendarBlockRepository instance for testing."""
    return CalendarBlockRepository(db_session)


@pytest.fixture
def notification_repository(db_session: Session):
    return NotificationRepository(db_session)


@pytest.fixture
def reminder_ledger(db_session: Session):
    return SentReminderLedger(db_session)


@pytest.fixture
def sample_block_base(test_user_id):
    """Base block data for creating test blocks.

    Returns a dict with default block attributes that can be overridden.
    """
    now = datetime.utcnow()
    start = datetime(2024, 1, 15, 9, 0)
    return {
        "id": str(uuid.uuid4()),
        "user_id": test_user_id,
        "title": "Test Block",
        "description": "Test description",
        "color": "#6366f1",
        "start_time": start,
        "end_time": start + timedelta(hours=1),
        "demand_type": DemandType.FLEXIBLE,
        "priority": BlockPriority.MEDIUM,
        "status": BlockStatus.PENDING,
        "recurrence_type": RecurrenceType.NONE,
        "recurrence_rule": None,
        "recurrence_parent_id": None,
        "actual_start_time": None,
        "actual_end_time": None,
        "completed_at": None,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_block(sample_block_base):
    """Create a sample CalendarBlock object for testing."""
    return CalendarBlock(**sample_block_base)


@pytest.fixture
def make_block(sample_block_base):
    """Factory: make_block(start, minutes=60, **overrides) -> CalendarBlock with a fresh id."""

    def _make(start: datetime, minutes: int = 60, **overrides) -> CalendarBlock:
        values = {
            **sample_block_base,
            "id": str(uuid.uuid4()),
            "start_time": start,
            "end_time": start + timedelta(minutes=minutes),
        }
        values.update(overrides)
        return CalendarBlock(**values)

    return _make


@pytest.fixture
def test_user(test_user_id):
    """Create a test user object."""
    from blockwise.models.user import User
    now = datetime.utcnow()
    return User(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def test_client(db_session: Session, test_user):
    """Create a FastAPI test client with overridden database dependency and authentication."""
    from blockwise.api.app import app
    from blockwise.database.database import get_db
    from blockwise.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    def override_get_current_user():
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
