"""
Pytest configuration and fixtures for testing.

Environment variables are set before anything from ``eventhub`` is imported, because
settings, the engine and the rate limiter are built at import time.
"""
import fnmatch
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./eventhub_test.db")
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from decimal import Decimal
from datetime import timedelta
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from eventhub.main import app
from eventhub.db.session import Base, get_session
from eventhub.core.security import create_access_token, token_claims
from eventhub.db.models import (
    UserProfile, Role, ApprovalStatus, Event, EventStatus, TicketType,
)
from eventhub.db.models.base import utcnow
from eventhub.cache.redis_client import cache


# Default is a throwaway SQLite file; point at PostgreSQL with create_test_db.py
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", os.environ["DATABASE_URL"])

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,  # Disable connection pooling for tests
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

PASSWORD = "Test123!@#"


def is_postgres() -> bool:
    return TEST_DATABASE_URL.startswith("postgresql")


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fresh schema and session for each test.

    Fixtures build their rows through this session; the API and services get sessions
    of their own, like separate requests would.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def service_session(db_session) -> AsyncGenerator[AsyncSession, None]:
    """Independent session for calling services directly."""
    async with TestSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the API; every request gets its own test database session.
    """
    async def override_get_session():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# --- profiles --------------------------------------------------------------

@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Factory for profiles: ``await make_user(Role.organizer, ApprovalStatus.approved)``."""
    counter = {"n": 0}

    async def _make(role: Role = Role.attendee, approval: ApprovalStatus = ApprovalStatus.approved, **fields):
        counter["n"] += 1
        user = UserProfile(
            email=fields.pop("email", f"{role.value}{counter['n']}@example.com"),
            hashed_password=fields.pop("hashed_password", f"$2b$12$mockedhash{PASSWORD}"),
            first_name=fields.pop("first_name", role.value.title()),
            last_name=fields.pop("last_name", str(counter["n"])),
            role=role,
            approval_status=approval,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def attendee(make_user) -> UserProfile:
    return await make_user(Role.attendee)


@pytest_asyncio.fixture
async def other_attendee(make_user) -> UserProfile:
    return await make_user(Role.attendee)


@pytest_asyncio.fixture
async def organizer(make_user) -> UserProfile:
    """An approved organizer."""
    return await make_user(Role.organizer, ApprovalStatus.approved)


@pytest_asyncio.fixture
async def other_organizer(make_user) -> UserProfile:
    return await make_user(Role.organizer, ApprovalStatus.approved)


@pytest_asyncio.fixture
async def pending_organizer(make_user) -> UserProfile:
    return await make_user(Role.organizer, ApprovalStatus.pending_approval)


@pytest_asyncio.fixture
async def admin(make_user) -> UserProfile:
    return await make_user(Role.admin)


@pytest_asyncio.fixture
async def super_admin(make_user) -> UserProfile:
    return await make_user(Role.super_admin)


def auth_header(user: UserProfile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(token_claims(user))}"}


@pytest.fixture
def attendee_headers(attendee) -> dict:
    return auth_header(attendee)


@pytest.fixture
def organizer_headers(organizer) -> dict:
    return auth_header(organizer)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_header(admin)


# --- events and tickets ----------------------------------------------------

@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession):
    """Factory for events in any (approval_status, status) combination."""
    counter = {"n": 0}

    async def _make(
        owner: UserProfile,
        approval: ApprovalStatus = ApprovalStatus.approved,
        status: EventStatus = EventStatus.registration_open,
        **fields,
    ) -> Event:
        counter["n"] += 1
        start = utcnow() + timedelta(days=30)
        event = Event(
            name=fields.pop("name", f"Event {counter['n']}"),
            slug=fields.pop("slug", f"event-{counter['n']}-{owner.id.hex[:6]}"),
            description=fields.pop("description", f"Description for event {counter['n']}"),
            start_date=fields.pop("start_date", start),
            end_date=fields.pop("end_date", start + timedelta(hours=8)),
            approval_status=approval,
            status=status,
            created_by=owner.id,
            **fields,
        )
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        await cache.delete_pattern("events:*")
        return event

    return _make


@pytest_asyncio.fixture
async def make_ticket_type(db_session: AsyncSession):
    async def _make(event: Event, quantity_available=10, price=Decimal("25.00"), is_active=True, **fields) -> TicketType:
        ticket_type = TicketType(
            event_id=event.id,
            name=fields.pop("name", "General Admission"),
            price=price,
            quantity_available=quantity_available,
            quantity_sold=fields.pop("quantity_sold", 0),
            is_active=is_active,
            **fields,
        )
        db_session.add(ticket_type)
        await db_session.commit()
        await db_session.refresh(ticket_type)
        return ticket_type

    return _make


@pytest_asyncio.fixture
async def open_event(make_event, organizer) -> Event:
    """Approved event open for registration, owned by ``organizer``."""
    return await make_event(organizer)


# --- outside services ------------------------------------------------------

class FakeRedis:
    """In-memory stand-in for the handful of redis commands the cache uses."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, expire, value):
        self.store[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
        return removed

    def scan_iter(self, match="*"):
        return [key for key in list(self.store) if fnmatch.fnmatch(key, match)]

    def exists(self, key):
        return int(key in self.store)

    def close(self):
        pass


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    """Redis is not needed to run the suite."""
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_client", fake)
    return fake


@pytest.fixture(autouse=True)
def mock_password_hashing(monkeypatch):
    """
    Mock bcrypt password hashing for environments where bcrypt cannot be installed.
    """
    class MockPasswordContext:
        def hash(self, password: str) -> str:
            return f"$2b$12$mockedhash{password}"

        def verify(self, plain: str, hashed: str) -> bool:
            return hashed == f"$2b$12$mockedhash{plain}"

    from eventhub.core import security
    monkeypatch.setattr(security, "pwd_context", MockPasswordContext())


@pytest.fixture(autouse=True)
def published(monkeypatch) -> list:
    """Capture notification signals instead of talking to RabbitMQ."""
    signals = []

    async def mock_publish(routing_key, payload):
        signals.append((routing_key, payload))
        return True

    from eventhub.events import publisher
    monkeypatch.setattr(publisher, "publish_event", mock_publish)
    return signals


def routing_keys(signals) -> list:
    return [key for key, _ in signals]
