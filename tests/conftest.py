"""
Pytest configuration and fixtures for testing.

Tests run against SQLite (aiosqlite) unless TEST_DATABASE_URL points at a
PostgreSQL database prepared with ``create_test_db.py``.
"""
import os
import tempfile

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'memberhub_test.db')}",
)
# Settings are read at import time, so the environment is prepared first
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import fnmatch
import time
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from memberhub.main import app
from memberhub.db.session import Base, get_session, utcnow
from memberhub.core.security import create_access_token, hash_password
from memberhub.cache.redis_client import cache
from memberhub.db.models import (
    User, RoleEnum, AccountStatus, AccountApproval, Event, EventAgeGroupPrice, AgeGroup,
)


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


class InMemoryRedis:
    """The subset of the redis client RedisCache talks to, kept in a dict."""

    def __init__(self):
        self.store = {}

    def _live(self, key):
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= time.monotonic():
            del self.store[key]
            return None
        return value

    async def get(self, key):
        return self._live(key)

    async def setex(self, key, seconds, value):
        self.store[key] = (value, time.monotonic() + seconds)
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def exists(self, key):
        return 1 if self._live(key) is not None else 0

    async def scan_iter(self, match="*", count=None):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        self.store.clear()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Route the shared cache to an in-memory store for every test."""
    fake = InMemoryRedis()
    monkeypatch.setattr(cache, "_get_client", lambda: fake)
    return fake


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh tables and a session for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session):
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with each request on its own test session."""
    async def override_get_session():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(session, email, role=RoleEnum.member, status=AccountStatus.approved, first_name="Test", last_name="User"):
    user = User(
        email=email,
        hashed_password=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role,
        status=status,
    )
    session.add(user)
    await session.flush()
    session.add(AccountApproval(
        user_id=user.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        status=status,
        unread_admin=0,
        unread_user=0,
    ))
    await session.commit()
    return user


@pytest_asyncio.fixture
async def test_member(db_session: AsyncSession) -> User:
    """An approved member."""
    return await _make_user(db_session, "member@example.com", first_name="Mary", last_name="Member")


@pytest_asyncio.fixture
async def other_member(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", first_name="Otto", last_name="Other")


@pytest_asyncio.fixture
async def pending_member(db_session: AsyncSession) -> User:
    """A registered member still waiting for review."""
    return await _make_user(
        db_session, "pending@example.com", status=AccountStatus.pending, first_name="Pat", last_name="Pending"
    )


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", role=RoleEnum.admin, first_name="Ada", last_name="Admin")


def _token(user: User) -> str:
    return create_access_token({"sub": str(user.id), "user_id": str(user.id), "role": user.role.value})


@pytest.fixture
def member_token(test_member: User) -> str:
    return _token(test_member)


@pytest.fixture
def other_token(other_member: User) -> str:
    return _token(other_member)


@pytest.fixture
def pending_token(pending_member: User) -> str:
    return _token(pending_member)


@pytest.fixture
def admin_token(test_admin: User) -> str:
    return _token(test_admin)


async def _make_event(session, creator, **fields) -> Event:
    start = utcnow() + timedelta(days=7)
    values = dict(
        title="Community Picnic",
        description="Bring a blanket",
        location="Riverside Park",
        start_at=start,
        end_at=start + timedelta(hours=3),
        capacity=0,
        waitlist_enabled=False,
        attending_count=0,
        created_by=creator.id,
    )
    values.update(fields)
    event = Event(age_group_prices=[], **values)
    session.add(event)
    await session.commit()
    return event


@pytest.fixture
def make_event(db_session: AsyncSession, test_admin: User):
    """Factory for events created by the admin; keyword arguments override the defaults."""
    async def factory(**fields) -> Event:
        return await _make_event(db_session, test_admin, **fields)
    return factory


@pytest_asyncio.fixture
async def open_event(db_session: AsyncSession, test_admin: User) -> Event:
    """An event without a capacity limit."""
    return await _make_event(db_session, test_admin)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, test_admin: User) -> Event:
    """One seat for primaries, with a waitlist."""
    return await _make_event(db_session, test_admin, title="Board Game Night", capacity=1, waitlist_enabled=True)


@pytest_asyncio.fixture
async def paid_event(db_session: AsyncSession, test_admin: User) -> Event:
    """Adults 2000 cents, children 1000, infants free; refunds with a 10% fee."""
    event = await _make_event(
        db_session, test_admin,
        title="Gala Dinner",
        is_free=False,
        requires_payment=True,
        adult_price=2000,
        refund_allowed=True,
        refund_fee_percentage=10,
        refund_deadline=utcnow() + timedelta(days=5),
    )
    for group, price in ((AgeGroup.adult, 2000), (AgeGroup.child, 1000), (AgeGroup.infant, 0)):
        db_session.add(EventAgeGroupPrice(event_id=event.id, age_group=group, price=price))
    await db_session.commit()
    await db_session.refresh(event, attribute_names=["age_group_prices"])
    return event


@pytest.fixture(autouse=True)
def mock_password_hashing(monkeypatch):
    """
    Swap bcrypt for a cheap deterministic hash; tests that care about real
    bcrypt behaviour account for the mock.
    """
    class MockPasswordContext:
        def hash(self, password: str) -> str:
            return f"$2b$12$mockedhash{password}"

        def verify(self, plain: str, hashed: str) -> bool:
            return hashed == f"$2b$12$mockedhash{plain}"

    from memberhub.core import security
    monkeypatch.setattr(security, "pwd_context", MockPasswordContext())


@pytest.fixture(autouse=True)
def disable_rate_limiting(monkeypatch):
    """Disable slowapi limits for all tests."""
    import memberhub.api.v1.routes.auth as auth_routes
    monkeypatch.setattr(auth_routes.limiter, "enabled", False)
    from memberhub.main import limiter
    monkeypatch.setattr(limiter, "enabled", False)


@pytest.fixture(autouse=True)
def published_events(monkeypatch):
    """Capture broker events instead of talking to RabbitMQ."""
    published = []

    async def mock_publish(routing_key, payload):
        published.append((routing_key, payload))
        return True

    from memberhub.events import publisher
    monkeypatch.setattr(publisher, "publish_event", mock_publish)
    return published
