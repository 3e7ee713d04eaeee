"""
Test configuration and fixtures.

Every test gets a fresh in-memory SQLite database (through aiosqlite), an
in-memory stand-in for the Redis client and a mailer that records instead of
sending. ``linkboard.main`` is imported lazily by the ``client`` fixture.
"""
import time

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from linkboard.auth import get_password_hash
from linkboard.db import Base, get_db
from linkboard.models import User
from linkboard.services.email_service import EmailService, get_mailer
from linkboard.utils.cache import CacheManager, get_cache

# Test database URL (in-memory SQLite)
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """The handful of redis.asyncio commands CacheManager issues, kept in a dict."""

    def __init__(self):
        self.store = {}
        self.offset = 0.0
        self.fail = False

    def _now(self) -> float:
        return time.monotonic() + self.offset

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    def _live(self, key):
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._now():
            del self.store[key]
            return None
        return value

    def advance(self, seconds: float):
        """Move the fake clock forward so TTLs can lapse."""
        self.offset += seconds

    def keys_with_prefix(self, prefix: str) -> list:
        return [key for key in list(self.store) if key.startswith(prefix) and self._live(key) is not None]

    def ttl(self, key: str) -> float:
        return self.store[key][1] - self._now()

    async def get(self, key):
        self._check()
        return self._live(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = (value, self._now() + ttl)
        return True

    async def delete(self, *keys):
        self._check()
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def getdel(self, key):
        self._check()
        value = self._live(key)
        self.store.pop(key, None)
        return value

    async def ping(self):
        self._check()
        return True


class RecordingMailer(EmailService):
    """Keeps every outgoing message instead of calling Resend."""

    def __init__(self):
        super().__init__(api_key="")
        self.sent = []
        self.succeed = True

    def send_email(self, to, subject, html_content):
        self.sent.append({"to": to, "subject": subject, "html": html_content})
        return self.succeed


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    """Create a fresh database for each test."""
    test_engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CacheManager(client=fake_redis)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
async def client(session_factory, cache, mailer):
    """HTTP client against the app with database, cache and mailer overridden."""
    from linkboard.main import app
    from linkboard.rate_limit import limiter

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_mailer] = lambda: mailer
    limiter.reset()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def gql(client):
    """Post a GraphQL document and return the decoded body."""
    async def run(query: str, **variables):
        response = await client.post("/graphql", json={"query": query, "variables": variables})
        assert response.status_code == 200, response.text
        return response.json()
    return run


@pytest.fixture
async def alice(db_session):
    """A user created straight in the database; no session is opened."""
    user = User(
        username="alice",
        email="alice@test.com",
        password=get_password_hash("rightpw"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def bob(db_session):
    user = User(
        username="bob",
        email="bob@test.com",
        password=get_password_hash("bobpw"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user
