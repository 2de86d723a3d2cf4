import os

os.environ.setdefault("ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("LOG_DIR", "logs")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from redis import ConnectionError as RedisConnectionError  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker, Session  # noqa: E402

from main import app  # noqa: E402
from core.cache import KeyValueCache  # noqa: E402
from core.database import Base  # noqa: E402
from models.users import User, UserStatus  # noqa: E402
from services.session_manager import SessionManager  # noqa: E402
from utils.deps import get_cache, get_db  # noqa: E402
from utils.hashing import get_password_hash  # noqa: E402

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

TEST_MEMBER_ID = 1234567
TEST_PASSWORD = "TestPassword123!"


class FakeRedis:
    """
    In-memory stand-in for the subset of the redis client KeyValueCache uses.
    TTLs are recorded, not enforced. Set `down = True` to simulate an outage.
    """

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("redis is down")

    def incr(self, key):
        self._check()
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

    def expire(self, key, seconds):
        self._check()
        if key not in self.data:
            return False
        self.ttls[key] = seconds
        return True

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    def exists(self, *keys):
        self._check()
        return sum(1 for key in keys if key in self.data)

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:

    def __init__(self, client: FakeRedis):
        self.client = client
        self.calls = []

    def incr(self, key):
        self.calls.append(("incr", (key,)))
        return self

    def expire(self, key, seconds):
        self.calls.append(("expire", (key, seconds)))
        return self

    def execute(self):
        return [getattr(self.client, name)(*args) for name, args in self.calls]


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> KeyValueCache:
    return KeyValueCache(fake_redis)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def sessions(session, cache, clock) -> SessionManager:
    return SessionManager(session, cache, clock=clock)


def create_user(session, member_id=TEST_MEMBER_ID, email="member@example.com",
                password=TEST_PASSWORD, status=UserStatus.ACTIVE) -> User:
    user = User(
        member_id=member_id,
        email=email,
        hashed_password=get_password_hash(password),
        status=status,
        first_name="Test",
        last_name="Member",
        city="Cairo",
        phone_number="+201111111111"
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def active_user(session) -> User:
    return create_user(session)


@pytest.fixture
async def client(session: Session, cache: KeyValueCache):
    """
    Yields an HTTP client that talks to the app with the test database and
    the in-memory cache.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
