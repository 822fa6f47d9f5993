"""
Shared fixtures: a throwaway SQLite database per test, stores and services.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("GUEST_CLEANUP_INTERVAL_SECONDS", "0")

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auth.jwt import TokenIssuer
from auth.service import AuthService
from database.accounts import AccountStore
from database.models import Base
from database.tasks import TaskRepository

TEST_SECRET = "test-secret"
TEST_ROUNDS = 4


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # SQLite savepoints need explicit transaction control (SQLAlchemy docs recipe).
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens(clock):
    return TokenIssuer(TEST_SECRET, 48 * 3600, clock=clock)


@pytest.fixture
def accounts(session):
    return AccountStore(session)


@pytest.fixture
def auth_service(accounts, tokens):
    return AuthService(accounts, tokens, bcrypt_rounds=TEST_ROUNDS, guest_ttl_hours=24)


@pytest.fixture
def task_repo(session):
    return TaskRepository(session)
