from contextlib import asynccontextmanager

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from guardescrow.db import create_session_factory
from guardescrow.escrow import EscrowRuntime
from guardescrow.ledger import ReservePolicy
from guardescrow.models import Base

T0 = 1_700_000_000


class FixedClock:
    def __init__(self, now: int = T0):
        self.current = now

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def setnx(self, key, value):
        if key in self.store:
            return False
        self.store[key] = value
        return True

    async def expire(self, key, ttl):
        return True

    async def aclose(self):
        return None


def create_test_engine():
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


async def create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def runtime(clock):
    return EscrowRuntime(namespace="guardescrow-test", policy=ReservePolicy(3480, 2), clock=clock)


@pytest.fixture
def database():
    @asynccontextmanager
    async def open_database():
        engine = create_test_engine()
        await create_schema(engine)
        try:
            yield create_session_factory(engine)
        finally:
            await engine.dispose()

    return open_database
