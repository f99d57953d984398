"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from models.base import Base
from models.question import Question
from datetime import datetime, timedelta
from typing import AsyncGenerator
import itertools

VALID_DIAGRAM = "flowchart TD\n  A[Client] --> B[Load Balancer]\n  B --> C[Cache]"
LONG_EXPLANATION = (
    "A cache keeps recently used data close to the consumer so that repeated reads "
    "avoid the slower backing store. Eviction policies such as LRU decide what to drop."
)

_ids = itertools.count(1)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite engine so several sessions can share one database"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'enrichment_test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


def build_question(**overrides) -> Question:
    """A fully enriched question; override fields to create gaps"""
    n = next(_ids)
    created_at = overrides.pop("created_at", datetime(2024, 1, 15, 10, 0, 0) + timedelta(minutes=n))
    values = dict(
        id=f"q-test{n:05d}",
        question=f"How would you design a cache for service number {n}?",
        answer="Put an LRU cache in front of the database and invalidate on write.",
        explanation=LONG_EXPLANATION,
        difficulty="intermediate",
        tags=["caching", "redis"],
        channel="system-design",
        sub_channel="caching",
        diagram=VALID_DIAGRAM,
        eli5="It is like keeping your favourite toys on the shelf next to your bed.",
        tldr="Cache hot reads close to the caller.",
        companies=["Google", "Stripe"],
        videos=None,
        videos_checked_at=None,
        last_updated=created_at,
        created_at=created_at,
    )
    values.update(overrides)
    return Question(**values)


@pytest.fixture
def make_question(db_session):
    """Persist a question built by build_question"""
    async def _make(**overrides) -> Question:
        question = build_question(**overrides)
        db_session.add(question)
        await db_session.commit()
        return question
    return _make


class FakeCaller:
    """
    Stand-in for RateLimitedCaller.

    `responses` maps a request's task label to either the text to return or
    an exception to raise; `default` is used for unknown labels.
    """

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default
        self.requests = []

    async def call(self, request):
        self.requests.append(request)
        task = getattr(request, "task", None)
        outcome = self.responses.get(task, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            return outcome(request)
        return outcome


@pytest.fixture
def fake_caller():
    return FakeCaller
