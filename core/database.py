"""
Database engine and session factory shared by the API, the scheduler and the
one-shot bot scripts
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Bot invocations are short-lived and may run in separate processes, so nothing is pooled"""
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # Work items and runs are read back after commit; never expire them
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


engine = build_engine()
async_session_maker = build_session_factory(engine)


async def dispose_engine():
    """Close the shared engine at the end of a script run"""
    await engine.dispose()
    logger.debug("Database engine disposed")
