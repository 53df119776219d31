"""
Database session management with SQLAlchemy async
"""

from typing import Optional
from sqlalchemy import Table
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import NullPool
from core.config import settings
from models.base import Base
from models.checkpoint import IngestCheckpoint  # noqa: F401 (registers the table on Base.metadata)
from models.follower import RecordShape, build_followers_table
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the configured database"""
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=echo,
        poolclass=NullPool,
        future=True
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create a session factory bound to `engine`"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def init_database(
    engine: AsyncEngine,
    shape: RecordShape,
    table_name: Optional[str] = None
) -> Table:
    """
    Create the followers table for `shape` plus the checkpoint table.

    Returns:
        The followers Table the loader should write to
    """
    followers = build_followers_table(shape, table_name or settings.FOLLOWERS_TABLE)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(followers.metadata.create_all)

    logger.info(f"Tables ready: {followers.name} ({shape.value}), ingest_checkpoints")
    return followers
