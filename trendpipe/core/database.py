"""Async SQLAlchemy engine and per-job sessions."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from trendpipe.config import Settings, settings

logger = logging.getLogger(__name__)


def build_engine(cfg: Settings) -> AsyncEngine:
    return create_async_engine(
        cfg.database_url,
        pool_size=cfg.database_pool_size,
        max_overflow=cfg.database_max_overflow,
        echo=cfg.database_echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine = build_engine(settings)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Yield one unit of work: commit when the block exits cleanly, roll back otherwise.

    Each pipeline job opens its own session so a failing job never leaves
    another job's transaction half applied.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.warning("Database session error, rolling back", extra={"error": repr(e)})
            try:
                await session.rollback()
            except Exception as rollback_error:
                logger.warning(
                    "Rollback failed, connection is likely gone",
                    extra={"error": repr(rollback_error)},
                )
            raise


async def recreate_schema() -> None:
    """Drop and recreate every pipeline table. Development use only."""
    from trendpipe.models import Base

    logger.warning("Recreating database schema", extra={"tables": sorted(Base.metadata.tables)})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the connection pool."""
    logger.info("Closing database connections")
    await engine.dispose()
