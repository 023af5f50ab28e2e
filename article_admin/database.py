"""Async database engine and session handling."""

import asyncio
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=15,  # raises TimeoutError, mapped to 503 in main
    pool_pre_ping=True,
    pool_recycle=3600,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for ORM models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Handlers commit their own writes; anything left pending is committed when
    the request finishes, and an exception rolls the whole request back.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def warmup_connection_pool(connections: Optional[int] = None) -> None:
    """
    Open pool connections ahead of the first request.

    Failures are logged and ignored so the API still starts when the
    database is briefly unavailable.

    Args:
        connections: How many connections to open. Defaults to DB_POOL_SIZE.
    """
    count = connections or settings.db_pool_size

    async def ping(i: int) -> bool:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Connection %d warmup failed: %s", i + 1, e)
            return False

    results = await asyncio.gather(*(ping(i) for i in range(count)))
    logger.info("Connection pool warmup: %d/%d connections ready", sum(results), count)


async def dispose_engine() -> None:
    """Close every pooled connection."""
    await engine.dispose()
