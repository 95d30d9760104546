"""
Database session management with async SQLAlchemy 2.0.
One engine per process; each request gets its own session and services
commit their own unit of work on it.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from typing import AsyncGenerator, Optional

from trainerhub.core.config import settings
from trainerhub.core.logging import get_logger

logger = get_logger(__name__)

engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine.
    Pool sizing applies to server databases; SQLite uses the dialect's default pool.
    """
    global engine

    url = make_url(database_url or settings.DATABASE_URL)
    engine_kwargs = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        engine_kwargs.update(pool_size=settings.DB_POOL_SIZE, max_overflow=settings.DB_MAX_OVERFLOW)

    engine = create_async_engine(url, **engine_kwargs)

    logger.info(
        "Database engine created",
        extra={
            "backend": url.get_backend_name(),
            "pool_size": engine_kwargs.get("pool_size"),
            "max_overflow": engine_kwargs.get("max_overflow"),
        },
    )
    return engine


def create_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Sessionmaker bound to the process engine. Instances stay readable after commit."""
    global async_session_maker

    if engine is None:
        create_engine()

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return async_session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session.
    Anything a service left pending is committed here; an error rolls the session back.
    """
    if async_session_maker is None:
        create_sessionmaker()

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize database connection."""
    if async_session_maker is None:
        create_sessionmaker()
    logger.info("Database initialized")


async def close_db() -> None:
    """Close database connections."""
    global engine, async_session_maker

    if engine is not None:
        await engine.dispose()
        logger.info("Database connections closed")
    engine = None
    async_session_maker = None
