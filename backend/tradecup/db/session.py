"""
Database session management.

expire_on_commit=False keeps loaded rows usable after each single-row commit.
"""
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tradecup.core.config import settings


def build_engine(database_url: str, environment: str = "development") -> AsyncEngine:
    """Create the async engine; Celery workers get NullPool."""
    kwargs = {"echo": False, "pool_pre_ping": True}
    if environment == "worker" or database_url.startswith("sqlite"):
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_session_factory() -> async_sessionmaker:
    """Lazily build the process-wide session factory from settings."""
    global _engine, _session_factory
    if _session_factory is None:
        _engine = build_engine(settings.DATABASE_URL, settings.ENVIRONMENT)
        _session_factory = build_session_factory(_engine)
    return _session_factory


async def dispose_engine():
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints.
    Yields async database session and ensures cleanup.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()
