import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tradecup.db.base import Base
from tradecup.services.encryption_service import CredentialVault

TEST_ENCRYPTION_KEY = "test-encryption-key-for-unit-tests"


@pytest.fixture
async def session_factory():
    """In-memory SQLite schema shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def vault():
    return CredentialVault(TEST_ENCRYPTION_KEY)
