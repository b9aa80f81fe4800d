"""
Shared pytest configuration for Scoutlete tests.

Runs against TEST_DATABASE_URL when it is set (e.g. a Postgres database for
CI) and falls back to a local SQLite file through aiosqlite otherwise.

SAFETY: This module REFUSES to run against any database whose name does not
contain the substring "test". Tables are emptied before each test and
dropped afterwards, so pointing it at a real database would destroy data.
"""

import os

# Must be set before the app is imported so rate limiting is disabled
os.environ.setdefault("ENV", "test")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

DEFAULT_TEST_DATABASE_URL = "sqlite+aiosqlite:///./scoutlete_test.db"


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if the resolved URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)

    # Database name is the last path segment (file name for SQLite)
    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n\n"
            f"  Fix: set TEST_DATABASE_URL to a test database, e.g.:\n"
            f"    export TEST_DATABASE_URL=postgresql+asyncpg://.../scoutlete_test\n"
            f"{'=' * 70}"
        )

    return url


TEST_DATABASE_URL = _resolve_test_database_url()

# The app's own engine should never point at a real database during tests
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

from scoutlete.database.db import Base  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with all tables."""
    # NullPool avoids connection reuse across event loops
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        from scoutlete.database import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)

    from scoutlete.database import db

    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """
    Create a test database session.
    Every table is emptied before the test so each one starts clean.
    """
    async with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())

    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
