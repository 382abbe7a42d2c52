"""
Integration Test Fixtures

Fixtures for tests that need a running PostgreSQL. Integration tests are
deselected by default; run them with ``pytest -m integration``.

IMPORTANT: Integration tests use the TEST database only (via
POSTGRES_TEST_* env vars). A safety check runs at session start and fails
fast if production credentials are detected.
"""

import os
from pathlib import Path
from typing import AsyncGenerator
from urllib.parse import quote_plus

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

_project_root = Path(__file__).parent.parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


pytestmark = pytest.mark.integration


# =============================================================================
# Safety Check
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def verify_test_database():
    """
    Fail fast if the configured database looks like production.

    Set ALLOW_PROD_DB_TESTS=1 to skip this check (local development only).
    """
    if os.environ.get("ALLOW_PROD_DB_TESTS", "").lower() in ("1", "true", "yes"):
        return

    config = get_test_db_config()
    for indicator in ("studynotes", "prod", "production"):
        assert indicator not in config["db"].lower(), (
            f"SAFETY CHECK FAILED: Database name '{config['db']}' looks like production! "
            "Set POSTGRES_TEST_DB or ALLOW_PROD_DB_TESTS=1."
        )


# =============================================================================
# Database Configuration
# =============================================================================


def get_test_db_config() -> dict:
    """Priority: POSTGRES_TEST_* > POSTGRES_* > defaults."""
    return {
        "host": os.environ.get("POSTGRES_HOST", "localhost"),
        "port": os.environ.get("POSTGRES_PORT", "5432"),
        "user": os.environ.get("POSTGRES_TEST_USER", os.environ.get("POSTGRES_USER", "testuser")),
        "password": os.environ.get(
            "POSTGRES_TEST_PASSWORD", os.environ.get("POSTGRES_PASSWORD", "testpass")
        ),
        "db": os.environ.get("POSTGRES_TEST_DB", os.environ.get("POSTGRES_DB", "testdb")),
    }


def get_test_db_url(async_driver: bool = True) -> str:
    config = get_test_db_config()
    encoded_password = quote_plus(config["password"])
    driver = "postgresql+asyncpg" if async_driver else "postgresql+psycopg2"
    return f"{driver}://{config['user']}:{encoded_password}@{config['host']}:{config['port']}/{config['db']}"


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Recreate all tables once per session with a synchronous engine."""
    from studynotes.db.base import Base

    sync_engine = create_engine(get_test_db_url(async_driver=False))
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)

    yield

    sync_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session on freshly truncated tables.

    Creates a fresh engine per test to stay on the test's event loop.
    """
    test_engine = create_async_engine(get_test_db_url(async_driver=True), echo=False)
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_maker() as session:
        await session.execute(
            text("TRUNCATE ai_review_sessions, questions, notes, folders CASCADE")
        )
        await session.commit()
        try:
            yield session
        finally:
            await session.rollback()

    await test_engine.dispose()
