"""Integration-test fixtures.

These tests need the migrated PostgreSQL from DATABASE_URL and Redis from
REDIS_URL. They are skipped unless PM_INTEGRATION=1.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.pm_common.database import engine
from src.pm_gateway.auth.jwt_handler import create_access_token

ADMIN_ID = "it-admin"

_UPSERT_ADMIN_SQL = text("""
    INSERT INTO profiles (id, username, balance, is_admin)
    VALUES (:id, 'integration admin', 0, TRUE)
    ON CONFLICT (id) DO UPDATE SET is_admin = TRUE
""")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("PM_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set PM_INTEGRATION=1 with PostgreSQL and Redis running")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers() -> dict[str, str]:
    """Bearer header for a profile flagged is_admin directly in the database."""
    async with engine.begin() as conn:
        await conn.execute(_UPSERT_ADMIN_SQL, {"id": ADMIN_ID})
    return {"Authorization": f"Bearer {create_access_token(ADMIN_ID)}"}
