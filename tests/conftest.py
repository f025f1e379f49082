"""Pytest fixtures for testing."""
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keygate.main import app
from keygate.common.config import settings
from keygate.common.database import Database, get_db
from keygate.models.token import Token, TokenState
from keygate.usecase.token_usecase import TokenUsecase


BASE = settings.base_path

# Required chat first, then optional chats
TEST_SCOPES = ["-1001234567890", "-1009876543210"]


@pytest.fixture(scope="function")
async def test_db(tmp_path) -> AsyncGenerator[Database, None]:
    """Create a fresh SQLite database file with all tables."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'keygate_test.db'}")
    await db.init()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with db.session_maker() as session:
            yield session

    # Override dependency
    app.dependency_overrides[get_db] = override_get_db

    yield db

    # Cleanup
    app.dependency_overrides.clear()
    await db.close()


@pytest.fixture
async def client(test_db) -> AsyncGenerator[AsyncClient, None]:
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
async def session(test_db) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with test_db.session_maker() as session:
        yield session


@pytest.fixture
def issue_token(test_db):
    """Factory to issue keys through the usecase, each in its own session."""
    async def _issue(owner_identity: str = "1001", scopes: list[str] | None = None) -> str:
        async with test_db.session_maker() as session:
            issued = await TokenUsecase(session).issue(
                owner_identity, TEST_SCOPES if scopes is None else scopes
            )
        return issued.token

    return _issue


@pytest.fixture
def fetch_token(test_db):
    """Read a stored key from a fresh session (no stale identity map)."""
    async def _fetch(value: str) -> Token | None:
        async with test_db.session_maker() as session:
            result = await session.execute(select(Token).where(Token.value == value))
            return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def count_tokens(test_db):
    """Count rows in the tokens table."""
    async def _count() -> int:
        async with test_db.session_maker() as session:
            result = await session.execute(select(func.count()).select_from(Token))
            return result.scalar_one()

    return _count


@pytest.fixture
def reset_token(test_db):
    """Put a used key back to UNUSED (test-only, the application never does this)."""
    async def _reset(value: str) -> None:
        async with test_db.session_maker() as session:
            async with session.begin():
                await session.execute(
                    update(Token)
                    .where(Token.value == value)
                    .values(state=TokenState.UNUSED.value, consumed_by=None, consumed_at=None)
                )

    return _reset


FROZEN_NOW = datetime(2026, 10, 17, 9, 30, 0, 123000, tzinfo=timezone.utc)


class FrozenDatetime(datetime):
    """datetime whose now() always returns FROZEN_NOW."""

    @classmethod
    def now(cls, tz=None):
        return FROZEN_NOW if tz is None else FROZEN_NOW.astimezone(tz)


@pytest.fixture
def frozen_now(monkeypatch) -> datetime:
    """Freeze the redemption timestamp."""
    monkeypatch.setattr("keygate.repository.token_repository.datetime", FrozenDatetime)
    return FROZEN_NOW
