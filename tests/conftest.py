"""
Global pytest configuration and fixtures for the CRM Access test suite.
"""

import os

# Set test environment variables before settings are loaded
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from typing import Any, AsyncGenerator, Callable, Dict, Generator, Optional  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from crm_access.core.database import Base  # noqa: E402
from crm_access.core.settings import settings  # noqa: E402
from crm_access.domains.permissions import tables  # noqa: E402, F401
from crm_access.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.permission_fixtures import *  # noqa: E402, F403, F401

TEST_JWT_SECRET = "test-secret-key-for-testing-only-32-chars"


@pytest.fixture
def test_jwt_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    """JWT secret for generating test tokens, applied to settings."""
    monkeypatch.setattr(settings, "JWT_SECRET", TEST_JWT_SECRET)
    return TEST_JWT_SECRET


@pytest.fixture
def make_token(test_jwt_secret: str) -> Callable[..., str]:
    """Factory for signed access tokens carrying role and organization claims."""

    def _make_token(
        role: Optional[str] = "admin",
        organization_id: Optional[str] = "test-org-id-123",
        sub: str = "test-user-id-123",
    ) -> str:
        metadata: Dict[str, Any] = {}
        if role is not None:
            metadata["role"] = role
        if organization_id is not None:
            metadata["organization_id"] = organization_id
        payload = {
            "sub": sub,
            "email": "test@example.com",
            "aud": "authenticated",
            "user_metadata": metadata,
        }
        return jwt.encode(payload, test_jwt_secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token: Callable[..., str]) -> Callable[..., Dict[str, str]]:
    """Factory for Authorization headers for a given role."""

    def _auth_headers(role: Optional[str] = "admin", **kwargs: Any) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(role=role, **kwargs)}"}

    return _auth_headers


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """FastAPI test client; dependency overrides are reset afterwards."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()
