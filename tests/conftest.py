"""
Shared test fixtures for trustBank.

Provides the async test client, database session mocks, a dict-backed
Redis mock, the in-memory Quidax exchange, and token helpers for the
auth-provider JWTs.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core import security
from app.database import get_db
from app.models.profile import UserProfile
from app.redis_client import get_redis
from app.services.quidax_client import MockQuidaxClient, set_quidax_client

TEST_JWT_SECRET = "test-supabase-jwt-secret-0123456789abcdef"
TEST_AUDIENCE = "authenticated"


# --- Auth-provider tokens ---


@pytest.fixture(autouse=True)
def jwt_secret():
    """Verify tokens against the test secret for every test."""
    security.configure_secret(TEST_JWT_SECRET, audience=TEST_AUDIENCE)


def make_token(
    user_id: str,
    *,
    secret: str = TEST_JWT_SECRET,
    audience: str = TEST_AUDIENCE,
    expires_in: int = 3600,
) -> str:
    """Mint a token shaped like the auth provider's access tokens."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token


# --- Exchange ---


@pytest.fixture(autouse=True)
def quidax():
    """Fresh in-memory exchange per test, installed as the shared client."""
    client = MockQuidaxClient()
    set_quidax_client(client)
    yield client
    set_quidax_client(None)


# --- Mock Redis ---


@pytest.fixture
def mock_redis():
    """AsyncMock Redis client backed by a dict, with SET NX semantics."""
    store: dict[str, str] = {}
    redis = AsyncMock()

    async def _get(key):
        return store.get(key)

    async def _setex(key, ttl, value):
        store[key] = value
        return True

    async def _set(key, value, nx=False, ex=None):
        if nx and key in store:
            return None
        store[key] = value
        return True

    async def _delete(*keys):
        return sum(1 for key in keys if store.pop(key, None) is not None)

    redis.get = AsyncMock(side_effect=_get)
    redis.setex = AsyncMock(side_effect=_setex)
    redis.set = AsyncMock(side_effect=_set)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.store = store
    return redis


# --- Mock Database Session ---


def _make_profile(**overrides) -> UserProfile:
    """Create a UserProfile instance with test defaults via the normal constructor."""
    defaults = {
        "user_id": "8d7c4f0a-1b2c-4d3e-9f00-000000000001",
        "quidax_id": "qdx-test-0001",
        "trading_volume": Decimal("0"),
        "kyc_tier": 1,
    }
    defaults.update(overrides)
    return UserProfile(**defaults)


@pytest.fixture
def make_profile():
    """Factory fixture for creating UserProfile instances."""
    return _make_profile


@pytest.fixture
def profile():
    return _make_profile()


@pytest.fixture
def mock_db():
    """AsyncMock database session."""
    db = AsyncMock()

    # Mock the result object returned by db.execute()
    mock_result = MagicMock()
    mock_result.scalar_one_or_none = MagicMock(return_value=None)
    mock_result.scalars = MagicMock(return_value=MagicMock(all=MagicMock(return_value=[])))
    db.execute = AsyncMock(return_value=mock_result)
    db.flush = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()

    return db


# --- Dependency Override Helpers ---


@pytest_asyncio.fixture
async def client(mock_db, mock_redis):
    """
    Async HTTP test client with get_db and get_redis overridden
    to use test doubles.
    """
    from app.main import app

    async def override_get_db():
        yield mock_db

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authed_client(client, profile):
    """Test client whose requests are made as *profile*."""
    from app.api.deps import get_current_user
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: profile
    yield client
