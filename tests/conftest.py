from contextlib import contextmanager
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.base import Base
from libs.db.config import create_engine_for_url, create_session_factory
from libs.db.session import get_async_db
from services.wallet_service import models as _wallet_models  # noqa: F401
from services.wallet_service.policy import RewardPolicy, get_reward_policy

DEFAULT_USER_ID = "member-default"


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_member_user(
    user_id: str = DEFAULT_USER_ID, membership_tier: Optional[str] = None
) -> AuthUser:
    return AuthUser(
        user_id=user_id,
        email=f"{user_id}@example.com",
        role="authenticated",
        membership_tier=membership_tier,
    )


def make_admin_user(user_id: str = "admin-user") -> AuthUser:
    return AuthUser(user_id=user_id, email="admin@example.com", role="admin")


def make_service_user() -> AuthUser:
    return AuthUser(user_id="orders-service", role="service_role")


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate every request to ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """A fresh SQLite file database per test, with every wallet table created."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Factory for extra sessions, e.g. to simulate concurrent requests."""
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def reward_policy() -> RewardPolicy:
    return RewardPolicy()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def wallet_client(
    db_session, reward_policy
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient for the wallet app with DB, policy and auth overridden.

    Requests are authenticated as ``make_member_user()`` unless a test wraps
    them in ``override_auth``.
    """
    from services.wallet_service.app.main import app

    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_reward_policy] = lambda: reward_policy
    app.dependency_overrides[get_current_user] = lambda: make_member_user()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
