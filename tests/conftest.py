from contextlib import contextmanager
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.base import Base
from libs.db.session import get_async_db
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Register every table on Base.metadata
from services.marketplace_service import models as _marketplace_models  # noqa: F401


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create an engine on a throwaway SQLite file, one per test.
    Settlement commits for real, so isolation comes from a fresh database
    rather than an outer rolled-back transaction.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/marketplace.db")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session bound to the per-test engine."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_user(user_id: str = "user-1", role: str = "user", **overrides) -> AuthUser:
    return AuthUser(
        user_id=user_id,
        email=overrides.pop("email", f"{user_id}@example.com"),
        role=role,
        **overrides,
    )


def make_admin_user(user_id: str = "admin-1") -> AuthUser:
    return make_user(user_id=user_id, role="admin")


def make_vendor_user(vendor_id, user_id: str = "vendor-user-1") -> AuthUser:
    return make_user(user_id=user_id, role="vendor", vendor_id=str(vendor_id))


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate every request as ``user``."""
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
# API client
# ---------------------------------------------------------------------------


@pytest.fixture
def current_user() -> AuthUser:
    return make_user()


@pytest_asyncio.fixture
async def marketplace_client(
    db_session, current_user
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient for the marketplace app with the DB dependency
    pointed at the test session and the caller authenticated as
    ``current_user``. Admin/vendor guards still run on top of it.
    """
    from services.marketplace_service.app.main import app

    async def _db_override() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_async_db] = _db_override
    app.dependency_overrides[get_current_user] = lambda: current_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
