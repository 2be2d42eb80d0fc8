"""Shared test fixtures for the async database, sessions, users and actors."""

import os
import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read from the environment by the CLI callback and get_settings()
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production-use")

from voter_intake.core.config import Settings  # noqa: E402
from voter_intake.core.permissions import Actor  # noqa: E402
from voter_intake.core.security import hash_password  # noqa: E402
from voter_intake.models.base import Base  # noqa: E402
from voter_intake.models.user import User  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production-use",
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine with the full schema."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


async def _add_user(session: AsyncSession, username: str, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@test.com",
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def submitter_user(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "submitter1", "submitter")


@pytest.fixture
async def other_submitter_user(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "submitter2", "submitter")


@pytest.fixture
async def approver_user(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "approver1", "approver")


@pytest.fixture
async def admin_user(async_session: AsyncSession) -> User:
    return await _add_user(async_session, "admin1", "admin")


@pytest.fixture
def submitter(submitter_user: User) -> Actor:
    return Actor(user_id=submitter_user.id, role=submitter_user.role)


@pytest.fixture
def other_submitter(other_submitter_user: User) -> Actor:
    return Actor(user_id=other_submitter_user.id, role=other_submitter_user.role)


@pytest.fixture
def approver(approver_user: User) -> Actor:
    return Actor(user_id=approver_user.id, role=approver_user.role)


@pytest.fixture
def admin(admin_user: User) -> Actor:
    return Actor(user_id=admin_user.id, role=admin_user.role)

