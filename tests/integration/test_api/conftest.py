"""Clients for the API tests, backed by the in-memory test database."""

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from voter_intake.api.router import create_router
from voter_intake.core.config import get_settings
from voter_intake.core.dependencies import get_async_session, get_current_user
from voter_intake.models.user import User

ClientFactory = Callable[[User | None], AbstractAsyncContextManager[AsyncClient]]


@pytest.fixture
def make_client(async_engine: AsyncEngine) -> ClientFactory:
    """Build a client whose requests run against the test database.

    When a user is given, authentication is bypassed and every request runs
    as that user.
    """
    factory = async_sessionmaker(async_engine, expire_on_commit=False)

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with factory() as session:
            yield session

    @asynccontextmanager
    async def _make(user: User | None = None) -> AsyncIterator[AsyncClient]:
        app = FastAPI()
        app.include_router(create_router(get_settings()))
        app.dependency_overrides[get_async_session] = _session
        if user is not None:
            app.dependency_overrides[get_current_user] = lambda: user
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    return _make


@pytest.fixture
async def submitter_client(make_client: ClientFactory, submitter_user: User) -> AsyncGenerator[AsyncClient]:
    async with make_client(submitter_user) as client:
        yield client


@pytest.fixture
async def other_submitter_client(
    make_client: ClientFactory, other_submitter_user: User
) -> AsyncGenerator[AsyncClient]:
    async with make_client(other_submitter_user) as client:
        yield client


@pytest.fixture
async def approver_client(make_client: ClientFactory, approver_user: User) -> AsyncGenerator[AsyncClient]:
    async with make_client(approver_user) as client:
        yield client


@pytest.fixture
async def admin_client(make_client: ClientFactory, admin_user: User) -> AsyncGenerator[AsyncClient]:
    async with make_client(admin_user) as client:
        yield client


@pytest.fixture
async def anonymous_client(make_client: ClientFactory) -> AsyncGenerator[AsyncClient]:
    async with make_client(None) as client:
        yield client
