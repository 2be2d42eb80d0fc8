"""Tests for the database engine and session management module."""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

import voter_intake.core.database as db_module
from voter_intake.core.database import dialect_insert, dispose_engine, get_engine, get_session_factory, init_engine


class TestGetEngine:
    def test_raises_when_not_initialized(self) -> None:
        original_engine = db_module._engine
        db_module._engine = None
        try:
            with pytest.raises(RuntimeError, match="Database engine not initialized"):
                get_engine()
        finally:
            db_module._engine = original_engine

    async def test_returns_engine_when_initialized(self) -> None:
        engine = init_engine("sqlite+aiosqlite:///:memory:")
        try:
            assert get_engine() is engine
        finally:
            await dispose_engine()


class TestGetSessionFactory:
    def test_raises_when_not_initialized(self) -> None:
        original_factory = db_module._session_factory
        db_module._session_factory = None
        try:
            with pytest.raises(RuntimeError, match="Session factory not initialized"):
                get_session_factory()
        finally:
            db_module._session_factory = original_factory


class TestInitEngine:
    async def test_creates_engine_and_factory(self) -> None:
        init_engine("sqlite+aiosqlite:///:memory:")
        try:
            assert get_session_factory() is not None
        finally:
            await dispose_engine()

    def test_schema_sets_search_path(self) -> None:
        with patch.object(db_module, "create_async_engine") as mock_create:
            init_engine("postgresql+asyncpg://localhost/db", schema="pr_42")
        kwargs = mock_create.call_args.kwargs
        assert kwargs["connect_args"]["server_settings"] == {"search_path": "pr_42,public"}
        assert kwargs["pool_size"] == 10

    def test_sqlite_skips_pool_defaults(self) -> None:
        with patch.object(db_module, "create_async_engine") as mock_create, patch.object(db_module, "event"):
            init_engine("sqlite+aiosqlite:///:memory:")
        assert "pool_size" not in mock_create.call_args.kwargs

    async def test_dispose_clears_state(self) -> None:
        init_engine("sqlite+aiosqlite:///:memory:")
        await dispose_engine()
        assert db_module._engine is None
        assert db_module._session_factory is None


class TestDialectInsert:
    def _session(self, dialect: str) -> MagicMock:
        session = MagicMock(spec=AsyncSession)
        session.get_bind.return_value.dialect.name = dialect
        return session

    def test_postgresql(self) -> None:
        assert dialect_insert(self._session("postgresql")) is pg_insert

    def test_sqlite(self) -> None:
        assert dialect_insert(self._session("sqlite")) is sqlite_insert

    def test_unsupported(self) -> None:
        with pytest.raises(RuntimeError, match="Unsupported database dialect: mysql"):
            dialect_insert(self._session("mysql"))
