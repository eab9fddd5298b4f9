"""Tests for engine creation and session management."""

from __future__ import annotations

import pytest
from sqlalchemy import inspect

import candle_core.db.engine as db_engine
from candle_core.db.engine import (
    _ensure_psycopg_driver,
    create_tables,
    get_session,
    init_engine,
    make_engine,
    session_scope,
)


@pytest.fixture(autouse=True)
def _reset_engine(monkeypatch):
    monkeypatch.setattr(db_engine, "_engine", None)
    monkeypatch.setattr(db_engine, "_SessionLocal", None)


class TestDriverRewrite:
    def test_plain_postgres_url_uses_psycopg(self):
        url = _ensure_psycopg_driver("postgresql://u:p@host:5432/db")
        assert url == "postgresql+psycopg://u:p@host:5432/db"

    def test_explicit_driver_is_kept(self):
        url = "postgresql+psycopg://u:p@host/db"
        assert _ensure_psycopg_driver(url) == url

    def test_sqlite_untouched(self):
        assert _ensure_psycopg_driver("sqlite://") == "sqlite://"


class TestSqlite:
    def test_tables_created_without_schema(self):
        engine = make_engine("sqlite:///:memory:")
        create_tables(engine)
        assert "candles" in inspect(engine).get_table_names()
        engine.dispose()

    def test_create_tables_is_repeatable(self):
        engine = make_engine("sqlite:///:memory:")
        create_tables(engine)
        create_tables(engine)
        engine.dispose()


class TestGlobalEngine:
    def test_session_before_init(self):
        with pytest.raises(RuntimeError):
            next(get_session())

    def test_get_engine_before_init(self):
        with pytest.raises(RuntimeError):
            db_engine.get_engine()

    def test_session_scope_closes(self):
        init_engine("sqlite:///:memory:")
        with session_scope() as session:
            assert session.bind is db_engine.get_engine()
        # a closed session has released its connection
        assert not session.in_transaction()
