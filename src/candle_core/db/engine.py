"""Database engine and session management.

Tables live in a ``candles`` Postgres schema. SQLite has no schemas, so
SQLite engines map it away with ``schema_translate_map``; the same ORM
tables then work for local backtest databases and tests.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, sessionmaker

from candle_core.db.base import Base
from candle_core.db.tables.candles import SCHEMA

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def _ensure_psycopg_driver(url: str) -> str:
    """Rewrite postgresql:// to postgresql+psycopg:// for psycopg v3."""
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def make_engine(url: str, **kwargs) -> Engine:
    """Create an engine for *url* without touching the global one."""
    url = _ensure_psycopg_driver(url)
    if url.startswith("sqlite"):
        kwargs.setdefault("execution_options", {"schema_translate_map": {SCHEMA: None}})
    return create_engine(url, **kwargs)


def init_engine(url: str, **kwargs) -> Engine:
    """Create the global engine and session factory."""
    global _engine, _SessionLocal
    _engine = make_engine(url, **kwargs)
    _SessionLocal = sessionmaker(bind=_engine)
    return _engine


def get_engine() -> Engine:
    """Return the global engine (must call init_engine first)."""
    if _engine is None:
        raise RuntimeError("Database engine not initialised — call init_engine() first")
    return _engine


def create_tables(engine: Engine | None = None) -> None:
    """Create every table that is missing (Postgres schema included)."""
    engine = engine or get_engine()
    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            conn.exec_driver_sql(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}")
    Base.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Yield a session, closing it when done."""
    if _SessionLocal is None:
        raise RuntimeError("Database engine not initialised — call init_engine() first")
    session = _SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """``with`` form of :func:`get_session`."""
    yield from get_session()
