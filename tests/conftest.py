"""Shared test fixtures."""

import pytest
from sqlalchemy.orm import Session

import candle_core.db.tables  # noqa: F401 — registers all tables on Base.metadata
from candle_core.db.engine import create_tables, make_engine


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with every table created."""
    engine = make_engine("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = Session(db_engine)
    yield session
    session.close()
