"""Database layer — engine, session, ORM base."""

from candle_core.db.base import Base
from candle_core.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine,
    make_engine,
    session_scope,
)

__all__ = [
    "Base",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine",
    "make_engine",
    "session_scope",
]
