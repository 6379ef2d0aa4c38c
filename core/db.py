"""
core/db.py -- Engine factory and shared schema metadata.

Both auth/store.py (users) and posts/store.py (posts) register their tables on
the single MetaData below so the posts -> users foreign key resolves and both
stores can share one Engine (one connection pool per process).

SQLAlchemy Core gives a database-agnostic abstraction: swapping SQLite for
PostgreSQL is a connection string change (DATABASE_URL), not a rewrite.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the process-wide Engine for db_url.

    SQLite needs check_same_thread=False because FastAPI runs sync route
    handlers in a threadpool -- the connection that opened a pool slot is not
    necessarily the thread that uses it.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
