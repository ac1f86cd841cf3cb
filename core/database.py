"""
core/database.py -- Shared SQLAlchemy engine and schema registry.

Every store (auth/store.py, news/store.py) registers its tables on the single
`metadata` object below and receives the same Engine. Sharing the engine is
what lets account deletion remove the account and its news inside one
transaction.

Layer rule: core/ is the kernel. No imports from api/, auth/, news/, or blobs/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Connection, Engine

metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the process-wide Engine and create any missing tables.

    Stores must be imported before this runs so their tables are registered
    on `metadata`; api/main.py imports them at module level.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a thread pool, so the same pooled
        # connection may be touched from more than one thread.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    metadata.create_all(engine)
    return engine


@contextmanager
def connection_scope(engine: Engine, conn: Optional[Connection] = None) -> Iterator[Connection]:
    """Yield `conn` when the caller already holds a transaction, else open one.

    Lets store methods take part in a caller-owned transaction (cascade delete)
    while still working standalone, where they commit on exit.
    """
    if conn is not None:
        yield conn
        return
    with engine.begin() as own:
        yield own


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
