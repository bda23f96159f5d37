"""
SQLite connection management for the key-value store.

Two processes share one database file: the long-running frost clock
(``citrus-signal watch``) and short CLI invocations such as ``set-params``.
The connection settings follow from that:

  - WAL journal mode, so a CLI read never waits on the daemon's writes.
  - A busy timeout, so two writers queue instead of failing immediately.
  - ``sqlite3.Row`` rows (dict-like access in the repositories).

``get_connection()`` yields a bare connection; ``open_store()`` additionally
applies the schema and wraps the connection in a ``KeyValueRepository``.

Usage::

    from citrus_signal.db.connection import open_store

    with open_store("data/db/citrus_signal.db") as store:
        store.set("last_rsi", {"value": 64.0})
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from citrus_signal.db.repositories.kv_repo import KeyValueRepository
from citrus_signal.db.schema import apply_schema

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured connection; commit on clean exit, roll back on error.

    Parent directories of a file-backed ``db_path`` are created on demand.
    WAL is skipped for ``":memory:"`` databases, which do not support it.

    Raises:
        sqlite3.OperationalError: If the file cannot be opened, or stays
            locked longer than ``busy_timeout_ms``.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    logger.debug("Opened %s (wal=%s, busy_timeout=%dms)", db_path, wal_mode, busy_timeout_ms)

    try:
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and db_path != MEMORY_DB:
            conn.execute("PRAGMA journal_mode = WAL;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def open_store(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[KeyValueRepository, None, None]:
    """Yield a ``KeyValueRepository`` on a connection with the schema applied."""
    with get_connection(db_path, wal_mode=wal_mode, busy_timeout_ms=busy_timeout_ms) as conn:
        apply_schema(conn)
        yield KeyValueRepository(conn)
