"""
Base repository: SQL helpers shared by the store repositories.

Repositories receive a ``sqlite3.Connection`` from the caller (normally
``get_connection()``), which also sets ``row_factory = sqlite3.Row``.

Write contract: every mutating statement goes through ``write()``, which
runs exactly one statement inside its own transaction. There is no API for
grouping writes, so each persisted value is updated atomically and
independently of every other value.

Values are stored as JSON text; ``encode()`` / ``decode()`` are the only
place the JSON options are chosen.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """SQL execution and JSON codec helpers.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ── Reads ─────────────────────────────────────────────────────────────────

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params).fetchall()

    # ── Writes ────────────────────────────────────────────────────────────────

    def write(self, sql: str, params: Params = ()) -> int:
        """Run one mutating statement and commit it.

        Rolls back and re-raises if the statement fails.

        Returns:
            Number of rows affected.
        """
        logger.debug("SQL (write): %s | params: %s", sql.strip(), params)
        with self.conn:
            cursor = self.conn.execute(sql, params)
        return cursor.rowcount

    # ── JSON codec ────────────────────────────────────────────────────────────

    @staticmethod
    def encode(value: Any) -> str:
        """Serialise ``value`` to JSON text.

        Raises:
            TypeError: If ``value`` is not JSON-serialisable.
        """
        return json.dumps(value, sort_keys=True, ensure_ascii=False)

    @staticmethod
    def decode(text: str) -> Any:
        return json.loads(text)
