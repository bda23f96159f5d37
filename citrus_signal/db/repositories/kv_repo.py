"""
Repository for the ``kv_store`` table — string key to JSON value.

Each ``set()`` is a single ``INSERT ... ON CONFLICT DO UPDATE`` committed
immediately, so a crash between two writes never leaves a half-written
value behind. There are no multi-key transactions.

Known keys:

  ``frost_tracker_state``  FrostTrackerState (owned by FrostExposureTracker)
  ``parameters``           ParameterSet       (owned by DashboardState)
  ``last_sync``            sync snapshot      (owned by LiveDataSync)
  ``last_rsi``             last computed RSI  (owned by LiveDataSync)
  ``last_signal``          display snapshot of the latest SignalResult
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from citrus_signal.db.repositories.base import BaseRepository
from citrus_signal.utils.time_utils import parse_iso_utc

KEY_FROST_TRACKER = "frost_tracker_state"
KEY_PARAMETERS = "parameters"
KEY_LAST_SYNC = "last_sync"
KEY_LAST_RSI = "last_rsi"
KEY_LAST_SIGNAL = "last_signal"


class KeyValueRepository(BaseRepository):
    """Get/set JSON-serialisable values by string key."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for ``key``, or ``default`` when absent."""
        row = self.fetchone("SELECT value_json FROM kv_store WHERE key = ?;", (key,))
        if row is None:
            return default
        return self.decode(row["value_json"])

    def get_with_timestamp(self, key: str) -> Optional[tuple[Any, Optional[datetime]]]:
        """Return ``(value, updated_at)`` for ``key``, or ``None`` when absent."""
        row = self.fetchone(
            "SELECT value_json, updated_at FROM kv_store WHERE key = ?;", (key,)
        )
        if row is None:
            return None
        return self.decode(row["value_json"]), parse_iso_utc(row["updated_at"])

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` and commit.

        Raises:
            TypeError: If ``value`` is not JSON-serialisable.
        """
        self.write(
            """
            INSERT INTO kv_store (key, value_json, updated_at)
            VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
            ON CONFLICT(key) DO UPDATE SET
                value_json = excluded.value_json,
                updated_at = excluded.updated_at;
            """,
            (key, self.encode(value)),
        )

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns ``True`` if a row was deleted."""
        return self.write("DELETE FROM kv_store WHERE key = ?;", (key,)) > 0

    def keys(self) -> list[str]:
        """Return all stored keys, sorted."""
        rows = self.fetchall("SELECT key FROM kv_store ORDER BY key;")
        return [row["key"] for row in rows]
