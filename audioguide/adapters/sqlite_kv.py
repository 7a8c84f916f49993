"""
SQLite Key/Value Storage Adapter.

Implements KeyValueStorePort with one row per key. Useful when the client
state has to be shared by several processes on the same machine.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from audioguide.core.ports.storage import StorageError

T = TypeVar("T")

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY NOT NULL,
        value TEXT NOT NULL,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
"""


class SQLiteKeyValueStore:
    """SQLite-backed key/value store."""

    def __init__(self, db_path: str | Path, connection: sqlite3.Connection | None = None):
        self.db_path = str(db_path)
        if connection is None and self.db_path == ":memory:":
            # A private in-memory database only lives as long as its connection
            connection = sqlite3.connect(":memory:", check_same_thread=False)
        elif connection is None:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._external_conn = connection
        self._run(lambda conn: conn.execute(_SCHEMA))

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return sqlite3.connect(self.db_path)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _run(self, op: Callable[[sqlite3.Connection], T]) -> T:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        try:
            result = op(conn)
            conn.commit()
            return result
        except sqlite3.Error as e:
            raise StorageError(f"SQLite error on {self.db_path}: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def get(self, key: str) -> str | None:
        row = self._run(
            lambda conn: conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        )
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._run(
            lambda conn: conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = CURRENT_TIMESTAMP",
                (key, value),
            )
        )

    def delete(self, key: str) -> bool:
        removed = self._run(
            lambda conn: conn.execute("DELETE FROM kv_store WHERE key = ?", (key,)).rowcount
        )
        return removed > 0

    def keys(self, prefix: str = "") -> list[str]:
        # substr() keeps the match case-sensitive, unlike LIKE
        rows = self._run(
            lambda conn: conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        )
        return [r[0] for r in rows]
