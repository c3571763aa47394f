# src/store/sqlite_store.py — v1
"""SQLite-backed store (STORE backend=sqlite).

Uses stdlib sqlite3. One table, one row per key.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from imageflow.store.base_store import BaseKeyValueStore


_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteStore(BaseKeyValueStore):
    """SQLite key-value table."""

    name = "sqlite"

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def get(self, key: str) -> str | None:
        cursor = self._conn.execute(
            "SELECT value FROM kv_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        return None if row is None else row[0]

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO kv_entries (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)""",
            (key, value),
        )
        self._conn.commit()

    def remove(self, key: str) -> None:
        self._conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
