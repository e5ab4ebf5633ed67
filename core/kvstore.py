"""String-keyed key-value store backing the application's persisted state."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import RLock
from typing import Iterator, List, Optional

from .db import connect, transaction

__all__ = ["KeyValueStore", "KeyValueStoreError"]

_KV_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_utc TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
)
"""


class KeyValueStoreError(RuntimeError):
    """Raised when the underlying SQLite database rejects an operation."""


class KeyValueStore:
    """Persist string values by key in a single SQLite table.

    Mirrors the ``get``/``set``/``remove`` contract of the mobile app's
    AsyncStorage: values are opaque strings, callers own serialisation.
    All callers share one connection; every statement runs under the
    store lock.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = RLock()
        try:
            conn = self._connection()
            conn.execute(_KV_TABLE_SQL)
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"cannot open key-value store at {self._db_path}: {exc}") from exc

    # ------------------------------------------------------------------
    @property
    def path(self) -> Path:
        return self._db_path

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = connect(self._db_path, isolation_level=None)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "KeyValueStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._connection().execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"get {key!r} failed: {exc}") from exc
        return None if row is None else str(row[0])

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"value for {key!r} must be a string, got {type(value).__name__}")
        try:
            with self._lock, transaction(self._connection()) as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store(key, value) VALUES(?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value,
                        updated_utc=strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                    """,
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"set {key!r} failed: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            with self._lock, transaction(self._connection()) as conn:
                conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"remove {key!r} failed: {exc}") from exc

    def keys(self) -> List[str]:
        try:
            with self._lock:
                rows = self._connection().execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        except sqlite3.Error as exc:
            raise KeyValueStoreError(f"listing keys failed: {exc}") from exc
        return [str(row[0]) for row in rows]

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
