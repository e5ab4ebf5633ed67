from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

__all__ = [
    "DEFAULT_BUSY_TIMEOUT_MS",
    "connect",
    "configure_connection",
    "transaction",
]

DEFAULT_BUSY_TIMEOUT_MS = 5000


def connect(
    db_path: str | Path,
    *,
    timeout: float = 5.0,
    isolation_level: Optional[str] = None,
    check_same_thread: bool = False,
    durable: bool = True,
) -> sqlite3.Connection:
    """Open the application state database, creating its directory on first use.

    ``durable`` keeps ``synchronous=FULL`` so an acknowledged write survives a
    power loss; restore and backup bookkeeping rely on that.
    """

    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        str(path),
        timeout=timeout,
        isolation_level=isolation_level,
        check_same_thread=check_same_thread,
    )
    configure_connection(conn, synchronous="FULL" if durable else "NORMAL")
    return conn


def configure_connection(conn: sqlite3.Connection, *, enable_wal: bool = True, synchronous: str = "FULL") -> None:
    conn.execute(f"PRAGMA busy_timeout={int(DEFAULT_BUSY_TIMEOUT_MS)}")
    if enable_wal:
        try:
            conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.DatabaseError:
            # read-only media or network shares; rollback journal still works
            pass
    if synchronous.upper() in {"OFF", "NORMAL", "FULL", "EXTRA"}:
        conn.execute(f"PRAGMA synchronous={synchronous.upper()}")


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a write under ``BEGIN IMMEDIATE``; commit on success, roll back on any error."""

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()
