"""Shared SQLite helpers: WAL-mode connections and commit-and-close sessions."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def wal_session(db_path: str | Path, row_factory: bool = True, immediate: bool = False):
    """Connection context that commits on success and always closes.

    With ``immediate`` the write lock is taken before the first read, so a
    read-modify-write inside the session cannot interleave with another writer.
    """
    conn = wal_connect(db_path, row_factory=row_factory)
    try:
        with conn:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
    finally:
        conn.close()
