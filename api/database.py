"""
Database connection management for the API.

Provides a get_db() dependency that opens a per-request SQLite connection to
the catalog database and closes it after the response is sent.  The path is
resolved once at startup from APP_DB_PATH (default: book_catalog.sqlite) and
can be overridden by create_app(db_path=...).
"""

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

from fastapi import HTTPException

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "book_catalog.sqlite"))


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def set_db_path(db_path: Path) -> None:
    """Point subsequent connections at another database file."""
    global _DB_PATH
    _DB_PATH = Path(db_path)


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a read-only SQLite connection with standard pragmas."""
    uri = f"file:{db_path}?mode=ro"
    conn = sqlite3.connect(uri, uri=True, check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a SQLite connection, close on exit.

    Raises HTTP 503 with a readable message if the database file is missing,
    instead of a cryptic SQLite error.
    """
    if not _DB_PATH.exists():
        raise HTTPException(
            status_code=503,
            detail=f"Database not found at '{_DB_PATH}'.",
        )
    conn = _make_conn(_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()
