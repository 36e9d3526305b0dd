"""
SQLite connection management.

``open_connection()`` returns a configured, long-lived connection that:
  - Enables WAL journal mode for concurrent reads while a batch is writing.
  - Sets a busy timeout to handle lock contention gracefully.
  - Uses ``sqlite3.Row`` factory so rows behave like dicts.

``get_connection()`` wraps it as a context manager that commits on clean exit
and rolls back on exception, for one-shot CLI work (``init-db``, imports).

Usage::

    from movie_enricher.db.connection import get_connection

    with get_connection("data/db/movies.db") as conn:
        conn.execute("INSERT INTO ...")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


def open_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
    check_same_thread: bool = True,
) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    The database file (and any parent directories) are created if they do
    not already exist.

    Args:
        db_path: Path to the SQLite file, or ``":memory:"``.
        wal_mode: Enable write-ahead logging.
        busy_timeout_ms: Milliseconds to wait when the database is locked.
        check_same_thread: Passed to ``sqlite3.connect``; the HTTP server
            sets this to ``False`` because request handlers run on a
            worker thread pool.

    Returns:
        An open ``sqlite3.Connection``. The caller owns closing it.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        db_path,
        timeout=busy_timeout_ms / 1000,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row

    conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
    if wal_mode and db_path != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL;")

    logger.debug("Opened SQLite connection: %s", db_path)
    return conn


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The connection is committed on clean exit and rolled back on exception.

    Args:
        db_path: Path to the SQLite file, or ``":memory:"``.
        wal_mode: Enable write-ahead logging.
        busy_timeout_ms: Milliseconds to wait when the database is locked.

    Yields:
        An open ``sqlite3.Connection``.
    """
    conn = open_connection(db_path, wal_mode=wal_mode, busy_timeout_ms=busy_timeout_ms)
    try:
        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
