"""
SQLite schema DDL for the two databases.

Catalog database (``database.movies_db_path``):
  1. movies             — catalog rows, loaded by ``import-catalog``
  2. movie_enrichments  — one row per movie, written by the enrichment run

Ratings database (``database.ratings_db_path``):
  3. ratings            — user ratings

All statements use ``IF NOT EXISTS`` so applying the schema is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).
``movie_enrichments`` deliberately has no foreign key to ``movies`` so an
enrichment table can be added to a catalog file produced by another tool.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_MOVIES = """
CREATE TABLE IF NOT EXISTS movies (
    movieId             INTEGER PRIMARY KEY,
    imdbId              TEXT,
    title               TEXT    NOT NULL,
    overview            TEXT,
    productionCompanies TEXT,
    releaseDate         TEXT,
    budget              REAL    NOT NULL DEFAULT 0,
    revenue             REAL    NOT NULL DEFAULT 0,
    runtime             REAL,
    language            TEXT,
    genres              TEXT,
    status              TEXT
);
"""

DDL_MOVIE_ENRICHMENTS = """
CREATE TABLE IF NOT EXISTS movie_enrichments (
    movieId                       INTEGER PRIMARY KEY,
    awardPotential                TEXT,
    popularityQualityIndex        REAL,
    emotionalGenres               TEXT,
    productionCompanyRollingROI   REAL,
    productionEffectivenessScore  REAL
);
"""

_DDL_RATINGS = """
CREATE TABLE IF NOT EXISTS ratings (
    ratingId    INTEGER PRIMARY KEY AUTOINCREMENT,
    userId      INTEGER NOT NULL,
    movieId     INTEGER NOT NULL,
    rating      REAL    NOT NULL CHECK (rating >= 0 AND rating <= 5),
    timestamp   INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_ratings_user  ON ratings (userId, timestamp);
CREATE INDEX IF NOT EXISTS idx_ratings_movie ON ratings (movieId);
"""

CATALOG_TABLE_NAMES = ["movies", "movie_enrichments"]
RATINGS_TABLE_NAMES = ["ratings"]


def apply_catalog_schema(conn: sqlite3.Connection) -> None:
    """Create the ``movies`` and ``movie_enrichments`` tables if absent.

    Args:
        conn: An open connection to the catalog database.
    """
    _apply(conn, [_DDL_MOVIES, DDL_MOVIE_ENRICHMENTS])
    logger.info("Catalog schema applied: %d tables created/verified.", len(CATALOG_TABLE_NAMES))


def apply_ratings_schema(conn: sqlite3.Connection) -> None:
    """Create the ``ratings`` table and its indexes if absent.

    Args:
        conn: An open connection to the ratings database.
    """
    _apply(conn, [_DDL_RATINGS])
    logger.info("Ratings schema applied: %d tables created/verified.", len(RATINGS_TABLE_NAMES))


def _apply(conn: sqlite3.Connection, blocks: list[str]) -> None:
    for ddl in blocks:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return list of table names present in the database.

    Args:
        conn: An open ``sqlite3.Connection``.

    Returns:
        List of table name strings (sorted alphabetically).
    """
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
