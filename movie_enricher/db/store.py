"""
``MovieStore`` — the repository facade handed to every pipeline.

Owns one connection to the catalog database and one to the ratings database.
It is constructed explicitly by the process entry point (CLI command or API
lifespan), opened once, and closed at shutdown. Nothing in the package keeps
a module-level connection.

Usage::

    with MovieStore.from_config(config.database) as store:
        movies = store.movies.list_movies()
        stats  = store.ratings.get_rating_stats(movies[0].movie_id)

Tests construct it over in-memory connections::

    store = MovieStore.from_connections(catalog_conn, ratings_conn)
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from movie_enricher.config import DatabaseConfig
from movie_enricher.db.connection import open_connection
from movie_enricher.db.repositories.enrichment_repo import EnrichmentRepository
from movie_enricher.db.repositories.movie_repo import MovieRepository
from movie_enricher.db.repositories.rating_repo import RatingRepository
from movie_enricher.db.schema import apply_catalog_schema, apply_ratings_schema

logger = logging.getLogger(__name__)


class MovieStore:
    """Catalog, ratings, and enrichment repositories over two SQLite databases.

    Attributes:
        movies:      ``MovieRepository`` on the catalog connection.
        enrichments: ``EnrichmentRepository`` on the catalog connection.
        ratings:     ``RatingRepository`` on the ratings connection.
    """

    def __init__(
        self,
        movies_db_path: str,
        ratings_db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        check_same_thread: bool = True,
    ) -> None:
        self.movies_db_path = movies_db_path
        self.ratings_db_path = ratings_db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.check_same_thread = check_same_thread
        self._catalog_conn: Optional[sqlite3.Connection] = None
        self._ratings_conn: Optional[sqlite3.Connection] = None
        self._movies: Optional[MovieRepository] = None
        self._enrichments: Optional[EnrichmentRepository] = None
        self._ratings: Optional[RatingRepository] = None

    @classmethod
    def from_config(cls, config: DatabaseConfig, check_same_thread: bool = True) -> "MovieStore":
        """Build an unopened store from the ``[database]`` config section."""
        return cls(
            movies_db_path=config.movies_db_path,
            ratings_db_path=config.ratings_db_path,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
            check_same_thread=check_same_thread,
        )

    @classmethod
    def from_connections(
        cls,
        catalog_conn: sqlite3.Connection,
        ratings_conn: sqlite3.Connection,
    ) -> "MovieStore":
        """Wrap two already-open connections. ``close()`` will close them."""
        store = cls(movies_db_path=":memory:", ratings_db_path=":memory:")
        store._attach(catalog_conn, ratings_conn)
        return store

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._catalog_conn is not None

    def open(self, apply_schema: bool = True) -> "MovieStore":
        """Open both connections.

        Args:
            apply_schema: Create any missing tables (idempotent).

        Returns:
            ``self``, for chaining.
        """
        if self.is_open:
            return self
        catalog_conn = open_connection(
            self.movies_db_path,
            wal_mode=self.wal_mode,
            busy_timeout_ms=self.busy_timeout_ms,
            check_same_thread=self.check_same_thread,
        )
        ratings_conn = open_connection(
            self.ratings_db_path,
            wal_mode=self.wal_mode,
            busy_timeout_ms=self.busy_timeout_ms,
            check_same_thread=self.check_same_thread,
        )
        if apply_schema:
            apply_catalog_schema(catalog_conn)
            apply_ratings_schema(ratings_conn)
        self._attach(catalog_conn, ratings_conn)
        logger.info(
            "MovieStore opened | movies=%s | ratings=%s",
            self.movies_db_path, self.ratings_db_path,
        )
        return self

    def close(self) -> None:
        """Commit and close both connections. Safe to call twice."""
        for conn in (self._catalog_conn, self._ratings_conn):
            if conn is not None:
                conn.commit()
                conn.close()
        self._catalog_conn = None
        self._ratings_conn = None
        self._movies = self._enrichments = self._ratings = None
        logger.debug("MovieStore closed.")

    def __enter__(self) -> "MovieStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Repositories ──────────────────────────────────────────────────────────

    @property
    def movies(self) -> MovieRepository:
        return self._require(self._movies)

    @property
    def enrichments(self) -> EnrichmentRepository:
        return self._require(self._enrichments)

    @property
    def ratings(self) -> RatingRepository:
        return self._require(self._ratings)

    def _attach(self, catalog_conn: sqlite3.Connection, ratings_conn: sqlite3.Connection) -> None:
        self._catalog_conn = catalog_conn
        self._ratings_conn = ratings_conn
        self._movies = MovieRepository(catalog_conn)
        self._enrichments = EnrichmentRepository(catalog_conn)
        self._ratings = RatingRepository(ratings_conn)

    @staticmethod
    def _require(repo):
        if repo is None:
            raise RuntimeError("MovieStore is not open. Call open() or use it as a context manager.")
        return repo
