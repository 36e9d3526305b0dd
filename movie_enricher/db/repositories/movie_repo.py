"""
Repository for catalog movies (``movies`` table, catalog database).

The pipelines only read from this table. ``insert`` exists for
``import-catalog`` and test fixtures; catalog ingestion proper happens
outside this package.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from movie_enricher.db.repositories.base import BaseRepository
from movie_enricher.models.movie import Movie

logger = logging.getLogger(__name__)

_MOVIE_COLUMNS = (
    "movieId, imdbId, title, overview, productionCompanies, releaseDate, "
    "budget, revenue, runtime, language, genres, status"
)


class MovieRepository(BaseRepository):
    """Read/write access to the ``movies`` table."""

    def list_movies(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Movie]:
        """Return catalog movies in native storage order.

        Args:
            limit: Maximum rows to return; ``None`` for all.
            offset: Rows to skip (only applied together with ``limit``).

        Returns:
            List of ``Movie`` objects.
        """
        sql = f"SELECT {_MOVIE_COLUMNS} FROM movies"
        params: tuple = ()
        if limit:
            sql += " LIMIT ?"
            params = (limit,)
            if offset:
                sql += " OFFSET ?"
                params = (limit, offset)
        return [row_to_movie(r) for r in self.fetchall(sql + ";", params)]

    def get_by_id(self, movie_id: int) -> Optional[Movie]:
        """Fetch one movie by primary key, or ``None``."""
        row = self.fetchone(
            f"SELECT {_MOVIE_COLUMNS} FROM movies WHERE movieId = ?;", (movie_id,)
        )
        return row_to_movie(row) if row else None

    def get_by_ids(self, movie_ids: list[int]) -> list[Movie]:
        """Fetch every movie whose id is in ``movie_ids`` (storage order).

        Unknown ids are silently absent from the result.
        """
        if not movie_ids:
            return []
        placeholders = ",".join("?" for _ in movie_ids)
        rows = self.fetchall(
            f"SELECT {_MOVIE_COLUMNS} FROM movies WHERE movieId IN ({placeholders});",
            tuple(movie_ids),
        )
        return [row_to_movie(r) for r in rows]

    def insert(self, movie: Movie) -> int:
        """Insert or replace a catalog row and return its ``movieId``."""
        self.execute(
            f"""
            INSERT OR REPLACE INTO movies ({_MOVIE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                movie.movie_id,
                movie.imdb_id,
                movie.title,
                movie.overview,
                movie.production_companies,
                movie.release_date,
                movie.budget,
                movie.revenue,
                movie.runtime,
                movie.language,
                movie.genres,
                movie.status,
            ),
        )
        return movie.movie_id

    def count(self) -> int:
        """Return total number of catalog movies."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM movies;")
        assert row is not None
        return int(row["n"])


def row_to_movie(row: sqlite3.Row) -> Movie:
    """Convert a ``movies`` row to a ``Movie``; NULL text and money become empty/zero."""
    return Movie(
        movie_id=row["movieId"],
        imdb_id=row["imdbId"],
        title=row["title"],
        overview=row["overview"] or "",
        production_companies=row["productionCompanies"] or "",
        release_date=row["releaseDate"] or "",
        budget=row["budget"] or 0,
        revenue=row["revenue"] or 0,
        runtime=row["runtime"],
        language=row["language"],
        genres=row["genres"] or "",
        status=row["status"],
    )
