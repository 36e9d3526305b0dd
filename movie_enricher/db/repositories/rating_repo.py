"""
Repository for user ratings (``ratings`` table, ratings database).
"""

from __future__ import annotations

import logging
import sqlite3

from movie_enricher.db.repositories.base import BaseRepository
from movie_enricher.models.movie import Rating, RatingStats

logger = logging.getLogger(__name__)


class RatingRepository(BaseRepository):
    """Read/write access to the ``ratings`` table."""

    def get_by_user(self, user_id: int) -> list[Rating]:
        """Return all ratings by ``user_id``, most recent first."""
        rows = self.fetchall(
            "SELECT * FROM ratings WHERE userId = ? ORDER BY timestamp DESC;",
            (user_id,),
        )
        return [_row_to_rating(r) for r in rows]

    def get_by_movie(self, movie_id: int) -> list[Rating]:
        """Return all ratings for ``movie_id`` in storage order."""
        rows = self.fetchall("SELECT * FROM ratings WHERE movieId = ?;", (movie_id,))
        return [_row_to_rating(r) for r in rows]

    def get_rating_stats(self, movie_id: int) -> RatingStats:
        """Return the average rating and rating count for one movie.

        A movie with no ratings yields ``RatingStats(avg_rating=0.0, count=0)``.
        """
        row = self.fetchone(
            "SELECT AVG(rating) AS avg_rating, COUNT(*) AS n FROM ratings WHERE movieId = ?;",
            (movie_id,),
        )
        if row is None or not row["n"]:
            return RatingStats()
        return RatingStats(avg_rating=float(row["avg_rating"]), count=int(row["n"]))

    def list_user_ids(self) -> list[int]:
        """Return every distinct user id, ascending."""
        rows = self.fetchall("SELECT DISTINCT userId FROM ratings ORDER BY userId;")
        return [int(r["userId"]) for r in rows]

    def insert(self, rating: Rating) -> int:
        """Insert a rating and return its ``ratingId``."""
        cur = self.execute(
            "INSERT INTO ratings (userId, movieId, rating, timestamp) VALUES (?, ?, ?, ?);",
            (rating.user_id, rating.movie_id, rating.rating, rating.timestamp),
        )
        return int(cur.lastrowid)

    def insert_many(self, ratings: list[Rating]) -> int:
        """Bulk-insert ratings; returns the number of rows written."""
        self.executemany(
            "INSERT INTO ratings (userId, movieId, rating, timestamp) VALUES (?, ?, ?, ?);",
            [(r.user_id, r.movie_id, r.rating, r.timestamp) for r in ratings],
        )
        return len(ratings)

    def count(self) -> int:
        """Return total number of ratings."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM ratings;")
        assert row is not None
        return int(row["n"])


def _row_to_rating(row: sqlite3.Row) -> Rating:
    return Rating(
        rating_id=row["ratingId"],
        user_id=row["userId"],
        movie_id=row["movieId"],
        rating=row["rating"],
        timestamp=row["timestamp"],
    )
