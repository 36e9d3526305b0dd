"""
Repository for movie enrichments (``movie_enrichments`` table, catalog database).

Writes are upserts keyed by ``movieId``: re-enriching a movie replaces the
previous row. Each upsert is committed on its own, so a batch interrupted
midway leaves every already-processed movie persisted.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from movie_enricher.db.repositories.base import BaseRepository
from movie_enricher.db.repositories.movie_repo import row_to_movie
from movie_enricher.db.schema import DDL_MOVIE_ENRICHMENTS
from movie_enricher.models.movie import EnrichedMovie, MovieEnrichment

logger = logging.getLogger(__name__)


class EnrichmentRepository(BaseRepository):
    """Read/write access to the ``movie_enrichments`` table."""

    def ensure_table(self) -> None:
        """Create ``movie_enrichments`` if it does not exist."""
        self.execute(DDL_MOVIE_ENRICHMENTS)
        self.commit()

    def upsert(self, enrichment: MovieEnrichment) -> int:
        """Insert or replace the enrichment row for ``enrichment.movie_id``.

        Args:
            enrichment: The record to persist.

        Returns:
            The ``movieId`` written.
        """
        self.execute(
            """
            INSERT INTO movie_enrichments (
                movieId, awardPotential, popularityQualityIndex, emotionalGenres,
                productionCompanyRollingROI, productionEffectivenessScore
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(movieId) DO UPDATE SET
                awardPotential               = excluded.awardPotential,
                popularityQualityIndex       = excluded.popularityQualityIndex,
                emotionalGenres              = excluded.emotionalGenres,
                productionCompanyRollingROI  = excluded.productionCompanyRollingROI,
                productionEffectivenessScore = excluded.productionEffectivenessScore;
            """,
            (
                enrichment.movie_id,
                enrichment.award_potential,
                enrichment.popularity_quality_index,
                enrichment.emotional_genres,
                enrichment.production_company_rolling_roi,
                enrichment.production_effectiveness_score,
            ),
        )
        self.commit()
        return enrichment.movie_id

    def get_by_movie(self, movie_id: int) -> Optional[MovieEnrichment]:
        """Fetch the enrichment for one movie, or ``None``."""
        row = self.fetchone(
            "SELECT * FROM movie_enrichments WHERE movieId = ?;", (movie_id,)
        )
        return _row_to_enrichment(row) if row else None

    def list_all(self) -> list[MovieEnrichment]:
        """Return every enrichment row."""
        rows = self.fetchall("SELECT * FROM movie_enrichments;")
        return [_row_to_enrichment(r) for r in rows]

    def list_enriched_movies(self) -> list[EnrichedMovie]:
        """Return catalog movies joined with their enrichment, in catalog order.

        Movies without an enrichment row are excluded (inner join).
        ``movieId`` is the rowid of ``movies``, so ordering by it is
        storage order.
        """
        rows = self.fetchall(
            """
            SELECT m.*, e.awardPotential, e.popularityQualityIndex, e.emotionalGenres,
                   e.productionCompanyRollingROI, e.productionEffectivenessScore
            FROM movies m
            INNER JOIN movie_enrichments e ON m.movieId = e.movieId
            ORDER BY m.movieId;
            """
        )
        return [_row_to_enriched_movie(r) for r in rows]

    def get_enriched_movie(self, movie_id: int) -> Optional[EnrichedMovie]:
        """Fetch one movie joined with its enrichment, or ``None`` if either is missing."""
        row = self.fetchone(
            """
            SELECT m.*, e.awardPotential, e.popularityQualityIndex, e.emotionalGenres,
                   e.productionCompanyRollingROI, e.productionEffectivenessScore
            FROM movies m
            INNER JOIN movie_enrichments e ON m.movieId = e.movieId
            WHERE m.movieId = ?;
            """,
            (movie_id,),
        )
        return _row_to_enriched_movie(row) if row else None

    def count(self) -> int:
        """Return total number of enrichment rows."""
        row = self.fetchone("SELECT COUNT(*) AS n FROM movie_enrichments;")
        assert row is not None
        return int(row["n"])


# ── Private helpers ───────────────────────────────────────────────────────────


def _row_to_enrichment(row: sqlite3.Row) -> MovieEnrichment:
    return MovieEnrichment(
        movie_id=row["movieId"],
        award_potential=row["awardPotential"] or "Medium",
        popularity_quality_index=row["popularityQualityIndex"] or 0.0,
        emotional_genres=row["emotionalGenres"] or "",
        production_company_rolling_roi=row["productionCompanyRollingROI"],
        production_effectiveness_score=row["productionEffectivenessScore"] or 0.0,
    )


def _row_to_enriched_movie(row: sqlite3.Row) -> EnrichedMovie:
    movie = row_to_movie(row)
    return EnrichedMovie(
        **movie.model_dump(),
        award_potential=row["awardPotential"] or "Medium",
        popularity_quality_index=row["popularityQualityIndex"] or 0.0,
        emotional_genres=row["emotionalGenres"] or "",
        production_company_rolling_roi=row["productionCompanyRollingROI"],
        production_effectiveness_score=row["productionEffectivenessScore"] or 0.0,
    )
