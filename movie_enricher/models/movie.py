"""
Catalog, rating, and enrichment models.

``Movie`` and ``Rating`` mirror rows of the catalog and ratings databases and
are never mutated by the pipelines. ``MovieEnrichment`` is the one record per
movie written by the enrichment orchestrator (upsert keyed by ``movie_id``).
``EnrichedMovie`` is the catalog row joined with its enrichment, the shape
served to the recommendation, query, and comparison paths.

All models are frozen and serialise with camelCase aliases
(``model_dump(by_alias=True)``) to match the HTTP contract.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AwardPotential = Literal["High", "Medium", "Low"]
VALID_AWARD_POTENTIALS: tuple[str, ...] = ("High", "Medium", "Low")

_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Movie(BaseModel):
    """A catalog movie.

    Attributes:
        movie_id: Catalog primary key.
        imdb_id: External reference id.
        title: Display title.
        overview: Free-text synopsis.
        production_companies: JSON array of ``{"name": ...}`` objects, stored
            as text exactly as ingested. Parsed by
            ``metrics.financial.parse_production_companies``.
        release_date: ISO ``YYYY-MM-DD`` string; compared lexicographically.
        budget: Production budget in dollars (0 when unknown).
        revenue: Box office revenue in dollars (0 when unknown).
        runtime: Minutes.
        language: Original language code.
        genres: Serialised genre list as stored in the catalog.
        status: Release status, e.g. ``"Released"``.
    """

    model_config = _MODEL_CONFIG

    movie_id: int
    imdb_id: Optional[str] = None
    title: str
    overview: str = ""
    production_companies: str = ""
    release_date: str = ""
    budget: float = 0
    revenue: float = 0
    runtime: Optional[float] = None
    language: Optional[str] = None
    genres: str = ""
    status: Optional[str] = None


class Rating(BaseModel):
    """One user's score for one movie."""

    model_config = _MODEL_CONFIG

    rating_id: Optional[int] = None
    user_id: int
    movie_id: int
    rating: float = Field(ge=0.0, le=5.0)
    timestamp: int


class RatingStats(BaseModel):
    """Aggregate of all ratings for one movie."""

    model_config = _MODEL_CONFIG

    avg_rating: float = 0.0
    count: int = 0


class MovieEnrichment(BaseModel):
    """Derived and oracle-inferred attributes for one movie.

    Attributes:
        movie_id: Natural key; one row per movie.
        award_potential: Oracle category ``High``/``Medium``/``Low``.
        popularity_quality_index: Oracle score 0–100.
        emotional_genres: Comma-joined, oracle-generated tone tags.
        production_company_rolling_roi: Mean ROI (%) of the primary company's
            trailing releases; ``None`` means no prior financial history.
        production_effectiveness_score: Weighted 0–100 score, two decimals.
    """

    model_config = _MODEL_CONFIG

    movie_id: int
    award_potential: AwardPotential = "Medium"
    popularity_quality_index: float = Field(default=50.0, ge=0.0, le=100.0)
    emotional_genres: str = "emotional"
    production_company_rolling_roi: Optional[float] = Field(
        default=None, alias="productionCompanyRollingROI"
    )
    production_effectiveness_score: float = 0.0


class EnrichedMovie(Movie):
    """A ``Movie`` joined with its ``MovieEnrichment`` fields."""

    award_potential: AwardPotential = "Medium"
    popularity_quality_index: float = 50.0
    emotional_genres: str = "emotional"
    production_company_rolling_roi: Optional[float] = Field(
        default=None, alias="productionCompanyRollingROI"
    )
    production_effectiveness_score: float = 0.0

    @property
    def enrichment(self) -> MovieEnrichment:
        """Return the enrichment half of this joined record."""
        return MovieEnrichment(
            movie_id=self.movie_id,
            award_potential=self.award_potential,
            popularity_quality_index=self.popularity_quality_index,
            emotional_genres=self.emotional_genres,
            production_company_rolling_roi=self.production_company_rolling_roi,
            production_effectiveness_score=self.production_effectiveness_score,
        )
