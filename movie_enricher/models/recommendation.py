"""
Transient pipeline models — never persisted.

``EnrichmentInput`` is what the orchestrator hands to the oracle for one
movie. ``UserPreferences`` is recomputed from the ratings store on every
request. ``Recommendation`` exists only inside a single response.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from movie_enricher.models.movie import EnrichedMovie, Movie

_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class EnrichmentInput(BaseModel):
    """Facts about one movie submitted to the oracle for enrichment."""

    model_config = _MODEL_CONFIG

    movie: Movie
    avg_rating: float
    rating_count: int
    company_roi: Optional[float] = None


class UserPreferences(BaseModel):
    """A user's taste profile derived from their rating history.

    Attributes:
        user_id: The user analysed.
        favorite_genres: Oracle-ranked genres, most preferred first.
        average_rating: Mean over the user's entire rating set.
        preferred_emotional_tones: Oracle-derived tone tags.
        budget_preference: ``High-budget``, ``Mid-budget``, ``Indie`` or ``Mixed``.
        summary: Free-text description of the user's taste.
    """

    model_config = _MODEL_CONFIG

    user_id: int
    favorite_genres: list[str] = Field(default_factory=list)
    average_rating: float
    preferred_emotional_tones: list[str] = Field(default_factory=list)
    budget_preference: str = "Mixed"
    summary: str = "User preferences could not be determined"


class Recommendation(BaseModel):
    """One recommended movie with the oracle's score and reasoning."""

    model_config = _MODEL_CONFIG

    movie: EnrichedMovie
    score: float = 0.0
    reasoning: str = "Recommended based on your preferences"
