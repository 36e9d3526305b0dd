"""Pydantic domain models: catalog, ratings, enrichments, and recommendations."""

from .movie import EnrichedMovie, Movie, MovieEnrichment, Rating, RatingStats
from .recommendation import EnrichmentInput, Recommendation, UserPreferences

__all__ = [
    "EnrichedMovie",
    "EnrichmentInput",
    "Movie",
    "MovieEnrichment",
    "Rating",
    "RatingStats",
    "Recommendation",
    "UserPreferences",
]
