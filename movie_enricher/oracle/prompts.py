"""
Prompt builders — one per oracle call.

Each builder returns an ``OracleRequest`` carrying the system instruction,
the user prompt with the structured facts, and the call's sampling budget:

    call             temperature  max_tokens  json_mode
    enrichment           0.3          500        no
    preferences          0.3          800        yes
    recommendations      0.5         1500        yes
    query                0.4         1500        yes
    comparison           0.4         2000        yes

Prompt-size bounds (50 candidates, 100 query movies, overview truncation)
are applied by the pipelines and here respectively; the builders never
query the store.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from movie_enricher.models.movie import EnrichedMovie
from movie_enricher.models.recommendation import EnrichmentInput, UserPreferences
from movie_enricher.oracle.base import OracleMessage, OracleRequest

EMOTIONAL_GENRE_OPTIONS = (
    "fast-paced, emotional, spectacle, contemplative, intense, "
    "uplifting, dark, whimsical, gritty, romantic"
)

_ENRICHMENT_SYSTEM = (
    "You are a film industry analyst expert at evaluating movies for awards, "
    "popularity, and emotional resonance. Always respond with valid JSON only."
)
_PREFERENCES_SYSTEM = (
    "You are an expert at analyzing movie preferences and user behavior. "
    "Always respond with valid JSON only."
)
_RECOMMENDATIONS_SYSTEM = (
    "You are an expert movie recommendation system. Always respond with valid JSON only."
)
_QUERY_SYSTEM = (
    "You are a helpful movie database assistant. Provide clear, informative "
    "responses to user queries about movies."
)
_COMPARISON_SYSTEM = (
    "You are an expert film critic and analyst. Provide detailed, insightful "
    "movie comparisons. Always respond with valid JSON."
)


def _dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _request(
    system: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
    json_mode: bool,
    purpose: str,
) -> OracleRequest:
    return OracleRequest(
        messages=(
            OracleMessage(role="system", content=system),
            OracleMessage(role="user", content=prompt),
        ),
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=json_mode,
        purpose=purpose,
    )


# ── Enrichment ────────────────────────────────────────────────────────────────


def build_enrichment_request(data: EnrichmentInput) -> OracleRequest:
    """Ask for award potential, popularity-quality index, and emotional genres."""
    movie = data.movie
    prompt = f"""Analyze the following movie and provide three specific attributes:

Movie Information:
- Title: {movie.title}
- Overview: {movie.overview}
- Runtime: {movie.runtime} minutes
- Budget: ${movie.budget:,.0f}
- Revenue: ${movie.revenue:,.0f}
- Release Date: {movie.release_date}
- Genres: {movie.genres}
- Average Rating: {data.avg_rating:.2f}/5.0
- Number of Ratings: {data.rating_count}

Please provide the following analyses:

1. **Award Potential** (Category: High/Medium/Low)
   - Consider: Does the overview sound like "award-bait" (prestige, critical tone)?
   - Runtime factor: Longer dramas (>120min) often correlate with awards
   - Budget/Revenue ratio: Modest budget with acclaim suggests prestige
   - Year-normalized rating quality

2. **Popularity-Quality Index** (Numeric score 0-100)
   - Combine rating count x average rating (weighted)
   - Sentiment of overview (emotional appeal)
   - Correlation with revenue (does popularity translate to box office?)

3. **Emotional Genre Classification** (Multiple categories allowed)
   - Classify into nuanced emotional categories beyond standard genres
   - Options: {EMOTIONAL_GENRE_OPTIONS}
   - Provide 1-3 categories that best describe the movie's emotional tone

Respond ONLY with valid JSON in this exact format (no markdown, no extra text):
{{
  "awardPotential": "High|Medium|Low",
  "popularityQualityIndex": 0-100,
  "emotionalGenres": "category1, category2"
}}"""
    return _request(_ENRICHMENT_SYSTEM, prompt, 0.3, 500, False, "enrichment")


# ── Preferences ───────────────────────────────────────────────────────────────


def build_preferences_request(
    rating_count: int,
    avg_rating: float,
    sample: Sequence[dict[str, Any]],
) -> OracleRequest:
    """Ask for favorite genres, tones, budget preference, and a summary.

    Args:
        rating_count: Size of the user's entire rating set.
        avg_rating:   Mean over the entire rating set.
        sample:       Most recent rated movies with the user's score.
    """
    prompt = f"""Analyze this user's movie preferences based on their rating history:

User has rated {rating_count} movies with an average rating of {avg_rating:.2f}/5.0

Sample of rated movies (showing rating and details):
{_dumps(list(sample))}

Please provide a comprehensive analysis including:
1. Favorite genres (top 3-5)
2. Preferred emotional tones (e.g., "emotional, fast-paced, dark")
3. Budget preference (High-budget blockbusters, Mid-budget, Indie/Low-budget, or Mixed)
4. A brief summary (2-3 sentences) of this user's taste in movies

Respond ONLY with valid JSON in this exact format:
{{
  "favoriteGenres": ["genre1", "genre2", "genre3"],
  "preferredEmotionalTones": ["tone1", "tone2"],
  "budgetPreference": "High-budget|Mid-budget|Indie|Mixed",
  "summary": "2-3 sentence summary of user's preferences"
}}"""
    return _request(_PREFERENCES_SYSTEM, prompt, 0.3, 800, True, "preferences")


# ── Recommendations ───────────────────────────────────────────────────────────


def candidate_context(movie: EnrichedMovie) -> dict[str, Any]:
    """Compact projection of a candidate for the ranking prompt."""
    return {
        "movieId": movie.movie_id,
        "title": movie.title,
        "genres": movie.genres,
        "overview": movie.overview[:150],
        "budget": movie.budget,
        "revenue": movie.revenue,
        "awardPotential": movie.award_potential,
        "emotionalGenres": movie.emotional_genres,
        "popularityQualityIndex": movie.popularity_quality_index,
        "productionEffectivenessScore": movie.production_effectiveness_score,
    }


def build_recommendations_request(
    preferences: UserPreferences,
    candidates: Sequence[EnrichedMovie],
    count: int,
    filters: Optional[str] = None,
) -> OracleRequest:
    """Ask the oracle to pick and score ``count`` movies from ``candidates``."""
    prompt = f"""Generate {count} personalized movie recommendations for a user with these preferences:

User Preferences:
{_dumps(preferences.model_dump(by_alias=True))}

Additional Filters: {filters or "None"}

Available Movies (showing enriched data):
{_dumps([candidate_context(m) for m in candidates])}

Select {count} movies that best match the user's preferences. Consider:
- Genre alignment
- Emotional tone match
- Budget preferences
- Award potential if user rates highly-rated films
- Production effectiveness and quality

Respond ONLY with a valid JSON object holding the recommended movie IDs and reasoning:
{{
  "recommendations": [
    {{
      "movieId": 123,
      "score": 95,
      "reasoning": "Brief explanation why this matches user preferences"
    }}
  ]
}}"""
    return _request(_RECOMMENDATIONS_SYSTEM, prompt, 0.5, 1500, True, "recommendations")


# ── Query & comparison ────────────────────────────────────────────────────────


def query_context(movie: EnrichedMovie) -> dict[str, Any]:
    """Projection of an enriched movie for the free-form query prompt."""
    return {
        "movieId": movie.movie_id,
        "title": movie.title,
        "genres": movie.genres,
        "overview": movie.overview[:100],
        "budget": movie.budget,
        "revenue": movie.revenue,
        "runtime": movie.runtime,
        "releaseDate": movie.release_date,
        "awardPotential": movie.award_potential,
        "emotionalGenres": movie.emotional_genres,
        "popularityQualityIndex": movie.popularity_quality_index,
        "productionCompanyRollingROI": movie.production_company_rolling_roi,
        "productionEffectivenessScore": movie.production_effectiveness_score,
    }


def comparison_context(movie: EnrichedMovie) -> dict[str, Any]:
    """Like ``query_context`` but with the full overview."""
    context = query_context(movie)
    context["overview"] = movie.overview
    return context


def _user_block(heading: str, preferences: Optional[UserPreferences]) -> str:
    if preferences is None:
        return ""
    return f"\n\n{heading}:\n{_dumps(preferences.model_dump(by_alias=True))}"


def build_query_request(
    query: str,
    movies: Sequence[EnrichedMovie],
    preferences: Optional[UserPreferences] = None,
) -> OracleRequest:
    """Free-form question answered against a slice of the enriched catalog."""
    user_context = ""
    if preferences is not None:
        user_context = _user_block(f"User Context (User ID: {preferences.user_id})", preferences)

    prompt = f"""You are a movie database assistant. Answer the following query using the available movie data.

Query: "{query}"
{user_context}

Available Movies Database (showing enriched attributes):
{_dumps([query_context(m) for m in movies])}

Provide a helpful, detailed response to the query. You can:
- Recommend specific movies
- Compare movies
- Provide statistics or insights
- Answer questions about genres, budgets, etc.

Format your response in a clear, user-friendly way. Return a JSON object; put free text under a "response" key."""
    return _request(_QUERY_SYSTEM, prompt, 0.4, 1500, True, "query")


def build_comparison_request(
    movies: Sequence[EnrichedMovie],
    preferences: Optional[UserPreferences] = None,
) -> OracleRequest:
    """Structured side-by-side comparison of two or more enriched movies."""
    user_context = _user_block("User Preferences (for personalized comparison)", preferences)
    personal_point = (
        "7. Which movie would best suit this specific user based on their preferences"
        if preferences is not None
        else ""
    )

    prompt = f"""Compare these movies in detail:

Movies to Compare:
{_dumps([comparison_context(m) for m in movies])}
{user_context}

Provide a comprehensive comparison including:
1. Overview of each movie
2. Key similarities and differences
3. Budget and revenue comparison
4. Award potential comparison
5. Emotional tone differences
6. Which movie might appeal to different types of viewers
{personal_point}

Respond with a detailed, structured comparison in JSON format:
{{
  "summary": "Brief overall comparison",
  "movies": [
    {{
      "movieId": 123,
      "title": "Movie Title",
      "strengths": ["strength1", "strength2"],
      "bestFor": "Type of viewer who would enjoy this"
    }}
  ],
  "recommendation": "If user context provided, which movie to choose and why"
}}"""
    return _request(_COMPARISON_SYSTEM, prompt, 0.4, 2000, True, "comparison")
