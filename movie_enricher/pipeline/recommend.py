"""
Recommendation pipeline: preference derivation, candidate selection, ranking.

Flow for ``recommend(user_id, count)``
--------------------------------------
  1. Load the user's ratings (most recent first). None → NotFoundError.
  2. Derive ``UserPreferences`` via the oracle from the 20 most recent rated
     movies plus statistics over the *entire* rating set.
  3. Candidates = every enriched movie the user has not rated.
     None left → EmptyResultError.
  4. Truncate candidates to the first 50 in storage order (prompt-size cap;
     later candidates are never shown to the oracle, whatever their quality).
  5. Ask the oracle to pick and score up to ``count`` movies.
  6. Reconcile returned ids against the candidate set.  Unknown or already
     rated ids are dropped silently, so fewer than ``count`` results is normal.

Unlike batch enrichment there is no defaulting on malformed output here: an
unparseable preference or ranking completion raises ``OracleError``. An empty
preference completion is read as ``{}`` and yields the default profile.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from movie_enricher.config import AppConfig
from movie_enricher.db.store import MovieStore
from movie_enricher.errors import EmptyResultError, NotFoundError, OracleError, require_in_range
from movie_enricher.models.movie import EnrichedMovie, Rating
from movie_enricher.models.recommendation import Recommendation, UserPreferences
from movie_enricher.oracle.base import Oracle
from movie_enricher.oracle.parsing import parse_json, parse_json_object
from movie_enricher.oracle.prompts import build_preferences_request, build_recommendations_request

logger = logging.getLogger(__name__)

DEFAULT_REASONING = "Recommended based on your preferences"


class RecommendationPipeline:
    """Derives user preferences and oracle-ranked recommendations.

    Args:
        store:  Open ``MovieStore``.
        oracle: Oracle used for preference analysis and ranking.
        config: AppConfig (``[recommendation]`` bounds).
    """

    def __init__(self, store: MovieStore, oracle: Oracle, config: AppConfig) -> None:
        self.store  = store
        self.oracle = oracle
        self.config = config

    # ── Preferences ───────────────────────────────────────────────────────────

    def derive_preferences(self, user_id: int) -> UserPreferences:
        """Analyse ``user_id``'s rating history.

        Raises:
            NotFoundError: If the user has no ratings.
            OracleError:   If the oracle call fails or its output is not a JSON object.
        """
        return self._preferences_from(user_id, self._user_ratings(user_id))

    def _user_ratings(self, user_id: int) -> list[Rating]:
        ratings = self.store.ratings.get_by_user(user_id)
        if not ratings:
            raise NotFoundError(f"User {user_id} has no ratings")
        return ratings

    def _preferences_from(self, user_id: int, ratings: list[Rating]) -> UserPreferences:
        logger.info("Analyzing preferences for user %d", user_id)

        movies = {
            m.movie_id: m
            for m in self.store.movies.get_by_ids(sorted({r.movie_id for r in ratings}))
        }
        sample: list[dict[str, Any]] = []
        for rating in ratings[: self.config.recommendation.preference_sample_size]:
            movie = movies.get(rating.movie_id)
            if movie is None:
                continue
            sample.append(
                {
                    "title": movie.title,
                    "genres": movie.genres,
                    "overview": movie.overview,
                    "rating": rating.rating,
                    "budget": movie.budget,
                    "revenue": movie.revenue,
                }
            )

        avg_rating = sum(r.rating for r in ratings) / len(ratings)

        content = self.oracle.complete(
            build_preferences_request(len(ratings), avg_rating, sample)
        ).strip() or "{}"
        try:
            parsed = parse_json_object(content)
        except OracleError as exc:
            logger.error("Unparseable preference output for user %d: %r", user_id, content[:200])
            raise OracleError("Failed to analyze user preferences", raw_content=content) from exc

        return UserPreferences(
            user_id=user_id,
            favorite_genres=_str_list(parsed.get("favoriteGenres")),
            average_rating=avg_rating,
            preferred_emotional_tones=_str_list(parsed.get("preferredEmotionalTones")),
            budget_preference=_str_or(parsed.get("budgetPreference"), "Mixed"),
            summary=_str_or(parsed.get("summary"), "User preferences could not be determined"),
        )

    # ── Candidates ────────────────────────────────────────────────────────────

    def candidate_movies(
        self,
        user_id: int,
        ratings: Optional[list[Rating]] = None,
    ) -> list[EnrichedMovie]:
        """Enriched movies the user has not rated, in storage order.

        Raises:
            EmptyResultError: If every enriched movie is already rated (or none exist).
        """
        if ratings is None:
            ratings = self.store.ratings.get_by_user(user_id)
        rated_ids = {r.movie_id for r in ratings}

        candidates = [
            m for m in self.store.enrichments.list_enriched_movies()
            if m.movie_id not in rated_ids
        ]
        if not candidates:
            raise EmptyResultError("No unrated movies available for recommendations")
        return candidates

    # ── Recommendations ───────────────────────────────────────────────────────

    def recommend(
        self,
        user_id: int,
        count: Optional[int] = None,
        filters: Optional[str] = None,
    ) -> list[Recommendation]:
        """Return up to ``count`` oracle-ranked recommendations for ``user_id``.

        Args:
            user_id: User to recommend for.
            count:   1..``recommendation.max_count``; default ``default_count``.
            filters: Free-text constraints forwarded to the oracle verbatim.

        Raises:
            ValidationError:  If ``count`` is out of range.
            NotFoundError:    If the user has no ratings.
            EmptyResultError: If there are no unrated enriched movies.
            OracleError:      If either oracle call fails or is unparseable.
        """
        cfg = self.config.recommendation
        count = cfg.default_count if count is None else count
        require_in_range("count", count, 1, cfg.max_count)
        logger.info("Generating %d recommendations for user %d", count, user_id)

        ratings = self._user_ratings(user_id)
        preferences = self._preferences_from(user_id, ratings)
        candidates = self.candidate_movies(user_id, ratings=ratings)
        shown = candidates[: cfg.candidate_cap]
        if len(candidates) > len(shown):
            logger.debug(
                "Truncated %d candidates to %d for the ranking prompt",
                len(candidates), len(shown),
            )

        content = self.oracle.complete(
            build_recommendations_request(preferences, shown, count, filters)
        )
        picks = _parse_picks(content)
        return reconcile_picks(picks[:count], candidates)


# ── Reconciliation ────────────────────────────────────────────────────────────


def reconcile_picks(
    picks: list[Any],
    candidates: list[EnrichedMovie],
) -> list[Recommendation]:
    """Map oracle picks back to full candidate records.

    Picks that are not objects, lack a usable ``movieId``, or name a movie
    outside ``candidates`` are dropped without error.
    """
    by_id = {m.movie_id: m for m in candidates}
    recommendations: list[Recommendation] = []
    for pick in picks:
        if not isinstance(pick, dict):
            continue
        movie = by_id.get(_as_int(pick.get("movieId")))
        if movie is None:
            logger.debug("Dropping pick with unknown movieId=%r", pick.get("movieId"))
            continue
        recommendations.append(
            Recommendation(
                movie=movie,
                score=_as_float(pick.get("score")),
                reasoning=_str_or(pick.get("reasoning"), DEFAULT_REASONING),
            )
        )
    return recommendations


def _parse_picks(content: str) -> list[Any]:
    try:
        parsed = parse_json(content)
    except OracleError as exc:
        raise OracleError("Failed to generate recommendations", raw_content=content) from exc

    if isinstance(parsed, dict):
        parsed = parsed.get("recommendations")
    if not isinstance(parsed, list):
        raise OracleError("Failed to generate recommendations", raw_content=content)
    return parsed


def _as_int(value: object) -> Optional[int]:
    """Accept JSON integers and integral floats only; ids are never coerced from text."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_float(value: object) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0


def _str_list(value: object) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if str(v).strip()]
    if isinstance(value, str) and value.strip():
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def _str_or(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default
