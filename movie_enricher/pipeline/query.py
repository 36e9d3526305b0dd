"""
Free-form query and movie comparison pipelines.

Both are thin pass-throughs: assemble a bounded context from the enriched
catalog, optionally add the user's preference profile, and relay the
oracle's answer.

Personalization is best-effort on both paths: if preference derivation
fails for any reason (no ratings, oracle failure, unparseable output) the
failure is logged and the request proceeds without a user block.

Output handling differs:
  answer()  — parsed JSON when the completion parses, else ``{"response": text}``.
  compare() — must parse as a JSON object, else ``OracleError``; an empty
              completion is read as ``{}``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from movie_enricher.config import AppConfig
from movie_enricher.db.store import MovieStore
from movie_enricher.errors import NotFoundError, OracleError, ValidationError
from movie_enricher.models.recommendation import UserPreferences
from movie_enricher.oracle.base import Oracle
from movie_enricher.oracle.parsing import parse_json, parse_json_object
from movie_enricher.oracle.prompts import build_comparison_request, build_query_request
from movie_enricher.pipeline.recommend import RecommendationPipeline

logger = logging.getLogger(__name__)


class QueryPipeline:
    """Answers natural-language questions and compares enriched movies.

    Args:
        store:       Open ``MovieStore``.
        oracle:      Oracle used for answers and comparisons.
        config:      AppConfig (``[recommendation]`` context bounds).
        preferences: Pipeline used for best-effort personalization; built
                     over the same store and oracle when omitted.
    """

    def __init__(
        self,
        store: MovieStore,
        oracle: Oracle,
        config: AppConfig,
        preferences: Optional[RecommendationPipeline] = None,
    ) -> None:
        self.store  = store
        self.oracle = oracle
        self.config = config
        self.preferences = preferences or RecommendationPipeline(store, oracle, config)

    def answer(self, query: str, user_id: Optional[int] = None) -> Any:
        """Answer ``query`` against the first 100 enriched movies.

        Returns:
            The parsed JSON completion, or ``{"response": text}`` when the
            completion is not JSON.

        Raises:
            ValidationError: If ``query`` is blank.
            OracleError:     If the oracle call itself fails.
        """
        if not query or not query.strip():
            raise ValidationError("Query string is required")
        logger.info("Processing natural language query: %r", query)

        movies = self.store.enrichments.list_enriched_movies()[
            : self.config.recommendation.query_context_size
        ]
        preferences = self._best_effort_preferences(user_id)

        content = self.oracle.complete(build_query_request(query, movies, preferences))
        try:
            return parse_json(content)
        except OracleError:
            return {"response": content}

    def compare(self, movie_ids: list[int], user_id: Optional[int] = None) -> dict[str, Any]:
        """Compare two or more enriched movies.

        Duplicate ids are collapsed before the two-movie minimum is checked.

        Raises:
            ValidationError: If fewer than two distinct ids are given.
            NotFoundError:   If any id has no enrichment.
            OracleError:     If the oracle call fails or the output is not a JSON object.
        """
        unique_ids = list(dict.fromkeys(movie_ids))
        if len(unique_ids) < 2:
            raise ValidationError("At least 2 movies are required for comparison")
        logger.info("Comparing movies: %s", ", ".join(str(i) for i in unique_ids))

        enriched = {m.movie_id: m for m in self.store.enrichments.list_enriched_movies()}
        missing = [i for i in unique_ids if i not in enriched]
        if missing:
            raise NotFoundError(f"Some movies not found or not enriched: {missing}")
        movies = [enriched[i] for i in unique_ids]

        preferences = self._best_effort_preferences(user_id)

        content = self.oracle.complete(
            build_comparison_request(movies, preferences)
        ).strip() or "{}"
        try:
            return parse_json_object(content)
        except OracleError as exc:
            logger.error("Unparseable comparison output: %r", content[:200])
            raise OracleError("Failed to compare movies", raw_content=content) from exc

    def _best_effort_preferences(self, user_id: Optional[int]) -> Optional[UserPreferences]:
        if user_id is None:
            return None
        try:
            return self.preferences.derive_preferences(user_id)
        except Exception as exc:
            logger.warning(
                "Continuing without user context for user %d: %s", user_id, exc
            )
            return None
