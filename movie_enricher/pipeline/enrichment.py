"""
Batch enrichment orchestration.

The ``EnrichmentOrchestrator`` runs one batch in a fixed sequence:

  Idle → Selecting → Processing(0) → … → Processing(n-1) → Done

  Selecting:      Linear scan of the catalog in storage order, admitting
                  movies with at least one rating, stopping at movie_count.
                  No ranking and no diversity guarantee.
  Processing(i):  rating stats → rolling ROI → oracle attributes →
                  production effectiveness → upsert.  Strictly sequential.

Failure isolation
-----------------
- Per-movie failure (oracle transport error, storage error, bad data):
  recorded as a failed ``ItemOutcome``, logged, and the loop continues.
- Malformed oracle output (non-JSON, missing keys, a 0 index): not a failure;
  each unusable attribute falls back to Medium / 50 / "emotional".
- Nothing raised inside the loop escapes ``run()``.

``EnrichmentRunResult.enrichments`` is exactly the list of movies that were
enriched and persisted; fewer than ``movie_count`` is normal.

Pacing
------
After each successful movie except the last, the orchestrator sleeps
``enrichment.inter_call_delay_ms`` (500 ms). This is a fixed open-loop delay;
there is no retry and no backoff.

Persistence is idempotent (upsert by movieId) but not atomic: a crash midway
leaves the already-processed movies enriched, and the next run overwrites.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from movie_enricher.config import AppConfig
from movie_enricher.db.store import MovieStore
from movie_enricher.errors import OracleError, require_in_range
from movie_enricher.metrics.financial import compute_rolling_roi, production_effectiveness
from movie_enricher.models.movie import VALID_AWARD_POTENTIALS, Movie, MovieEnrichment
from movie_enricher.models.recommendation import EnrichmentInput
from movie_enricher.oracle.base import Oracle
from movie_enricher.oracle.parsing import parse_json_object
from movie_enricher.oracle.prompts import build_enrichment_request

logger = logging.getLogger(__name__)

DEFAULT_AWARD_POTENTIAL = "Medium"
DEFAULT_POPULARITY_QUALITY_INDEX = 50.0
DEFAULT_EMOTIONAL_GENRES = "emotional"


class RunPhase(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    PROCESSING = "processing"
    DONE = "done"


# ── Result types ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OracleAttributes:
    """The three oracle-inferred enrichment attributes.

    Attributes:
        award_potential:          ``High``, ``Medium`` or ``Low``.
        popularity_quality_index: 0–100.
        emotional_genres:         Comma-joined tone tags.
        defaulted:                Names of attributes that fell back to defaults.
    """

    award_potential: str = DEFAULT_AWARD_POTENTIAL
    popularity_quality_index: float = DEFAULT_POPULARITY_QUALITY_INDEX
    emotional_genres: str = DEFAULT_EMOTIONAL_GENRES
    defaulted: tuple[str, ...] = ()


@dataclass
class ItemOutcome:
    """Outcome of the per-movie pipeline for one selected movie.

    Exactly one of ``enrichment`` / ``error`` is set.

    Attributes:
        movie_id:   Catalog id of the movie.
        title:      Catalog title (for logs and CLI output).
        enrichment: The persisted record when the item succeeded.
        error:      Exception message when the item failed.
    """

    movie_id:   int
    title:      str
    enrichment: Optional[MovieEnrichment] = None
    error:      Optional[str] = None

    @property
    def success(self) -> bool:
        return self.enrichment is not None


@dataclass
class EnrichmentRunResult:
    """Complete result of one enrichment batch.

    Attributes:
        requested:   The movie_count asked for.
        selected:    How many movies passed selection.
        outcomes:    One ``ItemOutcome`` per selected movie, in processing order.
        started_at:  UTC datetime when the run started.
        finished_at: UTC datetime when the run finished.
    """

    requested:   int
    selected:    int = 0
    outcomes:    list[ItemOutcome] = field(default_factory=list)
    started_at:  Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def enrichments(self) -> list[MovieEnrichment]:
        """Records for exactly the movies that succeeded, in processing order."""
        return [o.enrichment for o in self.outcomes if o.enrichment is not None]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def status(self) -> str:
        """``"empty"``, ``"success"``, ``"partial"`` or ``"failed"``."""
        if not self.outcomes:
            return "empty"
        if not self.failed:
            return "success"
        if self.enrichments:
            return "partial"
        return "failed"


# ── Orchestrator ──────────────────────────────────────────────────────────────


class EnrichmentOrchestrator:
    """Selects, enriches, and persists a batch of movies one at a time.

    Args:
        store:  Open ``MovieStore``.
        oracle: Oracle used for the three inferred attributes.
        config: AppConfig for this run.
        sleep:  Delay function (seconds); tests pass a recorder.
    """

    def __init__(
        self,
        store: MovieStore,
        oracle: Oracle,
        config: AppConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store  = store
        self.oracle = oracle
        self.config = config
        self._sleep = sleep
        self.phase: RunPhase = RunPhase.IDLE

    def run(self, movie_count: Optional[int] = None) -> EnrichmentRunResult:
        """Enrich up to ``movie_count`` rated movies.

        Args:
            movie_count: Batch size, 1..``enrichment.max_movie_count``.
                Defaults to ``enrichment.default_movie_count`` (75).

        Returns:
            ``EnrichmentRunResult``; ``.enrichments`` lists the successes.

        Raises:
            ValidationError: If ``movie_count`` is out of range. Raised before
                any work starts.
        """
        cfg = self.config.enrichment
        count = cfg.default_movie_count if movie_count is None else movie_count
        require_in_range("movie_count", count, 1, cfg.max_movie_count)

        result = EnrichmentRunResult(requested=count, started_at=datetime.now(tz=timezone.utc))
        logger.info("Starting enrichment run for %d movies", count)

        self.phase = RunPhase.SELECTING
        catalog = self.store.movies.list_movies()
        movies  = self.select_movies(count, catalog=catalog)
        result.selected = len(movies)
        logger.info("Selected %d movies with ratings", len(movies))

        self.store.enrichments.ensure_table()

        self.phase = RunPhase.PROCESSING
        delay_s = cfg.inter_call_delay_ms / 1000
        for i, movie in enumerate(movies):
            logger.info("Enriching %d/%d: %s (%d)", i + 1, len(movies), movie.title, movie.movie_id)
            outcome = self._process_one(movie, catalog)
            result.outcomes.append(outcome)

            if outcome.success and i < len(movies) - 1 and delay_s > 0:
                self._sleep(delay_s)

        self.phase = RunPhase.DONE
        result.finished_at = datetime.now(tz=timezone.utc)
        logger.info(
            "Enrichment run %s | enriched=%d | failed=%d | selected=%d",
            result.status, len(result.enrichments), len(result.failed), result.selected,
        )
        return result

    def select_movies(
        self,
        movie_count: int,
        catalog: Optional[list[Movie]] = None,
    ) -> list[Movie]:
        """Return the first ``movie_count`` catalog movies with at least one rating.

        Args:
            movie_count: Maximum number of movies to admit.
            catalog:     Catalog in storage order; loaded from the store if omitted.
        """
        if catalog is None:
            catalog = self.store.movies.list_movies()

        selected: list[Movie] = []
        for movie in catalog:
            if len(selected) >= movie_count:
                break
            if self.store.ratings.get_rating_stats(movie.movie_id).count > 0:
                selected.append(movie)
        return selected

    def enrich_movie(
        self,
        movie: Movie,
        catalog: Optional[list[Movie]] = None,
    ) -> MovieEnrichment:
        """Build the enrichment record for one movie without persisting it.

        Raises:
            OracleError: On oracle transport or service failure.
            sqlite3.Error: On storage failure.
        """
        if catalog is None:
            catalog = self.store.movies.list_movies()

        stats = self.store.ratings.get_rating_stats(movie.movie_id)
        company_roi = compute_rolling_roi(movie, catalog, window=self.config.enrichment.roi_window)

        attributes = self.request_attributes(
            EnrichmentInput(
                movie=movie,
                avg_rating=stats.avg_rating,
                rating_count=stats.count,
                company_roi=company_roi,
            )
        )

        return MovieEnrichment(
            movie_id=movie.movie_id,
            award_potential=attributes.award_potential,
            popularity_quality_index=attributes.popularity_quality_index,
            emotional_genres=attributes.emotional_genres,
            production_company_rolling_roi=company_roi,
            production_effectiveness_score=production_effectiveness(movie, stats.avg_rating),
        )

    def request_attributes(self, data: EnrichmentInput) -> OracleAttributes:
        """Ask the oracle for the three inferred attributes.

        Unparseable output and missing keys fall back to defaults; only a
        failed oracle call raises.

        Raises:
            OracleError: If the oracle call itself fails.
        """
        content = self.oracle.complete(build_enrichment_request(data))
        attributes = parse_enrichment_attributes(content)
        if attributes.defaulted:
            logger.warning(
                "Oracle output for movie %d defaulted: %s",
                data.movie.movie_id, ", ".join(attributes.defaulted),
            )
        return attributes

    # ── Private helpers ───────────────────────────────────────────────────────

    def _process_one(self, movie: Movie, catalog: list[Movie]) -> ItemOutcome:
        try:
            enrichment = self.enrich_movie(movie, catalog=catalog)
            self.store.enrichments.upsert(enrichment)
        except Exception as exc:
            logger.error("Error enriching %s (%d): %s", movie.title, movie.movie_id, exc)
            return ItemOutcome(movie_id=movie.movie_id, title=movie.title, error=str(exc))

        logger.info("Completed: %s", movie.title)
        return ItemOutcome(movie_id=movie.movie_id, title=movie.title, enrichment=enrichment)


# ── Oracle output parsing ─────────────────────────────────────────────────────


def parse_enrichment_attributes(content: str) -> OracleAttributes:
    """Decode the enrichment completion, defaulting each unusable attribute.

    Args:
        content: Raw completion text.

    Returns:
        ``OracleAttributes``; ``defaulted`` names every attribute that fell back.
    """
    try:
        parsed = parse_json_object(content)
    except OracleError as exc:
        logger.warning("Unparseable enrichment output (%s): %r", exc, content[:200])
        return OracleAttributes(
            defaulted=("awardPotential", "popularityQualityIndex", "emotionalGenres")
        )

    defaulted: list[str] = []

    award = _normalise_award(parsed.get("awardPotential"))
    if award is None:
        award = DEFAULT_AWARD_POTENTIAL
        defaulted.append("awardPotential")

    index = _coerce_index(parsed.get("popularityQualityIndex"))
    if index is None:
        index = DEFAULT_POPULARITY_QUALITY_INDEX
        defaulted.append("popularityQualityIndex")

    genres = _join_genres(parsed.get("emotionalGenres"))
    if not genres:
        genres = DEFAULT_EMOTIONAL_GENRES
        defaulted.append("emotionalGenres")

    return OracleAttributes(
        award_potential=award,
        popularity_quality_index=index,
        emotional_genres=genres,
        defaulted=tuple(defaulted),
    )


def _normalise_award(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    for option in VALID_AWARD_POTENTIALS:
        if value.strip().lower() == option.lower():
            return option
    return None


def _coerce_index(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number == 0:  # NaN, or 0 read as "no score"
        return None
    return max(0.0, min(100.0, number))


def _join_genres(value: object) -> str:
    if isinstance(value, list):
        return ", ".join(str(v).strip() for v in value if str(v).strip())
    if isinstance(value, str):
        return value.strip()
    return ""
