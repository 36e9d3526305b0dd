"""
ASCII terminal formatters for CLI commands.

All formatters accept models or result objects and return plain multi-line
strings suitable for ``typer.echo()``. No third-party dependencies.

Missing rolling ROI renders as ``N/A``; it means the primary production
company had no prior release with positive budget and revenue.
"""

from __future__ import annotations

from typing import Optional

from movie_enricher.models.movie import EnrichedMovie
from movie_enricher.models.recommendation import Recommendation, UserPreferences
from movie_enricher.pipeline.enrichment import EnrichmentRunResult


def _fmt_roi(roi: Optional[float]) -> str:
    return f"{roi:.2f}%" if roi is not None else "N/A"


# ── Enrichment ────────────────────────────────────────────────────────────────


def format_enrichment_run(
    result: EnrichmentRunResult,
    samples: list[EnrichedMovie],
    sample_size: int = 3,
) -> str:
    """Summarise a batch enrichment run, followed by the first few results.

    Args:
        result:      Run result from ``EnrichmentOrchestrator.run()``.
        samples:     Enriched movies to show (usually the full joined table).
        sample_size: How many samples to print.

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    lines.append("")
    lines.append("=== Enrichment Summary ===")
    lines.append(f"  Status:    {result.status}")
    lines.append(f"  Requested: {result.requested}")
    lines.append(f"  Selected:  {result.selected}")
    lines.append(f"  Enriched:  {len(result.enrichments)}")
    lines.append(f"  Failed:    {len(result.failed)}")
    for outcome in result.failed:
        lines.append(f"    - {outcome.title} ({outcome.movie_id}): {outcome.error}")

    shown = samples[:sample_size]
    if shown:
        lines.append("")
        lines.append(f"=== Sample Results (first {len(shown)}) ===")
        for i, movie in enumerate(shown, start=1):
            lines.append("")
            lines.append(f"{i}. {movie.title} ({movie.movie_id})")
            lines.append(f"   Award Potential:          {movie.award_potential}")
            lines.append(f"   Popularity-Quality Index: {movie.popularity_quality_index}")
            lines.append(f"   Emotional Genres:         {movie.emotional_genres}")
            lines.append(
                f"   Company Rolling ROI:      {_fmt_roi(movie.production_company_rolling_roi)}"
            )
            lines.append(
                f"   Production Effectiveness: {movie.production_effectiveness_score:.2f}"
            )
    return "\n".join(lines)


def format_enrichments_table(movies: list[EnrichedMovie]) -> str:
    """Format the joined enrichment table, one row per movie."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Enriched Movies ({len(movies)}) ===")
    if not movies:
        lines.append("  (no enrichments yet; run 'enrich' first)")
        return "\n".join(lines)

    header = (
        f"  {'ID':>7}  {'Title':<34}  {'Award':<6}  {'PQI':>5}  "
        f"{'ROI':>10}  {'Effect.':>7}  Tones"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for m in movies:
        lines.append(
            f"  {m.movie_id:>7}  {m.title[:34]:<34}  {m.award_potential:<6}  "
            f"{m.popularity_quality_index:>5.1f}  "
            f"{_fmt_roi(m.production_company_rolling_roi):>10}  "
            f"{m.production_effectiveness_score:>7.2f}  {m.emotional_genres[:40]}"
        )
    return "\n".join(lines)


def format_enriched_movie(movie: EnrichedMovie) -> str:
    """Format one enriched movie with its catalog facts."""
    lines = [
        "",
        f"=== {movie.title} ({movie.movie_id}) ===",
        f"  IMDb:                     {movie.imdb_id or '-'}",
        f"  Released:                 {movie.release_date or '-'}",
        f"  Budget / Revenue:         ${movie.budget:,.0f} / ${movie.revenue:,.0f}",
        f"  Genres:                   {movie.genres or '-'}",
        f"  Award Potential:          {movie.award_potential}",
        f"  Popularity-Quality Index: {movie.popularity_quality_index}",
        f"  Emotional Genres:         {movie.emotional_genres}",
        f"  Company Rolling ROI:      {_fmt_roi(movie.production_company_rolling_roi)}",
        f"  Production Effectiveness: {movie.production_effectiveness_score:.2f}",
    ]
    return "\n".join(lines)


# ── Users ─────────────────────────────────────────────────────────────────────


def format_preferences(preferences: UserPreferences) -> str:
    """Format a derived preference profile."""
    lines = [
        "",
        f"=== Preferences for user {preferences.user_id} ===",
        f"  Average rating:  {preferences.average_rating:.2f}",
        f"  Favourite genres: {', '.join(preferences.favorite_genres) or '-'}",
        f"  Emotional tones:  {', '.join(preferences.preferred_emotional_tones) or '-'}",
        f"  Budget:           {preferences.budget_preference}",
        f"  Summary:          {preferences.summary}",
    ]
    return "\n".join(lines)


def format_recommendations(user_id: int, recommendations: list[Recommendation]) -> str:
    """Format recommendations in oracle order with score and reasoning."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Recommendations for user {user_id} ({len(recommendations)}) ===")
    if not recommendations:
        lines.append("  (the oracle returned no usable picks)")
        return "\n".join(lines)

    for rank, rec in enumerate(recommendations, start=1):
        lines.append(
            f"  {rank:>3}. {rec.movie.title[:50]:<50}  id={rec.movie.movie_id:<7}  "
            f"score={rec.score:.1f}"
        )
        lines.append(f"       {rec.reasoning}")
    return "\n".join(lines)
