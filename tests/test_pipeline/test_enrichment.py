"""
Tests for movie_enricher/pipeline/enrichment.py.

What we test
------------
EnrichmentOrchestrator.run():
  - Only movies with at least one rating are selected, in storage order.
  - Unrated movies are skipped wherever they sit, and do not count toward N.
  - Selection stops at movie_count.
  - phase moves IDLE → PROCESSING (during oracle calls) → DONE.
  - One failing movie is isolated: N-1 enrichments, status "partial".
  - Every movie failing → status "failed"; run() still returns.
  - Enriched values: rolling ROI, effectiveness, oracle attributes persisted.
  - Re-running overwrites instead of duplicating.
  - movie_count outside 1..200 → ValidationError before any oracle call.
  - Pacing: one sleep after each success except the last.

parse_enrichment_attributes():
  - Non-JSON → all three defaults (Medium / 50 / "emotional").
  - Missing keys default individually and are reported in ``defaulted``.
  - Award case is normalised; unknown award → Medium.
  - Index clamped to 0..100; 0 falls back to 50; list genres joined.
"""

from __future__ import annotations

import json

import pytest

from movie_enricher.config import AppConfig, EnrichmentConfig
from movie_enricher.errors import OracleError, ValidationError
from movie_enricher.metrics.financial import movie_roi, production_effectiveness
from movie_enricher.models.movie import Rating
from movie_enricher.pipeline.enrichment import (
    EnrichmentOrchestrator,
    RunPhase,
    parse_enrichment_attributes,
)

ENRICHMENT_JSON = json.dumps(
    {
        "awardPotential": "High",
        "popularityQualityIndex": 82,
        "emotionalGenres": "heartwarming, nostalgic",
    }
)


def _orchestrator(store, oracle, config, sleeps: list | None = None) -> EnrichmentOrchestrator:
    recorder = sleeps.append if sleeps is not None else (lambda s: None)
    return EnrichmentOrchestrator(store, oracle, config, sleep=recorder)


# ── Selection ─────────────────────────────────────────────────────────────────


def test_only_rated_movies_selected(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    orchestrator = _orchestrator(seeded_store, oracle, app_config)
    result = orchestrator.run(10)

    assert result.requested == 10
    assert result.selected == 5
    assert [e.movie_id for e in result.enrichments] == [1, 2, 3, 4, 5]
    assert seeded_store.enrichments.get_by_movie(6) is None
    assert result.status == "success"
    assert orchestrator.phase is RunPhase.DONE


def test_selection_stops_at_count(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    result = _orchestrator(seeded_store, oracle, app_config).run(2)

    assert [e.movie_id for e in result.enrichments] == [1, 2]
    assert len(oracle.requests_for("enrichment")) == 2


def test_run_phase_tracks_progress(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    orchestrator = _orchestrator(seeded_store, oracle, app_config)
    scripted = oracle.complete
    phases: list[RunPhase] = []

    def complete(request):
        phases.append(orchestrator.phase)
        return scripted(request)

    oracle.complete = complete
    assert orchestrator.phase is RunPhase.IDLE
    orchestrator.run(2)

    assert phases == [RunPhase.PROCESSING, RunPhase.PROCESSING]
    assert orchestrator.phase is RunPhase.DONE


def test_unrated_movies_skipped_at_any_position(store, oracle, app_config, make_movie) -> None:
    titles = {1: "Unrated Opener", 2: "Rated Two", 3: "Unrated Middle", 4: "Rated Four", 5: "Rated Five"}
    for movie_id, title in titles.items():
        store.movies.insert(make_movie(movie_id, title))
    store.ratings.insert_many(
        [Rating(user_id=1, movie_id=m, rating=4.0, timestamp=m) for m in (2, 4, 5)]
    )
    oracle.script("enrichment", ENRICHMENT_JSON)

    result = _orchestrator(store, oracle, app_config).run(2)

    assert result.selected == 2
    assert [e.movie_id for e in result.enrichments] == [2, 4]
    prompts = [r.user_prompt for r in oracle.requests_for("enrichment")]
    assert len(prompts) == 2
    assert not any("Unrated" in p for p in prompts)
    assert store.enrichments.get_by_movie(1) is None
    assert store.enrichments.get_by_movie(3) is None


def test_empty_catalog_is_empty_run(store, oracle, app_config) -> None:
    result = _orchestrator(store, oracle, app_config).run(5)
    assert result.selected == 0
    assert result.status == "empty"
    assert oracle.requests == []


# ── Failure isolation ─────────────────────────────────────────────────────────


def test_single_failure_isolated(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON, OracleError("service unavailable"), ENRICHMENT_JSON)
    result = _orchestrator(seeded_store, oracle, app_config).run(5)

    assert len(result.enrichments) == 4
    assert [o.movie_id for o in result.failed] == [2]
    assert "service unavailable" in result.failed[0].error
    assert result.status == "partial"
    assert seeded_store.enrichments.get_by_movie(2) is None
    assert seeded_store.enrichments.count() == 4


def test_all_failures_still_return(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", OracleError("down"))
    result = _orchestrator(seeded_store, oracle, app_config).run(5)

    assert result.enrichments == []
    assert len(result.failed) == 5
    assert result.status == "failed"


def test_malformed_output_uses_defaults(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", "I think this movie is great!")
    result = _orchestrator(seeded_store, oracle, app_config).run(1)

    enrichment = result.enrichments[0]
    assert enrichment.award_potential == "Medium"
    assert enrichment.popularity_quality_index == 50.0
    assert enrichment.emotional_genres == "emotional"
    assert result.status == "success"


# ── Computed values ───────────────────────────────────────────────────────────


def test_enrichment_values(seeded_store, oracle, app_config, sample_movies) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    _orchestrator(seeded_store, oracle, app_config).run(5)

    toy_story, bugs_life, toy_story_2 = sample_movies[0], sample_movies[1], sample_movies[2]

    first = seeded_store.enrichments.get_by_movie(1)
    assert first.production_company_rolling_roi is None       # no earlier Pixar film
    assert first.award_potential == "High"
    assert first.popularity_quality_index == 82.0
    assert first.emotional_genres == "heartwarming, nostalgic"
    assert first.production_effectiveness_score == production_effectiveness(toy_story, 5.0)

    third = seeded_store.enrichments.get_by_movie(3)
    expected_roi = (movie_roi(toy_story) + movie_roi(bugs_life)) / 2
    assert third.production_company_rolling_roi == pytest.approx(expected_roi)
    assert third.production_effectiveness_score == production_effectiveness(toy_story_2, 4.5)


def test_prompt_carries_rating_stats(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    _orchestrator(seeded_store, oracle, app_config).run(1)

    prompt = oracle.requests_for("enrichment")[0].user_prompt
    assert "Toy Story" in prompt
    assert "Average Rating: 5.00/5.0" in prompt
    assert "Number of Ratings: 1" in prompt


def test_rerun_overwrites(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    _orchestrator(seeded_store, oracle, app_config).run(5)

    oracle.script("enrichment", json.dumps({"awardPotential": "Low"}))
    _orchestrator(seeded_store, oracle, app_config).run(5)

    assert seeded_store.enrichments.count() == 5
    assert seeded_store.enrichments.get_by_movie(1).award_potential == "Low"


# ── Validation and pacing ─────────────────────────────────────────────────────


@pytest.mark.parametrize("count", [0, -1, 201])
def test_count_out_of_range(seeded_store, oracle, app_config, count: int) -> None:
    with pytest.raises(ValidationError):
        _orchestrator(seeded_store, oracle, app_config).run(count)
    assert oracle.requests == []


def test_default_count_used(seeded_store, oracle, app_config) -> None:
    oracle.script("enrichment", ENRICHMENT_JSON)
    result = _orchestrator(seeded_store, oracle, app_config).run()
    assert result.requested == 75


def test_pacing_between_successes(seeded_store, oracle) -> None:
    config = AppConfig(enrichment=EnrichmentConfig(inter_call_delay_ms=500))
    sleeps: list[float] = []
    oracle.script("enrichment", ENRICHMENT_JSON)

    _orchestrator(seeded_store, oracle, config, sleeps).run(3)
    assert sleeps == [0.5, 0.5]


def test_no_pause_after_failure(seeded_store, oracle) -> None:
    config = AppConfig(enrichment=EnrichmentConfig(inter_call_delay_ms=500))
    sleeps: list[float] = []
    oracle.script("enrichment", ENRICHMENT_JSON, OracleError("boom"), ENRICHMENT_JSON)

    _orchestrator(seeded_store, oracle, config, sleeps).run(3)
    assert sleeps == [0.5]


# ── parse_enrichment_attributes ───────────────────────────────────────────────


def test_parse_non_json_defaults_everything() -> None:
    attrs = parse_enrichment_attributes("")
    assert (attrs.award_potential, attrs.popularity_quality_index, attrs.emotional_genres) == (
        "Medium", 50.0, "emotional",
    )
    assert set(attrs.defaulted) == {"awardPotential", "popularityQualityIndex", "emotionalGenres"}


def test_parse_missing_keys_default_individually() -> None:
    attrs = parse_enrichment_attributes('{"awardPotential": "high"}')
    assert attrs.award_potential == "High"
    assert attrs.popularity_quality_index == 50.0
    assert attrs.emotional_genres == "emotional"
    assert attrs.defaulted == ("popularityQualityIndex", "emotionalGenres")


def test_parse_unknown_award_defaults() -> None:
    attrs = parse_enrichment_attributes(
        '{"awardPotential": "Huge", "popularityQualityIndex": 35, "emotionalGenres": "dark"}'
    )
    assert attrs.award_potential == "Medium"
    assert attrs.popularity_quality_index == 35.0
    assert attrs.defaulted == ("awardPotential",)


@pytest.mark.parametrize("raw", ["0", "0.0"])
def test_parse_zero_index_falls_back(raw: str) -> None:
    attrs = parse_enrichment_attributes(
        '{"awardPotential": "High", "popularityQualityIndex": ' + raw + ', "emotionalGenres": "dark"}'
    )
    assert attrs.popularity_quality_index == 50.0
    assert attrs.defaulted == ("popularityQualityIndex",)


def test_parse_clamps_index_and_joins_genres() -> None:
    attrs = parse_enrichment_attributes(
        '```json\n{"awardPotential": "Low", "popularityQualityIndex": "150",'
        ' "emotionalGenres": ["dark", "gritty"]}\n```'
    )
    assert attrs.popularity_quality_index == 100.0
    assert attrs.emotional_genres == "dark, gritty"
    assert attrs.defaulted == ()
