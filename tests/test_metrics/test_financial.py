"""
Tests for movie_enricher/metrics/financial.py.

What we test
------------
parse_production_companies():
  - Names returned in listed order; nameless entries dropped.
  - Blank, non-JSON, and non-list input → None.

compute_rolling_roi():
  - One prior release (budget 100, revenue 150) → 50.0.
  - No prior releases → None (not 0.0).
  - Unparseable or empty company field → None.
  - Prior releases without positive budget AND revenue are left out of the mean.
  - Only releases strictly before the target count; same-day releases do not.
  - Only the trailing ``window`` releases count.
  - Only the primary (first listed) company is matched.
  - Candidates with an empty release date are skipped.

compute_production_effectiveness() / production_effectiveness():
  - Perfect rating + huge ROI + $1B revenue → 100.00.
  - Weighted formula reproduced for a mid-range movie.
  - Revenue above $1B saturates at 100.
  - No budget/revenue data → ROI and revenue components are 0.
  - Score is non-decreasing in avg_rating.
"""

from __future__ import annotations

import json

import pytest

from movie_enricher.metrics.financial import (
    EffectivenessComponents,
    compute_production_effectiveness,
    compute_rolling_roi,
    movie_roi,
    parse_production_companies,
    production_effectiveness,
)
from movie_enricher.models.movie import Movie


# ── Helpers ────────────────────────────────────────────────────────────────────

def _movie(
    movie_id: int,
    companies: list[str] | None = None,
    release_date: str = "2000-01-01",
    budget: float = 0,
    revenue: float = 0,
) -> Movie:
    raw = json.dumps([{"name": c} for c in companies]) if companies is not None else ""
    return Movie(
        movie_id=movie_id,
        title=f"Movie {movie_id}",
        production_companies=raw,
        release_date=release_date,
        budget=budget,
        revenue=revenue,
    )


# ── parse_production_companies ────────────────────────────────────────────────


def test_parse_companies_in_order() -> None:
    raw = '[{"name": "Pixar", "id": 3}, {"id": 9}, {"name": "Disney"}]'
    assert parse_production_companies(raw) == ["Pixar", "Disney"]


@pytest.mark.parametrize("raw", ["", "   ", None, "not json", '{"name": "Pixar"}'])
def test_parse_companies_unusable_returns_none(raw) -> None:
    assert parse_production_companies(raw) is None


# ── compute_rolling_roi ───────────────────────────────────────────────────────


def test_rolling_roi_single_prior() -> None:
    prior  = _movie(1, ["A"], "1990-01-01", budget=100, revenue=150)
    target = _movie(2, ["A"], "2000-01-01", budget=10, revenue=10)
    assert compute_rolling_roi(target, [prior, target]) == pytest.approx(50.0)


def test_rolling_roi_no_prior_is_none_not_zero() -> None:
    target = _movie(1, ["A"], "2000-01-01", budget=100, revenue=500)
    result = compute_rolling_roi(target, [target])
    assert result is None


def test_rolling_roi_no_company_is_none() -> None:
    prior  = _movie(1, ["A"], "1990-01-01", budget=100, revenue=150)
    target = _movie(2, None, "2000-01-01")
    assert compute_rolling_roi(target, [prior, target]) is None


def test_rolling_roi_invalid_company_json_is_none() -> None:
    prior  = _movie(1, ["A"], "1990-01-01", budget=100, revenue=150)
    target = _movie(2, ["A"], "2000-01-01").model_copy(
        update={"production_companies": "[{broken"}
    )
    assert compute_rolling_roi(target, [prior, target]) is None


def test_rolling_roi_skips_missing_financials() -> None:
    catalog = [
        _movie(1, ["A"], "1990-01-01", budget=100, revenue=300),   # ROI 200
        _movie(2, ["A"], "1991-01-01", budget=0,   revenue=500),   # no budget
        _movie(3, ["A"], "1992-01-01", budget=100, revenue=0),     # no revenue
    ]
    target = _movie(4, ["A"], "2000-01-01")
    assert compute_rolling_roi(target, catalog + [target]) == pytest.approx(200.0)


def test_rolling_roi_only_missing_financials_is_none() -> None:
    catalog = [_movie(1, ["A"], "1990-01-01", budget=0, revenue=0)]
    target = _movie(2, ["A"], "2000-01-01")
    assert compute_rolling_roi(target, catalog + [target]) is None


def test_rolling_roi_strictly_before() -> None:
    same_day = _movie(1, ["A"], "2000-01-01", budget=100, revenue=1000)
    earlier  = _movie(2, ["A"], "1999-12-31", budget=100, revenue=200)
    later    = _movie(3, ["A"], "2000-01-02", budget=100, revenue=900)
    target   = _movie(4, ["A"], "2000-01-01")
    result = compute_rolling_roi(target, [same_day, earlier, later, target])
    assert result == pytest.approx(100.0)


def test_rolling_roi_trailing_window() -> None:
    """Two old blockbusters fall outside a window of 10 break-even releases."""
    old = [
        _movie(i, ["A"], f"1980-01-0{i}", budget=100, revenue=1100)
        for i in (1, 2)
    ]
    recent = [
        _movie(10 + i, ["A"], f"1990-01-{i + 1:02d}", budget=100, revenue=100)
        for i in range(10)
    ]
    target = _movie(99, ["A"], "2000-01-01")
    catalog = old + recent + [target]

    assert compute_rolling_roi(target, catalog, window=10) == pytest.approx(0.0)
    assert compute_rolling_roi(target, catalog, window=12) == pytest.approx(2000 / 12)


def test_rolling_roi_matches_primary_company_only() -> None:
    secondary_only = _movie(1, ["B"], "1990-01-01", budget=100, revenue=400)
    co_produced    = _movie(2, ["C", "A"], "1991-01-01", budget=100, revenue=150)
    target         = _movie(3, ["A", "B"], "2000-01-01")
    result = compute_rolling_roi(target, [secondary_only, co_produced, target])
    assert result == pytest.approx(50.0)


def test_rolling_roi_skips_undated_candidates() -> None:
    undated = _movie(1, ["A"], "", budget=100, revenue=900)
    dated   = _movie(2, ["A"], "1990-01-01", budget=100, revenue=120)
    target  = _movie(3, ["A"], "2000-01-01")
    assert compute_rolling_roi(target, [undated, dated, target]) == pytest.approx(20.0)


# ── production effectiveness ──────────────────────────────────────────────────


def test_effectiveness_perfect_score() -> None:
    movie = _movie(1, ["A"], budget=100, revenue=1_000_000_000)
    assert production_effectiveness(movie, avg_rating=5.0) == 100.00


def test_effectiveness_weighted_formula() -> None:
    movie = _movie(1, ["A"], budget=50_000_000, revenue=100_000_000)
    comps = compute_production_effectiveness(movie, avg_rating=4.0)

    assert comps.rating_score == pytest.approx(80.0)
    assert comps.roi_score == pytest.approx(75.0)          # ROI 100% → (100 + 50) / 2
    assert comps.revenue_score == pytest.approx(800 / 9)   # log10(1e8) = 8
    assert comps.total == pytest.approx(80.47)


def test_effectiveness_revenue_score_saturates() -> None:
    movie = _movie(1, ["A"], budget=10_000_000_000, revenue=10_000_000_000)
    comps = compute_production_effectiveness(movie, avg_rating=0.0)
    assert comps.revenue_score == 100.0
    assert comps.roi_score == pytest.approx(25.0)          # ROI 0% → 25


def test_effectiveness_roi_floor() -> None:
    movie = _movie(1, ["A"], budget=100, revenue=10)       # ROI −90%
    comps = compute_production_effectiveness(movie, avg_rating=3.0)
    assert comps.roi_score == 0.0


def test_effectiveness_without_financials() -> None:
    movie = _movie(1, ["A"], budget=0, revenue=0)
    comps = compute_production_effectiveness(movie, avg_rating=2.5)
    assert comps.roi_score == 0.0
    assert comps.revenue_score == 0.0
    assert comps.total == pytest.approx(20.0)


def test_effectiveness_monotone_in_rating() -> None:
    movie = _movie(1, ["A"], budget=30_000_000, revenue=90_000_000)
    scores = [production_effectiveness(movie, r / 2) for r in range(11)]
    assert scores == sorted(scores)
    assert all(0.0 <= s <= 100.0 for s in scores)


def test_components_total_rounds_to_two_decimals() -> None:
    comps = EffectivenessComponents(rating_score=33.3333, roi_score=0.0, revenue_score=0.0)
    assert comps.total == 13.33


def test_movie_roi_requires_positive_financials() -> None:
    assert movie_roi(_movie(1, budget=100, revenue=250)) == pytest.approx(150.0)
    assert movie_roi(_movie(1, budget=0, revenue=250)) is None
    assert movie_roi(_movie(1, budget=100, revenue=0)) is None
