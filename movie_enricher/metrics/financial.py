"""
Financial metrics: production-company rolling ROI and production effectiveness.

Rolling ROI
-----------
For the target movie's primary (first listed) production company, take every
catalog movie from that company released strictly before the target, keep the
trailing ``window`` (10) by release date, and average
``(revenue - budget) / budget * 100`` over those with positive budget AND
positive revenue.  Movies with missing financials are left out of the mean,
not counted as zero.

Returns ``None`` (never 0.0) when the company field is empty or unparseable,
or when no prior movie has usable financials.  ``None`` means "no financial
history"; 0.0 means "broke even".

Release dates are compared as strings.  This is only correct because the
catalog stores zero-padded ISO dates (``YYYY-MM-DD``).

Production effectiveness (0–100, two decimals)
----------------------------------------------
    total = (
        rating_score    * 0.40   # avg_rating / 5 * 100
        + roi_score     * 0.35   # clamp((roi + 50) / 2, 0, 100)
        + revenue_score * 0.25   # min(100, log10(revenue) / 9 * 100)
    )

roi_score maps −50% ROI to 0 and +150% ROI to 100, saturating outside.
revenue_score is log-scaled so $1B revenue maps to 100.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from movie_enricher.models.movie import Movie

DEFAULT_ROI_WINDOW = 10

RATING_WEIGHT = 0.40
ROI_WEIGHT = 0.35
REVENUE_WEIGHT = 0.25

_MAX_RATING = 5.0
_REVENUE_LOG_CEILING = 9.0  # log10(1_000_000_000)


def parse_production_companies(raw: Optional[str]) -> Optional[list[str]]:
    """Parse the catalog's serialised production-company field.

    Args:
        raw: JSON array of objects with a ``name`` key, as stored in the
            ``movies.production_companies`` column.

    Returns:
        Company names in listed order (entries without a name dropped), or
        ``None`` when the field is blank or is not a JSON list.
    """
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(parsed, list):
        return None

    names: list[str] = []
    for entry in parsed:
        name = entry.get("name") if isinstance(entry, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names


def movie_roi(movie: Movie) -> Optional[float]:
    """Return ``(revenue - budget) / budget * 100``, or ``None`` if either is non-positive."""
    if movie.budget <= 0 or movie.revenue <= 0:
        return None
    return (movie.revenue - movie.budget) / movie.budget * 100


def compute_rolling_roi(
    movie: Movie,
    catalog: Iterable[Movie],
    window: int = DEFAULT_ROI_WINDOW,
) -> Optional[float]:
    """Mean ROI (%) of the primary company's trailing releases before ``movie``.

    Args:
        movie:   The movie being enriched.
        catalog: Every catalog movie (the target may be included; it is
                 excluded by the strict release-date comparison).
        window:  Maximum number of prior releases considered.

    Returns:
        Arithmetic mean of eligible ROI values, or ``None`` if the movie has
        no parseable company or no prior release has positive budget and
        revenue.
    """
    companies = parse_production_companies(movie.production_companies)
    if not companies:
        return None
    primary = companies[0]

    prior: list[Movie] = []
    for candidate in catalog:
        if not candidate.release_date or candidate.release_date >= movie.release_date:
            continue
        names = parse_production_companies(candidate.production_companies)
        if names and primary in names:
            prior.append(candidate)

    prior.sort(key=lambda m: m.release_date)
    trailing = prior[-window:]

    rois = [roi for roi in (movie_roi(m) for m in trailing) if roi is not None]
    if not rois:
        return None
    return sum(rois) / len(rois)


@dataclass(frozen=True)
class EffectivenessComponents:
    """Components of the production-effectiveness score.

    Attributes:
        rating_score:  0–100 from the movie's average user rating.
        roi_score:     0–100 from the movie's own ROI.
        revenue_score: 0–100 from log10 of revenue.
    """

    rating_score: float
    roi_score: float
    revenue_score: float

    @property
    def total(self) -> float:
        """Weighted total rounded to two decimals."""
        return round(
            self.rating_score * RATING_WEIGHT
            + self.roi_score * ROI_WEIGHT
            + self.revenue_score * REVENUE_WEIGHT,
            2,
        )


def compute_production_effectiveness(
    movie: Movie,
    avg_rating: float,
) -> EffectivenessComponents:
    """Compute the three production-effectiveness components for one movie.

    Args:
        movie:      Catalog movie supplying budget and revenue.
        avg_rating: Mean user rating on the 0–5 scale.

    Returns:
        ``EffectivenessComponents``; use ``.total`` for the final score.
    """
    rating_score = (avg_rating / _MAX_RATING) * 100

    roi = movie_roi(movie)
    roi_score = 0.0 if roi is None else _clamp((roi + 50) / 2, 0.0, 100.0)

    revenue_score = 0.0
    if movie.revenue > 0:
        revenue_score = min(100.0, math.log10(movie.revenue) / _REVENUE_LOG_CEILING * 100)

    return EffectivenessComponents(
        rating_score=rating_score,
        roi_score=roi_score,
        revenue_score=revenue_score,
    )


def production_effectiveness(movie: Movie, avg_rating: float) -> float:
    """Return the production-effectiveness score (0–100, two decimals)."""
    return compute_production_effectiveness(movie, avg_rating).total


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
