"""
CSV import parsers for the movie catalog and the ratings table.

Both files are comma delimited with a header row, using the same camelCase
column names as the SQLite tables.

movies.csv
  Required: movieId, title
  Optional: imdbId, overview, productionCompanies, releaseDate, budget,
            revenue, runtime, language, genres, status

  ``productionCompanies`` is kept verbatim, e.g. ``[{"name": "Pixar"}]``.
  Empty numeric cells become 0 (budget, revenue) or NULL (runtime).

ratings.csv
  Required: userId, movieId, rating, timestamp
  ``rating`` must be within 0..5; ``timestamp`` is Unix seconds.

All rows are validated before any are returned. If any row fails, a single
``ValueError`` lists the first 10 failures.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, Optional, TypeVar

from pydantic import ValidationError

from movie_enricher.models.movie import Movie, Rating

logger = logging.getLogger(__name__)

T = TypeVar("T")

MOVIE_REQUIRED_COLUMNS = frozenset({"movieId", "title"})
RATING_REQUIRED_COLUMNS = frozenset({"userId", "movieId", "rating", "timestamp"})


def parse_movies_csv(path: Path) -> list[Movie]:
    """Parse a catalog CSV into validated ``Movie`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    return _parse_csv(path, MOVIE_REQUIRED_COLUMNS, _row_to_movie, "movies")


def parse_ratings_csv(path: Path) -> list[Rating]:
    """Parse a ratings CSV into validated ``Rating`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    return _parse_csv(path, RATING_REQUIRED_COLUMNS, _row_to_rating, "ratings")


def _parse_csv(
    path: Path,
    required: frozenset[str],
    convert: Callable[[dict[str, str]], T],
    label: str,
) -> list[T]:
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = set(reader.fieldnames)
        missing = required - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )
        rows = list(reader)

    if not rows:
        logger.warning("CSV is empty (header only): %s", path)
        return []

    parsed: list[T] = []
    errors: list[tuple[int, str]] = []
    for i, row in enumerate(rows):
        line_no = i + 2  # header is line 1
        try:
            parsed.append(convert(row))
        except (ValueError, ValidationError) as exc:
            errors.append((line_no, str(exc)))

    if errors:
        max_shown = 10
        detail = "\n".join(f"  Row {ln}: {msg}" for ln, msg in errors[:max_shown])
        suffix = f"\n  ... and {len(errors) - max_shown} more" if len(errors) > max_shown else ""
        raise ValueError(
            f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}"
        )

    logger.info("Parsed %d %s from %s", len(parsed), label, path.name)
    return parsed


# ── Row converters ────────────────────────────────────────────────────────────

def _row_to_movie(row: dict[str, str]) -> Movie:
    return Movie(
        movie_id=int(_req(row, "movieId")),
        imdb_id=_opt(row, "imdbId"),
        title=_req(row, "title"),
        overview=_opt(row, "overview") or "",
        production_companies=_opt(row, "productionCompanies") or "",
        release_date=_opt(row, "releaseDate") or "",
        budget=_num(row, "budget") or 0,
        revenue=_num(row, "revenue") or 0,
        runtime=_num(row, "runtime"),
        language=_opt(row, "language"),
        genres=_opt(row, "genres") or "",
        status=_opt(row, "status"),
    )


def _row_to_rating(row: dict[str, str]) -> Rating:
    return Rating(
        user_id=int(_req(row, "userId")),
        movie_id=int(_req(row, "movieId")),
        rating=float(_req(row, "rating")),
        timestamp=int(float(_req(row, "timestamp"))),
    )


def _req(row: dict[str, str], key: str) -> str:
    v = (row.get(key) or "").strip()
    if not v:
        raise ValueError(f"Required field '{key}' is empty.")
    return v


def _opt(row: dict[str, str], key: str) -> Optional[str]:
    v = (row.get(key) or "").strip()
    return v or None


def _num(row: dict[str, str], key: str) -> Optional[float]:
    v = _opt(row, key)
    if v is None:
        return None
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Field '{key}' must be numeric, got '{v}'.") from None
