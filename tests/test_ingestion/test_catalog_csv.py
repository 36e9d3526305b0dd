"""
Tests for movie_enricher/ingestion/catalog_csv.py.

What we test
------------
  - Happy-path parsing of movies and ratings, including quoted JSON cells.
  - Empty numeric cells: budget/revenue become 0, runtime stays None.
  - Header-only files return an empty list.
  - Missing files, missing columns, and bad rows raise with useful messages.
  - Error listing caps at 10 rows.
"""

from __future__ import annotations

import csv
from pathlib import Path

import pytest

from movie_enricher.ingestion.catalog_csv import parse_movies_csv, parse_ratings_csv

MOVIE_HEADER = [
    "movieId", "imdbId", "title", "overview", "productionCompanies",
    "releaseDate", "budget", "revenue", "runtime", "language", "genres", "status",
]
RATING_HEADER = ["userId", "movieId", "rating", "timestamp"]


def _write(path: Path, header: list[str], rows: list[list[object]]) -> Path:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return path


# ── Movies ────────────────────────────────────────────────────────────────────


def test_parse_movies(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "movies.csv",
        MOVIE_HEADER,
        [
            [862, "tt0114709", "Toy Story", "Toys, alive.", '[{"name": "Pixar"}]',
             "1995-11-22", "30000000", "373554033", "81", "en", "Animation", "Released"],
            [949, "", "Heat", "", "", "1995-12-15", "", "", "", "", "", ""],
        ],
    )
    movies = parse_movies_csv(path)

    assert [m.movie_id for m in movies] == [862, 949]
    toy = movies[0]
    assert toy.production_companies == '[{"name": "Pixar"}]'
    assert toy.overview == "Toys, alive."
    assert toy.budget == 30_000_000
    assert toy.runtime == 81

    heat = movies[1]
    assert heat.imdb_id is None
    assert heat.budget == 0
    assert heat.revenue == 0
    assert heat.runtime is None
    assert heat.production_companies == ""


def test_parse_movies_minimal_columns(tmp_path: Path) -> None:
    path = _write(tmp_path / "movies.csv", ["movieId", "title"], [[1, "Only Title"]])
    (movie,) = parse_movies_csv(path)
    assert movie.title == "Only Title"
    assert movie.release_date == ""


def test_parse_movies_header_only(tmp_path: Path) -> None:
    path = _write(tmp_path / "movies.csv", MOVIE_HEADER, [])
    assert parse_movies_csv(path) == []


def test_parse_movies_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="CSV file not found"):
        parse_movies_csv(tmp_path / "absent.csv")


def test_parse_movies_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "movies.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError, match="no header row"):
        parse_movies_csv(path)


def test_parse_movies_missing_columns(tmp_path: Path) -> None:
    path = _write(tmp_path / "movies.csv", ["movieId", "budget"], [[1, 10]])
    with pytest.raises(ValueError, match=r"missing required columns: \['title'\]"):
        parse_movies_csv(path)


def test_parse_movies_reports_bad_rows(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "movies.csv",
        ["movieId", "title", "budget"],
        [[1, "Fine", "100"], ["x", "Bad id", ""], [3, "", ""], [4, "Bad budget", "lots"]],
    )
    with pytest.raises(ValueError) as exc_info:
        parse_movies_csv(path)

    message = str(exc_info.value)
    assert message.startswith("3 row(s) failed validation in movies.csv")
    assert "Row 3:" in message
    assert "Row 4: Required field 'title' is empty." in message
    assert "Row 5: Field 'budget' must be numeric, got 'lots'." in message


# ── Ratings ───────────────────────────────────────────────────────────────────


def test_parse_ratings(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "ratings.csv",
        RATING_HEADER,
        [[1, 862, "4.5", "1260759144"], [2, 949, "3", "1260759179.0"]],
    )
    ratings = parse_ratings_csv(path)

    assert [(r.user_id, r.movie_id) for r in ratings] == [(1, 862), (2, 949)]
    assert ratings[0].rating == 4.5
    assert ratings[1].timestamp == 1260759179
    assert ratings[0].rating_id is None


def test_parse_ratings_rejects_out_of_range(tmp_path: Path) -> None:
    path = _write(tmp_path / "ratings.csv", RATING_HEADER, [[1, 1, "5.5", "0"]])
    with pytest.raises(ValueError, match="Row 2"):
        parse_ratings_csv(path)


def test_parse_ratings_caps_error_listing(tmp_path: Path) -> None:
    rows = [[1, 1, "", "0"] for _ in range(12)]
    path = _write(tmp_path / "ratings.csv", RATING_HEADER, rows)
    with pytest.raises(ValueError) as exc_info:
        parse_ratings_csv(path)

    message = str(exc_info.value)
    assert message.startswith("12 row(s) failed validation")
    assert "Row 11:" in message
    assert "Row 12:" not in message
    assert "... and 2 more" in message
