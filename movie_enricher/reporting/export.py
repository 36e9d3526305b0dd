"""
Export helpers for offline analysis of the enrichment table.

All functions write to disk and return the written ``Path``. They accept
generic ``list[dict]`` rows so the same writers serve any record shape.

``flatten_enriched_movies()`` is the adapter from ``EnrichedMovie`` models to
flat camelCase rows (the HTTP field names), so a CSV export and an
``/api/enrichments`` response line up column for column.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from movie_enricher.models.movie import EnrichedMovie

logger = logging.getLogger(__name__)

ENRICHED_MOVIE_COLUMNS: list[str] = [
    "movieId",
    "imdbId",
    "title",
    "releaseDate",
    "budget",
    "revenue",
    "runtime",
    "language",
    "genres",
    "awardPotential",
    "popularityQualityIndex",
    "emotionalGenres",
    "productionCompanyRollingROI",
    "productionEffectivenessScore",
]

_ENRICHED_PA_SCHEMA = pa.schema(
    [
        pa.field("movieId",                      pa.int64(),   nullable=False),
        pa.field("imdbId",                       pa.string()),
        pa.field("title",                        pa.string(),  nullable=False),
        pa.field("releaseDate",                  pa.string()),
        pa.field("budget",                       pa.float64()),
        pa.field("revenue",                      pa.float64()),
        pa.field("runtime",                      pa.float64()),
        pa.field("language",                     pa.string()),
        pa.field("genres",                       pa.string()),
        pa.field("awardPotential",               pa.string()),
        pa.field("popularityQualityIndex",       pa.float64()),
        pa.field("emotionalGenres",              pa.string()),
        pa.field("productionCompanyRollingROI",  pa.float64()),
        pa.field("productionEffectivenessScore", pa.float64()),
    ]
)


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path (parent dirs created if missing).
        fieldnames: Column order. If None, uses the keys of the first record.

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    logger.info("Exported %d rows to %s", len(records), path)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    logger.info("Exported JSON to %s", path)
    return path


def export_to_parquet(records: list[dict[str, Any]], path: Path) -> Path:
    """Write flattened enriched-movie rows to a snappy-compressed Parquet file.

    Columns follow ``ENRICHED_MOVIE_COLUMNS``; missing keys become nulls.

    Args:
        records: Rows from ``flatten_enriched_movies()``.
        path:    Destination file path (parent dirs created if missing).

    Returns:
        ``path`` as written.
    """
    arrays: dict[str, pa.Array] = {}
    for fld in _ENRICHED_PA_SCHEMA:
        values = [r.get(fld.name) for r in records]
        if pa.types.is_floating(fld.type):
            values = [float(v) if v is not None else None for v in values]
        arrays[fld.name] = pa.array(values, type=fld.type)
    table = pa.table(arrays, schema=_ENRICHED_PA_SCHEMA)

    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(table, str(path), compression="snappy")
    logger.info("Exported %d rows to %s", len(records), path)
    return path


def flatten_enriched_movies(movies: list[EnrichedMovie]) -> list[dict[str, Any]]:
    """Convert enriched movies into flat rows keyed by ``ENRICHED_MOVIE_COLUMNS``.

    Overview and production-company JSON are left out; both are long free
    text and already live in the catalog database.
    """
    rows: list[dict[str, Any]] = []
    for movie in movies:
        dumped = movie.model_dump(by_alias=True)
        rows.append({col: dumped.get(col) for col in ENRICHED_MOVIE_COLUMNS})
    return rows
