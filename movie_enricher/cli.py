"""
Movie Enricher — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Open the ``MovieStore`` (and the oracle, for commands that need it).
  4. Run one pipeline operation.
  5. Report the result to stdout; domain errors print ``[ERROR] ...`` and
     exit with code 1.

Install and run::

    pip install -e .
    movie-enricher --help
    movie-enricher init-db
    movie-enricher import-catalog --movies data/movies.csv --ratings data/ratings.csv
    movie-enricher enrich --count 75
    movie-enricher recommend 42 --count 10
    movie-enricher serve
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="movie-enricher",
    help="Movie catalog enrichment and oracle-backed recommendations.",
    add_completion=False,
)

_CONFIG_HELP = "Path to TOML config file."


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from movie_enricher.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from movie_enricher.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_store(config):
    """Open the catalog and ratings databases named in config."""
    from movie_enricher.db.store import MovieStore
    return MovieStore.from_config(config.database).open()


def _build_oracle(config):
    """Build the oracle client from config."""
    from movie_enricher.oracle.openai_client import OpenAIChatOracle
    return OpenAIChatOracle.from_config(config.oracle)


def _build_oracle_or_exit(config):
    from movie_enricher.errors import OracleError

    try:
        return _build_oracle(config)
    except OracleError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"[ERROR] {exc}", err=True)
    return typer.Exit(code=1)


# ── Setup commands ────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Create the catalog and ratings databases and apply the schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    """
    from movie_enricher.db.schema import CATALOG_TABLE_NAMES, RATINGS_TABLE_NAMES

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo(f"Initializing catalog database at: {config.database.movies_db_path}")
    typer.echo(f"Initializing ratings database at: {config.database.ratings_db_path}")
    with _open_store(config):
        pass

    typer.echo(f"  Catalog tables: {', '.join(CATALOG_TABLE_NAMES)}")
    typer.echo(f"  Ratings tables: {', '.join(RATINGS_TABLE_NAMES)}")
    typer.echo("[OK] Databases ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Movies DB:        {config.database.movies_db_path}")
    typer.echo(f"  Ratings DB:       {config.database.ratings_db_path}")
    typer.echo(f"  Oracle model:     {config.oracle.model}")
    typer.echo(f"  Oracle API key:   {'set' if config.oracle.api_key else 'NOT SET'}")
    typer.echo(f"  Enrich default:   {config.enrichment.default_movie_count}")
    typer.echo(f"  Inter-call delay: {config.enrichment.inter_call_delay_ms} ms")
    typer.echo(f"  API port:         {config.api.port}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        dumped = config.model_dump()
        if dumped["oracle"].get("api_key"):
            dumped["oracle"]["api_key"] = "***"
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("import-catalog")
def import_catalog(
    movies_file: Optional[str] = typer.Option(
        None, "--movies", help="Catalog CSV (movieId, title, ... columns)."
    ),
    ratings_file: Optional[str] = typer.Option(
        None, "--ratings", help="Ratings CSV (userId, movieId, rating, timestamp)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate rows but do not write to the databases."
    ),
) -> None:
    """Load movies and/or ratings from CSV files into the local databases.

    Movies are inserted with replace semantics keyed by movieId; ratings are
    appended.
    """
    from movie_enricher.ingestion.catalog_csv import parse_movies_csv, parse_ratings_csv

    if not movies_file and not ratings_file:
        typer.echo("[ERROR] Pass --movies and/or --ratings.", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        movies = parse_movies_csv(Path(movies_file)) if movies_file else []
        ratings = parse_ratings_csv(Path(ratings_file)) if ratings_file else []
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] CSV parse failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Validated {len(movies)} movie(s) and {len(ratings)} rating(s).")
    if dry_run:
        typer.echo("[DRY RUN] Nothing written.")
        return

    with _open_store(config) as store:
        for movie in movies:
            store.movies.insert(movie)
        store.ratings.insert_many(ratings)

    typer.echo("[OK] Catalog imported.")


# ── Enrichment ────────────────────────────────────────────────────────────────

@app.command("enrich")
def enrich(
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Movies to enrich (default from config)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Enrich the first N rated movies and save the results.

    Per-movie failures are reported but do not stop the batch.
    """
    from movie_enricher.errors import MovieEnricherError
    from movie_enricher.pipeline.enrichment import EnrichmentOrchestrator
    from movie_enricher.reporting.formatters import format_enrichment_run

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    oracle = _build_oracle_or_exit(config)

    try:
        with _open_store(config) as store:
            result = EnrichmentOrchestrator(store, oracle, config).run(count)
            samples = store.enrichments.list_enriched_movies()
    except MovieEnricherError as exc:
        raise _fail(exc)
    finally:
        oracle.close()

    typer.echo(format_enrichment_run(result, samples))
    typer.echo("")
    if result.status == "failed":
        typer.echo("[ERROR] Every selected movie failed to enrich.", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] Enrichment complete. Data saved to movie_enrichments.")


@app.command("list-enrichments")
def list_enrichments(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Print every enriched movie."""
    from movie_enricher.reporting.formatters import format_enrichments_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_store(config) as store:
        movies = store.enrichments.list_enriched_movies()
    typer.echo(format_enrichments_table(movies))


@app.command("show-enrichment")
def show_enrichment(
    movie_id: int = typer.Argument(..., help="Catalog movieId."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Print one movie with its enrichment."""
    from movie_enricher.reporting.formatters import format_enriched_movie

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_store(config) as store:
        movie = store.movies.get_by_id(movie_id)
        if movie is None:
            typer.echo(f"[ERROR] Movie {movie_id} not found.", err=True)
            raise typer.Exit(code=1)
        enriched = store.enrichments.get_enriched_movie(movie_id)
    if enriched is None:
        typer.echo(f"[ERROR] Movie {movie_id} has not been enriched.", err=True)
        raise typer.Exit(code=1)
    typer.echo(format_enriched_movie(enriched))


@app.command("export-enrichments")
def export_enrichments(
    fmt: str = typer.Option("csv", "--format", "-f", help="csv, json, or parquet."),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output path (default: data/exports/enrichments.<fmt>)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Export the joined enrichment table for offline analysis."""
    from movie_enricher.reporting.export import (
        ENRICHED_MOVIE_COLUMNS,
        export_to_csv,
        export_to_json,
        export_to_parquet,
        flatten_enriched_movies,
    )

    fmt = fmt.lower()
    if fmt not in ("csv", "json", "parquet"):
        typer.echo(f"[ERROR] Unsupported format '{fmt}'. Use csv, json, or parquet.", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_store(config) as store:
        rows = flatten_enriched_movies(store.enrichments.list_enriched_movies())

    out_path = Path(output) if output else Path("data/exports") / f"enrichments.{fmt}"
    if fmt == "csv":
        export_to_csv(rows, out_path, fieldnames=ENRICHED_MOVIE_COLUMNS)
    elif fmt == "json":
        export_to_json(rows, out_path)
    else:
        export_to_parquet(rows, out_path)

    typer.echo(f"  Rows: {len(rows)}")
    typer.echo(f"[OK] Exported to {out_path}")


# ── Users and recommendations ─────────────────────────────────────────────────

@app.command("list-users")
def list_users(
    limit: Optional[int] = typer.Option(None, "--limit", help="Max ids to print."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Print user ids that have ratings."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_store(config) as store:
        user_ids = store.ratings.list_user_ids()
    shown = user_ids[: limit or config.recommendation.user_list_limit]
    typer.echo(f"Users with ratings: {len(user_ids)}")
    typer.echo("  " + ", ".join(str(u) for u in shown))


@app.command("preferences")
def preferences(
    user_id: int = typer.Argument(..., help="User id."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Derive and print a user's preference profile."""
    from movie_enricher.errors import MovieEnricherError
    from movie_enricher.pipeline.recommend import RecommendationPipeline
    from movie_enricher.reporting.formatters import format_preferences

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    oracle = _build_oracle_or_exit(config)

    try:
        with _open_store(config) as store:
            prefs = RecommendationPipeline(store, oracle, config).derive_preferences(user_id)
    except MovieEnricherError as exc:
        raise _fail(exc)
    finally:
        oracle.close()

    typer.echo(format_preferences(prefs))


@app.command("recommend")
def recommend(
    user_id: int = typer.Argument(..., help="User id."),
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Recommendations (1-50)."),
    filters: Optional[str] = typer.Option(
        None, "--filters", help="Free-text constraints, e.g. 'no horror, after 2000'."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Print oracle-ranked recommendations for a user."""
    from movie_enricher.errors import MovieEnricherError
    from movie_enricher.pipeline.recommend import RecommendationPipeline
    from movie_enricher.reporting.formatters import format_recommendations

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    oracle = _build_oracle_or_exit(config)

    try:
        with _open_store(config) as store:
            recs = RecommendationPipeline(store, oracle, config).recommend(
                user_id, count, filters
            )
    except MovieEnricherError as exc:
        raise _fail(exc)
    finally:
        oracle.close()

    typer.echo(format_recommendations(user_id, recs))


@app.command("query")
def query(
    text: str = typer.Argument(..., help="Natural-language question."),
    user_id: Optional[int] = typer.Option(None, "--user-id", help="Personalize for this user."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Ask a free-form question about the enriched catalog."""
    from movie_enricher.errors import MovieEnricherError
    from movie_enricher.pipeline.query import QueryPipeline

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    oracle = _build_oracle_or_exit(config)

    try:
        with _open_store(config) as store:
            result = QueryPipeline(store, oracle, config).answer(text, user_id)
    except MovieEnricherError as exc:
        raise _fail(exc)
    finally:
        oracle.close()

    typer.echo(json.dumps(result, indent=2, default=str))


@app.command("compare")
def compare(
    movie_ids: List[int] = typer.Argument(..., help="Two or more movieIds."),
    user_id: Optional[int] = typer.Option(None, "--user-id", help="Personalize for this user."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Compare two or more enriched movies."""
    from movie_enricher.errors import MovieEnricherError
    from movie_enricher.pipeline.query import QueryPipeline

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    oracle = _build_oracle_or_exit(config)

    try:
        with _open_store(config) as store:
            result = QueryPipeline(store, oracle, config).compare(movie_ids, user_id)
    except MovieEnricherError as exc:
        raise _fail(exc)
    finally:
        oracle.close()

    typer.echo(json.dumps(result, indent=2, default=str))


# ── Server ────────────────────────────────────────────────────────────────────

@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default from config)."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from movie_enricher.api.app import create_app

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    bind_host = host or config.api.host
    bind_port = port or config.api.port
    typer.echo(f"Serving Movie Recommendation System API on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_config=None)


if __name__ == "__main__":
    app()
