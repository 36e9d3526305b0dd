"""
Shared pytest fixtures for the Movie Enricher test suite.

Provides:
  - ``catalog_conn`` / ``ratings_conn``: fresh in-memory SQLite connections
    with the catalog and ratings schemas applied.
  - ``store``: a ``MovieStore`` over those connections.
  - ``seeded_store``: the same store loaded with a small sample catalog.
  - ``enriched_store``: ``seeded_store`` with every sample movie enriched.
  - ``oracle``: a ``ScriptedOracle`` returning canned completions per
    request purpose (including malformed ones and raised errors).
  - ``app_config``: default ``AppConfig`` with the inter-call delay disabled.

Sample catalog (``seeded_store``)::

    id  title            company       release     budget   revenue   rated by
     1  Toy Story        Pixar         1995-11-22   30M      373.6M   user 1
     2  A Bug's Life     Pixar         1998-11-25  120M      363.3M   user 1
     3  Toy Story 2      Pixar         1999-10-30   90M      497.4M   user 2
     4  Heat             Warner Bros.  1995-12-15   60M      187.4M   user 1
     5  Sabrina          Paramount     1995-12-15   58M        0      user 2
     6  Unseen Picture   Indie Co      2001-01-01    1M        2M     nobody
"""

from __future__ import annotations

import json
import sqlite3
from typing import Callable, Generator, Union

import pytest

from movie_enricher.config import AppConfig, EnrichmentConfig
from movie_enricher.db.connection import open_connection
from movie_enricher.db.schema import apply_catalog_schema, apply_ratings_schema
from movie_enricher.db.store import MovieStore
from movie_enricher.models.movie import Movie, MovieEnrichment, Rating
from movie_enricher.oracle.base import Oracle, OracleRequest

Scripted = Union[str, Exception]


# ── Oracle fake ───────────────────────────────────────────────────────────────

class ScriptedOracle(Oracle):
    """Oracle fake that replays scripted completions keyed by request purpose.

    Each purpose holds a queue; responses are consumed in order and the last
    one repeats. An ``Exception`` in the queue is raised instead of returned.
    Every request is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.requests: list[OracleRequest] = []
        self.closed = False
        self._scripts: dict[str, list[Scripted]] = {}

    def script(self, purpose: str, *responses: Scripted) -> "ScriptedOracle":
        self._scripts[purpose] = list(responses)
        return self

    def complete(self, request: OracleRequest) -> str:
        self.requests.append(request)
        queue = self._scripts.get(request.purpose)
        if not queue:
            raise AssertionError(f"No scripted response for purpose '{request.purpose}'")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def requests_for(self, purpose: str) -> list[OracleRequest]:
        return [r for r in self.requests if r.purpose == purpose]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def oracle() -> ScriptedOracle:
    """A fresh ``ScriptedOracle`` with no scripts."""
    return ScriptedOracle()


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def catalog_conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory catalog database with ``movies`` and ``movie_enrichments``.

    ``check_same_thread`` is off so FastAPI's threadpool can use it.
    """
    conn = open_connection(":memory:", wal_mode=False, check_same_thread=False)
    apply_catalog_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def ratings_conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory ratings database."""
    conn = open_connection(":memory:", wal_mode=False, check_same_thread=False)
    apply_ratings_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(catalog_conn: sqlite3.Connection, ratings_conn: sqlite3.Connection) -> MovieStore:
    """Empty ``MovieStore`` over the in-memory connections."""
    return MovieStore.from_connections(catalog_conn, ratings_conn)


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def make_movie() -> Callable[..., Movie]:
    """Factory for ``Movie`` objects with a single production company."""

    def _make(
        movie_id: int,
        title: str = "Untitled",
        company: str | None = "Pixar",
        release_date: str = "2000-01-01",
        budget: float = 0,
        revenue: float = 0,
        **kwargs,
    ) -> Movie:
        companies = json.dumps([{"name": company}]) if company else ""
        return Movie(
            movie_id=movie_id,
            title=title,
            production_companies=companies,
            release_date=release_date,
            budget=budget,
            revenue=revenue,
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_movies(make_movie) -> list[Movie]:
    return [
        make_movie(1, "Toy Story", "Pixar", "1995-11-22", 30_000_000, 373_554_033,
                   genres="Animation, Family", overview="Toys come alive.", runtime=81),
        make_movie(2, "A Bug's Life", "Pixar", "1998-11-25", 120_000_000, 363_258_859,
                   genres="Animation, Comedy", overview="An ant recruits warriors."),
        make_movie(3, "Toy Story 2", "Pixar", "1999-10-30", 90_000_000, 497_366_869,
                   genres="Animation, Family", overview="Woody is stolen."),
        make_movie(4, "Heat", "Warner Bros.", "1995-12-15", 60_000_000, 187_436_818,
                   genres="Crime, Thriller", overview="A cop hunts a thief.", runtime=170),
        make_movie(5, "Sabrina", "Paramount", "1995-12-15", 58_000_000, 0,
                   genres="Comedy, Romance", overview="An ugly duckling returns."),
        make_movie(6, "Unseen Picture", "Indie Co", "2001-01-01", 1_000_000, 2_000_000,
                   genres="Drama"),
    ]


@pytest.fixture
def sample_ratings() -> list[Rating]:
    return [
        Rating(user_id=1, movie_id=1, rating=5.0, timestamp=100),
        Rating(user_id=1, movie_id=2, rating=4.0, timestamp=200),
        Rating(user_id=1, movie_id=4, rating=3.0, timestamp=300),
        Rating(user_id=2, movie_id=3, rating=4.5, timestamp=50),
        Rating(user_id=2, movie_id=5, rating=2.0, timestamp=60),
    ]


@pytest.fixture
def seeded_store(store: MovieStore, sample_movies, sample_ratings) -> MovieStore:
    """``store`` loaded with ``sample_movies`` and ``sample_ratings``."""
    for movie in sample_movies:
        store.movies.insert(movie)
    store.ratings.insert_many(sample_ratings)
    return store


@pytest.fixture
def enriched_store(seeded_store: MovieStore) -> MovieStore:
    """``seeded_store`` with an enrichment row for every sample movie.

    Award potential cycles High/Medium/Low; index is ``movie_id * 10``.
    """
    awards = ("High", "Medium", "Low")
    for movie in seeded_store.movies.list_movies():
        seeded_store.enrichments.upsert(
            MovieEnrichment(
                movie_id=movie.movie_id,
                award_potential=awards[movie.movie_id % 3],
                popularity_quality_index=float(movie.movie_id * 10),
                emotional_genres="uplifting, whimsical",
                production_company_rolling_roi=None,
                production_effectiveness_score=50.0,
            )
        )
    return seeded_store


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Default config with pacing disabled so tests never sleep."""
    return AppConfig(enrichment=EnrichmentConfig(inter_call_delay_ms=0))
