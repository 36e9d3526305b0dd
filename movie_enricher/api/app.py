"""
FastAPI application factory.

``create_app(config)`` builds an app that opens its own ``MovieStore`` in the
lifespan hook and closes it at shutdown. Tests (and embedding callers) pass
an already-open store and a fake oracle instead; injected resources are
never closed by the app.

The oracle is built on first use, so read-only endpoints keep working when
``OPENAI_API_KEY`` is unset; oracle-backed endpoints then answer 502.

Error mapping (body is always ``{"error": ..., "details": ...}``)::

    ValidationError, malformed request  -> 400
    NotFoundError, EmptyResultError     -> 404
    OracleError                         -> 502
    anything else                       -> 500
"""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movie_enricher import __version__
from movie_enricher.api.schemas import CompareRequest, EnrichRequest, QueryRequest
from movie_enricher.config import AppConfig
from movie_enricher.db.store import MovieStore
from movie_enricher.errors import (
    EmptyResultError,
    NotFoundError,
    OracleError,
    ValidationError,
)
from movie_enricher.oracle.base import Oracle
from movie_enricher.oracle.openai_client import OpenAIChatOracle
from movie_enricher.pipeline.enrichment import EnrichmentOrchestrator
from movie_enricher.pipeline.query import QueryPipeline
from movie_enricher.pipeline.recommend import RecommendationPipeline

logger = logging.getLogger(__name__)

_ENDPOINT_INDEX = {
    "enrichment": {
        "POST /api/enrich": "Enrich movies with oracle-generated attributes",
        "GET /api/enrichments": "Get all enriched movies",
        "GET /api/enrichments/{movieId}": "Get enrichment for a specific movie",
    },
    "recommendations": {
        "GET /api/users": "Get list of available user IDs",
        "GET /api/users/{userId}/preferences": "Analyze user preferences",
        "GET /api/users/{userId}/recommendations": "Get personalized recommendations",
        "POST /api/query": "Natural language query (body: { query, userId? })",
        "POST /api/compare": "Compare movies (body: { movieIds, userId? })",
    },
}


class _AppResources:
    """Store and oracle shared by all requests of one app instance."""

    def __init__(
        self,
        config: AppConfig,
        store: Optional[MovieStore],
        oracle: Optional[Oracle],
    ) -> None:
        self.config = config
        self.store = store
        self._oracle = oracle
        self.owns_store = store is None
        self.owns_oracle = oracle is None
        # Enrichment runs write the catalog; one run at a time.
        self.enrich_lock = threading.Lock()

    @property
    def oracle(self) -> Oracle:
        if self._oracle is None:
            self._oracle = OpenAIChatOracle.from_config(self.config.oracle)
        return self._oracle

    def open(self) -> None:
        if self.owns_store:
            self.store = MovieStore.from_config(
                self.config.database, check_same_thread=False
            ).open()

    def close(self) -> None:
        if self.owns_store and self.store is not None:
            self.store.close()
        if self.owns_oracle and self._oracle is not None:
            self._oracle.close()
            self._oracle = None

    def recommendations(self) -> RecommendationPipeline:
        return RecommendationPipeline(self.store, self.oracle, self.config)

    def queries(self) -> QueryPipeline:
        return QueryPipeline(self.store, self.oracle, self.config, self.recommendations())

    def orchestrator(self) -> EnrichmentOrchestrator:
        return EnrichmentOrchestrator(self.store, self.oracle, self.config)


def _error(status_code: int, error: str, details: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


def create_app(
    config: AppConfig,
    store: Optional[MovieStore] = None,
    oracle: Optional[Oracle] = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        config: Loaded ``AppConfig``.
        store:  Open ``MovieStore`` to serve from. When None the app opens
                one from ``config.database`` at startup (with
                ``check_same_thread=False``, since handlers run in a
                threadpool) and closes it at shutdown.
        oracle: Oracle to use. When None an ``OpenAIChatOracle`` is built
                from ``config.oracle`` on first use.

    Returns:
        Configured ``FastAPI`` instance.
    """
    resources = _AppResources(config, store, oracle)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resources.open()
        logger.info("API ready on port %d", config.api.port)
        try:
            yield
        finally:
            resources.close()

    app = FastAPI(title="Movie Recommendation System API", version=__version__, lifespan=lifespan)
    app.state.resources = resources

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    # ── Error mapping ─────────────────────────────────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def _on_request_validation(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return _error(400, "Invalid request", details)

    @app.exception_handler(ValidationError)
    async def _on_validation(request: Request, exc: ValidationError):
        return _error(400, "Invalid request", str(exc))

    @app.exception_handler(NotFoundError)
    async def _on_not_found(request: Request, exc: NotFoundError):
        return _error(404, "Not found", str(exc))

    @app.exception_handler(EmptyResultError)
    async def _on_empty(request: Request, exc: EmptyResultError):
        return _error(404, "No eligible results", str(exc))

    @app.exception_handler(OracleError)
    async def _on_oracle(request: Request, exc: OracleError):
        logger.error("Oracle failure on %s: %s", request.url.path, exc)
        return _error(502, "Oracle request failed", str(exc))

    @app.exception_handler(Exception)
    async def _on_unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(500, "Internal server error", str(exc))

    # ── Service endpoints ─────────────────────────────────────────────────────

    @app.get("/")
    def index() -> dict:
        return {
            "message": "Movie Recommendation System API",
            "version": __version__,
            "endpoints": _ENDPOINT_INDEX,
        }

    @app.get("/health")
    def health() -> dict:
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    # ── Enrichment ────────────────────────────────────────────────────────────

    @app.post("/api/enrich")
    def enrich(body: Optional[EnrichRequest] = None) -> dict:
        count = body.count if body is not None and body.count is not None else (
            config.enrichment.default_movie_count
        )
        with resources.enrich_lock:
            result = resources.orchestrator().run(count)
        enrichments = result.enrichments
        return {
            "success": True,
            "message": f"Enriched {len(enrichments)} movies",
            "count": len(enrichments),
            "failed": len(result.failed),
            "sample": [e.model_dump(by_alias=True) for e in enrichments[:5]],
        }

    @app.get("/api/enrichments")
    def list_enrichments() -> dict:
        movies = resources.store.enrichments.list_enriched_movies()
        return {
            "success": True,
            "count": len(movies),
            "movies": [m.model_dump(by_alias=True) for m in movies],
        }

    @app.get("/api/enrichments/{movie_id}")
    def get_enrichment(movie_id: int) -> dict:
        movie = resources.store.movies.get_by_id(movie_id)
        if movie is None:
            raise NotFoundError("Movie not found")
        enrichment = resources.store.enrichments.get_by_movie(movie_id)
        if enrichment is None:
            raise NotFoundError("Enrichment not found for this movie")
        return {
            "success": True,
            "movie": movie.model_dump(by_alias=True),
            "enrichment": enrichment.model_dump(by_alias=True),
        }

    # ── Users and recommendations ─────────────────────────────────────────────

    @app.get("/api/users")
    def list_users() -> dict:
        user_ids = resources.store.ratings.list_user_ids()
        return {
            "success": True,
            "count": len(user_ids),
            "userIds": user_ids[: config.recommendation.user_list_limit],
        }

    @app.get("/api/users/{user_id}/preferences")
    def get_preferences(user_id: int) -> dict:
        preferences = resources.recommendations().derive_preferences(user_id)
        return {"success": True, "preferences": preferences.model_dump(by_alias=True)}

    @app.get("/api/users/{user_id}/recommendations")
    def get_recommendations(
        user_id: int,
        count: Optional[int] = None,
        filters: Optional[str] = None,
    ) -> dict:
        recommendations = resources.recommendations().recommend(user_id, count, filters)
        return {
            "success": True,
            "userId": user_id,
            "count": len(recommendations),
            "recommendations": [r.model_dump(by_alias=True) for r in recommendations],
        }

    @app.post("/api/query")
    def query(body: QueryRequest) -> dict:
        result = resources.queries().answer(body.query, body.user_id)
        return {"success": True, "query": body.query, "result": result}

    @app.post("/api/compare")
    def compare(body: CompareRequest) -> dict:
        comparison = resources.queries().compare(body.movie_ids, body.user_id)
        return {"success": True, "comparison": comparison}

    return app
