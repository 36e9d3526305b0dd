"""FastAPI HTTP surface over the enrichment, recommendation, and query pipelines."""

from movie_enricher.api.app import create_app

__all__ = ["create_app"]
