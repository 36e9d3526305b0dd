"""
Error taxonomy shared by the pipelines, the CLI, and the HTTP surface.

  ValidationError  — bad input shape or range (400 at the HTTP boundary)
  NotFoundError    — movie, user, or enrichment absent (404)
  EmptyResultError — no eligible candidates or ratings (404)
  OracleError      — failed or unparseable completion (502)

Batch enrichment absorbs per-item failures into ``ItemOutcome`` records;
every other pipeline lets these exceptions reach the caller.
"""

from __future__ import annotations


class MovieEnricherError(RuntimeError):
    """Base class for all domain errors raised by ``movie_enricher``."""


class ValidationError(MovieEnricherError):
    """Raised when an input value is outside its accepted shape or range."""


class NotFoundError(MovieEnricherError):
    """Raised when a requested movie, user, or enrichment does not exist."""


class EmptyResultError(MovieEnricherError):
    """Raised when a pipeline has nothing eligible to work with."""


class OracleError(MovieEnricherError):
    """Raised when the oracle call fails or returns unusable output.

    Attributes:
        raw_content: The completion text that failed to parse, if any.
    """

    def __init__(self, message: str, raw_content: str | None = None) -> None:
        self.raw_content = raw_content
        super().__init__(message)


def require_in_range(name: str, value: int, lower: int, upper: int) -> int:
    """Return ``value`` if ``lower <= value <= upper``, else raise ``ValidationError``."""
    if not lower <= value <= upper:
        raise ValidationError(f"{name} must be between {lower} and {upper}, got {value}.")
    return value
