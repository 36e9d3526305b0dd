"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``MOVIE_ENRICHER_*`` prefix, plus
                                    ``OPENAI_API_KEY`` for the oracle

Entry point: ``load_config(config_path=None) -> AppConfig``

Pipelines, the API app factory, and CLI commands all receive an
``AppConfig`` instance — never raw dicts or ad-hoc env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite settings for the catalog and ratings databases."""

    model_config = ConfigDict(frozen=True)

    movies_db_path: str = "data/db/movies.db"
    ratings_db_path: str = "data/db/ratings.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class OracleConfig(BaseModel):
    """Chat-completion endpoint used as the semantic oracle."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    timeout_s: Optional[float] = 120.0

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"timeout_s must be positive or unset, got {v}.")
        return v


class EnrichmentConfig(BaseModel):
    """Batch enrichment parameters."""

    model_config = ConfigDict(frozen=True)

    default_movie_count: int = 75
    max_movie_count: int = 200
    inter_call_delay_ms: int = 500
    roi_window: int = 10

    @field_validator("inter_call_delay_ms")
    @classmethod
    def validate_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"inter_call_delay_ms must be >= 0, got {v}.")
        return v

    @field_validator("roi_window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"roi_window must be >= 1, got {v}.")
        return v


class RecommendationConfig(BaseModel):
    """Prompt-size bounds for the recommendation, query, and compare paths."""

    model_config = ConfigDict(frozen=True)

    default_count: int = 10
    max_count: int = 50
    candidate_cap: int = 50
    preference_sample_size: int = 20
    query_context_size: int = 100
    user_list_limit: int = 100


class ApiConfig(BaseModel):
    """HTTP server settings for ``movie-enricher serve``."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 3000

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port must be in 1..65535, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/movie_enricher.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    oracle: OracleConfig = OracleConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    recommendation: RecommendationConfig = RecommendationConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply environment overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variables to the raw config dict.

    Supported overrides:
      MOVIE_ENRICHER_MOVIES_DB_PATH   → raw["database"]["movies_db_path"]
      MOVIE_ENRICHER_RATINGS_DB_PATH  → raw["database"]["ratings_db_path"]
      MOVIE_ENRICHER_LOG_LEVEL        → raw["logging"]["level"]
      MOVIE_ENRICHER_PORT             → raw["api"]["port"]
      MOVIE_ENRICHER_DEBUG            → raw["debug"]
      OPENAI_API_KEY                  → raw["oracle"]["api_key"]
      OPENAI_BASE_URL                 → raw["oracle"]["base_url"]
    """
    if movies_db := os.environ.get("MOVIE_ENRICHER_MOVIES_DB_PATH"):
        raw.setdefault("database", {})["movies_db_path"] = movies_db

    if ratings_db := os.environ.get("MOVIE_ENRICHER_RATINGS_DB_PATH"):
        raw.setdefault("database", {})["ratings_db_path"] = ratings_db

    if log_level := os.environ.get("MOVIE_ENRICHER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if port := os.environ.get("MOVIE_ENRICHER_PORT"):
        raw.setdefault("api", {})["port"] = int(port)

    if debug := os.environ.get("MOVIE_ENRICHER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    if api_key := os.environ.get("OPENAI_API_KEY"):
        raw.setdefault("oracle", {})["api_key"] = api_key

    if base_url := os.environ.get("OPENAI_BASE_URL"):
        raw.setdefault("oracle", {})["base_url"] = base_url

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        oracle=OracleConfig(**raw.get("oracle", {})),
        enrichment=EnrichmentConfig(**raw.get("enrichment", {})),
        recommendation=RecommendationConfig(**raw.get("recommendation", {})),
        api=ApiConfig(**raw.get("api", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
