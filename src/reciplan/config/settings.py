"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from reciplan.config import CONFIG_ROOT
from reciplan.models.ingest import IngestErrorCode

DEFAULT_ERROR_CATALOG_PATH = CONFIG_ROOT / "error_catalog.yaml"


class ErrorCatalogError(ValueError):
    """Raised when the error catalog file is missing entries or malformed."""


class ErrorCatalogEntry(BaseModel):
    """User messaging and retry policy for a single ingest error code."""

    message: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    recoverable: bool = False
    retry_label: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ErrorCatalog(BaseModel):
    """Complete lookup table from error code to :class:`ErrorCatalogEntry`."""

    errors: Dict[IngestErrorCode, ErrorCatalogEntry]

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _require_every_code(self) -> "ErrorCatalog":
        missing = [code.value for code in IngestErrorCode if code not in self.errors]
        if missing:
            raise ValueError(f"error catalog is missing entries for: {', '.join(missing)}")
        return self


def load_error_catalog(catalog_path: Path = DEFAULT_ERROR_CATALOG_PATH) -> ErrorCatalog:
    """Read and validate the YAML error catalog at ``catalog_path``."""

    if not catalog_path.exists():
        raise ErrorCatalogError(f"Error catalog not found: {catalog_path}")

    try:
        raw_data = yaml.safe_load(catalog_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ErrorCatalogError(f"Error catalog is not valid YAML: {catalog_path}") from exc

    if not isinstance(raw_data, dict):
        raise ErrorCatalogError(f"Error catalog must be a mapping: {catalog_path}")

    try:
        return ErrorCatalog(errors=raw_data.get("errors") or {})
    except ValidationError as exc:
        raise ErrorCatalogError(f"Invalid error catalog {catalog_path}: {exc}") from exc


class Settings(BaseSettings):
    """Primary application settings for the Reciplan ingest client."""

    api_base_url: HttpUrl = Field(default="http://localhost:8000/", alias="RECIPLAN_API_URL")
    api_token: Optional[SecretStr] = Field(default=None, alias="RECIPLAN_API_TOKEN")
    http_timeout_seconds: PositiveFloat = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    poll_interval_seconds: PositiveFloat = Field(default=4.0, alias="POLL_INTERVAL_SECONDS")
    poll_backoff_interval_seconds: PositiveFloat = Field(default=8.0, alias="POLL_BACKOFF_INTERVAL_SECONDS")
    poll_backoff_threshold: PositiveInt = Field(default=30, alias="POLL_BACKOFF_THRESHOLD")
    max_active_jobs: PositiveInt = Field(default=3, alias="MAX_ACTIVE_JOBS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    error_catalog: ErrorCatalog = Field(default_factory=lambda: load_error_catalog(DEFAULT_ERROR_CATALOG_PATH))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = [
    "DEFAULT_ERROR_CATALOG_PATH",
    "ErrorCatalog",
    "ErrorCatalogEntry",
    "ErrorCatalogError",
    "Settings",
    "get_settings",
    "load_error_catalog",
]
