"""
Configuration management for the sync gateway.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. The API layer, the store factory and the observability
helpers all consume the shared `settings` instance.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    # General application settings
    API_TITLE: str = "Sync Gateway"
    API_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Protocol surface
    OBJECT_ROOT: str = Field("objects", pattern=r"^[A-Za-z0-9_\-]+$")
    MTIME_PATH: str = Field("mtime", pattern=r"^[A-Za-z0-9_\-]+$")
    MODIFIED_HEADER: str = "X-Last-Modified"

    # Document store
    STORE_BACKEND: str = Field("memory", pattern=r"^(memory|mongodb)$")
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "syncgateway"
    MONGODB_TIMEOUT_MS: PositiveInt = 5000
    SYNC_META_COLLECTION: str = "_sync_meta"

    # Logging / monitoring / tracing
    LOG_LEVEL: str = Field("INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    ENABLE_METRICS: bool = True
    ENABLE_TRACING: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[AnyUrl] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("LOG_LEVEL", mode="before")
    def _upper_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper()
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()
