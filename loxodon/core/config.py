"""Configuration management for the Loxodon administration API."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Loxodon API")
    version: str = Field(default="1.0.0")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")

    database_url: str = Field(default="postgresql+psycopg://loxodon:loxodon@db:5432/loxodon")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    unprotected_prefixes: list[str] = Field(
        default_factory=lambda: ["/health", "/docs", "/redoc", "/openapi.json", "/metrics"]
    )

    jwt_algorithms: list[str] = Field(default_factory=lambda: ["RS256"])
    jwt_secret: str | None = Field(default=None)
    jwks_url: str | None = Field(default=None)
    jwt_issuer: str | None = Field(default=None)
    jwt_audience: str | None = Field(default=None)
    jwks_cache_seconds: int = Field(default=3600)

    directory_tenant_id: str | None = Field(default=None)
    directory_client_id: str | None = Field(default=None)
    directory_client_secret: str | None = Field(default=None)
    directory_authority_url: str = Field(default="https://login.microsoftonline.com")
    directory_graph_url: str = Field(default="https://graph.microsoft.com/v1.0")
    directory_timeout_seconds: float = Field(default=10.0)

    log_level: str | None = Field(default=None)
    logging_config: str | None = Field(default=None)

    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)
    otel_exporter_endpoint: str | None = Field(default=None)

    default_page_size: int = Field(default=20)
    max_page_size: int = Field(default=500)
    active_now_window_seconds: int = Field(default=120)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
