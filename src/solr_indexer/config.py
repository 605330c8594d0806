"""Application configuration and settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Solr Indexer"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_credentials: bool = True
    cors_methods: list[str] = ["*"]
    cors_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    # Solr Configuration
    solr_url: str = "http://localhost:8983/solr/collection1"
    solr_queue_size: int = Field(default=500, gt=0)  # Documents per batch
    solr_thread_count: int = Field(default=1, gt=0)  # Dispatch workers
    solr_timeout: float = 60.0  # Timeout in seconds
    # Static field id -> property path mappings (JSON object in env)
    solr_filter_properties: dict[str, str] = {"id": "jcr:uuid"}

    # Repository Configuration
    documents_root: str = "/content/documents"
    configuration_root: str = "/content/"
    repository_export_path: str | None = None  # JSON export for the in-memory repository
    repository_poll_interval: float = 60.0  # Seconds between availability probes

    # Indexing
    startup_check_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
