"""
Configuration and settings for the project tracker.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the API service and the client."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Database (Postgres expected in production, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Local store, used when no database is configured. Mirrors the browser
    # store the dashboard keeps under the `rw_projects` key.
    data_file: str = Field(default="data/rw_projects.json")
    media_dir: str = Field(default="data/uploads")
    media_base_url: str = Field(default="/api/media")

    # S3-compatible storage for photos and videos
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Cache (Redis) for weather lookups
    redis_url: Optional[str] = Field(default=None)
    redis_key_prefix: str = Field(default="tracker:")
    weather_cache_ttl: int = Field(default=3600)
    weather_timeout: float = Field(default=15.0)

    # Client side: which data source the dashboard talks to
    api_mode: str = Field(default="local")
    api_base_test: str = Field(default="http://localhost:9005")
    api_base_prod: str = Field(default="")
    api_timeout: float = Field(default=30.0)

    # Listing and uploads
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)
    photo_target_bytes: int = Field(default=100 * 1024)
    max_upload_bytes: int = Field(default=50 * 1024 * 1024)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
