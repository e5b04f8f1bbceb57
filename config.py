"""
Configuration and settings for the GoPlan API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_path: Optional[str] = Field(default=None)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Database (Postgres in production, SQLite locally)
    database_url: str = Field(default="sqlite:///./goplan.db")

    # Bearer tokens
    jwt_secret: str = Field(default="dev_secret_change_me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_minutes: int = Field(default=60 * 24 * 7)

    # S3-compatible blob storage
    storage_bucket: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_endpoint: Optional[str] = Field(default=None)
    storage_public_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    use_in_memory_storage: bool = Field(default=False)
    max_upload_size_mb: int = Field(default=5)
    max_photos_per_upload: int = Field(default=10)

    # Third-party services
    geocoding_enabled: bool = Field(default=True)
    push_notifications_enabled: bool = Field(default=True)
    firebase_credentials_path: Optional[str] = Field(default=None)
    google_tokeninfo_url: str = Field(
        default="https://oauth2.googleapis.com/tokeninfo"
    )
    facebook_graph_url: str = Field(default="https://graph.facebook.com/me")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
