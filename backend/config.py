"""
Configuration and settings for the Plant Vault backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # S3-compatible storage for hero images
    cos_endpoint: Optional[str] = Field(default=None, alias="COS_ENDPOINT")
    cos_region: Optional[str] = Field(default=None, alias="COS_REGION")
    cos_bucket: Optional[str] = Field(default=None, alias="COS_BUCKET")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    # Auth (Supabase)
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: Optional[str] = Field(default=None, alias="SUPABASE_ANON_KEY")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="PLANT_VAULT_USE_IN_MEMORY_BACKENDS"
    )

    # Queue (Redis)
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    redis_queue_key: str = Field(default="plant_vault:imports", alias="REDIS_QUEUE_KEY")

    # Import behaviour
    import_log_limit: int = Field(default=500, alias="IMPORT_LOG_LIMIT")
    scrape_timeout_seconds: float = Field(default=15.0, alias="SCRAPE_TIMEOUT_SECONDS")
    image_timeout_seconds: float = Field(default=5.0, alias="IMAGE_TIMEOUT_SECONDS")
    stale_lock_seconds: int = Field(default=600, alias="IMPORT_STALE_LOCK_SECONDS")

    # Garden
    default_sow_use_percent: int = Field(default=50, alias="DEFAULT_SOW_USE_PERCENT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
