"""Application configuration and settings."""
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class Settings(BaseSettings):
    """Central configuration for the careers submission service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./data/careers.db"

    turnstile_secret_key: str | None = None
    turnstile_verify_url: str = TURNSTILE_VERIFY_URL

    storage_backend: Literal["local", "supabase"] = "local"
    storage_directory: Path = Path("data/attachments")
    storage_bucket: str = "applications"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    http_timeout_seconds: float = 10.0
    storage_timeout_seconds: float = 30.0
    database_timeout_seconds: float = 10.0

    max_attachment_bytes: int = 2 * 1024 * 1024

    log_level: str = "INFO"
    log_json: bool = False
    development_mode: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
