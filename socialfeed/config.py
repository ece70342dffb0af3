"""
Runtime configuration helpers for the FastAPI application.

Loads DATABASE_URL and the remaining settings from the environment, falling
back to the .env file located in the project root.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

# Platform-provided environment variables win over .env defaults
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="Social Feed", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Bearer tokens; the signing key itself comes from require_secret("JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")

    # Feed and list sizes
    feed_page_size: int = Field(default=20, alias="FEED_PAGE_SIZE")
    profile_feed_page_size: int = Field(default=5, alias="PROFILE_FEED_PAGE_SIZE")
    user_list_page_size: int = Field(default=15, alias="USER_LIST_PAGE_SIZE")
    user_search_limit: int = Field(default=5, alias="USER_SEARCH_LIMIT")
    user_search_min_length: int = Field(default=2, alias="USER_SEARCH_MIN_LENGTH")

    # S3-compatible image storage; keys are read with require_secret()
    storage_bucket: str | None = Field(default=None, alias="STORAGE_BUCKET")
    storage_region: str | None = Field(default=None, alias="STORAGE_REGION")
    storage_endpoint: str | None = Field(default=None, alias="STORAGE_ENDPOINT")
    storage_public_url: str | None = Field(default=None, alias="STORAGE_PUBLIC_URL")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


_PLACEHOLDERS = frozenset({"changeme", "change-me", "placeholder", "secret", "your-key-here"})


class MissingSecretError(RuntimeError):
    """A required credential is unset or still holds a template value."""


def is_placeholder(value: str | None) -> bool:
    normalized = (value or "").strip().lower()
    return not normalized or normalized in _PLACEHOLDERS


def require_secret(name: str) -> str:
    """Read credential ``name`` straight from the environment, never from Settings."""

    value = os.getenv(name)
    if is_placeholder(value):
        raise MissingSecretError(f"Environment variable {name} must be set to a real value")
    return value.strip()


__all__ = ["Settings", "get_settings", "MissingSecretError", "is_placeholder", "require_secret"]
