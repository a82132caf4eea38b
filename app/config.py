"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Media Log", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./medialog.db", alias="DATABASE_URL"
    )

    letterboxd_base_url: HttpUrl = Field(
        default="https://letterboxd.com", alias="LETTERBOXD_BASE_URL"
    )
    goodreads_base_url: HttpUrl = Field(
        default="https://www.goodreads.com", alias="GOODREADS_BASE_URL"
    )
    feed_timeout_seconds: float = Field(
        default=20.0, alias="FEED_TIMEOUT", gt=0, le=300
    )
    feed_connect_timeout_seconds: float = Field(
        default=10.0, alias="FEED_CONNECT_TIMEOUT", gt=0, le=120
    )
    feed_user_agent: str = Field(
        default="MediaLog/1.0 (+feed-sync)", alias="FEED_USER_AGENT"
    )

    sync_interval_seconds: int = Field(default=0, alias="SYNC_INTERVAL", ge=0)
    cron_secret: str | None = Field(default=None, alias="CRON_SECRET")
    user_id_header: str = Field(default="X-User-Id", alias="USER_ID_HEADER")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("cron_secret", mode="before")
    @classmethod
    def _blank_secret_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("user_id_header")
    @classmethod
    def _require_header_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("USER_ID_HEADER must not be blank")
        return cleaned

    @property
    def letterboxd_root(self) -> str:
        """Return the Letterboxd base URL without a trailing slash."""

        return str(self.letterboxd_base_url).rstrip("/")

    @property
    def goodreads_root(self) -> str:
        """Return the Goodreads base URL without a trailing slash."""

        return str(self.goodreads_base_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
