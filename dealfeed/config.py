"""Application configuration via Pydantic Settings."""

import os
from datetime import timedelta
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Content source (WordPress REST API)
    FEED_BASE_URL: str = "https://dealingindeals.com/wp-json/wp/v2/posts"
    FEED_PAGE_SIZE: int = 100
    FEED_MAX_POSTS: int = 7500
    FEED_REQUEST_TIMEOUT: float = 20.0
    FEED_RETRY_ATTEMPTS: int = 3
    # ISO-8601 lower bound sent as `after`; empty means no bound
    FEED_AFTER: str = ""
    FEED_SORT_BY_DATE: bool = True

    # Timestamps are shown in this zone
    DISPLAY_TIMEZONE: str = "America/New_York"

    # Image resolution
    IMAGE_RESOLVER_TIMEOUT: float = 15.0
    IMAGE_CACHE_DIR: str = ""
    IMAGE_CACHE_FILENAME: str = "image_url_cache.json"
    IMAGE_CACHE_TTL_DAYS: int = 7

    @field_validator("FEED_BASE_URL")
    @classmethod
    def validate_feed_base_url(cls, v: str) -> str:
        """The feed endpoint must be an absolute http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"FEED_BASE_URL must be an http(s) URL, got '{v}'")
        return v

    def get_cache_dir(self) -> Path:
        """Resolve the directory holding the persisted image cache.

        Returns:
            IMAGE_CACHE_DIR when set, otherwise `$XDG_CACHE_HOME/dealfeed`
            or `~/.cache/dealfeed`
        """
        if self.IMAGE_CACHE_DIR:
            return Path(self.IMAGE_CACHE_DIR).expanduser()
        xdg = os.environ.get("XDG_CACHE_HOME")
        base = Path(xdg) if xdg else Path.home() / ".cache"
        return base / "dealfeed"

    def get_cache_ttl(self) -> timedelta:
        """Maximum age of a cached image resolution."""
        return timedelta(days=self.IMAGE_CACHE_TTL_DAYS)


settings = Settings()
