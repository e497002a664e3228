from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    miniflux_url: str = "http://localhost:8081"
    miniflux_api_key: str | None = None
    miniflux_enabled: bool = True
    rss_feeds: list[str] = Field(default_factory=list)
    gnews_api_key: str | None = None
    sources_path: str | None = None
    cache_ttl_seconds: float = Field(default=60.0, gt=0)
    max_headlines: int = Field(default=30, ge=1, le=30)
    request_timeout: float = Field(default=15.0, gt=0)
    user_agent: str = "headline-highlights/1.0"
    static_dir: str | None = None
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"
    log_file: str | None = None


def load_settings() -> Settings:
    """Read settings from the environment, after loading a local .env file if present."""
    load_dotenv(override=False)
    return Settings(
        miniflux_url=os.getenv("MINIFLUX_URL", "http://localhost:8081").rstrip("/"),
        miniflux_api_key=os.getenv("MINIFLUX_API_KEY") or None,
        miniflux_enabled=_env_bool("MINIFLUX_ENABLED", True),
        rss_feeds=_env_list("HEADLINE_RSS_FEEDS"),
        gnews_api_key=os.getenv("GNEWS_API_KEY") or None,
        sources_path=os.getenv("SOURCES_PATH") or None,
        cache_ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", "60")),
        max_headlines=int(os.getenv("MAX_HEADLINES", "30")),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "15")),
        user_agent=os.getenv("USER_AGENT", "headline-highlights/1.0"),
        static_dir=os.getenv("STATIC_DIR") or None,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3001")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
    )
