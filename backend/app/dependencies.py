from functools import lru_cache

from app.config.settings import Settings, load_settings
from app.config.sources import SourceConfig, load_source_configs
from app.errors import ConfigurationMissing
from app.ingestion import Aggregator
from app.services.highlights_cache import HighlightsCache


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_source_configs() -> tuple[SourceConfig, ...]:
    try:
        return load_source_configs(get_settings())
    except (FileNotFoundError, ValueError) as exc:
        raise ConfigurationMissing(f"Invalid source configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_highlights_cache() -> HighlightsCache:
    settings = get_settings()
    aggregator = Aggregator(
        get_source_configs(),
        max_items=settings.max_headlines,
        request_timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )
    return HighlightsCache(aggregator, ttl_seconds=settings.cache_ttl_seconds)
