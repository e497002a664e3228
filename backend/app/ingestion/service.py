from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence

import httpx

from app.config.sources import SourceConfig
from app.errors import ConfigurationMissing, SourceUnavailable
from app.ingestion.adapters import SourceAdapter, default_adapters
from app.models import AggregationResult, HeadlineItem, SourceResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 30

ClientFactory = Callable[[], httpx.AsyncClient]


def deduplicate(items: Iterable[HeadlineItem]) -> list[HeadlineItem]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""
    seen: set[str] = set()
    out: list[HeadlineItem] = []
    for item in items:
        if item.url in seen:
            continue
        seen.add(item.url)
        out.append(item)
    return out


def merge_headlines(results: Sequence[SourceResult], limit: int = DEFAULT_MAX_ITEMS) -> tuple[HeadlineItem, ...]:
    """Concatenate per-source items in source order, dedupe, sort newest first, truncate.

    The sort is stable, so equal timestamps keep their concatenation order.
    """
    merged = [item for result in results if result.ok for item in result.items]
    unique = deduplicate(merged)
    unique.sort(key=lambda item: item.sort_key, reverse=True)
    return tuple(unique[:limit])


class Aggregator:
    def __init__(
        self,
        sources: Sequence[SourceConfig],
        adapters: Mapping[str, SourceAdapter] | None = None,
        *,
        max_items: int = DEFAULT_MAX_ITEMS,
        client_factory: ClientFactory | None = None,
        request_timeout: float = 15.0,
        user_agent: str = "headline-highlights/1.0",
    ) -> None:
        self.sources = tuple(sources)
        self.adapters = dict(adapters) if adapters is not None else default_adapters()
        self.max_items = max_items
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(
                headers={"User-Agent": user_agent},
                timeout=request_timeout,
                follow_redirects=True,
            )
        )

    def check_configuration(self) -> None:
        for config in self.sources:
            if config.source_type not in self.adapters:
                raise ConfigurationMissing(f"No adapter for source type {config.source_type!r} ({config.key})")
            if config.requires_auth and not config.auth_token:
                raise ConfigurationMissing(f"Source {config.key!r} requires a credential but none is configured")

    async def _fetch_one(self, client: httpx.AsyncClient, config: SourceConfig) -> SourceResult:
        adapter = self.adapters[config.source_type]
        try:
            items = await adapter.fetch(client, config)
        except SourceUnavailable as exc:
            logger.warning("Source %s unavailable: %s", config.key, exc.reason)
            return SourceResult(source_key=config.key, error=exc)
        except ConfigurationMissing:
            raise
        except Exception as exc:
            logger.exception("Source %s failed unexpectedly", config.key)
            error = SourceUnavailable(config.key, f"unexpected error: {exc.__class__.__name__}: {exc}")
            return SourceResult(source_key=config.key, error=error)

        logger.info("Source %s returned %d items", config.key, len(items))
        return SourceResult(source_key=config.key, items=tuple(items))

    async def aggregate(self) -> AggregationResult:
        self.check_configuration()
        if not self.sources:
            logger.warning("No feed sources configured")
            return AggregationResult()

        async with self._client_factory() as client:
            # gather preserves argument order, so results follow configuration order
            results = await asyncio.gather(*(self._fetch_one(client, config) for config in self.sources))

        items = merge_headlines(results, self.max_items)
        result = AggregationResult(items=items, sources=tuple(results))
        if result.failed_sources:
            logger.warning(
                "Aggregation finished with %d/%d sources failing: %s",
                len(result.failed_sources),
                len(results),
                ", ".join(result.failed_sources),
            )
        return result
