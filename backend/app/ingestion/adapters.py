from __future__ import annotations

import io
import logging
from collections.abc import Callable
from typing import Any, Protocol

import feedparser
import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config.sources import SourceConfig
from app.errors import ConfigurationMissing, SourceUnavailable
from app.ingestion.normalize import (
    normalize_feed_entry,
    normalize_gnews_article,
    normalize_miniflux_entry,
)
from app.models import HeadlineItem

logger = logging.getLogger(__name__)

FETCH_ATTEMPTS = 3
ENTRY_LIMIT = 30


class SourceAdapter(Protocol):

    async def fetch(self, client: httpx.AsyncClient, config: SourceConfig) -> list[HeadlineItem]:
        ...


@retry(
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
    stop=stop_after_attempt(FETCH_ATTEMPTS),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2.0),
    reraise=True,
)
async def _get(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    return await client.get(url, params=params, headers=headers)


async def fetch_response(
    client: httpx.AsyncClient,
    config: SourceConfig,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """GET with bounded retries on transport errors; anything but 2xx is SourceUnavailable."""
    try:
        response = await _get(client, url, params=params, headers=headers)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise SourceUnavailable(config.key, f"request failed: {exc.__class__.__name__}: {exc}") from exc

    if not response.is_success:
        raise SourceUnavailable(config.key, f"upstream returned {response.status_code}")
    return response


def _json_object(config: SourceConfig, response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise SourceUnavailable(config.key, f"invalid JSON payload: {exc}") from exc
    if not isinstance(payload, dict):
        raise SourceUnavailable(config.key, "unexpected JSON shape")
    return payload


def _entry_list(config: SourceConfig, payload: dict[str, Any], field: str) -> list[Any]:
    entries = payload.get(field)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise SourceUnavailable(config.key, f"'{field}' is not a list")
    return entries


def _normalize_all(
    config: SourceConfig,
    entries: list[Any],
    normalize: Callable[[Any], HeadlineItem | None],
) -> list[HeadlineItem]:
    items: list[HeadlineItem] = []
    dropped = 0
    for entry in entries:
        item = normalize(entry)
        if item is None:
            dropped += 1
            continue
        items.append(item)
    if dropped:
        logger.debug("Source %s: dropped %d unusable entries", config.key, dropped)
    return items


def _require_token(config: SourceConfig) -> str:
    if not config.auth_token:
        raise ConfigurationMissing(f"Source {config.key!r} requires a credential but none is configured")
    return config.auth_token


class MinifluxAdapter:
    """Reads entries from a Miniflux instance, unread first, falling back to all entries."""

    source_type = "miniflux"

    def __init__(self, limit: int = ENTRY_LIMIT) -> None:
        self.limit = limit

    async def fetch(self, client: httpx.AsyncClient, config: SourceConfig) -> list[HeadlineItem]:
        token = _require_token(config)
        url = f"{config.endpoint.rstrip('/')}/v1/entries"
        headers = {"X-Auth-Token": token}
        params: dict[str, Any] = {
            "order": "published_at",
            "direction": "desc",
            "limit": self.limit,
        }

        response = await fetch_response(client, config, url, params={"status": "unread", **params}, headers=headers)
        entries = _entry_list(config, _json_object(config, response), "entries")
        if not entries:
            logger.info("Source %s: no unread entries, falling back to all entries", config.key)
            try:
                response = await fetch_response(client, config, url, params=params, headers=headers)
                entries = _entry_list(config, _json_object(config, response), "entries")
            except SourceUnavailable as exc:
                logger.info("Source %s: fallback to all entries failed (%s), keeping empty unread result", config.key, exc.reason)
                return []

        return _normalize_all(config, entries, normalize_miniflux_entry)


class RssFeedAdapter:
    source_type = "rss"

    async def fetch(self, client: httpx.AsyncClient, config: SourceConfig) -> list[HeadlineItem]:
        response = await fetch_response(client, config, config.endpoint)
        feed = feedparser.parse(io.BytesIO(response.content))
        entries = list(getattr(feed, "entries", None) or [])
        if getattr(feed, "bozo", 0) and not entries:
            exc = getattr(feed, "bozo_exception", None)
            raise SourceUnavailable(config.key, f"invalid RSS/Atom feed ({exc})")

        channel = getattr(feed, "feed", None)
        feed_title = channel.get("title") if hasattr(channel, "get") else None
        return _normalize_all(
            config,
            entries,
            lambda entry: normalize_feed_entry(entry, feed_title=feed_title),
        )


class GNewsAdapter:
    source_type = "gnews"

    def __init__(self, topic: str = "technology", lang: str = "en", limit: int = ENTRY_LIMIT) -> None:
        self.topic = topic
        self.lang = lang
        self.limit = limit

    async def fetch(self, client: httpx.AsyncClient, config: SourceConfig) -> list[HeadlineItem]:
        token = _require_token(config)
        response = await fetch_response(
            client,
            config,
            config.endpoint,
            params={
                "token": token,
                "topic": self.topic,
                "lang": self.lang,
                "max": min(self.limit, 100),
            },
        )
        articles = _entry_list(config, _json_object(config, response), "articles")
        return _normalize_all(config, articles, normalize_gnews_article)


def default_adapters() -> dict[str, SourceAdapter]:
    return {
        MinifluxAdapter.source_type: MinifluxAdapter(),
        RssFeedAdapter.source_type: RssFeedAdapter(),
        GNewsAdapter.source_type: GNewsAdapter(),
    }
