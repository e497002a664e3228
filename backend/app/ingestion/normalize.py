from __future__ import annotations

import logging
import time
from calendar import timegm
from datetime import datetime, timezone
from typing import Any

from dateutil import parser as dtparser
from pydantic import BaseModel, ConfigDict, ValidationError

from app.models import UNKNOWN_SOURCE_LABEL, HeadlineItem

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort conversion of an upstream date field to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(timegm(value), tz=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return _as_utc(dtparser.parse(text))
        except (ValueError, OverflowError):
            return None
    return None


def _clean_text(value: str | None) -> str:
    return (value or "").strip()


class _Entry(BaseModel):
    model_config = ConfigDict(extra="ignore")


class MinifluxFeed(_Entry):
    title: str | None = None


class MinifluxEntry(_Entry):
    title: str | None = None
    url: str | None = None
    published_at: str | None = None
    feed: MinifluxFeed | None = None


class GNewsSource(_Entry):
    name: str | None = None


class GNewsArticle(_Entry):
    title: str | None = None
    url: str | None = None
    publishedAt: str | None = None
    source: GNewsSource | None = None


def _build_item(url: str | None, title: str | None, published: Any, label: str | None) -> HeadlineItem | None:
    url = _clean_text(url)
    if not url:
        return None
    return HeadlineItem(
        url=url,
        title=_clean_text(title),
        published_at=parse_timestamp(published),
        source_label=_clean_text(label) or UNKNOWN_SOURCE_LABEL,
    )


def normalize_miniflux_entry(raw: Any) -> HeadlineItem | None:
    try:
        entry = MinifluxEntry.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Skipping malformed Miniflux entry: %s", exc)
        return None
    label = entry.feed.title if entry.feed else None
    return _build_item(entry.url, entry.title, entry.published_at, label)


def normalize_gnews_article(raw: Any) -> HeadlineItem | None:
    try:
        article = GNewsArticle.model_validate(raw)
    except ValidationError as exc:
        logger.debug("Skipping malformed GNews article: %s", exc)
        return None
    label = article.source.name if article.source else None
    return _build_item(article.url, article.title, article.publishedAt, label)


def normalize_feed_entry(entry: Any, feed_title: str | None = None) -> HeadlineItem | None:
    """Map a feedparser entry to a HeadlineItem.

    Date priority: published -> updated -> created. The label prefers the
    entry's own <source> title over the channel title.
    """
    if not hasattr(entry, "get"):
        return None

    published: Any = None
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        if entry.get(key):
            published = entry.get(key)
            break
    if published is None:
        for key in ("published", "updated", "created"):
            if entry.get(key):
                published = entry.get(key)
                break

    label = feed_title
    source = entry.get("source")
    if hasattr(source, "get") and isinstance(source.get("title"), str) and source.get("title").strip():
        label = source.get("title")

    link = entry.get("link")
    title = entry.get("title")
    return _build_item(
        link if isinstance(link, str) else None,
        title if isinstance(title, str) else None,
        published,
        label,
    )
