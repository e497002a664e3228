from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.errors import SourceUnavailable

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UNKNOWN_SOURCE_LABEL = "Unknown"


@dataclass(frozen=True)
class HeadlineItem:
    url: str
    title: str = ""
    published_at: datetime | None = None
    source_label: str = UNKNOWN_SOURCE_LABEL

    @property
    def sort_key(self) -> datetime:
        return self.published_at or EPOCH


@dataclass(frozen=True)
class SourceResult:
    source_key: str
    items: tuple[HeadlineItem, ...] = ()
    error: SourceUnavailable | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregationResult:
    items: tuple[HeadlineItem, ...] = ()
    sources: tuple[SourceResult, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.items

    @property
    def failed_sources(self) -> list[str]:
        return [result.source_key for result in self.sources if not result.ok]


@dataclass(frozen=True)
class CacheSnapshot:
    """Last good aggregation result. Replaced as a whole, never edited in place."""

    items: tuple[HeadlineItem, ...] = field(default_factory=tuple)
    fetched_at: datetime | None = None

    def age_seconds(self, now: datetime) -> float | None:
        if self.fetched_at is None:
            return None
        return (now - self.fetched_at).total_seconds()
