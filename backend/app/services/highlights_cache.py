from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from app.models import AggregationResult, CacheSnapshot, HeadlineItem

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0

Clock = Callable[[], datetime]


class AggregatorInterface(Protocol):

    def check_configuration(self) -> None: ...

    async def aggregate(self) -> AggregationResult: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HighlightsCache:
    """Single global snapshot of the aggregated headlines with a TTL window.

    Only one refresh runs at a time; callers that find the snapshot stale while
    a refresh is running await that same refresh. A failed or empty refresh
    leaves the previous snapshot in place and serves it.
    """

    def __init__(
        self,
        aggregator: AggregatorInterface,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        self.aggregator = aggregator
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot = CacheSnapshot()
        self._inflight: asyncio.Task[tuple[HeadlineItem, ...]] | None = None

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    def is_fresh(self, snapshot: CacheSnapshot | None = None) -> bool:
        snapshot = snapshot or self._snapshot
        if not snapshot.items:
            return False
        age = snapshot.age_seconds(self._clock())
        return age is not None and 0 <= age < self.ttl_seconds

    async def get_highlights(self) -> tuple[HeadlineItem, ...]:
        self.aggregator.check_configuration()

        snapshot = self._snapshot
        if self.is_fresh(snapshot):
            return snapshot.items

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> tuple[HeadlineItem, ...]:
        try:
            previous = self._snapshot
            try:
                result = await self.aggregator.aggregate()
            except Exception:
                logger.exception("Headline refresh failed")
                result = None

            if result is not None and not result.empty:
                now = self._clock()
                if previous.fetched_at is not None and now < previous.fetched_at:
                    now = previous.fetched_at
                self._snapshot = CacheSnapshot(items=result.items, fetched_at=now)
                logger.info("Headline cache refreshed with %d items", len(result.items))
                return self._snapshot.items

            if previous.items:
                logger.warning(
                    "Refresh produced no headlines; serving stale snapshot from %s (%d items)",
                    previous.fetched_at.isoformat() if previous.fetched_at else "unknown",
                    len(previous.items),
                )
            else:
                logger.warning("Refresh produced no headlines and no previous snapshot exists")
            return previous.items
        finally:
            self._inflight = None
