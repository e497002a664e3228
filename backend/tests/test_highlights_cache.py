import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.errors import ConfigurationMissing
from app.models import AggregationResult, HeadlineItem
from app.services.highlights_cache import HighlightsCache

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class ScriptedAggregator:
    """Returns queued results in order; an Exception entry is raised instead."""

    def __init__(self, *results, delay: float = 0.0, configured: bool = True) -> None:
        self.results = list(results)
        self.delay = delay
        self.configured = configured
        self.calls = 0

    def check_configuration(self) -> None:
        if not self.configured:
            raise ConfigurationMissing("Source 'miniflux' requires a credential but none is configured")

    async def aggregate(self) -> AggregationResult:
        self.calls += 1
        await asyncio.sleep(self.delay)
        result = self.results.pop(0) if self.results else AggregationResult()
        if isinstance(result, Exception):
            raise result
        return result


def _result(*urls: str) -> AggregationResult:
    items = tuple(
        HeadlineItem(url=url, title=url.rsplit("/", 1)[-1], published_at=START - timedelta(minutes=i))
        for i, url in enumerate(urls)
    )
    return AggregationResult(items=items)


def test_cache_hit_within_ttl_does_not_refetch():
    clock = FakeClock()
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), _result("https://x.example.com/2"))
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    first = asyncio.run(cache.get_highlights())
    clock.advance(59)
    second = asyncio.run(cache.get_highlights())

    assert aggregator.calls == 1
    assert first == second
    assert [item.url for item in second] == ["https://x.example.com/1"]


def test_expired_snapshot_is_refreshed():
    clock = FakeClock()
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), _result("https://x.example.com/2"))
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    asyncio.run(cache.get_highlights())
    clock.advance(60)
    refreshed = asyncio.run(cache.get_highlights())

    assert aggregator.calls == 2
    assert [item.url for item in refreshed] == ["https://x.example.com/2"]
    assert cache.snapshot.fetched_at == START + timedelta(seconds=60)


def test_empty_refresh_serves_previous_snapshot_unchanged():
    clock = FakeClock()
    aggregator = ScriptedAggregator(_result("https://x.example.com/1", "https://x.example.com/2"), AggregationResult())
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    original = asyncio.run(cache.get_highlights())
    clock.advance(120)
    served = asyncio.run(cache.get_highlights())

    assert aggregator.calls == 2
    assert served == original
    assert cache.snapshot.fetched_at == START


def test_failed_refresh_serves_previous_snapshot(caplog):
    clock = FakeClock()
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), RuntimeError("upstream exploded"))
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    original = asyncio.run(cache.get_highlights())
    clock.advance(61)
    with caplog.at_level("WARNING"):
        served = asyncio.run(cache.get_highlights())

    assert served == original
    assert cache.snapshot.fetched_at == START
    assert "stale snapshot" in caplog.text


def test_cold_start_with_no_data_returns_empty_and_retries_next_call():
    clock = FakeClock()
    aggregator = ScriptedAggregator(AggregationResult(), _result("https://x.example.com/1"))
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    assert asyncio.run(cache.get_highlights()) == ()
    assert cache.snapshot.fetched_at is None

    served = asyncio.run(cache.get_highlights())

    assert aggregator.calls == 2
    assert [item.url for item in served] == ["https://x.example.com/1"]


def test_concurrent_callers_share_one_refresh():
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), delay=0.05)
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=FakeClock())

    async def burst():
        return await asyncio.gather(*(cache.get_highlights() for _ in range(10)))

    results = asyncio.run(burst())

    assert aggregator.calls == 1
    assert all(result == results[0] for result in results)
    assert len(results[0]) == 1


def test_fetched_at_never_moves_backwards():
    clock = FakeClock()
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), _result("https://x.example.com/2"))
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=clock)

    asyncio.run(cache.get_highlights())
    clock.now = START - timedelta(hours=1)
    asyncio.run(cache.get_highlights())

    assert aggregator.calls == 2
    assert cache.snapshot.fetched_at == START
    assert [item.url for item in cache.snapshot.items] == ["https://x.example.com/2"]


def test_configuration_error_surfaces_on_every_call():
    aggregator = ScriptedAggregator(_result("https://x.example.com/1"), configured=False)
    cache = HighlightsCache(aggregator, ttl_seconds=60, clock=FakeClock())

    for _ in range(2):
        with pytest.raises(ConfigurationMissing):
            asyncio.run(cache.get_highlights())
    assert aggregator.calls == 0
