"""Pytest configuration and shared fakes."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from pricefeed.aggregator import MarketDataAggregator
from pricefeed.cache import QuoteCache
from pricefeed.errors import ProviderError, ProviderErrorKind
from pricefeed.interface import ProviderAdapter
from pricefeed.models import (
    AssetType,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
    Region,
)
from pricefeed.ratelimit import RateLimiter
from pricefeed.selector import ProviderSelector
from pricefeed.synthetic import FallbackSynthesizer


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    return asyncio.DefaultEventLoopPolicy()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAdapter(ProviderAdapter):
    """In-memory adapter that records every call."""

    def __init__(
        self,
        name,
        *,
        asset_types=frozenset(AssetType),
        regions=frozenset({Region.US}),
        catch_all=False,
        available=True,
        price=100.0,
        change=0.0,
        change_percent=0.0,
        fail=None,
        matches=None,
    ):
        self.name = name
        self._asset_types = frozenset(asset_types)
        self._regions = frozenset(regions)
        self._catch_all = catch_all
        self._available = available
        self.price = price
        self.change = change
        self.change_percent = change_percent
        self.fail = fail
        self.matches = matches
        self.calls = []
        self.closed = False

    @property
    def catch_all(self):
        return self._catch_all

    def is_available(self):
        return self._available

    def supported_regions(self):
        return self._regions

    def supported_asset_types(self):
        return self._asset_types

    @property
    def searchable(self):
        return self.matches is not None

    async def search(self, query, asset_type=None, region=None):
        self.calls.append(("search", query))
        self._maybe_fail(query)
        return [m for m in self.matches if asset_type is None or m.asset_type is asset_type]

    async def get_quote(self, symbol):
        self.calls.append(("quote", symbol))
        self._maybe_fail(symbol)
        return Quote(
            symbol=symbol,
            price=self.price,
            change=self.change,
            change_percent=self.change_percent,
            volume=1000,
            source=self.name,
        )

    async def get_historical_series(self, symbol, period):
        self.calls.append(("series", symbol))
        self._maybe_fail(symbol)
        end = datetime(2024, 1, 10, tzinfo=timezone.utc)
        points = [
            HistoricalPoint(
                symbol=symbol,
                timestamp=end - timedelta(days=i),
                open=self.price,
                high=self.price + 1,
                low=self.price - 1,
                close=self.price,
            )
            for i in range(3)
        ]
        return HistoricalSeries.from_points(symbol, HistoryPeriod(period), points, source=self.name)

    async def aclose(self):
        self.closed = True

    def _maybe_fail(self, symbol):
        if self.fail is not None:
            raise ProviderError(
                f"{self.name} failed", provider=self.name, kind=self.fail, symbol=symbol
            )


def make_catch_all(name="catchall", **kwargs):
    kwargs.setdefault("regions", frozenset(Region))
    return FakeAdapter(name, catch_all=True, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    """Async sleep that advances the fake clock instead of waiting."""
    calls = []

    async def sleep(seconds):
        calls.append(seconds)
        clock.advance(seconds)

    sleep.calls = calls
    return sleep


@pytest.fixture
def make_adapter():
    return FakeAdapter


@pytest.fixture
def failing_catch_all():
    return make_catch_all(fail=ProviderErrorKind.HTTP_ERROR)


@pytest.fixture
def make_aggregator(clock, fake_sleep):
    """Build an aggregator over fake adapters with a fake clock.

    The selector needs a catch-all; one that always fails is appended when
    none of ``adapters`` is a catch-all.
    """

    def build(adapters, *, capacity=100, refill_rate=1.0, max_wait=None, quote_sink=None,
              quote_ttl=30.0, history_ttl=300.0):
        adapters = list(adapters)
        if not any(a.catch_all for a in adapters):
            adapters.append(make_catch_all(fail=ProviderErrorKind.HTTP_ERROR))
        limiter = RateLimiter(
            capacity, refill_rate, max_wait=max_wait, clock=clock, sleep=fake_sleep
        )
        return MarketDataAggregator(
            selector=ProviderSelector(adapters),
            cache=QuoteCache(quote_ttl=quote_ttl, history_ttl=history_ttl, clock=clock),
            rate_limiter=limiter,
            synthesizer=FallbackSynthesizer(seed=7),
            quote_sink=quote_sink,
        )

    return build
