"""Single entry point for current quotes, historical series and asset search."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import TypeVar

from .cache import QuoteCache
from .errors import AllProvidersFailed, ProviderError
from .interface import ProviderAdapter, QuoteSink
from .models import AssetMatch, AssetType, HistoricalSeries, HistoryPeriod, Quote, Region
from .ratelimit import RateLimiter
from .selector import ProviderSelector, infer_asset_type, infer_region
from .synthetic import FallbackSynthesizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_SEARCH_LENGTH = 2


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


class MarketDataAggregator:
    """Cache -> selector -> rate limiter -> adapters -> synthesizer.

    Lookup algorithm (identical for quotes and series):
      1. A fresh cache entry is returned as-is: no provider call and no
         rate-limit token.
      2. Otherwise the selector's chain is walked strictly in order. One
         token is acquired before each adapter call; the first success is
         cached and returned.
      3. If every adapter fails, a synthetic value is returned and NOT
         cached, so real data is retried on the next call.

    Provider failures never reach the caller. The only exception callers
    can see is RateLimitExceeded, when a token wait exceeds the limiter's
    ``max_wait``.
    """

    def __init__(
        self,
        selector: ProviderSelector,
        cache: QuoteCache,
        rate_limiter: RateLimiter,
        synthesizer: FallbackSynthesizer | None = None,
        quote_sink: QuoteSink | None = None,
    ) -> None:
        self._selector = selector
        self._cache = cache
        self._limiter = rate_limiter
        self._synthesizer = synthesizer or FallbackSynthesizer()
        self._sink = quote_sink
        self._sink_tasks: set[asyncio.Task] = set()

    @property
    def cache(self) -> QuoteCache:
        return self._cache

    @property
    def selector(self) -> ProviderSelector:
        return self._selector

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    # --- Public API ---

    async def get_quote(
        self,
        symbol: str,
        asset_type: AssetType | str | None = None,
        region: Region | str | None = None,
    ) -> Quote:
        """Current quote for ``symbol``; synthetic if every provider fails."""
        quote, _ = await self._lookup_quote(symbol, asset_type, region)
        return quote

    async def get_historical_series(
        self,
        symbol: str,
        period: HistoryPeriod | str,
        asset_type: AssetType | str | None = None,
        region: Region | str | None = None,
    ) -> HistoricalSeries:
        """Ascending OHLCV series for ``period``; synthetic if every provider fails."""
        symbol = normalize_symbol(symbol)
        period = HistoryPeriod(period)
        cached = self._cache.get_series(symbol, period)
        if cached is not None:
            logger.debug("Cache hit for %s %s series", symbol, period.value)
            return cached

        chain = self._chain(symbol, asset_type, region)
        try:
            series = await self._first_success(
                chain, symbol, lambda adapter: adapter.get_historical_series(symbol, period)
            )
        except AllProvidersFailed as exc:
            logger.warning("%s; falling back to synthetic %s series", exc, period.value)
            return self._synthesizer.series(symbol, period)

        self._cache.put_series(series)
        return series

    async def get_quotes(
        self,
        symbols: Iterable[str],
        asset_types: Mapping[str, AssetType | str] | None = None,
        region: Region | str | None = None,
    ) -> dict[str, Quote]:
        """Quotes for several symbols, fetched concurrently.

        Freshly fetched real quotes are handed to the quote sink as one
        batch, fire-and-forget.
        """
        unique = list(dict.fromkeys(normalize_symbol(s) for s in symbols))
        types = {normalize_symbol(k): v for k, v in (asset_types or {}).items()}
        results = await asyncio.gather(
            *(self._lookup_quote(s, types.get(s), region) for s in unique)
        )
        fresh = [quote for quote, is_fresh in results if is_fresh]
        self._persist(fresh)
        return {s: quote for s, (quote, _) in zip(unique, results)}

    async def search(
        self,
        query: str,
        asset_type: AssetType | str | None = None,
        region: Region | str | None = None,
    ) -> list[AssetMatch]:
        """Tradable instruments matching ``query``.

        Queries shorter than two characters match nothing and cost no token.
        Searchable adapters are tried in chain order with the same
        one-token-per-call rule as quotes. Results are cached for the history
        TTL; if every adapter fails the result is empty and not cached.
        """
        query = query.strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []
        resolved_type = AssetType(asset_type) if asset_type else None
        resolved_region = Region(region) if region else None
        cached = self._cache.get_search(query, resolved_type, resolved_region)
        if cached is not None:
            logger.debug("Cache hit for search %r", query)
            return list(cached)

        chain = tuple(a for a in self._selector.adapters if a.searchable)
        try:
            matches = await self._first_success(
                chain,
                query,
                lambda adapter: adapter.search(query, resolved_type, resolved_region),
            )
        except AllProvidersFailed as exc:
            logger.warning("%s; search %r returns no matches", exc, query)
            return []

        self._cache.put_search(query, resolved_type, resolved_region, tuple(matches))
        return list(matches)

    async def aclose(self) -> None:
        """Wait for pending sink writes and close every adapter."""
        if self._sink_tasks:
            await asyncio.gather(*self._sink_tasks, return_exceptions=True)
        for adapter in self._selector.adapters:
            await adapter.aclose()

    # --- Internals ---

    async def _lookup_quote(
        self,
        symbol: str,
        asset_type: AssetType | str | None,
        region: Region | str | None,
    ) -> tuple[Quote, bool]:
        """Returns (quote, fetched_from_provider)."""
        symbol = normalize_symbol(symbol)
        cached = self._cache.get_quote(symbol)
        if cached is not None:
            logger.debug("Cache hit for %s", symbol)
            return cached, False

        chain = self._chain(symbol, asset_type, region)
        try:
            quote = await self._first_success(
                chain, symbol, lambda adapter: adapter.get_quote(symbol)
            )
        except AllProvidersFailed as exc:
            logger.warning("%s; falling back to synthetic quote", exc)
            return self._synthesizer.quote(symbol), False

        self._cache.put_quote(quote)
        return quote, True

    def _chain(
        self,
        symbol: str,
        asset_type: AssetType | str | None,
        region: Region | str | None,
    ) -> tuple[ProviderAdapter, ...]:
        resolved_type = AssetType(asset_type) if asset_type else infer_asset_type(symbol)
        resolved_region = Region(region) if region else infer_region(symbol, resolved_type)
        return self._selector.chain_for(resolved_type, resolved_region)

    async def _first_success(
        self,
        chain: tuple[ProviderAdapter, ...],
        symbol: str,
        call: Callable[[ProviderAdapter], Awaitable[T]],
    ) -> T:
        """Try adapters one at a time; never more than one request in flight."""
        errors: list[ProviderError] = []
        for adapter in chain:
            await self._limiter.acquire(adapter.name)
            try:
                result = await call(adapter)
            except ProviderError as exc:
                logger.warning("Provider %s failed for %s: %s", adapter.name, symbol, exc)
                errors.append(exc)
                continue
            logger.debug("Provider %s served %s", adapter.name, symbol)
            return result
        raise AllProvidersFailed(symbol, errors)

    def _persist(self, quotes: list[Quote]) -> None:
        if not quotes or self._sink is None:
            return
        task = asyncio.create_task(self._save(quotes), name="quote-sink")
        self._sink_tasks.add(task)
        task.add_done_callback(self._sink_tasks.discard)

    async def _save(self, quotes: list[Quote]) -> None:
        try:
            await self._sink.save_quotes(quotes)
        except Exception:
            logger.exception("Quote sink failed to store %d quotes", len(quotes))
