"""Thread-safe, time-boxed quote cache."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from .models import AssetMatch, AssetType, HistoricalSeries, HistoryPeriod, Quote, Region

DEFAULT_QUOTE_TTL = 30.0
DEFAULT_HISTORY_TTL = 300.0


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    stored_at: float


def quote_key(symbol: str) -> str:
    return symbol


def series_key(symbol: str, period: HistoryPeriod) -> str:
    return f"{symbol}:{period.value}"


def search_key(query: str, asset_type: AssetType | None, region: Region | None) -> str:
    return "search:" + ":".join(
        (query.lower(), asset_type.value if asset_type else "*", region.value if region else "*")
    )


class QuoteCache:
    """In-memory cache of the latest quote and series per key.

    Entries are replaced wholesale on ``put`` and never mutated. Expiry is
    lazy: a stale entry is simply not returned and stays until overwritten.
    Concurrent writers to the same key are last-write-wins.
    """

    def __init__(
        self,
        quote_ttl: float = DEFAULT_QUOTE_TTL,
        history_ttl: float = DEFAULT_HISTORY_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._clock = clock
        self.quote_ttl = quote_ttl
        self.history_ttl = history_ttl

    # --- Generic access ---

    def get(self, key: str, ttl: float) -> Any | None:
        """Return the cached value if younger than ``ttl`` seconds, else None."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < ttl:
            return entry.value
        return None

    def put(self, key: str, value: Any) -> CacheEntry:
        """Store ``value`` under ``key``, replacing any previous entry."""
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    # --- Typed helpers ---

    def get_quote(self, symbol: str) -> Quote | None:
        return self.get(quote_key(symbol), self.quote_ttl)

    def put_quote(self, quote: Quote) -> None:
        self.put(quote_key(quote.symbol), quote)

    def get_series(self, symbol: str, period: HistoryPeriod) -> HistoricalSeries | None:
        return self.get(series_key(symbol, period), self.history_ttl)

    def put_series(self, series: HistoricalSeries) -> None:
        self.put(series_key(series.symbol, series.period), series)

    def get_search(
        self, query: str, asset_type: AssetType | None, region: Region | None
    ) -> tuple[AssetMatch, ...] | None:
        return self.get(search_key(query, asset_type, region), self.history_ttl)

    def put_search(
        self,
        query: str,
        asset_type: AssetType | None,
        region: Region | None,
        matches: tuple[AssetMatch, ...],
    ) -> None:
        self.put(search_key(query, asset_type, region), matches)

    # --- Housekeeping ---

    def remove(self, key: str) -> None:
        """Drop an entry. No-op if missing."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
