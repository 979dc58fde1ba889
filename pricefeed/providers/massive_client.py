"""Massive (Polygon.io) API adapter for US equities."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from ..errors import ProviderError, ProviderErrorKind
from ..interface import ProviderAdapter
from ..models import (
    AssetType,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
    Region,
)
from .base import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

# period -> (multiplier, timespan) for the aggregates endpoint
_AGG_PARAMS: dict[HistoryPeriod, tuple[int, str]] = {
    HistoryPeriod.ONE_DAY: (5, "minute"),
    HistoryPeriod.ONE_WEEK: (1, "hour"),
    HistoryPeriod.ONE_MONTH: (1, "day"),
    HistoryPeriod.THREE_MONTHS: (1, "day"),
    HistoryPeriod.ONE_YEAR: (1, "day"),
}


class MassiveAdapter(ProviderAdapter):
    """ProviderAdapter backed by the Massive (Polygon.io) REST API.

    Quotes come from GET /v2/snapshot/locale/us/markets/stocks/tickers,
    history from the aggregates endpoint. The Massive RESTClient is
    synchronous, so every call runs in a worker thread and is bounded by
    ``timeout``.

    Rate limits:
      - Free tier: 5 req/min
      - Paid tiers: effectively unlimited
    """

    name = "massive"

    def __init__(self, api_key: str | None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._api_key = (api_key or "").strip()
        self._timeout = timeout
        self._client: Any = None  # Lazy import to avoid hard dependency at import time

    def is_available(self) -> bool:
        return bool(self._api_key)

    def supported_regions(self) -> frozenset[Region]:
        return frozenset({Region.US})

    def supported_asset_types(self) -> frozenset[AssetType]:
        return frozenset({AssetType.STOCK, AssetType.ETF})

    async def aclose(self) -> None:
        self._client = None

    async def get_quote(self, symbol: str) -> Quote:
        snapshots = await self._call(self._fetch_snapshots, symbol)
        snap = next((s for s in snapshots if getattr(s, "ticker", None) == symbol), None)
        if snap is None:
            raise self._error("No snapshot returned", ProviderErrorKind.PARSE_ERROR, symbol)
        try:
            day = getattr(snap, "day", None)
            return Quote(
                symbol=symbol,
                price=float(snap.last_trade.price),
                change=float(getattr(snap, "todays_change", None) or 0.0),
                change_percent=float(getattr(snap, "todays_change_percent", None) or 0.0),
                volume=int(getattr(day, "volume", None) or 0),
                source=self.name,
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise self._error(
                f"Malformed snapshot: {exc}", ProviderErrorKind.PARSE_ERROR, symbol
            ) from exc

    async def get_historical_series(
        self, symbol: str, period: HistoryPeriod
    ) -> HistoricalSeries:
        aggs = await self._call(self._fetch_aggs, symbol, period)
        try:
            points = [
                HistoricalPoint(
                    symbol=symbol,
                    # Massive timestamps are Unix milliseconds
                    timestamp=datetime.fromtimestamp(agg.timestamp / 1000.0, tz=timezone.utc),
                    open=float(agg.open),
                    high=float(agg.high),
                    low=float(agg.low),
                    close=float(agg.close),
                    volume=int(agg.volume or 0),
                )
                for agg in aggs
            ]
        except (AttributeError, TypeError, ValueError) as exc:
            raise self._error(
                f"Malformed aggregate: {exc}", ProviderErrorKind.PARSE_ERROR, symbol
            ) from exc
        if not points:
            raise self._error("No aggregates returned", ProviderErrorKind.PARSE_ERROR, symbol)
        return HistoricalSeries.from_points(symbol, period, points, source=self.name)

    # --- Internal ---

    async def _call(self, fn, symbol: str, *args) -> Any:
        """Run a blocking client call in a thread, bounded by the timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, symbol, *args), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            raise self._error(
                f"Timed out after {self._timeout}s", ProviderErrorKind.TIMEOUT, symbol
            ) from exc
        except ProviderError:
            raise
        except Exception as exc:
            # Common failures: 401 (bad key), 429 (rate limit), network errors
            raise self._error(
                f"Massive request failed: {exc}", ProviderErrorKind.HTTP_ERROR, symbol
            ) from exc

    def _rest_client(self) -> Any:
        if self._client is None:
            # Lazy import: the massive package is only needed when a key is configured
            from massive import RESTClient

            self._client = RESTClient(api_key=self._api_key)
        return self._client

    def _fetch_snapshots(self, symbol: str) -> list:
        """Synchronous call to the Massive REST API. Runs in a thread."""
        from massive.rest.models import SnapshotMarketType

        return self._rest_client().get_snapshot_all(
            market_type=SnapshotMarketType.STOCKS,
            tickers=[symbol],
        )

    def _fetch_aggs(self, symbol: str, period: HistoryPeriod) -> list:
        """Synchronous aggregates call. Runs in a thread."""
        multiplier, timespan = _AGG_PARAMS[period]
        today = date.today()
        return list(
            self._rest_client().get_aggs(
                ticker=symbol,
                multiplier=multiplier,
                timespan=timespan,
                from_=(today - timedelta(days=period.days)).isoformat(),
                to=today.isoformat(),
            )
        )

    def _error(self, message: str, kind: ProviderErrorKind, symbol: str) -> ProviderError:
        return ProviderError(message, provider=self.name, kind=kind, symbol=symbol)
