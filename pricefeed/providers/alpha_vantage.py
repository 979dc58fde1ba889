"""Alpha Vantage adapter (US and ASX equities, needs an API key)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from ..errors import ProviderErrorKind
from ..models import (
    AssetType,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
    Region,
)
from .base import DEFAULT_TIMEOUT, HttpProviderAdapter

logger = logging.getLogger(__name__)

DEMO_KEY = "demo"

# period -> request params for the time series endpoints
_SERIES_PARAMS: dict[HistoryPeriod, dict[str, str]] = {
    HistoryPeriod.ONE_DAY: {"function": "TIME_SERIES_INTRADAY", "interval": "5min"},
    HistoryPeriod.ONE_WEEK: {
        "function": "TIME_SERIES_INTRADAY",
        "interval": "60min",
        "outputsize": "full",
    },
    HistoryPeriod.ONE_MONTH: {"function": "TIME_SERIES_DAILY", "outputsize": "compact"},
    HistoryPeriod.THREE_MONTHS: {"function": "TIME_SERIES_DAILY", "outputsize": "compact"},
    HistoryPeriod.ONE_YEAR: {"function": "TIME_SERIES_DAILY", "outputsize": "full"},
}

# Alpha Vantage spells exchange suffixes differently from Yahoo
_SUFFIX_MAP = {".AX": ".AUS"}


def _provider_symbol(symbol: str) -> str:
    for ours, theirs in _SUFFIX_MAP.items():
        if symbol.endswith(ours):
            return symbol[: -len(ours)] + theirs
    return symbol


class AlphaVantageAdapter(HttpProviderAdapter):
    """Quotes via GLOBAL_QUOTE, history via the TIME_SERIES_* functions.

    Free keys are heavily throttled; throttling is reported inside a 200
    response (``Note`` / ``Information``) and is mapped to HTTP_ERROR so the
    aggregator moves on to the next provider.
    """

    name = "alphavantage"
    base_url = "https://www.alphavantage.co"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._api_key = (api_key or DEMO_KEY).strip() or DEMO_KEY

    def is_available(self) -> bool:
        return self._api_key != DEMO_KEY

    def supported_regions(self) -> frozenset[Region]:
        return frozenset({Region.US, Region.AU})

    def supported_asset_types(self) -> frozenset[AssetType]:
        return frozenset({AssetType.STOCK, AssetType.ETF})

    async def get_quote(self, symbol: str) -> Quote:
        payload = await self._query({"function": "GLOBAL_QUOTE"}, symbol)
        raw = payload.get("Global Quote")
        if not raw:
            raise self._parse_error("No 'Global Quote' in response", symbol)
        try:
            return Quote(
                symbol=symbol,
                price=float(raw["05. price"]),
                change=float(raw.get("09. change") or 0.0),
                change_percent=float(str(raw.get("10. change percent") or "0").rstrip("%")),
                volume=int(raw.get("06. volume") or 0),
                source=self.name,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed quote payload: {exc!r}", symbol) from exc

    async def get_historical_series(
        self, symbol: str, period: HistoryPeriod
    ) -> HistoricalSeries:
        payload = await self._query(dict(_SERIES_PARAMS[period]), symbol)
        series_key = next((k for k in payload if k.startswith("Time Series")), None)
        if series_key is None:
            raise self._parse_error("No time series in response", symbol)

        try:
            points = [
                HistoricalPoint(
                    symbol=symbol,
                    timestamp=datetime.fromisoformat(stamp).replace(tzinfo=timezone.utc),
                    open=float(bar["1. open"]),
                    high=float(bar["2. high"]),
                    low=float(bar["3. low"]),
                    close=float(bar["4. close"]),
                    volume=int(bar.get("5. volume") or 0),
                )
                for stamp, bar in payload[series_key].items()
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed series payload: {exc!r}", symbol) from exc
        if not points:
            raise self._parse_error("Time series is empty", symbol)

        # Responses cover more than the requested window; trim to the lookback
        latest = max(p.timestamp for p in points)
        cutoff = latest - timedelta(days=period.days)
        points = [p for p in points if p.timestamp >= cutoff]
        return HistoricalSeries.from_points(symbol, period, points, source=self.name)

    # --- Internal ---

    async def _query(self, params: dict[str, Any], symbol: str) -> dict[str, Any]:
        params.update({"symbol": _provider_symbol(symbol), "apikey": self._api_key})
        payload = await self._get_json("/query", params, symbol=symbol)
        if not isinstance(payload, dict):
            raise self._parse_error("Response is not a JSON object", symbol)
        throttled = payload.get("Note") or payload.get("Information")
        if throttled:
            logger.debug("Alpha Vantage throttled %s: %s", symbol, throttled)
            raise self._error(
                f"Throttled: {throttled}", ProviderErrorKind.HTTP_ERROR, symbol, status_code=429
            )
        if "Error Message" in payload:
            raise self._parse_error(payload["Error Message"], symbol)
        return payload
