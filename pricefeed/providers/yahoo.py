"""Yahoo Finance adapter: the keyless catch-all provider."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..models import (
    AssetMatch,
    AssetType,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
    Region,
)
from .base import HttpProviderAdapter

logger = logging.getLogger(__name__)

# period -> (range, interval) for the chart endpoint
_CHART_PARAMS: dict[HistoryPeriod, tuple[str, str]] = {
    HistoryPeriod.ONE_DAY: ("1d", "5m"),
    HistoryPeriod.ONE_WEEK: ("5d", "30m"),
    HistoryPeriod.ONE_MONTH: ("1mo", "1d"),
    HistoryPeriod.THREE_MONTHS: ("3mo", "1d"),
    HistoryPeriod.ONE_YEAR: ("1y", "1d"),
}


SEARCH_RESULT_LIMIT = 20
MIN_QUERY_LENGTH = 2

# Yahoo typeDisp -> asset type; None marks instruments we do not quote
_SEARCH_TYPES: dict[str, AssetType | None] = {
    "EQUITY": AssetType.STOCK,
    "ETF": AssetType.ETF,
    "CRYPTOCURRENCY": AssetType.CRYPTO,
    "MUTUALFUND": None,
    "INDEX": None,
    "BOND": None,
    "FUTURE": None,
    "OPTION": None,
    "CURRENCY": None,
}

# Exchange code (display name or Yahoo short code) -> listing region
_EXCHANGE_REGIONS: dict[str, Region] = {
    "ASX": Region.AU,
    "NYSE": Region.US,
    "NYQ": Region.US,
    "NASDAQ": Region.US,
    "NMS": Region.US,
    "NGM": Region.US,
    "NCM": Region.US,
    "PCX": Region.US,
    "ASE": Region.US,
    "BTS": Region.US,
    "NSE": Region.IN,
    "NSI": Region.IN,
    "BSE": Region.IN,
    "BOM": Region.IN,
    "LSE": Region.EU,
    "LON": Region.EU,
    "PAR": Region.EU,
    "GER": Region.EU,
    "FRA": Region.EU,
    "AMS": Region.EU,
    "CCC": Region.GLOBAL,
}


def map_search_type(type_disp: str | None) -> AssetType | None:
    """Asset type for a search hit; unknown types count as stock."""
    if not type_disp:
        return AssetType.STOCK
    return _SEARCH_TYPES.get(type_disp.upper(), AssetType.STOCK)


def map_exchange_region(exchange: str | None) -> Region:
    """Listing region for an exchange code; unknown exchanges are GLOBAL."""
    return _EXCHANGE_REGIONS.get((exchange or "").upper(), Region.GLOBAL)


class YahooFinanceAdapter(HttpProviderAdapter):
    """Quotes and charts from the public Yahoo Finance endpoints.

    Needs no credential and lists every region, so it closes every fallback
    chain.
    """

    name = "yahoo"
    base_url = "https://query1.finance.yahoo.com"

    def is_available(self) -> bool:
        return True

    @property
    def catch_all(self) -> bool:
        return True

    def supported_regions(self) -> frozenset[Region]:
        return frozenset(Region)

    def supported_asset_types(self) -> frozenset[AssetType]:
        return frozenset(AssetType)

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": "Mozilla/5.0 (pricefeed)"}

    async def get_quote(self, symbol: str) -> Quote:
        payload = await self._get_json("/v7/finance/quote", {"symbols": symbol}, symbol=symbol)
        try:
            results = payload["quoteResponse"]["result"]
            if not results:
                raise self._parse_error("Empty quote result", symbol)
            raw = results[0]
            if raw.get("regularMarketPrice") is None:
                raise self._parse_error("Quote has no regularMarketPrice", symbol)
            return Quote(
                symbol=symbol,
                price=float(raw["regularMarketPrice"]),
                change=float(raw.get("regularMarketChange") or 0.0),
                change_percent=float(raw.get("regularMarketChangePercent") or 0.0),
                volume=int(raw.get("regularMarketVolume") or 0),
                source=self.name,
            )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed quote payload: {exc!r}", symbol) from exc

    async def get_historical_series(
        self, symbol: str, period: HistoryPeriod
    ) -> HistoricalSeries:
        range_, interval = _CHART_PARAMS[period]
        payload = await self._get_json(
            f"/v8/finance/chart/{symbol}",
            {"range": range_, "interval": interval},
            symbol=symbol,
        )
        try:
            results = payload["chart"]["result"]
            if not results:
                raise self._parse_error("Empty chart result", symbol)
            result = results[0]
            timestamps = result.get("timestamp") or []
            bars = result["indicators"]["quote"][0]
            points = []
            for i, ts in enumerate(timestamps):
                close = bars["close"][i]
                if close is None:
                    # Yahoo leaves holes for halted or pre-market intervals
                    continue
                open_ = bars["open"][i]
                high = bars["high"][i]
                low = bars["low"][i]
                points.append(
                    HistoricalPoint(
                        symbol=symbol,
                        timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                        open=float(open_ if open_ is not None else close),
                        high=float(high if high is not None else close),
                        low=float(low if low is not None else close),
                        close=float(close),
                        volume=int(bars["volume"][i] or 0),
                    )
                )
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed chart payload: {exc!r}", symbol) from exc

        if not points:
            raise self._parse_error("Chart contained no bars", symbol)
        return HistoricalSeries.from_points(symbol, period, points, source=self.name)

    @property
    def searchable(self) -> bool:
        return True

    async def search(
        self,
        query: str,
        asset_type: AssetType | None = None,
        region: Region | None = None,
    ) -> list[AssetMatch]:
        """Instrument lookup via ``/v1/finance/search``.

        A hit is kept when its type matches ``asset_type`` and its exchange
        region is ``region`` or GLOBAL. Instruments we cannot quote (funds,
        indices, bonds, derivatives) are dropped.
        """
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        payload = await self._get_json(
            "/v1/finance/search",
            {"q": query, "quotesCount": SEARCH_RESULT_LIMIT, "newsCount": 0},
            symbol=query,
        )
        matches = []
        try:
            for raw in payload.get("quotes") or []:
                symbol = raw.get("symbol")
                hit_type = map_search_type(raw.get("typeDisp") or raw.get("quoteType"))
                if not symbol or hit_type is None:
                    continue
                if asset_type is not None and hit_type is not asset_type:
                    continue
                hit_region = map_exchange_region(raw.get("exchange"))
                if region is not None and hit_region not in (region, Region.GLOBAL):
                    continue
                price = raw.get("regularMarketPrice")
                matches.append(
                    AssetMatch(
                        symbol=symbol,
                        name=raw.get("longname") or raw.get("shortname") or symbol,
                        asset_type=hit_type,
                        region=hit_region,
                        exchange=raw.get("exchange") or "",
                        currency=raw.get("currency") or "USD",
                        price=float(price) if price is not None else None,
                    )
                )
        except (AttributeError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed search payload: {exc!r}", query) from exc
        logger.debug("Yahoo search %r returned %d matches", query, len(matches))
        return matches
