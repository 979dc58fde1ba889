"""CoinGecko adapter for cryptocurrency prices."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

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

# Ticker (without the -USD suffix) -> CoinGecko coin id
COIN_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "ADA": "cardano",
    "DOT": "polkadot",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "MATIC": "matic-network",
    "SOL": "solana",
    "AVAX": "avalanche-2",
    "ATOM": "cosmos",
    "XRP": "ripple",
    "DOGE": "dogecoin",
}


def coin_id(symbol: str) -> str | None:
    """Map ``BTC-USD`` / ``BTC`` to a CoinGecko id, or None if unknown."""
    return COIN_IDS.get(symbol.upper().removesuffix("-USD"))


class CoinGeckoAdapter(HttpProviderAdapter):
    """USD prices from CoinGecko's public API.

    Only coins listed in COIN_IDS can be served; anything else fails fast
    with UNSUPPORTED and no request is made.
    """

    name = "coingecko"
    base_url = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._api_key = (api_key or "").strip()

    def is_available(self) -> bool:
        return True

    def supported_regions(self) -> frozenset[Region]:
        return frozenset({Region.GLOBAL})

    def supported_asset_types(self) -> frozenset[AssetType]:
        return frozenset({AssetType.CRYPTO})

    def _default_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["x-cg-demo-api-key"] = self._api_key
        return headers

    async def get_quote(self, symbol: str) -> Quote:
        cid = self._require_coin(symbol)
        payload = await self._get_json(
            "/simple/price",
            {
                "ids": cid,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_24hr_vol": "true",
            },
            symbol=symbol,
        )
        try:
            data = payload[cid]
            price = float(data["usd"])
            change_percent = float(data.get("usd_24h_change") or 0.0)
            volume = int(data.get("usd_24h_vol") or 0)
            # Only the 24h percentage is reported; derive the absolute move from it
            previous = price / (1 + change_percent / 100) if change_percent > -100 else 0.0
            return Quote(
                symbol=symbol,
                price=price,
                change=round(price - previous, 8) if previous else 0.0,
                change_percent=change_percent,
                volume=volume,
                source=self.name,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed price payload: {exc!r}", symbol) from exc

    async def get_historical_series(
        self, symbol: str, period: HistoryPeriod
    ) -> HistoricalSeries:
        cid = self._require_coin(symbol)
        payload = await self._get_json(
            f"/coins/{cid}/ohlc",
            {"vs_currency": "usd", "days": str(period.days)},
            symbol=symbol,
        )
        if not isinstance(payload, list) or not payload:
            raise self._parse_error("OHLC response is empty", symbol)
        try:
            points = [
                HistoricalPoint(
                    symbol=symbol,
                    timestamp=datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc),
                    open=float(o),
                    high=float(h),
                    low=float(low),
                    close=float(c),
                )
                for ms, o, h, low, c in payload
            ]
        except (TypeError, ValueError) as exc:
            raise self._parse_error(f"Malformed OHLC payload: {exc!r}", symbol) from exc
        return HistoricalSeries.from_points(symbol, period, points, source=self.name)

    # --- Internal ---

    def _require_coin(self, symbol: str) -> str:
        cid = coin_id(symbol)
        if cid is None:
            raise self._error(
                f"No CoinGecko id for {symbol}", ProviderErrorKind.UNSUPPORTED, symbol
            )
        return cid
