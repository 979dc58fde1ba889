"""REST endpoints for quotes, historical series and asset search."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from .aggregator import MarketDataAggregator
from .errors import RateLimitExceeded
from .models import AssetType, HistoryPeriod, Region

logger = logging.getLogger(__name__)


def parse_symbols(raw: str) -> list[str]:
    """Split a comma-separated ``symbols`` query value, dropping blanks."""
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


def create_quotes_router(aggregator: MarketDataAggregator) -> APIRouter:
    """Create the market data router bound to ``aggregator``."""
    router = APIRouter(prefix="/api/market", tags=["market"])

    @router.get("/quotes/{symbol}")
    async def get_quote(
        symbol: str,
        asset_type: AssetType | None = None,
        region: Region | None = None,
    ) -> dict:
        try:
            quote = await aggregator.get_quote(symbol, asset_type, region)
        except RateLimitExceeded as exc:
            raise _too_many_requests(exc) from exc
        return quote.to_dict()

    @router.get("/quotes")
    async def get_quotes(
        symbols: str = Query(..., description="Comma-separated symbols"),
        region: Region | None = None,
    ) -> dict:
        wanted = parse_symbols(symbols)
        if not wanted:
            raise HTTPException(status_code=422, detail="No symbols given")
        try:
            quotes = await aggregator.get_quotes(wanted, region=region)
        except RateLimitExceeded as exc:
            raise _too_many_requests(exc) from exc
        return {symbol: quote.to_dict() for symbol, quote in quotes.items()}

    @router.get("/history/{symbol}")
    async def get_history(
        symbol: str,
        period: HistoryPeriod = HistoryPeriod.ONE_MONTH,
        asset_type: AssetType | None = None,
        region: Region | None = None,
    ) -> dict:
        try:
            series = await aggregator.get_historical_series(symbol, period, asset_type, region)
        except RateLimitExceeded as exc:
            raise _too_many_requests(exc) from exc
        return series.to_dict()

    @router.get("/search")
    async def search_assets(
        q: str = Query(..., description="Name or ticker fragment"),
        asset_type: AssetType | None = None,
        region: Region | None = None,
    ) -> list[dict]:
        try:
            matches = await aggregator.search(q, asset_type, region)
        except RateLimitExceeded as exc:
            raise _too_many_requests(exc) from exc
        return [match.to_dict() for match in matches]

    return router


def _too_many_requests(exc: RateLimitExceeded) -> HTTPException:
    logger.warning("Rejecting request: %s", exc)
    return HTTPException(
        status_code=429,
        detail=str(exc),
        headers={"Retry-After": str(max(1, round(exc.max_wait)))},
    )
