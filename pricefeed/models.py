"""Data models for market data."""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SYNTHETIC_SOURCE = "synthetic"


class AssetType(str, Enum):
    STOCK = "stock"
    ETF = "etf"
    CRYPTO = "crypto"


class Region(str, Enum):
    AU = "AU"
    US = "US"
    IN = "IN"
    EU = "EU"
    GLOBAL = "GLOBAL"


class HistoryPeriod(str, Enum):
    """Supported lookback windows for historical series."""

    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"

    @property
    def days(self) -> int:
        return _PERIOD_DAYS[self]


_PERIOD_DAYS = {
    HistoryPeriod.ONE_DAY: 1,
    HistoryPeriod.ONE_WEEK: 7,
    HistoryPeriod.ONE_MONTH: 30,
    HistoryPeriod.THREE_MONTHS: 90,
    HistoryPeriod.ONE_YEAR: 365,
}


@dataclass(frozen=True, slots=True)
class Quote:
    """Immutable point-in-time quote for a single symbol.

    ``timestamp`` is when the value was obtained (Unix seconds), not the
    provider's own tick time. ``source`` names the adapter that produced it,
    or ``"synthetic"`` for fallback data.
    """

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0
    timestamp: float = field(default_factory=time.time)
    source: str = SYNTHETIC_SOURCE

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"Negative price for {self.symbol}: {self.price}")

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYNTHETIC_SOURCE

    @property
    def direction(self) -> str:
        """'up', 'down', or 'flat'."""
        if self.change > 0:
            return "up"
        elif self.change < 0:
            return "down"
        return "flat"

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "timestamp": self.timestamp,
            "source": self.source,
            "direction": self.direction,
            "synthetic": self.is_synthetic,
        }


@dataclass(frozen=True, slots=True)
class HistoricalPoint:
    """One OHLCV bar. ``timestamp`` is timezone-aware UTC."""

    symbol: str
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True, slots=True)
class HistoricalSeries:
    """Ordered OHLCV series. Points are strictly ascending by timestamp."""

    symbol: str
    period: HistoryPeriod
    points: tuple[HistoricalPoint, ...]
    source: str = SYNTHETIC_SOURCE
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.timestamp <= prev.timestamp:
                raise ValueError(
                    f"Series for {self.symbol} is not strictly ascending at {cur.timestamp}"
                )

    @classmethod
    def from_points(
        cls,
        symbol: str,
        period: HistoryPeriod,
        points: Iterable[HistoricalPoint],
        source: str,
    ) -> HistoricalSeries:
        """Build a series from unordered points; later duplicates win."""
        by_ts: dict[datetime, HistoricalPoint] = {}
        for point in points:
            by_ts[point.timestamp] = point
        ordered = tuple(by_ts[ts] for ts in sorted(by_ts))
        return cls(symbol=symbol, period=period, points=ordered, source=source)

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYNTHETIC_SOURCE

    def __len__(self) -> int:
        return len(self.points)

    def closes(self) -> list[float]:
        return [p.close for p in self.points]

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "period": self.period.value,
            "source": self.source,
            "synthetic": self.is_synthetic,
            "timestamp": self.timestamp,
            "points": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True, slots=True)
class AssetMatch:
    """One tradable instrument found by an asset search."""

    symbol: str
    name: str
    asset_type: AssetType
    region: Region
    exchange: str = ""
    currency: str = "USD"
    price: float | None = None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "asset_type": self.asset_type.value,
            "region": self.region.value,
            "exchange": self.exchange,
            "currency": self.currency,
            "price": self.price,
        }
