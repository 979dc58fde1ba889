"""Last-resort synthetic market data, used when every provider fails."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import numpy as np

from .models import (
    SYNTHETIC_SOURCE,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
)
from .seed_prices import (
    BASELINE_QUOTES,
    DEFAULT_BASELINE_PRICE,
    DEFAULT_CRYPTO_SIGMA,
    DEFAULT_SIGMA,
    QUOTE_JITTER,
    TICKER_SIGMA,
)
from .selector import CRYPTO_TICKERS

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 3600

# (number of bars, bar width) per period
_RESOLUTION: dict[HistoryPeriod, tuple[int, timedelta]] = {
    HistoryPeriod.ONE_DAY: (24, timedelta(hours=1)),
    HistoryPeriod.ONE_WEEK: (42, timedelta(hours=4)),
    HistoryPeriod.ONE_MONTH: (30, timedelta(days=1)),
    HistoryPeriod.THREE_MONTHS: (90, timedelta(days=1)),
    HistoryPeriod.ONE_YEAR: (365, timedelta(days=1)),
}


def _round_price(price: float) -> float:
    price = float(price)
    return round(price, 2) if price >= 1 else round(price, 6)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FallbackSynthesizer:
    """Produces clearly-tagged placeholder quotes and series.

    Quotes start from a last-known-good baseline (or a generic 100.0) and get
    bounded jitter so repeated calls are not identical. Series are a
    Geometric Brownian Motion path that ends at a jittered baseline:

        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Everything produced here carries ``source="synthetic"`` and a
    non-negative price. Pass ``seed`` for reproducible output.
    """

    def __init__(
        self,
        seed: int | None = None,
        jitter: float = QUOTE_JITTER,
        mu: float = 0.05,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not 0 <= jitter < 1:
            raise ValueError("jitter must be in [0, 1)")
        self._rng = np.random.default_rng(seed)
        self._jitter = jitter
        self._mu = mu
        self._now = now

    # --- Public API ---

    def quote(self, symbol: str) -> Quote:
        """Synthetic quote for ``symbol`` near its baseline."""
        base_price, base_change, _, volume = self._baseline(symbol)
        price = _round_price(self._jittered_price(symbol))
        previous_close = base_price - base_change
        change = price - previous_close
        change_percent = change / previous_close * 100 if previous_close > 0 else 0.0
        logger.warning("Serving synthetic quote for %s at %.4f", symbol, price)
        return Quote(
            symbol=symbol,
            price=price,
            change=round(change, 4),
            change_percent=round(change_percent, 4),
            volume=volume,
            source=SYNTHETIC_SOURCE,
        )

    def series(self, symbol: str, period: HistoryPeriod) -> HistoricalSeries:
        """Synthetic OHLCV series covering ``period``, ending near the baseline."""
        count, step = _RESOLUTION[period]
        end_price = self._jittered_price(symbol)
        closes = self._gbm_path(end_price, count, step, self._sigma(symbol))
        base_volume = self._baseline(symbol)[3] or 100_000

        end = self._now().replace(microsecond=0)
        start = end - step * (count - 1)
        points: list[HistoricalPoint] = []
        prev_close = closes[0]
        wick_scale = self._sigma(symbol) * math.sqrt(step.total_seconds() / SECONDS_PER_YEAR)
        for i, close in enumerate(closes):
            open_ = prev_close
            wick_hi, wick_lo = np.minimum(np.abs(self._rng.standard_normal(2)) * wick_scale, 0.5)
            points.append(
                HistoricalPoint(
                    symbol=symbol,
                    timestamp=start + step * i,
                    open=_round_price(open_),
                    high=_round_price(max(open_, close) * (1 + wick_hi)),
                    low=_round_price(min(open_, close) * (1 - wick_lo)),
                    close=_round_price(close),
                    volume=int(base_volume * self._rng.uniform(0.5, 1.5)),
                )
            )
            prev_close = close

        logger.warning("Serving synthetic %s series for %s", period.value, symbol)
        return HistoricalSeries(
            symbol=symbol, period=period, points=tuple(points), source=SYNTHETIC_SOURCE
        )

    # --- Internals ---

    def _jittered_price(self, symbol: str) -> float:
        base_price = self._baseline(symbol)[0]
        return base_price * (1 + self._rng.uniform(-self._jitter, self._jitter))

    @staticmethod
    def _seed_key(symbol: str) -> str:
        # Bare coin tickers share the "-USD" pair's seed entry
        if symbol in CRYPTO_TICKERS:
            return f"{symbol}-USD"
        return symbol

    @classmethod
    def _baseline(cls, symbol: str) -> tuple[float, float, float, int]:
        return BASELINE_QUOTES.get(cls._seed_key(symbol), (DEFAULT_BASELINE_PRICE, 0.0, 0.0, 0))

    @classmethod
    def _sigma(cls, symbol: str) -> float:
        symbol = cls._seed_key(symbol)
        if symbol in TICKER_SIGMA:
            return TICKER_SIGMA[symbol]
        if symbol.endswith("-USD"):
            return DEFAULT_CRYPTO_SIGMA
        return DEFAULT_SIGMA

    def _gbm_path(
        self, end_price: float, count: int, step: timedelta, sigma: float
    ) -> np.ndarray:
        """GBM path of ``count`` closes whose last value is ``end_price``."""
        if count == 1:
            return np.array([end_price])
        dt = step.total_seconds() / SECONDS_PER_YEAR
        z = self._rng.standard_normal(count - 1)
        log_returns = (self._mu - 0.5 * sigma**2) * dt + sigma * math.sqrt(dt) * z
        cumulative = np.concatenate(([0.0], np.cumsum(log_returns)))
        # Anchor the path so it finishes exactly at end_price
        return end_price * np.exp(cumulative - cumulative[-1])
