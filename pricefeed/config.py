"""Environment-driven settings for the market data subsystem."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from .cache import DEFAULT_HISTORY_TTL, DEFAULT_QUOTE_TTL
from .providers.base import DEFAULT_TIMEOUT
from .ratelimit import PlanLimits
from .subscriptions import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = "10/minute"
DEFAULT_RATE_MAX_WAIT = 60.0


@dataclass(frozen=True, slots=True)
class MarketDataSettings:
    """Resolved configuration. Build with ``from_env()`` or directly in tests."""

    alpha_vantage_api_key: str | None = None
    massive_api_key: str | None = None
    coingecko_api_key: str | None = None
    quote_ttl: float = DEFAULT_QUOTE_TTL
    history_ttl: float = DEFAULT_HISTORY_TTL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    provider_timeout: float = DEFAULT_TIMEOUT
    rate_limit: PlanLimits = PlanLimits.parse(DEFAULT_RATE_LIMIT)
    rate_max_wait: float | None = DEFAULT_RATE_MAX_WAIT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MarketDataSettings:
        """Read settings from ``os.environ``. Blank values count as unset.

        Raises ValueError for malformed numbers or rate limits.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(name, "").strip()
            return value or None

        def get_float(name: str, default: float) -> float:
            raw = get(name)
            if raw is None:
                return default
            try:
                value = float(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {raw!r}") from None
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {raw!r}")
            return value

        rate_limit = get("PRICEFEED_RATE_LIMIT")
        return cls(
            alpha_vantage_api_key=get("ALPHA_VANTAGE_API_KEY"),
            massive_api_key=get("MASSIVE_API_KEY"),
            coingecko_api_key=get("COINGECKO_API_KEY"),
            quote_ttl=get_float("PRICEFEED_QUOTE_TTL", DEFAULT_QUOTE_TTL),
            history_ttl=get_float("PRICEFEED_HISTORY_TTL", DEFAULT_HISTORY_TTL),
            poll_interval=get_float("PRICEFEED_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            provider_timeout=get_float("PRICEFEED_PROVIDER_TIMEOUT", DEFAULT_TIMEOUT),
            rate_limit=PlanLimits.parse(rate_limit or DEFAULT_RATE_LIMIT),
            rate_max_wait=get_float("PRICEFEED_RATE_MAX_WAIT", DEFAULT_RATE_MAX_WAIT),
        )
