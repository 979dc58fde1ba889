"""Factories that wire the market data subsystem together."""

from __future__ import annotations

import logging

from .aggregator import MarketDataAggregator
from .cache import QuoteCache
from .config import MarketDataSettings
from .interface import ProviderAdapter, QuoteSink
from .providers import (
    AlphaVantageAdapter,
    CoinGeckoAdapter,
    MassiveAdapter,
    YahooFinanceAdapter,
)
from .ratelimit import PlanLimits, RateLimiter
from .selector import ProviderSelector
from .subscriptions import SubscriptionManager
from .synthetic import FallbackSynthesizer

logger = logging.getLogger(__name__)


def create_adapters(settings: MarketDataSettings) -> list[ProviderAdapter]:
    """All known adapters in declaration order; the selector drops unavailable ones.

    - MASSIVE_API_KEY set → Massive serves US equities first
    - ALPHA_VANTAGE_API_KEY set → Alpha Vantage serves US and ASX equities
    - CoinGecko always serves crypto
    - Yahoo Finance is the catch-all for everything
    """
    timeout = settings.provider_timeout
    return [
        MassiveAdapter(api_key=settings.massive_api_key, timeout=timeout),
        AlphaVantageAdapter(api_key=settings.alpha_vantage_api_key, timeout=timeout),
        CoinGeckoAdapter(api_key=settings.coingecko_api_key, timeout=timeout),
        YahooFinanceAdapter(timeout=timeout),
    ]


def create_aggregator(
    settings: MarketDataSettings | None = None,
    quote_sink: QuoteSink | None = None,
    plan_limits: PlanLimits | None = None,
) -> MarketDataAggregator:
    """Build a ready-to-use aggregator.

    ``plan_limits`` (from the caller's plan/authorization layer) overrides
    the configured PRICEFEED_RATE_LIMIT.
    """
    settings = settings or MarketDataSettings.from_env()
    adapters = create_adapters(settings)
    selector = ProviderSelector(adapters)
    logger.info(
        "Market data providers: %s",
        ", ".join(a.name for a in selector.adapters),
    )

    limits = plan_limits or settings.rate_limit
    limiter = RateLimiter.from_plan_limits(limits, max_wait=settings.rate_max_wait)
    logger.info(
        "Rate limit: %d per %s (max wait %ss)",
        limits.max_requests_per_period,
        limits.period_kind.value,
        settings.rate_max_wait,
    )

    cache = QuoteCache(quote_ttl=settings.quote_ttl, history_ttl=settings.history_ttl)
    return MarketDataAggregator(
        selector=selector,
        cache=cache,
        rate_limiter=limiter,
        synthesizer=FallbackSynthesizer(),
        quote_sink=quote_sink,
    )


def create_subscription_manager(
    aggregator: MarketDataAggregator,
    poll_interval: float | None = None,
    settings: MarketDataSettings | None = None,
) -> SubscriptionManager:
    """Subscription manager polling through ``aggregator``."""
    if poll_interval is None:
        poll_interval = (settings or MarketDataSettings.from_env()).poll_interval
    logger.info("Subscription poll interval: %ss", poll_interval)
    return SubscriptionManager(aggregator, poll_interval=poll_interval)
