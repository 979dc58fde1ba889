"""Market data aggregation and real-time distribution.

Public API:
    Quote, HistoricalSeries     - Immutable market data snapshots
    AssetMatch                  - One instrument found by an asset search
    MarketDataAggregator        - Cache-first, multi-provider lookups with fallback
    SubscriptionManager         - Per-symbol polling with callback fan-out
    ProviderAdapter, QuoteSink  - Interfaces for providers and quote storage
    RateLimiter, PlanLimits     - Token-bucket gate for provider calls
    MarketDataSettings          - Environment-driven configuration
    create_aggregator           - Factory wiring adapters, cache and limiter
    create_subscription_manager - Factory for the subscription manager
    create_quotes_router        - FastAPI router factory for REST endpoints
    create_stream_router        - FastAPI router factory for the SSE endpoint
"""

from .aggregator import MarketDataAggregator
from .api import create_quotes_router
from .cache import QuoteCache
from .config import MarketDataSettings
from .errors import (
    AllProvidersFailed,
    MarketDataError,
    ProviderError,
    ProviderErrorKind,
    RateLimitExceeded,
)
from .factory import create_aggregator, create_subscription_manager
from .interface import ProviderAdapter, QuoteSink
from .models import (
    AssetMatch,
    AssetType,
    HistoricalPoint,
    HistoricalSeries,
    HistoryPeriod,
    Quote,
    Region,
)
from .ratelimit import PlanLimits, RateLimiter
from .selector import ProviderSelector
from .stream import create_stream_router
from .subscriptions import Subscription, SubscriptionManager
from .synthetic import FallbackSynthesizer

__all__ = [
    "AllProvidersFailed",
    "AssetMatch",
    "AssetType",
    "FallbackSynthesizer",
    "HistoricalPoint",
    "HistoricalSeries",
    "HistoryPeriod",
    "MarketDataAggregator",
    "MarketDataError",
    "MarketDataSettings",
    "PlanLimits",
    "ProviderAdapter",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderSelector",
    "Quote",
    "QuoteCache",
    "QuoteSink",
    "RateLimitExceeded",
    "RateLimiter",
    "Region",
    "Subscription",
    "SubscriptionManager",
    "create_aggregator",
    "create_quotes_router",
    "create_stream_router",
    "create_subscription_manager",
]
