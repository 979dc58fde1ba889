"""Provider adapters, one per external quote source."""

from .alpha_vantage import AlphaVantageAdapter
from .base import HttpProviderAdapter
from .coingecko import CoinGeckoAdapter
from .massive_client import MassiveAdapter
from .yahoo import YahooFinanceAdapter

__all__ = [
    "AlphaVantageAdapter",
    "CoinGeckoAdapter",
    "HttpProviderAdapter",
    "MassiveAdapter",
    "YahooFinanceAdapter",
]
