"""Tests for settings and the wiring factories."""

import os
from unittest.mock import patch

import pytest

from pricefeed.aggregator import MarketDataAggregator
from pricefeed.config import MarketDataSettings
from pricefeed.factory import create_aggregator, create_subscription_manager
from pricefeed.models import AssetType, Region
from pricefeed.ratelimit import PeriodKind, PlanLimits


class TestSettings:
    """Tests for MarketDataSettings.from_env."""

    def test_defaults_when_unset(self):
        """Test defaults with an empty environment."""
        with patch.dict(os.environ, {}, clear=True):
            settings = MarketDataSettings.from_env()

        assert settings.massive_api_key is None
        assert settings.alpha_vantage_api_key is None
        assert settings.quote_ttl == 30.0
        assert settings.history_ttl == 300.0
        assert settings.poll_interval == 30.0
        assert settings.provider_timeout == 5.0
        assert settings.rate_limit == PlanLimits(10, PeriodKind.MINUTE)
        assert settings.rate_max_wait == 60.0

    def test_whitespace_is_unset(self):
        """Test that blank values count as unset."""
        env = {"MASSIVE_API_KEY": "   ", "PRICEFEED_QUOTE_TTL": " "}
        with patch.dict(os.environ, env, clear=True):
            settings = MarketDataSettings.from_env()

        assert settings.massive_api_key is None
        assert settings.quote_ttl == 30.0

    def test_values_read_and_stripped(self):
        """Test that configured values are parsed."""
        env = {
            "ALPHA_VANTAGE_API_KEY": " av-key ",
            "PRICEFEED_QUOTE_TTL": "5",
            "PRICEFEED_RATE_LIMIT": "100/day",
            "PRICEFEED_PROVIDER_TIMEOUT": "2.5",
        }
        settings = MarketDataSettings.from_env(env)

        assert settings.alpha_vantage_api_key == "av-key"
        assert settings.quote_ttl == 5.0
        assert settings.provider_timeout == 2.5
        assert settings.rate_limit == PlanLimits(100, PeriodKind.DAY)

    @pytest.mark.parametrize(
        "env",
        [
            {"PRICEFEED_QUOTE_TTL": "soon"},
            {"PRICEFEED_POLL_INTERVAL": "-1"},
            {"PRICEFEED_RATE_LIMIT": "lots"},
        ],
    )
    def test_invalid_values(self, env):
        """Test that malformed values raise ValueError."""
        with pytest.raises(ValueError):
            MarketDataSettings.from_env(env)


class TestFactory:
    """Tests for create_aggregator / create_subscription_manager."""

    def test_keyless_chain_falls_back_to_yahoo(self):
        """Test that without keys US stocks go straight to Yahoo."""
        with patch.dict(os.environ, {}, clear=True):
            aggregator = create_aggregator()

        assert isinstance(aggregator, MarketDataAggregator)
        chain = aggregator.selector.chain_for(AssetType.STOCK, Region.US)
        assert [a.name for a in chain] == ["yahoo"]

    def test_crypto_chain_keyless(self):
        """Test that CoinGecko leads crypto chains without any key."""
        aggregator = create_aggregator(MarketDataSettings())
        chain = aggregator.selector.chain_for(AssetType.CRYPTO, Region.GLOBAL)
        assert [a.name for a in chain] == ["coingecko", "yahoo"]

    def test_keys_enable_providers_in_declaration_order(self):
        """Test Massive then Alpha Vantage for US stocks when both keys are set."""
        settings = MarketDataSettings(massive_api_key="m", alpha_vantage_api_key="a")
        aggregator = create_aggregator(settings)

        us = aggregator.selector.chain_for(AssetType.STOCK, Region.US)
        au = aggregator.selector.chain_for(AssetType.ETF, Region.AU)
        assert [a.name for a in us] == ["massive", "alphavantage", "yahoo"]
        assert [a.name for a in au] == ["alphavantage", "yahoo"]

    def test_massive_receives_api_key(self):
        """Test that the Massive adapter receives the configured key."""
        with patch.dict(os.environ, {"MASSIVE_API_KEY": "test-key-123"}, clear=True):
            aggregator = create_aggregator()

        massive = aggregator.selector.adapters[0]
        assert massive.name == "massive"
        assert massive._api_key == "test-key-123"

    def test_settings_flow_into_cache_and_limiter(self):
        """Test TTLs and rate limits from settings."""
        settings = MarketDataSettings(
            quote_ttl=1.0, history_ttl=2.0, rate_limit=PlanLimits(3, PeriodKind.SECOND)
        )
        aggregator = create_aggregator(settings)

        assert aggregator.cache.quote_ttl == 1.0
        assert aggregator.cache.history_ttl == 2.0
        assert aggregator.rate_limiter.available() == 3
        assert aggregator.rate_limiter.max_wait == 60.0

    def test_plan_limits_override(self):
        """Test that caller-supplied plan limits win over settings."""
        aggregator = create_aggregator(
            MarketDataSettings(), plan_limits=PlanLimits(7, PeriodKind.HOUR)
        )
        assert aggregator.rate_limiter.available() == 7

    def test_subscription_manager_interval(self):
        """Test the poll interval comes from settings unless given."""
        aggregator = create_aggregator(MarketDataSettings())

        with patch.dict(os.environ, {"PRICEFEED_POLL_INTERVAL": "12"}, clear=True):
            from_env = create_subscription_manager(aggregator)
        explicit = create_subscription_manager(aggregator, poll_interval=1.5)

        assert from_env.poll_interval == 12.0
        assert explicit.poll_interval == 1.5
