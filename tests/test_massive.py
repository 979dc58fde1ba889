"""Tests for MassiveAdapter (mocked REST client)."""

import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from pricefeed.errors import ProviderError, ProviderErrorKind
from pricefeed.models import HistoryPeriod, Region
from pricefeed.providers import MassiveAdapter


def _make_snapshot(ticker: str, price: float, change: float = 0.5, pct: float = 0.26) -> MagicMock:
    """Create a mock Massive snapshot object."""
    snap = MagicMock()
    snap.ticker = ticker
    snap.last_trade.price = price
    snap.todays_change = change
    snap.todays_change_percent = pct
    snap.day.volume = 52_000_000
    return snap


def _make_agg(timestamp_ms: int, close: float) -> MagicMock:
    agg = MagicMock()
    agg.timestamp = timestamp_ms
    agg.open = close - 1
    agg.high = close + 1
    agg.low = close - 2
    agg.close = close
    agg.volume = 1000
    return agg


@pytest.mark.asyncio
class TestMassiveAdapter:
    """Unit tests for MassiveAdapter with mocked API."""

    async def test_quote_from_snapshot(self):
        """Test that a snapshot becomes a quote."""
        adapter = MassiveAdapter(api_key="test-key")
        snaps = [_make_snapshot("MSFT", 420.0), _make_snapshot("AAPL", 190.5)]

        with patch.object(adapter, "_fetch_snapshots", return_value=snaps):
            quote = await adapter.get_quote("AAPL")

        assert quote.price == 190.5
        assert quote.change == 0.5
        assert quote.change_percent == 0.26
        assert quote.volume == 52_000_000
        assert quote.source == "massive"

    async def test_missing_snapshot(self):
        """Test that an absent ticker is a parse error."""
        adapter = MassiveAdapter(api_key="test-key")

        with patch.object(adapter, "_fetch_snapshots", return_value=[]):
            with pytest.raises(ProviderError) as excinfo:
                await adapter.get_quote("AAPL")

        assert excinfo.value.kind is ProviderErrorKind.PARSE_ERROR

    async def test_malformed_snapshot(self):
        """Test that a snapshot without a last trade is a parse error."""
        adapter = MassiveAdapter(api_key="test-key")
        bad_snap = MagicMock()
        bad_snap.ticker = "AAPL"
        bad_snap.last_trade = None  # Will cause AttributeError

        with patch.object(adapter, "_fetch_snapshots", return_value=[bad_snap]):
            with pytest.raises(ProviderError) as excinfo:
                await adapter.get_quote("AAPL")

        assert excinfo.value.kind is ProviderErrorKind.PARSE_ERROR

    async def test_api_error_becomes_provider_error(self):
        """Test that client exceptions map to HTTP_ERROR."""
        adapter = MassiveAdapter(api_key="test-key")

        with patch.object(adapter, "_fetch_snapshots", side_effect=Exception("401 Unauthorized")):
            with pytest.raises(ProviderError) as excinfo:
                await adapter.get_quote("AAPL")

        assert excinfo.value.kind is ProviderErrorKind.HTTP_ERROR
        assert excinfo.value.provider == "massive"

    async def test_slow_call_times_out(self):
        """Test that a blocking call exceeding the timeout maps to TIMEOUT."""
        adapter = MassiveAdapter(api_key="test-key", timeout=0.05)

        with patch.object(adapter, "_fetch_snapshots", side_effect=lambda s: time.sleep(0.3)):
            with pytest.raises(ProviderError) as excinfo:
                await adapter.get_quote("AAPL")

        assert excinfo.value.kind is ProviderErrorKind.TIMEOUT

    async def test_series_from_aggregates(self):
        """Test that aggregates (ms timestamps) become an ascending series."""
        adapter = MassiveAdapter(api_key="test-key")
        aggs = [_make_agg(1_707_667_200_000, 191.0), _make_agg(1_707_580_800_000, 190.0)]

        with patch.object(adapter, "_fetch_aggs", return_value=aggs):
            series = await adapter.get_historical_series("AAPL", HistoryPeriod.ONE_MONTH)

        assert series.closes() == [190.0, 191.0]
        assert series.points[0].timestamp == datetime.fromtimestamp(1_707_580_800, tz=timezone.utc)
        assert series.source == "massive"

    async def test_empty_aggregates(self):
        """Test that no aggregates is a parse error."""
        adapter = MassiveAdapter(api_key="test-key")

        with patch.object(adapter, "_fetch_aggs", return_value=[]):
            with pytest.raises(ProviderError) as excinfo:
                await adapter.get_historical_series("AAPL", HistoryPeriod.ONE_DAY)

        assert excinfo.value.kind is ProviderErrorKind.PARSE_ERROR


class TestMassiveClientCalls:
    """Tests for the synchronous REST calls and static declarations."""

    def test_availability_follows_key(self):
        """Test that the adapter is only available with a key."""
        assert not MassiveAdapter(api_key=None).is_available()
        assert not MassiveAdapter(api_key="   ").is_available()
        assert MassiveAdapter(api_key="k").is_available()
        assert MassiveAdapter(api_key="k").supported_regions() == {Region.US}

    def test_fetch_aggs_uses_period_resolution(self):
        """Test that the aggregates request follows the period's bar width."""
        adapter = MassiveAdapter(api_key="k")
        client = MagicMock()
        client.get_aggs.return_value = iter([])

        with patch.object(adapter, "_rest_client", return_value=client):
            adapter._fetch_aggs("AAPL", HistoryPeriod.ONE_WEEK)

        kwargs = client.get_aggs.call_args.kwargs
        assert kwargs["ticker"] == "AAPL"
        assert kwargs["multiplier"] == 1
        assert kwargs["timespan"] == "hour"

    def test_fetch_snapshots_requests_single_ticker(self):
        """Test that the snapshot call is scoped to the symbol."""
        adapter = MassiveAdapter(api_key="k")
        client = MagicMock()

        with patch.object(adapter, "_rest_client", return_value=client):
            adapter._fetch_snapshots("AAPL")

        assert client.get_snapshot_all.call_args.kwargs["tickers"] == ["AAPL"]
