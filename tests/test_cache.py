"""Tests for QuoteCache."""

from pricefeed.cache import QuoteCache, search_key, series_key
from pricefeed.models import AssetMatch, AssetType, HistoricalSeries, HistoryPeriod, Quote, Region


class TestQuoteCache:
    """Unit tests for the QuoteCache."""

    def test_round_trip_is_identical(self, clock):
        """Test that a stored quote comes back field-for-field identical."""
        cache = QuoteCache(clock=clock)
        quote = Quote(
            symbol="VAS.AX",
            price=89.45,
            change=1.23,
            change_percent=1.39,
            volume=125000,
            timestamp=1700000000.0,
            source="yahoo",
        )
        cache.put_quote(quote)
        cached = cache.get_quote("VAS.AX")
        assert cached is quote
        assert cached == quote

    def test_miss_returns_none(self, clock):
        """Test that unknown keys return None."""
        assert QuoteCache(clock=clock).get_quote("AAPL") is None

    def test_fresh_within_ttl(self, clock):
        """Test that an entry is served while younger than the TTL."""
        cache = QuoteCache(quote_ttl=30.0, clock=clock)
        cache.put_quote(Quote(symbol="AAPL", price=190.0, source="yahoo"))
        clock.advance(29.9)
        assert cache.get_quote("AAPL") is not None

    def test_expired_at_ttl(self, clock):
        """Test that an entry aged exactly TTL is stale."""
        cache = QuoteCache(quote_ttl=30.0, clock=clock)
        cache.put_quote(Quote(symbol="AAPL", price=190.0, source="yahoo"))
        clock.advance(30.0)
        assert cache.get_quote("AAPL") is None

    def test_zero_ttl_never_hits(self, clock):
        """Test that a zero TTL disables caching."""
        cache = QuoteCache(quote_ttl=0.0, clock=clock)
        cache.put_quote(Quote(symbol="AAPL", price=190.0, source="yahoo"))
        assert cache.get_quote("AAPL") is None

    def test_put_replaces_and_refreshes(self, clock):
        """Test that a later put overwrites and restarts the TTL."""
        cache = QuoteCache(quote_ttl=30.0, clock=clock)
        cache.put_quote(Quote(symbol="AAPL", price=190.0, source="yahoo"))
        clock.advance(20.0)
        newer = Quote(symbol="AAPL", price=191.0, source="yahoo")
        cache.put_quote(newer)
        clock.advance(20.0)
        assert cache.get_quote("AAPL") is newer

    def test_series_uses_history_ttl(self, clock):
        """Test that series entries use their own TTL and key."""
        cache = QuoteCache(quote_ttl=1.0, history_ttl=300.0, clock=clock)
        series = HistoricalSeries(symbol="AAPL", period=HistoryPeriod.ONE_MONTH, points=())
        cache.put_series(series)
        clock.advance(100.0)
        assert cache.get_series("AAPL", HistoryPeriod.ONE_MONTH) is series
        assert cache.get_series("AAPL", HistoryPeriod.ONE_YEAR) is None
        assert series_key("AAPL", HistoryPeriod.ONE_MONTH) in cache

    def test_search_keyed_by_filters(self, clock):
        """Test that search results are keyed case-insensitively per filter."""
        cache = QuoteCache(quote_ttl=1.0, history_ttl=300.0, clock=clock)
        matches = (AssetMatch("VAS.AX", "Vanguard", AssetType.ETF, Region.AU),)
        cache.put_search("Vanguard", AssetType.ETF, None, matches)
        clock.advance(100.0)

        assert cache.get_search("vanguard", AssetType.ETF, None) is matches
        assert cache.get_search("vanguard", None, None) is None
        assert cache.get_search("vanguard", AssetType.ETF, Region.AU) is None
        assert search_key("Vanguard", AssetType.ETF, None) == "search:vanguard:etf:*"

    def test_remove_and_clear(self, clock):
        """Test removing entries."""
        cache = QuoteCache(clock=clock)
        cache.put_quote(Quote(symbol="AAPL", price=1.0))
        cache.put_quote(Quote(symbol="MSFT", price=1.0))
        cache.remove("AAPL")
        cache.remove("NOPE")  # no error
        assert cache.get_quote("AAPL") is None
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0
