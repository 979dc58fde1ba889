"""Abstract interfaces for quote providers and downstream collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .errors import ProviderError, ProviderErrorKind
from .models import AssetMatch, AssetType, HistoricalSeries, HistoryPeriod, Quote, Region


@dataclass(frozen=True, slots=True)
class ProviderCapability:
    """Static description of what an adapter can serve.

    ``catch_all`` marks the universally-available adapter that closes every
    fallback chain.
    """

    name: str
    asset_types: frozenset[AssetType]
    regions: frozenset[Region]
    catch_all: bool = False

    @property
    def is_specialist(self) -> bool:
        """True when the adapter serves exactly one asset type."""
        return len(self.asset_types) == 1

    def supports(self, asset_type: AssetType) -> bool:
        return asset_type in self.asset_types


class ProviderAdapter(ABC):
    """Contract for one external quote provider.

    Adapters are stateless with respect to market data: the only thing they
    hold is their HTTP client configuration. Every failure surfaces as a
    ProviderError so the aggregator can move on to the next adapter.

    Lifecycle:
        adapter = YahooFinanceAdapter(timeout=5.0)
        quote = await adapter.get_quote("VAS.AX")
        series = await adapter.get_historical_series("VAS.AX", HistoryPeriod.ONE_MONTH)
        # ... app shutting down ...
        await adapter.aclose()
    """

    name: str = ""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Fetch the current quote. Raises ProviderError on any failure."""

    @abstractmethod
    async def get_historical_series(
        self, symbol: str, period: HistoryPeriod
    ) -> HistoricalSeries:
        """Fetch an ascending OHLCV series covering ``period``.

        Raises ProviderError on any failure.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap synchronous check (e.g. credential present). Never does I/O."""

    @abstractmethod
    def supported_regions(self) -> frozenset[Region]:
        """Regions whose listings this provider covers."""

    @abstractmethod
    def supported_asset_types(self) -> frozenset[AssetType]:
        """Asset types this provider can quote."""

    @property
    def catch_all(self) -> bool:
        return False

    @property
    def searchable(self) -> bool:
        """True when the adapter implements ``search``."""
        return False

    async def search(
        self,
        query: str,
        asset_type: AssetType | None = None,
        region: Region | None = None,
    ) -> list[AssetMatch]:
        """Instruments matching ``query``. Raises ProviderError on any failure."""
        raise ProviderError(
            f"{self.name} does not support search",
            provider=self.name,
            kind=ProviderErrorKind.UNSUPPORTED,
        )

    @property
    def capability(self) -> ProviderCapability:
        return ProviderCapability(
            name=self.name,
            asset_types=self.supported_asset_types(),
            regions=self.supported_regions(),
            catch_all=self.catch_all,
        )

    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""


class QuoteSink(ABC):
    """Durable storage collaborator for fetched quotes.

    Called fire-and-forget with batches of real (non-synthetic) quotes.
    Failures are logged by the caller and never propagated.
    """

    @abstractmethod
    async def save_quotes(self, quotes: list[Quote]) -> None:
        """Persist a batch of quotes."""
