"""Provider selection: ordered fallback chains per (asset type, region)."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .interface import ProviderAdapter
from .models import AssetType, Region

logger = logging.getLogger(__name__)

# Coin tickers recognised without a "-USD" suffix
CRYPTO_TICKERS = frozenset(
    {"BTC", "ETH", "ADA", "DOT", "LINK", "UNI", "MATIC", "SOL", "AVAX", "ATOM", "XRP", "DOGE"}
)

# Exchange suffix -> listing region
_SUFFIX_REGIONS: dict[str, Region] = {
    ".AX": Region.AU,
    ".NS": Region.IN,
    ".BO": Region.IN,
    ".L": Region.EU,
    ".PA": Region.EU,
    ".DE": Region.EU,
    ".AS": Region.EU,
}


def infer_asset_type(symbol: str) -> AssetType:
    """Best-effort asset type from the symbol alone. Defaults to stock."""
    symbol = symbol.strip().upper()
    base = symbol.removesuffix("-USD")
    if base in CRYPTO_TICKERS or (symbol.endswith("-USD") and "." not in symbol):
        return AssetType.CRYPTO
    return AssetType.STOCK


def infer_region(symbol: str, asset_type: AssetType | None = None) -> Region:
    """Listing region from the exchange suffix. Crypto trades globally."""
    symbol = symbol.strip().upper()
    if (asset_type or infer_asset_type(symbol)) is AssetType.CRYPTO:
        return Region.GLOBAL
    for suffix, region in _SUFFIX_REGIONS.items():
        if symbol.endswith(suffix):
            return region
    return Region.US


class ProviderSelector:
    """Chooses the ordered adapter chain for a lookup.

    The full (asset type x region) table is computed once from static
    capabilities when the selector is built. Adapters that report
    ``is_available() == False`` at that point never appear in a chain.

    Ordering, most specific first:
      1. crypto-only specialists, for crypto lookups, regardless of region
      2. general adapters listing the exact region
      3. general adapters declaring GLOBAL coverage
      4. the catch-all adapter, always last

    Adapters that cannot serve the asset type or region are left out, so a
    lookup nothing matches gets a chain of just the catch-all.
    """

    def __init__(self, adapters: Sequence[ProviderAdapter]) -> None:
        catch_alls = [a for a in adapters if a.catch_all]
        if not catch_alls:
            raise ValueError("ProviderSelector needs one catch-all adapter")
        self._catch_all = catch_alls[-1]
        self._adapters = tuple(a for a in adapters if a.is_available() and not a.catch_all)

        skipped = [a.name for a in adapters if not a.catch_all and not a.is_available()]
        if skipped:
            logger.info("Providers unavailable and skipped: %s", ", ".join(skipped))

        self._table: dict[tuple[AssetType, Region], tuple[ProviderAdapter, ...]] = {
            (asset_type, region): self._build_chain(asset_type, region)
            for asset_type in AssetType
            for region in Region
        }

    @property
    def catch_all(self) -> ProviderAdapter:
        return self._catch_all

    @property
    def adapters(self) -> tuple[ProviderAdapter, ...]:
        """Every adapter the selector can hand out, catch-all last."""
        return (*self._adapters, self._catch_all)

    def chain_for(self, asset_type: AssetType, region: Region) -> tuple[ProviderAdapter, ...]:
        """Ordered fallback chain. Never empty, never fails, no I/O."""
        return self._table[(asset_type, region)]

    def _build_chain(
        self, asset_type: AssetType, region: Region
    ) -> tuple[ProviderAdapter, ...]:
        ranked: list[tuple[int, int, ProviderAdapter]] = []
        for position, adapter in enumerate(self._adapters):
            capability = adapter.capability
            if not capability.supports(asset_type):
                continue
            if asset_type is AssetType.CRYPTO and capability.is_specialist:
                rank = 0
            elif region in capability.regions:
                rank = 1
            elif Region.GLOBAL in capability.regions:
                rank = 2
            else:
                continue
            ranked.append((rank, position, adapter))

        ranked.sort(key=lambda item: (item[0], item[1]))
        return (*(adapter for _, _, adapter in ranked), self._catch_all)
