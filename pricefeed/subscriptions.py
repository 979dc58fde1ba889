"""Real-time quote subscriptions: one poll task per watched symbol."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from .aggregator import MarketDataAggregator, normalize_symbol
from .errors import RateLimitExceeded
from .models import AssetType, Quote, Region

logger = logging.getLogger(__name__)

QuoteCallback = Callable[[Quote], Awaitable[None] | None]

DEFAULT_POLL_INTERVAL = 30.0


@dataclass(eq=False, slots=True)
class _Registration:
    """One subscriber on one symbol. Compared by identity."""

    callback: QuoteCallback


@dataclass(slots=True)
class _Watch:
    symbol: str
    asset_type: AssetType | None
    region: Region | None
    registrations: list[_Registration] = field(default_factory=list)
    task: asyncio.Task | None = None


class Subscription:
    """Handle returned by SubscriptionManager.subscribe.

    Calling ``cancel()`` (or the handle itself) removes exactly the
    registrations this handle created. Cancelling twice is a no-op.
    """

    def __init__(
        self,
        manager: SubscriptionManager,
        entries: list[tuple[str, _Registration]],
    ) -> None:
        self._manager = manager
        self._entries = entries
        self._active = True

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(symbol for symbol, _ in self._entries)

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        for symbol, registration in self._entries:
            self._manager._unregister(symbol, registration)

    __call__ = cancel

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<Subscription {','.join(self.symbols)} {state}>"


class SubscriptionManager:
    """Fans out periodically polled quotes to registered callbacks.

    Each watched symbol owns exactly one asyncio task, no matter how many
    subscribers it has. The task polls the aggregator immediately and then
    every ``poll_interval`` seconds; the aggregator's cache absorbs polls
    that land inside the quote TTL. The task is cancelled as soon as the
    last registration for its symbol goes away.

    The first subscriber's ``asset_type``/``region`` hints are used for the
    whole life of the watch.
    """

    def __init__(
        self,
        aggregator: MarketDataAggregator,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        self._aggregator = aggregator
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._watches: dict[str, _Watch] = {}

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    # --- Public API ---

    def subscribe(
        self,
        symbols: str | Iterable[str],
        callback: QuoteCallback,
        *,
        asset_type: AssetType | str | None = None,
        region: Region | str | None = None,
    ) -> Subscription:
        """Register ``callback`` for every symbol. Needs a running event loop.

        Every call creates new registrations, even for a callback that is
        already subscribed.
        """
        if isinstance(symbols, str):
            symbols = [symbols]
        unique = list(dict.fromkeys(normalize_symbol(s) for s in symbols if s.strip()))
        if not unique:
            raise ValueError("subscribe() needs at least one symbol")

        resolved_type = AssetType(asset_type) if asset_type else None
        resolved_region = Region(region) if region else None

        entries: list[tuple[str, _Registration]] = []
        for symbol in unique:
            registration = _Registration(callback)
            watch = self._watches.get(symbol)
            if watch is None:
                watch = _Watch(symbol, resolved_type, resolved_region)
                self._watches[symbol] = watch
                watch.task = asyncio.create_task(
                    self._poll_loop(watch), name=f"quote-poll-{symbol}"
                )
                logger.info("Started watching %s", symbol)
            watch.registrations.append(registration)
            entries.append((symbol, registration))
        return Subscription(self, entries)

    def subscriber_count(self, symbol: str) -> int:
        watch = self._watches.get(normalize_symbol(symbol))
        return len(watch.registrations) if watch else 0

    def watched_symbols(self) -> list[str]:
        return list(self._watches)

    async def close(self) -> None:
        """Cancel every watch and wait for the poll tasks to finish."""
        watches = list(self._watches.values())
        self._watches.clear()
        tasks = [w.task for w in watches if w.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Subscription manager closed (%d watches)", len(watches))

    # --- Internals ---

    def _unregister(self, symbol: str, registration: _Registration) -> None:
        watch = self._watches.get(symbol)
        if watch is None:
            return
        try:
            watch.registrations.remove(registration)
        except ValueError:
            return
        if not watch.registrations:
            del self._watches[symbol]
            if watch.task is not None:
                watch.task.cancel()
            logger.info("Stopped watching %s", symbol)

    async def _poll_loop(self, watch: _Watch) -> None:
        """Poll, fan out, sleep. Errors are logged and the schedule kept."""
        while True:
            try:
                quote = await self._aggregator.get_quote(
                    watch.symbol, watch.asset_type, watch.region
                )
            except RateLimitExceeded as exc:
                logger.warning("Skipping poll for %s: %s", watch.symbol, exc)
            except Exception:
                logger.exception("Poll failed for %s", watch.symbol)
            else:
                await self._fan_out(watch, quote)
            await self._sleep(self._poll_interval)

    async def _fan_out(self, watch: _Watch, quote: Quote) -> None:
        # Snapshot: callbacks may cancel subscriptions while we iterate
        for registration in list(watch.registrations):
            if registration not in watch.registrations:
                continue
            try:
                result = registration.callback(quote)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscriber callback failed for %s", watch.symbol)
