"""Token-bucket rate limiter for outbound provider calls."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "default"


class PeriodKind(str, Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"

    @property
    def seconds(self) -> float:
        return _PERIOD_SECONDS[self]


_PERIOD_SECONDS = {
    PeriodKind.SECOND: 1.0,
    PeriodKind.MINUTE: 60.0,
    PeriodKind.HOUR: 3600.0,
    PeriodKind.DAY: 86400.0,
    PeriodKind.MONTH: 30 * 86400.0,
}

_PLAN_RE = re.compile(r"^\s*(\d+)\s*/\s*([a-z]+?)s?\s*$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class PlanLimits:
    """Request allowance supplied by the plan/authorization collaborator."""

    max_requests_per_period: int
    period_kind: PeriodKind

    def __post_init__(self) -> None:
        if self.max_requests_per_period <= 0:
            raise ValueError("max_requests_per_period must be positive")

    @property
    def refill_rate(self) -> float:
        """Tokens per second."""
        return self.max_requests_per_period / self.period_kind.seconds

    @classmethod
    def parse(cls, text: str) -> PlanLimits:
        """Parse ``"<count>/<period>"``, e.g. ``"10/minute"`` or ``"5/seconds"``."""
        match = _PLAN_RE.match(text)
        if not match:
            raise ValueError(f"Invalid rate limit {text!r}; expected '<count>/<period>'")
        count, unit = match.groups()
        try:
            kind = PeriodKind(unit.lower())
        except ValueError:
            raise ValueError(f"Unknown rate limit period {unit!r}") from None
        return cls(max_requests_per_period=int(count), period_kind=kind)


class TokenBucket:
    """Classic token bucket with lazy refill.

    Tokens accumulate at ``refill_rate`` per second up to ``capacity``.
    Refill is computed from elapsed clock time on every attempt, so no
    background timer is needed.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0 or refill_rate <= 0:
            raise ValueError("capacity and refill_rate must be positive")
        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()

    def try_consume(self) -> float:
        """Take one token if possible.

        Returns 0.0 on success, otherwise the number of seconds until the
        next token becomes available.
        """
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) / self.refill_rate

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now


class RateLimiter:
    """Process-wide gate in front of every provider call.

    One default bucket is shared by all providers; individual providers can
    be given their own bucket via ``provider_limits``. ``acquire`` only ever
    delays the caller, unless the wait would exceed ``max_wait`` in which
    case RateLimitExceeded is raised.

    All bucket mutation happens synchronously between awaits on the event
    loop, so no additional lock is required.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        max_wait: float | None = None,
        provider_limits: dict[str, PlanLimits] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._max_wait = max_wait
        self._buckets: dict[str, TokenBucket] = {
            DEFAULT_BUCKET: TokenBucket(capacity, refill_rate, clock),
        }
        for name, limits in (provider_limits or {}).items():
            self._buckets[name] = TokenBucket(
                limits.max_requests_per_period, limits.refill_rate, clock
            )

    @classmethod
    def from_plan_limits(
        cls,
        limits: PlanLimits,
        max_wait: float | None = None,
        **kwargs,
    ) -> RateLimiter:
        """Size the default bucket from a plan allowance."""
        return cls(
            capacity=limits.max_requests_per_period,
            refill_rate=limits.refill_rate,
            max_wait=max_wait,
            **kwargs,
        )

    @property
    def max_wait(self) -> float | None:
        return self._max_wait

    async def acquire(self, bucket: str | None = None) -> float:
        """Take one token from ``bucket``, waiting for refill if needed.

        Returns the number of seconds spent waiting.
        """
        name = bucket if bucket in self._buckets else DEFAULT_BUCKET
        token_bucket = self._buckets[name]
        start = self._clock()
        while True:
            wait = token_bucket.try_consume()
            waited = self._clock() - start
            if wait <= 0:
                if waited > 0:
                    logger.debug("Acquired %s token after %.2fs", name, waited)
                return waited
            if self._max_wait is not None and waited + wait > self._max_wait:
                logger.warning(
                    "Rate limit exceeded on %s bucket: next token in %.2fs, waited %.2fs",
                    name,
                    wait,
                    waited,
                )
                raise RateLimitExceeded(
                    f"Rate limit exceeded for {name!r}",
                    bucket=name,
                    waited=waited,
                    max_wait=self._max_wait,
                )
            await self._sleep(wait)

    def available(self, bucket: str | None = None) -> float:
        """Tokens currently available in ``bucket``."""
        name = bucket if bucket in self._buckets else DEFAULT_BUCKET
        return self._buckets[name].tokens
