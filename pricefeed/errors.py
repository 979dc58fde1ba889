"""
Exceptions for the market data subsystem.

Exception hierarchy:
- MarketDataError (base)
  - ProviderError: one adapter call failed (timeout, HTTP, parse, unsupported)
  - RateLimitExceeded: token wait would exceed the configured maximum
  - AllProvidersFailed: every adapter in a fallback chain failed

Only RateLimitExceeded is ever raised to callers of the aggregator.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ProviderErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    UNSUPPORTED = "unsupported"


class MarketDataError(Exception):
    """Base exception for all market data errors."""

    def __init__(
        self,
        message: str,
        *,
        symbol: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.symbol = symbol
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.symbol:
            parts.append(f"[symbol={self.symbol}]")
        if self.details:
            parts.append(f"[details={self.details}]")
        return " ".join(parts)


class ProviderError(MarketDataError):
    """Raised by an adapter when a single provider call fails."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        kind: ProviderErrorKind,
        symbol: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.provider = provider
        self.kind = kind
        self.status_code = status_code
        details = dict(details or {})
        details["provider"] = provider
        details["kind"] = kind.value
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, symbol=symbol, details=details)


class RateLimitExceeded(MarketDataError):
    """Raised when acquiring a token would take longer than ``max_wait``."""

    def __init__(
        self,
        message: str,
        *,
        bucket: str,
        waited: float,
        max_wait: float,
        symbol: str | None = None,
    ) -> None:
        self.bucket = bucket
        self.waited = waited
        self.max_wait = max_wait
        super().__init__(
            message,
            symbol=symbol,
            details={"bucket": bucket, "waited": round(waited, 3), "max_wait": max_wait},
        )


class AllProvidersFailed(MarketDataError):
    """Every adapter in the fallback chain failed for one lookup."""

    def __init__(self, symbol: str, errors: list[ProviderError]) -> None:
        self.errors = list(errors)
        super().__init__(
            f"All {len(self.errors)} provider(s) failed",
            symbol=symbol,
            details={"providers": [e.provider for e in self.errors]},
        )
