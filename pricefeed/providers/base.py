"""Shared plumbing for adapters that speak JSON over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import ProviderError, ProviderErrorKind
from ..interface import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class HttpProviderAdapter(ProviderAdapter):
    """ProviderAdapter backed by an ``httpx.AsyncClient``.

    Every request is bounded by ``timeout`` seconds. Transport and status
    failures are translated into ProviderError so subclasses only deal with
    payload shapes.
    """

    base_url: str = ""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # --- Internal ---

    def _http(self) -> httpx.AsyncClient:
        # Created lazily so constructing an adapter never touches the network stack
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        symbol: str,
    ) -> Any:
        """GET ``path`` and decode JSON, mapping every failure to ProviderError."""
        try:
            response = await self._http().get(
                f"{self.base_url}{path}",
                params=params,
                headers=self._default_headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            raise self._error(
                f"Timed out after {self._timeout}s", ProviderErrorKind.TIMEOUT, symbol
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise self._error(
                f"HTTP {exc.response.status_code}",
                ProviderErrorKind.HTTP_ERROR,
                symbol,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise self._error(
                f"Transport error: {exc}", ProviderErrorKind.HTTP_ERROR, symbol
            ) from exc
        except ValueError as exc:
            raise self._error(
                f"Invalid JSON: {exc}", ProviderErrorKind.PARSE_ERROR, symbol
            ) from exc

    def _error(
        self,
        message: str,
        kind: ProviderErrorKind,
        symbol: str,
        status_code: int | None = None,
    ) -> ProviderError:
        return ProviderError(
            message,
            provider=self.name,
            kind=kind,
            symbol=symbol,
            status_code=status_code,
        )

    def _parse_error(self, message: str, symbol: str) -> ProviderError:
        return self._error(message, ProviderErrorKind.PARSE_ERROR, symbol)
