"""SSE streaming endpoint for live quote updates."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from .api import parse_symbols
from .models import Quote
from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT = 15.0


def create_stream_router(
    subscriptions: SubscriptionManager,
    heartbeat: float = DEFAULT_HEARTBEAT,
) -> APIRouter:
    """Create the SSE streaming router with a reference to the subscription manager.

    This factory pattern lets us inject the SubscriptionManager without globals.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/quotes")
    async def stream_quotes(
        request: Request,
        symbols: str = Query(..., description="Comma-separated symbols"),
    ) -> StreamingResponse:
        """SSE endpoint for live quote updates.

        Every poll result for the requested symbols is sent as one event:

            data: {"symbol": "VAS.AX", "price": 89.45, ...}

        Comment lines are sent as heartbeats while idle. The subscription
        is cancelled when the client goes away.
        """
        wanted = parse_symbols(symbols)
        if not wanted:
            raise HTTPException(status_code=422, detail="No symbols given")
        return StreamingResponse(
            _generate_events(subscriptions, wanted, request, heartbeat),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    subscriptions: SubscriptionManager,
    symbols: list[str],
    request: Request,
    heartbeat: float = DEFAULT_HEARTBEAT,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted quote events.

    Stops when the client disconnects (checked at least every ``heartbeat``
    seconds).
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    client_ip = request.client.host if request.client else "unknown"
    queue: asyncio.Queue[Quote] = asyncio.Queue()
    subscription = subscriptions.subscribe(symbols, queue.put_nowait)
    logger.info("SSE client connected: %s (%s)", client_ip, ",".join(symbols))

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            try:
                quote = await asyncio.wait_for(queue.get(), timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue

            yield f"data: {json.dumps(quote.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        subscription.cancel()
