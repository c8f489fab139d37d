"""Rate limiting dependency for FastAPI routes.

This module wires the traffic-shaping facade into the HTTP layer.

Design goals:
- Minimal coupling: routes declare ``Depends(rate_limit("bucket"))`` only.
- One limiter for all stateless handlers, keyed ``bucket:client_id``.
- Denials short-circuit with HTTP 429 via ``RateLimitExceededError``.

Client identification:
- ``CF-Connecting-IP`` set by the edge proxy, else
- the first hop of ``X-Forwarded-For``, else
- the literal ``anonymous`` (all unidentified clients share one budget).
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request, WebSocket
from starlette.requests import HTTPConnection

from app.services.traffic_shaping import RateLimitDecision

logger = logging.getLogger(__name__)

ANONYMOUS_CLIENT = "anonymous"


def get_client_identifier(connection: HTTPConnection) -> str:
    """Derive the rate limit identity of an HTTP request or WebSocket.

    Args:
        connection: Incoming request or websocket.

    Returns:
        str: Client IP as reported by the proxy chain, or ``anonymous``.
    """

    connecting_ip = connection.headers.get("cf-connecting-ip")
    if connecting_ip and connecting_ip.strip():
        return connecting_ip.strip()

    forwarded = connection.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    return ANONYMOUS_CLIENT


def rate_limit(bucket: str) -> Callable[[Request], Awaitable[RateLimitDecision]]:
    """Build a FastAPI dependency enforcing ``bucket``'s policy.

    Usage:
        @router.post("/api/crawl", dependencies=[Depends(rate_limit("crawl"))])

    Raises (from the dependency):
        RateLimitExceededError: Rendered as 429 with ``Retry-After``.
        StorageAppError: When storage fails for a fail-closed bucket.
    """

    async def enforce_rate_limit(request: Request) -> RateLimitDecision:
        shaper = request.app.state.services.traffic
        client_id = get_client_identifier(request)
        return await shaper.enforce(bucket, client_id)

    enforce_rate_limit.__name__ = f"enforce_rate_limit_{bucket.replace('-', '_')}"
    return enforce_rate_limit


async def check_websocket_turn(
    websocket: WebSocket,
    bucket: str,
    *,
    partition: str,
) -> RateLimitDecision:
    """Rate limit one message on an open WebSocket.

    The counter lives in the partition (room/session) store, keyed by the
    client identifier, so one noisy client cannot exhaust a whole room.

    Returns:
        The decision; always allowed when the app was built with rate
        limiting disabled.
    """

    shaper = websocket.app.state.services.traffic
    return await shaper.check(bucket, get_client_identifier(websocket), partition=partition)
