"""Request timeout middleware.

Cancels a request that runs longer than request_timeout_seconds and answers
504 in the error envelope. A cancelled write rolls back with its session
transaction, so a decision is either fully recorded or not at all.
"""

import asyncio
import logging
from typing import Callable

from app.middleware._headers import send_error

logger = logging.getLogger(__name__)


def TimeoutMiddleware(app: Callable, timeout_seconds: int) -> Callable:
    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        response_started = False

        async def tracking_send(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            async with asyncio.timeout(timeout_seconds):
                await app(scope, receive, tracking_send)
        except TimeoutError:
            logger.warning(
                "Request timed out after %ss: %s %s",
                timeout_seconds,
                scope.get("method", ""),
                scope.get("path", ""),
            )
            if not response_started:
                await send_error(
                    send,
                    504,
                    "GATEWAY_TIMEOUT",
                    f"Request timed out after {timeout_seconds} seconds",
                    {"timeout_seconds": timeout_seconds},
                )

    return asgi_app
