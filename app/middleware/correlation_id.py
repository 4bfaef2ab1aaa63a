"""Correlation ID middleware.

Carries X-Correlation-ID from the module that raised a domain event through
to the workflow log lines; falls back to the request ID. Client values are
checked like request IDs.
"""

from typing import Callable

from app.middleware._headers import echo_header, get_header, new_id, sanitize_id
from app.shared.context import set_correlation_id


def CorrelationIDMiddleware(app: Callable, header_name: str = "X-Correlation-ID") -> Callable:
    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        state = scope.setdefault("state", {})
        correlation_id = sanitize_id(get_header(scope, header_name)) or state.get("request_id") or new_id()
        state["correlation_id"] = correlation_id
        set_correlation_id(correlation_id)
        try:
            await app(scope, receive, echo_header(send, header_name, correlation_id))
        finally:
            set_correlation_id(None)

    return asgi_app
