"""Request ID middleware.

Forwards a safe client X-Request-ID or generates one, stores it on scope
state and in the request context (log records), and echoes it on the response.
"""

from typing import Callable

from app.middleware._headers import echo_header, get_header, new_id, sanitize_id
from app.shared.context import set_request_id


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = sanitize_id(get_header(scope, header_name)) or new_id()
        scope.setdefault("state", {})["request_id"] = request_id
        set_request_id(request_id)
        try:
            await app(scope, receive, echo_header(send, header_name, request_id))
        finally:
            set_request_id(None)

    return asgi_app
