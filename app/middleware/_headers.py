"""Helpers shared by the raw ASGI middlewares: header access, id checks, responses."""

import json
import re
import uuid
from typing import Any, Callable

# Safe for logging: alphanumeric, hyphen, underscore; max length to avoid abuse.
ID_MAX_LENGTH = 64
ID_ALLOWED_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1," + str(ID_MAX_LENGTH) + r"}$")


def get_header(scope: dict, name: str) -> str | None:
    """Return first header value for name (case-insensitive). Headers are (bytes, bytes)."""
    want = name.lower().encode()
    for k, v in scope.get("headers", []):
        if k.lower() == want:
            return v.decode("utf-8", errors="replace")
    return None


def sanitize_id(raw: str | None) -> str | None:
    """Return raw stripped if it is a safe ID; otherwise None. Prevents log injection."""
    if not raw or not ID_ALLOWED_PATTERN.match(raw.strip()):
        return None
    return raw.strip()


def new_id() -> str:
    return str(uuid.uuid4())


def echo_header(send: Callable, name: str, value: str) -> Callable:
    """Wrap send so the response start message carries name: value."""

    async def send_wrapper(message: dict) -> None:
        if message["type"] == "http.response.start":
            message["headers"] = [*message.get("headers", []), (name.encode(), value.encode())]
        await send(message)

    return send_wrapper


async def send_error(send: Callable, status: int, error: str, message: str, details: dict[str, Any]) -> None:
    """Send a complete JSON response in the service's error envelope."""
    body = json.dumps({"error": error, "message": message, "details": details}).encode()
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body, "more_body": False})
