"""Request context management using contextvars.

Holds the agency and acting user for the current request (email forwarded by the
upstream auth gateway) and the request/correlation IDs so that
dependencies and log records can read them without threading them
through every call.

Usage:
    set_current_actor("Ops@Agency.test")
    actor = get_current_actor()  # "ops@agency.test"
"""

from contextvars import ContextVar

_current_actor: ContextVar[str | None] = ContextVar("current_actor", default=None)


def set_current_actor(actor: str | None) -> None:
    """Set the acting user for this request; blank values clear it."""
    _current_actor.set(actor.strip().lower() if actor and actor.strip() else None)


def clear_current_actor() -> None:
    _current_actor.set(None)


def get_current_actor() -> str | None:
    """Return the acting user's email, or None for scheduler and seed runs."""
    return _current_actor.get()


_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_request_id(request_id: str | None) -> None:
    """Set the request ID for this context (RequestIDMiddleware)."""
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for this context (CorrelationIDMiddleware)."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


_current_tenant_id: ContextVar[str | None] = ContextVar("current_tenant_id", default=None)


def set_current_tenant_id(tenant_id: str | None) -> None:
    """Set the agency for this request (TenantContextMiddleware); used by log records."""
    _current_tenant_id.set(tenant_id)


def get_current_tenant_id() -> str | None:
    return _current_tenant_id.get()
