"""Request context middleware for tenant and actor.

Sets the current agency (X-Tenant-ID) and the acting
user's email (X-Actor-Email, forwarded by the auth gateway) for logs and
decision attribution. Invalid values are left unset; the route
dependencies reject them with 400.
Uses raw ASGI so the context variables are visible to the route.
"""

from typing import Callable

from app.core.config import get_settings
from app.middleware._headers import get_header
from app.shared.context import clear_current_actor, set_current_actor, set_current_tenant_id
from app.shared.utils.sanitization import InputSanitizer


def TenantContextMiddleware(app: Callable) -> Callable:
    """Set tenant and actor context from headers before the route runs. Raw ASGI."""
    settings = get_settings()

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        tenant_id = get_header(scope, settings.tenant_header_name)
        set_current_tenant_id(tenant_id if InputSanitizer.is_valid_tenant_id(tenant_id) else None)
        set_current_actor(get_header(scope, settings.actor_header_name))
        try:
            await app(scope, receive, send)
        finally:
            set_current_tenant_id(None)
            clear_current_actor()

    return asgi_app
