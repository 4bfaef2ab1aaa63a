"""Shared utilities: context, enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from app.shared.context import (
    clear_current_actor,
    get_correlation_id,
    get_current_actor,
    get_current_tenant_id,
    get_request_id,
    set_correlation_id,
    set_current_actor,
    set_current_tenant_id,
    set_request_id,
)
from app.shared.enums import NotificationKind
from app.shared.utils import ensure_utc, generate_cuid, utc_now

__all__ = [
    "NotificationKind",
    "clear_current_actor",
    "ensure_utc",
    "generate_cuid",
    "get_correlation_id",
    "get_current_actor",
    "get_current_tenant_id",
    "get_request_id",
    "set_correlation_id",
    "set_current_actor",
    "set_current_tenant_id",
    "set_request_id",
    "utc_now",
]
