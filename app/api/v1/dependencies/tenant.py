"""Tenant and actor dependencies (composition root).

Tenants are owned by the platform; this service only checks the header
format. The acting user is the email forwarded by the auth gateway.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.shared.utils.sanitization import InputSanitizer

_EMAIL_MAX_LENGTH = 320


async def get_tenant_id(request: Request) -> str:
    """Return the tenant ID from the tenant header; 400 if missing or malformed."""
    name = get_settings().tenant_header_name
    value = request.headers.get(name)
    if not value:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required header: {name}",
        )
    if not InputSanitizer.is_valid_tenant_id(value):
        raise HTTPException(
            status_code=400,
            detail="Invalid tenant ID format (use alphanumeric, hyphen, underscore; max 64 characters)",
        )
    return value


async def get_optional_actor(request: Request) -> str | None:
    """Return the acting user's email (lowercased) or None when the header is absent."""
    name = get_settings().actor_header_name
    value = (request.headers.get(name) or "").strip()
    if not value:
        return None
    if len(value) > _EMAIL_MAX_LENGTH or "@" not in value or value != InputSanitizer.clean_text(value):
        raise HTTPException(status_code=400, detail=f"Invalid {name} header")
    return value.lower()


async def get_actor(request: Request) -> str:
    """Return the acting user's email; 401 when the header is absent."""
    actor = await get_optional_actor(request)
    if actor is None:
        raise HTTPException(
            status_code=401,
            detail=f"Missing required header: {get_settings().actor_header_name}",
        )
    return actor
