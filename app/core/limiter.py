"""SlowAPI limiter shared by main (app.state.limiter) and the workflow routes.

Requests are bucketed per agency and client address, so one agency's burst of
trigger events does not throttle another's approvers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import get_settings


def tenant_and_address(request: Request) -> str:
    tenant = request.headers.get(get_settings().tenant_header_name) or "-"
    return f"{tenant}:{get_remote_address(request)}"


limiter = Limiter(key_func=tenant_and_address)

WRITE_ENDPOINT_LIMIT = "120/minute"
DECISION_LIMIT = "60/minute"
TRIGGER_LIMIT = "300/minute"

limit_writes = limiter.limit(WRITE_ENDPOINT_LIMIT)
limit_decisions = limiter.limit(DECISION_LIMIT)
limit_triggers = limiter.limit(TRIGGER_LIMIT)
