"""HTTP middleware: timeout, request ID, correlation ID, tenant/actor context.

Applied in main app; order matters (first added = outermost).
Import and use from app.main.
"""

from app.middleware.correlation_id import CorrelationIDMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.middleware.tenant_context import TenantContextMiddleware
from app.middleware.timeout import TimeoutMiddleware

__all__ = [
    "CorrelationIDMiddleware",
    "RequestIDMiddleware",
    "TenantContextMiddleware",
    "TimeoutMiddleware",
]
