"""FastAPI application for the approval workflow service.

Wiring only: lifespan, exception handlers, middleware and the /api/v1 router.
Settings are read inside create_app() so tests can set the environment before
import.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.limiter import limiter
from app.middleware import (
    CorrelationIDMiddleware,
    RequestIDMiddleware,
    TenantContextMiddleware,
    TimeoutMiddleware,
)

OPENAPI_TAGS = [
    {"name": "workflows", "description": "Workflow definitions and their ordered steps."},
    {"name": "workflow-instances", "description": "Start, decide, cancel, retry and reassign instances."},
    {"name": "workflow-approvals", "description": "Pending approvals inbox and delegation."},
    {"name": "workflow-triggers", "description": "Domain events and role membership changes."},
    {"name": "automation-rules", "description": "Event-driven rules that run automation actions."},
    {"name": "health", "description": "Liveness."},
]


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-agency approval workflows: definitions, step routing and instance state.",
        debug=settings.debug,
        openapi_tags=OPENAPI_TAGS,
        lifespan=create_lifespan,
    )
    app.state.limiter = limiter
    register_exception_handlers(app)

    # add_middleware wraps: the last added runs first.
    # Request path: timeout, request id, correlation id, tenant/actor context, CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=[
            settings.tenant_header_name,
            settings.actor_header_name,
            settings.request_id_header,
            settings.correlation_id_header,
            "Content-Type",
        ],
    )
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(CorrelationIDMiddleware, header_name=settings.correlation_id_header)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)

    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
