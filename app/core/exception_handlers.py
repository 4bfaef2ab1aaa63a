"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Every error body has the
shape {"error": code, "message": text, "details": {...}}; domain error codes
map to HTTP status through _ERROR_CODE_STATUS.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import WorkflowServiceException

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status
_ERROR_CODE_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "RESOURCE_NOT_FOUND": 404,
    "PERMISSION_DENIED": 403,
    "IMMUTABLE_SYSTEM_WORKFLOW": 403,
    "SYSTEM_WORKFLOW_PROTECTED": 403,
    "WORKFLOW_IN_USE": 409,
    "STEP_IN_USE": 409,
    "DUPLICATE_WORKFLOW_NAME": 409,
    "DUPLICATE_AUTOMATION_RULE_NAME": 409,
    "WORKFLOW_INACTIVE": 409,
    "INVALID_INSTANCE_STATE": 409,
    "ALREADY_DECIDED": 409,
    "STALE_INSTANCE_STATE": 409,
    "UNRESOLVED_APPROVER": 422,
    "STORE_UNAVAILABLE": 503,
}


def _workflow_exception_handler(
    request: Request, exc: WorkflowServiceException
) -> JSONResponse:
    """Return JSON from WorkflowServiceException.to_dict() with its mapped status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.error("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status,
        content=exc.to_dict(),
    )


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail, "details": {}},
    )


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 in the error envelope; exc.detail names the exceeded limit."""
    logger.warning("Rate limit %s exceeded on %s %s", exc.detail, request.method, request.url.path)
    return JSONResponse(
        status_code=429,
        content={"error": "RATE_LIMITED", "message": "Too many requests", "details": {"limit": exc.detail}},
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail, "details": {}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Handlers: WorkflowServiceException (and subclasses), RequestValidationError,
    RateLimitExceeded, StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(WorkflowServiceException, _workflow_exception_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
