"""Health check endpoints. Liveness has no dependencies; readiness pings the database."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from app.domain.exceptions import StoreUnavailableException
from app.infrastructure.persistence.database import ensure_engine, store_errors
from app.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unavailable", "model": ReadinessErrorResponse}},
)
async def readiness_check() -> ReadinessResponse | JSONResponse:
    """Return 200 when the database answers SELECT 1; 503 otherwise.

    Use for Kubernetes/orchestrator readiness checks.
    """
    session_factory = ensure_engine()
    try:
        async with store_errors():
            async with session_factory() as session:
                await session.execute(text("SELECT 1"))
    except (StoreUnavailableException, DBAPIError) as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                status="not_ready",
                message="Database unavailable",
            ).model_dump(),
        )
    return ReadinessResponse()
