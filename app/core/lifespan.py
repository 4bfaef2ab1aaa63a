"""Application lifespan: startup and shutdown.

Startup configures logging and registers the dynamic approver resolvers
and automation actions. When telemetry is enabled it also creates the
engine early so SQL statements are traced from the first request. Shutdown flushes spans and disposes the
engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import get_settings
from app.infrastructure.persistence import database
from app.infrastructure.services import (
    LogOnlyNotificationService,
    build_default_action_registry,
    build_default_registry,
)
from app.shared.telemetry.logging import setup_logging
from app.shared.telemetry.telemetry import instrument_app, setup_tracing, shutdown_tracing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging()
    app.state.approver_registry = build_default_registry()
    logger.info(
        "Dynamic approver resolvers: %s", ", ".join(app.state.approver_registry.keys())
    )
    app.state.action_registry = build_default_action_registry(LogOnlyNotificationService())
    logger.info("Automation actions: %s", ", ".join(app.state.action_registry.keys()))

    if setup_tracing(settings) is not None:
        database.ensure_engine()
        instrument_app(app, database.engine)

    yield

    shutdown_tracing()
    if database.engine is not None:
        await database.engine.dispose()
        logger.info("Database engine disposed")
