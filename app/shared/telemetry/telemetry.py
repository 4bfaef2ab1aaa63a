"""OpenTelemetry tracing for the workflow service.

setup_tracing() installs the global tracer provider from Settings
(telemetry_exporter: console, otlp or none); instrument_app() hooks FastAPI,
SQLAlchemy and logging; shutdown_tracing() flushes pending spans. All three
are called from the application lifespan and are no-ops when telemetry is
disabled.
"""

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.config import Settings

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None


def build_exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
    """Return the span exporter for telemetry_exporter, or None for "none"."""
    if exporter_type == "none":
        return None
    if exporter_type == "otlp":
        if otlp_endpoint:
            return OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
            )
        logger.warning("telemetry_exporter=otlp without telemetry_otlp_endpoint, using console")
    elif exporter_type != "console":
        logger.warning("Unknown telemetry exporter %r, using console", exporter_type)
    return ConsoleSpanExporter()


def setup_tracing(settings: Settings) -> TracerProvider | None:
    """Create and install the tracer provider; None when disabled or setup failed."""
    global _provider
    if not settings.telemetry_enabled:
        return None
    try:
        provider = TracerProvider(
            resource=Resource(
                attributes={
                    SERVICE_NAME: settings.app_name,
                    SERVICE_VERSION: settings.app_version,
                    "deployment.environment": settings.telemetry_environment,
                }
            ),
            sampler=TraceIdRatioBased(settings.telemetry_sample_rate),
        )
        exporter = build_exporter(settings.telemetry_exporter, settings.telemetry_otlp_endpoint)
        if exporter is not None:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)
    except Exception:
        logger.exception("Failed to initialize telemetry")
        return None
    _provider = provider
    logger.info(
        "OpenTelemetry initialized: service=%s exporter=%s sample_rate=%s",
        settings.app_name,
        settings.telemetry_exporter,
        settings.telemetry_sample_rate,
    )
    return provider


def instrument_app(app: FastAPI, engine: AsyncEngine | None) -> None:
    """Trace requests and SQL statements, and stamp trace ids on log records."""
    if _provider is None:
        return
    try:
        FastAPIInstrumentor.instrument_app(
            app, tracer_provider=_provider, excluded_urls="/api/v1/health"
        )
        if engine is not None:
            SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine, tracer_provider=_provider, enable_commenter=True
            )
        LoggingInstrumentor().instrument(tracer_provider=_provider, set_logging_format=False)
    except Exception:
        logger.exception("Failed to instrument the application")


def shutdown_tracing() -> None:
    """Flush remaining spans and drop the provider."""
    global _provider
    if _provider is None:
        return
    try:
        _provider.shutdown()
    except Exception:
        logger.exception("Error during telemetry shutdown")
    _provider = None
