"""Shared telemetry: logging setup, OpenTelemetry setup, and tracing helpers."""

from app.shared.telemetry.logging import (
    RequestContextFilter,
    get_logger,
    setup_logging,
)
from app.shared.telemetry.telemetry import (
    instrument_app,
    setup_tracing,
    shutdown_tracing,
)
from app.shared.telemetry.tracing import (
    add_span_attributes,
    traced,
)

__all__ = [
    "RequestContextFilter",
    "setup_logging",
    "get_logger",
    "setup_tracing",
    "instrument_app",
    "shutdown_tracing",
    "traced",
    "add_span_attributes",
]
