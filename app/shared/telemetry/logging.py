"""Logging configuration for the application."""

import logging
import sys

from app.core.config import get_settings
from app.shared.context import (
    get_correlation_id,
    get_current_actor,
    get_current_tenant_id,
    get_request_id,
)

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[request_id=%(request_id)s tenant_id=%(tenant_id)s actor=%(actor)s] %(message)s"
)


class RequestContextFilter(logging.Filter):
    """Attach request_id, correlation_id, tenant_id and actor to every record.

    Values come from the request context variables; "-" outside a request
    (workflow tick, migrations).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.correlation_id = get_correlation_id() or "-"
        record.tenant_id = get_current_tenant_id() or "-"
        record.actor = get_current_actor() or "-"
        return True


def setup_logging() -> None:
    """Configure application-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
