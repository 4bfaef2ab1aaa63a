"""Tracing helpers for workflow operations: the traced decorator and span attributes."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Argument names recorded as span attributes; anything else (metadata, comments,
# approver lists) stays out of traces.
_RECORDED_ARGS = frozenset({
    "tenant_id", "workflow_id", "instance_id", "approval_id", "step_id",
    "decision", "entity_type", "event_name", "entity_id", "role", "limit",
})


def _record_args(span: trace.Span, signature: inspect.Signature | None, args: tuple, kwargs: dict) -> None:
    if signature is None:
        named = kwargs
    else:
        try:
            named = signature.bind_partial(*args, **kwargs).arguments
        except TypeError:
            named = kwargs
    for key, value in named.items():
        if key in _RECORDED_ARGS and value is not None:
            span.set_attribute(f"workflow.{key}", str(value))


def _fail(span: trace.Span, exc: Exception) -> None:
    span.set_status(Status(StatusCode.ERROR, str(exc)))
    span.record_exception(exc)


def traced(
    operation_name: str | None = None,
    attributes: dict | None = None,
) -> Callable:
    """Run the decorated function (sync or async) inside a span.

    Args:
        operation_name: Span name (defaults to module.funcname).
        attributes: Static attributes set on every span.

    Identifiers among the call arguments (tenant_id, instance_id, ...) are
    recorded as workflow.* attributes. A raised exception marks the span as
    failed and is re-raised.
    """

    def decorator(func: Callable) -> Callable:
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            signature = None

        def _start(span: trace.Span, args: tuple, kwargs: dict) -> None:
            for key, value in (attributes or {}).items():
                span.set_attribute(key, value)
            _record_args(span, signature, args, kwargs)

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with tracer.start_as_current_span(
                    span_name, record_exception=False, set_status_on_exception=False
                ) as span:
                    _start(span, args, kwargs)
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as e:
                        _fail(span, e)
                        raise
                    span.set_status(Status(StatusCode.OK))
                    return result

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(
                span_name, record_exception=False, set_status_on_exception=False
            ) as span:
                _start(span, args, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span (no-op when nothing is recording)."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)
