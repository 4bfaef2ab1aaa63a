"""Rate limit bucketing: one bucket per agency and client address."""

from starlette.requests import Request

from app.core.limiter import tenant_and_address


def _request(headers: list[tuple[bytes, bytes]]) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/v1/workflow-triggers/events",
            "headers": headers,
            "client": ("10.0.0.5", 5000),
        }
    )


def test_key_combines_tenant_and_address() -> None:
    """Two agencies behind the same address get separate buckets."""
    assert tenant_and_address(_request([(b"x-tenant-id", b"agency-a")])) == "agency-a:10.0.0.5"
    assert tenant_and_address(_request([(b"x-tenant-id", b"agency-b")])) == "agency-b:10.0.0.5"


def test_key_without_tenant_header() -> None:
    """Requests without the header share the anonymous bucket for their address."""
    assert tenant_and_address(_request([])) == "-:10.0.0.5"
