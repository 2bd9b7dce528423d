"""HTTP client helpers for talking to the SmartMarks API."""
import httpx

from dashboard.config import DashboardSettings

REQUEST_SOURCE = "dashboard"


def get_headers(token: str | None) -> dict[str, str]:
    """Get common headers for API requests."""
    headers = {"X-Request-Source": REQUEST_SOURCE}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_http_client(
    settings: DashboardSettings,
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an API client carrying the session's bearer token.

    `transport` lets callers route requests in-process (e.g. an ASGI app).
    """
    return httpx.AsyncClient(
        base_url=settings.api_url,
        headers=get_headers(token),
        timeout=settings.request_timeout,
        transport=transport,
    )
