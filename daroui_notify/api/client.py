"""
HTTP client factory for the restaurant REST API.
"""
from typing import Dict, Optional

import httpx

from daroui_notify.core.config import settings


def create_http_client(
    base_url: Optional[str] = None,
    *,
    access_token: Optional[str] = None,
    cookies: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the AsyncClient shared by every REST call of a notification session.

    Session cookies (the dashboards' default auth) ride along on every request;
    `access_token` adds a bearer header for deployments using JWTs instead.
    """
    headers = {"Accept": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    return httpx.AsyncClient(
        base_url=base_url or settings.API_BASE_URL,
        headers=headers,
        cookies=cookies,
        timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
        transport=transport,
    )


def cookie_header(client: httpx.AsyncClient) -> Optional[str]:
    """Render the client's cookie jar as a `Cookie` header for the push channel."""
    pairs = [f"{cookie.name}={cookie.value}" for cookie in client.cookies.jar]
    return "; ".join(pairs) or None
