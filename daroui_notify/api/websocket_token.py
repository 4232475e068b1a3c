from typing import Optional

import httpx

from daroui_notify.core.logging import api_logger


async def get_websocket_token(client: httpx.AsyncClient) -> Optional[str]:
    """
    Fetch a short-lived credential for the push channel.

    Best-effort: a 404 means the deployment has no token endpoint and relies on
    session cookies, any other failure is logged. Both return None so the
    channel connects without `?token=`.
    """
    try:
        response = await client.get("/websocket-token/")
    except httpx.HTTPError as e:
        api_logger.error("Error getting WebSocket token", error=e)
        return None

    if response.status_code == 404:
        api_logger.warning("WebSocket token endpoint not found - will try connecting without explicit token")
        return None
    if not response.is_success:
        api_logger.error("Error getting WebSocket token", status_code=response.status_code)
        return None

    try:
        token = response.json().get("token")
    except (ValueError, AttributeError):
        return None
    return token or None
