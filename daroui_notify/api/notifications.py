"""
REST collaborator for notification history and read-state.

Endpoints:
- GET    /notifications/?limit=N[&unread_only=true][&all=true]
- GET    /notifications/unread-count/
- POST   /notifications/mark-read/      {notification_id}
- POST   /notifications/mark-all-read/
- DELETE /notifications/{id}/
"""
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from daroui_notify.core.errors import ApiError
from daroui_notify.core.logging import api_logger, log_operation
from daroui_notify.models.notification import NotificationRecord


class NotificationsApi:
    """Thin async wrapper; raises ApiError, never returns error dicts."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(path, detail=str(e) or type(e).__name__) from e
        if not response.is_success:
            raise ApiError(path, status_code=response.status_code, detail=response.text[:200] or None)
        return response

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(path, status_code=response.status_code, detail="invalid JSON body") from e

    @log_operation("list_notifications", api_logger)
    async def list_notifications(
        self,
        limit: Optional[int] = None,
        unread_only: bool = False,
        all: bool = False,
    ) -> List[NotificationRecord]:
        params = {}
        if unread_only:
            params["unread_only"] = "true"
        if limit:
            params["limit"] = str(limit)
        if all:
            params["all"] = "true"

        path = "/notifications/"
        payload = self._json(await self._request("GET", path, params=params), path)
        if not isinstance(payload, list):
            raise ApiError(path, detail="expected a list of notifications")

        records = []
        for item in payload:
            try:
                records.append(NotificationRecord.model_validate(item))
            except ValidationError as e:
                api_logger.warning("Skipping malformed notification in history", error=e)
        return records

    @log_operation("get_unread_count", api_logger)
    async def get_unread_count(self) -> int:
        path = "/notifications/unread-count/"
        payload = self._json(await self._request("GET", path), path)
        try:
            return int(payload["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise ApiError(path, detail="missing count") from e

    @log_operation("mark_read", api_logger)
    async def mark_read(self, notification_id: int) -> Optional[NotificationRecord]:
        path = "/notifications/mark-read/"
        response = await self._request("POST", path, json={"notification_id": notification_id})
        if not response.content:
            return None
        try:
            return NotificationRecord.model_validate(self._json(response, path))
        except ValidationError:
            return None

    @log_operation("mark_all_read", api_logger)
    async def mark_all_read(self) -> None:
        await self._request("POST", "/notifications/mark-all-read/", json={})

    @log_operation("delete_notification", api_logger)
    async def delete(self, notification_id: int) -> None:
        await self._request("DELETE", f"/notifications/{notification_id}/")
