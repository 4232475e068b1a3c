"""
Notification push channel.

Owns at most one live WebSocket per authenticated session:
- connect() is re-entrancy guarded (Connecting/Open -> no-op)
- establishment is bounded by a connect timeout
- heartbeat pings while Open
- abnormal closes reconnect with capped exponential backoff, then give up
  and leave delivery to the periodic REST refresh
"""
import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from daroui_notify.constants.notification_types import (
    CLEAN_CLOSE_CODES,
    CLOSE_ABNORMAL,
    CLOSE_NORMAL,
    FRAME_ALL_NOTIFICATIONS_READ,
    FRAME_NOTIFICATION,
    FRAME_NOTIFICATION_READ,
    FRAME_PONG,
)
from daroui_notify.core.config import settings
from daroui_notify.core.errors import ChannelError
from daroui_notify.core.logging import ws_logger
from daroui_notify.models.enums import ConnectionState
from daroui_notify.models.notification import NotificationRecord
from daroui_notify.realtime.events import ChannelEvents
from daroui_notify.realtime.protocol import (
    build_ws_url,
    mark_all_read_frame,
    mark_read_frame,
    parse_frame,
    ping_frame,
)

TokenProvider = Callable[[], Awaitable[Optional[str]]]
HeadersProvider = Callable[[], Optional[Dict[str, str]]]
ConnectFactory = Callable[..., Awaitable[Any]]


def backoff_delay(attempt: int, base: float, max_delay: float) -> float:
    """Delay before reconnect number `attempt + 1`: min(base * 2^attempt, max_delay)."""
    return min(base * (2 ** attempt), max_delay)


class NotificationChannel:
    """Single persistent connection to `/ws/notifications/`."""

    def __init__(
        self,
        api_base: Optional[str] = None,
        *,
        enabled: bool = True,
        token_provider: Optional[TokenProvider] = None,
        headers_provider: Optional[HeadersProvider] = None,
        connect_factory: Optional[ConnectFactory] = None,
        path: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        reconnect_base: Optional[float] = None,
        reconnect_max: Optional[float] = None,
        max_reconnect_attempts: Optional[int] = None,
    ):
        self._api_base = api_base or settings.API_BASE_URL
        self._enabled = enabled
        self._token_provider = token_provider
        self._headers_provider = headers_provider
        self._connect_factory = connect_factory or websockets.connect
        self._path = path or settings.WS_PATH
        self._connect_timeout = connect_timeout if connect_timeout is not None else settings.WS_CONNECT_TIMEOUT_SECONDS
        self._heartbeat_interval = heartbeat_interval if heartbeat_interval is not None else settings.WS_HEARTBEAT_SECONDS
        self._reconnect_base = reconnect_base if reconnect_base is not None else settings.WS_RECONNECT_BASE_SECONDS
        self._reconnect_max = reconnect_max if reconnect_max is not None else settings.WS_RECONNECT_MAX_SECONDS
        self._max_attempts = (
            max_reconnect_attempts if max_reconnect_attempts is not None else settings.WS_MAX_RECONNECT_ATTEMPTS
        )

        self.events = ChannelEvents()
        self.reconnect_attempt = 0

        self._state = ConnectionState.disconnected
        self._ws: Any = None
        self._gave_up = False
        # Bumped by every connect()/disconnect() so a stale attempt can tell it was superseded
        self._attempt_id = 0
        self._reader_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.open

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def gave_up(self) -> bool:
        """True once reconnects are exhausted; polling is the only delivery path."""
        return self._gave_up

    def enable(self) -> None:
        """Re-arm the channel (e.g. after login); clears a previous give-up."""
        self._enabled = True
        self._gave_up = False
        self.reconnect_attempt = 0

    async def disable(self) -> None:
        self._enabled = False
        await self.disconnect()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        if not self._enabled:
            return
        if self._state is not ConnectionState.disconnected:
            # Connecting, Open or Closing: another caller owns the socket
            return

        self._state = ConnectionState.connecting
        self._attempt_id += 1
        attempt_id = self._attempt_id

        token = await self._fetch_token()
        if not self._is_current(attempt_id):
            return

        url = build_ws_url(self._api_base, token, self._path)
        ws_logger.debug("Opening notification channel", attempt=self.reconnect_attempt, with_token=bool(token))

        try:
            ws = await asyncio.wait_for(self._open(url), timeout=self._connect_timeout)
        except asyncio.TimeoutError:
            if self._is_current(attempt_id):
                ws_logger.warning(f"WebSocket connection timeout after {self._connect_timeout}s")
                self._fail(ChannelError("connection timeout", code=CLOSE_ABNORMAL))
            return
        except (OSError, WebSocketException) as e:
            if self._is_current(attempt_id):
                ws_logger.warning("WebSocket connection failed - notifications will work via API polling", error=e)
                self._fail(ChannelError(f"connection failed: {e}", code=CLOSE_ABNORMAL))
            return

        if not self._is_current(attempt_id):
            # disconnect() ran while the handshake was in flight
            await self._close_quietly(ws, CLOSE_NORMAL)
            return

        self._on_open(ws)

    async def disconnect(self) -> None:
        """Close with a normal-closure code and cancel every timer. Idempotent."""
        self._attempt_id += 1
        self.reconnect_attempt = 0
        self._cancel_task(self._reconnect_task)
        self._reconnect_task = None
        self._stop_heartbeat()

        was_open = self._state is ConnectionState.open
        ws = self._ws
        self._ws = None
        if was_open:
            self._state = ConnectionState.closing

        self._cancel_task(self._reader_task)
        self._reader_task = None

        if ws is not None:
            await self._close_quietly(ws, CLOSE_NORMAL)

        self._state = ConnectionState.disconnected
        if was_open:
            ws_logger.info("WebSocket disconnected", code=CLOSE_NORMAL)
            self.events.disconnected.emit(CLOSE_NORMAL)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send(self, message: Dict[str, Any]) -> bool:
        """Fire-and-forget; returns False without queueing when not Open."""
        return await self._send_raw(json.dumps(message))

    async def ping(self) -> bool:
        return await self._send_raw(ping_frame())

    async def mark_read(self, notification_id: int) -> bool:
        return await self._send_raw(mark_read_frame(notification_id))

    async def mark_all_read(self) -> bool:
        return await self._send_raw(mark_all_read_frame())

    async def _send_raw(self, data: str) -> bool:
        ws = self._ws
        if self._state is not ConnectionState.open or ws is None:
            return False
        try:
            await ws.send(data)
            return True
        except (ConnectionClosed, OSError) as e:
            # The reader sees the close and drives recovery
            ws_logger.debug("Send on closing channel dropped", error=e)
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_current(self, attempt_id: int) -> bool:
        return attempt_id == self._attempt_id and self._state is ConnectionState.connecting

    async def _fetch_token(self) -> Optional[str]:
        if self._token_provider is None:
            return None
        try:
            return await self._token_provider()
        except Exception as e:
            # Session-cookie auth still works without a token
            ws_logger.warning("Channel credential unavailable, connecting without token", error=e)
            return None

    async def _open(self, url: str) -> Any:
        kwargs: Dict[str, Any] = {"open_timeout": None, "ping_interval": None}
        headers = self._headers_provider() if self._headers_provider else None
        if headers:
            kwargs["additional_headers"] = headers
        return await self._connect_factory(url, **kwargs)

    def _on_open(self, ws: Any) -> None:
        self._ws = ws
        self._state = ConnectionState.open
        self.reconnect_attempt = 0
        self._gave_up = False
        ws_logger.info("WebSocket connected")
        self.events.connected.emit()

        self._heartbeat_task = asyncio.create_task(self._heartbeat(ws))
        self._reader_task = asyncio.create_task(self._read_loop(ws))

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                self._dispatch(raw)
        except ConnectionClosed:
            pass
        except (OSError, WebSocketException) as e:
            self.events.error.emit(ChannelError(f"transport error: {e}"))

        if self._ws is ws:
            code = getattr(ws, "close_code", None) or CLOSE_ABNORMAL
            self._handle_close(code, getattr(ws, "close_reason", "") or "")

    def _dispatch(self, raw: Any) -> None:
        frame = parse_frame(raw)
        if frame is None:
            ws_logger.debug("Dropping unparsable frame")
            return

        if frame.type == FRAME_NOTIFICATION:
            if not frame.data:
                ws_logger.debug("Dropping notification frame without data")
                return
            try:
                record = NotificationRecord.model_validate(frame.data)
            except ValidationError as e:
                ws_logger.warning("Dropping malformed notification frame", error=e)
                return
            self.events.notification.emit(record)
        elif frame.type == FRAME_PONG:
            pass
        elif frame.type in (FRAME_NOTIFICATION_READ, FRAME_ALL_NOTIFICATIONS_READ):
            # Echo of a mutation the store already applied
            ws_logger.debug(f"Server confirmed {frame.type}")
        else:
            ws_logger.debug(f"Ignoring unknown frame type '{frame.type}'")

    async def _heartbeat(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            if self._ws is ws and self._state is ConnectionState.open:
                await self._send_raw(ping_frame())

    def _fail(self, error: ChannelError) -> None:
        self.events.error.emit(error)
        self._handle_close(error.code or CLOSE_ABNORMAL, str(error))

    def _handle_close(self, code: int, reason: str = "") -> None:
        """Single funnel for timeouts, errors and closes; runs once per disconnection."""
        if self._state is ConnectionState.disconnected:
            return

        was_open = self._state is ConnectionState.open
        self._stop_heartbeat()
        self._ws = None
        self._reader_task = None
        self._state = ConnectionState.disconnected

        if was_open:
            ws_logger.info("WebSocket disconnected", code=code, reason=reason)
        self.events.disconnected.emit(code)

        if code in CLEAN_CLOSE_CODES or not self._enabled:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return

        if self.reconnect_attempt >= self._max_attempts:
            self._gave_up = True
            ws_logger.warning("WebSocket: Max reconnection attempts reached. Notifications will work via polling.")
            self.events.gave_up.emit()
            return

        delay = backoff_delay(self.reconnect_attempt, self._reconnect_base, self._reconnect_max)
        self.reconnect_attempt += 1
        ws_logger.info("Scheduling reconnect", attempt=self.reconnect_attempt, delay=delay)
        self.events.reconnect_scheduled.emit(self.reconnect_attempt, delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        await self.connect()

    def _stop_heartbeat(self) -> None:
        self._cancel_task(self._heartbeat_task)
        self._heartbeat_task = None

    @staticmethod
    def _cancel_task(task: Optional[asyncio.Task]) -> None:
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    @staticmethod
    async def _close_quietly(ws: Any, code: int) -> None:
        try:
            await ws.close(code=code)
        except (ConnectionClosed, OSError) as e:
            ws_logger.debug("Close on dead socket ignored", error=e)
