"""
NotificationCenter: owner of one session's delivery pipeline.

Wiring (leaves first):
    NotificationChannel --notification--> DeliveryPipeline --> NotificationStore
                                                  |--> ToastQueue
                                                  '--> SoundTrigger
    UnreadPoller --> NotificationStore.refresh_unread_count (every 30s)

Channel enablement is injected (`enabled`) instead of read from a global auth
flag; call enable()/disable() on login/logout.
"""
from typing import Dict, Optional, Tuple

import httpx

from daroui_notify.api.client import cookie_header, create_http_client
from daroui_notify.api.notifications import NotificationsApi
from daroui_notify.api.websocket_token import get_websocket_token
from daroui_notify.core.logging import generate_session_id, set_session_id, store_logger
from daroui_notify.models.enums import NotificationFilter
from daroui_notify.models.notification import NotificationRecord
from daroui_notify.realtime.sound import SoundTrigger
from daroui_notify.realtime.transport import ConnectFactory, NotificationChannel
from daroui_notify.services.delivery import DeliveryPipeline
from daroui_notify.services.notifications import NotificationStore
from daroui_notify.services.toasts import ToastQueue
from daroui_notify.services.unread import UnreadPoller


class NotificationCenter:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        enabled: bool = True,
        api_base: Optional[str] = None,
        connect_factory: Optional[ConnectFactory] = None,
        channel: Optional[NotificationChannel] = None,
        sound: Optional[SoundTrigger] = None,
        toasts: Optional[ToastQueue] = None,
        history_limit: Optional[int] = None,
        refresh_interval: Optional[float] = None,
    ):
        self.session_id = generate_session_id()
        self._owns_client = http_client is None
        self.http = http_client or create_http_client(api_base)

        self.api = NotificationsApi(self.http)
        self.store = NotificationStore(self.api, history_limit)
        self.toasts = toasts or ToastQueue()
        self.sound = sound or SoundTrigger()
        self.pipeline = DeliveryPipeline(self.store, self.toasts, self.sound)
        self.poller = UnreadPoller(self.store, refresh_interval)

        self.channel = channel or NotificationChannel(
            api_base or str(self.http.base_url),
            enabled=enabled,
            token_provider=self._fetch_token,
            headers_provider=self._channel_headers,
            connect_factory=connect_factory,
        )
        self.channel.events.notification.subscribe(self.pipeline)
        self.channel.events.gave_up.subscribe(self._on_channel_gave_up)

    # ------------------------------------------------------------------
    # Consumer contract
    # ------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self.channel.is_connected

    @property
    def polling_only(self) -> bool:
        """True when the push channel gave up and the poller is the only path."""
        return self.channel.gave_up

    @property
    def loading(self) -> bool:
        return self.store.loading

    @property
    def notifications(self) -> Tuple[NotificationRecord, ...]:
        return self.store.notifications

    @property
    def unread_count(self) -> int:
        return self.store.unread_count

    def filtered(self, kind: NotificationFilter = NotificationFilter.all):
        return self.store.filtered(kind)

    async def mark_read(self, notification_id: int) -> None:
        await self.store.mark_read(notification_id)

    async def mark_all_read(self) -> None:
        await self.store.mark_all_read()

    async def remove(self, notification_id: int) -> bool:
        return await self.store.remove(notification_id)

    async def refresh(self) -> None:
        await self.store.refresh()

    async def refresh_unread_count(self) -> None:
        await self.store.refresh_unread_count()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        set_session_id(self.session_id)
        self.sound.preload()
        await self.store.load_initial()
        self.poller.start()
        await self.channel.connect()

    async def enable(self) -> None:
        """Login: re-arm the channel and reload history."""
        self.channel.enable()
        await self.start()

    async def disable(self) -> None:
        """Logout: drop the channel and forget the list (surfaced ids are kept)."""
        await self.channel.disable()
        await self.poller.stop()
        await self.sound.drain()
        self.store.clear()

    async def stop(self) -> None:
        await self.channel.disconnect()
        await self.poller.stop()
        await self.sound.drain()
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self) -> "NotificationCenter":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------

    async def _fetch_token(self) -> Optional[str]:
        return await get_websocket_token(self.http)

    def _channel_headers(self) -> Optional[Dict[str, str]]:
        cookie = cookie_header(self.http)
        return {"Cookie": cookie} if cookie else None

    def _on_channel_gave_up(self) -> None:
        store_logger.warning(
            "Push channel down, relying on unread polling",
            interval=self.poller.interval,
        )
