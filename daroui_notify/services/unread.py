import asyncio
from typing import Optional

from daroui_notify.core.config import settings
from daroui_notify.core.logging import store_logger
from daroui_notify.services.notifications import NotificationStore


class UnreadPoller:
    """Periodically re-reads the server's unread count.

    Guards against drift from missed push events, and is the only delivery
    signal left once the push channel has given up reconnecting.
    """

    def __init__(self, store: NotificationStore, interval: Optional[float] = None):
        self._store = store
        self.interval = interval if interval is not None else settings.UNREAD_REFRESH_SECONDS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._store.refresh_unread_count()
            except Exception as e:
                store_logger.error("Unread refresh failed", error=e)
