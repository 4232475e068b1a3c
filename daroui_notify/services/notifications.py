"""
Session notification store.

Single source of truth for the notification list (most-recent-first) and the
unread badge count. Consumers read `notifications` / `unread_count` and
subscribe to `changed`; all mutation goes through load_initial, mark_read,
mark_all_read, remove and refresh_unread_count.
"""
from typing import Dict, List, Optional, Set, Tuple

from daroui_notify.api.notifications import NotificationsApi
from daroui_notify.core.config import settings
from daroui_notify.core.errors import ApiError
from daroui_notify.core.logging import store_logger
from daroui_notify.models.enums import NotificationFilter, Priority, StoreState
from daroui_notify.models.notification import NotificationRecord
from daroui_notify.realtime.events import EventHook


class NotificationStore:
    """
    State machine: uninitialized -> loading -> ready, re-entering loading
    only on an explicit load_initial() (login, manual refresh).
    """

    def __init__(self, api: NotificationsApi, history_limit: Optional[int] = None):
        self._api = api
        self._history_limit = history_limit or settings.NOTIFICATION_HISTORY_LIMIT
        self._records: List[NotificationRecord] = []
        self._unread_count = 0
        self._state = StoreState.uninitialized
        # Ids read during this session; a reload or redelivery never un-reads them
        self._read_ids: Set[int] = set()
        # Pushes that land while load_initial is awaiting the server
        self._pushed_while_loading: List[NotificationRecord] = []
        self._loads_in_flight = 0

        # (ids: tuple[int, ...]) after every load_initial
        self.loaded: EventHook = EventHook("store_loaded", store_logger)
        # () after any change to the list or the count
        self.changed: EventHook = EventHook("store_changed", store_logger)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is not StoreState.ready

    @property
    def notifications(self) -> Tuple[NotificationRecord, ...]:
        if self._state is not StoreState.ready:
            return ()
        return tuple(self._records)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def critical_unread_count(self) -> int:
        return sum(1 for n in self._records if n.priority is Priority.critical and not n.is_read)

    def contains(self, notification_id: int) -> bool:
        return self._index_of(notification_id) is not None

    def get(self, notification_id: int) -> Optional[NotificationRecord]:
        index = self._index_of(notification_id)
        return self._records[index] if index is not None else None

    def filtered(self, kind: NotificationFilter = NotificationFilter.all) -> List[NotificationRecord]:
        """Filter used by the notifications page tabs."""
        records = self.notifications
        if kind is NotificationFilter.unread:
            return [n for n in records if not n.is_read]
        if kind in (NotificationFilter.critical, NotificationFilter.medium, NotificationFilter.low):
            priority = Priority(kind.value)
            return [n for n in records if n.priority is priority]
        return list(records)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def load_initial(self) -> None:
        """
        Replace state with the latest history page and the server's unread count.
        Fails soft: on REST errors the store ends up empty but ready.

        Records pushed while the page is in flight are kept ahead of it.
        """
        self._state = StoreState.loading
        self._loads_in_flight += 1
        self.changed.emit()

        try:
            try:
                records = await self._api.list_notifications(limit=self._history_limit)
            except ApiError as e:
                store_logger.warning("Error fetching notifications", error=e)
                records = []

            try:
                unread = await self._api.get_unread_count()
            except ApiError as e:
                store_logger.warning("Error fetching unread count", error=e)
                unread = sum(1 for n in records if not n.is_read)
        finally:
            self._loads_in_flight -= 1

        fetched_ids = {n.id for n in records}
        pushed = [n for n in self._pushed_while_loading if n.id not in fetched_ids]
        if self._loads_in_flight == 0:
            self._pushed_while_loading = []

        self._records = [self._keep_read(n) for n in self._unique(pushed + records)]
        self._unread_count = max(0, unread) + sum(1 for n in pushed if not n.is_read)
        if self._loads_in_flight == 0:
            self._state = StoreState.ready
        store_logger.info("Notifications loaded", count=len(self._records), unread=self._unread_count)

        self.loaded.emit(tuple(n.id for n in self._records))
        self.changed.emit()

    async def refresh(self) -> None:
        await self.load_initial()

    def insert(self, record: NotificationRecord) -> bool:
        """
        Prepend a pushed record. Returns False (and changes nothing) when the id
        is already held. Called by the delivery pipeline only.
        """
        if self.contains(record.id):
            return False
        record = self._keep_read(record)
        self._records.insert(0, record)
        if self._state is StoreState.loading:
            self._pushed_while_loading.append(record)
        if not record.is_read:
            self._unread_count += 1
        if self._state is StoreState.uninitialized:
            self._state = StoreState.ready
        self.changed.emit()
        return True

    async def mark_read(self, notification_id: int) -> None:
        index = self._index_of(notification_id)
        if index is None:
            store_logger.debug("mark_read for unknown notification", notification_id=notification_id)
            return
        record = self._records[index]
        if record.is_read:
            return

        # Optimistic: consumers see the read state before the server answers
        self._read_ids.add(notification_id)
        self._records[index] = record.as_read()
        self._unread_count = max(0, self._unread_count - 1)
        self.changed.emit()

        try:
            await self._api.mark_read(notification_id)
        except ApiError as e:
            store_logger.warning("Error marking notification as read", error=e, notification_id=notification_id)
            await self.refresh_unread_count()

    async def mark_all_read(self) -> None:
        self._read_ids.update(n.id for n in self._records)
        self._records = [n.as_read() for n in self._records]
        self._unread_count = 0
        self.changed.emit()

        try:
            await self._api.mark_all_read()
        except ApiError as e:
            store_logger.warning("Error marking all notifications as read", error=e)
            await self.refresh_unread_count()

    async def remove(self, notification_id: int) -> bool:
        try:
            await self._api.delete(notification_id)
        except ApiError as e:
            store_logger.warning("Error deleting notification", error=e, notification_id=notification_id)
            return False

        index = self._index_of(notification_id)
        if index is None:
            return True
        self._pushed_while_loading = [n for n in self._pushed_while_loading if n.id != notification_id]
        record = self._records.pop(index)
        if not record.is_read:
            self._unread_count = max(0, self._unread_count - 1)
        self.changed.emit()
        return True

    async def refresh_unread_count(self) -> None:
        """Re-read the authoritative count; last write wins over optimistic updates."""
        try:
            count = await self._api.get_unread_count()
        except ApiError as e:
            store_logger.warning("Error fetching unread count", error=e)
            return
        if count != self._unread_count:
            store_logger.debug("Unread count reconciled", local=self._unread_count, server=count)
        self._unread_count = max(0, count)
        self.changed.emit()

    def clear(self) -> None:
        """Back to uninitialized (logout)."""
        self._records = []
        self._unread_count = 0
        self._read_ids.clear()
        self._pushed_while_loading = []
        self._state = StoreState.uninitialized
        self.changed.emit()

    # ------------------------------------------------------------------

    def _keep_read(self, record: NotificationRecord) -> NotificationRecord:
        if record.id in self._read_ids:
            return record.as_read()
        if record.is_read:
            self._read_ids.add(record.id)
        return record

    def _index_of(self, notification_id: int) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == notification_id:
                return index
        return None

    @staticmethod
    def _unique(records: List[NotificationRecord]) -> List[NotificationRecord]:
        seen: Dict[int, bool] = {}
        unique = []
        for record in records:
            if record.id in seen:
                continue
            seen[record.id] = True
            unique.append(record)
        return unique
