"""
Observer wiring between the delivery stages.

Each stage (dedup, store, sound, status indicators) subscribes to the hooks it
cares about; publishers never know who is listening.
"""
from typing import Callable, Generic, List, TypeVar

from daroui_notify.core.logging import StructuredLogger, get_logger

T = TypeVar("T")

logger = get_logger('daroui.events')


class EventHook(Generic[T]):
    """
    Ordered list of synchronous subscribers for one event.

    A subscriber that raises is logged and skipped; the remaining subscribers
    still run.
    """

    def __init__(self, name: str, log: StructuredLogger = logger):
        self.name = name
        self._log = log
        self._subscribers: List[Callable[..., None]] = []

    def subscribe(self, callback: Callable[..., None]) -> Callable[[], None]:
        """Register `callback`; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, *args) -> None:
        for callback in list(self._subscribers):
            try:
                callback(*args)
            except Exception as e:
                self._log.error(f"Subscriber for '{self.name}' failed", error=e)

    def __len__(self) -> int:
        return len(self._subscribers)


class ChannelEvents:
    """Events published by NotificationChannel."""

    def __init__(self):
        # (NotificationRecord)
        self.notification: EventHook = EventHook("notification")
        # ()
        self.connected: EventHook = EventHook("connected")
        # (close_code: int)
        self.disconnected: EventHook = EventHook("disconnected")
        # (ChannelError)
        self.error: EventHook = EventHook("error")
        # (attempt: int, delay: float)
        self.reconnect_scheduled: EventHook = EventHook("reconnect_scheduled")
        # ()
        self.gave_up: EventHook = EventHook("gave_up")
