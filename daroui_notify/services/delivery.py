"""
Delivery de-duplication and interruption policy.

Turns each pushed NotificationRecord into at most one store insert and at
most one toast/sound, whatever the transport redelivers.

Priority tiers:
- critical: store + toast + sound
- medium: store + toast
- low: store only (digest view)
"""
import enum
from typing import Iterable, Optional, Set

from daroui_notify.constants.notification_types import should_play_sound, should_toast
from daroui_notify.core.config import settings
from daroui_notify.core.logging import delivery_logger
from daroui_notify.models.enums import ToastType
from daroui_notify.models.notification import NotificationRecord
from daroui_notify.realtime.sound import SoundTrigger
from daroui_notify.services.notifications import NotificationStore
from daroui_notify.services.toasts import ToastQueue


class DeliveryOutcome(str, enum.Enum):
    duplicate = "duplicate"      # already in the store, dropped
    restored = "restored"        # stored again, toast already surfaced earlier
    delivered = "delivered"      # first sighting


class DeliveryPipeline:
    def __init__(
        self,
        store: NotificationStore,
        toasts: ToastQueue,
        sound: Optional[SoundTrigger] = None,
        toast_duration: Optional[float] = None,
    ):
        self._store = store
        self._toasts = toasts
        self._sound = sound
        self._toast_duration = toast_duration if toast_duration is not None else settings.TOAST_DURATION_SECONDS
        self._surfaced: Set[int] = set()

        # Historical notifications must never toast on load
        store.loaded.subscribe(self.seed)

    @property
    def surfaced_ids(self) -> Set[int]:
        return set(self._surfaced)

    def seed(self, ids: Iterable[int]) -> None:
        self._surfaced.update(ids)

    def handle(self, record: NotificationRecord) -> DeliveryOutcome:
        if self._store.contains(record.id):
            delivery_logger.warning("Duplicate notification received, ignoring", notification_id=record.id)
            return DeliveryOutcome.duplicate

        if record.id in self._surfaced:
            delivery_logger.debug("Notification already surfaced, storing without toast", notification_id=record.id)
            self._store.insert(record)
            return DeliveryOutcome.restored

        self._surfaced.add(record.id)
        self._store.insert(record)
        delivery_logger.debug(
            "Notification received",
            notification_id=record.id,
            priority=record.priority.value,
        )

        if should_play_sound(record.priority) and self._sound is not None:
            self._sound.trigger(record.priority)

        if should_toast(record.priority):
            self._toasts.push(
                f"{record.title}: {record.message}",
                ToastType.success,
                self._toast_duration,
            )

        return DeliveryOutcome.delivered

    def __call__(self, record: NotificationRecord) -> None:
        self.handle(record)
