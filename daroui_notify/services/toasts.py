"""
Transient toast queue shown by the dashboards.

Toast ids come from a counter owned by each queue, so two sessions in one
process never share identifier state.
"""
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from daroui_notify.core.config import settings
from daroui_notify.models.enums import ToastType
from daroui_notify.realtime.events import EventHook


@dataclass
class Toast:
    id: str
    message: str
    type: ToastType = ToastType.info
    duration: float = 3.0
    created_at: float = field(default_factory=time.monotonic)

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.duration


class ToastQueue:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._ids = itertools.count(1)
        self._toasts: List[Toast] = []
        self.shown: EventHook = EventHook("toast_shown")
        self.removed: EventHook = EventHook("toast_removed")

    def push(
        self,
        message: str,
        type: ToastType = ToastType.info,
        duration: Optional[float] = None,
    ) -> Toast:
        toast = Toast(
            id=f"toast-{next(self._ids)}",
            message=message,
            type=type,
            duration=duration if duration is not None else settings.TOAST_DURATION_SECONDS,
            created_at=self._clock(),
        )
        self._toasts.append(toast)
        self.shown.emit(toast)
        return toast

    def success(self, message: str, duration: Optional[float] = None) -> Toast:
        return self.push(message, ToastType.success, duration)

    def error(self, message: str, duration: Optional[float] = None) -> Toast:
        return self.push(message, ToastType.error, duration)

    def dismiss(self, toast_id: str) -> bool:
        for toast in self._toasts:
            if toast.id == toast_id:
                self._toasts.remove(toast)
                self.removed.emit(toast)
                return True
        return False

    def active(self) -> List[Toast]:
        """Toasts still on screen; expired ones are pruned."""
        now = self._clock()
        for toast in [t for t in self._toasts if t.expired(now)]:
            self._toasts.remove(toast)
            self.removed.emit(toast)
        return list(self._toasts)

    def __len__(self) -> int:
        return len(self._toasts)
