from datetime import datetime, timezone
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from daroui_notify.models.enums import NotificationType, Priority


def _to_aware(dt: datetime) -> datetime:
    """Return a timezone-aware datetime; naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class RelatedEntity(NamedTuple):
    """Weak reference to the order/ingredient a notification is about."""
    kind: str
    id: int


class NotificationRecord(BaseModel):
    """
    A notification as served by `GET /notifications/` and pushed on the
    channel. Records are immutable; read-state changes go through the store,
    which swaps in an updated copy.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int
    type: NotificationType = Field(alias="notification_type")
    priority: Priority
    title: str
    message: str = ""
    is_read: bool = False
    related_order: Optional[int] = None
    related_offline_order: Optional[int] = None
    related_ingredient: Optional[int] = None
    created_at: datetime

    @property
    def related_entity(self) -> Optional[RelatedEntity]:
        if self.related_order is not None:
            return RelatedEntity("order", self.related_order)
        if self.related_offline_order is not None:
            return RelatedEntity("offline_order", self.related_offline_order)
        if self.related_ingredient is not None:
            return RelatedEntity("ingredient", self.related_ingredient)
        return None

    def as_read(self) -> "NotificationRecord":
        if self.is_read:
            return self
        return self.model_copy(update={"is_read": True})

    def time_ago(self, now: Optional[datetime] = None) -> str:
        """Relative age for display; recomputed on every call, never stored."""
        now = _to_aware(now) if now else datetime.now(timezone.utc)
        seconds = int((now - _to_aware(self.created_at)).total_seconds())
        if seconds < 60:
            return "just now"
        for size, unit in ((86400, "day"), (3600, "hour"), (60, "minute")):
            if seconds >= size:
                value = seconds // size
                return f"{value} {unit}{'s' if value != 1 else ''} ago"
        return "just now"
