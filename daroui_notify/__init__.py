"""
Daroui notification delivery.

Push channel, de-duplication, toast/sound policy and the session notification
store used by the admin, cashier and chef dashboards.
"""
from daroui_notify.models.enums import ConnectionState, NotificationType, Priority
from daroui_notify.models.notification import NotificationRecord
from daroui_notify.services.session import NotificationCenter

__all__ = [
    "ConnectionState",
    "NotificationCenter",
    "NotificationRecord",
    "NotificationType",
    "Priority",
]
