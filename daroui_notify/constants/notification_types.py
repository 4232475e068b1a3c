"""
Notification Delivery Constants
Single source of truth for priority policy and push-channel frame types.
"""
from daroui_notify.models.enums import Priority

# Priorities that play the audible alert
SOUND_PRIORITIES = {
    Priority.critical,
}

# Priorities that show toast notifications (interrupting)
TOAST_PRIORITIES = {
    Priority.critical,
    Priority.medium,
}

# Priorities that update silently (store + unread counter only, digest view)
SILENT_PRIORITIES = {
    Priority.low,
}

# Server -> client frame types
FRAME_NOTIFICATION = "notification"
FRAME_PONG = "pong"
FRAME_NOTIFICATION_READ = "notification_read"
FRAME_ALL_NOTIFICATIONS_READ = "all_notifications_read"

# Client -> server frame types
FRAME_PING = "ping"
FRAME_MARK_READ = "mark_read"
FRAME_MARK_ALL_READ = "mark_all_read"

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_ABNORMAL = 1006

# Clean/intentional shutdowns; anything else triggers backoff
CLEAN_CLOSE_CODES = {CLOSE_NORMAL}


def should_play_sound(priority: Priority) -> bool:
    return priority in SOUND_PRIORITIES


def should_toast(priority: Priority) -> bool:
    return priority in TOAST_PRIORITIES
