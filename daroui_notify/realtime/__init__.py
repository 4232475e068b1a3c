"""
Push channel for kitchen/order/inventory notifications.

Frames (server -> client):
- notification - A new NotificationRecord in `data`
- pong - Heartbeat acknowledgement
- notification_read - Server echo of a single read
- all_notifications_read - Server echo of a bulk read

Frames (client -> server):
- ping
- mark_read {notification_id}
- mark_all_read
"""
