#!/usr/bin/env python
"""Notification listener: connects to the push channel and prints what arrives.
Usage: python scripts/listen_notifications.py [api_base_url] [session_cookie]
"""
import asyncio
import sys

from daroui_notify.api.client import create_http_client
from daroui_notify.core.logging import configure_logging
from daroui_notify.services.session import NotificationCenter


async def listen(api_base: str, session_cookie: str | None):
    cookies = {"sessionid": session_cookie} if session_cookie else None
    http = create_http_client(api_base, cookies=cookies)

    center = NotificationCenter(http)
    center.channel.events.connected.subscribe(lambda: print("CONNECTED"))
    center.channel.events.disconnected.subscribe(lambda code: print(f"DISCONNECTED code={code}"))
    center.channel.events.reconnect_scheduled.subscribe(
        lambda attempt, delay: print(f"RECONNECT #{attempt} in {delay:.1f}s")
    )
    center.channel.events.gave_up.subscribe(lambda: print("GAVE UP - polling unread count only"))
    center.channel.events.notification.subscribe(
        lambda n: print(f"[{n.priority.value}] #{n.id} {n.title}: {n.message}")
    )
    center.toasts.shown.subscribe(lambda toast: print(f"TOAST {toast.message}"))

    try:
        async with center:
            print(f"Loaded {len(center.notifications)} notifications, {center.unread_count} unread")
            while True:
                await asyncio.sleep(60)
                print(f"unread={center.unread_count} connected={center.is_connected}")
    finally:
        await http.aclose()


async def main():
    api_base = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000/api"
    session_cookie = sys.argv[2] if len(sys.argv) > 2 else None
    configure_logging()
    await listen(api_base, session_cookie)


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Done")
