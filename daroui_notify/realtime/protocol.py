"""
Push-channel wire format: endpoint derivation and frame parse/encode.
"""
import json
from typing import Any, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, ValidationError

from daroui_notify.constants.notification_types import (
    FRAME_MARK_ALL_READ,
    FRAME_MARK_READ,
    FRAME_PING,
)
from daroui_notify.core.config import settings


class ServerFrame(BaseModel):
    """Tagged envelope `{type, data?}` sent by the server."""
    model_config = ConfigDict(extra="ignore")

    type: str
    data: Optional[Dict[str, Any]] = None


def build_ws_url(api_base: str, token: Optional[str] = None, path: Optional[str] = None) -> str:
    """
    Derive the WebSocket endpoint from the REST base URL.

    http -> ws, https -> wss; `?token=` is appended only when a credential is
    available (otherwise the server falls back to the session cookie).
    """
    base = api_base.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]

    path = path or settings.WS_PATH
    url = f"{base}/{path.lstrip('/')}"
    if token:
        url = f"{url}?token={quote(token, safe='')}"
    return url


def parse_frame(raw: Any) -> Optional[ServerFrame]:
    """Decode one inbound frame; None for anything unparsable."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    try:
        return ServerFrame.model_validate(payload)
    except ValidationError:
        return None


def encode_frame(frame_type: str, **fields: Any) -> str:
    return json.dumps({"type": frame_type, **fields})


def ping_frame() -> str:
    return encode_frame(FRAME_PING)


def mark_read_frame(notification_id: int) -> str:
    return encode_frame(FRAME_MARK_READ, notification_id=notification_id)


def mark_all_read_frame() -> str:
    return encode_frame(FRAME_MARK_ALL_READ)
