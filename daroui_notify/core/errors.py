"""
Exception taxonomy for the notification client.

REST and transport failures are recoverable: the store and the channel catch
them, log them and degrade (empty list, polling) instead of propagating.
"""
from typing import Optional


class NotificationClientError(Exception):
    """Base class for every error raised inside daroui_notify."""


class ApiError(NotificationClientError):
    """A REST collaborator call failed (non-2xx response or network error)."""

    def __init__(self, path: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.path = path
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            message = f"{path}: request failed"
        else:
            message = f"{path}: HTTP {status_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ChannelError(NotificationClientError):
    """Push channel failure handed to `error` subscribers."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class AudioUnavailableError(NotificationClientError):
    """No audio backend could play the alert."""
