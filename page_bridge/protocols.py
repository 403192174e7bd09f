"""Protocol definitions for the host collaborators contexts depend on.

Contexts receive these by injection. The default adapters below are the ones
the runtime wires when nothing else is supplied.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Literal, Protocol, TypeAlias

__all__ = [
    'Clipboard',
    'DocumentParser',
    'MemoryClipboard',
    'Notification',
    'NotificationSink',
    'NotificationType',
    'RecordingNotificationSink',
    'ScreenshotCapture',
]

logger = logging.getLogger(__name__)

NotificationType: TypeAlias = Literal['success', 'error', 'warning', 'info']


class ScreenshotCapture(Protocol):
    """Capture of the visible area of a tab."""

    async def capture(self, tab_id: int) -> str:
        """Capture tab ``tab_id``.

        Returns:
            ``data:image/png;base64,...`` URL of the capture.
        """
        ...


class DocumentParser(Protocol):
    """Turns an uploaded document into plain text."""

    def parse(self, data: bytes) -> str: ...


@dataclasses.dataclass(frozen=True, slots=True)
class Notification:
    message: str
    type: NotificationType
    timestamp: float


class NotificationSink(Protocol):
    """Where user-facing notifications are rendered."""

    def show(self, message: str, type: NotificationType = 'info') -> None: ...


class RecordingNotificationSink:
    """Logs notifications and keeps them for later inspection."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def show(self, message: str, type: NotificationType = 'info') -> None:
        self.notifications.append(Notification(message=message, type=type, timestamp=time.time()))
        level = logging.WARNING if type == 'error' else logging.INFO
        logger.log(level, f'[{type}] {message}')

    @property
    def last(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None


class Clipboard(Protocol):
    async def write_text(self, text: str) -> None: ...

    async def read_text(self) -> str: ...


class MemoryClipboard:
    """Process-local clipboard."""

    def __init__(self) -> None:
        self._text = ''

    async def write_text(self, text: str) -> None:
        self._text = text

    async def read_text(self) -> str:
        return self._text
