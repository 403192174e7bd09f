"""Popup surface: quick actions, resume parsing and copy-then-fill.

Short-lived. Talks only to the coordinator; anything aimed at a page goes
through ``sendToTab``. Failures never escape: they become the status line.
"""

from __future__ import annotations

__all__ = [
    'QUICK_ACTIONS',
    'RESUME_FIELDS',
    'PopupContext',
    'StatusType',
]

import logging
import typing

from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context
from page_bridge.errors import BridgeError
from page_bridge.models import FilledField
from page_bridge.pdf_text import PyMuPdfParser
from page_bridge.protocols import Clipboard, DocumentParser, MemoryClipboard, NotificationSink, RecordingNotificationSink
from page_bridge.resume import ResumeInfo, extract_resume_info
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

StatusType: typing.TypeAlias = typing.Literal['info', 'success', 'error']

# Popup button -> mediator action
QUICK_ACTIONS: dict[str, str] = {
    'highlight': 'pluginAction1',
    'extract': 'extractData',
    'screenshot': 'screenshot',
    'analyze': 'analyze',
}

# Resume field -> display label, in display order
RESUME_FIELDS: dict[str, str] = {
    'name': 'Name',
    'age': 'Age',
    'id_card': 'National ID',
    'birth_date': 'Date of birth',
    'gender': 'Gender',
    'nationality': 'Ethnicity',
    'city': 'City',
    'phone': 'Phone',
    'email': 'Email',
    'education': 'Education',
    'experience': 'Experience',
}

_TITLE_PREVIEW = 30


class PopupContext(Context):
    kind = 'popup'

    def __init__(
        self,
        address: str,
        fabric: Fabric,
        *,
        clipboard: Clipboard | None = None,
        parser: DocumentParser | None = None,
        notifications: NotificationSink | None = None,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(address, fabric, request_timeout=request_timeout)
        self.clipboard = clipboard or MemoryClipboard()
        self.parser = parser or PyMuPdfParser()
        self.notifications = notifications or RecordingNotificationSink()
        self.status = ''
        self.status_type: StatusType = 'info'
        self.resume: ResumeInfo | None = None

    async def start(self) -> None:
        await super().start()
        self.show_status('Ready', 'success')
        try:
            tab = await self.router.call(COORDINATOR_ADDRESS, 'getActiveTab')
        except BridgeError as e:
            self.show_status(f'Error: {e}', 'error')
            return
        if tab is None:
            self.show_status('No active tab', 'error')
        else:
            self.show_status(f'Current page: {tab["title"][:_TITLE_PREVIEW]}', 'info')

    def show_status(self, message: str, type: StatusType = 'info') -> None:
        self.status = message
        self.status_type = type
        logger.debug(f'[{self.address}] status ({type}): {message}')

    async def quick_action(self, name: str) -> typing.Any:
        """Run a popup button's action in the active tab. Returns the tab's result, or None on failure."""
        action = QUICK_ACTIONS.get(name, name)
        self.show_status(f'Running {name}...', 'info')
        try:
            result = await self._send_to_active_tab(action, {})
        except BridgeError as e:
            self.show_status(f'Error: {e}', 'error')
            return None
        self.show_status(f'{name} succeeded', 'success')
        return result

    async def open_settings(self) -> bool:
        try:
            await self.router.call(COORDINATOR_ADDRESS, 'openOptions')
        except BridgeError as e:
            self.show_status(f'Could not open settings: {e}', 'error')
            return False
        self.show_status('Settings opened', 'success')
        return True

    def test_notification(self) -> None:
        self.notifications.show('Notifications are working', 'info')
        self.show_status('Notification sent', 'success')

    def load_resume(self, data: bytes, content_type: str = 'application/pdf') -> ResumeInfo | None:
        """Parse an uploaded resume PDF and keep the extracted fields."""
        if content_type != 'application/pdf':
            self.show_status('Please choose a PDF file', 'error')
            return None

        self.show_status('Parsing PDF...', 'info')
        try:
            text = self.parser.parse(data)
        except Exception as e:
            logger.warning(f'PDF parsing failed: {type(e).__name__}: {e}')
            self.show_status(f'PDF parsing failed: {e}', 'error')
            return None

        self.resume = extract_resume_info(text)
        self.show_status('PDF parsed', 'success')
        return self.resume

    def resume_fields(self) -> list[tuple[str, str, str]]:
        """``(key, label, value)`` for every field found, in display order."""
        if self.resume is None:
            return []
        values = dict(self.resume)
        return [(key, label, values[key]) for key, label in RESUME_FIELDS.items() if values.get(key)]

    async def copy_to_clipboard(self, text: str) -> list[FilledField]:
        """Copy ``text``, then try to fill it into the active tab's form."""
        try:
            await self.clipboard.write_text(text)
        except Exception as e:
            logger.warning(f'Clipboard write failed: {e}')
            self.show_status('Copy failed', 'error')
            return []
        self.show_status('Copied to clipboard', 'success')
        return await self.fill_web_form(text)

    async def fill_web_form(self, text: str) -> list[FilledField]:
        try:
            result = await self._send_to_active_tab('fillForm', {'text': text})
        except BridgeError as e:
            logger.info(f'Could not fill form: {e}')
            return []
        filled = [FilledField.model_validate(field) for field in result['filledFields']]
        if filled:
            self.show_status('Filled into the form', 'success')
        return filled

    async def _send_to_active_tab(self, action: str, payload: typing.Any) -> typing.Any:
        return await self.router.call(COORDINATOR_ADDRESS, 'sendToTab', {'action': action, 'payload': payload})
