"""Options surface: edit, persist, export and import settings.

Every change goes to the coordinator, which owns the stored copy. Changes
with a visible effect on the page (theme, toolbar) are also pushed to the
active tab so they apply without a reload. Pushes that fail are ignored:
the tab picks the value up on its next settings fetch.
"""

from __future__ import annotations

__all__ = [
    'OptionsContext',
]

import logging
import typing

import pydantic

from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context
from page_bridge.errors import BridgeError
from page_bridge.protocols import NotificationSink, NotificationType, RecordingNotificationSink
from page_bridge.settings import Settings, export_settings, import_settings, merge_settings
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

# setting -> (mediator action, payload key)
_LIVE_TAB_UPDATES: dict[str, tuple[str, str]] = {
    'theme': ('updateTheme', 'theme'),
    'toolbarPosition': ('updateToolbarPosition', 'position'),
    'toolbarOpacity': ('updateToolbarOpacity', 'opacity'),
}


class OptionsContext(Context):
    kind = 'options'

    def __init__(
        self,
        address: str,
        fabric: Fabric,
        *,
        notifications: NotificationSink | None = None,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(address, fabric, request_timeout=request_timeout)
        self.notifications = notifications or RecordingNotificationSink()
        self.settings = Settings()

    async def start(self) -> None:
        await super().start()
        await self.load_settings()

    async def load_settings(self) -> Settings:
        try:
            data = await self.router.call(COORDINATOR_ADDRESS, 'getSettings')
            self.settings = Settings.model_validate(data)
        except (BridgeError, pydantic.ValidationError) as e:
            logger.warning(f'Loading settings failed, using defaults: {e}')
            self.settings = Settings()
        return self.settings

    async def save_settings(self) -> bool:
        try:
            await self.router.call(COORDINATOR_ADDRESS, 'updateSettings', self.settings.to_wire())
        except BridgeError as e:
            logger.error(f'Saving settings failed: {e}')
            self._show('Save failed', 'error')
            return False
        self._show('Settings saved', 'success')
        return True

    async def update_setting(self, name: str, value: typing.Any) -> Settings:
        """Change one setting (wire name) and propagate it.

        Raises:
            pydantic.ValidationError: Unknown setting or invalid value.
        """
        self.settings = merge_settings(self.settings, {name: value})
        self.router.notify(COORDINATOR_ADDRESS, 'updateSettings', {name: value})

        match name:
            case 'enablePlugin':
                self.router.notify(COORDINATOR_ADDRESS, 'togglePlugin', {'enabled': value})
            case 'enableContextMenu':
                self.router.notify(COORDINATOR_ADDRESS, 'toggleContextMenu', {'enabled': value})
            case _ if name in _LIVE_TAB_UPDATES:
                action, key = _LIVE_TAB_UPDATES[name]
                await self._push_to_active_tab(action, {key: value})
        return self.settings

    async def reset_settings(self) -> bool:
        self.settings = Settings()
        saved = await self.save_settings()
        if saved:
            self._show('Settings reset', 'success')
        return saved

    async def clear_data(self) -> bool:
        try:
            await self.router.call(COORDINATOR_ADDRESS, 'clearData')
        except BridgeError as e:
            logger.error(f'Clearing data failed: {e}')
            self._show('Clearing data failed', 'error')
            return False
        self.settings = Settings()
        self._show('Data cleared', 'success')
        return True

    def export_data(self) -> str:
        exported = export_settings(self.settings)
        self._show('Settings exported', 'success')
        return exported

    async def import_data(self, raw: str | bytes) -> bool:
        try:
            self.settings = import_settings(raw)
        except ValueError as e:
            self._show(f'Import failed: {e}', 'error')
            return False
        saved = await self.save_settings()
        if saved:
            self._show('Settings imported', 'success')
        return saved

    async def _push_to_active_tab(self, action: str, payload: dict[str, typing.Any]) -> None:
        try:
            await self.router.call(COORDINATOR_ADDRESS, 'sendToTab', {'action': action, 'payload': payload})
        except BridgeError as e:
            logger.debug(f'Live update {action} not applied: {e}')

    def _show(self, message: str, type: NotificationType) -> None:
        self.notifications.show(message, type)
