"""Privileged coordinator: settings owner, menu host and tab router.

There is exactly one coordinator. It is a leaf: it answers requests from
every other context and only reaches out to mediators when routing a
command to a tab or broadcasting a settings change.
"""

from __future__ import annotations

__all__ = [
    'CoordinatorContext',
    'MenuItem',
    'TabInfo',
]

import dataclasses
import logging
import time
import typing
from collections.abc import Awaitable, Callable, Mapping

import pydantic

from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context, mediator_address, tab_id_from_address
from page_bridge.models import StrictModel
from page_bridge.protocols import ScreenshotCapture
from page_bridge.router import Sender
from page_bridge.settings import Settings, SettingsStore
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

MenuContext: typing.TypeAlias = typing.Literal['selection', 'page']


@dataclasses.dataclass(frozen=True, slots=True)
class MenuItem:
    id: str
    title: str
    contexts: tuple[MenuContext, ...]
    type: typing.Literal['normal', 'separator'] = 'normal'


DEFAULT_MENU = (
    MenuItem(id='plugin-highlight', title='Highlight text', contexts=('selection',)),
    MenuItem(id='plugin-extract', title='Extract data', contexts=('page',)),
    MenuItem(id='separator', title='', contexts=('page',), type='separator'),
    MenuItem(id='plugin-settings', title='Open settings', contexts=('page',)),
)


@dataclasses.dataclass(slots=True)
class TabInfo:
    tab_id: int
    url: str
    title: str
    ready: bool = False

    def to_wire(self) -> dict[str, typing.Any]:
        return {'tabId': self.tab_id, 'url': self.url, 'title': self.title, 'ready': self.ready}


class _TabCommand(StrictModel):
    """Payload of ``sendToTab``."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    action: str
    payload: typing.Any = None
    tab_id: int | None = pydantic.Field(default=None, alias='tabId')


class _Toggle(StrictModel):
    enabled: bool


class CoordinatorContext(Context):
    kind = 'coordinator'

    def __init__(
        self,
        fabric: Fabric,
        settings_store: SettingsStore,
        *,
        screenshot: ScreenshotCapture | None = None,
        open_options: Callable[[], Awaitable[object]] | None = None,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(COORDINATOR_ADDRESS, fabric, request_timeout=request_timeout)
        self.settings_store = settings_store
        self.screenshot = screenshot
        self.open_options = open_options

        self.tabs: dict[int, TabInfo] = {}
        self.active_tab_id: int | None = None
        self.menu: tuple[MenuItem, ...] = ()
        self.completed_actions: list[Mapping[str, typing.Any]] = []
        self.extracted: dict[int, Mapping[str, typing.Any]] = {}

        register = self.router.register
        register('test', self._test)
        register('getSettings', self._get_settings)
        register('updateSettings', self._update_settings)
        register('clearData', self._clear_data)
        register('togglePlugin', self._toggle_plugin)
        register('toggleContextMenu', self._toggle_context_menu)
        register('contentScriptReady', self._content_script_ready)
        register('actionCompleted', self._action_completed)
        register('dataExtracted', self._data_extracted)
        register('takeScreenshot', self._take_screenshot)
        register('sendToTab', self._send_to_tab)
        register('getActiveTab', self._get_active_tab)
        register('openOptions', self._open_options)

    # -- Lifecycle --

    async def on_installed(self) -> None:
        """Build the context menu and persist settings so the store holds a full record."""
        settings = await self.settings_store.get_settings()
        await self.settings_store.replace_settings(settings)
        self._apply_debug_mode(settings)
        self._build_menu(settings.enable_context_menu)
        logger.info('Coordinator installed')

    # -- Host-side tab bookkeeping (called by the runtime, not over the fabric) --

    def register_tab(self, tab_id: int, url: str, title: str = '', *, active: bool = True) -> None:
        self.tabs[tab_id] = TabInfo(tab_id=tab_id, url=url, title=title)
        if active or self.active_tab_id is None:
            self.active_tab_id = tab_id

    def unregister_tab(self, tab_id: int) -> None:
        self.tabs.pop(tab_id, None)
        self.extracted.pop(tab_id, None)
        if self.active_tab_id == tab_id:
            self.active_tab_id = next(iter(self.tabs), None)

    def activate_tab(self, tab_id: int) -> None:
        if tab_id not in self.tabs:
            raise KeyError(f'No tab {tab_id}')
        self.active_tab_id = tab_id

    async def click_menu(self, menu_id: str, tab_id: int, selection_text: str | None = None) -> None:
        """Route a context menu click."""
        logger.debug(f'Menu click {menu_id} on tab {tab_id}')
        match menu_id:
            case 'plugin-highlight':
                if selection_text:
                    self.router.notify(mediator_address(tab_id), 'highlightText', {'text': selection_text})
            case 'plugin-extract':
                self.router.notify(mediator_address(tab_id), 'extractData')
            case 'plugin-settings':
                await self._open_options(None, None)
            case _:
                logger.warning(f'Unknown menu item {menu_id!r}')

    # -- Handlers --

    def _test(self, payload: typing.Any, sender: Sender) -> dict[str, str]:
        return {'message': 'Coordinator is working'}

    async def _get_settings(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        settings = await self.settings_store.get_settings()
        return settings.to_wire()

    async def _update_settings(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        if not isinstance(payload, dict):
            raise TypeError('updateSettings expects an object of settings')
        settings = await self.settings_store.set_settings(payload)
        self._apply_debug_mode(settings)
        if 'enableContextMenu' in payload:
            self._build_menu(settings.enable_context_menu)
        self._broadcast('updateSettings', settings.to_wire(), exclude=sender.address)
        return settings.to_wire()

    async def _clear_data(self, payload: typing.Any, sender: Sender) -> None:
        await self.settings_store.clear()
        self.completed_actions.clear()
        self.extracted.clear()

    async def _toggle_plugin(self, payload: typing.Any, sender: Sender) -> dict[str, bool]:
        toggle = _Toggle.model_validate(payload)
        await self.settings_store.set_settings({'enablePlugin': toggle.enabled})
        self._broadcast('togglePlugin', {'enabled': toggle.enabled})
        return {'enabled': toggle.enabled}

    async def _toggle_context_menu(self, payload: typing.Any, sender: Sender) -> dict[str, bool]:
        toggle = _Toggle.model_validate(payload)
        await self.settings_store.set_settings({'enableContextMenu': toggle.enabled})
        self._build_menu(toggle.enabled)
        return {'enabled': toggle.enabled}

    def _content_script_ready(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        tab_id = self._sender_tab(sender)
        info = self.tabs[tab_id]
        if isinstance(payload, dict):
            info.url = str(payload.get('url', info.url))
            info.title = str(payload.get('title', info.title))
        info.ready = True
        logger.info(f'Tab {tab_id} ready: {info.url}')
        return info.to_wire()

    def _action_completed(self, payload: typing.Any, sender: Sender) -> None:
        self.completed_actions.append({'from': sender.address, 'data': payload})

    def _data_extracted(self, payload: typing.Any, sender: Sender) -> None:
        tab_id = self._sender_tab(sender)
        self.extracted[tab_id] = payload
        logger.info(f'Page data extracted from tab {tab_id}')

    async def _take_screenshot(self, payload: typing.Any, sender: Sender) -> dict[str, str]:
        if self.screenshot is None:
            raise RuntimeError('screenshot capture is not available')
        tab_id = tab_id_from_address(sender.address)
        if tab_id is None:
            tab_id = self._require_active_tab()
        data_url = await self.screenshot.capture(tab_id)
        return {'dataUrl': data_url, 'filename': f'screenshot-{int(time.time() * 1000)}.png'}

    async def _send_to_tab(self, payload: typing.Any, sender: Sender) -> typing.Any:
        command = _TabCommand.model_validate(payload)
        tab_id = command.tab_id if command.tab_id is not None else self._require_active_tab()
        if tab_id not in self.tabs:
            raise LookupError(f'no tab with id {tab_id}')
        return await self.router.call(mediator_address(tab_id), command.action, command.payload)

    def _get_active_tab(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any] | None:
        if self.active_tab_id is None:
            return None
        return self.tabs[self.active_tab_id].to_wire()

    async def _open_options(self, payload: typing.Any, sender: Sender | None) -> dict[str, bool]:
        if self.open_options is None:
            raise RuntimeError('options page cannot be opened from here')
        await self.open_options()
        return {'opened': True}

    # -- Internals --

    def _sender_tab(self, sender: Sender) -> int:
        tab_id = tab_id_from_address(sender.address)
        if tab_id is None or tab_id not in self.tabs:
            raise LookupError(f'{sender.address} is not a known tab')
        return tab_id

    def _require_active_tab(self) -> int:
        if self.active_tab_id is None:
            raise LookupError('no active tab')
        return self.active_tab_id

    def _build_menu(self, enabled: bool) -> None:
        self.menu = DEFAULT_MENU if enabled else ()
        logger.debug(f'Context menu {"created" if enabled else "removed"}')

    def _apply_debug_mode(self, settings: Settings) -> None:
        package_logger = logging.getLogger('page_bridge')
        if settings.debug_mode:
            package_logger.setLevel(logging.DEBUG)
        elif package_logger.level == logging.DEBUG:
            package_logger.setLevel(logging.NOTSET)

    def _broadcast(self, action: str, payload: typing.Any, *, exclude: str | None = None) -> None:
        for tab_id in self.tabs:
            address = mediator_address(tab_id)
            if address != exclude and self.fabric.is_attached(address):
                self.router.notify(address, action, payload)
