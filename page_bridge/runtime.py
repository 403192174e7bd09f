"""Runtime wiring: one fabric, one coordinator, and the contexts around it.

Plays the part of the browser: it opens and closes tabs (a document, its
mediator and its page host), opens the transient surfaces, and tears
everything down on shutdown.

    async with Extension() as ext:
        tab = await ext.open_tab('<form>...</form>', 'https://example.com/apply')
        popup = await ext.open_popup()
        await popup.copy_to_clipboard('13812345678')
"""

from __future__ import annotations

__all__ = [
    'Extension',
    'Tab',
]

import dataclasses
import itertools
import logging
import pathlib
from types import TracebackType
from typing import Self

from page_bridge.config import RuntimeConfig
from page_bridge.contexts import CoordinatorContext, MediatorContext, OptionsContext, PageHostContext, PopupContext
from page_bridge.dom.document import PageDocument
from page_bridge.protocols import (
    Clipboard,
    DocumentParser,
    MemoryClipboard,
    NotificationSink,
    RecordingNotificationSink,
    ScreenshotCapture,
)
from page_bridge.settings import JsonFileSettingsStore, SettingsStore
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)


@dataclasses.dataclass(slots=True)
class Tab:
    id: int
    document: PageDocument
    mediator: MediatorContext
    page_host: PageHostContext | None


class Extension:
    """Owns the fabric and every live context."""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        settings_store: SettingsStore | None = None,
        screenshot: ScreenshotCapture | None = None,
        notifications: NotificationSink | None = None,
        clipboard: Clipboard | None = None,
        parser: DocumentParser | None = None,
    ) -> None:
        self.config = config or RuntimeConfig()
        self.settings_store = settings_store or JsonFileSettingsStore(pathlib.Path(self.config.settings_path))
        self.notifications = notifications or RecordingNotificationSink()
        self.clipboard = clipboard or MemoryClipboard()
        self.parser = parser

        self.fabric = Fabric()
        self.coordinator = CoordinatorContext(
            self.fabric,
            self.settings_store,
            screenshot=screenshot,
            open_options=self.open_options,
            request_timeout=self.config.request_timeout,
        )
        self.tabs: dict[int, Tab] = {}
        self.surfaces: list[PopupContext | OptionsContext] = []
        self._tab_ids = itertools.count(1)
        self._surface_ids = itertools.count(1)
        self.running = False

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def start(self) -> None:
        if self.running:
            return
        await self.coordinator.start()
        await self.coordinator.on_installed()
        self.running = True
        logger.info('Extension started')

    # -- Tabs --

    async def open_tab(self, html: str, url: str = 'about:blank', *, active: bool = True) -> Tab:
        """Load ``html`` into a new tab and attach its mediator and page host."""
        tab_id = next(self._tab_ids)
        document = PageDocument(html, url)
        self.coordinator.register_tab(tab_id, url, document.title, active=active)

        mediator = MediatorContext(
            tab_id,
            document,
            self.fabric,
            notifications=self.notifications,
            marker_class=self.config.marker_class,
            request_timeout=self.config.request_timeout,
        )
        await mediator.start()
        page_host = await PageHostContext.inject(
            tab_id,
            document,
            self.fabric,
            marker_class=self.config.marker_class,
            request_timeout=self.config.request_timeout,
        )

        tab = Tab(id=tab_id, document=document, mediator=mediator, page_host=page_host)
        self.tabs[tab_id] = tab
        logger.info(f'Opened tab {tab_id}: {url}')
        return tab

    async def close_tab(self, tab_id: int) -> bool:
        tab = self.tabs.pop(tab_id, None)
        if tab is None:
            return False
        if tab.page_host is not None:
            await tab.page_host.stop()
        await tab.mediator.stop()
        self.coordinator.unregister_tab(tab_id)
        logger.info(f'Closed tab {tab_id}')
        return True

    # -- Transient surfaces --

    async def open_popup(self) -> PopupContext:
        popup = PopupContext(
            f'popup:{next(self._surface_ids)}',
            self.fabric,
            clipboard=self.clipboard,
            parser=self.parser,
            notifications=self.notifications,
            request_timeout=self.config.request_timeout,
        )
        await popup.start()
        self.surfaces.append(popup)
        return popup

    async def open_options(self) -> OptionsContext:
        options = OptionsContext(
            f'options:{next(self._surface_ids)}',
            self.fabric,
            notifications=self.notifications,
            request_timeout=self.config.request_timeout,
        )
        await options.start()
        self.surfaces.append(options)
        return options

    async def close_surface(self, surface: PopupContext | OptionsContext) -> None:
        if surface in self.surfaces:
            self.surfaces.remove(surface)
        await surface.stop()

    # -- Teardown --

    async def shutdown(self) -> None:
        for surface in list(self.surfaces):
            await self.close_surface(surface)
        for tab_id in list(self.tabs):
            await self.close_tab(tab_id)
        await self.coordinator.stop()
        await self.fabric.close()
        self.running = False
        logger.info('Extension stopped')
