"""Page-attached mediator, one per displayed document.

Receives commands from the coordinator and performs them against the page:
directly for DOM work (highlight, extract, fill), or by forwarding
``capability:`` calls to the page-context host. Owns the state of the
on-page affordances (visibility, theme, toolbar), which lives exactly as
long as the document.
"""

from __future__ import annotations

__all__ = [
    'MediatorContext',
    'MediatorState',
    'SPECIAL_SITE_STYLES',
]

import dataclasses
import logging
import time
import typing

import pydantic

from page_bridge.autofill import auto_fill
from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context, mediator_address, page_address
from page_bridge.contexts.page_host import CAPABILITY_PREFIX
from page_bridge.dom import page_data, text_index
from page_bridge.dom.document import MutationRecord, Observer, PageDocument
from page_bridge.errors import BridgeError
from page_bridge.models import PageInfo, StrictModel
from page_bridge.protocols import NotificationSink, NotificationType, RecordingNotificationSink
from page_bridge.router import Sender
from page_bridge.settings import Settings, merge_settings
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

PLUGIN_ACTION_TERM = '重要'

SPECIAL_SITE_STYLES = {
    'example.com': '.plugin-highlight { outline: 1px dashed #ff9800; }',
}

DARK_THEME_CLASS = 'plugin-dark-theme'


@dataclasses.dataclass(slots=True)
class MediatorState:
    """Affordance state, created on init and discarded on teardown."""

    settings: Settings
    visible: bool
    page_info: PageInfo | None = None
    host_ready: bool = False
    observers: dict[str, Observer] = dataclasses.field(default_factory=dict)


class _TextPayload(StrictModel):
    text: str = ''


class _SitePayload(StrictModel):
    site: str = ''


class MediatorContext(Context):
    kind = 'mediator'

    def __init__(
        self,
        tab_id: int,
        document: PageDocument,
        fabric: Fabric,
        *,
        notifications: NotificationSink | None = None,
        marker_class: str = text_index.DEFAULT_MARKER_CLASS,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(mediator_address(tab_id), fabric, request_timeout=request_timeout)
        self.tab_id = tab_id
        self.document = document
        self.notifications = notifications or RecordingNotificationSink()
        self.marker_class = marker_class
        self.state: MediatorState | None = None

        register = self.router.register
        register('pluginAction1', self._plugin_action)
        register('specialHandling', self._special_handling)
        register('updateSettings', self._update_settings)
        register('performAction', self._perform_action)
        register('fillForm', self._fill_form)
        register('highlightText', self._highlight_text)
        register('extractData', self._extract_data)
        register('analyze', self._analyze)
        register('screenshot', self._screenshot)
        register('updateTheme', self._update_theme)
        register('updateToolbarPosition', self._update_toolbar_position)
        register('updateToolbarOpacity', self._update_toolbar_opacity)
        register('togglePlugin', self._toggle_plugin)
        register('pageHostReady', self._page_host_ready)
        self.router.mount(CAPABILITY_PREFIX, self._forward_capability)

    # -- Lifecycle --

    async def start(self) -> None:
        await super().start()
        await self.initialize()

    async def initialize(self) -> None:
        """Fetch settings, set up observers and announce readiness. Runs once."""
        if self.state is not None:
            return

        settings = await self._fetch_settings()
        self.state = MediatorState(settings=settings, visible=settings.enable_plugin, page_info=self._page_info())
        self.state.observers['dom'] = self.document.observe(self._on_mutation)
        self._apply_settings()

        self.router.notify(
            COORDINATOR_ADDRESS,
            'contentScriptReady',
            {'url': self.document.url, 'title': self.document.title},
        )
        logger.info(f'Mediator for tab {self.tab_id} initialized')

    async def stop(self) -> None:
        if self.state is not None:
            for observer in self.state.observers.values():
                observer.disconnect()
            self.state = None
        self.document.teardown()
        await super().stop()

    @property
    def settings(self) -> Settings:
        return self._require_state().settings

    # -- Handlers --

    def _plugin_action(self, payload: typing.Any, sender: Sender) -> dict[str, int]:
        count = text_index.highlight(
            self.document, PLUGIN_ACTION_TERM, text_index.HighlightOptions(class_name=self.marker_class)
        )
        self._notify('Plugin action executed', 'success')
        return {'highlighted': count}

    def _special_handling(self, payload: typing.Any, sender: Sender) -> dict[str, bool]:
        site = _SitePayload.model_validate(payload or {}).site
        css = SPECIAL_SITE_STYLES.get(site)
        if css is None:
            return {'handled': False}
        page_data.add_custom_styles(self.document, css)
        return {'handled': True}

    def _update_settings(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        state = self._require_state()
        state.settings = merge_settings(state.settings, payload or {})
        self._apply_settings()
        return state.settings.to_wire()

    async def _perform_action(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        result = {
            'url': self.document.url,
            'title': self.document.title,
            'timestamp': time.time(),
            'elements': len(self.document.elements()),
        }
        self.router.notify(COORDINATOR_ADDRESS, 'actionCompleted', result)
        self._notify('Action performed', 'success')
        return result

    def _fill_form(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        text = _TextPayload.model_validate(payload or {}).text
        if not text:
            raise ValueError('no text provided to fill')

        filled = auto_fill(self.document, text)
        if filled:
            self._notify(f'Filled {len(filled)} form field(s)', 'success')
        else:
            self._notify('No fillable form field found', 'info')
        return {'filledFields': [field.to_wire() for field in filled]}

    def _highlight_text(self, payload: typing.Any, sender: Sender) -> dict[str, int]:
        text = _TextPayload.model_validate(payload or {}).text
        count = text_index.highlight(self.document, text, text_index.HighlightOptions(class_name=self.marker_class))
        if text:
            self._notify(f'Highlighted "{text}"', 'info')
        return {'count': count}

    def _extract_data(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        data = page_data.extract_page_data(self.document).to_wire()
        self.router.notify(COORDINATOR_ADDRESS, 'dataExtracted', data)
        self._notify('Page data extracted', 'success')
        return data

    async def _analyze(self, payload: typing.Any, sender: Sender) -> typing.Any:
        return await self.router.call(page_address(self.tab_id), f'{CAPABILITY_PREFIX}analyzePage')

    async def _screenshot(self, payload: typing.Any, sender: Sender) -> typing.Any:
        try:
            result = await self.router.call(COORDINATOR_ADDRESS, 'takeScreenshot')
        except BridgeError as e:
            self._notify(f'Screenshot failed: {e}', 'error')
            raise
        self._notify('Screenshot saved', 'success')
        return result

    def _update_theme(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        return self._update_settings({'theme': _field(payload, 'theme')}, sender)

    def _update_toolbar_position(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        return self._update_settings({'toolbarPosition': _field(payload, 'position')}, sender)

    def _update_toolbar_opacity(self, payload: typing.Any, sender: Sender) -> dict[str, typing.Any]:
        return self._update_settings({'toolbarOpacity': _field(payload, 'opacity')}, sender)

    def _toggle_plugin(self, payload: typing.Any, sender: Sender) -> dict[str, bool]:
        state = self._require_state()
        if isinstance(payload, dict) and 'enabled' in payload:
            state.visible = bool(payload['enabled'])
        else:
            state.visible = not state.visible
        return {'visible': state.visible}

    def _page_host_ready(self, payload: typing.Any, sender: Sender) -> None:
        if self.state is not None:
            self.state.host_ready = True
        logger.debug(f'Page host ready in tab {self.tab_id}')

    async def _forward_capability(self, name: str, payload: typing.Any, sender: Sender) -> typing.Any:
        return await self.router.call(page_address(self.tab_id), f'{CAPABILITY_PREFIX}{name}', payload)

    # -- Internals --

    def _require_state(self) -> MediatorState:
        if self.state is None:
            raise RuntimeError(f'mediator for tab {self.tab_id} is not initialized')
        return self.state

    async def _fetch_settings(self) -> Settings:
        try:
            data = await self.router.call(COORDINATOR_ADDRESS, 'getSettings')
            return Settings.model_validate(data)
        except (BridgeError, pydantic.ValidationError) as e:
            logger.warning(f'Using default settings for tab {self.tab_id}: {e}')
            return Settings()

    def _apply_settings(self) -> None:
        state = self._require_state()
        body = self.document.body
        classes = list(body.get('class') or []) if body is not self.document.soup else []
        if state.settings.theme == 'dark' and DARK_THEME_CLASS not in classes:
            classes.append(DARK_THEME_CLASS)
        elif state.settings.theme != 'dark' and DARK_THEME_CLASS in classes:
            classes.remove(DARK_THEME_CLASS)
        if body is not self.document.soup:
            if classes:
                body['class'] = classes
            elif body.has_attr('class'):
                del body['class']
        state.visible = state.settings.enable_plugin

    @property
    def page_info(self) -> PageInfo:
        """Page summary, recomputed on first read after a structural change."""
        state = self._require_state()
        if state.page_info is None:
            state.page_info = self._page_info()
        return state.page_info

    def _on_mutation(self, record: MutationRecord) -> None:
        if record.type == 'childList' and self.state is not None:
            self.state.page_info = None

    def _page_info(self) -> PageInfo:
        return PageInfo(url=self.document.url, title=self.document.title, element_count=len(self.document.elements()))

    def _notify(self, message: str, type: NotificationType) -> None:
        if self.state is not None and not self.state.settings.show_notifications:
            return
        self.notifications.show(message, type)


def _field(payload: typing.Any, key: str) -> typing.Any:
    if not isinstance(payload, dict) or key not in payload:
        raise ValueError(f'missing {key!r}')
    return payload[key]
