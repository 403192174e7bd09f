"""Page-context capability host.

Runs inside the page itself, next to the page's own code, and exposes the
fixed capability table over its router under the ``capability:`` prefix.
A document gets at most one host: injecting twice is a no-op.
"""

from __future__ import annotations

__all__ = [
    'CAPABILITY_PREFIX',
    'PageHostContext',
    'build_capabilities',
]

import logging
import time
import typing

import pydantic

from page_bridge.capabilities import Capability, CapabilityRegistry
from page_bridge.contexts.base import COORDINATOR_ADDRESS, Context, mediator_address, page_address
from page_bridge.dom import page_data, text_index
from page_bridge.dom.document import PageDocument
from page_bridge.models import WireModel
from page_bridge.router import MessageRouter, Sender
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

CAPABILITY_PREFIX = 'capability:'


class HighlightElementOptions(WireModel):
    background_color: str = '#ffff00'
    border: str = '2px solid #ff0000'
    duration: float = pydantic.Field(default=3000, description='Milliseconds; zero or less keeps the highlight')


def _options(model: type[pydantic.BaseModel], raw: typing.Any) -> typing.Any:
    return model.model_validate(raw or {})


def build_capabilities(
    document: PageDocument,
    router: MessageRouter,
    *,
    marker_class: str = text_index.DEFAULT_MARKER_CLASS,
) -> CapabilityRegistry:
    """Capability table bound to ``document``; wire-shaped arguments in, JSON-ready results out."""
    registry = CapabilityRegistry()

    def highlight_text(text: str, options: dict[str, typing.Any] | None = None) -> int:
        raw = {'className': marker_class, **(options or {})}
        return text_index.highlight(document, text, _options(text_index.HighlightOptions, raw))

    def remove_highlight(class_name: str | None = None) -> int:
        return text_index.remove_highlight(document, class_name or marker_class)

    def find_and_replace(find: str, replace: str, options: dict[str, typing.Any] | None = None) -> int:
        return text_index.find_and_replace(document, find, replace, _options(text_index.ReplaceOptions, options))

    def highlight_element(selector: str, options: dict[str, typing.Any] | None = None) -> bool:
        config = _options(HighlightElementOptions, options)
        return page_data.highlight_element(
            document,
            selector,
            background_color=config.background_color,
            border=config.border,
            duration=config.duration / 1000,
        )

    async def take_screenshot() -> typing.Any:
        return await router.call(COORDINATOR_ADDRESS, 'takeScreenshot')

    registry.register(Capability.HIGHLIGHT_TEXT, highlight_text)
    registry.register(Capability.REMOVE_HIGHLIGHT, remove_highlight)
    registry.register(Capability.FIND_AND_REPLACE, find_and_replace)
    registry.register(Capability.EXTRACT_PAGE_DATA, lambda: page_data.extract_page_data(document).to_wire())
    registry.register(Capability.ANALYZE_PAGE, lambda: page_data.analyze_page(document).to_wire())
    registry.register(Capability.GET_PAGE_STATS, lambda: page_data.get_page_stats(document).to_wire())
    registry.register(Capability.ADD_CUSTOM_STYLES, lambda css: page_data.add_custom_styles(document, css))
    registry.register(Capability.REMOVE_CUSTOM_STYLES, lambda: page_data.remove_custom_styles(document))
    registry.register(Capability.SCROLL_TO_ELEMENT, lambda selector: page_data.scroll_to_element(document, selector))
    registry.register(Capability.HIGHLIGHT_ELEMENT, highlight_element)
    registry.register(Capability.TAKE_SCREENSHOT, take_screenshot)
    registry.freeze()
    return registry


class PageHostContext(Context):
    kind = 'page'

    def __init__(
        self,
        tab_id: int,
        document: PageDocument,
        fabric: Fabric,
        *,
        marker_class: str = text_index.DEFAULT_MARKER_CLASS,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(page_address(tab_id), fabric, request_timeout=request_timeout)
        self.tab_id = tab_id
        self.document = document
        self.capabilities = build_capabilities(document, self.router, marker_class=marker_class)
        self.router.mount(CAPABILITY_PREFIX, self._dispatch)

    @classmethod
    async def inject(
        cls,
        tab_id: int,
        document: PageDocument,
        fabric: Fabric,
        *,
        marker_class: str = text_index.DEFAULT_MARKER_CLASS,
        request_timeout: float = 30.0,
    ) -> PageHostContext | None:
        """Start a host for ``document`` unless one is already injected."""
        if document.host_injected:
            logger.debug(f'Page host already injected into tab {tab_id}')
            return None
        document.host_injected = True
        host = cls(tab_id, document, fabric, marker_class=marker_class, request_timeout=request_timeout)
        await host.start()
        return host

    async def start(self) -> None:
        await super().start()
        self.router.notify(mediator_address(self.tab_id), 'pageHostReady', {'timestamp': time.time()})

    async def stop(self) -> None:
        await super().stop()
        self.document.host_injected = False

    def _dispatch(self, name: str, payload: typing.Any, sender: Sender) -> typing.Any:
        args = [] if payload is None else payload
        return self.capabilities.invoke(name, args)
