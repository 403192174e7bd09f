"""Hosted document: a parsed HTML tree plus the per-document state a page carries.

BeautifulSoup gives us the node tree. What a browser adds on top, and what the
mediator and page host rely on, lives here too: bubbling event listeners,
mutation observers, timers, and an explicit ``teardown()`` that releases all of
it when the document unloads.
"""

from __future__ import annotations

__all__ = [
    'NON_RENDERED_TAGS',
    'DomEvent',
    'MutationRecord',
    'Observer',
    'EventListener',
    'MutationCallback',
    'PageDocument',
    'parse_style',
    'format_style',
]

import asyncio
import dataclasses
import logging
import typing
from collections.abc import Callable, Iterator

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

logger = logging.getLogger(__name__)

# Text under these parents is never shown to the user.
NON_RENDERED_TAGS = frozenset({'script', 'style', 'noscript', 'template'})


@dataclasses.dataclass(frozen=True, slots=True)
class DomEvent:
    type: str
    target: Tag
    bubbles: bool = True


@dataclasses.dataclass(frozen=True, slots=True)
class MutationRecord:
    type: typing.Literal['childList', 'characterData', 'attributes']
    target: PageElement
    attribute_name: str | None = None


EventListener: typing.TypeAlias = Callable[[DomEvent], None]
MutationCallback: typing.TypeAlias = Callable[[MutationRecord], None]


class Observer:
    """Handle for a mutation observer registration."""

    def __init__(self, document: PageDocument, callback: MutationCallback) -> None:
        self._document = document
        self.callback = callback

    @property
    def connected(self) -> bool:
        return self in self._document._observers

    def disconnect(self) -> None:
        if self.connected:
            self._document._observers.remove(self)


class PageDocument:
    """A parsed page and everything registered against it."""

    def __init__(self, html: str, url: str = 'about:blank', *, parser: str = 'html.parser') -> None:
        self.soup = BeautifulSoup(html, parser)
        self.url = url
        self.scroll_target: Tag | None = None
        self.host_injected = False
        self.closed = False

        self._listeners: list[tuple[Tag, str, EventListener]] = []
        self._observers: list[Observer] = []
        self._timers: set[asyncio.TimerHandle] = set()

    # -- Tree access --

    @property
    def title(self) -> str:
        if self.soup.title is None:
            return ''
        return self.soup.title.get_text().strip()

    @property
    def body(self) -> Tag:
        """The ``<body>``, or the whole tree for fragments without one."""
        return self.soup.body or self.soup

    @property
    def head(self) -> Tag:
        """The ``<head>``, created on demand."""
        if self.soup.head is not None:
            return self.soup.head
        head = self.soup.new_tag('head')
        if self.soup.html is not None:
            self.soup.html.insert(0, head)
        else:
            self.soup.insert(0, head)
        return head

    def select(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def elements(self, name: str | None = None) -> list[Tag]:
        """All elements, optionally filtered by tag name."""
        if name is None:
            return list(self.soup.find_all(True))
        return list(self.soup.find_all(name))

    def text_leaves(self, root: Tag | None = None) -> list[NavigableString]:
        """Text-bearing leaves under ``root`` (body by default), in document order.

        Comments, doctypes and other preformatted strings are not text.
        """
        root = root if root is not None else self.body
        return [
            node
            for node in root.find_all(string=True)
            if isinstance(node, NavigableString) and not isinstance(node, PreformattedString)
        ]

    def rendered_leaves(self) -> Iterator[NavigableString]:
        for leaf in self.text_leaves():
            if leaf.parent is not None and leaf.parent.name in NON_RENDERED_TAGS:
                continue
            yield leaf

    def inner_text(self) -> str:
        """Visible text, one stripped fragment per line."""
        return '\n'.join(text for leaf in self.rendered_leaves() if (text := leaf.strip()))

    def text_content(self) -> str:
        """Concatenated text of every leaf under the body, markup ignored."""
        return ''.join(str(leaf) for leaf in self.text_leaves())

    def serialize(self) -> str:
        return str(self.soup)

    # -- Events --

    def add_event_listener(self, element: Tag, event_type: str, listener: EventListener) -> None:
        self._listeners.append((element, event_type, listener))

    def remove_event_listener(self, element: Tag, event_type: str, listener: EventListener) -> None:
        self._listeners = [
            entry
            for entry in self._listeners
            if not (entry[0] is element and entry[1] == event_type and entry[2] is listener)
        ]

    def dispatch_event(self, element: Tag, event_type: str, *, bubbles: bool = True) -> DomEvent:
        """Deliver an event to listeners on the target, then on each ancestor when bubbling."""
        event = DomEvent(type=event_type, target=element, bubbles=bubbles)
        path: list[Tag] = [element]
        if bubbles:
            path.extend(element.parents)

        for node in path:
            for target, registered_type, listener in list(self._listeners):
                if target is node and registered_type == event_type:
                    try:
                        listener(event)
                    except Exception:
                        logger.exception(f'Listener for {event_type!r} raised')
        return event

    # -- Mutation observers --

    def observe(self, callback: MutationCallback) -> Observer:
        observer = Observer(self, callback)
        self._observers.append(observer)
        return observer

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def notify_mutation(self, record: MutationRecord) -> None:
        for observer in list(self._observers):
            try:
                observer.callback(record)
            except Exception:
                logger.exception('Mutation observer raised')

    # -- Timers --

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        """Schedule ``callback`` on the running loop; cancelled on teardown.

        A handle is tracked only until it fires or is cancelled.
        """

        def fire() -> None:
            self._timers.discard(handle)
            callback()

        self._timers = {timer for timer in self._timers if not timer.cancelled()}
        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)
        return handle

    @property
    def pending_timer_count(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled())

    # -- Lifecycle --

    def teardown(self) -> None:
        """Release observers, listeners and timers. Safe to call twice."""
        for observer in list(self._observers):
            observer.disconnect()
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        self._listeners.clear()
        self.closed = True


def parse_style(value: str | None) -> dict[str, str]:
    """Parse an inline ``style`` attribute into an ordered property map."""
    styles: dict[str, str] = {}
    if not value:
        return styles
    for declaration in value.split(';'):
        prop, sep, prop_value = declaration.partition(':')
        if sep and prop.strip():
            styles[prop.strip().lower()] = prop_value.strip()
    return styles


def format_style(styles: dict[str, str]) -> str:
    return '; '.join(f'{prop}: {value}' for prop, value in styles.items() if value)
