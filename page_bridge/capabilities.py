"""The closed set of operations the page-context host exposes.

The table is filled once while the host starts, then frozen. Names outside
``Capability`` are rejected when registered; a name that is not in the table
when invoked raises ``CapabilityNotFoundError``.
"""

from __future__ import annotations

__all__ = [
    'Capability',
    'CapabilityFn',
    'CapabilityRegistry',
]

import enum
import logging
import types
import typing
from collections.abc import Callable, Mapping, Sequence

from page_bridge.errors import CapabilityNotFoundError

logger = logging.getLogger(__name__)

CapabilityFn: typing.TypeAlias = Callable[..., typing.Any]


class Capability(enum.StrEnum):
    HIGHLIGHT_TEXT = 'highlightText'
    REMOVE_HIGHLIGHT = 'removeHighlight'
    FIND_AND_REPLACE = 'findAndReplace'
    EXTRACT_PAGE_DATA = 'extractPageData'
    ANALYZE_PAGE = 'analyzePage'
    GET_PAGE_STATS = 'getPageStats'
    ADD_CUSTOM_STYLES = 'addCustomStyles'
    REMOVE_CUSTOM_STYLES = 'removeCustomStyles'
    SCROLL_TO_ELEMENT = 'scrollToElement'
    HIGHLIGHT_ELEMENT = 'highlightElement'
    TAKE_SCREENSHOT = 'takeScreenshot'


class CapabilityRegistry:
    """Enum-keyed capability table, frozen after start-up."""

    def __init__(self) -> None:
        self._table: dict[Capability, CapabilityFn] = {}
        self._frozen: Mapping[Capability, CapabilityFn] | None = None

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    def register(self, name: Capability | str, fn: CapabilityFn) -> None:
        """Add ``fn`` under ``name``.

        Raises:
            ValueError: ``name`` is not a Capability, is already registered,
                or the table is frozen.
        """
        if self._frozen is not None:
            raise ValueError(f'Cannot register {name!r}: capability table is frozen')
        try:
            capability = Capability(name)
        except ValueError:
            raise ValueError(f'{name!r} is not a known capability') from None
        if capability in self._table:
            raise ValueError(f'Capability {capability} already registered')
        self._table[capability] = fn

    def freeze(self) -> Mapping[Capability, CapabilityFn]:
        if self._frozen is None:
            self._frozen = types.MappingProxyType(dict(self._table))
            logger.debug(f'Capability table frozen with {len(self._frozen)} entries')
        return self._frozen

    @property
    def names(self) -> list[str]:
        return sorted(str(capability) for capability in self._table)

    def invoke(self, name: str, args: Sequence[typing.Any] | None = None) -> typing.Any:
        """Call the capability ``name`` with positional ``args``.

        Raises:
            CapabilityNotFoundError: ``name`` is not in the table.
            TypeError: ``args`` is not a list.
        """
        try:
            fn = self._table[Capability(name)]
        except (ValueError, KeyError):
            raise CapabilityNotFoundError(name) from None

        if args is None:
            args = []
        if not isinstance(args, list | tuple):
            raise TypeError(f'Arguments for {name} must be a list, got {type(args).__name__}')
        return fn(*args)
