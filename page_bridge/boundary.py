"""Error boundary with type-based handler dispatch.

Separates boundary-level handling (unexpected failures at the edge of a unit
of work) from expected, local ``try/except`` in domain code.

Two kinds of boundary are used in this package:

    Scope boundary - ``ErrorBoundary(exit_code=None)``:
        Handles the failure and continues. The auto-fill engine wraps every
        candidate field in one so that a malformed element is skipped instead
        of aborting the scan::

            for element in candidates:
                with ErrorBoundary(exit_code=None, handler=log_skip):
                    fill(element)

    Process boundary - ``ErrorBoundary()``:
        Handles the failure and exits non-zero. The CLI entry point uses it.

System exceptions (KeyboardInterrupt, SystemExit, GeneratorExit,
CancelledError) always pass through.
"""

from __future__ import annotations

__all__ = [
    'ErrorBoundary',
    'ErrorHandler',
]

import functools
import inspect
import logging
import sys
from collections.abc import Callable
from functools import singledispatch
from types import TracebackType
from typing import Any, Self, TypeAlias, TypeVar, cast

from page_bridge.errors import BridgeError

logger = logging.getLogger(__name__)

ErrorHandler: TypeAlias = Callable[[Exception], None]

_F = TypeVar('_F', bound=Callable[..., object])


class ErrorBoundary:
    """Catch application exceptions and hand them to registered handlers.

    Usable as ``with``/``async with`` block or as a decorator (parens required)
    on sync and async functions. Handlers are matched by MRO through
    ``functools.singledispatch``; registering for ``Exception`` is a catch-all.

    Args:
        handler: Catch-all handler. Defaults to logging: bridge errors as a
            one-line warning, anything else with its traceback.
        exit_code: Exit code for process boundaries, ``None`` to suppress and
            continue.
    """

    def __init__(
        self,
        *,
        handler: ErrorHandler | None = None,
        exit_code: int | None = 1,
    ) -> None:
        self._dispatch = singledispatch(_default_handler)
        if handler is not None:
            self._dispatch.register(Exception, handler)
        self._exit_code = exit_code

    def handler(self, exc_type: type[Exception]) -> Callable[[Callable[..., None]], Callable[..., None]]:
        """Register a handler for a specific exception type."""
        return self._dispatch.register(exc_type)

    def __call__(self, func: _F) -> _F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                async with self:
                    return await func(*args, **kwargs)

            return cast(_F, async_wrapper)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return cast(_F, sync_wrapper)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        return self._handle(exc_value)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        return self._handle(exc_value)

    def _handle(self, exc_value: BaseException | None) -> bool:
        """Dispatch, then suppress (scope) or exit (process).

        A handler that raises cannot breach the boundary: the original
        exception is logged instead.
        """
        if not isinstance(exc_value, Exception):
            return False

        try:
            self._dispatch(exc_value)
        except Exception:
            _default_handler(exc_value)

        if self._exit_code is not None:
            sys.exit(self._exit_code)

        return True


def _default_handler(exc: Exception) -> None:
    """Log the failure; only unexpected errors carry a traceback."""
    if isinstance(exc, BridgeError):
        logger.warning(f'{type(exc).__name__}: {exc}')
        return
    logger.error(f'Unhandled {type(exc).__name__}: {exc}', exc_info=exc)
