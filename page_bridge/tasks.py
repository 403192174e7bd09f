"""Tracking for the fire-and-forget tasks a context spawns.

The router runs every asynchronous handler as its own task so that a slow
handler never blocks the context's inbox. The group keeps strong references
to those tasks, records the first unexpected failure, and cancels whatever
is still running when the context unloads.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

__all__ = [
    'TaskGroup',
]

logger = logging.getLogger(__name__)


class TaskGroup:
    """Track background tasks with deferred error propagation.

    Errors are captured by done callbacks and raised on the next
    ``check_health()`` or ``drain()``. Cancelled tasks are not errors.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._tasks: set[asyncio.Task[object]] = set()
        self._first_error: BaseException | None = None

    def submit(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[object]:
        """Schedule a coroutine and return its task immediately."""
        task: asyncio.Task[object] = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[object]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._first_error is None:
            self._first_error = exc
            logger.error(f'[{self._name}] Background task failed: {exc}')

    def check_health(self) -> None:
        """Raise the first captured error, if any.

        Clears ``__traceback__`` first so repeated raises do not keep growing
        the traceback; the original was logged when captured.
        """
        if self._first_error is not None:
            self._first_error.__traceback__ = None
            raise self._first_error

    async def drain(self) -> None:
        """Await all outstanding tasks, then raise the first error if any."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.check_health()

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    @property
    def pending_count(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)
