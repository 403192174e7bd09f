"""Shared lifecycle for every execution context."""

from __future__ import annotations

__all__ = [
    'COORDINATOR_ADDRESS',
    'Context',
    'mediator_address',
    'page_address',
    'tab_id_from_address',
]

import logging
import re

from page_bridge.models import ContextKind
from page_bridge.router import MessageRouter
from page_bridge.transport import Fabric

logger = logging.getLogger(__name__)

COORDINATOR_ADDRESS = 'coordinator'

_TAB_ADDRESS = re.compile(r'tab:(\d+)/\w+')


def mediator_address(tab_id: int) -> str:
    return f'tab:{tab_id}/mediator'


def page_address(tab_id: int) -> str:
    return f'tab:{tab_id}/page'


def tab_id_from_address(address: str) -> int | None:
    """Tab id encoded in a tab-scoped address, None for anything else."""
    match = _TAB_ADDRESS.fullmatch(address)
    return int(match.group(1)) if match else None


class Context:
    """A context owns one router and is attached to the fabric while alive.

    Subclasses register their handlers in ``__init__`` and extend ``start``
    and ``stop`` for their own initialization and teardown.
    """

    kind: ContextKind

    def __init__(self, address: str, fabric: Fabric, *, request_timeout: float = 30.0) -> None:
        self.address = address
        self.fabric = fabric
        self.router = MessageRouter(self.kind, address, fabric, default_timeout=request_timeout)
        self.started = False

    async def start(self) -> None:
        self.fabric.attach(self.address, self.router)
        self.started = True
        logger.debug(f'{self.kind} context started at {self.address}')

    async def stop(self) -> None:
        """Detach from the fabric and release router state. Safe to call twice."""
        if not self.started:
            return
        self.started = False
        await self.fabric.detach(self.address)
        await self.router.close()
        logger.debug(f'{self.kind} context stopped at {self.address}')
