"""Messaging fabric connecting isolated contexts.

Contexts never hand each other Python objects. Everything that crosses the
fabric is a JSON string; each attached endpoint has its own inbox, drained by
its own pump task, so a context processes one message at a time and only
suspends at explicit awaits.

Addresses are plain strings: ``coordinator``, ``tab:3/mediator``,
``tab:3/page``, ``popup:1`` and so on.
"""

from __future__ import annotations

__all__ = [
    'Transport',
    'Receiver',
    'Fabric',
]

import asyncio
import contextlib
import dataclasses
import logging
import typing

import pydantic

from page_bridge.errors import DeliveryError
from page_bridge.models import RequestEnvelope, decode_envelope

logger = logging.getLogger(__name__)


class Transport(typing.Protocol):
    """What a router needs from the host messaging channel."""

    def deliver(self, address: str, data: str) -> None:
        """Queue ``data`` for ``address``. Raises DeliveryError if unreachable."""
        ...

    def bounce(self, origin: str, correlation_id: str, destination: str, reason: str) -> None:
        """Tell ``origin`` that its request to ``destination`` will never be answered."""
        ...


class Receiver(typing.Protocol):
    """What the fabric needs from an attached context."""

    def on_message(self, raw: str) -> None: ...

    def on_delivery_failure(self, correlation_id: str, destination: str, reason: str) -> None: ...


@dataclasses.dataclass(slots=True)
class _Endpoint:
    address: str
    receiver: Receiver
    inbox: asyncio.Queue[str]
    pump: asyncio.Task[None] | None = None


class Fabric:
    """In-process implementation of the host messaging channel."""

    def __init__(self) -> None:
        self._endpoints: dict[str, _Endpoint] = {}

    @property
    def addresses(self) -> list[str]:
        return sorted(self._endpoints)

    def is_attached(self, address: str) -> bool:
        return address in self._endpoints

    def attach(self, address: str, receiver: Receiver) -> None:
        """Attach a context and start draining its inbox. Needs a running loop."""
        if address in self._endpoints:
            raise ValueError(f'Address {address!r} already attached')

        endpoint = _Endpoint(address=address, receiver=receiver, inbox=asyncio.Queue())
        endpoint.pump = asyncio.get_running_loop().create_task(self._pump(endpoint), name=f'pump:{address}')
        self._endpoints[address] = endpoint
        logger.debug(f'Attached {address}')

    async def detach(self, address: str) -> None:
        """Detach a context. Queued correlated requests are bounced to their origins."""
        endpoint = self._endpoints.pop(address, None)
        if endpoint is None:
            return

        if endpoint.pump is not None:
            endpoint.pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await endpoint.pump

        while not endpoint.inbox.empty():
            raw = endpoint.inbox.get_nowait()
            try:
                envelope = decode_envelope(raw)
            except pydantic.ValidationError:
                continue
            if isinstance(envelope, RequestEnvelope) and envelope.correlation_id is not None:
                self.bounce(envelope.origin_address, envelope.correlation_id, address, 'context unloaded')

        logger.debug(f'Detached {address}')

    def deliver(self, address: str, data: str) -> None:
        endpoint = self._endpoints.get(address)
        if endpoint is None:
            raise DeliveryError(address, 'receiving end does not exist')
        endpoint.inbox.put_nowait(data)

    def bounce(self, origin: str, correlation_id: str, destination: str, reason: str) -> None:
        endpoint = self._endpoints.get(origin)
        if endpoint is None:
            # Origin is gone as well; nobody is waiting.
            return
        endpoint.receiver.on_delivery_failure(correlation_id, destination, reason)

    async def close(self) -> None:
        """Detach every endpoint."""
        for address in list(self._endpoints):
            await self.detach(address)

    async def _pump(self, endpoint: _Endpoint) -> None:
        while True:
            raw = await endpoint.inbox.get()
            try:
                endpoint.receiver.on_message(raw)
            except Exception:
                logger.exception(f'[{endpoint.address}] Receiver raised while handling a message')
