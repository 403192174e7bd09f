"""Message router and correlation layer.

Every context owns exactly one ``MessageRouter``. Outgoing requests get a
fresh correlation id and a waiter future; incoming envelopes either resolve
a waiter or are dispatched to a handler, and every correlated request gets
exactly one response envelope back, whatever the handler does.

    router = MessageRouter('mediator', 'tab:1/mediator', fabric, default_timeout=30.0)

    @router.handler('fillForm')
    async def fill_form(payload, sender):
        ...

    data = await router.call('coordinator', 'getSettings')

Ordering: handlers may suspend, so responses can complete out of send order.
Cancellation: none. A caller that stops caring simply ignores the future; a
late response is dropped and logged.
"""

from __future__ import annotations

__all__ = [
    'MessageRouter',
    'Sender',
    'Handler',
    'Dispatcher',
]

import asyncio
import dataclasses
import functools
import inspect
import logging
import typing
import uuid
from collections.abc import Callable

import pydantic
import pydantic_core

from page_bridge.errors import BridgeError, DeliveryError, HandlerFailure, RemoteActionError, UnknownActionError
from page_bridge.models import ContextKind, RequestEnvelope, ResponseEnvelope, decode_envelope, encode_envelope
from page_bridge.tasks import TaskGroup
from page_bridge.transport import Transport

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class Sender:
    """Where an incoming request came from."""

    address: str
    context: ContextKind


Handler: typing.TypeAlias = Callable[[typing.Any, Sender], typing.Any]
"""``(payload, sender) -> result``; may return an awaitable."""

Dispatcher: typing.TypeAlias = Callable[[str, typing.Any, Sender], typing.Any]
"""``(name, payload, sender) -> result`` for a mounted action prefix."""


@dataclasses.dataclass(slots=True)
class _Waiter:
    future: asyncio.Future[ResponseEnvelope]
    destination: str
    action: str
    timer: asyncio.TimerHandle | None = None


class MessageRouter:
    """Correlates requests with responses and dispatches incoming actions."""

    def __init__(
        self,
        context: ContextKind,
        address: str,
        transport: Transport,
        *,
        default_timeout: float | None = 30.0,
    ) -> None:
        self.context = context
        self.address = address
        self._transport = transport
        self._default_timeout = default_timeout

        self._handlers: dict[str, Handler] = {}
        self._mounts: dict[str, Dispatcher] = {}
        self._pending: dict[str, _Waiter] = {}
        # (origin address, correlation id) -> request, for requests whose handler is still running
        self._in_flight: dict[tuple[str, str], RequestEnvelope] = {}
        self._tasks = TaskGroup(address)
        self._closed = False

    # -- Registration --

    def register(self, action: str, handler: Handler) -> None:
        if action in self._handlers:
            raise ValueError(f'Handler for {action!r} already registered on {self.address}')
        self._handlers[action] = handler

    def handler(self, action: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``."""

        def decorate(func: Handler) -> Handler:
            self.register(action, func)
            return func

        return decorate

    def mount(self, prefix: str, dispatcher: Dispatcher) -> None:
        """Route every action starting with ``prefix`` to ``dispatcher``.

        The dispatcher receives the action name with the prefix stripped.
        """
        if prefix in self._mounts:
            raise ValueError(f'Prefix {prefix!r} already mounted on {self.address}')
        self._mounts[prefix] = dispatcher

    @property
    def actions(self) -> list[str]:
        return sorted(self._handlers)

    @property
    def pending_count(self) -> int:
        """Outstanding requests awaiting a response."""
        return len(self._pending)

    # -- Outgoing --

    def send(
        self,
        destination: str,
        action: str,
        payload: typing.Any = None,
        *,
        expects_response: bool = True,
        timeout: float | None = None,
    ) -> asyncio.Future[ResponseEnvelope] | None:
        """Transmit a request.

        Returns a future resolving to the response envelope, or None for a
        fire-and-forget notification. The future fails with DeliveryError when
        the destination is unreachable, unloads before answering, or stays
        silent past ``timeout`` (router default when None).

        Raises:
            DeliveryError: Only for notifications, which have no future to fail.
        """
        if not expects_response:
            if self._closed:
                raise DeliveryError(destination, 'router closed')
            envelope = RequestEnvelope(
                action=action,
                payload=payload,
                origin_context=self.context,
                origin_address=self.address,
            )
            self._transport.deliver(destination, encode_envelope(envelope))
            return None
        return self._request(destination, action, payload, timeout)

    def _request(
        self,
        destination: str,
        action: str,
        payload: typing.Any,
        timeout: float | None,
    ) -> asyncio.Future[ResponseEnvelope]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[ResponseEnvelope] = loop.create_future()
        if self._closed:
            future.set_exception(DeliveryError(destination, 'router closed'))
            return future

        correlation_id = self._new_correlation_id()
        envelope = RequestEnvelope(
            action=action,
            payload=payload,
            correlation_id=correlation_id,
            origin_context=self.context,
            origin_address=self.address,
        )
        data = encode_envelope(envelope)

        waiter = _Waiter(future=future, destination=destination, action=action)
        self._pending[correlation_id] = waiter
        try:
            self._transport.deliver(destination, data)
        except DeliveryError as e:
            del self._pending[correlation_id]
            future.set_exception(e)
            return future

        effective_timeout = self._default_timeout if timeout is None else timeout
        if effective_timeout is not None:
            waiter.timer = loop.call_later(effective_timeout, self._expire, correlation_id, effective_timeout)

        logger.debug(f'[{self.address}] -> {destination} {action} ({correlation_id})')
        return future

    async def call(
        self,
        destination: str,
        action: str,
        payload: typing.Any = None,
        *,
        timeout: float | None = None,
    ) -> typing.Any:
        """Send a request and return the response data.

        Raises:
            DeliveryError: Destination unreachable or silent.
            RemoteActionError: The destination answered with ``success=false``.
        """
        response = await self._request(destination, action, payload, timeout)
        if not response.success:
            raise RemoteActionError(action, response.error or f'{action} failed')
        return response.data

    def notify(self, destination: str, action: str, payload: typing.Any = None) -> bool:
        """Fire-and-forget. Returns False (and logs) when delivery fails."""
        try:
            self.send(destination, action, payload, expects_response=False)
        except DeliveryError as e:
            logger.warning(f'[{self.address}] Notification {action} not delivered: {e}')
            return False
        return True

    # -- Incoming (transport-invoked) --

    def on_message(self, raw: str) -> None:
        try:
            envelope = decode_envelope(raw)
        except pydantic.ValidationError as e:
            logger.warning(f'[{self.address}] Dropping malformed envelope ({e.error_count()} errors)')
            return

        if isinstance(envelope, ResponseEnvelope):
            self._resolve(envelope)
        else:
            self._dispatch(envelope)

    def on_delivery_failure(self, correlation_id: str, destination: str, reason: str) -> None:
        waiter = self._pending.pop(correlation_id, None)
        if waiter is None:
            return
        self._fail_waiter(waiter, DeliveryError(destination, reason))

    # -- Teardown --

    async def close(self) -> None:
        """Fail outstanding waiters, bounce unanswered requests, cancel handler tasks."""
        if self._closed:
            return
        self._closed = True

        for waiter in self._pending.values():
            self._fail_waiter(waiter, DeliveryError(waiter.destination, 'router closed'))
        self._pending.clear()

        for (origin, correlation_id), request in list(self._in_flight.items()):
            logger.debug(f'[{self.address}] Abandoning {request.action} ({correlation_id})')
            self._transport.bounce(origin, correlation_id, self.address, 'context unloaded')
        self._in_flight.clear()

        self._tasks.cancel_all()
        await self._tasks.drain()

    # -- Internals --

    def _new_correlation_id(self) -> str:
        while True:
            correlation_id = uuid.uuid4().hex
            if correlation_id not in self._pending:
                return correlation_id

    def _expire(self, correlation_id: str, timeout: float) -> None:
        waiter = self._pending.pop(correlation_id, None)
        if waiter is None:
            return
        logger.warning(f'[{self.address}] {waiter.action} to {waiter.destination} timed out after {timeout}s')
        self._fail_waiter(waiter, DeliveryError(waiter.destination, f'no response within {timeout}s'))

    def _fail_waiter(self, waiter: _Waiter, error: DeliveryError) -> None:
        if waiter.timer is not None:
            waiter.timer.cancel()
        if not waiter.future.done():
            waiter.future.set_exception(error)

    def _resolve(self, response: ResponseEnvelope) -> None:
        waiter = self._pending.pop(response.correlation_id, None)
        if waiter is None:
            logger.warning(f'[{self.address}] Dropping response for unknown or settled id {response.correlation_id}')
            return
        if waiter.timer is not None:
            waiter.timer.cancel()
        if waiter.future.done():
            logger.debug(f'[{self.address}] Caller abandoned {waiter.action} ({response.correlation_id})')
            return
        waiter.future.set_result(response)

    def _lookup(self, action: str) -> Handler | None:
        for prefix, dispatcher in self._mounts.items():
            if action.startswith(prefix):
                return functools.partial(dispatcher, action.removeprefix(prefix))
        return self._handlers.get(action)

    def _dispatch(self, request: RequestEnvelope) -> None:
        target = self._lookup(request.action)
        if target is None:
            error = UnknownActionError(request.action)
            logger.warning(f'[{self.address}] {error} (from {request.origin_address})')
            self._respond(request, success=False, error=str(error))
            return

        sender = Sender(address=request.origin_address, context=request.origin_context)
        try:
            result = target(request.payload, sender)
        except Exception as exc:
            self._respond_failure(request, exc)
            return

        if inspect.isawaitable(result):
            if request.correlation_id is not None:
                self._in_flight[(request.origin_address, request.correlation_id)] = request
            self._tasks.submit(self._finish(request, result))
            return

        self._respond(request, success=True, data=result)

    async def _finish(self, request: RequestEnvelope, awaitable: typing.Awaitable[typing.Any]) -> None:
        try:
            data = await awaitable
        except Exception as exc:
            self._in_flight.pop((request.origin_address, request.correlation_id or ''), None)
            self._respond_failure(request, exc)
            return
        self._in_flight.pop((request.origin_address, request.correlation_id or ''), None)
        self._respond(request, success=True, data=data)

    def _respond_failure(self, request: RequestEnvelope, exc: Exception) -> None:
        failure = HandlerFailure(request.action, exc)
        logger.warning(f'[{self.address}] {failure}')
        message = str(exc) if isinstance(exc, BridgeError) else f'{type(exc).__name__}: {exc}'
        self._respond(request, success=False, error=message)

    def _respond(
        self,
        request: RequestEnvelope,
        *,
        success: bool,
        data: typing.Any = None,
        error: str | None = None,
    ) -> None:
        if request.correlation_id is None:
            return

        response = ResponseEnvelope(correlation_id=request.correlation_id, success=success, data=data, error=error)
        try:
            raw = encode_envelope(response)
        except pydantic_core.PydanticSerializationError as e:
            logger.error(f'[{self.address}] {request.action} returned an unserializable result: {e}')
            response = ResponseEnvelope(
                correlation_id=request.correlation_id,
                success=False,
                error=f'{request.action} returned an unserializable result',
            )
            raw = encode_envelope(response)

        try:
            self._transport.deliver(request.origin_address, raw)
        except DeliveryError as e:
            logger.warning(f'[{self.address}] Response to {request.action} lost: {e}')
