"""Tests for ErrorBoundary scope and process modes."""

from __future__ import annotations

import asyncio
import logging

import pytest

from page_bridge.boundary import ErrorBoundary
from page_bridge.errors import BridgeError, DeliveryError


class TestScopeBoundary:
    """``exit_code=None``: handle and continue."""

    def test_no_exception_passes_through(self) -> None:
        with ErrorBoundary(exit_code=None):
            result = 1 + 1
        assert result == 2

    def test_suppresses_and_calls_handler(self) -> None:
        seen: list[Exception] = []

        with ErrorBoundary(exit_code=None, handler=seen.append):
            raise ValueError('bad field')

        assert [str(exc) for exc in seen] == ['bad field']

    def test_loop_continues_past_failures(self) -> None:
        done: list[int] = []

        for n in range(4):
            with ErrorBoundary(exit_code=None, handler=lambda exc: None):
                if n % 2:
                    raise RuntimeError(n)
                done.append(n)

        assert done == [0, 2]

    def test_most_specific_handler_wins(self) -> None:
        boundary = ErrorBoundary(exit_code=None)
        seen: list[str] = []

        @boundary.handler(BridgeError)
        def on_bridge(exc: BridgeError) -> None:
            seen.append('bridge')

        @boundary.handler(Exception)
        def on_any(exc: Exception) -> None:
            seen.append('any')

        with boundary:
            raise DeliveryError('tab:1/mediator', 'gone')
        with boundary:
            raise KeyError('x')

        assert seen == ['bridge', 'any']

    def test_raising_handler_cannot_breach(self) -> None:
        def broken(exc: Exception) -> None:
            raise RuntimeError('handler bug')

        with ErrorBoundary(exit_code=None, handler=broken):
            raise ValueError('original')

    def test_bridge_errors_are_logged_without_traceback(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger='page_bridge.boundary'):
            with ErrorBoundary(exit_code=None):
                raise DeliveryError('popup', 'router closed')
            with ErrorBoundary(exit_code=None):
                raise KeyError('x')

        bridge, unexpected = caplog.records
        assert bridge.levelno == logging.WARNING
        assert bridge.exc_info is None
        assert unexpected.levelno == logging.ERROR
        assert unexpected.exc_info is not None

    @pytest.mark.parametrize('exception', [KeyboardInterrupt, SystemExit, asyncio.CancelledError])
    def test_system_exceptions_pass_through(self, exception: type[BaseException]) -> None:
        with pytest.raises(exception), ErrorBoundary(exit_code=None):
            raise exception


class TestProcessBoundary:
    """Default ``exit_code=1``: handle, then exit."""

    def test_decorated_function_exits(self) -> None:
        boundary = ErrorBoundary()
        seen: list[str] = []

        @boundary
        def main() -> None:
            raise ValueError('boom')

        @boundary.handler(ValueError)
        def on_value_error(exc: ValueError) -> None:
            seen.append(str(exc))

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert seen == ['boom']

    def test_return_value_is_preserved(self) -> None:
        @ErrorBoundary()
        def answer() -> int:
            return 42

        assert answer() == 42

    async def test_async_function(self) -> None:
        @ErrorBoundary(exit_code=3)
        async def run() -> None:
            await asyncio.sleep(0)
            raise RuntimeError('async boom')

        with pytest.raises(SystemExit) as exc_info:
            await run()

        assert exc_info.value.code == 3
