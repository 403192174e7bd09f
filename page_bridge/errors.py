"""Exception taxonomy shared by every context.

``HandlerFailure`` and ``UnknownActionError`` never leave the destination
context as exceptions: the router turns them into ``success=false`` response
envelopes. ``DeliveryError`` is only ever seen by the original caller.
``PatternError`` is absorbed by text indexing and reported as a zero count.
A value that cannot be classified is not an error at all, it is
``FieldKind.UNCLASSIFIED``.
"""

from __future__ import annotations

__all__ = [
    'BridgeError',
    'CapabilityNotFoundError',
    'DeliveryError',
    'HandlerFailure',
    'PatternError',
    'RemoteActionError',
    'UnknownActionError',
]


class BridgeError(Exception):
    """Base class for all page-bridge errors."""


class UnknownActionError(BridgeError):
    """No handler is registered for the requested action."""

    def __init__(self, action: str) -> None:
        super().__init__(f'unknown action: {action}')
        self.action = action


class HandlerFailure(BridgeError):
    """A handler raised while serving a request."""

    def __init__(self, action: str, cause: BaseException) -> None:
        super().__init__(f'{action} failed: {type(cause).__name__}: {cause}')
        self.action = action
        self.cause = cause


class DeliveryError(BridgeError):
    """The destination context could not be reached or never answered."""

    def __init__(self, destination: str, reason: str) -> None:
        super().__init__(f'cannot deliver to {destination!r}: {reason}')
        self.destination = destination
        self.reason = reason


class PatternError(BridgeError):
    """A user-supplied search pattern or replacement template is invalid."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f'invalid pattern {pattern!r}: {reason}')
        self.pattern = pattern
        self.reason = reason


class CapabilityNotFoundError(BridgeError):
    """The page host has no capability with the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f'capability not found: {name}')
        self.name = name


class RemoteActionError(BridgeError):
    """Caller-side view of a response envelope with ``success=false``."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action
        self.message = message
