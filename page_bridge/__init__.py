"""page-bridge: isolated contexts cooperating over JSON messages to inspect and fill hosted pages."""

from __future__ import annotations

from page_bridge.autofill import FieldKind, auto_fill, classify
from page_bridge.capabilities import Capability, CapabilityRegistry
from page_bridge.dom import PageDocument
from page_bridge.errors import (
    BridgeError,
    CapabilityNotFoundError,
    DeliveryError,
    HandlerFailure,
    PatternError,
    RemoteActionError,
    UnknownActionError,
)
from page_bridge.router import MessageRouter
from page_bridge.runtime import Extension
from page_bridge.transport import Fabric

__all__ = [
    'BridgeError',
    'Capability',
    'CapabilityNotFoundError',
    'CapabilityRegistry',
    'DeliveryError',
    'Extension',
    'Fabric',
    'FieldKind',
    'HandlerFailure',
    'MessageRouter',
    'PageDocument',
    'PatternError',
    'RemoteActionError',
    'UnknownActionError',
    'auto_fill',
    'classify',
]
