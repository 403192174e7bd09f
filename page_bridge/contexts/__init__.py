"""Execution contexts. Each owns one router and shares nothing but the fabric."""

from __future__ import annotations

from page_bridge.contexts.base import Context
from page_bridge.contexts.coordinator import CoordinatorContext
from page_bridge.contexts.mediator import MediatorContext
from page_bridge.contexts.options import OptionsContext
from page_bridge.contexts.page_host import PageHostContext
from page_bridge.contexts.popup import PopupContext

__all__ = [
    'Context',
    'CoordinatorContext',
    'MediatorContext',
    'OptionsContext',
    'PageHostContext',
    'PopupContext',
]
