"""Document model and the DOM-level operations run against it."""

from __future__ import annotations

from page_bridge.dom.document import DomEvent, MutationRecord, Observer, PageDocument

__all__ = [
    'DomEvent',
    'MutationRecord',
    'Observer',
    'PageDocument',
]
