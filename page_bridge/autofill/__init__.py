"""Field classification and form auto-fill."""

from __future__ import annotations

from page_bridge.autofill.classify import FieldKind, classify
from page_bridge.autofill.engine import auto_fill, candidate_fields, resolve_label

__all__ = [
    'FieldKind',
    'auto_fill',
    'candidate_fields',
    'classify',
    'resolve_label',
]
