"""Auto-fill: write one classified value into the matching form fields of a page.

A field receives the value only when the value's kind has a keyword that
appears in the field's fingerprint (name, id, placeholder and label text,
lower-cased). Unclassified values never write anything.
"""

from __future__ import annotations

__all__ = [
    'CANDIDATE_INPUT_TYPES',
    'FieldDescriptor',
    'auto_fill',
    'candidate_fields',
    'describe',
    'resolve_label',
    'should_fill',
]

import dataclasses
import logging

from bs4.element import Tag

from page_bridge.autofill.classify import FieldKind, classify, keywords_for
from page_bridge.boundary import ErrorBoundary
from page_bridge.dom.document import MutationRecord, PageDocument
from page_bridge.models import FilledField

logger = logging.getLogger(__name__)

# An <input> without a type attribute is a text input.
CANDIDATE_INPUT_TYPES = frozenset({'text', 'email', 'tel'})


@dataclasses.dataclass(frozen=True, slots=True)
class FieldDescriptor:
    name: str
    id: str
    placeholder: str
    label: str

    @property
    def fingerprint(self) -> str:
        return f'{self.name} {self.id} {self.placeholder} {self.label}'.lower()


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if isinstance(value, list):
        return ' '.join(value)
    return value or ''


def _input_type(element: Tag) -> str:
    if element.name == 'textarea':
        return 'textarea'
    return _attr(element, 'type').strip().lower() or 'text'


def candidate_fields(document: PageDocument) -> list[Tag]:
    """Text-like inputs and textareas, in document order."""
    return [
        element
        for element in document.soup.find_all(['input', 'textarea'])
        if element.name == 'textarea' or _input_type(element) in CANDIDATE_INPUT_TYPES
    ]


def resolve_label(document: PageDocument, element: Tag) -> str:
    """Text of the field's label: ``label[for=id]``, then an enclosing label, then a preceding sibling label."""
    element_id = _attr(element, 'id')
    if element_id:
        for label in document.soup.find_all('label'):
            if _attr(label, 'for') == element_id:
                return label.get_text()

    enclosing = element.find_parent('label')
    if enclosing is not None:
        return enclosing.get_text()

    previous = element.find_previous_sibling()
    if isinstance(previous, Tag) and previous.name == 'label':
        return previous.get_text()

    return ''


def describe(document: PageDocument, element: Tag) -> FieldDescriptor:
    return FieldDescriptor(
        name=_attr(element, 'name'),
        id=_attr(element, 'id'),
        placeholder=_attr(element, 'placeholder'),
        label=resolve_label(document, element),
    )


def should_fill(descriptor: FieldDescriptor, kind: FieldKind) -> bool:
    fingerprint = descriptor.fingerprint
    return any(keyword in fingerprint for keyword in keywords_for(kind))


def _write(document: PageDocument, element: Tag, value: str) -> None:
    if element.name == 'textarea':
        element.string = value
        document.notify_mutation(MutationRecord(type='childList', target=element))
    else:
        element['value'] = value
        document.notify_mutation(MutationRecord(type='attributes', target=element, attribute_name='value'))
    document.dispatch_event(element, 'input', bubbles=True)
    document.dispatch_event(element, 'change', bubbles=True)


def auto_fill(document: PageDocument, value: str) -> list[FilledField]:
    """Fill every eligible field of ``document`` with ``value``.

    A field that fails to fill is logged and skipped; the scan goes on.

    Returns:
        The fields written, in document order. Empty when the value is
        unclassified or no field matches.
    """
    kind = classify(value)
    if kind is FieldKind.UNCLASSIFIED:
        logger.debug(f'Value {value!r} is unclassified, nothing to fill')
        return []

    filled: list[FilledField] = []

    def skip_field(exc: Exception) -> None:
        logger.warning(f'Skipping field during auto-fill: {type(exc).__name__}: {exc}')

    for element in candidate_fields(document):
        with ErrorBoundary(exit_code=None, handler=skip_field):
            descriptor = describe(document, element)
            if not should_fill(descriptor, kind):
                continue
            _write(document, element, value)
            filled.append(
                FilledField(
                    field=descriptor.name or descriptor.id or 'unknown',
                    value=value,
                    type=_input_type(element),
                )
            )

    logger.info(f'Auto-fill wrote {kind} value into {len(filled)} field(s)')
    return filled
