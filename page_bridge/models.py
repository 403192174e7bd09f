"""Pydantic models for envelopes and the data that crosses context boundaries."""

from __future__ import annotations

import typing
from collections.abc import Sequence
from typing import Annotated

import pydantic
from pydantic import Field, TypeAdapter
from pydantic.alias_generators import to_camel

__all__ = [
    'StrictModel',
    'WireModel',
    'ContextKind',
    'RequestEnvelope',
    'ResponseEnvelope',
    'Envelope',
    'encode_envelope',
    'decode_envelope',
    'FilledField',
    'ImageInfo',
    'LinkInfo',
    'FormInput',
    'FormInfo',
    'MetaInfo',
    'PageData',
    'HeadingCounts',
    'StructureInfo',
    'AccessibilityInfo',
    'SeoInfo',
    'PageAnalysis',
    'PageStats',
    'PageInfo',
]

ContextKind: typing.TypeAlias = typing.Literal['coordinator', 'mediator', 'page', 'popup', 'options', 'bridge']


class StrictModel(pydantic.BaseModel):
    """Base model with strict validation - no extra fields, immutable after creation."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )


class WireModel(StrictModel):
    """Strict model serialized with camelCase keys, the shape every context speaks."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, typing.Any]:
        """Plain JSON-compatible dict with wire (camelCase) keys."""
        return self.model_dump(mode='json', by_alias=True)


# -- Envelopes --


class RequestEnvelope(WireModel):
    """An action-tagged message. ``correlation_id`` is None for notifications."""

    type: typing.Literal['request'] = 'request'
    action: str
    payload: typing.Any = None
    correlation_id: str | None = None
    origin_context: ContextKind
    origin_address: str


class ResponseEnvelope(WireModel):
    """The single answer to a correlated request."""

    type: typing.Literal['response'] = 'response'
    correlation_id: str
    success: bool
    data: typing.Any = None
    error: str | None = None


Envelope: typing.TypeAlias = RequestEnvelope | ResponseEnvelope

_envelope_adapter: TypeAdapter[RequestEnvelope | ResponseEnvelope] = TypeAdapter(
    Annotated[RequestEnvelope | ResponseEnvelope, Field(discriminator='type')]
)


def encode_envelope(envelope: Envelope) -> str:
    """Serialize to the JSON string that crosses the fabric."""
    return envelope.model_dump_json(by_alias=True, exclude_none=True)


def decode_envelope(raw: str | bytes) -> Envelope:
    """Parse and validate an incoming JSON envelope.

    Raises:
        pydantic.ValidationError: If the payload is not a well-formed envelope.
    """
    return _envelope_adapter.validate_json(raw)


# -- Auto-fill --


class FilledField(WireModel):
    """One form field written by the auto-fill engine."""

    field: str  # name, else id, else 'unknown'
    value: str
    type: str  # input type, or 'textarea'


# -- Page inspection --


class ImageInfo(WireModel):
    src: str
    alt: str
    width: str | None
    height: str | None


class LinkInfo(WireModel):
    href: str
    text: str
    title: str


class FormInput(WireModel):
    name: str
    type: str
    value: str
    placeholder: str


class FormInfo(WireModel):
    action: str
    method: str
    inputs: Sequence[FormInput]


class MetaInfo(WireModel):
    description: str
    keywords: str
    author: str
    viewport: str


class PageData(WireModel):
    """Snapshot of a document's content, as extracted by the page host."""

    title: str
    url: str
    domain: str
    text: str
    text_length: int
    element_count: int
    image_count: int
    link_count: int
    form_count: int
    images: Sequence[ImageInfo]
    links: Sequence[LinkInfo]
    forms: Sequence[FormInfo]
    meta: MetaInfo
    timestamp: float


class HeadingCounts(WireModel):
    h1: int
    h2: int
    h3: int
    h4: int
    h5: int
    h6: int


class StructureInfo(WireModel):
    headings: HeadingCounts
    sections: int
    articles: int
    navs: int
    asides: int
    footers: int


class AccessibilityInfo(WireModel):
    images_without_alt: int
    links_without_text: int
    headings_without_text: int


class SeoInfo(WireModel):
    title_length: int
    meta_description_length: int
    has_h1: bool
    has_meta_description: bool
    has_meta_keywords: bool


class PageAnalysis(PageData):
    """Page data extended with structure, accessibility and SEO facts."""

    structure: StructureInfo
    accessibility: AccessibilityInfo
    seo: SeoInfo


class PageStats(WireModel):
    element_count: int
    text_length: int
    image_count: int
    link_count: int
    form_count: int
    script_count: int
    style_count: int
    iframe_count: int
    video_count: int
    audio_count: int
    canvas_count: int
    svg_count: int


class PageInfo(WireModel):
    """What the mediator reports about its document (sidebar info panel)."""

    url: str
    title: str
    element_count: int
