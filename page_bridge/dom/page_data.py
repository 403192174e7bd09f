"""Page inspection and presentation helpers exposed as page-host capabilities."""

from __future__ import annotations

__all__ = [
    'CUSTOM_STYLE_ID',
    'extract_page_data',
    'analyze_page',
    'get_page_stats',
    'add_custom_styles',
    'remove_custom_styles',
    'scroll_to_element',
    'highlight_element',
]

import logging
import time
from urllib.parse import urlparse

from bs4.element import Tag

from page_bridge.dom.document import MutationRecord, PageDocument, format_style, parse_style
from page_bridge.models import (
    AccessibilityInfo,
    FormInfo,
    FormInput,
    HeadingCounts,
    ImageInfo,
    LinkInfo,
    MetaInfo,
    PageAnalysis,
    PageData,
    PageStats,
    SeoInfo,
    StructureInfo,
)

logger = logging.getLogger(__name__)

CUSTOM_STYLE_ID = 'page-bridge-custom-styles'

_FORM_CONTROLS = ('input', 'select', 'textarea', 'button', 'fieldset', 'output', 'object')


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ''
    if isinstance(value, list):
        return ' '.join(value)
    return str(value)


def _meta_content(document: PageDocument, name: str) -> str:
    tag = document.soup.find('meta', attrs={'name': name})
    return _attr(tag, 'content') if isinstance(tag, Tag) else ''


def _links(document: PageDocument) -> list[Tag]:
    # document.links: anchors and image-map areas that carry an href
    return [tag for tag in document.soup.find_all(['a', 'area']) if tag.has_attr('href')]


def _form_inputs(form: Tag) -> list[FormInput]:
    inputs = []
    for control in form.find_all(_FORM_CONTROLS):
        if control.name == 'textarea':
            value = control.get_text()
            control_type = 'textarea'
        elif control.name == 'select':
            selected = control.find('option', selected=True) or control.find('option')
            value = ''
            if isinstance(selected, Tag):
                value = _attr(selected, 'value') or selected.get_text()
            control_type = 'select-multiple' if control.has_attr('multiple') else 'select-one'
        else:
            value = _attr(control, 'value')
            control_type = _attr(control, 'type').lower() or ('submit' if control.name == 'button' else 'text')
        inputs.append(
            FormInput(
                name=_attr(control, 'name'),
                type=control_type,
                value=value,
                placeholder=_attr(control, 'placeholder'),
            )
        )
    return inputs


def extract_page_data(document: PageDocument) -> PageData:
    """Title, url, text, media, links, forms and meta of the document."""
    images = document.elements('img')
    links = _links(document)
    forms = document.elements('form')
    text = document.inner_text()

    return PageData(
        title=document.title,
        url=document.url,
        domain=urlparse(document.url).hostname or '',
        text=text,
        text_length=len(text),
        element_count=len(document.elements()),
        image_count=len(images),
        link_count=len(links),
        form_count=len(forms),
        images=[
            ImageInfo(
                src=_attr(img, 'src'),
                alt=_attr(img, 'alt'),
                width=_attr(img, 'width') or None,
                height=_attr(img, 'height') or None,
            )
            for img in images
        ],
        links=[LinkInfo(href=_attr(a, 'href'), text=a.get_text(), title=_attr(a, 'title')) for a in links],
        forms=[
            FormInfo(
                action=_attr(form, 'action'),
                method=(_attr(form, 'method') or 'get').lower(),
                inputs=_form_inputs(form),
            )
            for form in forms
        ],
        meta=MetaInfo(
            description=_meta_content(document, 'description'),
            keywords=_meta_content(document, 'keywords'),
            author=_meta_content(document, 'author'),
            viewport=_meta_content(document, 'viewport'),
        ),
        timestamp=time.time(),
    )


def analyze_page(document: PageDocument) -> PageAnalysis:
    """Page data plus heading structure, accessibility and SEO facts."""
    data = extract_page_data(document)
    headings = {f'h{level}': document.elements(f'h{level}') for level in range(1, 7)}
    all_headings = [tag for tags in headings.values() for tag in tags]

    return PageAnalysis(
        **dict(data),
        structure=StructureInfo(
            headings=HeadingCounts(**{name: len(tags) for name, tags in headings.items()}),
            sections=len(document.elements('section')),
            articles=len(document.elements('article')),
            navs=len(document.elements('nav')),
            asides=len(document.elements('aside')),
            footers=len(document.elements('footer')),
        ),
        accessibility=AccessibilityInfo(
            images_without_alt=sum(1 for img in document.elements('img') if not _attr(img, 'alt')),
            links_without_text=sum(1 for a in _links(document) if not a.get_text().strip()),
            headings_without_text=sum(1 for h in all_headings if not h.get_text().strip()),
        ),
        seo=SeoInfo(
            title_length=len(data.title),
            meta_description_length=len(data.meta.description),
            has_h1=bool(headings['h1']),
            has_meta_description=bool(data.meta.description),
            has_meta_keywords=bool(data.meta.keywords),
        ),
    )


def get_page_stats(document: PageDocument) -> PageStats:
    stylesheets = [
        link for link in document.elements('link') if 'stylesheet' in (link.get('rel') or [])
    ]
    return PageStats(
        element_count=len(document.elements()),
        text_length=len(document.inner_text()),
        image_count=len(document.elements('img')),
        link_count=len(_links(document)),
        form_count=len(document.elements('form')),
        script_count=len(document.elements('script')),
        style_count=len(document.elements('style')) + len(stylesheets),
        iframe_count=len(document.elements('iframe')),
        video_count=len(document.elements('video')),
        audio_count=len(document.elements('audio')),
        canvas_count=len(document.elements('canvas')),
        svg_count=len(document.elements('svg')),
    )


def add_custom_styles(document: PageDocument, css: str) -> None:
    """Create or overwrite the single managed ``<style>`` element."""
    style = document.soup.find('style', id=CUSTOM_STYLE_ID)
    if not isinstance(style, Tag):
        style = document.soup.new_tag('style', id=CUSTOM_STYLE_ID)
        document.head.append(style)
    style.string = css
    document.notify_mutation(MutationRecord(type='childList', target=style))


def remove_custom_styles(document: PageDocument) -> bool:
    style = document.soup.find('style', id=CUSTOM_STYLE_ID)
    if not isinstance(style, Tag):
        return False
    parent = style.parent
    style.decompose()
    if parent is not None:
        document.notify_mutation(MutationRecord(type='childList', target=parent))
    return True


def scroll_to_element(document: PageDocument, selector: str) -> bool:
    """Bring the first element matching ``selector`` into view."""
    element = document.select_one(selector)
    if element is None:
        return False
    document.scroll_target = element
    return True


def highlight_element(
    document: PageDocument,
    selector: str,
    background_color: str = '#ffff00',
    border: str = '2px solid #ff0000',
    duration: float = 3.0,
) -> bool:
    """Outline the first element matching ``selector``.

    The previous inline background and border come back after ``duration``
    seconds; zero or less keeps the highlight.
    """
    element = document.select_one(selector)
    if element is None:
        return False

    styles = parse_style(_attr(element, 'style'))
    original = {prop: styles.get(prop, '') for prop in ('background-color', 'border')}
    styles.update({'background-color': background_color, 'border': border})
    _set_style(document, element, styles)

    if duration > 0:

        def restore() -> None:
            current = parse_style(_attr(element, 'style'))
            current.update(original)
            _set_style(document, element, current)

        document.call_later(duration, restore)
    return True


def _set_style(document: PageDocument, element: Tag, styles: dict[str, str]) -> None:
    formatted = format_style(styles)
    if formatted:
        element['style'] = formatted
    elif element.has_attr('style'):
        del element['style']
    document.notify_mutation(MutationRecord(type='attributes', target=element, attribute_name='style'))
