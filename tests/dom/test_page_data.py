"""Tests for page inspection and presentation helpers."""

from __future__ import annotations

import asyncio

import pytest

from page_bridge.dom.document import PageDocument, parse_style
from page_bridge.dom.page_data import (
    CUSTOM_STYLE_ID,
    add_custom_styles,
    analyze_page,
    extract_page_data,
    get_page_stats,
    highlight_element,
    remove_custom_styles,
    scroll_to_element,
)

SHOP = """
<html>
<head>
  <title>Corner Shop</title>
  <meta name="description" content="Fresh bread daily">
  <meta name="viewport" content="width=device-width">
  <link rel="stylesheet" href="/site.css">
</head>
<body>
  <nav><a href="/">Home</a><a href="/cart" title="Cart"><img src="/cart.png"></a></nav>
  <section>
    <h1>Bakery</h1>
    <h2></h2>
    <img src="/bread.jpg" alt="Bread" width="300">
    <p id="hours" style="color: blue">Open 8 to 18.</p>
  </section>
  <form action="/search">
    <input name="q" placeholder="Search">
    <select name="sort"><option value="price">Price</option><option value="name" selected>Name</option></select>
    <textarea name="notes">leave at door</textarea>
    <button>Go</button>
  </form>
  <script>console.log('ready')</script>
  <footer>Copyright</footer>
</body>
</html>
"""


@pytest.fixture
def document() -> PageDocument:
    return PageDocument(SHOP, 'https://shop.example.com/bakery?x=1')


class TestExtract:
    def test_counts_and_identity(self, document: PageDocument) -> None:
        data = extract_page_data(document)

        assert data.title == 'Corner Shop'
        assert data.domain == 'shop.example.com'
        assert data.image_count == 2
        assert data.link_count == 2
        assert data.form_count == 1
        assert data.text_length == len(data.text)
        assert 'Open 8 to 18.' in data.text
        assert "console.log('ready')" not in data.text

    def test_images_links_and_meta(self, document: PageDocument) -> None:
        data = extract_page_data(document)

        assert data.images[1].alt == 'Bread'
        assert data.images[1].width == '300'
        assert data.images[0].height is None
        assert [link.href for link in data.links] == ['/', '/cart']
        assert data.links[1].title == 'Cart'
        assert data.meta.description == 'Fresh bread daily'
        assert data.meta.keywords == ''

    def test_form_controls(self, document: PageDocument) -> None:
        form = extract_page_data(document).forms[0]

        assert form.action == '/search'
        assert form.method == 'get'
        assert [(i.name, i.type, i.value) for i in form.inputs] == [
            ('q', 'text', ''),
            ('sort', 'select-one', 'name'),
            ('notes', 'textarea', 'leave at door'),
            ('', 'submit', ''),
        ]

    def test_wire_form_is_camel_case(self, document: PageDocument) -> None:
        wire = extract_page_data(document).to_wire()

        assert 'textLength' in wire
        assert 'imageCount' in wire


class TestAnalyze:
    def test_structure_accessibility_and_seo(self, document: PageDocument) -> None:
        analysis = analyze_page(document)

        assert analysis.structure.headings.h1 == 1
        assert analysis.structure.headings.h2 == 1
        assert analysis.structure.sections == 1
        assert analysis.structure.navs == 1
        assert analysis.structure.footers == 1
        assert analysis.accessibility.images_without_alt == 1
        assert analysis.accessibility.links_without_text == 1
        assert analysis.accessibility.headings_without_text == 1
        assert analysis.seo.has_h1 is True
        assert analysis.seo.has_meta_description is True
        assert analysis.seo.has_meta_keywords is False
        assert analysis.seo.title_length == len('Corner Shop')
        assert analysis.title == 'Corner Shop'


class TestStats:
    def test_element_kinds(self, document: PageDocument) -> None:
        stats = get_page_stats(document)

        assert stats.element_count == len(document.elements())
        assert stats.script_count == 1
        assert stats.style_count == 1
        assert stats.image_count == 2
        assert stats.iframe_count == 0


class TestCustomStyles:
    def test_single_managed_style_element(self, document: PageDocument) -> None:
        add_custom_styles(document, 'p { color: red }')
        add_custom_styles(document, 'p { color: green }')

        styles = document.soup.find_all('style', id=CUSTOM_STYLE_ID)
        assert len(styles) == 1
        assert styles[0].string == 'p { color: green }'
        assert styles[0].parent is document.head

    def test_remove(self, document: PageDocument) -> None:
        add_custom_styles(document, 'p {}')

        assert remove_custom_styles(document) is True
        assert remove_custom_styles(document) is False
        assert document.soup.find('style', id=CUSTOM_STYLE_ID) is None

    def test_fragment_without_head_gets_one(self) -> None:
        document = PageDocument('<p>bare</p>')

        add_custom_styles(document, 'p {}')

        assert document.soup.find('head') is not None


class TestScrollAndHighlightElement:
    def test_scroll_records_target(self, document: PageDocument) -> None:
        assert scroll_to_element(document, '#hours') is True
        assert document.scroll_target is document.select_one('#hours')
        assert scroll_to_element(document, '#missing') is False

    async def test_highlight_then_restore(self, document: PageDocument) -> None:
        assert highlight_element(document, '#hours', duration=0.02) is True
        element = document.select_one('#hours')
        assert element is not None

        assert parse_style(element['style']) == {
            'color': 'blue',
            'background-color': '#ffff00',
            'border': '2px solid #ff0000',
        }

        await asyncio.sleep(0.05)

        assert parse_style(element['style']) == {'color': 'blue'}

    async def test_non_positive_duration_keeps_highlight(self, document: PageDocument) -> None:
        highlight_element(document, 'h1', background_color='pink', duration=0)
        await asyncio.sleep(0.01)

        element = document.select_one('h1')
        assert element is not None
        assert parse_style(element['style'])['background-color'] == 'pink'

    async def test_teardown_cancels_pending_restore(self, document: PageDocument) -> None:
        highlight_element(document, 'h1', duration=0.01)
        document.teardown()
        await asyncio.sleep(0.03)

        element = document.select_one('h1')
        assert element is not None
        assert 'background-color' in parse_style(element['style'])

    def test_missing_selector(self, document: PageDocument) -> None:
        assert highlight_element(document, '.nope') is False
