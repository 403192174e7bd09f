"""Tests for PDF text extraction with PyMuPDF."""

from __future__ import annotations

import fitz
import pytest

from page_bridge.pdf_text import PyMuPdfParser, extract_pdf_text


def make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_text_per_page() -> None:
    result = extract_pdf_text(make_pdf('Phone 13812345678', 'Email a@b.com'))

    assert result.page_count == 2
    assert 'Phone 13812345678' in result.pages[0]
    assert 'Email a@b.com' in result.pages[1]
    assert result.text.index('Phone') < result.text.index('Email')


def test_parser_returns_joined_text() -> None:
    assert 'hello' in PyMuPdfParser().parse(make_pdf('hello'))


def test_blank_pdf_yields_empty_text() -> None:
    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()

    assert extract_pdf_text(data).text.strip() == ''


def test_non_pdf_rejected() -> None:
    with pytest.raises(ValueError, match='Not a PDF'):
        extract_pdf_text(b'PK\x03\x04 zip archive')
