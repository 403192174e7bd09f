"""PDF text extraction for resume parsing.

Dependencies:
    - PyMuPDF (fitz): text layer extraction. Scanned PDFs without a text
      layer yield empty text; OCR is not attempted.
"""

from __future__ import annotations

__all__ = [
    'PdfText',
    'PyMuPdfParser',
    'extract_pdf_text',
]

import dataclasses
import logging

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class PdfText:
    """Text of a PDF, page by page."""

    page_count: int
    pages: tuple[str, ...]

    @property
    def text(self) -> str:
        return '\n'.join(self.pages)


def extract_pdf_text(data: bytes) -> PdfText:
    """Extract the text layer of every page of an in-memory PDF.

    Raises:
        ValueError: ``data`` is not a PDF.
        Any other exception from PyMuPDF - not swallowed.
    """
    if not data.startswith(b'%PDF'):
        raise ValueError('Not a PDF document')

    doc = fitz.open(stream=data, filetype='pdf')
    try:
        pages = tuple(doc[page_num].get_text() for page_num in range(doc.page_count))
    finally:
        doc.close()

    logger.debug(f'Extracted {sum(len(page) for page in pages)} chars from {len(pages)} PDF page(s)')
    return PdfText(page_count=len(pages), pages=pages)


class PyMuPdfParser:
    """Default ``DocumentParser``: PDF bytes in, plain text out."""

    def parse(self, data: bytes) -> str:
        return extract_pdf_text(data).text
