"""Text and font extraction from PDF files via PyMuPDF."""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from paper_narrator.errors import InvalidDocument, NoExtractableText
from paper_narrator.models import RawLine

logger = logging.getLogger(__name__)

_BOLD_FLAG = 1 << 4  # PyMuPDF span flag bit 4 = bold
_BOLD_FONT_WORDS = ("bold", "heavy", "black")


def is_bold_span(span: dict) -> bool:
    if span.get("flags", 0) & _BOLD_FLAG:
        return True
    font = span.get("font", "").lower()
    return any(word in font for word in _BOLD_FONT_WORDS)


def _line_runs(line: dict, page_number: int) -> list[RawLine]:
    """Split one visual line into runs of spans sharing size and weight."""
    runs = []
    text = ""
    size = 0.0
    bold = False

    def emit():
        stripped = text.strip()
        if stripped:
            runs.append(RawLine(text=stripped, font_size=size, is_bold=bold, page_number=page_number))

    for span in line.get("spans", []):
        span_text = span.get("text", "")
        if not span_text.strip():
            # Whitespace spans join whatever run they sit in
            text += span_text
            continue
        span_size = round(span.get("size", 0.0), 1)
        span_bold = is_bold_span(span)
        if text.strip() and (span_size != size or span_bold != bold):
            emit()
            text = ""
        if not text.strip():
            size = span_size
            bold = span_bold
        text += span_text

    emit()
    return runs


def extract_page_lines(page: fitz.Page) -> list[RawLine]:
    """Ordered RawLines for one page, top to bottom."""
    page_number = page.number + 1  # 1-based
    page_dict = page.get_text("dict", sort=True)
    lines = []
    for block in page_dict.get("blocks", []):
        if block.get("type") != 0:  # image block
            continue
        for line in block.get("lines", []):
            lines.extend(_line_runs(line, page_number))
    return lines


def extract_pages(path: str | Path) -> list[list[RawLine]]:
    """Return the RawLines of every page, in page order.

    Raises InvalidDocument when the file cannot be opened or has no pages,
    NoExtractableText when no page yields any text.
    """
    try:
        doc = fitz.open(str(path))
    except Exception as e:
        raise InvalidDocument(f"Cannot open document: {path}") from e

    try:
        if doc.page_count == 0:
            raise InvalidDocument(f"Document has no pages: {path}")
        pages = [extract_page_lines(page) for page in doc]
    finally:
        doc.close()

    if not any(pages):
        raise NoExtractableText(f"No extractable text in: {path}")

    logger.info("Extracted %d lines from %d pages", sum(len(p) for p in pages), len(pages))
    return pages
