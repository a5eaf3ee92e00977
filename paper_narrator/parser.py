"""Assemble extracted lines into a StructuralRecord."""

import logging
import uuid
from pathlib import Path

from paper_narrator.errors import InvalidDocument, NoExtractableText, ParseError, ParsingFailed
from paper_narrator.extraction import extract_pages
from paper_narrator.figures import extract_figures
from paper_narrator.merger import compute_body_font_size, merge_into_paragraphs
from paper_narrator.metadata import extract_metadata
from paper_narrator.models import RawLine, StructuralRecord
from paper_narrator.segmenter import segment_sections

logger = logging.getLogger(__name__)


def parse_pages(pages: list[list[RawLine]], document_id: str | None = None) -> StructuralRecord:
    """Build a StructuralRecord from per-page RawLines.

    Raises InvalidDocument for zero pages, NoExtractableText when no line
    has text, and ParsingFailed for any unexpected error while structuring.
    Malformed content never fails the parse; it degrades to defaults.
    """
    if not pages:
        raise InvalidDocument("Document has no pages")

    lines = [line for page in pages for line in page if line.text.strip()]
    if not lines:
        raise NoExtractableText("No text found on any page")

    try:
        body_font_size = compute_body_font_size(lines)
        paragraphs = merge_into_paragraphs(lines, body_font_size)
        meta = extract_metadata(paragraphs, body_font_size)
        sections, sentences = segment_sections(paragraphs)
        figures = extract_figures(paragraphs)
    except ParseError:
        raise
    except Exception as e:
        raise ParsingFailed(f"Could not structure document: {e}") from e

    record = StructuralRecord(
        id=document_id or str(uuid.uuid4()),
        meta=meta,
        sections=tuple(sections),
        sentences=tuple(sentences),
        figures=tuple(figures),
    )
    logger.info(
        "Parsed %r: %d sections, %d sentences, %d figures (body font %.1fpt)",
        meta.title, len(sections), len(sentences), len(figures), body_font_size,
    )
    return record


def parse_pdf(path: str | Path) -> StructuralRecord:
    """Extract and structure a PDF file."""
    return parse_pages(extract_pages(path))
