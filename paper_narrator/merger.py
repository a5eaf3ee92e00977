"""Merge raw extracted lines into paragraphs and clean their text."""

import logging
import re
from collections import defaultdict

from paper_narrator.constants import (
    DEFAULT_BODY_FONT_SIZE,
    HEADING_LINE_MAX_CHARS,
    HEADING_LINE_SIZE_DELTA,
    PAGE_NUMBER_MAX_CHARS,
    SAME_FONT_SIZE_DELTA,
)
from paper_narrator.headings import classify_heading
from paper_narrator.models import Paragraph, RawLine

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://\S+")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# (Smith et al., 2020) / (Jones 2019a)
_PAREN_CITATION_RE = re.compile(r"\([A-Za-z][^)]{0,100}\d{4}[a-z]?[^)]{0,20}\)")
# [3] / [32, 135]
_BRACKET_CITATION_RE = re.compile(r"\[\d+(?:,\s*\d+)*\]")
# Running-header datelines like "APRIL 2023"
_DATELINE_RE = re.compile(
    r"\b(?:JANUARY|FEBRUARY|MARCH|APRIL|MAY|JUNE|JULY|AUGUST|SEPTEMBER|OCTOBER|NOVEMBER|DECEMBER)\s+\d{4}\b"
)
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_HYPHEN_BREAK_RE = re.compile(r"-\s+")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip URLs, emails, citation markers and datelines; tidy whitespace."""
    t = _URL_RE.sub("", text)
    t = _EMAIL_RE.sub("", t)
    t = _PAREN_CITATION_RE.sub("", t)
    t = _BRACKET_CITATION_RE.sub("", t)
    t = _DATELINE_RE.sub("", t)
    t = _MULTI_SPACE_RE.sub(" ", t)
    t = _HYPHEN_BREAK_RE.sub("-", t)
    return t.strip()


def compute_body_font_size(lines: list[RawLine]) -> float:
    """Most common font size by character count, rounded to the half point."""
    counts = defaultdict(int)
    for line in lines:
        rounded = round(line.font_size * 2) / 2
        counts[rounded] += len(line.text)
    if not counts:
        return DEFAULT_BODY_FONT_SIZE
    return max(counts.items(), key=lambda item: item[1])[0]


def _is_page_number(text: str) -> bool:
    return text.isdigit() and len(text) < PAGE_NUMBER_MAX_CHARS


def merge_into_paragraphs(lines: list[RawLine], body_font_size: float) -> list[Paragraph]:
    """Group consecutive lines that share a font signature into paragraphs.

    A new paragraph starts on a page change, a size change of at least
    SAME_FONT_SIZE_DELTA, a bold flag change, or a heading-like line, so
    headings never merge into neighboring body text.
    """
    paragraphs = []
    buffer = []
    current_size = 0.0
    current_bold = False
    current_page = 0

    def flush():
        if not buffer:
            return
        joined = _WHITESPACE_RE.sub(" ", " ".join(buffer)).strip()
        buffer.clear()
        cleaned = clean_text(joined)
        if not cleaned:
            return
        is_heading, kind = classify_heading(
            cleaned, current_size, current_bold, current_page, body_font_size,
        )
        paragraphs.append(Paragraph(
            text=cleaned,
            font_size=current_size,
            is_bold=current_bold,
            page_number=current_page,
            is_heading=is_heading,
            heading_kind=kind,
        ))

    for line in lines:
        text = line.text.strip()
        if not text or _is_page_number(text):
            continue

        same_font = (
            abs(line.font_size - current_size) < SAME_FONT_SIZE_DELTA
            and line.is_bold == current_bold
        )
        heading_like = (
            (line.font_size > body_font_size + HEADING_LINE_SIZE_DELTA or line.is_bold)
            and len(text) < HEADING_LINE_MAX_CHARS
        )

        if not buffer or line.page_number != current_page or not same_font or heading_like:
            flush()
            current_size = line.font_size
            current_bold = line.is_bold
            current_page = line.page_number

        buffer.append(text)

    flush()
    logger.debug("Merged %d lines into %d paragraphs", len(lines), len(paragraphs))
    return paragraphs
