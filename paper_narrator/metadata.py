"""Recover title, authors, and publication date from the first page."""

import logging
import re

from paper_narrator.constants import (
    AUTHOR_LIST_MAX_CHARS,
    AUTHOR_MARKER_LINE_MAX_CHARS,
    AUTHOR_PARAGRAPH_MAX_CHARS,
    AUTHOR_SCAN,
    MAX_AUTHORS,
    TITLE_FALLBACK_MAX_CHARS,
    TITLE_FALLBACK_SCAN,
    TITLE_MAX_SIZE_DELTA,
    TITLE_MIN_BODY_DELTA,
    TITLE_MIN_CHARS,
    UNTITLED,
)
from paper_narrator.models import Meta, Paragraph
from paper_narrator.rules import (
    AUTHOR_EXCLUDE_WORDS,
    has_academic_markers,
    is_affiliation,
    is_first_page_noise,
    looks_like_person_name,
    strip_markers,
)

logger = logging.getLogger(__name__)

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
    "|Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sep|Oct|Nov|Dec"
)
_FULL_DATE_RE = re.compile(rf"\d{{1,2}}\s+(?:{_MONTHS})\s+\d{{4}}")
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_AND_RE = re.compile(r"\s+and\s+", re.IGNORECASE)


def _extract_title_by_size(page: list[Paragraph], body_font_size: float) -> tuple[list[str], int]:
    """Accumulate the run of largest-font paragraphs on page 1."""
    candidates = [p for p in page if not is_first_page_noise(p.text)]
    max_size = max((p.font_size for p in candidates), default=body_font_size)
    threshold = max(body_font_size + TITLE_MIN_BODY_DELTA, max_size - TITLE_MAX_SIZE_DELTA)

    parts = []
    end = 0
    for index, para in enumerate(page):
        if is_first_page_noise(para.text):
            if parts:
                end = index
                break
            continue
        if para.font_size >= threshold and len(para.text) > TITLE_MIN_CHARS:
            parts.append(para.text)
            end = index + 1
        elif parts:
            break
    return parts, end


def _extract_title_by_pattern(page: list[Paragraph]) -> tuple[list[str], int]:
    """Fallback for flat font sizes: capitalized lines up to the author block."""
    parts = []
    end = 0
    for index, para in enumerate(page[:TITLE_FALLBACK_SCAN]):
        text = para.text
        if is_first_page_noise(text):
            continue
        if len(text) < 5 or "@" in text:
            continue

        if (has_academic_markers(text) and len(text) < AUTHOR_MARKER_LINE_MAX_CHARS) or (
            looks_like_person_name(text) and parts
        ):
            end = index
            break

        if is_affiliation(text):
            if parts:
                end = index
                break
            continue

        if text.lower().startswith("abstract"):
            end = index
            break

        if text[0].isupper() and len(text) < TITLE_FALLBACK_MAX_CHARS:
            parts.append(text)
            end = index + 1
        elif parts:
            end = index
            break
    return parts, end


def _split_author_names(text: str) -> list[str]:
    cleaned = _AND_RE.sub(",", strip_markers(text))
    names = []
    for candidate in cleaned.split(","):
        name = candidate.strip()
        if not 2 < len(name) < 50:
            continue
        if any(word in name.lower() for word in AUTHOR_EXCLUDE_WORDS):
            continue
        names.append(name)
    return names


def _is_author_list(text: str) -> bool:
    has_commas = "," in text and not text.endswith(",")
    has_and = " and " in text.lower()
    return (
        has_academic_markers(text)
        or looks_like_person_name(text)
        or ((has_commas or has_and) and len(text) < AUTHOR_LIST_MAX_CHARS)
    )


def _extract_authors(page: list[Paragraph], start: int) -> list[str]:
    authors = []
    found = False
    for para in page[start:start + AUTHOR_SCAN]:
        text = para.text
        lower = text.lower()

        if lower.startswith("abstract") or lower.startswith("introduction"):
            break
        if len(text) > AUTHOR_PARAGRAPH_MAX_CHARS:
            break
        if is_first_page_noise(text):
            continue
        if is_affiliation(text) or "@" in text:
            continue

        if _is_author_list(text):
            found = True
            authors.extend(_split_author_names(text))
        elif found:
            break
    return authors[:MAX_AUTHORS]


def _extract_date(page: list[Paragraph]) -> str | None:
    for para in page:
        match = _FULL_DATE_RE.search(para.text)
        if match:
            return match.group(0)
    for para in page:
        match = _YEAR_RE.search(para.text)
        if match:
            return match.group(0)
    return None


def extract_metadata(paragraphs: list[Paragraph], body_font_size: float) -> Meta:
    """Extract title, authors and date from the page-1 paragraphs.

    Falls back to ("Untitled", no authors, no date) when page 1 is empty.
    """
    page = [p for p in paragraphs if p.page_number == 1]
    if not page:
        return Meta(title=UNTITLED)

    parts, title_end = _extract_title_by_size(page, body_font_size)
    if not parts:
        logger.debug("No title by font size, falling back to text patterns")
        parts, title_end = _extract_title_by_pattern(page)

    title = " ".join(parts) if parts else UNTITLED
    authors = _extract_authors(page, title_end)
    date = _extract_date(page)
    return Meta(title=title, authors=tuple(authors), date=date)
