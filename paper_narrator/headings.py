"""Classify merged paragraphs as headings or body text."""

from paper_narrator.constants import (
    HEADING_MAX_CHARS,
    HEADING_MIN_CHARS,
    HEADING_SIZE_DELTA,
    KIND_BODY,
    TITLE_SIZE_DELTA,
)
from paper_narrator.rules import NUMBERED_HEADING_RE, kind_from_keywords, match_section_rule


def classify_heading(
    text: str,
    font_size: float,
    is_bold: bool,
    page_number: int,
    body_font_size: float,
) -> tuple[bool, str]:
    """Return (is_heading, kind) for a cleaned paragraph.

    Order: canonical section names, numbered headings, then the general
    font heuristic. Oversized text on page 1 is the document title and is
    never a section heading.
    """
    stripped = text.strip()

    rule = match_section_rule(stripped)
    if rule:
        return True, rule.kind

    emphasized = font_size > body_font_size + HEADING_SIZE_DELTA or is_bold

    if NUMBERED_HEADING_RE.search(stripped) and len(stripped) < HEADING_MAX_CHARS and emphasized:
        return True, kind_from_keywords(stripped)

    if (
        emphasized
        and HEADING_MIN_CHARS < len(stripped) < HEADING_MAX_CHARS
        and stripped[0].isupper()
        and not stripped.endswith(".")
    ):
        if page_number == 1 and font_size > body_font_size + TITLE_SIZE_DELTA:
            return False, KIND_BODY
        return True, kind_from_keywords(stripped)

    return False, KIND_BODY
