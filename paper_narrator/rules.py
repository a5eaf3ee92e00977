"""Rule tables for heading, noise, and author detection.

Each table is plain data so individual rules can be tested and extended
without touching the control flow that consumes them. Tables are checked in
order; the first matching rule wins.
"""

import re
from dataclasses import dataclass

from paper_narrator.constants import KIND_APPENDIX, KIND_BIBLIOGRAPHY, KIND_BODY


@dataclass(frozen=True)
class SectionRule:
    name: str
    pattern: re.Pattern
    kind: str


def _section(name: str, body: str, kind: str = KIND_BODY) -> SectionRule:
    # Optional "3." / "3" prefix and trailing colon, whole paragraph only
    pattern = re.compile(rf"^\s*\d*\.?\s*(?:{body})\s*:?\s*$", re.IGNORECASE)
    return SectionRule(name=name, pattern=pattern, kind=kind)


SECTION_RULES = [
    _section("abstract", r"abstract"),
    _section("introduction", r"introduction"),
    _section("background", r"background"),
    _section("related work", r"related\s+work"),
    _section("methods", r"methods?"),
    _section("methodology", r"methodology"),
    _section("results", r"results?"),
    _section("discussion", r"discussion"),
    _section("conclusion", r"conclusions?"),
    _section("future work", r"future\s+work"),
    _section("acknowledgements", r"acknowledge?ments?"),
    _section("ethical considerations", r"ethical\s+considerations"),
    _section("references", r"references?|bibliography|works\s+cited", KIND_BIBLIOGRAPHY),
    _section("appendix", r"appendi(?:x|ces)", KIND_APPENDIX),
]

# Substring → kind, used once a paragraph is already known to be a heading
KIND_KEYWORDS = (
    ("reference", KIND_BIBLIOGRAPHY),
    ("bibliography", KIND_BIBLIOGRAPHY),
    ("appendix", KIND_APPENDIX),
)

# First-page boilerplate that is never part of the title or author list
NOISE_PHRASES = (
    "arxiv", "preprint", "accepted", "submitted", "proceedings",
    "conference", "journal of", "vol.", "issn", "doi:", "©",
    "copyright", "licensed under", "creative commons",
)

NOISE_PATTERNS = (
    re.compile(r"^cs\.", re.IGNORECASE),     # arXiv category like "cs.CL"
    re.compile(r"^\d{4}\.\d{4,5}"),          # arXiv id like "2301.01234"
)

AFFILIATION_WORDS = ("university", "institute", "department", "college")

# Words that disqualify an author-name candidate after splitting
AUTHOR_EXCLUDE_WORDS = ("university", "institute")

ACADEMIC_MARKERS = frozenset("∗*†‡§¶‖¹²³⁴⁵⁶⁷⁸⁹⁰")

CONTENT_START_RE = re.compile(r"^(?:\d+\.?\s*)?(?:abstract|introduction)", re.IGNORECASE)

NUMBERED_HEADING_RE = re.compile(r"^\d+(?:\.\d+)*\s+[A-Z]")
NUMERIC_PREFIX_RE = re.compile(r"^\d+(?:\.\d+)*\s+")

CAPTION_PREFIXES = ("figure", "fig.", "table")


def match_section_rule(text: str) -> SectionRule | None:
    """Return the first canonical section rule matching the whole text."""
    for rule in SECTION_RULES:
        if rule.pattern.search(text):
            return rule
    return None


def kind_from_keywords(text: str) -> str:
    """Infer a section kind from keywords in a heading, defaulting to body."""
    lower = text.lower()
    for keyword, kind in KIND_KEYWORDS:
        if keyword in lower:
            return kind
    return KIND_BODY


def is_first_page_noise(text: str) -> bool:
    """True for arXiv/conference/copyright boilerplate found on page 1."""
    lower = text.lower()
    if any(phrase in lower for phrase in NOISE_PHRASES):
        return True
    return any(p.search(text) for p in NOISE_PATTERNS)


def is_affiliation(text: str) -> bool:
    lower = text.lower()
    return any(word in lower for word in AFFILIATION_WORDS)


def has_academic_markers(text: str) -> bool:
    return any(ch in ACADEMIC_MARKERS for ch in text)


def strip_markers(text: str) -> str:
    return "".join(ch for ch in text if ch not in ACADEMIC_MARKERS).strip()


def looks_like_person_name(text: str) -> bool:
    """2–5 capitalized words, 4–49 characters once footnote markers are gone."""
    cleaned = strip_markers(text)
    if not 3 < len(cleaned) < 50:
        return False
    words = cleaned.split()
    if not 2 <= len(words) <= 5:
        return False
    for word in words:
        letters = [ch for ch in word if ch.isalpha()]
        if letters and not letters[0].isupper():
            return False
    return True
