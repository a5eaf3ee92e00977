"""Split merged paragraphs into sections and sentence units."""

import logging
import re
from dataclasses import dataclass, field

from paper_narrator.constants import (
    DEFAULT_SECTION_ID,
    DEFAULT_SECTION_TITLE,
    KIND_BIBLIOGRAPHY,
    KIND_BODY,
    MIN_FRAGMENT_CHARS,
    MIN_PARAGRAPH_CHARS,
    MIN_SENTENCE_CHARS,
)
from paper_narrator.models import Paragraph, Section, Sentence
from paper_narrator.rules import CAPTION_PREFIXES, CONTENT_START_RE, NUMERIC_PREFIX_RE

logger = logging.getLogger(__name__)

# Punctuation and the following capital stay with their sentences
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
_FIGURE_REF_RE = re.compile(r"fig(?:ure|\.)?\s*(\d+[a-z]?)", re.IGNORECASE)


@dataclass
class _OpenSection:
    id: str
    title: str
    kind: str
    sentence_ids: list[str] = field(default_factory=list)

    def close(self) -> Section:
        return Section(
            id=self.id,
            title=self.title,
            kind=self.kind,
            sentence_ids=tuple(self.sentence_ids),
            included_by_default=self.kind == KIND_BODY,
        )


def split_sentences(text: str) -> list[str]:
    """Split a paragraph at sentence-ending punctuation before a capital.

    Fragments shorter than MIN_FRAGMENT_CHARS are merged onto the previous
    sentence so abbreviations like "Dr." or "et al." do not split.
    """
    sentences = []
    for piece in _SENTENCE_BOUNDARY_RE.split(text):
        fragment = piece.strip()
        if not fragment:
            continue
        if len(fragment) < MIN_FRAGMENT_CHARS and sentences:
            sentences[-1] += " " + fragment
        else:
            sentences.append(fragment)
    return sentences or [text]


def extract_figure_refs(text: str) -> list[str]:
    """Normalized figure labels mentioned in a sentence, e.g. ["Figure 3"]."""
    return [f"Figure {m.group(1)}" for m in _FIGURE_REF_RE.finditer(text)]


def normalize_section_title(text: str) -> str:
    title = NUMERIC_PREFIX_RE.sub("", text.strip(), count=1)
    return title.rstrip(":").strip()


def _content_start(paragraphs: list[Paragraph]) -> int:
    for index, para in enumerate(paragraphs):
        if CONTENT_START_RE.search(para.text):
            return index
    logger.info("No abstract or introduction found, reading from the first paragraph")
    return 0


def _is_caption(text: str) -> bool:
    return text.lower().startswith(CAPTION_PREFIXES)


def segment_sections(paragraphs: list[Paragraph]) -> tuple[list[Section], list[Sentence]]:
    """Walk paragraphs in order, opening a section at each heading.

    Front matter before the abstract/introduction is skipped. Sections
    without sentences are dropped, and nothing is read inside a
    bibliography until the next non-bibliography heading.
    """
    sections = []
    sentences = []
    current = _OpenSection(DEFAULT_SECTION_ID, DEFAULT_SECTION_TITLE, KIND_BODY)
    section_index = 0
    in_bibliography = False

    for para in paragraphs[_content_start(paragraphs):]:
        text = para.text
        if len(text) < MIN_PARAGRAPH_CHARS:
            continue
        if not in_bibliography and _is_caption(text):
            continue

        if para.is_heading:
            if current.sentence_ids:
                sections.append(current.close())
            in_bibliography = para.heading_kind == KIND_BIBLIOGRAPHY
            section_index += 1
            current = _OpenSection(
                id=f"sec{section_index}",
                title=normalize_section_title(text),
                kind=para.heading_kind,
            )
            continue

        if in_bibliography:
            continue

        for sentence in split_sentences(text):
            if len(sentence) < MIN_SENTENCE_CHARS:
                continue
            sentence_id = f"sent{len(sentences)}"
            sentences.append(Sentence(
                id=sentence_id,
                section_id=current.id,
                text=sentence,
                figure_refs=tuple(extract_figure_refs(sentence)),
            ))
            current.sentence_ids.append(sentence_id)

    if current.sentence_ids:
        sections.append(current.close())

    return sections, sentences
