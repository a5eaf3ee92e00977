"""Data models for document structure and playback."""

from dataclasses import dataclass

from paper_narrator.constants import KIND_BODY, STATUS_IDLE, UNTITLED


@dataclass(frozen=True)
class RawLine:
    text: str
    font_size: float
    is_bold: bool
    page_number: int   # 1-based


@dataclass(frozen=True)
class Paragraph:
    text: str
    font_size: float       # size of the first line in the paragraph
    is_bold: bool
    page_number: int
    is_heading: bool = False
    heading_kind: str = KIND_BODY


@dataclass(frozen=True)
class Meta:
    title: str = UNTITLED
    authors: tuple[str, ...] = ()
    date: str | None = None


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    kind: str          # "body", "bibliography", "appendix" or "summary"
    sentence_ids: tuple[str, ...] = ()
    included_by_default: bool = True


@dataclass(frozen=True)
class Sentence:
    id: str
    section_id: str
    text: str
    figure_refs: tuple[str, ...] = ()   # e.g. ("Figure 1",)


@dataclass(frozen=True)
class Figure:
    id: str
    label: str
    caption: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class StructuralRecord:
    """The parsed reading structure of one document (a "pack")."""

    id: str
    meta: Meta
    sections: tuple[Section, ...] = ()
    sentences: tuple[Sentence, ...] = ()
    figures: tuple[Figure, ...] = ()

    def integrity_errors(self) -> list[str]:
        """List violations of the section/sentence cross-reference invariants.

        Figure references are advisory and never reported.
        """
        errors = []
        sentence_ids = [s.id for s in self.sentences]
        section_ids = {s.id for s in self.sections}

        seen = set()
        for sid in sentence_ids:
            if sid in seen:
                errors.append(f"duplicate sentence id {sid}")
            seen.add(sid)

        for section in self.sections:
            if len(set(section.sentence_ids)) != len(section.sentence_ids):
                errors.append(f"section {section.id} lists a sentence twice")
            for sid in section.sentence_ids:
                if sid not in seen:
                    errors.append(f"section {section.id} references unknown sentence {sid}")

        for sentence in self.sentences:
            if sentence.section_id not in section_ids:
                errors.append(f"sentence {sentence.id} references unknown section {sentence.section_id}")

        return errors


@dataclass(frozen=True)
class PlaybackConfig:
    document_id: str
    enabled_section_ids: frozenset[str] = frozenset()
    include_appendix: bool = False
    include_summary: bool = False


def default_config(record: StructuralRecord) -> PlaybackConfig:
    """Playback config enabling every section that is on by default."""
    enabled = frozenset(s.id for s in record.sections if s.included_by_default)
    return PlaybackConfig(document_id=record.id, enabled_section_ids=enabled)


@dataclass(frozen=True)
class HeadingToken:
    text: str


@dataclass(frozen=True)
class SentenceToken:
    index: int         # position in StructuralRecord.sentences


@dataclass(frozen=True)
class SilenceToken:
    duration: float    # seconds


Token = HeadingToken | SentenceToken | SilenceToken


@dataclass(frozen=True)
class PlaybackState:
    status: str = STATUS_IDLE
    token_cursor: int = 0
    current_sentence_index: int = 0
    display_window_ids: tuple[str, ...] = ()
    speed_factor: float = 1.0
    heading_text: str | None = None
