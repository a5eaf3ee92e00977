"""Build the narration token sequence for a document and playback config."""

from paper_narrator.constants import (
    KIND_APPENDIX,
    KIND_BIBLIOGRAPHY,
    KIND_SUMMARY,
    SILENCE_AFTER_CONCLUSION,
    SILENCE_AFTER_HEADING,
    SILENCE_AFTER_META,
    SILENCE_BEFORE_CONCLUSION,
    SILENCE_BEFORE_HEADING,
)
from paper_narrator.models import (
    HeadingToken,
    Meta,
    PlaybackConfig,
    Section,
    SentenceToken,
    SilenceToken,
    StructuralRecord,
    Token,
)


def _author_credit(meta: Meta) -> str | None:
    """'A and B' for one or two authors; longer lists are not read out."""
    if 0 < len(meta.authors) <= 2:
        return " and ".join(meta.authors)
    return None


def metadata_announcement(meta: Meta) -> str:
    """Opening line: "Title. By A and B. Published 2024"."""
    parts = [meta.title]
    credit = _author_credit(meta)
    if credit:
        parts.append(f"By {credit}")
    if meta.date:
        parts.append(f"Published {meta.date}")
    return ". ".join(parts)


def conclusion_announcement(meta: Meta) -> str:
    """Closing line: "We have now concluded Title by A and B"."""
    parts = ["We have now concluded", meta.title]
    credit = _author_credit(meta)
    if credit:
        parts.append(f"by {credit}")
    return " ".join(parts)


def is_section_enabled(section: Section, config: PlaybackConfig) -> bool:
    if section.kind == KIND_BIBLIOGRAPHY:
        return False
    if section.kind == KIND_APPENDIX and not config.include_appendix:
        return False
    if section.kind == KIND_SUMMARY and not config.include_summary:
        return False
    return section.id in config.enabled_section_ids


def build_sequence(record: StructuralRecord, config: PlaybackConfig) -> tuple[Token, ...]:
    """Ordered tokens: metadata, each enabled section, then the conclusion.

    Pure function of (record, config). Bibliography sections never
    contribute tokens; sentence ids that do not resolve are skipped.
    """
    positions = {sentence.id: i for i, sentence in enumerate(record.sentences)}

    tokens = [
        HeadingToken(metadata_announcement(record.meta)),
        SilenceToken(SILENCE_AFTER_META),
    ]

    for section in record.sections:
        if not is_section_enabled(section, config):
            continue
        tokens.append(SilenceToken(SILENCE_BEFORE_HEADING))
        tokens.append(HeadingToken(section.title))
        tokens.append(SilenceToken(SILENCE_AFTER_HEADING))
        for sentence_id in section.sentence_ids:
            if sentence_id in positions:
                tokens.append(SentenceToken(positions[sentence_id]))

    tokens.append(SilenceToken(SILENCE_BEFORE_CONCLUSION))
    tokens.append(HeadingToken(conclusion_announcement(record.meta)))
    tokens.append(SilenceToken(SILENCE_AFTER_CONCLUSION))
    return tuple(tokens)


def token_text(token: Token, record: StructuralRecord) -> str | None:
    """Spoken text of a token, or None for silences."""
    if isinstance(token, HeadingToken):
        return token.text
    if isinstance(token, SentenceToken):
        if 0 <= token.index < len(record.sentences):
            return record.sentences[token.index].text
        return ""
    return None


def sentence_positions(tokens: tuple[Token, ...]) -> list[int]:
    """Token indices of every SentenceToken, in order."""
    return [i for i, token in enumerate(tokens) if isinstance(token, SentenceToken)]
