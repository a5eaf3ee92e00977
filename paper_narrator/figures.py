"""Recover figure and table captions from paragraph text."""

import re

from paper_narrator.models import Figure, Paragraph

_CAPTION_RE = re.compile(
    r"(?P<label>(?P<type>fig(?:ure|\.)?|table)\s*(?P<number>\d+[a-z]?))\s*[:.]\s*(?P<caption>.+)",
    re.IGNORECASE,
)


def normalize_label(kind: str, number: str) -> str:
    """Normalize a caption label: fig. 3 → Figure 3, TABLE 2 → Table 2."""
    prefix = "Table" if kind.lower() == "table" else "Figure"
    return f"{prefix} {number}"


def extract_figures(paragraphs: list[Paragraph]) -> list[Figure]:
    """One Figure per caption-like paragraph, duplicates included."""
    figures = []
    for para in paragraphs:
        match = _CAPTION_RE.search(para.text)
        if not match:
            continue
        caption = match.group("caption").strip()
        if not caption:
            continue
        label = normalize_label(match.group("type"), match.group("number"))
        figures.append(Figure(id=label, label=label, caption=caption))
    return figures


def find_figure(figures: list[Figure], label: str) -> Figure | None:
    """First figure with the given label; references may dangle."""
    for figure in figures:
        if figure.label == label:
            return figure
    return None
