"""Tests for run merging and text cleanup (Layer 1)."""

from paper_narrator.constants import KIND_BIBLIOGRAPHY, KIND_BODY
from paper_narrator.merger import clean_text, compute_body_font_size, merge_into_paragraphs
from paper_narrator.models import RawLine


def _line(text, size=10.0, bold=False, page=1):
    return RawLine(text=text, font_size=size, is_bold=bold, page_number=page)


# --- Cleaning ---

def test_clean_text_strips_urls_and_emails():
    text = "Code is at https://github.com/x/y and mail jane@uni.edu for data."
    assert clean_text(text) == "Code is at and mail for data."


def test_clean_text_strips_citations():
    assert clean_text("Transformers [3] work well (Vaswani et al., 2017).") == "Transformers work well ."
    assert clean_text("As noted [12, 135] before.") == "As noted before."


def test_clean_text_strips_datelines():
    assert clean_text("Published APRIL 2023 online") == "Published online"


def test_clean_text_rejoins_hyphen_breaks():
    assert clean_text("a self- supervised model") == "a self-supervised model"


# --- Body font size ---

def test_body_font_size_weighted_by_characters():
    lines = [
        _line("A Very Large Title", size=18.0),
        _line("x" * 200, size=10.2),
        _line("y" * 50, size=9.0),
    ]
    assert compute_body_font_size(lines) == 10.0


def test_body_font_size_default():
    assert compute_body_font_size([]) == 11.0


# --- Merging ---

def test_lines_with_same_font_merge():
    lines = [
        _line("The first line of a paragraph continues"),
        _line("onto a second line of the same paragraph."),
    ]
    paragraphs = merge_into_paragraphs(lines, 10.0)
    assert len(paragraphs) == 1
    assert paragraphs[0].text == (
        "The first line of a paragraph continues onto a second line of the same paragraph."
    )
    assert paragraphs[0].is_heading is False


def test_heading_line_never_merges():
    lines = [
        _line("Some body text before the heading."),
        _line("2 Method", bold=True),
        _line("Body text after the heading line."),
    ]
    paragraphs = merge_into_paragraphs(lines, 10.0)
    assert [p.text for p in paragraphs] == [
        "Some body text before the heading.",
        "2 Method",
        "Body text after the heading line.",
    ]
    assert paragraphs[1].is_heading is True
    assert paragraphs[1].heading_kind == KIND_BODY


def test_page_change_splits_paragraph():
    lines = [_line("End of page one text", page=1), _line("start of page two text", page=2)]
    paragraphs = merge_into_paragraphs(lines, 10.0)
    assert [p.page_number for p in paragraphs] == [1, 2]


def test_font_size_change_splits_paragraph():
    lines = [_line("Normal sized body text here."), _line("Small footnote text here.", size=8.0)]
    assert len(merge_into_paragraphs(lines, 10.0)) == 2


def test_page_numbers_dropped():
    lines = [_line("Body text on the page."), _line("12"), _line("more body text after it.")]
    paragraphs = merge_into_paragraphs(lines, 10.0)
    assert paragraphs[0].text == "Body text on the page. more body text after it."


def test_lines_that_clean_to_nothing_dropped():
    lines = [_line("https://example.org/paper.pdf", size=8.0), _line("Real body text.")]
    paragraphs = merge_into_paragraphs(lines, 10.0)
    assert [p.text for p in paragraphs] == ["Real body text."]


def test_references_heading_kind():
    paragraphs = merge_into_paragraphs([_line("References", bold=True)], 10.0)
    assert paragraphs[0].heading_kind == KIND_BIBLIOGRAPHY
