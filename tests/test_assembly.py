"""Tests for assembly module (Layer 2)."""

from pydub import AudioSegment

from paper_narrator.assembly import assemble, load_clips
from paper_narrator.models import HeadingToken, SentenceToken, SilenceToken, default_config
from paper_narrator.sequence import build_sequence


def _audio(duration_ms=100):
    """Helper to create a silent AudioSegment."""
    return AudioSegment.silent(duration=duration_ms)


def test_assemble_silences_and_clips():
    """Silence tokens contribute their own duration around each clip."""
    tokens = (SilenceToken(0.4), HeadingToken("Method"), SilenceToken(0.3))
    result = assemble(tokens, {1: _audio(100)})
    assert len(result) == 800


def test_assemble_concatenates_in_token_order():
    tokens = (HeadingToken("A"), SentenceToken(0), SentenceToken(1))
    result = assemble(tokens, {0: _audio(100), 1: _audio(200), 2: _audio(300)})
    assert len(result) == 600


def test_assemble_skips_missing_clips():
    """A spoken token with no clip adds nothing."""
    tokens = (HeadingToken("A"), SilenceToken(0.25), SentenceToken(0))
    result = assemble(tokens, {0: _audio(100)})
    assert len(result) == 350


def test_assemble_empty():
    assert len(assemble((), {})) == 0


def test_assemble_full_sequence(sample_record):
    """Every silence of the default narration lands in the track."""
    tokens = build_sequence(sample_record, default_config(sample_record))
    silences = sum(t.duration for t in tokens if isinstance(t, SilenceToken))
    clips = {i: _audio(100) for i, t in enumerate(tokens) if not isinstance(t, SilenceToken)}
    result = assemble(tokens, clips)
    assert len(result) == round(silences * 1000) + 100 * len(clips)


def test_load_clips(tiny_mp3):
    clips = load_clips({3: str(tiny_mp3)})
    assert list(clips) == [3]
    assert 50 <= len(clips[3]) <= 200
