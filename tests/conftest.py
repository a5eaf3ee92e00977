"""Shared fixtures for paper narrator tests."""

import pytest
from pydub import AudioSegment

from paper_narrator.constants import KIND_APPENDIX, KIND_BIBLIOGRAPHY, KIND_BODY
from paper_narrator.engine import EventKind, PlayerEvent
from paper_narrator.models import Meta, Paragraph, Section, Sentence, StructuralRecord


class _Handle:
    def __init__(self, when, seq, callback, args):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """A call_later clock that only moves when the test advances it."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = 0

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        handle = _Handle(self.now + delay, self._seq, callback, args)
        self._seq += 1
        self._queue.append(handle)
        return handle

    def pending(self):
        return [h for h in self._queue if not h.cancelled]

    def advance(self, seconds=0.0):
        target = self.now + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback(*handle.args)
        self.now = target
        self._queue = self.pending()


class FakeEngine:
    """Records utterances; the test decides when they start and finish."""

    base_rate = 0.5
    min_rate = 0.1
    max_rate = 0.6

    def __init__(self):
        self.spoken = []
        self.current = None
        self.listener = None
        self.stops = 0
        self.pauses = 0
        self.resumes = 0
        self._speaking = False
        self._paused = False

    @property
    def is_speaking(self):
        return self._speaking

    @property
    def is_paused(self):
        return self._paused

    def attach(self, listener):
        self.listener = listener

    def speak(self, utterance):
        self.spoken.append(utterance)
        self.current = utterance
        self._speaking = True
        self._paused = False

    def pause_at_word_boundary(self):
        if not self._speaking:
            return False
        self.pauses += 1
        self._paused = True
        return True

    def resume(self):
        if not self._paused:
            return False
        self.resumes += 1
        self._paused = False
        return True

    def stop_immediately(self):
        self.stops += 1
        self.current = None
        self._speaking = False
        self._paused = False

    def start(self, utterance=None):
        utterance = utterance or self.current
        self.listener(PlayerEvent(EventKind.UTTERANCE_STARTED, utterance.request_id))

    def finish(self, utterance=None):
        utterance = utterance or self.current
        if utterance is self.current:
            self.current = None
            self._speaking = False
        self.listener(PlayerEvent(EventKind.UTTERANCE_FINISHED, utterance.request_id))


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def drive(engine, scheduler):
    """Run narration to idle: speak each utterance through, let timers expire."""
    def run(machine, max_steps=500):
        for _ in range(max_steps):
            if machine.state.status != "playing":
                return
            if engine.current is not None:
                engine.start()
                engine.finish()
            else:
                scheduler.advance(1.0)
        raise AssertionError("narration did not finish")
    return run


@pytest.fixture
def sample_record():
    """Two body sections, a bibliography, and an appendix."""
    sentences = (
        Sentence(id="sent0", section_id="sec1", text="Transformers changed sequence modelling."),
        Sentence(id="sent1", section_id="sec1", text="We revisit attention as in Figure 1.",
                 figure_refs=("Figure 1",)),
        Sentence(id="sent2", section_id="sec1", text="Our contribution is a simpler model."),
        Sentence(id="sent3", section_id="sec2", text="We train on four public benchmarks."),
        Sentence(id="sent4", section_id="sec2", text="Hyperparameters follow prior work closely."),
        Sentence(id="sent5", section_id="sec3", text="Vaswani et al. Attention is all you need."),
        Sentence(id="sent6", section_id="sec4", text="Extra ablations are reported here in full."),
    )
    sections = (
        Section(id="sec1", title="Introduction", kind=KIND_BODY, sentence_ids=("sent0", "sent1", "sent2")),
        Section(id="sec2", title="Method", kind=KIND_BODY, sentence_ids=("sent3", "sent4")),
        Section(id="sec3", title="References", kind=KIND_BIBLIOGRAPHY, sentence_ids=("sent5",),
                included_by_default=False),
        Section(id="sec4", title="Appendix A", kind=KIND_APPENDIX, sentence_ids=("sent6",),
                included_by_default=False),
    )
    return StructuralRecord(
        id="doc-1",
        meta=Meta(title="Narrated Paper", authors=("Ada Lovelace", "Alan Turing"), date="2024"),
        sections=sections,
        sentences=sentences,
    )


@pytest.fixture
def para():
    """Build a Paragraph with body defaults."""
    def make(text, font_size=11.0, is_bold=False, page_number=1, is_heading=False, heading_kind=KIND_BODY):
        return Paragraph(
            text=text,
            font_size=font_size,
            is_bold=is_bold,
            page_number=page_number,
            is_heading=is_heading,
            heading_kind=heading_kind,
        )
    return make


@pytest.fixture
def tiny_mp3(tmp_path):
    """Generate a 100ms silent MP3 for testing."""
    path = tmp_path / "test.mp3"
    AudioSegment.silent(duration=100).export(str(path), format="mp3")
    return path
