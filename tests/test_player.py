"""Tests for the playback state machine (Layer 2)."""

import dataclasses

import pytest

from paper_narrator.constants import SILENCE_AFTER_META, SILENCE_BEFORE_CONCLUSION, STATUS_IDLE, STATUS_PAUSED, STATUS_PLAYING
from paper_narrator.engine import EventKind, PlayerEvent
from paper_narrator.models import HeadingToken, PlaybackConfig, SentenceToken, SilenceToken, default_config
from paper_narrator.player import PlaybackMachine

# Token layout for sample_record with its default config:
#  0 meta heading, 1-2 silence, 3 "Introduction", 4 silence, 5-7 sent0..sent2,
#  8 silence, 9 "Method", 10 silence, 11-12 sent3..sent4, 13 silence,
#  14 conclusion heading, 15 silence
SENTENCE_POSITIONS = [5, 6, 7, 11, 12]


@pytest.fixture
def machine(engine, scheduler, sample_record):
    m = PlaybackMachine(engine, scheduler)
    m.load(sample_record, default_config(sample_record))
    return m


# --- Loading ---

def test_load_resets_to_first_token(machine):
    """load leaves the machine idle at token 0 with a fresh window."""
    state = machine.state
    assert state.status == STATUS_IDLE
    assert state.token_cursor == 0
    assert state.current_sentence_index == 0
    assert state.display_window_ids == ("sent0", "sent1", "sent2")
    assert len(machine.tokens) == 16
    assert isinstance(machine.current_token(), HeadingToken)


def test_load_replaces_previous_sequence(machine, engine, sample_record):
    """Reloading mid-narration cancels it and starts over."""
    machine.play()
    machine.jump(2)
    config = PlaybackConfig(document_id=sample_record.id, enabled_section_ids=frozenset({"sec2"}))
    machine.load(sample_record, config)
    assert machine.state.status == STATUS_IDLE
    assert machine.state.token_cursor == 0
    assert sum(isinstance(t, SentenceToken) for t in machine.tokens) == 2


def test_accessors_without_document(engine, scheduler):
    """No document loaded: accessors return None instead of failing."""
    m = PlaybackMachine(engine, scheduler)
    assert m.current_token() is None
    assert m.current_sentence() is None
    assert m.jump(1) is False
    m.play()
    assert m.state.status == STATUS_IDLE


# --- Natural advance ---

def test_play_speaks_metadata_announcement(machine, engine):
    """play starts with the metadata heading at base rate and fixed pitch."""
    machine.play()
    assert machine.state.status == STATUS_PLAYING
    utterance = engine.spoken[0]
    assert utterance.text == "Narrated Paper. By Ada Lovelace and Alan Turing. Published 2024"
    assert utterance.rate == pytest.approx(0.5)
    assert utterance.pitch == pytest.approx(0.95)


def test_finish_then_silence_timers_advance(machine, engine, scheduler):
    """Finish moves to the silence; timers carry on to the next heading."""
    machine.play()
    engine.finish()
    assert machine.state.token_cursor == 1
    assert engine.current is None

    scheduler.advance(0.4)
    assert machine.state.token_cursor == 2
    scheduler.advance(0.3)
    assert machine.state.token_cursor == 3
    assert engine.current.text == "Introduction"


def test_start_event_updates_sentence_and_window(machine, engine):
    """Only the start of a sentence utterance moves the current sentence."""
    machine.request_seek(1)
    machine.play()
    engine.start()
    engine.finish()
    assert engine.current.text == "Our contribution is a simpler model."
    assert machine.state.current_sentence_index == 1

    engine.start()
    state = machine.state
    assert state.current_sentence_index == 2
    assert state.display_window_ids == ("sent0", "sent1", "sent2", "sent3", "sent4")
    assert machine.current_sentence().id == "sent2"


def test_narration_runs_to_completion(engine, scheduler, sample_record, drive):
    """Every token is visited once, then the completion callback fires."""
    completed = []
    m = PlaybackMachine(engine, scheduler, on_complete=completed.append)
    m.load(sample_record, default_config(sample_record))
    m.play()
    drive(m)

    assert completed == [sample_record]
    assert m.state.status == STATUS_IDLE
    assert m.current_token() is None
    texts = [u.text for u in engine.spoken]
    assert texts[1] == "Introduction"
    assert texts[-1] == "We have now concluded Narrated Paper by Ada Lovelace and Alan Turing"
    assert "Vaswani et al. Attention is all you need." not in texts
    assert len(texts) == 9


def test_play_after_completion_restarts(engine, scheduler, sample_record, drive):
    """Playing a finished document starts it again from the top."""
    m = PlaybackMachine(engine, scheduler)
    m.load(sample_record, default_config(sample_record))
    m.play()
    drive(m)
    engine.spoken.clear()
    m.play()
    assert m.state.token_cursor == 0
    assert engine.spoken[0].text.startswith("Narrated Paper")


def test_events_for_unknown_request_ignored(machine):
    """Events that match no outstanding request change nothing."""
    machine.play()
    machine.dispatch(PlayerEvent(EventKind.UTTERANCE_FINISHED, 999))
    machine.dispatch(PlayerEvent(EventKind.TIMER_EXPIRED, 999))
    machine.dispatch(PlayerEvent(EventKind.SETTLE_ELAPSED, 999))
    assert machine.state.token_cursor == 0


# --- Pause / resume / stop ---

def test_pause_and_resume_mid_utterance(machine, engine):
    """A genuine pause resumes the engine in place without re-speaking."""
    machine.play()
    machine.pause()
    assert machine.state.status == STATUS_PAUSED
    assert engine.pauses == 1

    machine.play()
    assert machine.state.status == STATUS_PLAYING
    assert engine.resumes == 1
    assert len(engine.spoken) == 1


def test_pause_during_silence_leaves_engine_alone(machine, engine, scheduler):
    """Pausing in a silence never touches the engine; play restarts the wait."""
    machine.play()
    engine.finish()
    machine.pause()
    assert engine.pauses == 0

    scheduler.advance(1.0)
    assert machine.state.token_cursor == 1

    machine.play()
    scheduler.advance(SILENCE_AFTER_META)
    assert machine.state.token_cursor == 2


def test_finish_while_paused_is_not_honored(machine, engine):
    """A late finish after pause does not advance; play speaks the token again."""
    machine.play()
    first = engine.current
    machine.pause()
    engine.finish(first)
    assert machine.state.token_cursor == 0

    machine.play()
    assert engine.spoken[-1].text == first.text
    assert engine.spoken[-1].request_id != first.request_id


def test_stop_keeps_cursor(machine, engine, scheduler):
    """stop goes idle without resetting the cursor."""
    machine.play()
    engine.finish()
    scheduler.advance(0.4)
    stops = engine.stops
    machine.stop()

    assert machine.state.status == STATUS_IDLE
    assert machine.state.token_cursor == 2
    assert engine.stops == stops + 1
    assert scheduler.pending() == []

    machine.play()
    assert machine.state.token_cursor == 2


# --- Jumping ---

def test_jump_scenario_clamps_at_last_sentence(machine, engine, scheduler, sample_record):
    """jump(+3) from the first sentence lands on the 4th, a second on the 5th."""
    machine.play()
    assert machine.jump(3) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[3]
    assert machine.state.current_sentence_index == 3

    scheduler.advance(0.15)
    assert engine.current.text == sample_record.sentences[3].text

    assert machine.jump(3) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[4]
    scheduler.advance(0.15)

    assert machine.jump(3) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[4]


def test_jump_negative_clamps_at_first_sentence(machine):
    machine.jump(4)
    machine.jump(-10)
    assert machine.state.token_cursor == SENTENCE_POSITIONS[0]
    machine.jump(-1)
    assert machine.state.token_cursor == SENTENCE_POSITIONS[0]


def test_jump_dropped_while_settling(machine, engine, scheduler):
    """A second jump before the settle delay elapses is dropped, not queued."""
    machine.play()
    assert machine.jump(1) is True
    assert machine.jump(1) is False
    assert machine.request_seek(4) is False
    assert machine.state.token_cursor == SENTENCE_POSITIONS[1]

    scheduler.advance(0.15)
    assert machine.jump(1) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[2]


def test_jump_cancels_then_restarts_after_settle(machine, engine, scheduler):
    """Narration is cancelled at once and restarted only after the settle delay."""
    machine.play()
    stops = engine.stops
    machine.jump(1)
    assert engine.stops == stops + 1
    assert engine.current is None

    scheduler.advance(0.1)
    assert engine.current is None
    scheduler.advance(0.05)
    assert engine.current.text == "We revisit attention as in Figure 1."


def test_stale_start_after_jump_does_not_move_position(machine, engine, scheduler):
    """A start or finish for the pre-jump utterance is ignored."""
    machine.play()
    old = engine.current
    machine.jump(3)

    engine.start(old)
    assert machine.state.current_sentence_index == 3
    engine.finish(old)
    assert machine.state.token_cursor == SENTENCE_POSITIONS[3]

    scheduler.advance(0.15)
    engine.start()
    assert machine.state.current_sentence_index == 3


def test_jump_from_silence_cancels_timer(machine, engine, scheduler):
    machine.play()
    engine.finish()
    assert isinstance(machine.current_token(), SilenceToken)
    machine.jump(0)
    scheduler.advance(0.15)
    assert machine.state.token_cursor == SENTENCE_POSITIONS[0]
    assert engine.current.text == "Transformers changed sequence modelling."


def test_jump_while_idle_moves_cursor_only(machine, engine, scheduler):
    """Idle jumps retarget immediately with no settle period."""
    assert machine.jump(2) is True
    assert scheduler.pending() == []
    assert machine.jump(1) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[3]
    assert engine.spoken == []


def test_stop_during_settle_cancels_restart(machine, engine, scheduler):
    machine.play()
    machine.jump(1)
    machine.stop()
    scheduler.advance(1.0)
    assert len(engine.spoken) == 1
    assert machine.jump(1) is True


def test_play_during_settle_restarts_once(machine, engine, scheduler):
    """Pause and play inside the settle window still yield one utterance."""
    machine.play()
    machine.jump(1)
    machine.pause()
    machine.play()
    scheduler.advance(0.15)
    assert len(engine.spoken) == 2


def test_forward_jump_past_last_sentence_is_dropped(machine, engine, scheduler):
    """On the closing tokens a forward jump does not rewind; a backward one does."""
    machine.jump(4)
    machine.play()
    engine.finish()
    scheduler.advance(SILENCE_BEFORE_CONCLUSION)
    assert machine.state.token_cursor == 14
    closing = engine.current

    assert machine.jump(3) is False
    assert machine.jump(0) is False
    assert machine.state.token_cursor == 14
    assert engine.current is closing

    assert machine.jump(-1) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[4]


def test_jump_without_sentences(engine, scheduler, sample_record):
    """No enabled sections: nothing to jump between."""
    m = PlaybackMachine(engine, scheduler)
    m.load(sample_record, PlaybackConfig(document_id=sample_record.id))
    assert m.jump(1) is False


# --- Seeking ---

def test_request_seek_targets_sentence(machine):
    assert machine.request_seek(3) is True
    assert machine.state.token_cursor == SENTENCE_POSITIONS[3]
    assert machine.state.current_sentence_index == 3


def test_request_seek_past_narrated_sentences(machine):
    """Sentences of disabled sections cannot be sought."""
    assert machine.request_seek(5) is False
    assert machine.state.token_cursor == 0


def test_request_seek_into_enabled_appendix(engine, scheduler, sample_record):
    config = dataclasses.replace(
        default_config(sample_record),
        enabled_section_ids=frozenset({"sec1", "sec2", "sec4"}),
        include_appendix=True,
    )
    m = PlaybackMachine(engine, scheduler)
    m.load(sample_record, config)
    assert m.request_seek(5) is True
    assert m.current_sentence().id == "sent6"
    assert m.state.display_window_ids == ("sent4", "sent5", "sent6")


# --- Speed ---

@pytest.mark.parametrize("requested,applied", [(10.0, 3.5), (0.0, 0.25), (-1.0, 0.25), (1.5, 1.5)])
def test_speed_is_clamped(machine, requested, applied):
    assert machine.set_speed(requested) == applied
    assert machine.state.speed_factor == applied


def test_speed_scales_engine_rate_within_bounds(machine, engine):
    machine.set_speed(2.0)
    machine.play()
    assert engine.spoken[0].rate == pytest.approx(0.6)

    machine.stop()
    machine.set_speed(0.5)
    machine.play()
    assert engine.spoken[-1].rate == pytest.approx(0.25)


def test_speed_does_not_scale_silences(machine, engine, scheduler):
    machine.set_speed(3.5)
    machine.play()
    engine.finish()
    scheduler.advance(SILENCE_AFTER_META - 0.01)
    assert machine.state.token_cursor == 1
    scheduler.advance(0.01)
    assert machine.state.token_cursor == 2


# --- Observers ---

def test_on_change_receives_snapshots(engine, scheduler, sample_record):
    states = []
    m = PlaybackMachine(engine, scheduler, on_change=states.append)
    m.load(sample_record, default_config(sample_record))
    m.play()
    m.pause()
    assert [s.status for s in states[-2:]] == [STATUS_PLAYING, STATUS_PAUSED]
    with pytest.raises(dataclasses.FrozenInstanceError):
        states[-1].status = STATUS_IDLE


def test_state_reports_current_heading(machine):
    machine.play()
    assert machine.state.heading_text.startswith("Narrated Paper")
