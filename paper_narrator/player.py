"""Playback state machine: walks the token sequence against a narration engine.

All mutation happens on the thread that owns the scheduler. Silence waits
and the jump settle delay are scheduler timers, never sleeps. Every engine
request and timer is stamped with a request id; an event is acted on only
when its id matches the outstanding request, which is how late callbacks
from cancelled utterances are told apart from current ones.
"""

import bisect
import logging
from typing import Callable

from paper_narrator.constants import (
    DISPLAY_WINDOW_RADIUS,
    JUMP_SETTLE_SECONDS,
    SPEED_MAX,
    SPEED_MIN,
    STATUS_IDLE,
    STATUS_PAUSED,
    STATUS_PLAYING,
)
from paper_narrator.engine import EventKind, NarrationEngine, PlayerEvent, Scheduler, Utterance
from paper_narrator.models import (
    HeadingToken,
    PlaybackConfig,
    PlaybackState,
    Sentence,
    SentenceToken,
    SilenceToken,
    StructuralRecord,
    Token,
)
from paper_narrator.sequence import build_sequence, sentence_positions, token_text

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PlaybackMachine:
    def __init__(
        self,
        engine: NarrationEngine,
        scheduler: Scheduler,
        on_complete: Callable[[StructuralRecord], None] | None = None,
        on_change: Callable[[PlaybackState], None] | None = None,
    ):
        self._engine = engine
        self._scheduler = scheduler
        self._on_complete = on_complete
        self._on_change = on_change
        engine.attach(self.dispatch)

        self._record = None
        self._tokens: tuple[Token, ...] = ()
        self._positions: list[int] = []
        self._status = STATUS_IDLE
        self._cursor = 0
        self._current_sentence = 0
        self._window: tuple[str, ...] = ()
        self._speed = 1.0

        self._last_id = 0
        self._outstanding: int | None = None
        self._timer = None
        self._settle = None
        self._transition_in_flight: int | None = None
        self._engine_paused = False

    # --- read-only views ---

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._tokens

    @property
    def record(self) -> StructuralRecord | None:
        return self._record

    @property
    def state(self) -> PlaybackState:
        token = self.current_token()
        return PlaybackState(
            status=self._status,
            token_cursor=self._cursor,
            current_sentence_index=self._current_sentence,
            display_window_ids=self._window,
            speed_factor=self._speed,
            heading_text=token.text if isinstance(token, HeadingToken) else None,
        )

    def current_token(self) -> Token | None:
        if 0 <= self._cursor < len(self._tokens):
            return self._tokens[self._cursor]
        return None

    def current_sentence(self) -> Sentence | None:
        if self._record is None:
            return None
        if 0 <= self._current_sentence < len(self._record.sentences):
            return self._record.sentences[self._current_sentence]
        return None

    # --- commands ---

    def load(self, record: StructuralRecord, config: PlaybackConfig) -> None:
        """Replace the sequence and return to idle at the first token."""
        self._cancel_pending()
        self._record = record
        self._tokens = build_sequence(record, config)
        self._positions = sentence_positions(self._tokens)
        self._status = STATUS_IDLE
        self._cursor = 0
        self._set_sentence(0)
        logger.info(
            "Loaded %r: %d tokens, %d sentences",
            record.meta.title, len(self._tokens), len(self._positions),
        )
        self._notify()

    def play(self) -> None:
        if self._status == STATUS_PLAYING or not self._tokens:
            return
        if self._cursor >= len(self._tokens):
            self._cursor = 0
        self._status = STATUS_PLAYING

        if self._engine_paused:
            self._engine_paused = False
            if self._engine.resume():
                self._notify()
                return

        if self._transition_in_flight is not None:
            # The settle timer restarts narration
            self._notify()
            return
        self._step()

    def pause(self) -> None:
        if self._status != STATUS_PLAYING:
            return
        self._status = STATUS_PAUSED
        if not isinstance(self.current_token(), SilenceToken) and self._engine.is_speaking:
            self._engine_paused = self._engine.pause_at_word_boundary()
        self._notify()

    def stop(self) -> None:
        """Cancel narration and go idle; the cursor stays where it is."""
        self._cancel_pending()
        self._status = STATUS_IDLE
        self._notify()

    def jump(self, delta: int) -> bool:
        """Move `delta` sentences from the current position, clamped.

        Returns False when the request is dropped. That happens while another
        jump is settling or when there are no sentences. From past the last
        sentence only a backward jump is accepted.
        """
        if self._transition_in_flight is not None or not self._positions:
            return False
        current = bisect.bisect_left(self._positions, self._cursor)
        if current == len(self._positions) and delta >= 0:
            # Already past the last sentence
            return False
        target = int(clamp(current + delta, 0, len(self._positions) - 1))
        return self._retarget(self._positions[target])

    def request_seek(self, sentence_index: int) -> bool:
        """Seek to a sentence by its index in the record.

        Lands on the first narrated sentence at or after `sentence_index`;
        sentences of disabled sections are not in the sequence.
        """
        if self._transition_in_flight is not None:
            return False
        for position in self._positions:
            if self._tokens[position].index >= sentence_index:
                return self._retarget(position)
        return False

    def set_speed(self, factor: float) -> float:
        self._speed = clamp(factor, SPEED_MIN, SPEED_MAX)
        self._notify()
        return self._speed

    def utterance_rate(self) -> float:
        engine = self._engine
        return clamp(engine.base_rate * self._speed, engine.min_rate, engine.max_rate)

    # --- transitions ---

    def dispatch(self, event: PlayerEvent) -> None:
        """Apply one engine or timer event."""
        if event.kind is EventKind.SETTLE_ELAPSED:
            if event.request_id != self._transition_in_flight:
                return
            self._transition_in_flight = None
            self._settle = None
            if self._status == STATUS_PLAYING:
                self._step()
            return

        if event.request_id != self._outstanding:
            logger.debug("Ignoring stale %s for request %d", event.kind.name, event.request_id)
            return

        if event.kind is EventKind.UTTERANCE_STARTED:
            token = self.current_token()
            if isinstance(token, SentenceToken):
                self._set_sentence(token.index)
                self._notify()
            return

        if event.kind is EventKind.TIMER_EXPIRED:
            self._timer = None
        if self._status != STATUS_PLAYING:
            # Nothing left to resume; play() restarts this token
            self._engine_paused = False
            return
        self._cursor += 1
        self._step()

    def _step(self):
        """Act on the token under the cursor."""
        self._cancel_timer()
        if self._cursor >= len(self._tokens):
            self._complete()
            return

        token = self._tokens[self._cursor]
        request_id = self._next_id()
        self._outstanding = request_id

        if isinstance(token, SilenceToken):
            self._timer = self._scheduler.call_later(
                token.duration, self.dispatch, PlayerEvent(EventKind.TIMER_EXPIRED, request_id),
            )
        else:
            if isinstance(token, HeadingToken):
                self._engine.stop_immediately()
            text = token_text(token, self._record)
            self._engine.speak(Utterance(text=text, rate=self.utterance_rate(), request_id=request_id))
        self._notify()

    def _retarget(self, position: int) -> bool:
        self._engine.stop_immediately()
        self._cancel_timer()
        self._engine_paused = False
        self._outstanding = None
        self._cursor = position
        self._set_sentence(self._tokens[position].index)

        if self._status == STATUS_PLAYING:
            jump_id = self._next_id()
            self._transition_in_flight = jump_id
            self._settle = self._scheduler.call_later(
                JUMP_SETTLE_SECONDS, self.dispatch, PlayerEvent(EventKind.SETTLE_ELAPSED, jump_id),
            )
        self._notify()
        return True

    def _complete(self):
        self._status = STATUS_IDLE
        self._outstanding = None
        logger.info("Finished narrating %r", self._record.meta.title)
        self._notify()
        if self._on_complete is not None:
            self._on_complete(self._record)

    # --- helpers ---

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def _set_sentence(self, index: int):
        self._current_sentence = index
        count = len(self._record.sentences) if self._record else 0
        low = max(0, index - DISPLAY_WINDOW_RADIUS)
        high = min(count, index + DISPLAY_WINDOW_RADIUS + 1)
        self._window = tuple(s.id for s in self._record.sentences[low:high]) if count else ()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_pending(self):
        self._engine.stop_immediately()
        self._cancel_timer()
        if self._settle is not None:
            self._settle.cancel()
            self._settle = None
        self._transition_in_flight = None
        self._engine_paused = False
        self._outstanding = None

    def _notify(self):
        if self._on_change is not None:
            self._on_change(self.state)
