"""Narration engine boundary: utterances, engine events, and a simulated engine.

Engines speak asynchronously and report back through a single listener
callable. Every utterance carries the request id it was issued under, and
every event echoes that id, so the playback machine can tell a stale
callback from a current one.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Protocol

from paper_narrator.constants import (
    DEFAULT_WORDS_PER_SECOND,
    ENGINE_BASE_RATE,
    ENGINE_MAX_RATE,
    ENGINE_MIN_RATE,
    UTTERANCE_PITCH,
)

logger = logging.getLogger(__name__)


class EventKind(Enum):
    UTTERANCE_STARTED = auto()
    UTTERANCE_FINISHED = auto()
    TIMER_EXPIRED = auto()
    SETTLE_ELAPSED = auto()      # jump settle delay is over


@dataclass(frozen=True)
class PlayerEvent:
    kind: EventKind
    request_id: int


@dataclass(frozen=True)
class Utterance:
    text: str
    rate: float
    request_id: int
    pitch: float = UTTERANCE_PITCH


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """The subset of an asyncio event loop the playback code relies on."""

    def call_later(self, delay: float, callback: Callable, *args) -> Cancellable: ...

    def time(self) -> float: ...


class NarrationEngine(Protocol):
    base_rate: float
    min_rate: float
    max_rate: float

    @property
    def is_speaking(self) -> bool: ...

    @property
    def is_paused(self) -> bool: ...

    def attach(self, listener: Callable[[PlayerEvent], None]) -> None: ...

    def speak(self, utterance: Utterance) -> None: ...

    def pause_at_word_boundary(self) -> bool: ...

    def resume(self) -> bool: ...

    def stop_immediately(self) -> None: ...


class SimulatedEngine:
    """Paces utterances on a scheduler instead of producing audio.

    Speaking time is the word count divided by words_per_second, scaled by
    the utterance rate relative to base_rate. Each utterance is passed to
    `announce` when it starts (print by default), which makes this a
    dry-run reader for the terminal and a realistic engine for tests.
    """

    base_rate = ENGINE_BASE_RATE
    min_rate = ENGINE_MIN_RATE
    max_rate = ENGINE_MAX_RATE

    def __init__(
        self,
        scheduler: Scheduler,
        words_per_second: float = DEFAULT_WORDS_PER_SECOND,
        announce: Callable[[str], None] | None = print,
    ):
        self._scheduler = scheduler
        self._wps = words_per_second
        self._announce = announce
        self._listener = None
        self._utterance = None
        self._handle = None
        self._started = False
        self._started_at = 0.0
        self._remaining = 0.0
        self._speaking = False
        self._paused = False

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def is_paused(self) -> bool:
        return self._paused

    def attach(self, listener: Callable[[PlayerEvent], None]) -> None:
        self._listener = listener

    def estimate_duration(self, utterance: Utterance) -> float:
        words = max(1, len(utterance.text.split()))
        rate_scale = utterance.rate / self.base_rate if self.base_rate else 1.0
        return words / (self._wps * rate_scale)

    def speak(self, utterance: Utterance) -> None:
        self.stop_immediately()
        self._utterance = utterance
        self._speaking = True
        self._started = False
        self._remaining = self.estimate_duration(utterance)
        self._handle = self._scheduler.call_later(0, self._begin)

    def pause_at_word_boundary(self) -> bool:
        if not self._speaking or self._paused:
            return False
        self._cancel()
        if self._started:
            elapsed = self._scheduler.time() - self._started_at
            per_word = self.estimate_duration(self._utterance) / max(1, len(self._utterance.text.split()))
            # Finish the word in progress before pausing
            spoken = math.ceil(elapsed / per_word) * per_word if per_word else elapsed
            self._remaining = max(0.0, self._remaining - spoken)
        self._paused = True
        return True

    def resume(self) -> bool:
        if not self._paused:
            return False
        self._paused = False
        if self._started:
            self._started_at = self._scheduler.time()
            self._handle = self._scheduler.call_later(self._remaining, self._finish)
        else:
            self._handle = self._scheduler.call_later(0, self._begin)
        return True

    def stop_immediately(self) -> None:
        self._cancel()
        self._speaking = False
        self._paused = False
        self._started = False
        self._utterance = None

    def _cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _emit(self, kind: EventKind, utterance: Utterance):
        if self._listener is not None:
            self._listener(PlayerEvent(kind, utterance.request_id))

    def _begin(self):
        self._handle = None
        utterance = self._utterance
        self._started = True
        self._started_at = self._scheduler.time()
        if self._announce is not None:
            self._announce(utterance.text)
        self._handle = self._scheduler.call_later(self._remaining, self._finish)
        self._emit(EventKind.UTTERANCE_STARTED, utterance)

    def _finish(self):
        self._handle = None
        utterance = self._utterance
        self._speaking = False
        self._started = False
        self._utterance = None
        logger.debug("Finished utterance %d", utterance.request_id)
        self._emit(EventKind.UTTERANCE_FINISHED, utterance)
