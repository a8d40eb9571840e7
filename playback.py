"""Timed word-advance engine for RSVP playback."""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Protocol, Sequence

from pacing import word_delay

logger = logging.getLogger(__name__)

DEFAULT_WPM = 250
MIN_WPM = 60
MAX_WPM = 1000
WPM_STEP = 25
JUMP_SIZE = 10
ORIENTATION_DELAY = 1.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback later, like an asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class PlaybackState(Enum):
    """Enum representing the current playback state."""

    PLAYING = auto()
    PAUSED = auto()
    FINISHED = auto()


@dataclass
class Session:
    words: tuple[str, ...]
    position: int = 0
    wpm: int = DEFAULT_WPM
    paused: bool = False
    done: bool = False


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of a session, handed to the renderer."""

    word: str
    position: int
    total: int
    wpm: int
    paused: bool
    done: bool


def clamp_wpm(wpm: int) -> int:
    return max(MIN_WPM, min(MAX_WPM, wpm))


class PlaybackEngine:
    """Owns the reading session and the single pending word timer.

    Keyboard input, terminal resizes and the timer all go through the
    command methods here; nothing else writes to the session. Every
    command that changes what should happen next cancels the pending
    timer before scheduling a new one, so at most one advance is ever
    in flight.
    """

    def __init__(
        self,
        words: Sequence[str],
        wpm: int,
        scheduler: Scheduler,
        render: Callable[[Snapshot], None],
    ) -> None:
        if not words:
            raise ValueError("PlaybackEngine needs at least one word")
        self._session = Session(words=tuple(words), wpm=clamp_wpm(wpm))
        self._scheduler = scheduler
        self._render = render
        self._timer: Optional[TimerHandle] = None

    @property
    def state(self) -> PlaybackState:
        if self._session.done:
            return PlaybackState.FINISHED
        if self._session.paused:
            return PlaybackState.PAUSED
        return PlaybackState.PLAYING

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def snapshot(self) -> Snapshot:
        s = self._session
        return Snapshot(
            word=s.words[s.position],
            position=s.position,
            total=len(s.words),
            wpm=s.wpm,
            paused=s.paused,
            done=s.done,
        )

    # ── commands ─────────────────────────────────────────────────────

    def start(self) -> None:
        """Show the first word, then begin advancing after a short pause."""
        logger.info(
            "Starting playback: %d words at %d WPM",
            len(self._session.words),
            self._session.wpm,
        )
        self._cancel_timer()
        self._show()
        self._set_timer(ORIENTATION_DELAY, self._on_orientation_done)

    def toggle_pause(self) -> None:
        """Pause, or resume with a full delay for the word on screen."""
        s = self._session
        if s.done:
            return
        if s.paused:
            s.paused = False
            logger.debug("Resumed at word %d", s.position)
            self._show()
            self._schedule_next()
        else:
            self._cancel_timer()
            s.paused = True
            logger.debug("Paused at word %d", s.position)
            self._show()

    def jump(self, target: int) -> None:
        s = self._session
        self._cancel_timer()
        s.position = max(0, min(target, len(s.words) - 1))
        s.done = False
        logger.debug("Jumped to word %d", s.position)
        self._show()
        if not s.paused:
            self._schedule_next()

    def step(self, delta: int) -> None:
        self.jump(self._session.position + delta)

    def adjust_speed(self, delta: int) -> None:
        """Change speed; the word already waiting keeps its delay."""
        s = self._session
        s.wpm = clamp_wpm(s.wpm + delta)
        logger.debug("Speed set to %d WPM", s.wpm)
        self._show()

    def restart(self) -> None:
        self.jump(0)

    def stop(self) -> None:
        self._cancel_timer()

    # ── timer plumbing ───────────────────────────────────────────────

    def _advance_one(self) -> None:
        s = self._session
        if s.paused or s.done:
            return
        if s.position + 1 >= len(s.words):
            s.done = True
            logger.info("Reached end of text")
            self._show()
            return
        s.position += 1
        self._show()
        self._schedule_next()

    def _on_timer(self) -> None:
        self._timer = None
        self._advance_one()

    def _on_orientation_done(self) -> None:
        self._timer = None
        self._schedule_next()

    def _schedule_next(self) -> None:
        s = self._session
        if s.paused or s.done:
            return
        delay_ms = word_delay(s.words[s.position], s.wpm)
        self._set_timer(delay_ms / 1000, self._on_timer)

    def _set_timer(self, delay: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(delay, callback)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _show(self) -> None:
        self._render(self.snapshot())
