"""Word timing and fixation point for RSVP playback."""

import re

SENTENCE_MULTIPLIER = 2.0
CLAUSE_MULTIPLIER = 1.5
LONG_WORD_MULTIPLIER = 1.2
LONG_WORD_LENGTH = 10

_TRAILING_CLOSERS = re.compile(r"[)\"'\]]+$")


def word_delay(word: str, wpm: int) -> float:
    """Return how long ``word`` stays on screen, in milliseconds.

    Sentence ends hold the word twice as long as the base rate, clause
    breaks one and a half times, and long words get an extra 20% on top.
    Closing brackets and quotes are ignored when looking for the
    punctuation, so ``end.")`` paces like ``end.``.
    """
    delay = 60000 / wpm
    stripped = _TRAILING_CLOSERS.sub("", word)

    if stripped.endswith((".", "!", "?")):
        delay *= SENTENCE_MULTIPLIER
    elif stripped.endswith((",", ";", ":")):
        delay *= CLAUSE_MULTIPLIER

    if len(word) > LONG_WORD_LENGTH:
        delay *= LONG_WORD_MULTIPLIER

    return delay


def orp_index(word: str) -> int:
    """Index of the Optimal Recognition Point: about 30% into the word."""
    if len(word) <= 2:
        return 0
    return int(len(word) * 0.3)
