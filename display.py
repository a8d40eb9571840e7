"""Terminal frames for the RSVP reader.

A frame is built from a playback snapshot and the terminal size, turned
into one ANSI string, and written in a single synchronized update so the
terminal never shows a half-painted word.
"""

import atexit
from dataclasses import dataclass
from typing import Optional

from rich.cells import cell_len
from rich.color import ColorSystem
from rich.console import Console
from rich.control import Control, ControlType
from rich.style import Style

from errors import InvalidOption
from pacing import orp_index
from playback import Snapshot

# DEC synchronized output (mode 2026). Terminals without support ignore it.
SYNC_START = "\x1b[?2026h"
SYNC_END = "\x1b[?2026l"
RESET = "\x1b[0m"

ORP_COLORS: dict[str, Style] = {
    "red": Style(color="red", bold=True),
    "green": Style(color="green", bold=True),
    "yellow": Style(color="yellow", bold=True),
    "blue": Style(color="blue", bold=True),
    "magenta": Style(color="magenta", bold=True),
    "purple": Style(color="magenta", bold=True),
    "cyan": Style(color="cyan", bold=True),
    "white": Style(color="white", bold=True),
    "orange": Style(color="bright_yellow", bold=True),
}
VALID_ORP_COLORS = tuple(ORP_COLORS)
DEFAULT_ORP_COLOR = "red"

WORD_STYLE = Style(color="bright_white")
DIM_STYLE = Style(color="bright_black")
SPEED_STYLE = Style(color="green")
PAUSED_STYLE = Style(color="cyan")

PAUSED_MESSAGE = "⏸  PAUSED"
END_MESSAGE = "── End of text ──"
HINTS = (
    "[space] pause  [b/←] back  [f/→] fwd  "
    "[↑/+] faster  [↓/-] slower  [r] restart  [q] quit"
)


def orp_style(name: str) -> Style:
    try:
        return ORP_COLORS[name.lower()]
    except KeyError:
        raise InvalidOption(
            f"Unknown color '{name}'. Valid colors: {', '.join(VALID_ORP_COLORS)}"
        ) from None


@dataclass(frozen=True)
class Frame:
    word: str
    orp: int
    position: int
    total: int
    wpm: int
    paused: bool
    done: bool
    width: int
    height: int


def build_frame(snapshot: Snapshot, width: int, height: int) -> Frame:
    word = "" if snapshot.done else snapshot.word
    return Frame(
        word=word,
        orp=orp_index(word),
        position=snapshot.position,
        total=snapshot.total,
        wpm=snapshot.wpm,
        paused=snapshot.paused,
        done=snapshot.done,
        width=width,
        height=height,
    )


def _paint(style: Style, text: str) -> str:
    return style.render(text, color_system=ColorSystem.STANDARD)


def _move_to(col: int, row: int) -> str:
    return str(Control.move_to(max(0, col), max(0, row)))


def _clear_line(row: int) -> str:
    return _move_to(0, row) + str(Control((ControlType.ERASE_IN_LINE, 2)))


def _centered_col(width: int, text: str) -> int:
    return max(0, (width - cell_len(text)) // 2)


def progress_bar(progress: float, width: int) -> str:
    inner = width - 2
    filled = round(max(0.0, min(1.0, progress)) * inner)
    return "[" + "█" * filled + "░" * (inner - filled) + "]"


def word_line(word: str, orp: int, style: Style) -> tuple[int, str]:
    """Return the column offset of the word relative to its ORP and its text."""
    before = word[:orp]
    pivot = word[orp : orp + 1]
    after = word[orp + 1 :]
    text = _paint(WORD_STYLE, before) if before else ""
    text += _paint(style, pivot) if pivot else ""
    text += _paint(WORD_STYLE, after) if after else ""
    return -cell_len(before), text


def compose_frame(frame: Frame, style: Style) -> str:
    center_row = frame.height // 2
    center_col = frame.width // 2
    out = []

    # Progress and speed, two rows above the word.
    row = center_row - 2
    bar_width = max(20, int(frame.width * 0.4))
    progress = frame.position / frame.total if frame.total else 0.0
    bar = progress_bar(progress, bar_width)
    count = f"{frame.position + 1}/{frame.total}"
    speed = f"{frame.wpm} WPM"
    plain = f"{bar} {count} | {speed}"
    out.append(_clear_line(row))
    out.append(_move_to(_centered_col(frame.width, plain), row))
    out.append(
        _paint(DIM_STYLE, bar) + " " + _paint(DIM_STYLE, count) + " | "
        + _paint(SPEED_STYLE, speed)
    )

    out.append(_clear_line(center_row))
    if not frame.done and frame.word:
        offset, text = word_line(frame.word, frame.orp, style)
        out.append(_move_to(center_col + offset, center_row))
        out.append(text)

    row = center_row + 2
    out.append(_clear_line(row))
    if frame.done:
        out.append(_move_to(_centered_col(frame.width, END_MESSAGE), row))
        out.append(_paint(DIM_STYLE, END_MESSAGE))
    elif frame.paused:
        out.append(_move_to(_centered_col(frame.width, PAUSED_MESSAGE), row))
        out.append(_paint(PAUSED_STYLE, PAUSED_MESSAGE))

    row = frame.height - 1
    out.append(_clear_line(row))
    out.append(_move_to(_centered_col(frame.width, HINTS), row))
    out.append(_paint(DIM_STYLE, HINTS))

    return "".join(out)


class TerminalScreen:
    """The terminal as a held resource: cursor hidden while reading.

    Use as a context manager. Leaving it by any route (quit, signal,
    exception) shows the cursor again and clears formatting; ``restore``
    is also registered with ``atexit`` while the screen is held.
    """

    def __init__(self, console: Console, orp_color: str = DEFAULT_ORP_COLOR) -> None:
        self._console = console
        self._style = orp_style(orp_color)
        self._held = False
        self._last_frame: Optional[Frame] = None

    @property
    def last_frame(self) -> Optional[Frame]:
        return self._last_frame

    def __enter__(self) -> "TerminalScreen":
        self._held = True
        atexit.register(self.restore)
        self._write(str(Control.clear()) + str(Control.home()) + str(Control.show_cursor(False)))
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()
        atexit.unregister(self.restore)

    def restore(self) -> None:
        if not self._held:
            return
        self._held = False
        self._write(
            SYNC_END
            + RESET
            + str(Control.clear())
            + str(Control.home())
            + str(Control.show_cursor(True))
        )

    def paint(self, snapshot: Snapshot) -> None:
        frame = self._frame(snapshot)
        self._write(SYNC_START + compose_frame(frame, self._style) + SYNC_END)

    def repaint(self, snapshot: Snapshot) -> None:
        """Clear and redraw everything, e.g. after the terminal is resized."""
        frame = self._frame(snapshot)
        self._write(
            SYNC_START
            + str(Control.clear())
            + compose_frame(frame, self._style)
            + SYNC_END
        )

    def _frame(self, snapshot: Snapshot) -> Frame:
        width, height = self._console.size
        frame = build_frame(snapshot, width, height)
        self._last_frame = frame
        return frame

    def _write(self, data: str) -> None:
        self._console.file.write(data)
        self._console.file.flush()
