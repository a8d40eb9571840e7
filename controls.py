"""Keyboard commands for the reader and the input device they come from."""

import logging
from enum import Enum, auto
from typing import Optional, TextIO, Union

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys

from errors import InputUnavailable
from playback import JUMP_SIZE, WPM_STEP, PlaybackEngine

logger = logging.getLogger(__name__)

CONTROLLING_TERMINAL = "/dev/tty"


class Command(Enum):
    TOGGLE_PAUSE = auto()
    STEP_BACK = auto()
    STEP_FORWARD = auto()
    JUMP_BACK = auto()
    JUMP_FORWARD = auto()
    SPEED_UP = auto()
    SLOW_DOWN = auto()
    RESTART = auto()
    QUIT = auto()


# Letters arrive as the typed character, so shift+b is "B".
KEY_BINDINGS: dict[Union[Keys, str], Command] = {
    " ": Command.TOGGLE_PAUSE,
    Keys.Left: Command.STEP_BACK,
    "b": Command.STEP_BACK,
    Keys.Right: Command.STEP_FORWARD,
    "f": Command.STEP_FORWARD,
    Keys.ShiftLeft: Command.JUMP_BACK,
    "B": Command.JUMP_BACK,
    Keys.ShiftRight: Command.JUMP_FORWARD,
    "F": Command.JUMP_FORWARD,
    Keys.Up: Command.SPEED_UP,
    "+": Command.SPEED_UP,
    "=": Command.SPEED_UP,
    Keys.Down: Command.SLOW_DOWN,
    "-": Command.SLOW_DOWN,
    "_": Command.SLOW_DOWN,
    "r": Command.RESTART,
    "q": Command.QUIT,
    Keys.Escape: Command.QUIT,
    Keys.ControlC: Command.QUIT,
}


def command_for(key_press: KeyPress) -> Optional[Command]:
    return KEY_BINDINGS.get(key_press.key)


def dispatch(
    engine: PlaybackEngine,
    command: Command,
    wpm_step: int = WPM_STEP,
    jump_size: int = JUMP_SIZE,
) -> bool:
    """Apply ``command`` to the engine. Returns True when the reader should quit."""
    if command is Command.QUIT:
        return True
    if command is Command.TOGGLE_PAUSE:
        engine.toggle_pause()
    elif command is Command.STEP_BACK:
        engine.step(-1)
    elif command is Command.STEP_FORWARD:
        engine.step(1)
    elif command is Command.JUMP_BACK:
        engine.step(-jump_size)
    elif command is Command.JUMP_FORWARD:
        engine.step(jump_size)
    elif command is Command.SPEED_UP:
        engine.adjust_speed(wpm_step)
    elif command is Command.SLOW_DOWN:
        engine.adjust_speed(-wpm_step)
    elif command is Command.RESTART:
        engine.restart()
    return False


def open_key_input(
    stdin_is_tty: bool, stdin: Optional[TextIO] = None
) -> tuple[Input, Optional[TextIO]]:
    """Return a keyboard input and the terminal stream opened for it, if any.

    When stdin carries piped text the keyboard is read from the
    controlling terminal instead. The caller closes the returned stream.
    """
    if stdin_is_tty:
        return create_input(stdin=stdin), None
    try:
        tty = open(CONTROLLING_TERMINAL, "r")
    except OSError as e:
        raise InputUnavailable(
            f"Cannot open {CONTROLLING_TERMINAL} for keyboard input: {e}"
        ) from e
    logger.debug("Reading keys from %s", CONTROLLING_TERMINAL)
    return create_input(stdin=tty), tty
