"""Interactive RSVP session: ties the engine, the screen and the keyboard together."""

import asyncio
import logging
import signal
from typing import Callable, Optional, Sequence

from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyPress
from rich.console import Console

from controls import command_for, dispatch, open_key_input
from display import DEFAULT_ORP_COLOR, TerminalScreen
from playback import JUMP_SIZE, WPM_STEP, PlaybackEngine

logger = logging.getLogger(__name__)


def run(
    words: Sequence[str],
    wpm: int,
    stdin_is_tty: bool,
    *,
    orp_color: str = DEFAULT_ORP_COLOR,
    wpm_step: int = WPM_STEP,
    jump_size: int = JUMP_SIZE,
    console: Optional[Console] = None,
    key_input: Optional[Input] = None,
) -> None:
    """Read ``words`` on the terminal until the user quits.

    Args:
        words: Tokenized text, at least one word.
        wpm: Starting speed in words per minute.
        stdin_is_tty: Whether stdin is the keyboard. If not (piped text),
            keys are read from the controlling terminal.
        orp_color: Highlight color for the fixation letter.
        console: Console to draw on (for testing).
        key_input: Keyboard input to use instead of opening one (for testing).
    """
    asyncio.run(
        _run_session(
            words,
            wpm,
            stdin_is_tty,
            orp_color=orp_color,
            wpm_step=wpm_step,
            jump_size=jump_size,
            console=console or Console(),
            key_input=key_input,
        )
    )


async def _run_session(
    words: Sequence[str],
    wpm: int,
    stdin_is_tty: bool,
    *,
    orp_color: str,
    wpm_step: int,
    jump_size: int,
    console: Console,
    key_input: Optional[Input],
) -> None:
    loop = asyncio.get_running_loop()
    finished: asyncio.Future[None] = loop.create_future()

    # Everything that can fail happens before the terminal is touched.
    screen = TerminalScreen(console, orp_color)
    tty = None
    if key_input is None:
        key_input, tty = open_key_input(stdin_is_tty)

    def quit_session() -> None:
        engine.stop()
        if not finished.done():
            finished.set_result(None)

    def handle(key_press: KeyPress) -> None:
        if finished.done():
            return
        command = command_for(key_press)
        if command is None:
            return
        if dispatch(engine, command, wpm_step, jump_size):
            logger.info("Quit requested")
            quit_session()

    def on_keys() -> None:
        for key_press in key_input.read_keys():
            handle(key_press)
        # A lone Escape is held back by the parser waiting for the rest of
        # a sequence; arrow keys arrive in a single read.
        for key_press in key_input.flush_keys():
            handle(key_press)
        if key_input.closed:
            quit_session()

    def on_resize() -> None:
        screen.repaint(engine.snapshot())

    def on_signal(signame: str) -> None:
        logger.info("Received %s, shutting down", signame)
        quit_session()

    def on_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        # Key and timer callbacks run outside this coroutine; surface their
        # errors here so they end the session instead of being logged.
        error = context.get("exception")
        if error is None or finished.done():
            loop.default_exception_handler(context)
            return
        engine.stop()
        finished.set_exception(error)

    previous_handler = loop.get_exception_handler()
    installed: list[int] = []
    try:
        engine = PlaybackEngine(words, wpm, scheduler=loop, render=screen.paint)
        loop.set_exception_handler(on_error)
        with screen, key_input.raw_mode(), key_input.attach(on_keys):
            installed = _install_signal_handlers(loop, on_resize, on_signal)
            engine.start()
            await finished
        logger.info("Session ended at word %d", engine.snapshot().position + 1)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
        loop.set_exception_handler(previous_handler)
        if tty is not None:
            tty.close()


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    on_resize: Callable[[], None],
    on_signal: Callable[[str], None],
) -> list[int]:
    installed = []
    for name in ("SIGWINCH", "SIGINT", "SIGTERM"):
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        try:
            if name == "SIGWINCH":
                loop.add_signal_handler(signum, on_resize)
            else:
                loop.add_signal_handler(signum, on_signal, name)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support.
            continue
        installed.append(signum)
    return installed
