#!/usr/bin/env python3
"""Tests for the interactive session, driven through a pipe keyboard."""

import asyncio
import io
import signal
import sys

import pytest
from prompt_toolkit.input import create_pipe_input
from rich.console import Console

import reader
from display import END_MESSAGE, PAUSED_MESSAGE
from errors import InvalidOption

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="pipe input and signals need a POSIX loop"
)

WORDS = ["The", "quick", "brown", "fox."]


def _console():
    return Console(file=io.StringIO(), width=80, height=24)


def _run(keys: str, words=WORDS, **kwargs) -> str:
    console = _console()
    with create_pipe_input() as inp:
        inp.send_text(keys)
        reader.run(words, 250, True, console=console, key_input=inp, **kwargs)
    return console.file.getvalue()


# ─── run tests ───────────────────────────────────────────────────────


class TestRun:
    def test_quit_restores_terminal(self):
        out = _run("q")
        assert "\x1b[?25l" in out
        assert out.endswith("\x1b[?25h")
        assert "The" in out

    def test_step_forward_then_quit(self):
        out = _run("fq")
        assert "quick" in out

    def test_arrow_keys_parsed(self):
        out = _run("\x1b[C\x1b[Cq")
        assert "brown" in out

    def test_pause_shows_status(self):
        out = _run(" q")
        assert PAUSED_MESSAGE in out

    def test_speed_keys(self):
        out = _run("++-q")
        assert "275 WPM" in out
        assert "300 WPM" in out

    def test_custom_speed_step(self):
        out = _run("+q", wpm_step=50)
        assert "300 WPM" in out

    def test_jump_past_end_clamps(self):
        out = _run("Fq")
        assert "fox." in out
        assert "4/4" in out

    def test_unknown_keys_ignored(self):
        out = _run("xyzq")
        assert "quick" not in out

    def test_ctrl_c_quits(self):
        out = _run("\x03")
        assert out.endswith("\x1b[?25h")

    def test_keys_after_quit_ignored(self):
        out = _run("qf")
        assert "quick" not in out

    def test_invalid_color_fails_before_drawing(self):
        console = _console()
        with create_pipe_input() as inp:
            with pytest.raises(InvalidOption):
                reader.run(
                    WORDS, 250, True, orp_color="mauve", console=console, key_input=inp
                )
        assert console.file.getvalue() == ""

    def test_plays_to_end_without_input(self, monkeypatch):
        monkeypatch.setattr("playback.ORIENTATION_DELAY", 0.01)
        console = _console()

        async def session() -> None:
            with create_pipe_input() as inp:
                task = asyncio.create_task(
                    reader._run_session(
                        ["one", "two"],
                        1000,
                        True,
                        orp_color="red",
                        wpm_step=25,
                        jump_size=10,
                        console=console,
                        key_input=inp,
                    )
                )
                await asyncio.sleep(0.5)
                inp.send_text("q")
                await asyncio.wait_for(task, timeout=2)

        asyncio.run(session())
        out = console.file.getvalue()
        assert "two" in out
        assert END_MESSAGE in out

    def test_resize_while_paused_keeps_position(self):
        console = _console()

        async def session() -> None:
            with create_pipe_input() as inp:
                inp.send_text(" ")
                task = asyncio.create_task(
                    reader._run_session(
                        WORDS,
                        250,
                        True,
                        orp_color="red",
                        wpm_step=25,
                        jump_size=10,
                        console=console,
                        key_input=inp,
                    )
                )
                await asyncio.sleep(0.05)
                signal.raise_signal(signal.SIGWINCH)
                await asyncio.sleep(0.05)
                inp.send_text("q")
                await asyncio.wait_for(task, timeout=2)

        asyncio.run(session())
        out = console.file.getvalue()
        # Initial clear on entry, one for the resize, one on restore.
        assert out.count("\x1b[2J") == 3
        assert "quick" not in out

    def test_resize_during_playback_keeps_timer(self, monkeypatch):
        monkeypatch.setattr("playback.ORIENTATION_DELAY", 0.05)
        console = _console()
        words = ["one", "two", "three", "four", "five", "six"]

        async def session() -> None:
            with create_pipe_input() as inp:
                task = asyncio.create_task(
                    reader._run_session(
                        words,
                        1000,
                        True,
                        orp_color="red",
                        wpm_step=25,
                        jump_size=10,
                        console=console,
                        key_input=inp,
                    )
                )
                await asyncio.sleep(0.1)
                signal.raise_signal(signal.SIGWINCH)
                await asyncio.sleep(0.6)
                inp.send_text("q")
                await asyncio.wait_for(task, timeout=2)

        asyncio.run(session())
        out = console.file.getvalue()
        assert out.count("\x1b[2J") == 3
        resize_at = out.index("\x1b[2J", out.index("\x1b[2J") + 1)
        after_resize = out[resize_at:]
        # Words kept advancing at the same speed after the repaint.
        assert "six" in after_resize
        assert END_MESSAGE in after_resize
        assert "1000 WPM" in after_resize
        assert PAUSED_MESSAGE not in out

    @pytest.mark.parametrize("signame", ["SIGINT", "SIGTERM"])
    def test_interrupt_signal_restores_terminal(self, signame):
        console = _console()

        async def session() -> None:
            with create_pipe_input() as inp:
                task = asyncio.create_task(
                    reader._run_session(
                        WORDS,
                        250,
                        True,
                        orp_color="red",
                        wpm_step=25,
                        jump_size=10,
                        console=console,
                        key_input=inp,
                    )
                )
                await asyncio.sleep(0.05)
                signal.raise_signal(getattr(signal, signame))
                await asyncio.wait_for(task, timeout=2)

        asyncio.run(session())
        out = console.file.getvalue()
        assert "\x1b[?25l" in out
        assert out.endswith("\x1b[?25h")
        assert "quick" not in out
