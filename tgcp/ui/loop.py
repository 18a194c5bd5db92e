"""
Terminal event loop.

One asyncio loop drives everything. Each frame reads every key that is
waiting (without blocking), starts at most one job (a key handler or the
application of finished operation polls), ticks the poller and redraws.
Keys that arrive while a job is awaiting the network are buffered and
handled in order once it finishes.
"""

import asyncio
import curses
import os
from collections import deque
from typing import Callable, Optional, TypeVar

from tgcp.app.controller import App
from tgcp.logging import get_logger
from tgcp.ui.keys import KeyHandler
from tgcp.ui.render import Renderer

logger = get_logger(__name__)

T = TypeVar("T")

FRAME_INTERVAL = 0.05
ESC_DELAY_MS = "25"

SPECIAL_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_NPAGE: "pgdn",
    curses.KEY_PPAGE: "pgup",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_DC: "delete",
    curses.KEY_BTAB: "btab",
    curses.KEY_RESIZE: "resize",
    **{curses.KEY_F0 + n: f"f{n}" for n in range(1, 13)},
}

CONTROL_CHARS = {
    "\n": "enter",
    "\r": "enter",
    "\x1b": "esc",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\t": "tab",
    "\x03": "ctrl-c",
    "\x04": "ctrl-d",
    "\x15": "ctrl-u",
}


def normalize_key(key) -> Optional[str]:
    """Key name for a get_wch() result, or None to ignore it."""
    if isinstance(key, int):
        return SPECIAL_KEYS.get(key)
    if key in CONTROL_CHARS:
        return CONTROL_CHARS[key]
    if key.isprintable():
        return key
    return None


class TerminalLoop:
    """Runs the App on an initialized curses screen."""

    def __init__(self, stdscr, app: App, frame_interval: float = FRAME_INTERVAL) -> None:
        self.stdscr = stdscr
        self.app = app
        self.frame_interval = frame_interval
        self.renderer = Renderer(stdscr)
        self.keys = KeyHandler(app)
        self.buffer: deque[str] = deque()
        self._job: Optional[asyncio.Task] = None

        self.stdscr.nodelay(True)
        self.stdscr.keypad(True)
        try:
            curses.curs_set(0)
            curses.raw()
        except curses.error:
            pass
        app.shell.suspend = self.suspend

    def read_keys(self) -> list[str]:
        keys = []
        while True:
            try:
                raw = self.stdscr.get_wch()
            except curses.error:
                return keys
            name = normalize_key(raw)
            if name is not None and name != "resize":
                keys.append(name)

    def suspend(self, func: Callable[[], T]) -> T:
        """Hand the real terminal to ``func`` and restore the screen after."""
        try:
            curses.def_prog_mode()
            curses.endwin()
        except curses.error:
            pass
        try:
            return func()
        finally:
            try:
                curses.reset_prog_mode()
                curses.raw()
                self.stdscr.nodelay(True)
                self.stdscr.keypad(True)
                self.stdscr.clear()
                self.stdscr.refresh()
            except curses.error:
                pass

    async def _apply_polls(self) -> bool:
        await self.app.apply_poll_results()
        return False

    def _start_job(self) -> None:
        if self.buffer:
            self._job = asyncio.create_task(self.keys.handle(self.buffer.popleft()))
        elif self.app.poller is not None and not self.app.poller.results.empty():
            self._job = asyncio.create_task(self._apply_polls())

    async def run(self, initial_load: bool = True) -> None:
        if initial_load:
            self._job = asyncio.create_task(self._initial_load())

        while True:
            self.buffer.extend(self.read_keys())
            if "ctrl-c" in self.buffer:
                break

            if self._job is not None and self._job.done():
                job, self._job = self._job, None
                if job.result():
                    break
            if self._job is None:
                self._start_job()

            self.app.poll_tick()
            self.renderer.draw(self.app)
            await asyncio.sleep(self.frame_interval)

        if self._job is not None and not self._job.done():
            self._job.cancel()
        if self.app.poller is not None:
            await self.app.poller.wait_idle()

    async def _initial_load(self) -> bool:
        await self.app.refresh_current()
        return False


async def run_curses(app: App, initial_load: bool = True) -> None:
    """Set up the terminal the way curses.wrapper does, run, and restore it."""
    os.environ.setdefault("ESCDELAY", ESC_DELAY_MS)
    stdscr = curses.initscr()
    try:
        curses.noecho()
        curses.cbreak()
        stdscr.keypad(True)
        logger.info("Terminal UI started")
        await TerminalLoop(stdscr, app).run(initial_load)
    finally:
        stdscr.keypad(False)
        curses.echo()
        curses.nocbreak()
        curses.endwin()
        logger.info("Terminal UI stopped")
