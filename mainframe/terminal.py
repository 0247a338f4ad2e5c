"""Terminal access for the dashboard.

``CursesTerminal`` is a context manager: entering it puts the terminal into
curses mode (alternate screen, cbreak, no echo) and leaving it always
restores the original mode, exactly once. Curses is not thread-safe, so
drawing (render thread) and key reads (input loop) are serialised on an
internal lock.
"""

from __future__ import annotations

import curses
import logging
import threading
import time
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DrawCallback = Callable[[Any, int, int], None]

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6


class TerminalError(RuntimeError):
    """Drawing to or reading from the terminal failed."""


class Terminal(Protocol):
    def __enter__(self) -> Terminal: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    def draw(self, callback: DrawCallback) -> None: ...

    def read_key(self, timeout_ms: int) -> int | None: ...


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)


class CursesTerminal:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stdscr: curses.window | None = None

    def __enter__(self) -> CursesTerminal:
        try:
            stdscr = curses.initscr()
        except curses.error as e:
            raise TerminalError(f"cannot open terminal: {e}") from e
        self._stdscr = stdscr
        try:
            curses.noecho()
            curses.cbreak()
            stdscr.keypad(True)
            try:
                curses.curs_set(0)
            except curses.error:
                pass  # cursor visibility not supported by this terminal
            if curses.has_colors():
                _init_colors()
        except curses.error as e:
            self._restore()
            raise TerminalError(f"terminal setup failed: {e}") from e
        logger.debug("terminal acquired")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._restore()

    def _restore(self) -> None:
        with self._lock:
            stdscr, self._stdscr = self._stdscr, None
            if stdscr is None:
                return
            try:
                stdscr.keypad(False)
                curses.nocbreak()
                curses.echo()
            finally:
                curses.endwin()
        logger.debug("terminal released")

    def _screen(self) -> curses.window:
        if self._stdscr is None:
            raise TerminalError("terminal is not acquired")
        return self._stdscr

    def draw(self, callback: DrawCallback) -> None:
        """Clear the screen, let *callback* draw onto it, then refresh."""
        with self._lock:
            stdscr = self._screen()
            try:
                stdscr.erase()
                max_y, max_x = stdscr.getmaxyx()
                callback(stdscr, max_y, max_x)
                stdscr.refresh()
            except curses.error as e:
                raise TerminalError(f"draw failed: {e}") from e

    def read_key(self, timeout_ms: int) -> int | None:
        """Wait up to *timeout_ms* for a key press; None if nothing arrived.

        The lock is held only for a non-blocking getch, so drawing never
        waits on an idle keyboard.
        """
        with self._lock:
            stdscr = self._screen()
            stdscr.timeout(0)
            key = stdscr.getch()
        if key == -1:
            time.sleep(timeout_ms / 1000)
            return None
        if key == curses.KEY_RESIZE:
            with self._lock:
                self._screen().clear()
        return key
