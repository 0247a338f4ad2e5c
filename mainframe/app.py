"""The mainframe runner: two independently paced loops plus the input loop.

    sample thread   every 1/poll_rate s     sampler.poll() → shared history
    render thread   every 1/refresh_rate s  shared snapshot → terminal.draw()
    calling thread  blocks on key presses   quit / tab / scroll

All three watch one stop event. The terminal is acquired when ``run()``
starts and released exactly once on every exit path, after both loops have
been told to stop and have finished or outlived a bounded join.
"""

from __future__ import annotations

import curses
import enum
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from mainframe.bar_chart import DEFAULT_THRESHOLDS
from mainframe.polling import Sampler
from mainframe.state import TABS, FrameData, SharedState
from mainframe.terminal import Terminal
from mainframe.ui import draw_frame

logger = logging.getLogger(__name__)

# Returns the largest useful scroll offset for the drawn page, if it scrolls
Renderer = Callable[[Any, int, int, FrameData, tuple[float, float]], int | None]

KEY_TIMEOUT_MS = 50

# Seconds, on top of the slower loop's period, to wait for a loop to finish
JOIN_GRACE = 1.0

_ESC = 27
_TAB = 9


class RunnerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


def _period(rate: float, name: str) -> float:
    if rate <= 0:
        raise ValueError(f"{name} must be positive, got {rate}")
    return 1.0 / rate


class MainframeApp:
    """Owns the loops, the shared state handle and the stop signal.

    A new instance has not acquired any resources; the terminal is only
    taken over by ``run()``.
    """

    def __init__(
        self,
        sampler: Sampler,
        terminal: Terminal,
        shared: SharedState,
        poll_rate: float = 3.0,
        refresh_rate: float = 20.0,
        thresholds: tuple[float, float] = DEFAULT_THRESHOLDS,
        renderer: Renderer = draw_frame,
    ) -> None:
        self._sample_period = _period(poll_rate, "poll rate")
        self._render_period = _period(refresh_rate, "refresh rate")
        self._sampler = sampler
        self._terminal = terminal
        self._shared = shared
        self._thresholds = thresholds
        self._renderer = renderer

        self._stop = threading.Event()
        self._state = RunnerState.IDLE
        self._state_lock = threading.Lock()
        self._failures: list[BaseException] = []
        self.samples_taken = 0
        self.frames_drawn = 0

    @property
    def state(self) -> RunnerState:
        return self._state

    @property
    def shared(self) -> SharedState:
        return self._shared

    def stop(self) -> None:
        """Ask every loop to finish. Safe to call from any thread."""
        self._stop.set()

    # ── Loops ────────────────────────────────────────────────────────────

    def _fail(self, exc: BaseException) -> None:
        with self._state_lock:
            self._failures.append(exc)
        self._stop.set()

    def _periodic(self, period: float, tick: Callable[[], None]) -> None:
        """Call *tick* on a fixed schedule until stopped or *tick* raises."""
        deadline = time.monotonic()
        while not self._stop.is_set():
            try:
                tick()
            except Exception as e:
                logger.exception("%s failed, shutting down", threading.current_thread().name)
                self._fail(e)
                return
            deadline += period
            now = time.monotonic()
            if deadline < now:
                # Fell behind; resync to now.
                deadline = now
            self._stop.wait(deadline - now)

    def _sample_tick(self) -> None:
        sample = self._sampler.poll()
        self._shared.push_sample(sample)
        self.samples_taken += 1

    def _render_tick(self) -> None:
        frame = self._shared.snapshot()
        limits: list[int | None] = []
        self._terminal.draw(
            lambda win, h, w: limits.append(self._renderer(win, h, w, frame, self._thresholds))
        )
        self.frames_drawn += 1
        if limits and limits[0] is not None:
            self._shared.limit_scroll(frame.view.current_tab, limits[0])

    def _handle_key(self, key: int) -> None:
        if key in (ord("q"), ord("Q"), _ESC):
            logger.info("quit requested")
            self._stop.set()
        elif key in (_TAB, curses.KEY_RIGHT, ord("l")):
            self._shared.next_tab()
        elif key in (curses.KEY_BTAB, curses.KEY_LEFT, ord("h")):
            self._shared.prev_tab()
        elif ord("1") <= key < ord("1") + len(TABS):
            self._shared.select_tab(key - ord("1"))
        elif key in (curses.KEY_DOWN, ord("j")):
            self._shared.scroll(1)
        elif key in (curses.KEY_UP, ord("k")):
            self._shared.scroll(-1)

    def _input_loop(self) -> None:
        while not self._stop.is_set():
            try:
                key = self._terminal.read_key(KEY_TIMEOUT_MS)
            except KeyboardInterrupt:
                self._stop.set()
                return
            if key is not None:
                self._handle_key(key)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def _set_state(self, state: RunnerState) -> None:
        with self._state_lock:
            self._state = state

    def _join(self, threads: list[threading.Thread]) -> None:
        """Wait a bounded time for the loops; a stuck one is left to die with the process."""
        slowest = max(self._sample_period, self._render_period)
        deadline = time.monotonic() + slowest + JOIN_GRACE
        for t in threads:
            if t.is_alive():
                t.join(max(0.0, deadline - time.monotonic()))
            if t.is_alive():
                logger.warning("%s did not stop in time, abandoning it", t.name)

    def run(self) -> None:
        """Run until quit. Re-raises the first loop failure after cleanup."""
        with self._state_lock:
            if self._state is not RunnerState.IDLE:
                raise RuntimeError(f"cannot run from state {self._state.value}")
            self._state = RunnerState.RUNNING

        threads = [
            threading.Thread(
                target=self._periodic,
                args=(self._sample_period, self._sample_tick),
                name="mainframe-sample",
                daemon=True,
            ),
            threading.Thread(
                target=self._periodic,
                args=(self._render_period, self._render_tick),
                name="mainframe-render",
                daemon=True,
            ),
        ]

        try:
            with self._terminal:
                logger.info(
                    "running: poll every %.3fs, redraw every %.3fs",
                    self._sample_period,
                    self._render_period,
                )
                try:
                    for t in threads:
                        t.start()
                    self._input_loop()
                except BaseException as e:
                    self._fail(e)
                finally:
                    self._set_state(RunnerState.SHUTTING_DOWN)
                    self._stop.set()
                    self._join(threads)
        finally:
            self._set_state(RunnerState.STOPPED)
            logger.info(
                "stopped after %d samples and %d frames", self.samples_taken, self.frames_drawn
            )

        if self._failures:
            raise self._failures[0]
