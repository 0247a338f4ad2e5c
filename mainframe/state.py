"""State shared between the sample, render and input loops.

Everything here is guarded by one lock. Readers take a ``FrameData``
snapshot under the lock and do their drawing after releasing it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace

from mainframe.history import HistoryBuffer
from mainframe.polling import DiskInformation, Sample, SystemInformation

TABS: tuple[str, ...] = ("Home", "Usage", "GPU", "Disks", "Help")


@dataclass(frozen=True)
class ViewState:
    current_tab: int = 0
    scroll_offset: int = 0


@dataclass(frozen=True)
class FrameData:
    """Everything one render pass needs, copied out of the shared state."""

    view: ViewState
    sample: Sample | None = None
    cpu_history: list[float] = field(default_factory=lambda: list[float]())
    info: SystemInformation = SystemInformation()
    disks: list[DiskInformation] = field(default_factory=lambda: list[DiskInformation]())


class SharedState:
    def __init__(
        self,
        history_size: int,
        info: SystemInformation | None = None,
        disks: list[DiskInformation] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._history: HistoryBuffer[Sample] = HistoryBuffer(history_size)
        self._view = ViewState()
        self._scroll_limit: int | None = None
        self._info = info if info is not None else SystemInformation()
        self._disks = list(disks) if disks else []

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._history.count

    def push_sample(self, sample: Sample) -> None:
        with self._lock:
            self._history.add(sample)

    def snapshot(self) -> FrameData:
        with self._lock:
            latest = self._history.last()
            cpu_history = [s.cpu_average for s in self._history]
            return FrameData(
                view=self._view,
                sample=latest,
                cpu_history=cpu_history,
                info=self._info,
                disks=list(self._disks),
            )

    # ── View state (mutated by the input loop) ──────────────────────────

    @property
    def view(self) -> ViewState:
        with self._lock:
            return self._view

    def _set_tab(self, index: int) -> None:
        self._view = ViewState(current_tab=index)
        self._scroll_limit = None

    def select_tab(self, index: int) -> None:
        with self._lock:
            if 0 <= index < len(TABS) and index != self._view.current_tab:
                self._set_tab(index)

    def next_tab(self) -> None:
        with self._lock:
            self._set_tab((self._view.current_tab + 1) % len(TABS))

    def prev_tab(self) -> None:
        with self._lock:
            self._set_tab((self._view.current_tab - 1) % len(TABS))

    def scroll(self, delta: int) -> None:
        """Move the scroll offset, keeping it between zero and the page's limit.

        Until a page has been drawn its limit is unknown and only the lower
        bound applies.
        """
        with self._lock:
            offset = max(0, self._view.scroll_offset + delta)
            if self._scroll_limit is not None:
                offset = min(offset, self._scroll_limit)
            self._view = replace(self._view, scroll_offset=offset)

    def limit_scroll(self, tab: int, limit: int) -> None:
        """Record the largest offset *tab* can use at the current terminal size.

        Called by the render loop after drawing; ignored if the user has
        switched tabs since that frame was snapshotted.
        """
        with self._lock:
            if tab != self._view.current_tab:
                return
            self._scroll_limit = max(0, limit)
            if self._view.scroll_offset > self._scroll_limit:
                self._view = replace(self._view, scroll_offset=self._scroll_limit)
