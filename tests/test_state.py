"""Tests for mainframe.state."""

from __future__ import annotations

import threading

import pytest

from mainframe.polling import DiskInformation, Measurement, Sample, SystemInformation
from mainframe.state import TABS, SharedState, ViewState


def _sample(t: float, *cores: float) -> Sample:
    return Sample(
        timestamp=t,
        cpu_usage=[Measurement(f"cpu{i}", v, t) for i, v in enumerate(cores)],
    )


class TestSamples:
    def test_empty_snapshot(self) -> None:
        frame = SharedState(5).snapshot()
        assert frame.sample is None
        assert frame.cpu_history == []
        assert frame.view == ViewState()

    def test_latest_sample_and_history(self) -> None:
        shared = SharedState(3)
        for t, v in enumerate([10.0, 20.0, 30.0, 40.0]):
            shared.push_sample(_sample(float(t), v, v))
        frame = shared.snapshot()
        assert frame.sample is not None
        assert frame.sample.timestamp == 3.0
        assert frame.cpu_history == [20.0, 30.0, 40.0]
        assert shared.sample_count == 3

    def test_static_info_in_snapshot(self) -> None:
        info = SystemInformation(host_name="box")
        disks = [DiskInformation("/dev/sda1", "/", "ext4", 1, 2)]
        frame = SharedState(1, info=info, disks=disks).snapshot()
        assert frame.info.host_name == "box"
        assert frame.disks == disks
        assert frame.disks is not disks

    def test_zero_history_rejected(self) -> None:
        with pytest.raises(ValueError):
            SharedState(0)

    def test_concurrent_push_and_snapshot(self) -> None:
        shared = SharedState(16)
        stop = threading.Event()

        def writer() -> None:
            t = 0.0
            while not stop.is_set():
                shared.push_sample(_sample(t, 50.0))
                t += 1.0

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(500):
                frame = shared.snapshot()
                assert len(frame.cpu_history) <= 16
        finally:
            stop.set()
            thread.join()


class TestViewState:
    def test_next_tab_wraps(self) -> None:
        shared = SharedState(1)
        for _ in range(len(TABS)):
            shared.next_tab()
        assert shared.view.current_tab == 0

    def test_prev_tab_wraps(self) -> None:
        shared = SharedState(1)
        shared.prev_tab()
        assert shared.view.current_tab == len(TABS) - 1

    def test_select_tab(self) -> None:
        shared = SharedState(1)
        shared.select_tab(2)
        assert shared.view.current_tab == 2

    def test_select_out_of_range_ignored(self) -> None:
        shared = SharedState(1)
        shared.select_tab(len(TABS))
        shared.select_tab(-1)
        assert shared.view.current_tab == 0

    def test_scroll_never_negative(self) -> None:
        shared = SharedState(1)
        shared.scroll(-3)
        assert shared.view.scroll_offset == 0
        shared.scroll(2)
        shared.scroll(1)
        assert shared.view.scroll_offset == 3

    def test_tab_change_resets_scroll(self) -> None:
        shared = SharedState(1)
        shared.scroll(4)
        shared.next_tab()
        assert shared.view == ViewState(current_tab=1, scroll_offset=0)

    def test_snapshot_view_is_stable(self) -> None:
        shared = SharedState(1)
        frame = shared.snapshot()
        shared.next_tab()
        assert frame.view.current_tab == 0


class TestScrollLimit:
    def test_scroll_stops_at_limit(self) -> None:
        shared = SharedState(1)
        shared.select_tab(1)
        shared.limit_scroll(1, 2)
        for _ in range(50):
            shared.scroll(1)
        assert shared.view.scroll_offset == 2
        shared.scroll(-1)
        assert shared.view.scroll_offset == 1

    def test_limit_pulls_offset_back(self) -> None:
        shared = SharedState(1)
        shared.scroll(10)
        shared.limit_scroll(0, 3)
        assert shared.view.scroll_offset == 3

    def test_limit_for_other_tab_ignored(self) -> None:
        shared = SharedState(1)
        shared.scroll(5)
        shared.limit_scroll(3, 0)
        assert shared.view.scroll_offset == 5

    def test_tab_change_forgets_limit(self) -> None:
        shared = SharedState(1)
        shared.limit_scroll(0, 0)
        shared.next_tab()
        shared.scroll(4)
        assert shared.view.scroll_offset == 4

    def test_negative_limit_treated_as_zero(self) -> None:
        shared = SharedState(1)
        shared.limit_scroll(0, -3)
        shared.scroll(1)
        assert shared.view.scroll_offset == 0
