"""Curses panels and pages for the mainframe dashboard.

Everything here draws from a ``FrameData`` snapshot; nothing touches the
shared state or the sensors. Layout is immediate-mode: widths are known at
draw time and bar charts are rendered to exactly the width available.
"""

from __future__ import annotations

import curses
import time
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from mainframe import bar_chart
from mainframe.bar_chart import Glyph, render_bar
from mainframe.polling import DiskInformation, GpuReading, Sample, SystemInformation
from mainframe.state import TABS, FrameData
from mainframe.terminal import C_BLUE, C_CRITICAL, C_DIM, C_NORMAL, C_TITLE, C_WARNING

SPARK = " ▁▂▃▄▅▆▇█"
MIN_WIDTH = 40
MIN_HEIGHT = 10
LABEL_WIDTH = 8

try:
    VERSION = version("mainframe")
except PackageNotFoundError:
    VERSION = "dev"

# Colour tag → (colour pair, bold)
_GLYPH_STYLE: dict[str, tuple[int, bool]] = {
    bar_chart.OK: (C_NORMAL, True),
    bar_chart.WARN: (C_WARNING, True),
    bar_chart.CRITICAL: (C_CRITICAL, True),
    bar_chart.MUTED: (C_DIM, False),
    bar_chart.BRACKET: (C_DIM, False),
    bar_chart.LABEL: (C_DIM, False),
}

Thresholds = tuple[float, float]


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def glyph_runs(glyphs: list[Glyph]) -> list[tuple[str, str]]:
    """Collapse consecutive same-coloured glyphs into (text, colour) runs."""
    runs: list[tuple[str, str]] = []
    for g in glyphs:
        if runs and runs[-1][1] == g.color:
            runs[-1] = (runs[-1][0] + g.char, g.color)
        else:
            runs.append((g.char, g.color))
    return runs


def clamp_scroll(offset: int, total_rows: int, visible_rows: int) -> int:
    return max(0, min(offset, total_rows - visible_rows))


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(
    win: curses.window,
    y: int,
    x: int,
    h: int,
    w: int,
    title: str = "",
) -> curses.window | None:
    """Draw a bordered box and return the inner sub-window."""
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, y, x)
        sub.box()
        if title and len(title) + 4 < w:
            sub.addstr(
                0, 2, f" {title} ", curses.color_pair(C_TITLE) | curses.A_BOLD
            )
        return sub
    except curses.error:
        return None


def _draw_glyphs(win: curses.window, y: int, x: int, glyphs: list[Glyph]) -> None:
    max_y, max_x = win.getmaxyx()
    if y >= max_y - 1 or x >= max_x - 1:
        return
    cx = x
    for text, color in glyph_runs(glyphs):
        pair, bold = _GLYPH_STYLE.get(color, (C_DIM, False))
        attr = curses.color_pair(pair) | (curses.A_BOLD if bold else 0)
        _safe(win, y, cx, text, attr)
        cx += len(text)


def _draw_chart(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    label: str,
    value: float,
    bounds: tuple[float, float],
    thresholds: Thresholds,
    name_width: int = LABEL_WIDTH,
) -> None:
    """Render ``label [||||||    ]`` on one line, *width* glyphs wide."""
    if width <= 0:
        return
    glyphs = render_bar(
        value, bounds, width, name=label, name_width=name_width, thresholds=thresholds
    )
    _draw_glyphs(win, y, x, glyphs)


def _draw_sparkline(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    history: list[float],
    max_val: float = 100.0,
    color: int = C_BLUE,
) -> None:
    """Render a sparkline from the most recent *width* history values."""
    max_y, max_x = win.getmaxyx()
    if y >= max_y - 1 or x >= max_x - 1:
        return
    w = min(width, max_x - x - 1, len(history))
    if w < 1:
        return
    values = history[-w:]
    chars: list[str] = []
    for v in values:
        idx = int(min(v / max_val, 1.0) * (len(SPARK) - 1))
        chars.append(SPARK[max(0, min(idx, len(SPARK) - 1))])
    _safe(win, y, x, "".join(chars), curses.color_pair(color))


def _draw_placeholder(win: curses.window, y: int, x: int, text: str) -> None:
    _safe(win, y, x, text, curses.color_pair(C_DIM))


# ── Panels ─────────────────────────────────────────────────────────────────


def draw_sys_info(
    win: curses.window, y: int, x: int, w: int, h: int, info: SystemInformation
) -> None:
    box = _draw_box(win, y, x, h, w, "System Information")
    if not box:
        return
    rows = [
        ("Host Name", info.host_name),
        ("Operating System", info.os),
        ("OS Version", info.os_version),
        ("Kernel Version", info.kernel_version),
        ("CPU count", str(info.logical_processors)),
        ("Core count", str(info.physical_processors)),
        ("Total Memory", fmt_bytes(info.total_memory)),
    ]
    for row, (category, value) in enumerate(rows, start=1):
        if row >= h - 1:
            break
        _safe(box, row, 2, f"{category + ':':<19s}"[: w - 4], curses.A_BOLD)
        _safe(box, row, 21, value[: max(0, w - 23)])


def draw_cpu_average(
    win: curses.window,
    y: int,
    x: int,
    w: int,
    sample: Sample,
    thresholds: Thresholds,
) -> None:
    box = _draw_box(win, y, x, 3, w, "CPU Load (avg)")
    if not box:
        return
    avg = sample.cpu_average
    _draw_chart(box, 1, 1, w - 2, f"{int(avg)}%", avg, (0.0, 100.0), thresholds)


def draw_cpu_temp(
    win: curses.window,
    y: int,
    x: int,
    w: int,
    sample: Sample,
    thresholds: Thresholds,
) -> None:
    box = _draw_box(win, y, x, 3, w, "CPU Temp (C)")
    if not box:
        return
    temp = sample.cpu_temperature.value
    if temp <= 0.0:
        _draw_placeholder(box, 1, 2, "n/a")
        return
    _draw_chart(box, 1, 1, w - 2, f"{temp:.0f}C", temp, (0.0, 100.0), thresholds)


def draw_memory(
    win: curses.window,
    y: int,
    x: int,
    w: int,
    sample: Sample,
    thresholds: Thresholds,
) -> None:
    box = _draw_box(win, y, x, 5, w, "Memory")
    if not box:
        return
    total = sample.memory_total.value
    used = sample.memory_usage.value
    if total <= 0:
        _draw_placeholder(box, 1, 2, "n/a")
        return
    used_color, _ = _GLYPH_STYLE[bar_chart.color_for_range(used, (0.0, total), thresholds)]
    _safe(box, 1, 2, "Total Memory: ", curses.A_BOLD)
    _safe(box, fmt_bytes(total))
    _safe(box, 2, 2, "Used Memory:  ", curses.A_BOLD)
    _safe(box, fmt_bytes(used), curses.color_pair(used_color))
    _draw_chart(
        box, 3, 1, w - 2, f"{int(sample.memory_percent)}%", used, (0.0, total), thresholds
    )


def draw_gpu(
    win: curses.window,
    y: int,
    x: int,
    w: int,
    gpu: GpuReading,
    thresholds: Thresholds,
) -> None:
    title = gpu.name if len(gpu.name) < w - 6 else gpu.name[: w - 9] + "..."
    box = _draw_box(win, y, x, 5, w, title)
    if not box:
        return
    _draw_chart(
        box, 1, 1, w - 2, f"{gpu.temperature:.0f}C", gpu.temperature, (0.0, 100.0), thresholds
    )
    _draw_chart(
        box,
        2,
        1,
        w - 2,
        f"{gpu.utilization_percent:.0f}%",
        gpu.utilization_percent,
        (0.0, 100.0),
        thresholds,
    )
    if gpu.memory_total_bytes > 0:
        pct = 100.0 * gpu.memory_used_bytes / gpu.memory_total_bytes
        _draw_chart(
            box,
            3,
            1,
            w - 2,
            f"{pct:.0f}%",
            float(gpu.memory_used_bytes),
            (0.0, float(gpu.memory_total_bytes)),
            thresholds,
        )


def draw_disk(
    win: curses.window, y: int, x: int, w: int, disk: DiskInformation, thresholds: Thresholds
) -> None:
    box = _draw_box(win, y, x, 5, w, f"Disk {disk.name}")
    if not box:
        return
    free = disk.total_space - disk.used_space
    _safe(box, 1, 2, f"{disk.kind} on {disk.mount_point}"[: w - 4])
    _safe(box, 2, 2, f"Free space: {fmt_bytes(free)} of {fmt_bytes(disk.total_space)}"[: w - 4])
    if disk.total_space > 0:
        _draw_chart(
            box,
            3,
            1,
            w - 2,
            f"{disk.used_percent:.0f}%",
            float(disk.used_space),
            (0.0, float(disk.total_space)),
            thresholds,
        )


# ── Pages ──────────────────────────────────────────────────────────────────


def draw_home_page(
    win: curses.window, top: int, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> None:
    col_w = w // 2 if w >= 80 else w
    draw_sys_info(win, top, 0, col_w, 9, frame.info)

    if col_w == w:
        x, y = 0, top + 9
    else:
        x, y = col_w, top
    sample = frame.sample
    if sample is None:
        _draw_placeholder(win, y + 1, x + 2, "Waiting for first sample...")
        return
    draw_cpu_average(win, y, x, w - x, sample, thresholds)
    draw_cpu_temp(win, y + 3, x, w - x, sample, thresholds)
    draw_memory(win, y + 6, x, w - x, sample, thresholds)


def draw_usage_page(
    win: curses.window, top: int, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> int | None:
    """Per-core bars in two columns. Returns the largest usable scroll offset."""
    box = _draw_box(win, top, 0, h - top - 2, w, "CPU Usage")
    if frame.sample is None or not frame.sample.cpu_usage:
        _draw_placeholder(win, top + 1, 2, "Waiting for first sample...")
        return None
    limit = None
    if box:
        inner_h = box.getmaxyx()[0] - 2
        col_w = (w - 3) // 2
        readings = frame.sample.cpu_usage
        total_rows = (len(readings) + 1) // 2
        limit = max(0, total_rows - inner_h)
        offset = clamp_scroll(frame.view.scroll_offset, total_rows, inner_h)
        for i, m in enumerate(readings):
            row = i // 2 - offset
            if row < 0 or row >= inner_h:
                continue
            col = 1 + (i % 2) * (col_w + 1)
            _draw_chart(box, row + 1, col, col_w - 1, m.name, m.value, (0.0, 100.0), thresholds, 6)
        if total_rows > inner_h:
            hint = f" {offset + 1}-{min(total_rows, offset + inner_h)}/{total_rows} "
            _safe(box, inner_h + 1, max(1, w - len(hint) - 2), hint, curses.color_pair(C_DIM))

    if len(frame.cpu_history) > 1:
        _safe(win, h - 2, 1, "avg ", curses.color_pair(C_DIM))
        _draw_sparkline(win, h - 2, 5, w - 7, frame.cpu_history, 100.0, C_BLUE)
    return limit


def draw_gpu_page(
    win: curses.window, top: int, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> None:
    if frame.sample is None:
        _draw_placeholder(win, top + 1, 2, "Waiting for first sample...")
        return
    if not frame.sample.gpu_info:
        _draw_placeholder(win, top + 1, 2, "No GPU detected")
        return
    y = top
    for gpu in frame.sample.gpu_info:
        if y + 5 > h:
            break
        draw_gpu(win, y, 0, w, gpu, thresholds)
        y += 5


def draw_disks_page(
    win: curses.window, top: int, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> int | None:
    if not frame.disks:
        _draw_placeholder(win, top + 1, 2, "No disks found")
        return 0
    visible = max(1, (h - top) // 5)
    offset = clamp_scroll(frame.view.scroll_offset, len(frame.disks), visible)
    y = top
    for disk in frame.disks[offset : offset + visible]:
        draw_disk(win, y, 0, w, disk, thresholds)
        y += 5
    return max(0, len(frame.disks) - visible)


HELP_LINES = (
    ("q / Esc", "quit"),
    ("Tab / Right / l", "next page"),
    ("Shift-Tab / Left / h", "previous page"),
    (f"1-{len(TABS)}", "jump to page"),
    ("Up / Down / k / j", "scroll"),
)


def draw_help_page(
    win: curses.window, top: int, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> None:
    box = _draw_box(win, top, 0, len(HELP_LINES) + 2, w, "Keys")
    if not box:
        return
    for row, (keys, action) in enumerate(HELP_LINES, start=1):
        _safe(box, row, 2, f"{keys:<22s}", curses.A_BOLD)
        _safe(box, action)


_PAGES = (draw_home_page, draw_usage_page, draw_gpu_page, draw_disks_page, draw_help_page)
_SCROLLING_PAGES = (draw_usage_page, draw_disks_page)


# ── Header ─────────────────────────────────────────────────────────────────


def _draw_header(win: curses.window, w: int, current_tab: int) -> None:
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    _safe(win, 0, 1, "MAINFRAME", attr | curses.A_BOLD)
    _safe(win, 0, 12, f"v{VERSION}", attr | curses.A_DIM)

    tabs = [f" {i + 1}:{name} " for i, name in enumerate(TABS)]
    cx = max(22, w - sum(len(t) for t in tabs) - 1)
    for i, text in enumerate(tabs):
        tab_attr = attr | curses.A_BOLD if i == current_tab else attr
        if i == current_tab:
            tab_attr &= ~curses.A_REVERSE
        _safe(win, 0, cx, text, tab_attr)
        cx += len(text)

    ts = time.strftime("%H:%M:%S")
    _safe(win, 1, max(0, w - len(ts) - 2), ts, curses.color_pair(C_DIM))


# ── Frame ──────────────────────────────────────────────────────────────────


def draw_frame(
    win: curses.window, h: int, w: int, frame: FrameData, thresholds: Thresholds
) -> int | None:
    """Draw one complete frame: header plus the selected page.

    Returns the largest usable scroll offset for the page: 0 for pages that
    do not scroll, None while a scrolling page has no content yet.
    """
    if h < MIN_HEIGHT or w < MIN_WIDTH:
        _safe(win, 0, 0, f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)")
        return None
    tab = frame.view.current_tab
    _draw_header(win, w, tab)
    page = _PAGES[tab] if 0 <= tab < len(_PAGES) else draw_home_page
    limit = page(win, 2, h, w, frame, thresholds)
    return limit if page in _SCROLLING_PAGES else 0
