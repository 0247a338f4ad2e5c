"""Text-only bar charts.

A bar is a list of ``Glyph`` values (character + colour tag) so it can be
drawn by curses or inspected in tests without a terminal.

    Temp  [|||||||||||||||||    ]

Filled glyphs form a left-to-right gradient: each one is coloured by its
position in the bar, not by the current value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

BAR_CHARACTER = "|"
OPEN_BRACKET = "["
CLOSE_BRACKET = "]"

# Colour tags; the UI maps these to curses colour pairs.
OK = "ok"
WARN = "warn"
CRITICAL = "critical"
MUTED = "muted"
BRACKET = "bracket"
LABEL = "label"

DEFAULT_THRESHOLDS: tuple[float, float] = (0.6, 0.85)


@dataclass(frozen=True)
class Glyph:
    char: str
    color: str


def _check_bounds(bounds: tuple[float, float]) -> None:
    lo, hi = bounds
    if hi <= lo:
        raise ValueError(f"Illegal bar chart bounds: {bounds!r}")


def _round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def color_for_range(
    value: float,
    bounds: tuple[float, float],
    thresholds: tuple[float, float] = DEFAULT_THRESHOLDS,
) -> str:
    """Bucket *value* by where it sits between ``bounds`` (lo, hi).

    Below ``thresholds[0]`` of the range is ok, below ``thresholds[1]`` is a
    warning, anything else (including values outside the range) is critical.
    """
    _check_bounds(bounds)
    lo, hi = bounds
    x = (value - lo) / (hi - lo)
    warn, critical = thresholds
    if 0.0 <= x < warn:
        return OK
    if warn <= x < critical:
        return WARN
    return CRITICAL


def render_bar(
    value: float,
    bounds: tuple[float, float],
    width: int,
    name: str = "",
    name_width: int = 0,
    thresholds: tuple[float, float] = DEFAULT_THRESHOLDS,
) -> list[Glyph]:
    """Render *value* as a bar chart *width* glyphs wide.

    Args:
        value: Current reading.
        bounds: (lo, hi) of the chart. ``hi`` must be greater than ``lo`` and
            non-zero; anything else is a caller bug and raises ValueError.
        width: Total glyph budget, including the label and both brackets.
        name: Optional label placed left of the bar.
        name_width: Width the label is padded to.
        thresholds: Ratios where the gradient turns to warn / critical.

    The fill is ``round((value - lo) / hi * interior)``, clamped to the
    interior. With the common (0, hi) bounds that is the plain ratio.
    """
    _check_bounds(bounds)
    lo, hi = bounds
    if hi == 0:
        raise ValueError(f"Illegal bar chart bounds: {bounds!r} (upper bound of zero)")

    start = Glyph(OPEN_BRACKET, BRACKET)
    end = Glyph(CLOSE_BRACKET, BRACKET)

    if width <= 2:
        return [start, end]

    interior = max(0, width - 2 - name_width)
    blocks = _round_half_away((value - lo) / hi * interior)
    blocks = max(0, min(blocks, interior))

    glyphs = [Glyph(c, LABEL) for c in name]
    glyphs.extend(Glyph(" ", LABEL) for _ in range(name_width - len(name)))
    glyphs.append(start)

    for i in range(blocks):
        position = lo + (hi - lo) * i / interior
        glyphs.append(Glyph(BAR_CHARACTER, color_for_range(position, bounds, thresholds)))
    glyphs.extend(Glyph(BAR_CHARACTER, MUTED) for _ in range(interior - blocks))

    glyphs.append(end)
    return glyphs


def glyphs_to_text(glyphs: list[Glyph]) -> str:
    return "".join(g.char for g in glyphs)
