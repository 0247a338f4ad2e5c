"""Tests for mainframe.bar_chart."""

from __future__ import annotations

import pytest

from mainframe.bar_chart import (
    BRACKET,
    CRITICAL,
    LABEL,
    MUTED,
    OK,
    WARN,
    Glyph,
    color_for_range,
    glyphs_to_text,
    render_bar,
)


def _interior(glyphs: list[Glyph]) -> list[Glyph]:
    start = next(i for i, g in enumerate(glyphs) if g.char == "[" and g.color == BRACKET)
    return glyphs[start + 1 : -1]


# ── color_for_range ────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.0, OK),
        (59.9, OK),
        (60.0, WARN),
        (84.9, WARN),
        (85.0, CRITICAL),
        (100.0, CRITICAL),
        (150.0, CRITICAL),
        (-5.0, CRITICAL),
    ],
)
def test_color_for_range_percent(value: float, expected: str) -> None:
    assert color_for_range(value, (0.0, 100.0)) == expected


def test_color_for_range_uses_full_span() -> None:
    # 70 sits halfway between 20 and 120
    assert color_for_range(70.0, (20.0, 120.0)) == OK
    assert color_for_range(100.0, (20.0, 120.0)) == WARN


def test_color_for_range_memory_bounds() -> None:
    total = 8 * 1024**3
    assert color_for_range(6 * 1024**3, (0.0, total)) == WARN


def test_color_for_range_custom_thresholds() -> None:
    assert color_for_range(55.0, (0.0, 100.0), thresholds=(0.5, 0.9)) == WARN
    assert color_for_range(95.0, (0.0, 100.0), thresholds=(0.5, 0.99)) == WARN


def test_color_for_range_rejects_bad_bounds() -> None:
    with pytest.raises(ValueError):
        color_for_range(1.0, (5.0, 5.0))


# ── render_bar ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize("width", [0, 1, 2])
@pytest.mark.parametrize("value", [-10.0, 0.0, 50.0, 100.0, 1000.0])
def test_narrow_bar_is_just_brackets(width: int, value: float) -> None:
    glyphs = render_bar(value, (0.0, 100.0), width)
    assert glyphs == [Glyph("[", BRACKET), Glyph("]", BRACKET)]


@pytest.mark.parametrize("width", [3, 4, 10, 20, 57])
@pytest.mark.parametrize("value", [0.0, 12.5, 33.3, 50.0, 99.9, 100.0])
def test_interior_fills_width(width: int, value: float) -> None:
    glyphs = render_bar(value, (0.0, 100.0), width)
    assert len(glyphs) == width
    assert glyphs[0] == Glyph("[", BRACKET)
    assert glyphs[-1] == Glyph("]", BRACKET)
    assert len(_interior(glyphs)) == width - 2


@pytest.mark.parametrize(
    "bounds",
    [(0.0, 0.0), (100.0, 0.0), (10.0, 5.0), (-1.0, -1.0), (-3.0, -7.0)],
)
def test_illegal_bounds_rejected(bounds: tuple[float, float]) -> None:
    with pytest.raises(ValueError, match="Illegal bar chart bounds"):
        render_bar(50.0, bounds, 20)


def test_zero_upper_bound_rejected() -> None:
    with pytest.raises(ValueError):
        render_bar(-5.0, (-10.0, 0.0), 20)


def test_bounds_checked_before_width() -> None:
    with pytest.raises(ValueError):
        render_bar(50.0, (1.0, 0.0), 1)


def test_seventy_five_percent() -> None:
    glyphs = render_bar(75.0, (0.0, 100.0), 20)
    interior = _interior(glyphs)
    filled = [g for g in interior if g.color != MUTED]
    empty = [g for g in interior if g.color == MUTED]

    assert len(interior) == 18
    assert len(filled) == 14
    assert len(empty) == 4
    assert glyphs_to_text(glyphs) == "[" + "|" * 18 + "]"
    # Empty glyphs come after the filled ones
    assert interior[:14] == filled


def test_gradient_follows_position() -> None:
    glyphs = render_bar(75.0, (0.0, 100.0), 20)
    colors = [g.color for g in _interior(glyphs)]
    assert colors == [OK] * 11 + [WARN] * 3 + [MUTED] * 4


def test_full_bar_reaches_critical() -> None:
    colors = [g.color for g in _interior(render_bar(100.0, (0.0, 100.0), 22))]
    assert colors[0] == OK
    assert colors[-1] == CRITICAL
    assert MUTED not in colors


def test_fill_divides_by_upper_bound() -> None:
    # (80 - 20) / 120 * 18 = 9
    glyphs = render_bar(80.0, (20.0, 120.0), 20)
    assert sum(1 for g in _interior(glyphs) if g.color != MUTED) == 9


def test_half_rounds_away_from_zero() -> None:
    # 0.25 * 2 = 0.5 → 1 block
    glyphs = render_bar(25.0, (0.0, 100.0), 4)
    assert [g.color for g in _interior(glyphs)] == [OK, MUTED]


@pytest.mark.parametrize(
    ("value", "expected_filled"),
    [(150.0, 10), (1e9, 10), (-50.0, 0), (-1e9, 0)],
)
def test_out_of_range_is_clamped(value: float, expected_filled: int) -> None:
    glyphs = render_bar(value, (0.0, 100.0), 12)
    interior = _interior(glyphs)
    assert len(interior) == 10
    assert sum(1 for g in interior if g.color != MUTED) == expected_filled


def test_named_bar() -> None:
    glyphs = render_bar(50.0, (0.0, 100.0), 20, name="cpu0", name_width=6)
    assert len(glyphs) == 20
    assert glyphs_to_text(glyphs[:6]) == "cpu0  "
    assert all(g.color == LABEL for g in glyphs[:6])
    interior = _interior(glyphs)
    assert len(interior) == 12
    assert sum(1 for g in interior if g.color != MUTED) == 6


def test_name_wider_than_bar_leaves_empty_interior() -> None:
    glyphs = render_bar(50.0, (0.0, 100.0), 5, name="temperature", name_width=8)
    assert glyphs_to_text(glyphs) == "temperature[]"
