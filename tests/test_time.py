import pytest

from drumgrid.util.time import (
    beat_bounds, cell_tick, clamp_measures, col_to_tick, div_to_ticks, round_half_up, ticks_per_subdivision,
)


@pytest.mark.parametrize("subdivisions,expected", [(2, 6), (3, 4), (4, 3), (1, 12)])
def test_ticks_per_subdivision(subdivisions, expected):
    assert ticks_per_subdivision(subdivisions) == expected


def test_col_to_tick_exact_and_rounded():
    assert col_to_tick(3, 4) == 9
    assert col_to_tick(2, 3) == 8
    assert col_to_tick(1, 8) == 2   # 1.5 rounds half up
    assert col_to_tick(5, 8) == 8   # 7.5 rounds half up
    assert col_to_tick(0, 4) == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4) == 2


@pytest.mark.parametrize("value,expected", [
    (0, 1), (-4, 1), (1, 1), (8, 8), (32, 32), (33, 32), (5.7, 5),
    (None, 1), (float("nan"), 1), ("x", 1), ("3", 3),
])
def test_clamp_measures(value, expected):
    assert clamp_measures(value) == expected


def test_cell_tick():
    # measure 2, beat 3, second triplet cell
    assert cell_tick(1, 2, 1, 3) == (4 + 2) * 12 + 4
    assert cell_tick(0, 0, 3, 4) == 9


def test_div_to_ticks():
    assert div_to_ticks(6, 12, 480) == 240
    assert div_to_ticks(12, 12, 12) == 12
    assert div_to_ticks(6, 0, 24) == 12   # bad divisions fall back to 12


def test_beat_bounds():
    assert beat_bounds(0) == (0, 12)
    assert beat_bounds(5) == (60, 72)
    assert beat_bounds(1, 480) == (480, 960)
