from __future__ import annotations
from typing import Callable, Dict

from .grid import Grid, Score
from .kit import row_for
from .util.time import BEATS_PER_MEASURE, TICKS_PER_BEAT, DEFAULT_DIVISION, TRIPLET_DIVISION

EIGHTH = TICKS_PER_BEAT // 2

def _backbeat(grid: Grid, beat_start: int, beat_in_measure: int, duration: int) -> None:
    if beat_in_measure in (1, 3):
        grid.add(row_for("snare"), beat_start, duration)

def rock_grid(measures: int) -> Grid:
    grid = Grid()
    hihat, kick = row_for("hihat"), row_for("kick")
    for beat in range(measures * BEATS_PER_MEASURE):
        start = beat * TICKS_PER_BEAT
        grid.add(hihat, start, EIGHTH)
        grid.add(hihat, start + EIGHTH, EIGHTH)
        _backbeat(grid, start, beat % BEATS_PER_MEASURE, TICKS_PER_BEAT)
        if beat % BEATS_PER_MEASURE in (0, 2):
            grid.add(kick, start, TICKS_PER_BEAT)
    return grid

def pop_grid(measures: int) -> Grid:
    grid = Grid()
    hihat, kick = row_for("hihat"), row_for("kick")
    for beat in range(measures * BEATS_PER_MEASURE):
        start = beat * TICKS_PER_BEAT
        grid.add(hihat, start, EIGHTH)
        grid.add(hihat, start + EIGHTH, EIGHTH)
        _backbeat(grid, start, beat % BEATS_PER_MEASURE, TICKS_PER_BEAT)
        if beat % BEATS_PER_MEASURE == 0:
            grid.add(kick, start, TICKS_PER_BEAT)
        elif beat % BEATS_PER_MEASURE == 2:
            grid.add(kick, start + EIGHTH, EIGHTH)
    return grid

def shuffle_grid(measures: int) -> Grid:
    # swung 8ths: first and last note of a triplet
    third = TICKS_PER_BEAT // 3
    grid = Grid()
    hihat, kick = row_for("hihat"), row_for("kick")
    for beat in range(measures * BEATS_PER_MEASURE):
        start = beat * TICKS_PER_BEAT
        grid.add(hihat, start, third)
        grid.add(hihat, start + 2 * third, third)
        _backbeat(grid, start, beat % BEATS_PER_MEASURE, third)
        if beat % BEATS_PER_MEASURE in (0, 2):
            grid.add(kick, start, third)
    return grid

PRESETS: Dict[str, Callable[[int], Grid]] = {
    "rock": rock_grid,
    "pop": pop_grid,
    "shuffle": shuffle_grid,
}

def default_grid(measures: int) -> Grid:
    return rock_grid(measures)

def apply_preset(score: Score, name: str) -> Score:
    """Replace the score's notes and beat divisions with a preset; measure count is kept."""
    try:
        build = PRESETS[name]
    except KeyError:
        raise ValueError(f"unknown preset {name!r} (choose from {', '.join(PRESETS)})") from None
    division = TRIPLET_DIVISION if name == "shuffle" else DEFAULT_DIVISION
    score.subdivisions_by_beat = [division] * score.total_beats
    score.grid = build(score.measures)
    return score

def preset_score(name: str, measures: int = 2) -> Score:
    return apply_preset(Score(measures=measures), name)
