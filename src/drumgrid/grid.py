# src/drumgrid/grid.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import GridError
from .kit import ROW_COUNT
from .musicxml import build_musicxml
from .util.time import (
    BEATS_PER_MEASURE, TICKS_PER_BEAT, DEFAULT_DIVISION, DIVISION_CYCLE, TRIPLET_DIVISION,
    cell_tick, clamp_measures, ticks_per_subdivision, total_ticks,
)

NOTE_TYPES = ("normal", "ghost", "accent", "flam")

@dataclass(frozen=True)
class GridNote:
    duration: int          # ticks; advisory, the encoder caps it at the next onset
    type: str = "normal"   # "normal" | "ghost" | "accent" | "flam"

    def __post_init__(self):
        if isinstance(self.duration, bool) or not isinstance(self.duration, int) or self.duration <= 0:
            raise GridError(f"note duration must be a positive int, got {self.duration!r}")
        if self.type not in NOTE_TYPES:
            raise GridError(f"unknown note type {self.type!r}")


class Grid:
    """
    Sparse score content: row -> {tick -> GridNote}.
    At most one note per (row, tick); setting an occupied cell overwrites it.
    Ticks are absolute from the start of the score.
    """

    def __init__(self, row_count: int = ROW_COUNT):
        self.row_count = row_count
        self._rows: Dict[int, Dict[int, GridNote]] = {}

    def _check(self, row: int, tick: int) -> None:
        if not 0 <= row < self.row_count:
            raise GridError(f"row {row} outside 0..{self.row_count - 1}")
        if tick < 0:
            raise GridError(f"tick {tick} is negative")

    def set(self, row: int, tick: int, note: GridNote) -> None:
        self._check(row, tick)
        self._rows.setdefault(row, {})[tick] = note

    def add(self, row: int, tick: int, duration: int, type: str = "normal") -> GridNote:
        note = GridNote(duration, type)
        self.set(row, tick, note)
        return note

    def get(self, row: int, tick: int) -> Optional[GridNote]:
        return self._rows.get(row, {}).get(tick)

    def remove(self, row: int, tick: int) -> Optional[GridNote]:
        cells = self._rows.get(row)
        if not cells:
            return None
        note = cells.pop(tick, None)
        if not cells:
            del self._rows[row]
        return note

    def clear(self) -> None:
        self._rows.clear()

    def __contains__(self, key: Tuple[int, int]) -> bool:
        row, tick = key
        return tick in self._rows.get(row, {})

    def __len__(self) -> int:
        return sum(len(cells) for cells in self._rows.values())

    def __iter__(self) -> Iterator[Tuple[int, int, GridNote]]:
        for row in sorted(self._rows):
            cells = self._rows[row]
            for tick in sorted(cells):
                yield row, tick, cells[tick]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"Grid(notes={len(self)})"

    def onsets(self, start: int, end: int) -> List[int]:
        """Distinct onset ticks in [start, end), ascending, across all rows."""
        ticks = set()
        for cells in self._rows.values():
            ticks.update(t for t in cells if start <= t < end)
        return sorted(ticks)

    def rows_at(self, tick: int) -> List[int]:
        return sorted(row for row, cells in self._rows.items() if tick in cells)

    def prune(self, max_tick: int) -> int:
        """Drop notes at or beyond max_tick; returns how many were dropped."""
        dropped = 0
        for row in list(self._rows):
            cells = self._rows[row]
            for tick in [t for t in cells if t >= max_tick]:
                del cells[tick]
                dropped += 1
            if not cells:
                del self._rows[row]
        return dropped

    def copy(self) -> "Grid":
        out = Grid(self.row_count)
        out._rows = {row: dict(cells) for row, cells in self._rows.items()}
        return out


@dataclass
class Score:
    """Grid content plus the layout it is valid against (measures, per-beat divisions)."""
    measures: int = 2
    subdivisions_by_beat: List[int] = field(default_factory=list)
    grid: Grid = field(default_factory=Grid)
    beats_per_measure: int = BEATS_PER_MEASURE
    ticks_per_beat: int = TICKS_PER_BEAT

    def __post_init__(self):
        self.measures = clamp_measures(self.measures)
        self.subdivisions_by_beat = self._fit_divisions(self.subdivisions_by_beat, self.total_beats)

    @staticmethod
    def _fit_divisions(divisions: List[int], total_beats: int) -> List[int]:
        out = list(divisions[:total_beats])
        out.extend([DEFAULT_DIVISION] * (total_beats - len(out)))
        return out

    # --- geometry ---

    @property
    def total_beats(self) -> int:
        return self.measures * self.beats_per_measure

    @property
    def max_tick(self) -> int:
        return total_ticks(self.measures, self.beats_per_measure, self.ticks_per_beat)

    def division_at(self, global_beat: int) -> int:
        if 0 <= global_beat < len(self.subdivisions_by_beat):
            return self.subdivisions_by_beat[global_beat]
        return DEFAULT_DIVISION

    def is_triplet_beat(self, global_beat: int) -> bool:
        return self.division_at(global_beat) == TRIPLET_DIVISION

    # --- content ---

    def add_note(self, row: int, tick: int, duration: int, type: str = "normal") -> GridNote:
        if not 0 <= tick < self.max_tick:
            raise GridError(f"tick {tick} outside 0..{self.max_tick - 1}")
        return self.grid.add(row, tick, duration, type)

    def toggle_note(self, row: int, measure_index: int, beat_index: int, col: int,
                    note_type: str = "normal") -> Optional[GridNote]:
        """
        Editor click on a cell. Empty cell: insert a note one subdivision long.
        Same type already there: remove it. Other type: retype it.
        Returns the note now occupying the cell, or None.
        """
        global_beat = measure_index * self.beats_per_measure + beat_index
        if not 0 <= global_beat < self.total_beats:
            raise GridError(f"beat {global_beat} outside the score")
        divisions = self.division_at(global_beat)
        if not 0 <= col < divisions:
            raise GridError(f"column {col} outside 0..{divisions - 1}")
        tick = cell_tick(measure_index, beat_index, col, divisions,
                         self.beats_per_measure, self.ticks_per_beat)
        existing = self.grid.get(row, tick)
        if existing is None:
            return self.add_note(row, tick, ticks_per_subdivision(divisions, self.ticks_per_beat), note_type)
        if existing.type == note_type:
            self.grid.remove(row, tick)
            return None
        note = GridNote(existing.duration, note_type)
        self.grid.set(row, tick, note)
        return note

    def clear(self) -> None:
        self.grid.clear()

    # --- layout ---

    def set_measures(self, value) -> int:
        self.measures = clamp_measures(value)
        self.subdivisions_by_beat = self._fit_divisions(self.subdivisions_by_beat, self.total_beats)
        self.grid.prune(self.max_tick)
        return self.measures

    def set_beat_division(self, global_beat: int, value: int) -> None:
        if value not in DIVISION_CYCLE:
            raise GridError(f"beat division must be one of {DIVISION_CYCLE}, got {value!r}")
        if not 0 <= global_beat < self.total_beats:
            raise GridError(f"beat {global_beat} outside the score")
        self.subdivisions_by_beat[global_beat] = value

    def cycle_beat_division(self, global_beat: int) -> int:
        current = self.division_at(global_beat)
        idx = DIVISION_CYCLE.index(current) if current in DIVISION_CYCLE else -1
        nxt = DIVISION_CYCLE[(idx + 1) % len(DIVISION_CYCLE)]
        self.set_beat_division(global_beat, nxt)
        return nxt

    def to_musicxml(self) -> str:
        return build_musicxml(
            self.grid,
            measures=self.measures,
            beats_per_measure=self.beats_per_measure,
            ticks_per_beat=self.ticks_per_beat,
            subdivisions_by_beat=self.subdivisions_by_beat,
        )
