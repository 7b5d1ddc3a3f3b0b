from __future__ import annotations
import math
from typing import Optional, Tuple

# 12 divides by 2, 3 and 4, so straight and triplet cells share one tick grid
TICKS_PER_BEAT = 12
BEATS_PER_MEASURE = 4
MIN_MEASURES = 1
MAX_MEASURES = 32

# per-beat divisions in editor cycling order: 16th, 8th, 16th triplet
DIVISION_CYCLE = (4, 2, 3)
DEFAULT_DIVISION = 4
TRIPLET_DIVISION = 3

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def ticks_per_subdivision(subdivisions: int, tpb: int = TICKS_PER_BEAT) -> int:
    return round_half_up(tpb / subdivisions)

def col_to_tick(col: int, subdivisions: int, tpb: int = TICKS_PER_BEAT) -> int:
    """Column index of a fixed-subdivision (legacy) grid -> absolute tick."""
    return round_half_up(col * tpb / subdivisions)

def clamp_measures(value: Optional[float]) -> int:
    if value is None:
        return MIN_MEASURES
    try:
        v = float(value)
    except (TypeError, ValueError):
        return MIN_MEASURES
    if math.isnan(v):
        return MIN_MEASURES
    return int(min(MAX_MEASURES, max(MIN_MEASURES, v)))

def total_ticks(measures: int, beats_per_measure: int = BEATS_PER_MEASURE, tpb: int = TICKS_PER_BEAT) -> int:
    return measures * beats_per_measure * tpb

def beat_bounds(global_beat: int, tpb: int = TICKS_PER_BEAT) -> Tuple[int, int]:
    start = global_beat * tpb
    return start, start + tpb

def cell_tick(measure_index: int, beat_index: int, col: int, subdivisions: int,
              beats_per_measure: int = BEATS_PER_MEASURE, tpb: int = TICKS_PER_BEAT) -> int:
    """Tick of an editor cell: beat start plus col whole subdivisions."""
    global_beat = measure_index * beats_per_measure + beat_index
    return global_beat * tpb + col * ticks_per_subdivision(subdivisions, tpb)

def div_to_ticks(div_val: int, divisions: int, tpb: int) -> int:
    if divisions <= 0:
        divisions = TICKS_PER_BEAT
    return int(round(div_val * (tpb / divisions)))
