# src/drumgrid/snapshot.py
"""
Persisted score snapshots.

Every historical layout is upgraded one version at a time (v1 -> v2 -> ... -> v8)
and only then validated against the current geometry. Out-of-range or malformed
notes are dropped, never raised: old saves must keep loading.

  v1  notes: ["row:col"]   columns of a fixed `subdivisions` grid
  v2  notes: ["row:tick"]
  v3  notes: [{row, tick, duration}]
  v4  notes gain `type`
  v5  `tripletBeats`: ["measure:beat"]
  v6  `subdivisionsPerMeasure`
  v7  same shape as v6
  v8  `subdivisionsPerBeat` (current)
"""
from __future__ import annotations
import copy
import json
import logging
import math
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import GridError, SnapshotError
from .grid import Grid, GridNote, Score, NOTE_TYPES
from .kit import ROW_COUNT
from .util.time import (
    BEATS_PER_MEASURE, DEFAULT_DIVISION, DIVISION_CYCLE, TRIPLET_DIVISION,
    clamp_measures, col_to_tick, ticks_per_subdivision,
)

log = logging.getLogger(__name__)

CURRENT_VERSION = 8
DEFAULT_MEASURES = 2

Snapshot = Dict[str, Any]

def _parse_key(key: str):
    row_s, _, tick_s = key.partition(":")
    try:
        return int(row_s), int(tick_s)
    except ValueError:
        return None

def _note_list(data: Snapshot) -> List[Any]:
    notes = data.get("notes")
    return notes if isinstance(notes, list) else []

def _fallback_division(data: Snapshot) -> int:
    sub = data.get("subdivisions")
    return sub if isinstance(sub, int) and not isinstance(sub, bool) and sub > 0 else DEFAULT_DIVISION

# --- upgrade steps, each returns a new dict one version newer ---

def _v1_to_v2(data: Snapshot) -> Snapshot:
    subdivisions = _fallback_division(data)
    notes = []
    for key in _note_list(data):
        parsed = _parse_key(key) if isinstance(key, str) else None
        if parsed is None:
            continue
        row, col = parsed
        notes.append(f"{row}:{col_to_tick(col, subdivisions)}")
    return {**data, "version": 2, "notes": notes}

def _v2_to_v3(data: Snapshot) -> Snapshot:
    duration = ticks_per_subdivision(_fallback_division(data))
    notes = []
    for key in _note_list(data):
        parsed = _parse_key(key) if isinstance(key, str) else None
        if parsed is None:
            continue
        row, tick = parsed
        notes.append({"row": row, "tick": tick, "duration": duration})
    return {**data, "version": 3, "notes": notes}

def _v3_to_v4(data: Snapshot) -> Snapshot:
    notes = []
    for note in _note_list(data):
        if isinstance(note, dict):
            note = {**note}
            note.setdefault("type", "normal")
        notes.append(note)
    return {**data, "version": 4, "notes": notes}

def _v4_to_v5(data: Snapshot) -> Snapshot:
    return {**data, "version": 5}

def _v5_to_v6(data: Snapshot) -> Snapshot:
    """tripletBeats ("measure:beat") become per-beat divisions of 3."""
    out = {k: v for k, v in data.items() if k != "tripletBeats"}
    out["version"] = 6
    triplets = data.get("tripletBeats")
    if not isinstance(triplets, list) or not triplets or isinstance(data.get("subdivisionsPerBeat"), list):
        return out
    beats = BEATS_PER_MEASURE
    total = clamp_measures(data.get("measures", DEFAULT_MEASURES)) * beats
    per_beat = [_fallback_division(data)] * total
    for key in triplets:
        parsed = _parse_key(key) if isinstance(key, str) else None
        if parsed is None:
            continue
        g = parsed[0] * beats + parsed[1]
        if 0 <= g < total:
            per_beat[g] = TRIPLET_DIVISION
    out["subdivisionsPerBeat"] = per_beat
    return out

def _v6_to_v7(data: Snapshot) -> Snapshot:
    return {**data, "version": 7}

def _v7_to_v8(data: Snapshot) -> Snapshot:
    return {**data, "version": 8}

UPGRADES: Dict[int, Callable[[Snapshot], Snapshot]] = {
    1: _v1_to_v2,
    2: _v2_to_v3,
    3: _v3_to_v4,
    4: _v4_to_v5,
    5: _v5_to_v6,
    6: _v6_to_v7,
    7: _v7_to_v8,
}

def upgrade(data: Any) -> Snapshot:
    if not isinstance(data, dict):
        raise SnapshotError(f"snapshot must be an object, got {type(data).__name__}")
    version = data.get("version")
    if isinstance(version, bool) or version not in range(1, CURRENT_VERSION + 1):
        raise SnapshotError(f"unsupported snapshot version: {version!r}")
    out = copy.deepcopy(data)
    while out["version"] < CURRENT_VERSION:
        out = UPGRADES[out["version"]](out)
    return out

# --- validation against the current geometry ---

def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None

def _divisions_per_beat(data: Snapshot, measures: int, beats_per_measure: int) -> List[int]:
    total = measures * beats_per_measure
    per_beat = data.get("subdivisionsPerBeat")
    per_measure = data.get("subdivisionsPerMeasure")
    if isinstance(per_beat, list) and len(per_beat) == total:
        raw = per_beat
    elif isinstance(per_measure, list) and len(per_measure) == measures:
        raw = [per_measure[i // beats_per_measure] for i in range(total)]
    else:
        raw = [_fallback_division(data)] * total
    out = []
    for v in raw:
        v = _as_int(v)
        out.append(v if v in DIVISION_CYCLE else DEFAULT_DIVISION)
    return out

def _notes(data: Snapshot, max_tick: int) -> Grid:
    grid = Grid()
    dropped = 0
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, list):
        log.warning("snapshot: notes is a %s, not a list; loading no notes", type(notes).__name__)
    for entry in _note_list(data):
        if not isinstance(entry, dict):
            dropped += 1
            continue
        row, tick, duration = (_as_int(entry.get(k)) for k in ("row", "tick", "duration"))
        if row is None or tick is None or duration is None:
            dropped += 1
            continue
        if not (0 <= row < ROW_COUNT and 0 <= tick < max_tick and duration > 0):
            dropped += 1
            continue
        note_type = entry.get("type") or "normal"
        if note_type not in NOTE_TYPES:
            note_type = "normal"
        try:
            grid.set(row, tick, GridNote(duration, note_type))
        except GridError:
            dropped += 1
    if dropped:
        log.warning("snapshot: dropped %d note(s) outside the current score", dropped)
    return grid

def load_snapshot(data: Any) -> Score:
    """Any supported snapshot version -> validated Score."""
    snap = upgrade(data)
    measures = clamp_measures(snap.get("measures", DEFAULT_MEASURES))
    score = Score(
        measures=measures,
        subdivisions_by_beat=_divisions_per_beat(snap, measures, BEATS_PER_MEASURE),
    )
    score.grid = _notes(snap, score.max_tick)
    return score

def dump_snapshot(score: Score) -> Snapshot:
    return {
        "version": CURRENT_VERSION,
        "measures": score.measures,
        "beatsPerMeasure": score.beats_per_measure,
        "subdivisions": DEFAULT_DIVISION,
        "subdivisionsPerBeat": list(score.subdivisions_by_beat),
        "notes": [
            {"row": row, "tick": tick, "duration": note.duration, "type": note.type}
            for row, tick, note in score.grid
        ],
    }

def save_snapshot_file(score: Score, path: Union[str, Path]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(dump_snapshot(score), f, indent=2)
    return out

def load_snapshot_file(path: Union[str, Path]) -> Score:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotError(f"{path}: not a JSON snapshot ({e})") from e
    return load_snapshot(data)
