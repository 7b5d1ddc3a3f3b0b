# src/drumgrid/kit.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

# GM key used for kit pieces without a dedicated entry (Acoustic Bass Drum)
FALLBACK_MIDI_KEY = 35

@dataclass(frozen=True)
class Instrument:
    id: str
    label: str
    grid_row: int       # row in the input grid (stable identifier)
    staff_row: int      # vertical position on the staff, shared by e.g. open/closed hi-hat
    note_head: str      # "filled" | "x"
    midi: Optional[int] = None

    @property
    def part_instrument_id(self) -> str:
        return f"P1-{self.id}"

    @property
    def midi_key(self) -> int:
        return self.midi if self.midi is not None else FALLBACK_MIDI_KEY


DRUM_KIT: List[Instrument] = [
    Instrument("crash",       "Crash",       0,  0, "x",      49),
    Instrument("ride",        "Ride",        1,  1, "x",      51),
    Instrument("open-hihat",  "Open Hi-Hat", 2,  2, "x",      46),
    Instrument("hihat",       "Hi-Hat",      3,  2, "x",      42),
    Instrument("tom1",        "Tom 1",       4,  3, "filled", 48),
    Instrument("tom2",        "Tom 2",       5,  4, "filled", 45),
    Instrument("tom3",        "Tom 3",       6,  5, "filled", 43),
    Instrument("snare",       "Snare",       7,  6, "filled", 38),
    Instrument("cross-stick", "Cross Stick", 8,  6, "x",      37),
    Instrument("kick",        "Kick",        9,  8, "filled", 36),
    Instrument("kick2",       "Kick 2",      10, 8, "filled"),
    Instrument("hh-pedal",    "HH Pedal",    11, 7, "x",      44),
]

ROW_COUNT = max(inst.grid_row for inst in DRUM_KIT) + 1

INSTRUMENT_BY_ID: Dict[str, Instrument] = {inst.id: inst for inst in DRUM_KIT}

# staff row -> (display-step, display-octave), top of the staff first
STAFF_PITCHES: List[Tuple[str, int]] = [
    ("G", 5),  # above line 5
    ("F", 5),  # line 5
    ("E", 5),  # space 4
    ("D", 5),  # line 4
    ("C", 5),  # space 3
    ("B", 4),  # line 3
    ("A", 4),  # space 2
    ("G", 4),  # line 2
    ("F", 4),  # space 1
    ("E", 4),  # line 1
    ("D", 4),  # below line 1
]
DEFAULT_STAFF_ROW = 4

# GM key -> playback sample name
SAMPLE_BY_MIDI: Dict[int, str] = {
    49: "crash",
    51: "ride",
    42: "hatClosed",
    44: "hatClosed",
    46: "hatOpen",
    48: "tomHigh",
    45: "tomMid",
    43: "tomLow",
    38: "snare",
    37: "snare",
    36: "kick",
    35: "kick",
}

def row_for(instrument_id: str) -> int:
    try:
        return INSTRUMENT_BY_ID[instrument_id].grid_row
    except KeyError:
        raise KeyError(f"unknown instrument: {instrument_id!r}") from None

def staff_pitch(inst: Instrument) -> Tuple[str, int]:
    if 0 <= inst.staff_row < len(STAFF_PITCHES):
        return STAFF_PITCHES[inst.staff_row]
    return STAFF_PITCHES[DEFAULT_STAFF_ROW]
