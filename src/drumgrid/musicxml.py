# src/drumgrid/musicxml.py
"""
Grid -> MusicXML (score-partwise 3.1, percussion clef, single part "P1").

Every measure is tiled completely: onsets become one voice of chords, gaps become
rests split per beat, triplet beats get tuplet brackets, runs of short onsets
inside a beat get beams. The output is a pure function of its inputs.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence
from xml.etree import ElementTree as ET

from .errors import EncodingError
from .kit import DRUM_KIT, Instrument, staff_pitch
from .util.time import BEATS_PER_MEASURE, TICKS_PER_BEAT, TRIPLET_DIVISION, beat_bounds
from .util.xml import sub

if TYPE_CHECKING:
    from .grid import Grid

log = logging.getLogger(__name__)

XML_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE score-partwise PUBLIC "-//Recordare//DTD MusicXML 3.1 Partwise//EN" '
    '"http://www.musicxml.org/dtds/partwise.dtd">\n'
)

PART_ID = "P1"
PART_NAME = "Drumset"
MIDI_CHANNEL = 10
MIDI_PROGRAM = 1

# greedy rest units outside triplet beats, longest first
REST_UNITS = (12, 9, 6, 4, 3)
TRIPLET_UNIT = 4

# --- duration lookup (fixed, renderers depend on the exact mapping) ---

def duration_to_type(duration: int) -> str:
    if duration >= 12:
        return "quarter"
    if duration in (9, 6, 4):
        return "eighth"
    return "16th"

def duration_has_dot(duration: int) -> bool:
    return duration == 9

def duration_is_triplet(duration: int) -> bool:
    return duration == 4

# --- rest decomposition ---

def split_gap(duration: int) -> List[int]:
    """
    Greedy longest-first split over REST_UNITS. A remainder shorter than the
    smallest unit becomes one terminal chunk (typed as a 16th) of exactly that
    length, so the chunks always sum to the gap.
    """
    chunks: List[int] = []
    remaining = duration
    for unit in REST_UNITS:
        while remaining >= unit:
            chunks.append(unit)
            remaining -= unit
    if remaining > 0:
        chunks.append(remaining)
    return chunks

def split_gap_by_beat(duration: int, is_triplet: bool) -> List[int]:
    if not is_triplet:
        chunks = split_gap(duration)
    else:
        chunks = [TRIPLET_UNIT] * (duration // TRIPLET_UNIT)
        if duration % TRIPLET_UNIT:
            chunks.append(duration % TRIPLET_UNIT)
    if sum(chunks) != duration or any(c <= 0 for c in chunks):
        raise EncodingError(f"rest chunks {chunks} do not tile a gap of {duration}")
    return chunks

# --- beaming ---

def apply_beams_by_gap(onsets: Sequence[int], max_gap: int, target: Dict[int, str]) -> None:
    """
    onsets: ascending ticks within one beat. Consecutive onsets at most max_gap
    apart form a run; runs of two or more get begin/continue.../end.
    """
    if len(onsets) < 2:
        return
    run_start = 0
    for i in range(1, len(onsets) + 1):
        if i < len(onsets) and onsets[i] - onsets[i - 1] <= max_gap:
            continue
        run_end = i - 1
        if run_end > run_start:
            target[onsets[run_start]] = "begin"
            for j in range(run_start + 1, run_end):
                target[onsets[j]] = "continue"
            target[onsets[run_end]] = "end"
        run_start = i


@dataclass
class _BeatInfo:
    onsets: List[int]
    is_triplet: bool = False


class _MeasureWriter:
    """Appends the <note> elements of one measure, left to right."""

    def __init__(self, measure: ET.Element, grid: "Grid", offset: int,
                 beats_per_measure: int, tpb: int, beats: List[_BeatInfo]):
        self.el = measure
        self.grid = grid
        self.offset = offset
        self.end = offset + beats_per_measure * tpb
        self.beats_per_measure = beats_per_measure
        self.tpb = tpb
        self.beats = beats
        self.beam1: Dict[int, str] = {}
        self.beam2: Dict[int, str] = {}
        for info in beats:
            apply_beams_by_gap(info.onsets, tpb // 3 if info.is_triplet else tpb // 2, self.beam1)
            if not info.is_triplet:
                apply_beams_by_gap(info.onsets, tpb // 4, self.beam2)

    def beat_index(self, tick: int) -> int:
        return (tick - self.offset) // self.tpb

    def beat_end(self, tick: int) -> int:
        return min(self.end, beat_bounds(tick // self.tpb, self.tpb)[1])

    def is_triplet(self, tick: int) -> bool:
        b = self.beat_index(tick)
        return 0 <= b < len(self.beats) and self.beats[b].is_triplet

    def tuplet_marks(self, tick: int, duration: int) -> List[str]:
        if not self.is_triplet(tick):
            return []
        in_beat = (tick - self.offset) % self.tpb
        marks = []
        if in_beat == 0:
            marks.append("start")
        if min(in_beat + duration, self.tpb) >= self.tpb:
            marks.append("stop")
        return marks

    # --- element builders ---

    def _timing(self, note: ET.Element, duration: int) -> None:
        sub(note, "type", duration_to_type(duration))
        if duration_has_dot(duration):
            sub(note, "dot")
        if duration_is_triplet(duration):
            tm = sub(note, "time-modification")
            sub(tm, "actual-notes", 3)
            sub(tm, "normal-notes", 2)

    @staticmethod
    def _tuplets(notations: ET.Element, marks: List[str]) -> None:
        for mark in marks:
            sub(notations, "tuplet", type=mark, bracket="yes", number="1")

    def rest(self, tick: int, duration: int) -> None:
        note = sub(self.el, "note")
        sub(note, "rest")
        sub(note, "duration", duration)
        sub(note, "voice", 1)
        self._timing(note, duration)
        marks = self.tuplet_marks(tick, duration)
        if marks:
            self._tuplets(sub(note, "notations"), marks)

    def fill_rests(self, start: int, stop: int) -> int:
        """Rests from start up to stop, never crossing a beat line; returns stop."""
        cursor = start
        while cursor < stop:
            gap = min(self.beat_end(cursor), stop) - cursor
            for chunk in split_gap_by_beat(gap, self.is_triplet(cursor)):
                self.rest(cursor, chunk)
                cursor += chunk
        return cursor

    def _unpitched(self, note: ET.Element, inst: Instrument) -> None:
        step, octave = staff_pitch(inst)
        up = sub(note, "unpitched")
        sub(up, "display-step", step)
        sub(up, "display-octave", octave)

    def grace(self, inst: Instrument, in_chord: bool) -> None:
        note = sub(self.el, "note")
        sub(note, "grace", slash="yes")
        if in_chord:
            sub(note, "chord")
        self._unpitched(note, inst)
        sub(note, "instrument", id=inst.part_instrument_id)
        sub(note, "voice", 1)
        sub(note, "type", "eighth")
        sub(note, "stem", "up")
        if inst.note_head == "x":
            sub(note, "notehead", "x")
        sub(note, "staff", 1)

    def main(self, tick: int, duration: int, inst: Instrument, note_type: str, lead: bool) -> None:
        note = sub(self.el, "note")
        if not lead:
            sub(note, "chord")
        self._unpitched(note, inst)
        sub(note, "duration", duration)
        sub(note, "instrument", id=inst.part_instrument_id)
        sub(note, "voice", 1)
        self._timing(note, duration)
        sub(note, "stem", "up")
        ghost = note_type == "ghost"
        if inst.note_head == "x":
            head = sub(note, "notehead", "x")
            if ghost:
                head.set("parentheses", "yes")
        elif ghost:
            sub(note, "notehead", "normal", parentheses="yes")
        sub(note, "staff", 1)

        marks: List[str] = []
        if lead:
            for number, states in (("1", self.beam1), ("2", self.beam2)):
                state = states.get(tick, "")
                if state:
                    sub(note, "beam", state, number=number)
            marks = self.tuplet_marks(tick, duration)
        if marks or note_type == "accent":
            notations = sub(note, "notations")
            self._tuplets(notations, marks)
            if note_type == "accent":
                sub(sub(notations, "articulations"), "accent")

    def onset(self, tick: int, next_tick: int) -> int:
        """Writes the chord (with flam graces) at tick; returns where it ends."""
        duration = max(1, min(next_tick, self.beat_end(tick)) - tick)
        if self.is_triplet(tick):
            duration = min(duration, self.tpb // 3)

        active = [(inst, self.grid.get(inst.grid_row, tick)) for inst in DRUM_KIT]
        active = [(inst, n) for inst, n in active if n is not None]
        if not active:
            return self.fill_rests(tick, tick + duration)

        flams = [(inst, n) for inst, n in active if n.type == "flam"]
        others = [(inst, n) for inst, n in active if n.type != "flam"]
        for i, (inst, _) in enumerate(flams):
            self.grace(inst, in_chord=i > 0)
        for i, (inst, n) in enumerate(flams + others):
            self.main(tick, duration, inst, n.type, lead=i == 0)
        return tick + duration


def _beat_layout(onsets: List[int], offset: int, measure_index: int, beats_per_measure: int,
                 tpb: int, subdivisions_by_beat: Optional[Sequence[int]]) -> List[_BeatInfo]:
    beats = [_BeatInfo(onsets=[]) for _ in range(beats_per_measure)]
    for tick in onsets:
        rel = tick - offset
        b = rel // tpb
        sub_tick = rel % tpb
        beats[b].onsets.append(tick)
        # onsets on the 3-per-beat grid but off the 4-per-beat grid imply a triplet beat
        if sub_tick % (tpb // 3) == 0 and sub_tick % (tpb // 4) != 0:
            beats[b].is_triplet = True
    if subdivisions_by_beat:
        base = measure_index * beats_per_measure
        for i, info in enumerate(beats):
            if base + i < len(subdivisions_by_beat) and subdivisions_by_beat[base + i] == TRIPLET_DIVISION:
                info.is_triplet = True
    return beats


def _attributes(measure: ET.Element, beats_per_measure: int, tpb: int) -> None:
    attrs = sub(measure, "attributes")
    sub(attrs, "divisions", tpb)
    sub(sub(attrs, "key"), "fifths", 0)
    time = sub(attrs, "time")
    sub(time, "beats", beats_per_measure)
    sub(time, "beat-type", 4)
    clef = sub(attrs, "clef")
    sub(clef, "sign", "percussion")
    sub(clef, "line", 2)
    sub(sub(attrs, "staff-details"), "staff-lines", 5)


def build_measure(
    grid: "Grid",
    measure_index: int,
    beats_per_measure: int = BEATS_PER_MEASURE,
    ticks_per_beat: int = TICKS_PER_BEAT,
    subdivisions_by_beat: Optional[Sequence[int]] = None,
) -> ET.Element:
    """One fully tiled <measure>; only the first measure carries <attributes>."""
    mticks = beats_per_measure * ticks_per_beat
    offset = measure_index * mticks
    end = offset + mticks

    measure = ET.Element("measure", number=str(measure_index + 1))
    if measure_index == 0:
        _attributes(measure, beats_per_measure, ticks_per_beat)

    onsets = grid.onsets(offset, end)
    beats = _beat_layout(onsets, offset, measure_index, beats_per_measure, ticks_per_beat, subdivisions_by_beat)
    writer = _MeasureWriter(measure, grid, offset, beats_per_measure, ticks_per_beat, beats)

    cursor = offset
    for i, tick in enumerate(onsets):
        if tick > cursor:
            cursor = writer.fill_rests(cursor, tick)
        next_tick = onsets[i + 1] if i + 1 < len(onsets) else end
        cursor = writer.onset(tick, next_tick)
    writer.fill_rests(cursor, end)
    return measure


def _part_list(root: ET.Element) -> None:
    part = sub(sub(root, "part-list"), "score-part", id=PART_ID)
    sub(part, "part-name", PART_NAME)
    for inst in DRUM_KIT:
        si = sub(part, "score-instrument", id=inst.part_instrument_id)
        sub(si, "instrument-name", inst.label)
    for inst in DRUM_KIT:
        mi = sub(part, "midi-instrument", id=inst.part_instrument_id)
        sub(mi, "midi-channel", MIDI_CHANNEL)
        sub(mi, "midi-program", MIDI_PROGRAM)
        sub(mi, "midi-unpitched", inst.midi_key)


def build_score_element(
    grid: "Grid",
    measures: int,
    beats_per_measure: int = BEATS_PER_MEASURE,
    ticks_per_beat: int = TICKS_PER_BEAT,
    subdivisions_by_beat: Optional[Sequence[int]] = None,
) -> ET.Element:
    root = ET.Element("score-partwise", version="3.1")
    _part_list(root)
    part = sub(root, "part", id=PART_ID)
    for m in range(measures):
        part.append(build_measure(grid, m, beats_per_measure, ticks_per_beat, subdivisions_by_beat))
    return root


def build_musicxml(
    grid: "Grid",
    *,
    measures: int,
    beats_per_measure: int = BEATS_PER_MEASURE,
    ticks_per_beat: int = TICKS_PER_BEAT,
    subdivisions_by_beat: Optional[Sequence[int]] = None,
) -> str:
    """Whole document as text (XML declaration + DOCTYPE + indented tree)."""
    root = build_score_element(grid, measures, beats_per_measure, ticks_per_beat, subdivisions_by_beat)
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    log.debug("musicxml: measures=%d notes=%d chars=%d", measures, len(grid), len(body))
    return XML_HEADER + body + "\n"
