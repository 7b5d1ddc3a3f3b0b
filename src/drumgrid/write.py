# src/drumgrid/write.py
"""
Decoded MusicXML -> Standard MIDI File (format 0) through mido.

mido saves tracks with running status: a channel event whose status byte equals
the previous one is written without it. Readers restore the full 0x99 / 0x89
events, so the decoded stream is the same as with explicit status bytes.
"""
from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import mido

from .analyze import parse_musicxml_notes
from .process import build_timeline
from .timeline import TimelineBundle, NoteEvent, DEFAULT_BPM
from .util.time import round_half_up

log = logging.getLogger(__name__)

NOTE_OFF_VELOCITY = 64

def _bpm_to_micro(bpm: float) -> int:
    return round_half_up(60_000_000 / bpm)

def _emit_track_events(mt: mido.MidiTrack, notes: Iterable[NoteEvent]):
    """Note on/off pairs as delta-times. At equal ticks offs go first (sort key 0)."""
    evs = []
    for n in notes:
        evs.append((n.start_tick, 1, "on", n))
        evs.append((n.end_tick,   0, "off", n))
    evs.sort(key=lambda x: (x[0], x[1]))

    last = 0
    for tick, _, kind, n in evs:
        delta = max(0, tick - last)
        last = tick
        if kind == "on":
            mt.append(mido.Message("note_on", note=n.midi, velocity=n.velocity, channel=n.channel, time=delta))
        else:
            mt.append(mido.Message("note_off", note=n.midi, velocity=NOTE_OFF_VELOCITY, channel=n.channel, time=delta))

def render_midi(bundle: TimelineBundle) -> mido.MidiFile:
    """Format 0: tempo at tick 0, the notes, end of track."""
    mid = mido.MidiFile(type=0, ticks_per_beat=bundle.ticks_per_beat)
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("set_tempo", tempo=_bpm_to_micro(bundle.bpm), time=0))
    _emit_track_events(track, bundle.track.notes)
    track.append(mido.MetaMessage("end_of_track", time=0))
    mid.tracks.append(track)
    return mid

def midi_to_bytes(mid: mido.MidiFile) -> bytes:
    buf = io.BytesIO()
    mid.save(file=buf)
    return buf.getvalue()

def build_midi_from_musicxml(musicxml: Union[str, bytes], bpm: float = DEFAULT_BPM,
                             cfg: Optional[Dict[str, Any]] = None) -> bytes:
    score = parse_musicxml_notes(musicxml)
    bundle = build_timeline(score, bpm, cfg)
    data = midi_to_bytes(render_midi(bundle))
    log.debug("midi: %d notes -> %d bytes", len(bundle.track.notes), len(data))
    return data

def write_midi(musicxml: Union[str, bytes], out_path: Union[str, Path], bpm: float = DEFAULT_BPM,
               cfg: Optional[Dict[str, Any]] = None) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(build_midi_from_musicxml(musicxml, bpm, cfg))
    return out

def write_musicxml(musicxml: str, out_path: Union[str, Path]) -> Path:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(musicxml, encoding="utf-8")
    return out
