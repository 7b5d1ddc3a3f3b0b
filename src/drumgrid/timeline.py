from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .util.time import TICKS_PER_BEAT

DEFAULT_BPM = 120.0
DEFAULT_VELOCITY = 100
DRUM_CHANNEL = 9    # MIDI channel 10, 0-indexed

# --- Pass 1: notes read back from MusicXML ---

@dataclass
class DecodedNote:
    start_tick: int
    duration: int
    midi: int
    velocity: int = DEFAULT_VELOCITY
    instrument_id: Optional[str] = None
    grace: bool = False
    accent: bool = False
    ghost: bool = False

    @property
    def end_tick(self) -> int:
        return self.start_tick + self.duration

    def as_dict(self) -> Dict[str, int]:
        return {
            "startTick": self.start_tick,
            "duration": self.duration,
            "midi": self.midi,
            "velocity": self.velocity,
        }

@dataclass
class DecodedScore:
    divisions: int = TICKS_PER_BEAT
    notes: List[DecodedNote] = field(default_factory=list)

# --- Pass 2: timelines ready to write / schedule ---

@dataclass
class NoteEvent:
    start_tick: int
    end_tick: int
    midi: int
    velocity: int
    channel: int = DRUM_CHANNEL

@dataclass
class TrackTimeline:
    name: str
    channel: int = DRUM_CHANNEL
    notes: List[NoteEvent] = field(default_factory=list)

@dataclass
class TimelineBundle:
    track: TrackTimeline
    bpm: float = DEFAULT_BPM
    ticks_per_beat: int = TICKS_PER_BEAT

@dataclass
class PlaybackEvent:
    start_seconds: float
    end_seconds: float
    midi: int
    sample: str
    gain: float
