# src/drumgrid/process.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from .humanize.velocity import DynamicsConfig, velocity_for
from .kit import SAMPLE_BY_MIDI
from .timeline import (
    DecodedScore, TimelineBundle, TrackTimeline, NoteEvent, PlaybackEvent, DEFAULT_BPM,
)
from .util.time import div_to_ticks

log = logging.getLogger(__name__)

DEFAULT_GAIN_SCALE = 0.9

def check_bpm(bpm: float) -> float:
    bpm = float(bpm)
    if not bpm > 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    return bpm

def _target_tpb(score: DecodedScore, cfg: Dict[str, Any]) -> int:
    tpb = (cfg.get("midi") or {}).get("ticks_per_beat")
    return int(tpb) if tpb else score.divisions

def build_timeline(score: DecodedScore, bpm: float = DEFAULT_BPM,
                   cfg: Optional[Dict[str, Any]] = None) -> TimelineBundle:
    """
    Decoded notes -> one drum track in MIDI ticks. Notes keep document order;
    the writer sorts events. Resolution is <divisions> unless
    cfg["midi"]["ticks_per_beat"] asks for another one.
    """
    cfg = cfg or {}
    bpm = check_bpm(bpm)
    tpb = _target_tpb(score, cfg)
    dyn = DynamicsConfig.from_cfg(cfg.get("dynamics"))

    track = TrackTimeline(name="Drumset")
    for n in score.notes:
        start = div_to_ticks(n.start_tick, score.divisions, tpb)
        end = start + div_to_ticks(n.duration, score.divisions, tpb)
        track.notes.append(NoteEvent(
            start_tick=start,
            end_tick=end,
            midi=n.midi,
            velocity=velocity_for(n, dyn),
            channel=track.channel,
        ))
    log.debug("timeline: %d notes, tpb=%d, bpm=%s", len(track.notes), tpb, bpm)
    return TimelineBundle(track=track, bpm=bpm, ticks_per_beat=tpb)

def schedule_playback(score: DecodedScore, bpm: float = DEFAULT_BPM,
                      gain_scale: float = DEFAULT_GAIN_SCALE) -> List[PlaybackEvent]:
    """Seconds-based schedule for sample playback; notes without a drum sample are skipped."""
    seconds_per_tick = 60.0 / check_bpm(bpm) / score.divisions
    out: List[PlaybackEvent] = []
    for n in score.notes:
        sample = SAMPLE_BY_MIDI.get(n.midi)
        if sample is None:
            continue
        out.append(PlaybackEvent(
            start_seconds=n.start_tick * seconds_per_tick,
            end_seconds=n.end_tick * seconds_per_tick,
            midi=n.midi,
            sample=sample,
            gain=(n.velocity / 100.0) * gain_scale,
        ))
    return out

def playback_length_seconds(events: List[PlaybackEvent]) -> float:
    return max((ev.end_seconds for ev in events), default=0.0)
