# src/drumgrid/analyze.py
"""
MusicXML -> flat list of absolute-tick note events.

Independent of the encoder: any score-partwise document using <unpitched> notes,
<instrument id> references and <midi-unpitched> declarations can be read.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Union
from xml.etree import ElementTree as ET

from .errors import ParseError
from .timeline import DecodedNote, DecodedScore, DEFAULT_VELOCITY
from .util.time import TICKS_PER_BEAT
from .util.xml import get_ns, F, FA, FD, FDA, FP, local, int_text

log = logging.getLogger(__name__)

def parse_root(source: Union[str, bytes]) -> ET.Element:
    data = source.encode("utf-8") if isinstance(source, str) else source
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise ParseError(f"Invalid MusicXML: {e}") from e

def read_divisions(root: ET.Element, ns: dict) -> int:
    divisions = int_text(FD(root, "divisions", ns), TICKS_PER_BEAT)
    return divisions if divisions > 0 else TICKS_PER_BEAT

def instrument_midi_map(root: ET.Element, ns: dict) -> Dict[str, int]:
    """<midi-instrument id> -> <midi-unpitched>; instruments without a positive key are left out."""
    out: Dict[str, int] = {}
    for mi in FDA(root, "midi-instrument", ns):
        iid = mi.attrib.get("id")
        key = int_text(F(mi, "midi-unpitched", ns), -1)
        if iid and key > 0:
            out[iid] = key
    return out

def decode_root(root: ET.Element) -> DecodedScore:
    ns = get_ns(root)
    score = DecodedScore(divisions=read_divisions(root, ns))
    midi_map = instrument_midi_map(root, ns)
    skipped = 0

    for part in FA(root, "part", ns):
        tick = 0
        for measure in FA(part, "measure", ns):
            # a non-chord note moves the cursor only once the next non-chord
            # note (or the measure end) arrives; chord members share its start
            pending = 0
            for child in list(measure):
                tag = local(child.tag)

                if tag in ("backup", "forward"):
                    tick += pending
                    pending = 0
                    dur = int_text(F(child, "duration", ns), 0)
                    tick = tick + dur if tag == "forward" else max(0, tick - dur)
                    continue

                if tag != "note":
                    continue

                dur = int_text(F(child, "duration", ns), 0)
                if F(child, "chord", ns) is None:
                    tick += pending
                    pending = dur

                if F(child, "rest", ns) is not None:
                    continue

                inst = F(child, "instrument", ns)
                iid = inst.attrib.get("id") if inst is not None else None
                midi = midi_map.get(iid) if iid else None
                if midi is None:
                    skipped += 1
                    continue

                head = F(child, "notehead", ns)
                score.notes.append(DecodedNote(
                    start_tick=tick,
                    duration=dur,
                    midi=midi,
                    velocity=DEFAULT_VELOCITY,
                    instrument_id=iid,
                    grace=F(child, "grace", ns) is not None,
                    accent=FP(child, "notations/articulations/accent", ns) is not None,
                    ghost=head is not None and head.attrib.get("parentheses") == "yes",
                ))

            tick += pending

    log.debug("decoded %d notes (divisions=%d, skipped=%d)", len(score.notes), score.divisions, skipped)
    return score

def parse_musicxml_notes(source: Union[str, bytes]) -> DecodedScore:
    return decode_root(parse_root(source))

def analyze_musicxml(path: Union[str, Path]) -> DecodedScore:
    return parse_musicxml_notes(Path(path).read_bytes())
