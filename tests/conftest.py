from xml.etree import ElementTree as ET

import pytest

from drumgrid.grid import Score
from drumgrid.kit import row_for


def _measures(xml):
    return ET.fromstring(xml.encode("utf-8")).findall("part/measure")


def _timed_notes(measure):
    """(offset within the measure, <note>) for every note that is not a grace note."""
    out = []
    pos = 0
    onset = 0
    for note in measure.findall("note"):
        if note.find("grace") is not None:
            continue
        if note.find("chord") is not None:
            out.append((onset, note))
            continue
        onset = pos
        out.append((pos, note))
        pos += int(note.findtext("duration"))
    return out


def _measure_length(measure):
    return sum(
        int(n.findtext("duration"))
        for n in measure.findall("note")
        if n.find("chord") is None and n.find("grace") is None
    )


@pytest.fixture
def measures_of():
    return _measures


@pytest.fixture
def timed_notes():
    return _timed_notes


@pytest.fixture
def measure_length():
    return _measure_length


@pytest.fixture
def kick_score():
    score = Score(measures=1, subdivisions_by_beat=[4, 4, 4, 4])
    score.add_note(row_for("kick"), 0, 12)
    return score
