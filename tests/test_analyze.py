from collections import defaultdict

import pytest

from drumgrid.analyze import analyze_musicxml, instrument_midi_map, parse_musicxml_notes, parse_root
from drumgrid.errors import ParseError
from drumgrid.grid import Grid
from drumgrid.kit import row_for
from drumgrid.musicxml import build_musicxml
from drumgrid.presets import preset_score
from drumgrid.util.xml import get_ns


def _doc(measures, divisions="12", ns=""):
    """Minimal hand-written score with snare (38) and an instrument without a key."""
    attrs = f"<attributes><divisions>{divisions}</divisions></attributes>" if divisions is not None else ""
    body = "".join(f'<measure number="{i + 1}">{attrs if i == 0 else ""}{m}</measure>'
                   for i, m in enumerate(measures))
    xmlns = f' xmlns="{ns}"' if ns else ""
    return (
        f'<score-partwise version="3.1"{xmlns}>'
        '<part-list><score-part id="P1">'
        '<midi-instrument id="P1-snare"><midi-unpitched>38</midi-unpitched></midi-instrument>'
        '<midi-instrument id="P1-cowbell"><midi-channel>10</midi-channel></midi-instrument>'
        '</score-part></part-list>'
        f'<part id="P1">{body}</part>'
        '</score-partwise>'
    )


def _note(duration, instrument="P1-snare", chord=False, extra=""):
    chord_el = "<chord/>" if chord else ""
    return (f"<note>{chord_el}<unpitched><display-step>C</display-step><display-octave>5</display-octave></unpitched>"
            f'<duration>{duration}</duration><instrument id="{instrument}"/>{extra}</note>')


def _rest(duration):
    return f"<note><rest/><duration>{duration}</duration></note>"


def test_single_kick(kick_score):
    decoded = parse_musicxml_notes(kick_score.to_musicxml())
    assert decoded.divisions == 12
    assert [n.as_dict() for n in decoded.notes] == [
        {"startTick": 0, "duration": 12, "midi": 36, "velocity": 100},
    ]


def test_chord_members_share_start():
    decoded = parse_musicxml_notes(preset_score("rock", 1).to_musicxml())
    at_zero = [(n.midi, n.duration) for n in decoded.notes if n.start_tick == 0]
    assert at_zero == [(42, 6), (36, 6)]


def test_rests_advance_and_measures_accumulate():
    xml = _doc([
        _rest(12) + _note(12) + _rest(24),
        _note(6) + _note(6, chord=True) + _rest(6) + _rest(12) + _note(24),
    ])
    decoded = parse_musicxml_notes(xml)
    assert [(n.start_tick, n.duration) for n in decoded.notes] == [
        (12, 12), (48, 6), (48, 6), (72, 24),
    ]


def test_unmapped_instrument_is_skipped():
    xml = _doc([_note(12, "P1-cowbell") + _note(12, "P1-unknown") + _note(24)])
    decoded = parse_musicxml_notes(xml)
    assert [(n.start_tick, n.midi) for n in decoded.notes] == [(24, 38)]


def test_note_without_instrument_is_skipped():
    xml = _doc(["<note><unpitched/><duration>12</duration></note>" + _note(36)])
    assert [n.start_tick for n in parse_musicxml_notes(xml).notes] == [12]


@pytest.mark.parametrize("divisions,expected", [
    (None, 12), ("0", 12), ("-4", 12), ("abc", 12), ("24", 24), ("480", 480),
])
def test_divisions(divisions, expected):
    decoded = parse_musicxml_notes(_doc([_note(48)], divisions=divisions))
    assert decoded.divisions == expected


def test_namespaced_document():
    xml = _doc([_rest(12) + _note(36)], ns="http://www.musicxml.org/ns")
    decoded = parse_musicxml_notes(xml)
    assert [(n.start_tick, n.midi) for n in decoded.notes] == [(12, 38)]


@pytest.mark.parametrize("bad", ["", "<score-partwise>", "not xml at all"])
def test_malformed_input_raises_parse_error(bad):
    with pytest.raises(ParseError):
        parse_musicxml_notes(bad)


def test_bytes_and_str_inputs_agree(kick_score):
    xml = kick_score.to_musicxml()
    assert parse_musicxml_notes(xml) == parse_musicxml_notes(xml.encode("utf-8"))


def test_backup_and_forward():
    xml = _doc([
        _note(48) + "<backup><duration>48</duration></backup>"
        + "<forward><duration>12</duration></forward>" + _note(12)
    ])
    decoded = parse_musicxml_notes(xml)
    assert [n.start_tick for n in decoded.notes] == [0, 12]


def test_articulation_flags():
    grid = Grid()
    snare = row_for("snare")
    grid.add(snare, 0, 12, "flam")
    grid.add(snare, 12, 12, "accent")
    grid.add(snare, 24, 12, "ghost")
    decoded = parse_musicxml_notes(build_musicxml(grid, measures=1))
    grace, flam, accent, ghost = decoded.notes
    assert (grace.start_tick, grace.duration, grace.grace) == (0, 0, True)
    assert (flam.start_tick, flam.grace) == (0, False)
    assert accent.accent and not accent.ghost
    assert ghost.ghost and not ghost.accent
    assert all(n.velocity == 100 for n in decoded.notes)


def test_instrument_midi_map_skips_missing_keys():
    root = parse_root(_doc([]))
    assert instrument_midi_map(root, get_ns(root)) == {"P1-snare": 38}


@pytest.mark.parametrize("name", ["rock", "pop", "shuffle"])
def test_preset_start_ticks_survive_round_trip(name):
    score = preset_score(name, 2)
    decoded = parse_musicxml_notes(score.to_musicxml())
    got = defaultdict(set)
    for n in decoded.notes:
        got[n.midi].add(n.start_tick)
    want = defaultdict(set)
    for row, tick, _ in score.grid:
        want[{3: 42, 7: 38, 9: 36}[row]].add(tick)
    assert got == want


def test_analyze_file(tmp_path, kick_score):
    path = tmp_path / "kick.musicxml"
    path.write_text(kick_score.to_musicxml(), encoding="utf-8")
    assert len(analyze_musicxml(path).notes) == 1
