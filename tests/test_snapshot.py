import json
import logging

import pytest

from drumgrid.errors import SnapshotError
from drumgrid.grid import GridNote
from drumgrid.kit import row_for
from drumgrid.presets import preset_score
from drumgrid.snapshot import (
    CURRENT_VERSION, dump_snapshot, load_snapshot, load_snapshot_file, save_snapshot_file, upgrade,
)

KICK = row_for("kick")
SNARE = row_for("snare")


def _notes(score):
    return [(row, tick, note.duration, note.type) for row, tick, note in score.grid]


def test_v1_columns_become_ticks():
    score = load_snapshot({"version": 1, "measures": 1, "subdivisions": 4, "notes": ["9:0", "7:2", "junk"]})
    assert _notes(score) == [(SNARE, 6, 3, "normal"), (KICK, 0, 3, "normal")]


def test_v1_eighth_grid():
    score = load_snapshot({"version": 1, "measures": 1, "subdivisions": 2, "notes": ["7:3"]})
    assert _notes(score) == [(SNARE, 18, 6, "normal")]


def test_v2_ticks_get_default_duration():
    score = load_snapshot({"version": 2, "measures": 1, "subdivisions": 4, "notes": ["9:12"]})
    assert _notes(score) == [(KICK, 12, 3, "normal")]


def test_v3_objects_get_type():
    snap = upgrade({"version": 3, "notes": [{"row": 9, "tick": 0, "duration": 12}]})
    assert snap["version"] == CURRENT_VERSION
    assert snap["notes"] == [{"row": 9, "tick": 0, "duration": 12, "type": "normal"}]


def test_v5_triplet_beats_become_divisions():
    score = load_snapshot({
        "version": 5, "measures": 2, "subdivisions": 4,
        "tripletBeats": ["1:2", "0:0", "9:9"], "notes": [],
    })
    assert score.subdivisions_by_beat == [3, 4, 4, 4, 4, 4, 3, 4]


def test_v6_per_measure_divisions_spread_to_beats():
    score = load_snapshot({
        "version": 6, "measures": 2, "subdivisionsPerMeasure": [2, 3], "notes": [],
    })
    assert score.subdivisions_by_beat == [2, 2, 2, 2, 3, 3, 3, 3]


def test_v8_per_beat_divisions_of_wrong_length_fall_back():
    score = load_snapshot({
        "version": 8, "measures": 1, "subdivisions": 2, "subdivisionsPerBeat": [3, 3], "notes": [],
    })
    assert score.subdivisions_by_beat == [2, 2, 2, 2]


def test_invalid_division_values_become_sixteenths():
    score = load_snapshot({
        "version": 8, "measures": 1, "subdivisionsPerBeat": [3, 5, "x", True], "notes": [],
    })
    assert score.subdivisions_by_beat == [3, 4, 4, 4]


def test_dump_and_load_preserve_score():
    score = preset_score("shuffle", 3)
    score.grid.set(SNARE, 20, GridNote(4, "ghost"))
    again = load_snapshot(json.loads(json.dumps(dump_snapshot(score))))
    assert again.measures == 3
    assert again.subdivisions_by_beat == score.subdivisions_by_beat
    assert again.grid == score.grid


def test_dump_shape(kick_score):
    snap = dump_snapshot(kick_score)
    assert snap == {
        "version": 8,
        "measures": 1,
        "beatsPerMeasure": 4,
        "subdivisions": 4,
        "subdivisionsPerBeat": [4, 4, 4, 4],
        "notes": [{"row": KICK, "tick": 0, "duration": 12, "type": "normal"}],
    }


def test_bad_notes_are_dropped(caplog):
    with caplog.at_level(logging.WARNING, logger="drumgrid.snapshot"):
        score = load_snapshot({"version": 8, "measures": 1, "notes": [
            {"row": 9, "tick": 0, "duration": 12, "type": "rimshot"},
            {"row": 9, "tick": 48, "duration": 12},
            {"row": 12, "tick": 0, "duration": 12},
            {"row": 7, "tick": 0, "duration": 0},
            {"row": 7, "tick": 1.5, "duration": 3},
            {"row": "7", "tick": 0, "duration": 3},
            "9:0",
        ]})
    assert _notes(score) == [(KICK, 0, 12, "normal")]
    assert "dropped 6 note(s)" in caplog.text


@pytest.mark.parametrize("measures,expected", [(0, 1), (100, 32), ("x", 1), (None, 1), (3.7, 3)])
def test_measures_are_clamped(measures, expected):
    assert load_snapshot({"version": 8, "measures": measures, "notes": []}).measures == expected


@pytest.mark.parametrize("data", [[], "v8", None, {"notes": []}, {"version": 0}, {"version": 9}, {"version": True}])
def test_unsupported_snapshots(data):
    with pytest.raises(SnapshotError):
        load_snapshot(data)


def test_upgrade_does_not_mutate_input():
    data = {"version": 1, "measures": 1, "notes": ["9:0"]}
    upgrade(data)
    assert data == {"version": 1, "measures": 1, "notes": ["9:0"]}


def test_files(tmp_path, kick_score):
    path = save_snapshot_file(kick_score, tmp_path / "saves" / "kick.json")
    assert load_snapshot_file(path).grid == kick_score.grid

    bad = tmp_path / "bad.json"
    bad.write_text("{nope", encoding="utf-8")
    with pytest.raises(SnapshotError):
        load_snapshot_file(bad)


@pytest.mark.parametrize("version", [1, 3, 8])
@pytest.mark.parametrize("notes", [5, 1.5, True, "9:0", {"row": 9}])
def test_notes_that_are_not_a_list_load_empty(version, notes):
    score = load_snapshot({"version": version, "measures": 1, "notes": notes})
    assert len(score.grid) == 0
    assert score.measures == 1


def test_non_list_notes_are_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="drumgrid.snapshot"):
        load_snapshot({"version": 8, "measures": 1, "notes": 5})
    assert "not a list" in caplog.text


def test_non_list_triplet_beats_are_ignored():
    score = load_snapshot({"version": 5, "measures": 1, "tripletBeats": 7, "notes": []})
    assert score.subdivisions_by_beat == [4, 4, 4, 4]


def test_integral_float_divisions_are_stored_as_ints():
    score = load_snapshot({
        "version": 8, "measures": 1, "subdivisionsPerBeat": [3.0, 2.0, 4, 2.5], "notes": [],
    })
    assert score.subdivisions_by_beat == [3, 2, 4, 4]
    assert all(type(v) is int for v in score.subdivisions_by_beat)
    assert dump_snapshot(score)["subdivisionsPerBeat"] == [3, 2, 4, 4]


def test_file_that_is_not_utf8(tmp_path):
    path = tmp_path / "binary.json"
    path.write_bytes(b"\xff\xfe{}")
    with pytest.raises(SnapshotError):
        load_snapshot_file(path)
