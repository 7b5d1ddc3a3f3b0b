import logging

import pytest

from drumgrid.config import clamp_bpm, get_bpm, get_bpm_range, load_config


@pytest.fixture
def no_user(tmp_path):
    return tmp_path / "missing.yaml"


def test_packaged_defaults(no_user):
    cfg = load_config(no_user)
    assert cfg["bpm"] == 100
    assert cfg["measures"] == 2
    assert cfg["dynamics"]["enabled"] is False
    assert cfg["midi"]["ticks_per_beat"] is None
    assert cfg["playback"]["gain_scale"] == 0.9


def test_user_overrides_are_deep_merged(tmp_path):
    user = tmp_path / "config.yaml"
    user.write_text("bpm: 140\ndynamics:\n  enabled: true\n  accent: 110\n", encoding="utf-8")
    cfg = load_config(user)
    assert cfg["bpm"] == 140
    assert cfg["dynamics"]["enabled"] is True
    assert cfg["dynamics"]["accent"] == 110
    assert cfg["dynamics"]["ghost"] == 45


def test_broken_yaml_is_ignored(tmp_path, caplog):
    user = tmp_path / "config.yaml"
    user.write_text("bpm: [140\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="drumgrid.config"):
        cfg = load_config(user)
    assert cfg["bpm"] == 100
    assert "ignoring unreadable config" in caplog.text


def test_non_mapping_is_ignored(tmp_path):
    user = tmp_path / "config.yaml"
    user.write_text("- 1\n- 2\n", encoding="utf-8")
    assert load_config(user)["bpm"] == 100


def test_fallbacks_without_any_file(tmp_path):
    cfg = load_config(tmp_path / "a.yaml", tmp_path / "b.yaml")
    assert cfg == {"bpm": 100, "bpm_range": [30, 400], "measures": 2}


@pytest.mark.parametrize("bpm,expected", [(10, 30.0), (30, 30.0), (120, 120.0), (1000, 400.0)])
def test_clamp_bpm(no_user, bpm, expected):
    assert clamp_bpm(bpm, load_config(no_user)) == expected


def test_bpm_range_and_bpm():
    assert get_bpm_range({"bpm_range": [40, 200]}) == (40.0, 200.0)
    assert get_bpm_range({"bpm_range": "fast"}) == (30.0, 400.0)
    assert get_bpm({"bpm": 500}) == 400.0
    assert get_bpm({"bpm": "quick"}) == 100.0
