# src/drumgrid/config.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import copy
import logging
import yaml

log = logging.getLogger(__name__)

PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path.home() / ".config" / "drumgrid" / "config.yaml"

def _safe_load(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning("ignoring unreadable config %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        log.warning("ignoring config %s: top level is not a mapping", path)
        return {}
    return data

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Packaged defaults deep-merged with user overrides.
    A missing or broken file counts as empty.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    cfg = _deep_merge(_safe_load(dpath), _safe_load(upath))

    cfg.setdefault("bpm", 100)
    cfg.setdefault("bpm_range", [30, 400])
    cfg.setdefault("measures", 2)
    return cfg

def get_bpm_range(cfg: Dict[str, Any]) -> Tuple[float, float]:
    try:
        lo, hi = cfg.get("bpm_range", [30, 400])
        return float(lo), float(hi)
    except (TypeError, ValueError):
        return 30.0, 400.0

def clamp_bpm(bpm: float, cfg: Dict[str, Any]) -> float:
    lo, hi = get_bpm_range(cfg)
    return min(hi, max(lo, float(bpm)))

def get_bpm(cfg: Dict[str, Any]) -> float:
    try:
        return clamp_bpm(float(cfg.get("bpm", 100)), cfg)
    except (TypeError, ValueError):
        return 100.0
