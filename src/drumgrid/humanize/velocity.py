from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..timeline import DecodedNote

@dataclass
class DynamicsConfig:
    enabled: bool = False     # off: every note keeps the decoded velocity (100)
    normal: int = 100
    accent: int = 120
    ghost: int = 45
    grace: int = 70
    clamp_min: int = 1
    clamp_max: int = 127

    @classmethod
    def from_cfg(cls, section: Optional[Dict[str, Any]]) -> "DynamicsConfig":
        section = section or {}
        base = cls()
        lo, hi = section.get("clamp_to", [base.clamp_min, base.clamp_max])
        return cls(
            enabled=bool(section.get("enabled", base.enabled)),
            normal=int(section.get("normal", base.normal)),
            accent=int(section.get("accent", base.accent)),
            ghost=int(section.get("ghost", base.ghost)),
            grace=int(section.get("grace", base.grace)),
            clamp_min=int(lo),
            clamp_max=int(hi),
        )

def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))

def velocity_for(note: DecodedNote, cfg: DynamicsConfig) -> int:
    if not cfg.enabled:
        return _clamp(note.velocity, cfg.clamp_min, cfg.clamp_max)
    # grace wins over the marks of the note it ornaments
    if note.grace:
        v = cfg.grace
    elif note.ghost:
        v = cfg.ghost
    elif note.accent:
        v = cfg.accent
    else:
        v = cfg.normal
    return _clamp(v, cfg.clamp_min, cfg.clamp_max)
