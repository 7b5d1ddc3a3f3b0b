from __future__ import annotations


class DrumGridError(Exception):
    """Base class for everything raised by drumgrid."""


class ParseError(DrumGridError):
    """MusicXML input could not be parsed."""


class GridError(DrumGridError, ValueError):
    """A grid mutation was rejected (bad row, tick, duration, type or division)."""


class SnapshotError(DrumGridError, ValueError):
    """A persisted snapshot has an unsupported version or shape."""


class EncodingError(DrumGridError, RuntimeError):
    """The MusicXML encoder broke one of its own invariants."""
