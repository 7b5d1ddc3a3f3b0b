from __future__ import annotations
import argparse, json, logging, pathlib, sys, traceback
from . import analyze, process, snapshot, write
from .config import load_config, clamp_bpm, get_bpm
from .errors import DrumGridError
from .presets import PRESETS, preset_score

def _resolve_input(path: str) -> pathlib.Path:
    in_path = pathlib.Path(path).expanduser().resolve()
    if not in_path.exists():
        print(f"[cli] ERROR: Input not found: {in_path}", file=sys.stderr)
        sys.exit(1)
    return in_path

def _bpm(args, cfg) -> float:
    return clamp_bpm(args.bpm, cfg) if args.bpm is not None else get_bpm(cfg)

def cmd_export(args, cfg):
    """Snapshot JSON -> MusicXML and/or MIDI."""
    in_path = _resolve_input(args.infile)
    print(f"[cli] infile = {in_path}")
    try:
        score = snapshot.load_snapshot_file(in_path)
        xml = score.to_musicxml()
    except (DrumGridError, OSError):
        traceback.print_exc()
        sys.exit(2)

    xml_out = pathlib.Path(args.xml_out).expanduser().resolve() if args.xml_out else None
    midi_out = pathlib.Path(args.midi_out).expanduser().resolve() if args.midi_out else None
    if xml_out is None and midi_out is None:
        xml_out = in_path.with_suffix(".musicxml")

    if xml_out:
        write.write_musicxml(xml, xml_out)
        print(f"[cli] musicxml -> {xml_out}")
    if midi_out:
        bpm = _bpm(args, cfg)
        write.write_midi(xml, midi_out, bpm, cfg)
        print(f"[cli] midi     -> {midi_out} (bpm={bpm:g})")

    print(f"[cli] Done. measures={score.measures} notes={len(score.grid)}")

def cmd_midi(args, cfg):
    """MusicXML -> MIDI."""
    in_path = _resolve_input(args.infile)
    out_path = pathlib.Path(args.outfile).expanduser().resolve() if args.outfile else in_path.with_suffix(".mid")
    bpm = _bpm(args, cfg)
    try:
        write.write_midi(in_path.read_bytes(), out_path, bpm, cfg)
    except (DrumGridError, OSError, ValueError):
        traceback.print_exc()
        sys.exit(2)
    print(f"[cli] midi -> {out_path} (bpm={bpm:g})")

def cmd_notes(args, cfg):
    """Print the note events a MusicXML file decodes to."""
    in_path = _resolve_input(args.infile)
    try:
        decoded = analyze.analyze_musicxml(in_path)
    except (DrumGridError, OSError):
        traceback.print_exc()
        sys.exit(2)
    if args.json:
        print(json.dumps({"divisions": decoded.divisions,
                          "notes": [n.as_dict() for n in decoded.notes]}, indent=2))
        return
    bpm = _bpm(args, cfg)
    gain = float((cfg.get("playback") or {}).get("gain_scale", process.DEFAULT_GAIN_SCALE))
    events = process.schedule_playback(decoded, bpm, gain)
    for ev in events:
        print(f"{ev.start_seconds:8.3f}s  {ev.midi:3d}  {ev.sample:<10} gain={ev.gain:.2f}")
    print(f"[cli] divisions={decoded.divisions} notes={len(decoded.notes)} "
          f"length={process.playback_length_seconds(events):.3f}s")

def cmd_preset(args, cfg):
    """Write a preset groove as a snapshot."""
    measures = args.measures if args.measures is not None else cfg.get("measures", 2)
    score = preset_score(args.name, measures)
    out = snapshot.save_snapshot_file(score, pathlib.Path(args.outfile).expanduser().resolve())
    print(f"[cli] preset {args.name} ({score.measures} measures) -> {out}")

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="drumgrid", description="Drum grid -> MusicXML / MIDI")
    p.add_argument("--config", dest="config", default=None, help="YAML config (defaults applied if omitted)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sp = p.add_subparsers(dest="command", required=True)

    e = sp.add_parser("export", help="Snapshot JSON -> MusicXML / MIDI")
    e.add_argument("--in", dest="infile", required=True, help="Snapshot (.json)")
    e.add_argument("--xml", dest="xml_out", default=None, help="Output MusicXML (.musicxml)")
    e.add_argument("--midi", dest="midi_out", default=None, help="Output MIDI (.mid)")
    e.add_argument("--bpm", type=float, default=None, help="Tempo for MIDI output")
    e.set_defaults(func=cmd_export)

    m = sp.add_parser("midi", help="MusicXML -> MIDI")
    m.add_argument("--in", dest="infile", required=True, help="Input MusicXML (.musicxml/.xml)")
    m.add_argument("--out", dest="outfile", default=None, help="Output MIDI file (.mid)")
    m.add_argument("--bpm", type=float, default=None)
    m.set_defaults(func=cmd_midi)

    n = sp.add_parser("notes", help="List decoded note events")
    n.add_argument("--in", dest="infile", required=True, help="Input MusicXML")
    n.add_argument("--json", action="store_true", help="Raw {divisions, notes} as JSON")
    n.add_argument("--bpm", type=float, default=None)
    n.set_defaults(func=cmd_notes)

    r = sp.add_parser("preset", help="Write a preset groove snapshot")
    r.add_argument("name", choices=sorted(PRESETS))
    r.add_argument("--measures", type=int, default=None)
    r.add_argument("--out", dest="outfile", required=True, help="Output snapshot (.json)")
    r.set_defaults(func=cmd_preset)
    return p

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    cfg = load_config(args.config)
    args.func(args, cfg)
    return 0

if __name__ == "__main__":
    sys.exit(main())
