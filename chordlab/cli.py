"""
ChordLab - CLI Entry Point

Harmonize melodies, voice progressions in four parts, and run the
voicing regression suite.

Usage:
    chordlab harmonize "E4 D4 C4 D4 E4 E4 E4" --key C
    chordlab voice "C Caug F" --melody "E4 E4 C4" --midi out/caug.mid
    chordlab voice "ii7 V7 I" --key Bb --diagnostics
    chordlab regress --filter Aug5
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from colorama import init, Fore, Style

from .config_loader import ConfigLoadError, ConfigLoader
from .errors import Failure, MelodyParseFailure
from .harmony.harmonizer import build_chord_events, harmonize_melody
from .midi_export import save_voicings_midi
from .regression.harness import run_all_cases
from .schemas.snapshot_schema import export_snapshot, snapshot_from_steps, snapshot_from_voicing
from .theory.keys import Key, midi_to_name, note_name_to_pc, parse_mode
from .theory.melody import parse_melody_line
from .timeline import build_regions, regions_from_chord_events
from .voicing.diagnostics import DiagnosticsCollector
from .voicing.engine import voice_lead_regions

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def print_info(message: str):
    print(f"{Fore.CYAN}ℹ{Style.RESET_ALL}  {message}")


def print_warning(message: str):
    print(f"{Fore.YELLOW}⚠{Style.RESET_ALL}  {message}")


def print_error(message: str):
    print(f"{Fore.RED}✗{Style.RESET_ALL}  {message}")


def print_success(message: str):
    print(f"{Fore.GREEN}✓{Style.RESET_ALL}  {message}")


def parse_key_argument(key_text: str, mode_text: Optional[str] = None) -> Key:
    """
    Read ``--key``/``--mode`` into a :class:`Key`.

    ``"Am"`` is shorthand for A Aeolian when no mode is given.
    """
    tonic = key_text.strip()
    mode = mode_text
    if mode is None and len(tonic) > 1 and tonic.endswith("m"):
        tonic, mode = tonic[:-1], "Aeolian"
    return Key(note_name_to_pc(tonic), parse_mode(mode or "Ionian"))


def _print_voicing(voiced, key: Key) -> None:
    print(f"\n{Fore.MAGENTA}{'─' * 50}{Style.RESET_ALL}")
    print(f"{Fore.MAGENTA}SATB voicing in {key.name}{Style.RESET_ALL}")
    for chord in voiced:
        names = "  ".join(f"{midi_to_name(m, key):>4}" for m in reversed(chord.voices_midi))
        print(f"  {chord.region_index:>2}  {chord.chord_symbol:<10} S/A/T/B: {names}")
    print(f"{Fore.MAGENTA}{'─' * 50}{Style.RESET_ALL}\n")


def _print_diagnostics(collector: DiagnosticsCollector) -> None:
    for region in collector.get_all():
        for event in region.events:
            color = Fore.YELLOW if event.severity.value != "Info" else Fore.CYAN
            print(f"  {color}[{region.region_index}] {event.code}{Style.RESET_ALL} {event.message}")


def _voice_and_report(args, key: Key, regions, spec, loader: ConfigLoader,
                      progression: str, melody_text: Optional[str]) -> int:
    collector = DiagnosticsCollector() if args.diagnostics else None
    result = voice_lead_regions(
        key, spec, regions,
        use_melody_constraint=not args.no_melody_lock,
        root_octave=args.root_octave,
        bass_octave=args.bass_octave,
        diagnostics=collector,
        settings=loader.load_voicing_settings(),
    )
    if isinstance(result, Failure):
        print_error(f"Voicing failed: {result.error}")
        return 1
    voiced = result.value

    if args.json:
        snapshot = snapshot_from_voicing(key, voiced, progression, melody_text, spec)
        print(snapshot.model_dump_json(indent=2))
    else:
        _print_voicing(voiced, key)
        if collector is not None:
            _print_diagnostics(collector)

    if args.midi:
        path = save_voicings_midi(voiced, key, args.midi, spec)
        if not args.json:
            print_success(f"MIDI: {path}")
    if args.snapshot:
        path = export_snapshot(snapshot_from_voicing(key, voiced, progression, melody_text, spec),
                               args.snapshot)
        if not args.json:
            print_success(f"Snapshot: {path}")
    return 0


def cmd_voice(args, loader: ConfigLoader) -> int:
    key = parse_key_argument(args.key, args.mode)
    spec = loader.load_timeline_spec()
    built = build_regions(args.progression, key, spec, melody=args.melody)
    if isinstance(built, Failure):
        print_error(str(built.error))
        return 1
    if not args.json:
        print_info(f"Key: {key.name}")
        print_info(f"Progression: \"{args.progression}\" ({len(built.value)} regions)")
    return _voice_and_report(args, key, built.value, spec, loader, args.progression, args.melody)


def cmd_harmonize(args, loader: ConfigLoader) -> int:
    key = parse_key_argument(args.key, args.mode)
    try:
        melody = parse_melody_line(args.melody)
    except MelodyParseFailure as e:
        print_error(str(e))
        return 1

    settings = loader.load_harmony_settings()
    if args.detailed:
        settings.detailed_reasons = True
    steps = harmonize_melody(melody, key, settings)

    if args.snapshot:
        export_snapshot(snapshot_from_steps(steps, key), args.snapshot)

    if args.json and not args.voice:
        print(snapshot_from_steps(steps, key).model_dump_json(indent=2))
        return 0

    if not args.json:
        print_info(f"Key: {key.name}")
        for index, step in enumerate(steps):
            label = step.chosen.roman if step.chosen else "-"
            note = midi_to_name(step.melody.midi, key)
            line = f"  {index:>2}  {note:<4} {label:<8} {step.reason}"
            if step.is_resolved:
                print(line)
            else:
                print(f"{Fore.YELLOW}{line}{Style.RESET_ALL}")
        if args.snapshot:
            print_success(f"Snapshot: {args.snapshot}")

    if not args.voice:
        return 0

    spec = loader.load_timeline_spec()
    events = build_chord_events(steps, key)
    if not events:
        print_warning("No melody note could be harmonized; nothing to voice")
        return 1
    regions = regions_from_chord_events(events, spec)
    progression = " ".join(e.label for e in events)
    return _voice_and_report(args, key, regions, spec, loader, progression, args.melody)


def cmd_regress(args, loader: ConfigLoader) -> int:
    report = run_all_cases(
        settings=loader.load_voicing_settings(),
        collect_diagnostics=args.diagnostics,
        name_filter=args.filter,
    )
    if args.json:
        print(json.dumps({
            "cases": report.case_count,
            "passed": report.pass_count,
            "failed": report.fail_count,
            "failures": [f.__dict__ for f in report.failures],
        }, indent=2))
    else:
        print(report.summary())
        if args.diagnostics:
            for name, collector in report.diagnostics.items():
                print(f"{Fore.MAGENTA}{name}{Style.RESET_ALL}")
                _print_diagnostics(collector)
        if report.ok:
            print_success("All regression cases passed")
    return 0 if report.ok else 1


def _add_voicing_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--no-melody-lock", action="store_true",
                        help="Let the soprano move freely instead of taking the melody")
    parser.add_argument("--root-octave", type=int, default=None,
                        help="Octave the upper voices centre on (default from config)")
    parser.add_argument("--bass-octave", type=int, default=None,
                        help="Octave the bass centres on (default from config)")
    parser.add_argument("--diagnostics", action="store_true",
                        help="Print per-region voicing diagnostics")
    parser.add_argument("--midi", type=str, help="Write the voicing to a MIDI file")
    parser.add_argument("--snapshot", type=str, help="Write a JSON snapshot")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chordlab",
        description="Melody harmonization and four-part voice leading",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s harmonize "E4 D4 C4 D4 E4 E4 E4" --key C
  %(prog)s harmonize "C5 Db5 C5" --key C --detailed
  %(prog)s voice "I IV V7 I" --key G --midi ./out/cadence.mid
  %(prog)s voice "C Caug F" --melody "E4 E4 C4" --diagnostics
  %(prog)s regress
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("--config", type=str, help="Directory holding voicing.yaml and harmony.yaml")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON (suppresses other output)")

    sub = parser.add_subparsers(dest="command", required=True)

    harmonize = sub.add_parser("harmonize", help="Choose a chord for every melody note")
    harmonize.add_argument("melody", type=str, help="Melody line, e.g. \"E4 D4 C4:2\"")
    harmonize.add_argument("--key", type=str, default="C", help="Tonic, e.g. 'C', 'Eb', 'Am'")
    harmonize.add_argument("--mode", type=str, default=None, help="Mode name (Ionian..Locrian)")
    harmonize.add_argument("--detailed", action="store_true", help="Long-form transition reasons")
    harmonize.add_argument("--voice", action="store_true", help="Also voice the harmonization")
    _add_voicing_options(harmonize)
    harmonize.set_defaults(handler=cmd_harmonize)

    voice = sub.add_parser("voice", help="Voice a chord progression in four parts")
    voice.add_argument("progression", type=str, help="Chords, e.g. \"I vi ii7 V7\" or \"G7 C\"")
    voice.add_argument("--key", type=str, default="C", help="Tonic, e.g. 'C', 'Eb', 'Am'")
    voice.add_argument("--mode", type=str, default=None, help="Mode name (Ionian..Locrian)")
    voice.add_argument("--melody", type=str, default=None, help="Soprano melody, e.g. \"E4 E4 C4\"")
    _add_voicing_options(voice)
    voice.set_defaults(handler=cmd_voice)

    regress = sub.add_parser("regress", help="Run the voicing regression suite")
    regress.add_argument("--filter", type=str, default=None, help="Only cases containing this text")
    regress.add_argument("--diagnostics", action="store_true", help="Print per-case diagnostics")
    regress.set_defaults(handler=cmd_regress)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    init()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    loader = ConfigLoader(Path(args.config)) if args.config else ConfigLoader()
    try:
        return args.handler(args, loader)
    except ConfigLoadError as e:
        print_error(f"Configuration error: {e}")
        return 1
    except ValueError as e:
        print_error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1
    except KeyboardInterrupt:
        print_warning("Cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
