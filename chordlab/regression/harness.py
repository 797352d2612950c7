"""
Regression Harness - fixed progression cases and voicing checks

Each :class:`RegressionCase` is a literal (key, progression text, optional
melody text, check flags). :func:`run_case` builds regions, voices them
and runs the requested checks over the published voicing. Checks return
PASS, FAIL or SKIP per region; a case passes when nothing FAILs.

Usage:
    from chordlab.regression.harness import run_all_cases

    report = run_all_cases()
    print(report.summary())
"""

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..errors import ChordLabError, Failure
from ..theory.chords import ChordQuality, bass_pitch_class, recipe_to_symbol
from ..theory.keys import Key, ScaleMode, midi_to_name
from ..theory.melody import parse_melody_line
from ..theory.tone_priority import required_pitch_classes
from ..timeline import TimelineSpec, build_regions
from ..voicing.diagnostics import DiagnosticsCollector
from ..voicing.engine import LANE_NAMES, SOPRANO, BASS, VoicingSettings, voice_lead_regions

logger = logging.getLogger(__name__)

PASS = "PASS"
FAIL = "FAIL"
SKIP = "SKIP"


class RegressionChecks(IntFlag):
    NONE = 0
    SEVENTH_RESOLVES_DOWN = 1
    REQUIRED_TONES_PRESENT = 2
    DIM_TRIAD_IDENTITY = 4
    AUG5_RESOLVES_UP = 8


@dataclass(frozen=True)
class RegressionCase:
    """
    A single regression case.

    Attributes:
        name: Unique case name.
        key_tonic: Tonic pitch class (C=0).
        mode: Key mode.
        progression: Progression text exactly as a user would type it.
        melody: Optional melody text (``"E4 E4 C4"``).
        checks: Checks to run over the voicing.
        expected_sopranos: Exact soprano MIDI per region.
        final_inner_pcs: Expected (tenor, alto) pitch classes in the last region.
        expected_symbols: Chord symbol per region.
        expected_melody_events: Number of parsed melody events.
        expected_last_midi: MIDI pitch of the final melody event.
    """
    name: str
    key_tonic: int
    mode: ScaleMode
    progression: str
    melody: Optional[str] = None
    checks: RegressionChecks = RegressionChecks.NONE
    expected_sopranos: Optional[Tuple[int, ...]] = None
    final_inner_pcs: Optional[Tuple[int, int]] = None
    expected_symbols: Optional[Tuple[str, ...]] = None
    expected_melody_events: Optional[int] = None
    expected_last_midi: Optional[int] = None


@dataclass(frozen=True)
class CheckOutcome:
    check: str
    region_index: int
    result: str
    message: str
    voice_index: int = -1
    from_midi: int = -1
    to_midi: int = -1


@dataclass
class RegressionFailure:
    case_name: str
    region_index: int
    voice_name: str
    from_midi: int
    to_midi: int
    message: str
    stage: str = "final"


@dataclass
class RegressionReport:
    case_count: int = 0
    pass_count: int = 0
    fail_count: int = 0
    failures: List[RegressionFailure] = field(default_factory=list)
    outcomes: Dict[str, List[CheckOutcome]] = field(default_factory=dict)
    diagnostics: Dict[str, DiagnosticsCollector] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.fail_count == 0

    def merge(self, other: "RegressionReport") -> None:
        self.case_count += other.case_count
        self.pass_count += other.pass_count
        self.fail_count += other.fail_count
        self.failures.extend(other.failures)
        self.outcomes.update(other.outcomes)
        self.diagnostics.update(other.diagnostics)

    def summary(self) -> str:
        lines = [f"Regression: {self.pass_count}/{self.case_count} passed, {self.fail_count} failed"]
        for f in self.failures:
            where = f"region {f.region_index}" if f.region_index >= 0 else "setup"
            lines.append(f"  FAIL {f.case_name} [{where}, {f.voice_name}, {f.stage}]: {f.message}")
        return "\n".join(lines)


# =============================================================================
# FIXTURES
# =============================================================================

def default_regression_cases() -> Tuple[RegressionCase, ...]:
    """The built-in case list, constructed fresh on every call."""
    seventh = RegressionChecks.SEVENTH_RESOLVES_DOWN
    required = RegressionChecks.REQUIRED_TONES_PRESENT
    dim = RegressionChecks.DIM_TRIAD_IDENTITY
    aug5 = RegressionChecks.AUG5_RESOLVES_UP
    ionian, aeolian = ScaleMode.IONIAN, ScaleMode.AEOLIAN

    return (
        # Seventh resolution
        RegressionCase("G7_to_C_seventh_must_resolve", 0, ionian, "G7 C", checks=seventh),
        RegressionCase("G7_to_Cm_seventh_must_resolve", 0, aeolian, "G7 Cm", checks=seventh),
        RegressionCase("E7_to_Am_seventh_must_resolve", 9, aeolian, "E7 Am", checks=seventh),
        RegressionCase("A7_to_Bb_seventh_must_resolve", 2, aeolian, "A7 Bb", checks=seventh),
        RegressionCase("B7b9_to_Emaj7_seventh_must_resolve", 4, ionian, "B7b9 Emaj7", checks=seventh),
        RegressionCase("C7_to_Fm_seventh_must_resolve", 0, ionian, "C7 Fm", checks=seventh),
        RegressionCase("C7_to_C_no_resolution_target", 0, ionian, "C7 C", checks=seventh),
        RegressionCase("Cmaj7_to_Bbmaj7_prefers_half_step", 0, ionian, "Cmaj7 Bbmaj7",
                       checks=seventh),

        # Required chord tones
        RegressionCase("ReqTones_C_to_Am", 0, ionian, "C Am", checks=required),
        RegressionCase("ReqTones_C_to_Ab", 0, ionian, "C Ab", checks=required),
        RegressionCase("ReqTones_Bdim_to_C", 0, ionian, "Bdim C", checks=required),
        RegressionCase("ReqTones_G7_to_C", 0, ionian, "G7 C", checks=required),
        RegressionCase("ReqTones_B7b9_to_Emaj7", 4, ionian, "B7b9 Emaj7", checks=required),
        RegressionCase("ReqTones_Fsm7b5_B7_Em", 4, aeolian, "F#m7b5 B7 Em",
                       checks=required | seventh),

        # Augmented fifth
        RegressionCase(
            "Aug5_Caug_to_F_withMelody_mustResolve", 0, ionian, "C Caug F",
            melody="E4 E4 C4",
            checks=aug5 | required,
            expected_sopranos=(64, 64, 60),
            final_inner_pcs=(9, 9),
        ),

        # Diminished triads
        RegressionCase("DimTriad_Fdim", 0, ionian, "Fdim", checks=dim),
        RegressionCase("DimTriad_Bdim_Ddim_Fdim", 0, ionian, "Bdim Ddim Fdim", checks=dim),
        RegressionCase("DimTriad_8chord_chain", 0, ionian,
                       "Bdim Ddim Fdim Abdim Bdim Ddim Fdim Abdim", checks=dim),

        # Timeline
        RegressionCase(
            "Timeline_Melody4xPerRegion_SATBUnchanged", 0, ionian, "I IV V I",
            melody="C5 C5 C5 C5 F4 F4 F4 F4 G4 G4 G4 G4 C5 C5 C5 C5",
            checks=required,
            expected_sopranos=(72, 65, 67, 72),
        ),
        RegressionCase(
            "Timeline_MelodyNCT_ChordSymbolUnchanged", 0, ionian, "I IV V I",
            melody="A5",
            expected_symbols=("C", "F", "G", "C"),
        ),
        RegressionCase(
            "Timeline_MelodyParsing_NoDroppedFinalNote", 0, ionian, "I",
            melody="C5 D5 E5 F5 G5 F5 E5 D5 C5",
            expected_melody_events=9,
            expected_last_midi=72,
        ),
    )


# =============================================================================
# CHECKS
# =============================================================================

def _first_lane_with(voicing: Sequence[int], pc: int) -> int:
    for lane, midi in enumerate(voicing):
        if midi % 12 == pc:
            return lane
    return -1


def _reachable_targets(region, lane: int, targets: Sequence[int]) -> Tuple[List[int], Optional[str]]:
    """
    Targets the successor lane can still take, in preference order.

    A locked soprano or the inversion's bass narrows the list; an empty
    list comes with the reason.
    """
    event = region.chord_event
    if lane == SOPRANO and event.melody_midi is not None:
        allowed = [pc for pc in targets if pc == event.melody_midi % 12]
        return allowed, None if allowed else "soprano is locked to the melody"
    if lane == BASS:
        bass_pc = bass_pitch_class(event.key, event.recipe)
        allowed = [pc for pc in targets if pc == bass_pc]
        return allowed, None if allowed else "bass is fixed by the chord's inversion"
    return list(targets), None


def check_seventh_resolution(regions: Sequence, voiced: Sequence) -> List[CheckOutcome]:
    """Lane holding a chordal seventh falls 1 or 2 semitones when it can."""
    name = RegressionChecks.SEVENTH_RESOLVES_DOWN.name
    outcomes: List[CheckOutcome] = []
    for i in range(len(regions) - 1):
        tones = regions[i].chord_event.tone_pitch_classes()
        if len(tones) < 4:
            continue
        seventh = tones[3]
        lane = _first_lane_with(voiced[i].voices_midi, seventh)
        if lane < 0:
            outcomes.append(CheckOutcome(name, i, SKIP, f"seventh pc {seventh} not voiced"))
            continue
        next_tones = set(regions[i + 1].chord_event.tone_pitch_classes())
        targets = [pc for pc in ((seventh - 1) % 12, (seventh - 2) % 12) if pc in next_tones]
        if not targets:
            outcomes.append(CheckOutcome(
                name, i, SKIP, f"no resolution target for pc {seventh} in next chord", lane))
            continue
        allowed, blocked = _reachable_targets(regions[i + 1], lane, targets)
        if blocked:
            outcomes.append(CheckOutcome(name, i, SKIP, blocked, lane))
            continue
        before = voiced[i].voices_midi[lane]
        after = voiced[i + 1].voices_midi[lane]
        if after % 12 == allowed[0]:
            outcomes.append(CheckOutcome(
                name, i, PASS, f"{LANE_NAMES[lane]} {seventh} -> {after % 12}", lane, before, after))
        elif after % 12 in targets:
            outcomes.append(CheckOutcome(
                name, i, FAIL,
                f"{LANE_NAMES[lane]} took pc {after % 12}; "
                f"pc {allowed[0]} (half step) is preferred",
                lane, before, after,
            ))
        else:
            outcomes.append(CheckOutcome(
                name, i, FAIL,
                f"{LANE_NAMES[lane]} holds the seventh (pc {seventh}) and moves to pc {after % 12}; "
                f"expected one of {targets}",
                lane, before, after,
            ))
    return outcomes


def check_required_tones(regions: Sequence, voiced: Sequence) -> List[CheckOutcome]:
    name = RegressionChecks.REQUIRED_TONES_PRESENT.name
    outcomes: List[CheckOutcome] = []
    for i, (region, chord) in enumerate(zip(regions, voiced)):
        event = region.chord_event
        required = required_pitch_classes(event.key, event.recipe)
        realized = {m % 12 for m in chord.voices_midi}
        missing = [pc for pc in required if pc not in realized]
        if missing:
            outcomes.append(CheckOutcome(
                name, i, FAIL, f"missing required pcs {missing} (realized {sorted(realized)})"))
        else:
            outcomes.append(CheckOutcome(name, i, PASS, f"required {required} present"))
    return outcomes


def check_dim_identity(regions: Sequence, voiced: Sequence) -> List[CheckOutcome]:
    name = RegressionChecks.DIM_TRIAD_IDENTITY.name
    outcomes: List[CheckOutcome] = []
    for i, (region, chord) in enumerate(zip(regions, voiced)):
        recipe = region.chord_event.recipe
        if not recipe.is_plain_diminished_triad:
            continue
        root = region.chord_event.tone_pitch_classes()[0]
        identity = [root, (root + 3) % 12, (root + 6) % 12]
        realized = {m % 12 for m in chord.voices_midi}
        missing = [pc for pc in identity if pc not in realized]
        if missing:
            outcomes.append(CheckOutcome(name, i, FAIL, f"diminished identity tones missing: {missing}"))
        else:
            outcomes.append(CheckOutcome(name, i, PASS, f"identity tones {identity} present"))
    return outcomes


def check_aug5_resolution(regions: Sequence, voiced: Sequence) -> List[CheckOutcome]:
    """Lane holding an augmented fifth rises a semitone when it can."""
    name = RegressionChecks.AUG5_RESOLVES_UP.name
    outcomes: List[CheckOutcome] = []
    for i in range(len(regions) - 1):
        event = regions[i].chord_event
        if event.recipe.quality is not ChordQuality.AUGMENTED:
            continue
        fifth = event.tone_pitch_classes()[2]
        lane = _first_lane_with(voiced[i].voices_midi, fifth)
        if lane < 0:
            outcomes.append(CheckOutcome(name, i, SKIP, f"augmented fifth pc {fifth} not voiced"))
            continue
        target = (fifth + 1) % 12
        if target not in regions[i + 1].chord_event.tone_pitch_classes():
            outcomes.append(CheckOutcome(name, i, SKIP, f"pc {target} not in next chord", lane))
            continue
        _, blocked = _reachable_targets(regions[i + 1], lane, [target])
        if blocked:
            outcomes.append(CheckOutcome(name, i, SKIP, blocked, lane))
            continue
        before = voiced[i].voices_midi[lane]
        after = voiced[i + 1].voices_midi[lane]
        result = PASS if after % 12 == target else FAIL
        outcomes.append(CheckOutcome(
            name, i, result,
            f"{LANE_NAMES[lane]} {midi_to_name(before, event.key)} -> "
            f"{midi_to_name(after, event.key)} (target pc {target})",
            lane, before, after,
        ))
    return outcomes


_CHECKS = (
    (RegressionChecks.SEVENTH_RESOLVES_DOWN, check_seventh_resolution),
    (RegressionChecks.REQUIRED_TONES_PRESENT, check_required_tones),
    (RegressionChecks.DIM_TRIAD_IDENTITY, check_dim_identity),
    (RegressionChecks.AUG5_RESOLVES_UP, check_aug5_resolution),
)


def _case_asserts(case: RegressionCase, regions: Sequence, voiced: Sequence) -> List[CheckOutcome]:
    outcomes: List[CheckOutcome] = []
    if case.expected_sopranos is not None:
        sopranos = tuple(v.soprano for v in voiced)
        ok = sopranos == case.expected_sopranos
        outcomes.append(CheckOutcome(
            "SOPRANO_LOCK", -1, PASS if ok else FAIL,
            f"sopranos {list(sopranos)} (expected {list(case.expected_sopranos)})"))
    if case.final_inner_pcs is not None and voiced:
        last = voiced[-1]
        inner = (last.tenor % 12, last.alto % 12)
        ok = inner == tuple(case.final_inner_pcs) and last.alto >= last.tenor
        outcomes.append(CheckOutcome(
            "FINAL_INNER_VOICES", len(voiced) - 1, PASS if ok else FAIL,
            f"tenor/alto pcs {inner} (expected {case.final_inner_pcs})"))
    if case.expected_symbols is not None:
        symbols = tuple(recipe_to_symbol(r.chord_event.key, r.chord_event.recipe) for r in regions)
        ok = symbols == case.expected_symbols
        outcomes.append(CheckOutcome(
            "CHORD_SYMBOLS", -1, PASS if ok else FAIL,
            f"symbols {list(symbols)} (expected {list(case.expected_symbols)})"))
    return outcomes


# =============================================================================
# RUNNER
# =============================================================================

def _fail_setup(report: RegressionReport, case: RegressionCase, message: str, stage: str) -> RegressionReport:
    report.fail_count = 1
    report.failures.append(RegressionFailure(case.name, -1, "N/A", -1, -1, message, stage))
    logger.info("FAIL %s (%s): %s", case.name, stage, message)
    return report


def run_case(
    case: RegressionCase,
    settings: Optional[VoicingSettings] = None,
    collect_diagnostics: bool = False,
) -> RegressionReport:
    """Build, voice and check one case."""
    report = RegressionReport(case_count=1)
    key = Key(case.key_tonic, case.mode)
    spec = TimelineSpec(ticks_per_quarter=4)
    outcomes: List[CheckOutcome] = []

    melody = None
    if case.melody:
        try:
            melody = parse_melody_line(case.melody)
        except ChordLabError as e:
            return _fail_setup(report, case, str(e), "melody")
        if case.expected_melody_events is not None:
            ok = len(melody) == case.expected_melody_events
            outcomes.append(CheckOutcome(
                "MELODY_EVENT_COUNT", -1, PASS if ok else FAIL,
                f"{len(melody)} melody events (expected {case.expected_melody_events})"))
        if case.expected_last_midi is not None:
            last = melody[-1].midi if melody else -1
            ok = last == case.expected_last_midi
            outcomes.append(CheckOutcome(
                "MELODY_LAST_NOTE", -1, PASS if ok else FAIL,
                f"last melody MIDI {last} (expected {case.expected_last_midi})"))

    pitches = [event.midi for event in melody] if melody else None
    built = build_regions(case.progression, key, spec, melody=pitches)
    if isinstance(built, Failure):
        return _fail_setup(report, case, str(built.error), "parse")
    regions = built.value

    collector = DiagnosticsCollector() if collect_diagnostics else None
    result = voice_lead_regions(key, spec, regions, use_melody_constraint=True,
                                diagnostics=collector, settings=settings)
    if isinstance(result, Failure):
        return _fail_setup(report, case, str(result.error), "voicing")
    voiced = result.value

    for flag, check in _CHECKS:
        if case.checks & flag:
            outcomes.extend(check(regions, voiced))
    outcomes.extend(_case_asserts(case, regions, voiced))

    failed = [o for o in outcomes if o.result == FAIL]
    for o in failed:
        voice = LANE_NAMES[o.voice_index] if o.voice_index >= 0 else "N/A"
        report.failures.append(RegressionFailure(
            case.name, o.region_index, voice, o.from_midi, o.to_midi, f"{o.check}: {o.message}"))
    if failed:
        report.fail_count = 1
    else:
        report.pass_count = 1
    report.outcomes[case.name] = outcomes
    if collector is not None:
        report.diagnostics[case.name] = collector

    logger.info("%s %s (%d checks)", FAIL if failed else PASS, case.name, len(outcomes))
    return report


def run_all_cases(
    cases: Optional[Sequence[RegressionCase]] = None,
    settings: Optional[VoicingSettings] = None,
    collect_diagnostics: bool = False,
    name_filter: Optional[str] = None,
) -> RegressionReport:
    """Run every case (optionally those whose name contains *name_filter*)."""
    if cases is None:
        cases = default_regression_cases()
    report = RegressionReport()
    for case in cases:
        if name_filter and name_filter not in case.name:
            continue
        report.merge(run_case(case, settings, collect_diagnostics))
    return report


def find_case(name: str, cases: Optional[Sequence[RegressionCase]] = None) -> Optional[RegressionCase]:
    for case in cases if cases is not None else default_regression_cases():
        if case.name == name:
            return case
    return None
