"""
Coverage audit for finished voicings.

Flags missing required tones, non-chord tones and degenerate doublings
for one voiced region. At most two events are emitted per region.
"""

from collections import Counter
from typing import Iterable, List, Sequence

from ..theory.chords import ChordEvent, TensionKind
from ..theory.keys import midi_to_name, spell_pitch_name
from ..theory.tensions import detect_eleventh_tensions
from ..theory.tone_priority import required_pitch_classes
from .diagnostics import DiagCode, DiagSeverity, DiagnosticsSink, RegionDiagEvent

MAX_AUDIT_EVENTS = 2


def _names(pcs: Iterable[int], event: ChordEvent) -> str:
    return ",".join(spell_pitch_name(pc, event.key) for pc in sorted(set(pcs)))


def audit_voiced_chord(
    region_index: int,
    event: ChordEvent,
    satb_midi: Sequence[int],
    sink: DiagnosticsSink,
) -> List[RegionDiagEvent]:
    """Emit coverage diagnostics for one region and return them."""
    if not sink.enabled or not satb_midi:
        return []

    key, recipe = event.key, event.recipe
    tones = event.tone_pitch_classes()
    realized = {m % 12 for m in satb_midi}
    required = required_pitch_classes(key, recipe)

    elevenths = detect_eleventh_tensions(key, recipe, list(satb_midi))
    allowed_tensions = {satb_midi[-1] % 12} if elevenths else set()

    extraneous = [pc for pc in realized if pc not in tones and pc not in allowed_tensions]
    # Melody lock may legitimately place a non-chord tone in the soprano
    if event.melody_midi is not None and satb_midi[-1] == event.melody_midi:
        inner = {m % 12 for m in satb_midi[:-1]}
        extraneous = [pc for pc in extraneous if pc in inner]
    missing = [pc for pc in required if pc not in realized]

    emitted: List[RegionDiagEvent] = []

    def add(severity: DiagSeverity, code: str, message: str) -> None:
        if len(emitted) < MAX_AUDIT_EVENTS:
            e = RegionDiagEvent(region_index, severity, code, message)
            sink.emit(e)
            emitted.append(e)

    for tension in elevenths:
        if tension.kind is TensionKind.ELEVEN and tones[1] in realized:
            add(DiagSeverity.WARNING, DiagCode.SUS4_CLASH_WITH_THIRD,
                f"Natural 11 ({spell_pitch_name(satb_midi[-1] % 12, key)}) sounds against the third")
        else:
            add(DiagSeverity.INFO, DiagCode.TENSION_PRESENT,
                f"Tension present: {tension.label} ({spell_pitch_name(satb_midi[-1] % 12, key)})")

    if extraneous:
        add(DiagSeverity.WARNING, DiagCode.NON_CHORD_TONE_PRESENT,
            f"Non-chord tone(s) present: {_names(extraneous, event)}. "
            f"Expected={_names(tones, event)} Realized={_names(realized, event)}")

    if len(missing) == 1:
        add(DiagSeverity.WARNING, DiagCode.MISSING_REQUIRED_TONE,
            f"Missing required tone: {spell_pitch_name(missing[0], key)} (PC={missing[0]})")
    elif len(missing) > 1:
        add(DiagSeverity.WARNING, DiagCode.MISSING_MULTIPLE_REQUIRED_TONES,
            f"Missing {len(missing)} required tones: {_names(missing, event)}")
    if recipe.has_seventh and tones[3] in missing:
        add(DiagSeverity.WARNING, DiagCode.MISSING_7TH_IN_7TH_CHORD,
            "7th chord is missing its 7th")

    if len(satb_midi) >= 4 and len(realized) <= 2:
        add(DiagSeverity.WARNING, DiagCode.UNUSUAL_DOUBLING,
            f"Unusual doubling: only {len(realized)} distinct pitch classes in 4-voice texture")
    else:
        midi, count = Counter(satb_midi).most_common(1)[0]
        if count >= 3:
            add(DiagSeverity.WARNING, DiagCode.UNISON_STACK,
                f"Unison stack: {count} voices share {midi_to_name(midi, key)} (MIDI {midi})")

    return emitted
