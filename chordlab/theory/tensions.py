"""
Tension Classifier - labels realized 9ths and 11ths

Read-only analysis of a finished voicing: any realized pitch class that
is not a core chord tone but sits a b9/9/#9 above the root is reported
as a ninth; the soprano is additionally checked for 11/#11 and classified
as a suspension, colour tone or non-chord tone depending on the chord.

Usage:
    detected = detect_tensions(key, recipe, [47, 57, 63, 72])
    for t in detected.tensions:
        print(t.label, t.classification.value)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Set

from .chords import (
    ChordQuality,
    ChordRecipe,
    SeventhQuality,
    TensionKind,
    chord_tone_pitch_classes,
    root_pitch_class,
)
from .keys import Key


class TensionClassification(Enum):
    CHORD_TONE = "ChordTone"
    COLOR_TONE = "ColorTone"
    SUSPENSION = "Suspension"
    NON_CHORD_TONE = "NonChordTone"


@dataclass(frozen=True)
class ChordTension:
    kind: TensionKind
    classification: TensionClassification = TensionClassification.COLOR_TONE

    @property
    def label(self) -> str:
        return self.kind.value


@dataclass
class DetectedTensions:
    """
    Tensions found in one voicing.

    Attributes:
        tensions: Unique tensions in detection order.
        analyzed_midi: The voicing that was analyzed, bass first.
        analyzed_pcs: Pitch classes of ``analyzed_midi``.
        third_clash: True when a natural 11 sounds against the chord's
            own third.
    """
    tensions: List[ChordTension] = field(default_factory=list)
    analyzed_midi: List[int] = field(default_factory=list)
    analyzed_pcs: List[int] = field(default_factory=list)
    third_clash: bool = False

    @property
    def has_tensions(self) -> bool:
        return bool(self.tensions)


def ninth_kind(interval: int) -> Optional[TensionKind]:
    rel = interval % 12
    if rel == 1:
        return TensionKind.FLAT_NINE
    elif rel == 2:
        return TensionKind.NINE
    elif rel == 3:
        return TensionKind.SHARP_NINE
    return None


def eleventh_kind(interval: int) -> Optional[TensionKind]:
    rel = interval % 12
    if rel == 5:
        return TensionKind.ELEVEN
    elif rel == 6:
        return TensionKind.SHARP_ELEVEN
    return None


def detect_ninth_tensions(key: Key, recipe: ChordRecipe, midi_notes: Iterable[int]) -> List[ChordTension]:
    """Unique b9/9/#9 tensions among *midi_notes*, skipping core tones."""
    root = root_pitch_class(key, recipe)
    core = set(chord_tone_pitch_classes(key, recipe))
    found: List[ChordTension] = []
    seen: Set[TensionKind] = set()
    for midi in midi_notes:
        pc = midi % 12
        if pc in core:
            continue
        kind = ninth_kind(pc - root)
        if kind is not None and kind not in seen:
            seen.add(kind)
            found.append(ChordTension(kind, TensionClassification.COLOR_TONE))
    return found


def classify_eleventh(
    kind: TensionKind,
    recipe: ChordRecipe,
) -> TensionClassification:
    """
    Interpretation of an 11/#11 over *recipe*.

    A natural 11 reads as a suspension of the third, even when the third
    also sounds; that clash is reported on its own.
    """
    sq = recipe.seventh_quality
    if kind is TensionKind.ELEVEN:
        return TensionClassification.SUSPENSION
    elif kind is TensionKind.SHARP_ELEVEN:
        if sq in (SeventhQuality.DOMINANT7, SeventhQuality.MAJOR7):
            return TensionClassification.COLOR_TONE
        if sq is SeventhQuality.NONE and recipe.quality is ChordQuality.MAJOR:
            return TensionClassification.COLOR_TONE
        return TensionClassification.NON_CHORD_TONE
    raise ValueError(f"Not an eleventh: {kind!r}")


def detect_eleventh_tensions(key: Key, recipe: ChordRecipe, midi_notes: List[int]) -> List[ChordTension]:
    """11/#11 in the soprano (highest note), classified against the chord."""
    if not midi_notes:
        return []
    tones = chord_tone_pitch_classes(key, recipe)
    soprano_pc = max(midi_notes) % 12
    if soprano_pc in tones:
        return []
    kind = eleventh_kind(soprano_pc - tones[0])
    if kind is None:
        return []
    return [ChordTension(kind, classify_eleventh(kind, recipe))]


def detect_tensions(key: Key, recipe: ChordRecipe, analyzed_midi: List[int]) -> DetectedTensions:
    """Detect all 9th and 11th tensions in a realized voicing."""
    if not analyzed_midi:
        return DetectedTensions()
    pcs = [m % 12 for m in analyzed_midi]
    tensions = detect_ninth_tensions(key, recipe, analyzed_midi)
    elevenths = detect_eleventh_tensions(key, recipe, analyzed_midi)
    tensions.extend(elevenths)

    third = chord_tone_pitch_classes(key, recipe)[1]
    clash = any(
        t.kind is TensionKind.ELEVEN and third in pcs for t in elevenths
    )
    return DetectedTensions(
        tensions=tensions,
        analyzed_midi=list(analyzed_midi),
        analyzed_pcs=pcs,
        third_clash=clash,
    )
