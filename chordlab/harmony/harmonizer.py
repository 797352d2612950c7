"""
Harmonization heuristic - melody to chord-per-note

Two stages:
    - **Candidate generation** proposes chords for one analyzed melody
      note, from a per-degree diatonic table or, for altered notes with a
      spelling hint, from a chromatic-interval table. Every candidate is
      realized at a reference octave and kept only if it really contains
      the melody pitch class.
    - **Selection** walks the melody left to right choosing one candidate
      per note: tonic start, continuity, then a functional transition
      preference. Notes with no candidates hold the previous chord.

Usage:
    from chordlab.harmony import harmonize_melody, HarmonyHeuristicSettings
    from chordlab.theory import Key, parse_melody_line

    steps = harmonize_melody(parse_melody_line("E4 F4 G4 C5"), Key(0))
    for step in steps:
        print(step.chosen.roman if step.chosen else "-", step.reason)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..theory.chords import (
    ChordEvent,
    ChordExtension,
    ChordQuality,
    ChordRecipe,
    SeventhQuality,
    build_chord_pitches,
    parse_roman_numeral,
    recipe_to_roman,
    recipe_to_symbol,
)
from ..theory.keys import FLAT_NAMES, SHARP_NAMES, Key, ScaleMode
from ..theory.melody import (
    AccidentalHint,
    MelodyAnalysis,
    MelodyEvent,
    analyze_melody_event,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

# Numerals known to contain each melody degree, in preference order
_DIATONIC_TABLE: Dict[int, Tuple[str, ...]] = {
    1: ("I", "vi"),
    2: ("ii", "V"),
    3: ("I", "iii", "vi"),
    4: ("IV", "ii"),
    5: ("V", "I"),
    6: ("vi", "IV"),
    7: ("V", "vii°"),
}

# Relative interval above the tonic -> (lowered degree, description)
_FLAT_TABLE: Dict[int, Tuple[int, str]] = {
    1: (2, "Neapolitan"),
    3: (3, "borrowed from minor"),
    6: (5, "borrowed from Locrian"),
    8: (6, "borrowed from minor"),
    10: (7, "borrowed from minor"),
}

_DIATONIC_NUMERALS = ["I", "ii", "iii", "IV", "V", "vi", "vii°"]

_FLAT_DEGREE_LABELS = {1: "b2", 3: "b3", 6: "b5", 8: "b6", 10: "b7"}
_SHARP_DEGREE_LABELS = {1: "#1", 3: "#2", 6: "#4", 8: "#5", 10: "#6"}


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChordCandidate:
    """
    A chord proposed for one melody note.

    Attributes:
        recipe: Chord recipe relative to the key.
        roman: Roman numeral label (``"V"``, ``"bVI"``, ``"V/ii"``).
        symbol: Absolute chord symbol for display.
        reason: Why the generator proposed it.
    """
    recipe: ChordRecipe
    roman: str
    symbol: str
    reason: str = ""


@dataclass
class HarmonyHeuristicSettings:
    """
    Selector switches.

    Attributes:
        prefer_tonic_start: Open on I when it is a candidate.
        prefer_continuity: Keep the previous chord when it still fits.
        detailed_reasons: Use the long form of transition reasons.
    """
    prefer_tonic_start: bool = True
    prefer_continuity: bool = True
    detailed_reasons: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> "HarmonyHeuristicSettings":
        return cls(
            prefer_tonic_start=bool(data.get("prefer_tonic_start", True)),
            prefer_continuity=bool(data.get("prefer_continuity", True)),
            detailed_reasons=bool(data.get("detailed_reasons", False)),
        )


@dataclass
class HarmonizedChordStep:
    """
    One melody note with its analysis, candidates and the chosen chord.

    ``chosen`` is ``None`` for a note nothing could harmonize; such steps
    produce no chord event.
    """
    melody: MelodyEvent
    analysis: MelodyAnalysis
    candidates: List[ChordCandidate] = field(default_factory=list)
    chosen: Optional[ChordCandidate] = None
    reason: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.chosen is not None


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------

def _contains_pc(key: Key, recipe: ChordRecipe, pc: int) -> bool:
    return pc in {n % 12 for n in build_chord_pitches(key, recipe, octave=4)}


def _make_candidate(key: Key, recipe: ChordRecipe, reason: str, roman: str = None) -> ChordCandidate:
    return ChordCandidate(
        recipe=recipe,
        roman=roman or recipe_to_roman(key, recipe),
        symbol=recipe_to_symbol(key, recipe),
        reason=reason,
    )


def _diatonic_candidates(analysis: MelodyAnalysis, key: Key) -> List[ChordCandidate]:
    candidates = []
    for numeral in _DIATONIC_TABLE.get(analysis.degree, ()):
        recipe = parse_roman_numeral(key, numeral)
        if not _contains_pc(key, recipe, analysis.pitch_class):
            logger.debug("Dropped %s: melody pc %d not a chord tone",
                         numeral, analysis.pitch_class)
            continue
        reason = f"Melody degree {analysis.degree} is chord tone in {numeral}"
        candidates.append(_make_candidate(key, recipe, reason, roman=numeral))
    return candidates


def _locate_root(key: Key, root_pc: int) -> Tuple[int, int]:
    """First degree within a semitone of *root_pc*, as (degree, offset)."""
    scale = key.scale_pitch_classes()
    for offset in (0, 1, -1):
        base = (root_pc - offset) % 12
        if base in scale:
            return scale.index(base) + 1, offset
    raise ValueError(f"No degree near pitch class {root_pc}")


def _secondary_dominants(key: Key, melody_pc: int, label: str) -> List[ChordCandidate]:
    """Major triad (and its dominant seventh) whose third is *melody_pc*."""
    root = (melody_pc - 4) % 12
    degree, offset = _locate_root(key, root)
    triad = ChordRecipe(degree=degree, quality=ChordQuality.MAJOR, root_offset=offset)

    target = (root + 5) % 12
    scale = key.scale_pitch_classes()
    target_label = None
    if target in scale:
        target_recipe = parse_roman_numeral(key, _DIATONIC_NUMERALS[scale.index(target)])
        if target_recipe.quality is not ChordQuality.DIMINISHED and target != key.tonic_pc:
            target_label = recipe_to_roman(key, target_recipe)

    name = SHARP_NAMES[melody_pc]
    if target_label is None:
        reason = f"[CHROMATIC] {name} ({label}) → {recipe_to_roman(key, triad)} (chromatic major)"
        return [_make_candidate(key, triad, reason)]

    seventh = ChordRecipe(
        degree=degree,
        quality=ChordQuality.MAJOR,
        extension=ChordExtension.SEVENTH,
        seventh_quality=SeventhQuality.DOMINANT7,
        root_offset=offset,
    )
    return [
        _make_candidate(
            key, triad,
            f"[CHROMATIC] {name} ({label}) → V/{target_label} (secondary dominant)",
            roman=f"V/{target_label}",
        ),
        _make_candidate(
            key, seventh,
            f"[CHROMATIC] {name} ({label}) → V7/{target_label} (secondary dominant)",
            roman=f"V7/{target_label}",
        ),
    ]


def _chromatic_candidates(analysis: MelodyAnalysis, key: Key) -> List[ChordCandidate]:
    if key.mode is not ScaleMode.IONIAN:
        return []
    hint = analysis.accidental_hint
    if hint not in (AccidentalHint.SHARP, AccidentalHint.FLAT):
        return []

    rel = (analysis.pitch_class - key.tonic_pc) % 12
    if hint is AccidentalHint.FLAT:
        if rel not in _FLAT_TABLE:
            return []
        degree, description = _FLAT_TABLE[rel]
        recipe = ChordRecipe(degree=degree, quality=ChordQuality.MAJOR, root_offset=-1)
        roman = recipe_to_roman(key, recipe)
        reason = (f"[CHROMATIC] {FLAT_NAMES[analysis.pitch_class]} "
                  f"({_FLAT_DEGREE_LABELS[rel]}) → {roman} ({description})")
        found = [_make_candidate(key, recipe, reason)]
    else:
        if rel not in _SHARP_DEGREE_LABELS:
            return []
        found = _secondary_dominants(key, analysis.pitch_class, _SHARP_DEGREE_LABELS[rel])

    return [c for c in found if _contains_pc(key, c.recipe, analysis.pitch_class)]


def generate_candidates(analysis: MelodyAnalysis, key: Key) -> List[ChordCandidate]:
    """
    Propose chords containing the analyzed melody note.

    Diatonic notes use the per-degree table. Altered notes use the
    chromatic table when the key is Ionian and the note carries a sharp or
    flat spelling hint; without a hint no chromatic guess is made. An
    empty list is a valid result.
    """
    if analysis.is_diatonic:
        return _diatonic_candidates(analysis, key)
    return _chromatic_candidates(analysis, key)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _transition_tiers(previous: str) -> List[Tuple[str, ...]]:
    """Preferred follow-up labels for *previous*, tier by tier."""
    if previous == "I":
        return [("ii", "IV"), ("V",)]
    elif previous in ("ii", "IV"):
        return [("V", "I")]
    elif previous == "V":
        return [("I", "vi")]
    elif previous == "vi":
        return [("ii", "IV")]
    elif previous == "iii":
        return [("vi",)]
    elif previous == "vii°":
        return [("I", "iii")]
    return []


def _best_transition(previous: ChordCandidate, candidates: Sequence[ChordCandidate]) -> ChordCandidate:
    for tier in _transition_tiers(previous.roman):
        for candidate in candidates:
            if candidate.roman in tier:
                return candidate
    return candidates[0]


def _describe(c: ChordCandidate) -> str:
    return f"{c.roman} ({c.symbol})"


def harmonize_melody(
    melody: Sequence[MelodyEvent],
    key: Key,
    settings: Optional[HarmonyHeuristicSettings] = None,
) -> List[HarmonizedChordStep]:
    """
    Choose one chord per melody note.

    Returns one :class:`HarmonizedChordStep` per input event; a note with
    no candidates reuses the previous chord, or stays unresolved when it
    is the first harmonizable position.
    """
    if settings is None:
        settings = HarmonyHeuristicSettings()

    steps: List[HarmonizedChordStep] = []
    previous: Optional[ChordCandidate] = None

    for index, event in enumerate(melody):
        analysis = analyze_melody_event(event, key)
        candidates = generate_candidates(analysis, key)
        step = HarmonizedChordStep(melody=event, analysis=analysis, candidates=candidates)

        if not candidates:
            if previous is not None:
                step.chosen = previous
                step.reason = (
                    f"Non-diatonic melody note; reused previous chord {_describe(previous)} "
                    f"(holding harmony under passing tone)."
                )
            else:
                step.reason = "No candidate chord contains this melody note; left unresolved."
        elif previous is None:
            tonic = next((c for c in candidates if c.roman == "I"), None)
            if settings.prefer_tonic_start and tonic is not None:
                step.chosen = tonic
                step.reason = f"Start on tonic {_describe(tonic)}"
            else:
                step.chosen = candidates[0]
                step.reason = f"Chose {_describe(candidates[0])} - first candidate"
        else:
            same = next((c for c in candidates if c.roman == previous.roman), None)
            if settings.prefer_continuity and same is not None:
                step.chosen = same
                step.reason = f"Kept {_describe(same)} - chord continues under melody"
            else:
                chosen = _best_transition(previous, candidates)
                step.chosen = chosen
                if settings.detailed_reasons:
                    step.reason = (f"Transitioned from {_describe(previous)} to "
                                   f"{_describe(chosen)} - functional preference")
                else:
                    step.reason = (f"Chose {_describe(chosen)} - best transition "
                                   f"from {previous.roman}")

        if step.chosen is not None:
            previous = step.chosen
        logger.debug("Step %d: midi=%d -> %s", index, event.midi,
                     step.chosen.roman if step.chosen else "unresolved")
        steps.append(step)

    return steps


def build_chord_events(steps: Sequence[HarmonizedChordStep], key: Key) -> List[ChordEvent]:
    """Chord events for resolved steps, each locked to its melody note."""
    return [
        ChordEvent(
            key=key,
            recipe=step.chosen.recipe,
            time_beats=step.melody.time_beats,
            melody_midi=step.melody.midi,
            label=step.chosen.roman,
        )
        for step in steps
        if step.chosen is not None
    ]
