"""
Chord Model - recipes, tone ordering and identifier parsing

A :class:`ChordRecipe` describes a chord relative to a key: scale degree,
triad quality, optional seventh, chromatic root offset, inversion and any
requested upper tensions. Everything downstream derives its pitch classes
from :func:`chord_tone_pitch_classes`, whose ordering
``[root, third, fifth(, seventh)]`` is significant.

Core capabilities:
    - Roman numeral parsing (``V7``, ``bVI``, ``viiø7``, ``ii/3rd``)
    - Absolute chord symbol parsing (``G7``, ``F#m7b5``, ``B7b9``, ``C/E``)
    - Reference-octave realization for candidate validation
    - Roman numeral and chord symbol display names

Usage:
    from chordlab.theory.chords import parse_chord_identifier
    from chordlab.theory.keys import Key

    recipe = parse_chord_identifier(Key(0), "V7")
    pcs = chord_tone_pitch_classes(Key(0), recipe)   # [7, 11, 2, 5]
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple
import logging
import re

from ..errors import ParseFailure
from .keys import (
    FLAT_NAMES,
    SHARP_NAMES,
    Key,
    ScaleMode,
    degree_pitch_class,
    note_name_to_pc,
    spell_pitch_name,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ChordQuality(Enum):
    MAJOR = "Major"
    MINOR = "Minor"
    DIMINISHED = "Diminished"
    AUGMENTED = "Augmented"


class SeventhQuality(Enum):
    NONE = "None"
    MAJOR7 = "Major7"
    MINOR7 = "Minor7"
    DOMINANT7 = "Dominant7"
    HALF_DIMINISHED7 = "HalfDiminished7"
    DIMINISHED7 = "Diminished7"


class ChordExtension(Enum):
    NONE = "None"
    SEVENTH = "Seventh"


class ChordInversion(Enum):
    ROOT = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3


class ChordToneRole(Enum):
    ROOT = 0
    THIRD = 1
    FIFTH = 2
    SEVENTH = 3


class TensionKind(Enum):
    """Requested or detected upper tension."""
    FLAT_NINE = "b9"
    NINE = "9"
    SHARP_NINE = "#9"
    ELEVEN = "11"
    SHARP_ELEVEN = "#11"
    THIRTEEN = "13"


def tension_semitones(kind: TensionKind) -> int:
    """Semitones above the root, measured upward (b9 = 13)."""
    if kind is TensionKind.FLAT_NINE:
        return 13
    elif kind is TensionKind.NINE:
        return 14
    elif kind is TensionKind.SHARP_NINE:
        return 15
    elif kind is TensionKind.ELEVEN:
        return 17
    elif kind is TensionKind.SHARP_ELEVEN:
        return 18
    elif kind is TensionKind.THIRTEEN:
        return 21
    raise ValueError(f"Unhandled tension: {kind!r}")


# ---------------------------------------------------------------------------
# Interval rules
# ---------------------------------------------------------------------------

def third_interval(quality: ChordQuality) -> int:
    if quality is ChordQuality.MAJOR or quality is ChordQuality.AUGMENTED:
        return 4
    elif quality is ChordQuality.MINOR or quality is ChordQuality.DIMINISHED:
        return 3
    raise ValueError(f"Unhandled chord quality: {quality!r}")


def fifth_interval(quality: ChordQuality) -> int:
    if quality is ChordQuality.MAJOR or quality is ChordQuality.MINOR:
        return 7
    elif quality is ChordQuality.DIMINISHED:
        return 6
    elif quality is ChordQuality.AUGMENTED:
        return 8
    raise ValueError(f"Unhandled chord quality: {quality!r}")


def seventh_interval(seventh: SeventhQuality) -> Optional[int]:
    """Semitones from root to the seventh, ``None`` for no seventh."""
    if seventh is SeventhQuality.NONE:
        return None
    elif seventh is SeventhQuality.MAJOR7:
        return 11
    elif seventh in (SeventhQuality.MINOR7, SeventhQuality.DOMINANT7,
                     SeventhQuality.HALF_DIMINISHED7):
        return 10
    elif seventh is SeventhQuality.DIMINISHED7:
        return 9
    raise ValueError(f"Unhandled seventh quality: {seventh!r}")


# ---------------------------------------------------------------------------
# Recipe / event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChordRecipe:
    """
    Immutable description of a chord relative to a key.

    Attributes:
        degree: Scale degree of the root, 1-7.
        quality: Triad quality.
        extension: ``SEVENTH`` when the chord carries a seventh.
        seventh_quality: Seventh type; ``NONE`` iff ``extension`` is ``NONE``.
        root_offset: Chromatic shift of the root in semitones (``-1`` for bVI).
        inversion: Which chord tone sits in the bass.
        tensions: Requested upper tensions (b9/9/#9, 11/#11, 13).
    """
    degree: int
    quality: ChordQuality = ChordQuality.MAJOR
    extension: ChordExtension = ChordExtension.NONE
    seventh_quality: SeventhQuality = SeventhQuality.NONE
    root_offset: int = 0
    inversion: ChordInversion = ChordInversion.ROOT
    tensions: Tuple[TensionKind, ...] = ()

    def __post_init__(self):
        if not 1 <= self.degree <= 7:
            raise ValueError(f"degree must be 1-7, got {self.degree}")
        has_ext = self.extension is ChordExtension.SEVENTH
        has_sq = self.seventh_quality is not SeventhQuality.NONE
        if has_ext != has_sq:
            raise ValueError(
                "seventh_quality must be NONE exactly when extension is NONE"
            )
        if self.inversion is ChordInversion.THIRD and not has_ext:
            raise ValueError("third inversion requires a seventh")

    @property
    def has_seventh(self) -> bool:
        return self.extension is ChordExtension.SEVENTH

    @property
    def is_plain_diminished_triad(self) -> bool:
        return self.quality is ChordQuality.DIMINISHED and not self.has_seventh

    def with_inversion(self, inversion: ChordInversion) -> "ChordRecipe":
        return replace(self, inversion=inversion)


def root_pitch_class(key: Key, recipe: ChordRecipe) -> int:
    pc = degree_pitch_class(key, recipe.degree)
    return (pc + recipe.root_offset) % 12


def chord_tone_pitch_classes(key: Key, recipe: ChordRecipe) -> List[int]:
    """
    Ordered chord-tone pitch classes: root, third, fifth, then seventh.

    The order never depends on inversion; index 0 is always the root.
    """
    root = root_pitch_class(key, recipe)
    tones = [
        root,
        (root + third_interval(recipe.quality)) % 12,
        (root + fifth_interval(recipe.quality)) % 12,
    ]
    seventh = seventh_interval(recipe.seventh_quality)
    if seventh is not None:
        tones.append((root + seventh) % 12)
    return tones


def bass_pitch_class(key: Key, recipe: ChordRecipe) -> int:
    """Pitch class the inversion puts in the bass."""
    tones = chord_tone_pitch_classes(key, recipe)
    return tones[recipe.inversion.value]


def build_chord_pitches(key: Key, recipe: ChordRecipe, octave: int = 4) -> List[int]:
    """
    Realize the chord at a reference octave as ascending MIDI notes.

    Root-position tones are stacked upward from the root in *octave*
    (C4 = 60); each inversion step lifts the lowest note by an octave.
    """
    root_midi = (octave + 1) * 12 + root_pitch_class(key, recipe)
    notes = [
        root_midi,
        root_midi + third_interval(recipe.quality),
        root_midi + fifth_interval(recipe.quality),
    ]
    seventh = seventh_interval(recipe.seventh_quality)
    if seventh is not None:
        notes.append(root_midi + seventh)
    for _ in range(recipe.inversion.value):
        notes.append(notes.pop(0) + 12)
    return notes


def is_augmented_fifth(recipe: ChordRecipe, role: ChordToneRole) -> bool:
    """True when *role* is the raised fifth of an augmented chord."""
    return role is ChordToneRole.FIFTH and recipe.quality is ChordQuality.AUGMENTED


@dataclass(frozen=True)
class ChordEvent:
    """
    One chord placed in time, with its optional melody lock.

    Attributes:
        key: Key the recipe is relative to.
        recipe: Chord recipe.
        time_beats: Onset in quarter-note beats.
        melody_midi: Exact MIDI pitch the soprano must take, if any.
        label: Text the chord was entered as (``"V7"``, ``"G7"``).
    """
    key: Key
    recipe: ChordRecipe
    time_beats: float = 0.0
    melody_midi: Optional[int] = None
    label: str = ""

    def tone_pitch_classes(self) -> List[int]:
        return chord_tone_pitch_classes(self.key, self.recipe)


# ---------------------------------------------------------------------------
# Roman numeral parser
# ---------------------------------------------------------------------------

_NUMERALS = {"I": 1, "II": 2, "III": 3, "IV": 4, "V": 5, "VI": 6, "VII": 7}
_NUMERAL_RE = re.compile(r"^(VII|VI|V|IV|III|II|I|vii|vi|v|iv|iii|ii|i)(.*)$")
_INVERSION_SUFFIXES = {
    "/3rd": ChordInversion.FIRST,
    "/5th": ChordInversion.SECOND,
    "/7th": ChordInversion.THIRD,
}


def _split_inversion(text: str) -> Tuple[str, ChordInversion]:
    low = text.lower()
    for suffix, inversion in _INVERSION_SUFFIXES.items():
        if low.endswith(suffix):
            return text[: -len(suffix)], inversion
    return text, ChordInversion.ROOT


def _signed_offset(delta: int) -> int:
    """Normalise a semitone delta into -6..5."""
    delta %= 12
    return delta - 12 if delta > 5 else delta


def parse_roman_numeral(key: Key, text: str) -> ChordRecipe:
    """
    Parse a Roman numeral relative to *key*.

    Accepts a leading ``b``/``#`` (chromatic root) or ``n`` (degree taken
    from the parallel Ionian), numeral case for major/minor, quality
    suffixes ``maj7``, ``hdim7``/``ø7``/``m7b5``, ``dim7``/``o7``/``°7``,
    ``m7``, ``7``, ``dim``/``o``/``°``, ``aug``/``+`` and an inversion
    suffix ``/3rd``, ``/5th`` or ``/7th``.

    Raises:
        ParseFailure: If the text is not a recognised numeral.
    """
    source = text
    s = text.strip()
    if not s:
        raise ParseFailure(source, "empty numeral")

    offset = 0
    natural = False
    while s and s[0] in "b#♭♯n":
        if s[0] in "b♭":
            offset -= 1
        elif s[0] in "#♯":
            offset += 1
        else:
            natural = True
        s = s[1:]

    s, inversion = _split_inversion(s)
    match = _NUMERAL_RE.match(s)
    if not match:
        raise ParseFailure(source, "no Roman numeral")
    numeral, suffix = match.groups()
    degree = _NUMERALS[numeral.upper()]
    upper = numeral.isupper()

    if natural:
        ionian = Key(key.tonic_pc, ScaleMode.IONIAN)
        offset += _signed_offset(
            degree_pitch_class(ionian, degree) - degree_pitch_class(key, degree)
        )

    quality = ChordQuality.MAJOR if upper else ChordQuality.MINOR
    seventh = SeventhQuality.NONE
    suffix = suffix.strip()
    low = suffix.lower()

    if low in ("maj7", "δ7", "δ") or suffix == "M7":
        seventh = SeventhQuality.MAJOR7
    elif low in ("hdim7", "ø7", "ø", "m7b5"):
        seventh = SeventhQuality.HALF_DIMINISHED7
    elif low in ("dim7", "o7", "°7"):
        seventh = SeventhQuality.DIMINISHED7
    elif low == "m7":
        quality = ChordQuality.MINOR
        seventh = SeventhQuality.MINOR7
    elif low == "7":
        seventh = SeventhQuality.DOMINANT7 if upper else SeventhQuality.MINOR7
    elif low in ("dim", "o", "°"):
        quality = ChordQuality.DIMINISHED
    elif low in ("aug", "+"):
        quality = ChordQuality.AUGMENTED
    elif low in ("aug7", "+7"):
        quality = ChordQuality.AUGMENTED
        seventh = SeventhQuality.DOMINANT7
    elif low:
        raise ParseFailure(source, f"unknown suffix {suffix!r}")

    if seventh in (SeventhQuality.DIMINISHED7, SeventhQuality.HALF_DIMINISHED7):
        quality = ChordQuality.DIMINISHED
    elif seventh is SeventhQuality.MAJOR7 and not upper:
        quality = ChordQuality.MINOR

    extension = (ChordExtension.NONE if seventh is SeventhQuality.NONE
                 else ChordExtension.SEVENTH)
    try:
        return ChordRecipe(
            degree=degree,
            quality=quality,
            extension=extension,
            seventh_quality=seventh,
            root_offset=offset,
            inversion=inversion,
        )
    except ValueError as e:
        raise ParseFailure(source, str(e))


# ---------------------------------------------------------------------------
# Chord symbol parser
# ---------------------------------------------------------------------------

_SYMBOL_RE = re.compile(r"^([A-G])([#b♯♭]?)(.*?)(?:/([A-G][#b♯♭]?))?$")
_TENSION_RE = re.compile(r"^\(?(add)?([b#♭♯]?)(9|11|13)\)?")


def _parse_tensions(text: str, source: str) -> List[TensionKind]:
    """Consume trailing tension tokens such as ``b9``, ``(#11)``, ``add9``."""
    kinds: List[TensionKind] = []
    rest = text
    while rest:
        m = _TENSION_RE.match(rest)
        if not m:
            raise ParseFailure(source, f"unknown chord suffix {rest!r}")
        _, acc, number = m.groups()
        acc = {"♭": "b", "♯": "#"}.get(acc, acc)
        name = f"{acc}{number}"
        try:
            kind = TensionKind(name)
        except ValueError:
            raise ParseFailure(source, f"unsupported tension {name!r}")
        if kind not in kinds:
            kinds.append(kind)
        rest = rest[m.end():]
    return kinds


def _split_symbol_quality(suffix: str, source: str):
    """Return (quality, seventh, remaining tension text)."""
    s = suffix
    for prefix in ("m7b5", "min7b5", "ø7", "ø"):
        if s.startswith(prefix):
            return ChordQuality.DIMINISHED, SeventhQuality.HALF_DIMINISHED7, s[len(prefix):]
    for prefix in ("dim7", "°7", "o7"):
        if s.startswith(prefix):
            return ChordQuality.DIMINISHED, SeventhQuality.DIMINISHED7, s[len(prefix):]
    for prefix in ("dim", "°", "o"):
        if s.startswith(prefix):
            return ChordQuality.DIMINISHED, SeventhQuality.NONE, s[len(prefix):]
    for prefix in ("aug7", "+7"):
        if s.startswith(prefix):
            return ChordQuality.AUGMENTED, SeventhQuality.DOMINANT7, s[len(prefix):]
    for prefix in ("aug", "+"):
        if s.startswith(prefix):
            return ChordQuality.AUGMENTED, SeventhQuality.NONE, s[len(prefix):]
    for prefix in ("mMaj7", "mmaj7", "mM7", "minmaj7"):
        if s.startswith(prefix):
            return ChordQuality.MINOR, SeventhQuality.MAJOR7, s[len(prefix):]
    for prefix in ("maj", "Maj", "M", "Δ"):
        if s.startswith(prefix):
            rest = s[len(prefix):]
            if rest.startswith("7"):
                return ChordQuality.MAJOR, SeventhQuality.MAJOR7, rest[1:]
            if rest[:1].isdigit():
                return ChordQuality.MAJOR, SeventhQuality.MAJOR7, rest
            return ChordQuality.MAJOR, SeventhQuality.NONE, rest
    if s.startswith("sus"):
        raise ParseFailure(source, "suspended chords are not supported")
    for prefix in ("min", "m", "-"):
        if s.startswith(prefix):
            rest = s[len(prefix):]
            if rest.startswith("7"):
                return ChordQuality.MINOR, SeventhQuality.MINOR7, rest[1:]
            if rest[:1].isdigit():
                return ChordQuality.MINOR, SeventhQuality.MINOR7, rest
            return ChordQuality.MINOR, SeventhQuality.NONE, rest
    if s.startswith("7"):
        return ChordQuality.MAJOR, SeventhQuality.DOMINANT7, s[1:]
    if s[:1].isdigit():
        # C9, C13: dominant seventh implied
        return ChordQuality.MAJOR, SeventhQuality.DOMINANT7, s
    return ChordQuality.MAJOR, SeventhQuality.NONE, s


def _locate_degree(key: Key, root_pc: int, accidental: str, source: str) -> Tuple[int, int]:
    """Map an absolute root to (degree, chromatic offset) in *key*."""
    scale = key.scale_pitch_classes()
    if root_pc in scale:
        return scale.index(root_pc) + 1, 0
    # Flats spell the root as a lowered degree, sharps and naturals as raised
    order = (-1, 1) if accidental in ("b", "♭") else (1, -1)
    for offset in order:
        base = (root_pc - offset) % 12
        if base in scale:
            return scale.index(base) + 1, offset
    raise ParseFailure(source, "root not within a semitone of the scale")


def parse_chord_symbol(key: Key, text: str) -> ChordRecipe:
    """
    Parse an absolute chord symbol into a recipe relative to *key*.

    Handles triads (``C``, ``Cm``, ``Cdim``, ``Caug``), sevenths (``C7``,
    ``Cmaj7``, ``Cm7``, ``Cm7b5``, ``Cdim7``, ``CmMaj7``, ``Caug7``),
    tension suffixes (``B7b9``, ``C7#9``, ``Cadd9``, ``C9``) and slash
    basses that name a chord tone (``C/E``).

    Raises:
        ParseFailure: If the symbol cannot be interpreted.
    """
    source = text
    match = _SYMBOL_RE.match(text.strip())
    if not match:
        raise ParseFailure(source, "not a chord symbol")
    letter, accidental, suffix, slash = match.groups()
    root_pc = note_name_to_pc(letter + accidental)

    quality, seventh, tension_text = _split_symbol_quality(suffix, source)
    tensions = _parse_tensions(tension_text, source)
    extension = (ChordExtension.NONE if seventh is SeventhQuality.NONE
                 else ChordExtension.SEVENTH)
    degree, offset = _locate_degree(key, root_pc, accidental, source)

    recipe = ChordRecipe(
        degree=degree,
        quality=quality,
        extension=extension,
        seventh_quality=seventh,
        root_offset=offset,
        tensions=tuple(tensions),
    )

    if slash:
        bass_pc = note_name_to_pc(slash)
        tones = chord_tone_pitch_classes(key, recipe)
        if bass_pc not in tones:
            raise ParseFailure(source, f"slash bass {slash} is not a chord tone")
        recipe = recipe.with_inversion(ChordInversion(tones.index(bass_pc)))
    return recipe


def parse_chord_identifier(key: Key, text: str) -> ChordRecipe:
    """
    Parse either an absolute chord symbol or a Roman numeral.

    Tokens starting with an uppercase note letter (A-G) are chord symbols;
    everything else is read as a Roman numeral.

    Raises:
        ParseFailure: If neither grammar accepts the text.
    """
    token = text.strip()
    if not token:
        raise ParseFailure(text, "empty chord token")
    if token[0] in "ABCDEFG":
        recipe = parse_chord_symbol(key, token)
    else:
        recipe = parse_roman_numeral(key, token)
    logger.debug("Parsed %r in %s -> %s", token, key, recipe)
    return recipe


# ---------------------------------------------------------------------------
# Display names
# ---------------------------------------------------------------------------

_DEGREE_NUMERALS = ["I", "II", "III", "IV", "V", "VI", "VII"]


def _tension_suffix(recipe: ChordRecipe) -> str:
    parts = []
    for kind in recipe.tensions:
        text = kind.value
        if text[0] in "b#":
            parts.append(text)
        elif recipe.has_seventh:
            parts.append(f"({text})")
        else:
            parts.append(f"add{text}")
    return "".join(parts)


def recipe_to_roman(key: Key, recipe: ChordRecipe) -> str:
    """Roman numeral label, e.g. ``V7``, ``bVI``, ``vii°``, ``iiø7``."""
    numeral = _DEGREE_NUMERALS[recipe.degree - 1]
    if recipe.quality in (ChordQuality.MINOR, ChordQuality.DIMINISHED):
        numeral = numeral.lower()
    prefix = ""
    if recipe.root_offset < 0:
        prefix = "b" * -recipe.root_offset
    elif recipe.root_offset > 0:
        prefix = "#" * recipe.root_offset

    sq = recipe.seventh_quality
    if sq is SeventhQuality.NONE:
        if recipe.quality is ChordQuality.DIMINISHED:
            suffix = "°"
        elif recipe.quality is ChordQuality.AUGMENTED:
            suffix = "+"
        else:
            suffix = ""
    elif sq is SeventhQuality.MAJOR7:
        suffix = "maj7"
    elif sq is SeventhQuality.HALF_DIMINISHED7:
        suffix = "ø7"
    elif sq is SeventhQuality.DIMINISHED7:
        suffix = "°7"
    elif sq in (SeventhQuality.DOMINANT7, SeventhQuality.MINOR7):
        suffix = "+7" if recipe.quality is ChordQuality.AUGMENTED else "7"
    else:
        raise ValueError(f"Unhandled seventh quality: {sq!r}")

    inversion = {
        ChordInversion.ROOT: "",
        ChordInversion.FIRST: "/3rd",
        ChordInversion.SECOND: "/5th",
        ChordInversion.THIRD: "/7th",
    }[recipe.inversion]
    return f"{prefix}{numeral}{suffix}{_tension_suffix(recipe)}{inversion}"


def _root_name(key: Key, recipe: ChordRecipe, pc: int) -> str:
    if recipe.root_offset < 0:
        return FLAT_NAMES[pc]
    if recipe.root_offset > 0:
        return SHARP_NAMES[pc]
    return spell_pitch_name(pc, key)


def recipe_to_symbol(key: Key, recipe: ChordRecipe) -> str:
    """Absolute chord symbol, e.g. ``G7``, ``Abmaj7``, ``Bdim``, ``C/E``."""
    root = root_pitch_class(key, recipe)
    name = _root_name(key, recipe, root)
    q, sq = recipe.quality, recipe.seventh_quality

    if sq is SeventhQuality.NONE:
        if q is ChordQuality.MAJOR:
            body = ""
        elif q is ChordQuality.MINOR:
            body = "m"
        elif q is ChordQuality.DIMINISHED:
            body = "dim"
        elif q is ChordQuality.AUGMENTED:
            body = "aug"
        else:
            raise ValueError(f"Unhandled chord quality: {q!r}")
    elif sq is SeventhQuality.DOMINANT7:
        body = "aug7" if q is ChordQuality.AUGMENTED else "7"
    elif sq is SeventhQuality.MAJOR7:
        body = "mMaj7" if q is ChordQuality.MINOR else "maj7"
    elif sq is SeventhQuality.MINOR7:
        body = "m7"
    elif sq is SeventhQuality.HALF_DIMINISHED7:
        body = "m7b5"
    elif sq is SeventhQuality.DIMINISHED7:
        body = "dim7"
    else:
        raise ValueError(f"Unhandled seventh quality: {sq!r}")

    bass = ""
    if recipe.inversion is not ChordInversion.ROOT:
        bass_pc = bass_pitch_class(key, recipe)
        bass = "/" + spell_pitch_name(bass_pc, key)
    return f"{name}{body}{_tension_suffix(recipe)}{bass}"
