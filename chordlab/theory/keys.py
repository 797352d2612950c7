"""
Keys, modes and pitch naming.

Scale primitives the rest of the pipeline builds on: a :class:`Key` is a
tonic pitch class plus one of the seven diatonic modes, and maps 0-based
scale-degree indices to pitch classes. Note-name parsing and key-aware
spelling live here too since both need the same letter tables.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple
import logging
import re

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_LETTER_PCS: Dict[str, int] = {
    "C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11,
}

_ACCIDENTALS: Dict[str, int] = {
    "#": 1, "♯": 1, "b": -1, "♭": -1,
}

SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]
# Neutral keys (C major and its modes) take the common mixed spelling
NEUTRAL_NAMES = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]

# Relative-major tonics that are written with flats
_FLAT_MAJOR_TONICS = {5, 10, 3, 8, 1, 6}

_NOTE_RE = re.compile(r"^([A-Ga-g])([#♯b♭]*)(-?\d+)$")


class ScaleMode(Enum):
    """The seven diatonic modes."""
    IONIAN = "Ionian"
    DORIAN = "Dorian"
    PHRYGIAN = "Phrygian"
    LYDIAN = "Lydian"
    MIXOLYDIAN = "Mixolydian"
    AEOLIAN = "Aeolian"
    LOCRIAN = "Locrian"


def mode_steps(mode: ScaleMode) -> Tuple[int, ...]:
    """Whole/half-step pattern of *mode*, seven steps summing to 12."""
    if mode is ScaleMode.IONIAN:
        return (2, 2, 1, 2, 2, 2, 1)
    elif mode is ScaleMode.DORIAN:
        return (2, 1, 2, 2, 2, 1, 2)
    elif mode is ScaleMode.PHRYGIAN:
        return (1, 2, 2, 2, 1, 2, 2)
    elif mode is ScaleMode.LYDIAN:
        return (2, 2, 2, 1, 2, 2, 1)
    elif mode is ScaleMode.MIXOLYDIAN:
        return (2, 2, 1, 2, 2, 1, 2)
    elif mode is ScaleMode.AEOLIAN:
        return (2, 1, 2, 2, 1, 2, 2)
    elif mode is ScaleMode.LOCRIAN:
        return (1, 2, 2, 1, 2, 2, 2)
    raise ValueError(f"Unhandled mode: {mode!r}")


def parse_mode(name: str) -> ScaleMode:
    """Resolve a mode name (``"ionian"``, ``"major"``, ``"minor"``...)."""
    low = name.strip().lower()
    aliases = {"major": ScaleMode.IONIAN, "minor": ScaleMode.AEOLIAN}
    if low in aliases:
        return aliases[low]
    for mode in ScaleMode:
        if mode.value.lower() == low:
            return mode
    raise ValueError(f"Unknown mode: {name!r}")


# ---------------------------------------------------------------------------
# Key
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Key:
    """
    Tonic pitch class plus diatonic mode.

    Attributes:
        tonic_pc: Tonic pitch class, 0-11 (0 = C).
        mode: Diatonic mode.
    """
    tonic_pc: int = 0
    mode: ScaleMode = ScaleMode.IONIAN

    def __post_init__(self):
        if not 0 <= self.tonic_pc <= 11:
            raise ValueError(f"tonic_pc must be 0-11, got {self.tonic_pc}")

    @property
    def steps(self) -> Tuple[int, ...]:
        return mode_steps(self.mode)

    def scale_pitch_classes(self) -> List[int]:
        """Pitch classes of degrees 1..7 in order."""
        pcs = []
        pc = self.tonic_pc
        for step in self.steps:
            pcs.append(pc)
            pc = (pc + step) % 12
        return pcs

    def degree_pc(self, degree_index: int) -> int:
        """Pitch class of the 0-based degree index, or -1 when out of range."""
        if degree_index < 0 or degree_index > 6:
            return -1
        return self.scale_pitch_classes()[degree_index]

    def contains(self, pc: int) -> bool:
        return pc % 12 in self.scale_pitch_classes()

    @property
    def relative_major_pc(self) -> int:
        """Tonic of the Ionian mode sharing this key's pitch set."""
        return (self.tonic_pc - _mode_offset(self.mode)) % 12

    @property
    def prefers_flats(self) -> bool:
        return self.relative_major_pc in _FLAT_MAJOR_TONICS

    @property
    def prefers_sharps(self) -> bool:
        return self.relative_major_pc != 0 and self.relative_major_pc not in _FLAT_MAJOR_TONICS

    @property
    def name(self) -> str:
        return f"{spell_pitch_name(self.tonic_pc, self)} {self.mode.value}"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_name(cls, tonic: str, mode: str = "Ionian") -> "Key":
        """Build a key from a tonic name such as ``"Eb"`` and a mode name."""
        return cls(note_name_to_pc(tonic), parse_mode(mode))


def _mode_offset(mode: ScaleMode) -> int:
    """Semitones from the relative Ionian tonic up to the mode's tonic."""
    ionian = mode_steps(ScaleMode.IONIAN)
    index = list(ScaleMode).index(mode)
    return sum(ionian[:index])


def degree_pitch_class(key: Key, degree: int) -> int:
    """Pitch class of 1-based *degree* (1..7) in *key*, -1 if out of range."""
    return key.degree_pc(degree - 1)


def midi_for_degree(key: Key, degree: int, octave: int) -> int:
    """MIDI note of 1-based *degree* in the given octave (C4 = 60)."""
    pc = degree_pitch_class(key, degree)
    if pc < 0:
        raise ValueError(f"Degree out of range: {degree}")
    return (octave + 1) * 12 + pc


# ---------------------------------------------------------------------------
# Note names
# ---------------------------------------------------------------------------

def note_name_to_pc(name: str) -> int:
    """Convert a note name without octave (e.g. ``"Eb"``) to a pitch class."""
    text = name.strip()
    if not text or text[0].upper() not in _LETTER_PCS:
        raise ValueError(f"Unknown note name: {name!r}")
    pc = _LETTER_PCS[text[0].upper()]
    for ch in text[1:]:
        if ch not in _ACCIDENTALS:
            raise ValueError(f"Unknown note name: {name!r}")
        pc += _ACCIDENTALS[ch]
    return pc % 12


def note_name_to_midi(token: str) -> int:
    """
    Parse a note name with octave into a MIDI number.

    ``C4`` is 60, ``A4`` is 69. Accidentals may be ``#``, ``♯``, ``b``
    or ``♭`` and may repeat.

    Raises:
        ValueError: If the token is not a valid note or is outside 0-127.
    """
    match = _NOTE_RE.match(token.strip())
    if not match:
        raise ValueError(f"Invalid note name: {token!r}")
    letter, accidentals, octave = match.groups()
    semis = _LETTER_PCS[letter.upper()] + sum(_ACCIDENTALS[a] for a in accidentals)
    midi = (int(octave) + 1) * 12 + semis
    if not 0 <= midi <= 127:
        raise ValueError(f"Note out of MIDI range: {token!r}")
    return midi


def spell_pitch_name(pc: int, key: Key = None) -> str:
    """Name of pitch class *pc* using the key's sharp/flat preference."""
    pc %= 12
    if key is None:
        return NEUTRAL_NAMES[pc]
    if key.prefers_flats:
        return FLAT_NAMES[pc]
    if key.prefers_sharps:
        return SHARP_NAMES[pc]
    return NEUTRAL_NAMES[pc]


def midi_to_name(midi: int, key: Key = None) -> str:
    """Display name of a MIDI note, e.g. ``60 -> "C4"``."""
    return f"{spell_pitch_name(midi % 12, key)}{midi // 12 - 1}"
