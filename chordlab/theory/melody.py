"""
Melody analysis and melody-line parsing.

:func:`analyze_melody_event` maps a raw MIDI pitch to the nearest scale
degree of a key, reporting whether it is diatonic and by how many
semitones it deviates. :func:`parse_melody_line` turns text such as
``"E4 E4 C4:2"`` into :class:`MelodyEvent` objects.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..errors import MelodyParseFailure
from .keys import Key, degree_pitch_class, note_name_to_midi


class AccidentalHint(Enum):
    """How the user spelled an altered note; disambiguates chromatic intent."""
    NONE = "None"
    NATURAL = "Natural"
    SHARP = "Sharp"
    FLAT = "Flat"


@dataclass(frozen=True)
class MelodyEvent:
    """
    A melody note in beat time.

    Attributes:
        time_beats: Onset in quarter-note beats.
        duration_beats: Length in quarter-note beats.
        midi: MIDI pitch.
        accidental_hint: Spelling hint used for chromatic harmonization.
    """
    time_beats: float
    duration_beats: float
    midi: int
    accidental_hint: AccidentalHint = AccidentalHint.NONE


@dataclass(frozen=True)
class MelodyAnalysis:
    """
    Scale-degree reading of one melody note.

    Attributes:
        pitch_class: MIDI pitch modulo 12.
        degree: Nearest diatonic degree, 1-7.
        is_diatonic: True when the pitch sits exactly on ``degree``.
        semitone_offset: Signed deviation from the degree, -6..6.
        accidental_hint: Hint carried over from the event.
    """
    pitch_class: int
    degree: int
    is_diatonic: bool
    semitone_offset: int
    accidental_hint: AccidentalHint = AccidentalHint.NONE


def analyze_melody_event(event: MelodyEvent, key: Key) -> MelodyAnalysis:
    """Find the best-fit scale degree for *event* in *key*."""
    pc = event.midi % 12
    best_degree = 1
    best_diff: Optional[int] = None
    for degree in range(1, 8):
        diff = (pc - degree_pitch_class(key, degree)) % 12
        if diff > 6:
            diff -= 12
        if best_diff is None or abs(diff) < abs(best_diff):
            best_degree, best_diff = degree, diff
            if diff == 0:
                break
    return MelodyAnalysis(
        pitch_class=pc,
        degree=best_degree,
        is_diatonic=best_diff == 0,
        semitone_offset=best_diff,
        accidental_hint=event.accidental_hint,
    )


def _hint_for_token(note: str) -> AccidentalHint:
    body = note[1:]
    if any(c in body for c in "#♯"):
        return AccidentalHint.SHARP
    if any(c in body for c in "b♭"):
        return AccidentalHint.FLAT
    if "♮" in body or body[:1] == "n":
        return AccidentalHint.NATURAL
    return AccidentalHint.NONE


def parse_melody_line(text: str, default_beats: float = 1.0) -> List[MelodyEvent]:
    """
    Parse a whitespace-separated melody line.

    Tokens are note names with octave (``C4`` = 60), optionally followed
    by ``:beats`` for the duration. Notes are laid out back to back from
    beat 0.

    Raises:
        MelodyParseFailure: On the first token that is not a valid note.
    """
    events: List[MelodyEvent] = []
    time = 0.0
    for raw in text.split():
        note, _, dur_text = raw.partition(":")
        note = note.strip()
        beats = default_beats
        if dur_text:
            try:
                beats = float(dur_text)
            except ValueError:
                raise MelodyParseFailure(raw, text)
            if beats <= 0:
                raise MelodyParseFailure(raw, text)
        hint = _hint_for_token(note)
        if hint is AccidentalHint.NATURAL:
            note = note[0] + note[1:].replace("♮", "").lstrip("n")
        try:
            midi = note_name_to_midi(note)
        except ValueError:
            raise MelodyParseFailure(raw, text)
        events.append(MelodyEvent(time, beats, midi, hint))
        time += beats
    return events
