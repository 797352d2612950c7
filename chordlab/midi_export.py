"""
MIDI export for voiced progressions.

Writes a Type 1 MIDI file with a meta track (tempo, time signature, key
signature) followed by one track per voice lane: Bass, Tenor, Alto,
Soprano. Each lane plays on its own channel so the parts can be
re-orchestrated in a DAW.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union
import logging

import mido
from mido import MidiFile, MidiTrack, Message, MetaMessage

from .theory.keys import Key, ScaleMode
from .voicing.engine import LANE_NAMES

logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480
DEFAULT_TEMPO_BPM = 100.0
DEFAULT_VELOCITY = 80

# mido accepts these spellings for key_signature
_MAJOR_KEY_NAMES = ["C", "Db", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]
_MINOR_KEY_NAMES = ["Cm", "C#m", "Dm", "Ebm", "Em", "Fm", "F#m", "Gm", "G#m", "Am", "Bbm", "Bm"]

NoteTuple = Tuple[int, int, int, int]  # (start_tick, end_tick, pitch, velocity)


def key_signature_name(key: Key) -> str:
    """Key-signature string for *key*; church modes use their relative major."""
    if key.mode is ScaleMode.AEOLIAN:
        return _MINOR_KEY_NAMES[key.tonic_pc]
    return _MAJOR_KEY_NAMES[key.relative_major_pc]


def _create_meta_track(key: Key, tempo_bpm: float, numerator: int, denominator: int,
                       total_ticks: int) -> MidiTrack:
    """Create track 0 with tempo, time and key signature."""
    track = MidiTrack()
    track.append(MetaMessage('track_name', name='Meta', time=0))
    track.append(MetaMessage(
        'time_signature',
        numerator=numerator,
        denominator=denominator,
        clocks_per_click=24,
        notated_32nd_notes_per_beat=8,
        time=0
    ))
    track.append(MetaMessage('set_tempo', tempo=mido.bpm2tempo(tempo_bpm), time=0))
    track.append(MetaMessage('key_signature', key=key_signature_name(key), time=0))
    track.append(MetaMessage('end_of_track', time=total_ticks))
    return track


def _notes_to_track(notes: List[NoteTuple], track: MidiTrack, channel: int) -> None:
    """
    Convert note tuples to MIDI track messages.

    Handles delta time calculation and proper note-off ordering.
    """
    if not notes:
        track.append(MetaMessage('end_of_track', time=0))
        return

    events = []
    for start, end, pitch, velocity in notes:
        events.append(('note_on', start, pitch, velocity))
        events.append(('note_off', end, pitch, 0))

    # Sort by time, with note-offs before note-ons at same time
    events.sort(key=lambda e: (e[1], 0 if e[0] == 'note_off' else 1))

    prev_time = 0
    for event_type, abs_time, pitch, velocity in events:
        track.append(Message(
            event_type,
            note=pitch,
            velocity=velocity,
            channel=channel,
            time=abs_time - prev_time
        ))
        prev_time = abs_time

    track.append(MetaMessage('end_of_track', time=0))


def voicings_to_midi(
    voiced: Sequence,
    key: Key,
    tempo_bpm: Optional[float] = None,
    time_signature: Tuple[int, int] = (4, 4),
    velocity: int = DEFAULT_VELOCITY,
) -> MidiFile:
    """
    Render voiced chords as a four-lane MIDI file.

    Args:
        voiced: :class:`VoicedChord` sequence.
        key: Key written to the key-signature event.
        tempo_bpm: Tempo; defaults to 100 BPM.
        time_signature: (numerator, denominator).
        velocity: Note-on velocity for every note.

    Returns:
        mido.MidiFile ready to save
    """
    tempo_bpm = tempo_bpm or DEFAULT_TEMPO_BPM
    mid = MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)

    lanes: List[List[NoteTuple]] = [[] for _ in LANE_NAMES]
    total_ticks = 0
    for chord in voiced:
        start = int(round(chord.time_beats * TICKS_PER_BEAT))
        end = start + max(1, int(round(chord.duration_beats * TICKS_PER_BEAT)))
        total_ticks = max(total_ticks, end)
        for lane, pitch in enumerate(chord.voices_midi):
            notes = lanes[lane]
            # Tied repeat: extend instead of re-striking
            if notes and notes[-1][2] == pitch and notes[-1][1] == start:
                notes[-1] = (notes[-1][0], end, pitch, velocity)
            else:
                notes.append((start, end, pitch, velocity))

    numerator, denominator = time_signature
    mid.tracks.append(_create_meta_track(key, tempo_bpm, numerator, denominator, total_ticks))

    for channel, (name, notes) in enumerate(zip(LANE_NAMES, lanes)):
        track = MidiTrack()
        track.append(MetaMessage('track_name', name=name, time=0))
        track.append(Message('program_change', program=0, channel=channel, time=0))
        _notes_to_track(notes, track, channel)
        mid.tracks.append(track)

    logger.debug("Rendered %d chords to %d tracks", len(voiced), len(mid.tracks))
    return mid


def save_voicings_midi(
    voiced: Sequence,
    key: Key,
    path: Union[str, Path],
    spec=None,
    velocity: int = DEFAULT_VELOCITY,
) -> Path:
    """Render and save; tempo and meter come from *spec* when given."""
    tempo = None
    time_signature = (4, 4)
    if spec is not None:
        tempo = spec.tempo_bpm
        time_signature = (spec.numerator, spec.denominator)
    mid = voicings_to_midi(voiced, key, tempo, time_signature, velocity)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    mid.save(str(path))
    logger.info("Saved MIDI to %s", path)
    return path
