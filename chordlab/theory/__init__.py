"""
Music theory primitives: keys and modes, chord recipes and parsing,
tone priorities, melody analysis and tension classification.
"""

from .keys import (
    ScaleMode,
    Key,
    degree_pitch_class,
    midi_for_degree,
    note_name_to_pc,
    note_name_to_midi,
    spell_pitch_name,
    midi_to_name,
    parse_mode,
)
from .chords import (
    ChordQuality,
    SeventhQuality,
    ChordExtension,
    ChordInversion,
    ChordToneRole,
    TensionKind,
    ChordRecipe,
    ChordEvent,
    chord_tone_pitch_classes,
    bass_pitch_class,
    build_chord_pitches,
    is_augmented_fifth,
    parse_roman_numeral,
    parse_chord_symbol,
    parse_chord_identifier,
    recipe_to_roman,
    recipe_to_symbol,
)
from .tone_priority import (
    TonePriority,
    priority,
    count_required_tones,
    required_pitch_classes,
)
from .melody import (
    AccidentalHint,
    MelodyEvent,
    MelodyAnalysis,
    analyze_melody_event,
    parse_melody_line,
)
from .tensions import (
    TensionClassification,
    ChordTension,
    DetectedTensions,
    detect_ninth_tensions,
    detect_eleventh_tensions,
    detect_tensions,
)

__all__ = [
    'ScaleMode',
    'Key',
    'degree_pitch_class',
    'midi_for_degree',
    'note_name_to_pc',
    'note_name_to_midi',
    'spell_pitch_name',
    'midi_to_name',
    'parse_mode',
    'ChordQuality',
    'SeventhQuality',
    'ChordExtension',
    'ChordInversion',
    'ChordToneRole',
    'TensionKind',
    'ChordRecipe',
    'ChordEvent',
    'chord_tone_pitch_classes',
    'bass_pitch_class',
    'build_chord_pitches',
    'is_augmented_fifth',
    'parse_roman_numeral',
    'parse_chord_symbol',
    'parse_chord_identifier',
    'recipe_to_roman',
    'recipe_to_symbol',
    'TonePriority',
    'priority',
    'count_required_tones',
    'required_pitch_classes',
    'AccidentalHint',
    'MelodyEvent',
    'MelodyAnalysis',
    'analyze_melody_event',
    'parse_melody_line',
    'TensionClassification',
    'ChordTension',
    'DetectedTensions',
    'detect_ninth_tensions',
    'detect_eleventh_tensions',
    'detect_tensions',
]
