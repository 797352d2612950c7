"""
ChordLab

Melody harmonization and four-part (SATB) voice leading: chord parsing,
candidate selection, tone priorities, register-aware voicing with
tendency-tone resolution, and a regression oracle for the results.
"""

__version__ = "0.3.0"
__author__ = "ChordLab Team"

from .errors import (
    ChordLabError,
    ParseFailure,
    MelodyParseFailure,
    VoicingInfeasible,
    InvalidVoicingRequest,
    Ok,
    Failure,
    Result,
)
from .theory import (
    ScaleMode,
    Key,
    ChordQuality,
    SeventhQuality,
    ChordExtension,
    ChordInversion,
    ChordToneRole,
    TensionKind,
    ChordRecipe,
    ChordEvent,
    TonePriority,
    MelodyEvent,
    MelodyAnalysis,
    AccidentalHint,
    parse_chord_identifier,
    parse_melody_line,
    chord_tone_pitch_classes,
)
from .harmony import (
    ChordCandidate,
    HarmonyHeuristicSettings,
    HarmonizedChordStep,
    harmonize_melody,
    build_chord_events,
)
from .timeline import (
    TimelineSpec,
    ChordRegion,
    build_regions,
    regions_from_chord_events,
)
from .voicing import (
    VoicingEngine,
    VoicingSettings,
    VoicedChord,
    voice_lead_regions,
    DiagnosticsSink,
    NullSink,
    DiagnosticsCollector,
)
from .config_loader import ConfigLoader, ConfigLoadError, get_config_loader

__all__ = [
    # Errors
    'ChordLabError',
    'ParseFailure',
    'MelodyParseFailure',
    'VoicingInfeasible',
    'InvalidVoicingRequest',
    'Ok',
    'Failure',
    'Result',
    # Theory
    'ScaleMode',
    'Key',
    'ChordQuality',
    'SeventhQuality',
    'ChordExtension',
    'ChordInversion',
    'ChordToneRole',
    'TensionKind',
    'ChordRecipe',
    'ChordEvent',
    'TonePriority',
    'MelodyEvent',
    'MelodyAnalysis',
    'AccidentalHint',
    'parse_chord_identifier',
    'parse_melody_line',
    'chord_tone_pitch_classes',
    # Harmony
    'ChordCandidate',
    'HarmonyHeuristicSettings',
    'HarmonizedChordStep',
    'harmonize_melody',
    'build_chord_events',
    # Timeline
    'TimelineSpec',
    'ChordRegion',
    'build_regions',
    'regions_from_chord_events',
    # Voicing
    'VoicingEngine',
    'VoicingSettings',
    'VoicedChord',
    'voice_lead_regions',
    'DiagnosticsSink',
    'NullSink',
    'DiagnosticsCollector',
    # Config
    'ConfigLoader',
    'ConfigLoadError',
    'get_config_loader',
]
