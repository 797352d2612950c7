"""
Four-voice realization of chord regions.

Usage:
    from chordlab.voicing import voice_lead_regions, DiagnosticsCollector

    sink = DiagnosticsCollector()
    result = voice_lead_regions(key, spec, regions, diagnostics=sink)
"""

from .diagnostics import (
    DiagSeverity,
    DiagCode,
    RegionDiagEvent,
    DiagnosticsSink,
    NullSink,
    DiagnosticsCollector,
)
from .coverage_audit import audit_voiced_chord
from .engine import (
    VoicingSettings,
    VoiceRanges,
    VoicedChord,
    VoicingEngine,
    voice_lead_regions,
)

__all__ = [
    'DiagSeverity',
    'DiagCode',
    'RegionDiagEvent',
    'DiagnosticsSink',
    'NullSink',
    'DiagnosticsCollector',
    'audit_voiced_chord',
    'VoicingSettings',
    'VoiceRanges',
    'VoicedChord',
    'VoicingEngine',
    'voice_lead_regions',
]
