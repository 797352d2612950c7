"""Melody harmonization: candidate generation and chord selection."""

from .harmonizer import (
    ChordCandidate,
    HarmonyHeuristicSettings,
    HarmonizedChordStep,
    generate_candidates,
    harmonize_melody,
    build_chord_events,
)

__all__ = [
    'ChordCandidate',
    'HarmonyHeuristicSettings',
    'HarmonizedChordStep',
    'generate_candidates',
    'harmonize_melody',
    'build_chord_events',
]
