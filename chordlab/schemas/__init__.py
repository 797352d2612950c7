"""
Snapshot Schema Package

Provides Pydantic models for validating harmonization and voicing
snapshots written to and read from JSON.

Usage:
    from chordlab.schemas import snapshot_from_voicing, export_snapshot

    snapshot = snapshot_from_voicing(key, voiced, "I IV V I")
    export_snapshot(snapshot, "out/cadence.json")
"""

from .snapshot_schema import (
    ChordStepSchema,
    HarmonizationSnapshot,
    VoicedRegionSchema,
    VoicedHarmonizationSnapshot,
    snapshot_from_steps,
    snapshot_from_voicing,
    export_snapshot,
    load_harmonization_snapshot,
    load_voiced_snapshot,
)

__all__ = [
    'ChordStepSchema',
    'HarmonizationSnapshot',
    'VoicedRegionSchema',
    'VoicedHarmonizationSnapshot',
    'snapshot_from_steps',
    'snapshot_from_voicing',
    'export_snapshot',
    'load_harmonization_snapshot',
    'load_voiced_snapshot',
]
