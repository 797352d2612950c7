"""
Pydantic schemas for harmonization and voicing snapshots.

Snapshots are the JSON form of a finished request: the harmonized
chord steps for a melody, or the SATB voicing of a progression. They
are validated on the way out and on the way back in.

Validation includes:
- MIDI note ranges (0-127)
- Pitch classes (0-11) and mode names
- Four-voice ordering (Bass <= Tenor <= Alto <= Soprano)
- Time signature validation (denominator must be power of 2)
"""
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..theory.keys import Key, ScaleMode


def _check_mode(v: str) -> str:
    valid = {m.value for m in ScaleMode}
    if v not in valid:
        raise ValueError(f"Unknown mode '{v}'. Expected one of: {', '.join(sorted(valid))}")
    return v


class ChordStepSchema(BaseModel):
    """One harmonized melody note."""

    time_beats: float = Field(..., ge=0.0, description="Onset in quarter-note beats")
    melody_midi: int = Field(..., ge=0, le=127, description="Melody MIDI note")
    degree: int = Field(..., ge=1, le=7, description="Best-fit scale degree")
    is_diatonic: bool = Field(default=True)
    candidates: List[str] = Field(default_factory=list, description="Candidate Roman numerals")
    chosen_roman: Optional[str] = Field(default=None, description="Chosen Roman numeral")
    chosen_symbol: Optional[str] = Field(default=None, description="Chosen chord symbol")
    reason: str = Field(default="")

    @model_validator(mode='after')
    def validate_chosen_pair(self) -> 'ChordStepSchema':
        """Roman numeral and symbol are both present or both absent."""
        if (self.chosen_roman is None) != (self.chosen_symbol is None):
            raise ValueError("chosen_roman and chosen_symbol must be set together")
        return self


class HarmonizationSnapshot(BaseModel):
    """Validated melody harmonization."""

    tonic_pc: int = Field(..., ge=0, le=11, description="Tonic pitch class")
    mode: str = Field(default="Ionian")
    key_name: str = Field(default="")
    steps: List[ChordStepSchema] = Field(default_factory=list)
    created_date: Optional[str] = Field(default=None)

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v: str) -> str:
        return _check_mode(v)

    @property
    def resolved_count(self) -> int:
        return sum(1 for s in self.steps if s.chosen_roman is not None)

    def to_key(self) -> Key:
        return Key(self.tonic_pc, ScaleMode(self.mode))


class VoicedRegionSchema(BaseModel):
    """One voiced chord region."""

    region_index: int = Field(..., ge=0)
    chord_symbol: str = Field(..., min_length=1)
    time_beats: float = Field(default=0.0, ge=0.0)
    voices: List[int] = Field(..., min_length=4, max_length=4, description="[B, T, A, S] MIDI")
    melody_midi: Optional[int] = Field(default=None, ge=0, le=127)

    @field_validator('voices')
    @classmethod
    def validate_voices(cls, v: List[int]) -> List[int]:
        """Every voice is a MIDI note and no two voices cross."""
        for midi in v:
            if not 0 <= midi <= 127:
                raise ValueError(f"Voice pitch out of MIDI range: {midi}")
        if any(lower > upper for lower, upper in zip(v, v[1:])):
            raise ValueError(f"Voices cross: {v}")
        return v


class VoicedHarmonizationSnapshot(BaseModel):
    """Validated SATB voicing of a progression."""

    tonic_pc: int = Field(..., ge=0, le=11)
    mode: str = Field(default="Ionian")
    key_name: str = Field(default="")
    progression: str = Field(default="")
    melody: Optional[str] = Field(default=None)
    ticks_per_quarter: int = Field(default=4, ge=1)
    tempo_bpm: float = Field(default=100.0, ge=20.0, le=300.0)
    time_sig_num: int = Field(default=4, ge=1, le=32)
    time_sig_denom: int = Field(default=4, ge=1, le=32)
    regions: List[VoicedRegionSchema] = Field(default_factory=list)
    created_date: Optional[str] = Field(default=None)

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v: str) -> str:
        return _check_mode(v)

    @field_validator('time_sig_denom')
    @classmethod
    def validate_time_sig_denom(cls, v: int) -> int:
        """Time signature denominator must be power of 2."""
        if v not in {1, 2, 4, 8, 16, 32}:
            raise ValueError(f"Time signature denominator must be power of 2, got {v}")
        return v

    @model_validator(mode='after')
    def validate_region_order(self) -> 'VoicedHarmonizationSnapshot':
        """Region indices follow sequence position."""
        for position, region in enumerate(self.regions):
            if region.region_index != position:
                raise ValueError(
                    f"Region at position {position} has index {region.region_index}"
                )
        return self

    def to_key(self) -> Key:
        return Key(self.tonic_pc, ScaleMode(self.mode))


# Conversion utilities

def snapshot_from_steps(steps: Sequence, key: Key) -> HarmonizationSnapshot:
    """Build a snapshot from :class:`HarmonizedChordStep` objects."""
    return HarmonizationSnapshot(
        tonic_pc=key.tonic_pc,
        mode=key.mode.value,
        key_name=key.name,
        created_date=datetime.now().isoformat(timespec="seconds"),
        steps=[
            ChordStepSchema(
                time_beats=step.melody.time_beats,
                melody_midi=step.melody.midi,
                degree=step.analysis.degree,
                is_diatonic=step.analysis.is_diatonic,
                candidates=[c.roman for c in step.candidates],
                chosen_roman=step.chosen.roman if step.chosen else None,
                chosen_symbol=step.chosen.symbol if step.chosen else None,
                reason=step.reason,
            )
            for step in steps
        ],
    )


def snapshot_from_voicing(
    key: Key,
    voiced: Sequence,
    progression: str = "",
    melody: Optional[str] = None,
    spec=None,
) -> VoicedHarmonizationSnapshot:
    """Build a snapshot from :class:`VoicedChord` objects."""
    extra = {}
    if spec is not None:
        extra = dict(
            ticks_per_quarter=spec.ticks_per_quarter,
            time_sig_num=spec.numerator,
            time_sig_denom=spec.denominator,
        )
        if spec.tempo_bpm is not None:
            extra["tempo_bpm"] = spec.tempo_bpm
    return VoicedHarmonizationSnapshot(
        tonic_pc=key.tonic_pc,
        mode=key.mode.value,
        key_name=key.name,
        progression=progression,
        melody=melody,
        created_date=datetime.now().isoformat(timespec="seconds"),
        regions=[
            VoicedRegionSchema(
                region_index=v.region_index,
                chord_symbol=v.chord_symbol,
                time_beats=v.time_beats,
                voices=list(v.voices_midi),
                melody_midi=v.melody_midi,
            )
            for v in voiced
        ],
        **extra,
    )


def export_snapshot(
    snapshot: Union[HarmonizationSnapshot, VoicedHarmonizationSnapshot],
    path: Union[str, Path],
) -> Path:
    """Write a snapshot as indented JSON and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_harmonization_snapshot(path: Union[str, Path]) -> HarmonizationSnapshot:
    """
    Raises:
        pydantic.ValidationError: If the file does not hold a valid snapshot
    """
    return HarmonizationSnapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))


def load_voiced_snapshot(path: Union[str, Path]) -> VoicedHarmonizationSnapshot:
    """
    Raises:
        pydantic.ValidationError: If the file does not hold a valid snapshot
    """
    return VoicedHarmonizationSnapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))
