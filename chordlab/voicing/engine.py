"""
Voice-Realization Engine - four-voice (SATB) voicing of chord regions

Assigns Bass/Tenor/Alto/Soprano pitches to every chord region so that
required chord tones are covered, a supplied melody is taken exactly by
the soprano, tendency tones resolve into the next region in the same
voice, and motion between regions stays small.

Core capabilities:
    - Per-region constraint solve over every legal pitch combination
      (numpy grid, lexicographic cost ordering)
    - Tendency pass: chordal sevenths fall by step, augmented fifths rise
    - Continuity pass re-solving each region against its final predecessor
    - Region diagnostics through an injected sink

Voice lanes are positional and persist across the progression:
lane 0 is always Bass, lane 1 Tenor, lane 2 Alto, lane 3 Soprano.

Usage:
    from chordlab.voicing.engine import VoicingEngine

    engine = VoicingEngine()
    voiced = engine.voice_regions(regions)
    print([v.voices_midi for v in voiced])
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple
import itertools
import logging
import os

import numpy as np

from ..errors import Failure, InvalidVoicingRequest, Ok, Result, VoicingInfeasible
from ..theory.chords import (
    ChordQuality,
    bass_pitch_class,
    recipe_to_symbol,
)
from ..theory.keys import Key, midi_to_name
from ..theory.tone_priority import required_pitch_classes
from .coverage_audit import audit_voiced_chord
from .diagnostics import DiagCode, DiagSeverity, DiagnosticsSink, NullSink, RegionDiagEvent

logger = logging.getLogger(__name__)

BASS, TENOR, ALTO, SOPRANO = range(4)
LANE_NAMES = ("Bass", "Tenor", "Alto", "Soprano")
VOICE_COUNT = 4


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass
class VoicingSettings:
    """
    Register placement and cost weights.

    Attributes:
        root_octave: Octave the upper voices centre on (C4 = octave 4).
        bass_octave: Octave the bass centres on.
        upper_min: Lowest MIDI note for tenor, alto and soprano.
        upper_max: Highest MIDI note for tenor, alto and soprano.
        max_soprano_alto: Widest comfortable soprano-alto gap.
        max_alto_tenor: Widest comfortable alto-tenor gap.
        max_tenor_bass: Widest comfortable tenor-bass gap.
        doubling_weights: Cost per extra copy of root/third/fifth/seventh.
        altered_fifth_doubling: Cost per extra copy of an augmented fifth.
        melody_doubling: Cost per inner voice doubling the melody note.
    """
    root_octave: int = 4
    bass_octave: int = 3
    upper_min: int = 48
    upper_max: int = 84
    max_soprano_alto: int = 12
    max_alto_tenor: int = 12
    max_tenor_bass: int = 24
    doubling_weights: Tuple[int, int, int, int] = (0, 2, 1, 5)
    altered_fifth_doubling: int = 5
    melody_doubling: int = 4

    def __post_init__(self):
        if self.upper_min > self.upper_max:
            raise InvalidVoicingRequest(
                f"upper_min {self.upper_min} exceeds upper_max {self.upper_max}"
            )
        self.doubling_weights = tuple(self.doubling_weights)
        if len(self.doubling_weights) != 4:
            raise InvalidVoicingRequest("doubling_weights needs four entries")

    @classmethod
    def from_dict(cls, data: Dict) -> "VoicingSettings":
        registers = data.get("registers", {})
        spacing = data.get("spacing", {})
        doubling = data.get("doubling", {})
        defaults = cls()
        return cls(
            root_octave=int(registers.get("root_octave", defaults.root_octave)),
            bass_octave=int(registers.get("bass_octave", defaults.bass_octave)),
            upper_min=int(registers.get("upper_min", defaults.upper_min)),
            upper_max=int(registers.get("upper_max", defaults.upper_max)),
            max_soprano_alto=int(spacing.get("soprano_alto", defaults.max_soprano_alto)),
            max_alto_tenor=int(spacing.get("alto_tenor", defaults.max_alto_tenor)),
            max_tenor_bass=int(spacing.get("tenor_bass", defaults.max_tenor_bass)),
            doubling_weights=(
                int(doubling.get("root", defaults.doubling_weights[0])),
                int(doubling.get("third", defaults.doubling_weights[1])),
                int(doubling.get("fifth", defaults.doubling_weights[2])),
                int(doubling.get("seventh", defaults.doubling_weights[3])),
            ),
            altered_fifth_doubling=int(doubling.get("altered_fifth", defaults.altered_fifth_doubling)),
            melody_doubling=int(doubling.get("melody", defaults.melody_doubling)),
        )

    @classmethod
    def from_env(cls, base: Optional["VoicingSettings"] = None) -> "VoicingSettings":
        """Override register fields from ``CHORDLAB_*`` environment variables."""
        base = base or cls()
        return cls(
            root_octave=int(os.environ.get("CHORDLAB_ROOT_OCTAVE", base.root_octave)),
            bass_octave=int(os.environ.get("CHORDLAB_BASS_OCTAVE", base.bass_octave)),
            upper_min=int(os.environ.get("CHORDLAB_UPPER_MIN", base.upper_min)),
            upper_max=int(os.environ.get("CHORDLAB_UPPER_MAX", base.upper_max)),
            max_soprano_alto=base.max_soprano_alto,
            max_alto_tenor=base.max_alto_tenor,
            max_tenor_bass=base.max_tenor_bass,
            doubling_weights=base.doubling_weights,
            altered_fifth_doubling=base.altered_fifth_doubling,
            melody_doubling=base.melody_doubling,
        )


@dataclass(frozen=True)
class VoiceRanges:
    """Inclusive MIDI band per lane, bass first."""
    bass: Tuple[int, int]
    tenor: Tuple[int, int]
    alto: Tuple[int, int]
    soprano: Tuple[int, int]

    @classmethod
    def from_settings(cls, settings: VoicingSettings) -> "VoiceRanges":
        c = (settings.bass_octave + 1) * 12
        r = (settings.root_octave + 1) * 12
        lo, hi = settings.upper_min, settings.upper_max
        ranges = cls(
            bass=(c - 8, c + 12),
            tenor=(max(lo, c), min(hi, c + 19)),
            alto=(max(lo, r - 5), min(hi, r + 14)),
            soprano=(max(lo, r), min(hi, r + 21)),
        )
        for name, (band_lo, band_hi) in zip(LANE_NAMES, ranges.bands()):
            if band_lo > band_hi:
                raise InvalidVoicingRequest(
                    f"{name} band is empty ({band_lo}..{band_hi}); check octaves and upper limits"
                )
        return ranges

    def bands(self) -> List[Tuple[int, int]]:
        return [self.bass, self.tenor, self.alto, self.soprano]

    def relaxed(self) -> "VoiceRanges":
        """Every lane opened to the full span between bass floor and top."""
        full = (self.bass[0], max(self.soprano[1], self.tenor[1], self.alto[1]))
        return VoiceRanges(full, full, full, full)

    def centers_x2(self) -> np.ndarray:
        return np.array([lo + hi for lo, hi in self.bands()])


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

@dataclass
class VoicedChord:
    """
    One region realized as four MIDI pitches.

    Attributes:
        voices_midi: ``[Bass, Tenor, Alto, Soprano]``.
        region_index: Position in the progression.
        chord_symbol: Display symbol of the region's chord.
        chord_tones: Ordered chord-tone pitch classes.
        melody_midi: Melody lock the soprano honoured, if any.
        time_beats: Region onset in quarter-note beats.
        duration_beats: Region length in quarter-note beats.
        voice_leading_cost: Total semitone motion from the previous region.
        common_tones_retained: Lanes that kept their exact pitch.
    """
    voices_midi: List[int] = field(default_factory=list)
    region_index: int = 0
    chord_symbol: str = ""
    chord_tones: List[int] = field(default_factory=list)
    melody_midi: Optional[int] = None
    time_beats: float = 0.0
    duration_beats: float = 1.0
    voice_leading_cost: int = 0
    common_tones_retained: int = 0

    @property
    def bass(self) -> int:
        return self.voices_midi[BASS]

    @property
    def tenor(self) -> int:
        return self.voices_midi[TENOR]

    @property
    def alto(self) -> int:
        return self.voices_midi[ALTO]

    @property
    def soprano(self) -> int:
        return self.voices_midi[SOPRANO]

    @property
    def pitch_classes(self) -> List[int]:
        return [m % 12 for m in self.voices_midi]


@dataclass(frozen=True)
class _RegionPlan:
    index: int
    key: Key
    tones: Tuple[int, ...]
    required: FrozenSet[int]
    bass_pc: int
    melody_midi: Optional[int]
    is_augmented: bool
    has_seventh: bool
    symbol: str


@dataclass(frozen=True)
class _Tendency:
    lane: int
    options: Tuple[int, ...]
    code: str
    source_pc: int


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class VoicingEngine:
    """
    Voices a sequence of chord regions in three passes.

    1. **Allocation** - each region solved against the previous one.
    2. **Tendency resolution** - for every adjacent pair, the lane holding
       a chordal seventh must fall by one or two semitones and the lane
       holding an augmented fifth must rise a semitone, whenever the next
       chord contains the target.
    3. **Continuity** - each region re-solved against its final
       predecessor under the same constraints.

    Each engine owns its state; use one instance per concurrent request.

    Args:
        settings: Register and weight settings.
        sink: Diagnostics sink; defaults to :class:`NullSink`.
    """

    def __init__(
        self,
        settings: Optional[VoicingSettings] = None,
        sink: Optional[DiagnosticsSink] = None,
    ) -> None:
        self.settings = settings or VoicingSettings()
        self.sink = sink if sink is not None else NullSink()
        self.ranges = VoiceRanges.from_settings(self.settings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def voice_regions(
        self,
        regions: Sequence,
        use_melody_constraint: bool = True,
        ticks_per_quarter: int = 4,
    ) -> List[VoicedChord]:
        """
        Voice every region.

        Args:
            regions: :class:`~chordlab.timeline.ChordRegion` sequence.
            use_melody_constraint: Lock the soprano to each region's
                melody note when one is present.
            ticks_per_quarter: Grid used to report region onsets.

        Returns:
            One :class:`VoicedChord` per region, in order.

        Raises:
            VoicingInfeasible: A region cannot cover its required tones.
        """
        plans = [self._plan(i, r, use_melody_constraint) for i, r in enumerate(regions)]
        if not plans:
            return []
        diag = self.sink.enabled

        if diag:
            self._emit(0, DiagSeverity.INFO, DiagCode.VOICING_START,
                       f"Voicing {len(plans)} regions (melody lock={use_melody_constraint})")

        # Pass 1: allocation
        voicing: List[np.ndarray] = []
        for plan in plans:
            previous = voicing[-1] if voicing else None
            voicing.append(self._place(plan, previous))

        # Pass 2: tendency resolution
        for i in range(len(plans) - 1):
            targets = self._tendencies(plans[i], voicing[i], plans[i + 1])
            if not targets or self._satisfies(voicing[i + 1], targets):
                continue
            resolved = self._resolve(plans[i + 1], voicing[i], targets)
            if resolved is None:
                if diag:
                    self._emit(plans[i + 1].index, DiagSeverity.WARNING,
                               DiagCode.BLOCKED_ILLEGAL_RESOLUTION,
                               "No legal voicing resolves the tendency tone")
                continue
            if diag:
                self._report_forced(plans[i + 1].index, targets, voicing[i + 1], resolved)
            voicing[i + 1] = resolved

        # Pass 3: continuity against final predecessors
        final: List[np.ndarray] = [voicing[0]]
        for i in range(1, len(plans)):
            targets = self._tendencies(plans[i - 1], final[i - 1], plans[i])
            solved = None
            if targets:
                solved = self._resolve(plans[i], final[i - 1], targets)
                if solved is None and diag:
                    self._emit(plans[i].index, DiagSeverity.WARNING,
                               DiagCode.BLOCKED_ILLEGAL_RESOLUTION,
                               "Continuity pass could not keep the tendency resolution")
            if solved is None:
                solved = self._place(plans[i], final[i - 1])
            final.append(solved)

        result = self._publish(plans, regions, final, ticks_per_quarter)
        if diag:
            for plan, region, voiced in zip(plans, regions, result):
                self._emit(plan.index, DiagSeverity.INFO, DiagCode.VOICED_REGION,
                           f"{plan.symbol}: " + " ".join(midi_to_name(m, plan.key)
                                                         for m in voiced.voices_midi))
                audit_voiced_chord(plan.index, region.chord_event, voiced.voices_midi, self.sink)
            self._emit(plans[-1].index, DiagSeverity.INFO, DiagCode.VOICING_DONE,
                       f"Voiced {len(result)} regions")
        return result

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _plan(self, index: int, region, use_melody: bool) -> _RegionPlan:
        event = region.chord_event
        recipe = event.recipe
        tones = tuple(event.tone_pitch_classes())
        required = set(required_pitch_classes(event.key, recipe))
        if recipe.is_plain_diminished_triad:
            # root, minor third, diminished fifth must all sound
            required.update(tones[:3])
        melody = event.melody_midi if use_melody else None
        return _RegionPlan(
            index=index,
            key=event.key,
            tones=tones,
            required=frozenset(required),
            bass_pc=bass_pitch_class(event.key, recipe),
            melody_midi=melody,
            is_augmented=recipe.quality is ChordQuality.AUGMENTED,
            has_seventh=recipe.has_seventh,
            symbol=event.label or recipe_to_symbol(event.key, recipe),
        )

    # ------------------------------------------------------------------
    # Solver
    # ------------------------------------------------------------------

    def _lane_options(self, plan: _RegionPlan, lane: int, band: Tuple[int, int],
                      lane_pcs: Dict[int, int]) -> np.ndarray:
        if lane == SOPRANO and plan.melody_midi is not None:
            if lane in lane_pcs and lane_pcs[lane] != plan.melody_midi % 12:
                return np.array([], dtype=int)
            return np.array([plan.melody_midi])
        allowed = {lane_pcs[lane]} if lane in lane_pcs else set(plan.tones)
        if lane == BASS:
            allowed &= {plan.bass_pc}
        lo, hi = band
        return np.array([m for m in range(lo, hi + 1) if m % 12 in allowed], dtype=int)

    def _solve(self, plan: _RegionPlan, previous: Optional[np.ndarray],
               lane_pcs: Dict[int, int], ranges: VoiceRanges) -> Optional[np.ndarray]:
        """Best voicing under the given lane constraints, or ``None``."""
        options = [
            self._lane_options(plan, lane, band, lane_pcs)
            for lane, band in enumerate(ranges.bands())
        ]
        if any(opt.size == 0 for opt in options):
            return None

        grid = np.stack(np.meshgrid(*options, indexing="ij"), axis=-1).reshape(-1, VOICE_COUNT)
        b, t, a, s = grid[:, BASS], grid[:, TENOR], grid[:, ALTO], grid[:, SOPRANO]
        mask = (b < t) & (t <= a) & (a <= s)
        pcs = grid % 12
        for pc in plan.required:
            mask &= (pcs == pc).any(axis=1)
        grid, pcs = grid[mask], pcs[mask]
        if grid.shape[0] == 0:
            return None

        cfg = self.settings
        distinct = sorted(set(plan.tones))
        missing = len(distinct) - sum((pcs == pc).any(axis=1).astype(int) for pc in distinct)

        doubling = np.zeros(grid.shape[0], dtype=int)
        for role, pc in enumerate(plan.tones):
            weight = cfg.doubling_weights[role]
            if role == 2 and plan.is_augmented:
                weight = cfg.altered_fifth_doubling
            extra = np.maximum((pcs == pc).sum(axis=1) - 1, 0)
            doubling += weight * extra
        if plan.melody_midi is not None:
            doubling += cfg.melody_doubling * (pcs[:, :SOPRANO] == plan.melody_midi % 12).sum(axis=1)

        b, t, a, s = grid[:, BASS], grid[:, TENOR], grid[:, ALTO], grid[:, SOPRANO]
        spacing = ((s - a > cfg.max_soprano_alto).astype(int)
                   + (a - t > cfg.max_alto_tenor).astype(int)
                   + (t - b > cfg.max_tenor_bass).astype(int))

        center = np.abs(2 * grid - self.ranges.centers_x2()).sum(axis=1)
        if previous is None:
            motion = center
            leap = np.zeros(grid.shape[0], dtype=int)
        else:
            moves = np.abs(grid - previous)
            motion = moves.sum(axis=1)
            leap = moves.max(axis=1)
        span = s - b

        # np.lexsort sorts by the last key first
        order = np.lexsort((s, a, t, b, center, span, leap, motion, spacing, doubling, missing))
        return grid[order[0]].copy()

    def _place(self, plan: _RegionPlan, previous: Optional[np.ndarray],
               lane_pcs: Optional[Dict[int, int]] = None) -> np.ndarray:
        """Solve one region, opening the registers before giving up."""
        found = self._solve_with_fallback(plan, previous, lane_pcs or {})
        if found is None:
            raise VoicingInfeasible(
                plan.index,
                expected=sorted(plan.required),
                realized=[plan.melody_midi % 12] if plan.melody_midi is not None else [],
                reason=f"{plan.symbol} cannot be covered by four voices",
            )
        return found

    def _solve_with_fallback(self, plan: _RegionPlan, previous: Optional[np.ndarray],
                             lane_pcs: Dict[int, int]) -> Optional[np.ndarray]:
        found = self._solve(plan, previous, lane_pcs, self.ranges)
        if found is not None:
            return found
        found = self._solve(plan, previous, lane_pcs, self.ranges.relaxed())
        if found is not None and self.sink.enabled:
            self._emit(plan.index, DiagSeverity.WARNING, DiagCode.REGISTER_CLAMPED,
                       f"{plan.symbol}: voice bands opened to fit constraints")
        return found

    # ------------------------------------------------------------------
    # Tendency tones
    # ------------------------------------------------------------------

    def _tendencies(self, source: _RegionPlan, voiced: np.ndarray,
                    target: _RegionPlan) -> List[_Tendency]:
        """Lane constraints *source*'s tendency tones impose on *target*."""
        found: List[_Tendency] = []
        next_tones = set(target.tones)
        pcs = [int(m) % 12 for m in voiced]

        if source.has_seventh:
            seventh = source.tones[3]
            options = tuple(pc for pc in ((seventh - 1) % 12, (seventh - 2) % 12)
                            if pc in next_tones)
            if seventh in pcs and options:
                found.append(_Tendency(pcs.index(seventh), options,
                                       DiagCode.FORCED_7TH_RESOLUTION, seventh))

        if source.is_augmented:
            fifth = source.tones[2]
            up = (fifth + 1) % 12
            if fifth in pcs and up in next_tones:
                found.append(_Tendency(pcs.index(fifth), (up,),
                                       DiagCode.FORCED_AUG5_RESOLUTION, fifth))

        return [t for t in (self._compatible(t, target) for t in found) if t is not None]

    def _compatible(self, tendency: _Tendency, target: _RegionPlan) -> Optional[_Tendency]:
        """Drop or narrow a constraint that would override a fixed lane."""
        options = tendency.options
        if tendency.lane == SOPRANO and target.melody_midi is not None:
            options = tuple(pc for pc in options if pc == target.melody_midi % 12)
            if not options:
                if self.sink.enabled:
                    self._emit(target.index, DiagSeverity.WARNING,
                               DiagCode.MELODY_CONSTRAINT_BLOCKED,
                               "Melody lock keeps the soprano off its resolution",
                               voice_index=SOPRANO)
                return None
        elif tendency.lane == BASS:
            options = tuple(pc for pc in options if pc == target.bass_pc)
            if not options:
                if self.sink.enabled:
                    self._emit(target.index, DiagSeverity.WARNING,
                               DiagCode.BLOCKED_ILLEGAL_RESOLUTION,
                               "Bass resolution conflicts with the chord's bass tone",
                               voice_index=BASS)
                return None
        return _Tendency(tendency.lane, options, tendency.code, tendency.source_pc)

    @staticmethod
    def _satisfies(voiced: np.ndarray, targets: Sequence[_Tendency]) -> bool:
        """Every tendency lane already sits on its first-choice target."""
        return all(int(voiced[t.lane]) % 12 == t.options[0] for t in targets)

    def _resolve(self, plan: _RegionPlan, previous: np.ndarray,
                 targets: Sequence[_Tendency]) -> Optional[np.ndarray]:
        """Solve *plan* with every tendency lane pinned, options in order."""
        for combo in itertools.product(*(t.options for t in targets)):
            lane_pcs: Dict[int, int] = {}
            clash = False
            for tendency, pc in zip(targets, combo):
                if lane_pcs.get(tendency.lane, pc) != pc:
                    clash = True
                    break
                lane_pcs[tendency.lane] = pc
            if clash:
                continue
            found = self._solve_with_fallback(plan, previous, lane_pcs)
            if found is not None:
                return found
        return None

    # ------------------------------------------------------------------
    # Output / diagnostics
    # ------------------------------------------------------------------

    def _publish(self, plans: Sequence[_RegionPlan], regions: Sequence,
                 final: Sequence[np.ndarray], ticks_per_quarter: int) -> List[VoicedChord]:
        result: List[VoicedChord] = []
        previous: Optional[List[int]] = None
        for plan, region, voiced in zip(plans, regions, final):
            midi = [int(m) for m in voiced]
            cost = sum(abs(m - p) for m, p in zip(midi, previous)) if previous else 0
            kept = sum(1 for m, p in zip(midi, previous) if m == p) if previous else 0
            result.append(VoicedChord(
                voices_midi=midi,
                region_index=plan.index,
                chord_symbol=plan.symbol,
                chord_tones=list(plan.tones),
                melody_midi=plan.melody_midi,
                time_beats=region.start_tick / ticks_per_quarter,
                duration_beats=region.duration_ticks / ticks_per_quarter,
                voice_leading_cost=cost,
                common_tones_retained=kept,
            ))
            previous = midi
        logger.debug("Voiced %d regions", len(result))
        return result

    def _report_forced(self, region_index: int, targets: Sequence[_Tendency],
                       before: np.ndarray, after: np.ndarray) -> None:
        for t in targets:
            old, new = int(before[t.lane]), int(after[t.lane])
            if old != new:
                self._emit(region_index, DiagSeverity.FORCED, t.code,
                           f"{LANE_NAMES[t.lane]} resolves pc {t.source_pc} -> {new % 12}",
                           voice_index=t.lane, before_midi=old, after_midi=new)

    def _emit(self, region_index: int, severity: DiagSeverity, code: str, message: str,
              voice_index: int = -1, before_midi: int = -1, after_midi: int = -1) -> None:
        self.sink.emit(RegionDiagEvent(region_index, severity, code, message,
                                       voice_index, before_midi, after_midi))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def voice_lead_regions(
    key: Key,
    spec,
    regions: Sequence,
    use_melody_constraint: bool = True,
    voice_count: int = VOICE_COUNT,
    root_octave: Optional[int] = None,
    bass_octave: Optional[int] = None,
    upper_min: Optional[int] = None,
    upper_max: Optional[int] = None,
    diagnostics: Optional[DiagnosticsSink] = None,
    settings: Optional[VoicingSettings] = None,
) -> Result:
    """
    Voice chord regions as SATB.

    Register arguments left as ``None`` fall back to *settings* (or the
    defaults). The *key* is used for logging only; each region carries its
    own key.

    Returns:
        ``Ok(list of VoicedChord)`` or ``Failure`` carrying
        :class:`VoicingInfeasible` / :class:`InvalidVoicingRequest`.
    """
    try:
        if voice_count != VOICE_COUNT:
            raise InvalidVoicingRequest(f"Only four-voice voicing is supported, got {voice_count}")
        base = settings or VoicingSettings()
        overrides = dict(
            root_octave=root_octave if root_octave is not None else base.root_octave,
            bass_octave=bass_octave if bass_octave is not None else base.bass_octave,
            upper_min=upper_min if upper_min is not None else base.upper_min,
            upper_max=upper_max if upper_max is not None else base.upper_max,
        )
        effective = VoicingSettings(
            max_soprano_alto=base.max_soprano_alto,
            max_alto_tenor=base.max_alto_tenor,
            max_tenor_bass=base.max_tenor_bass,
            doubling_weights=base.doubling_weights,
            altered_fifth_doubling=base.altered_fifth_doubling,
            melody_doubling=base.melody_doubling,
            **overrides,
        )
        engine = VoicingEngine(effective, diagnostics)
        tpq = spec.ticks_per_quarter if spec is not None else 4
        voiced = engine.voice_regions(regions, use_melody_constraint, tpq)
    except (VoicingInfeasible, InvalidVoicingRequest) as e:
        logger.warning("Voicing failed in %s: %s", key, e)
        return Failure(e, context={"regions": len(regions)})
    return Ok(voiced)
