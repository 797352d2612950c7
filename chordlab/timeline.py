"""
Timeline - chord regions on a tick grid

A progression string becomes an ordered list of :class:`ChordRegion`,
one bar per chord. A bare melody (note text or MIDI pitches) is shared
out across the regions in order; timed :class:`MelodyEvent` objects keep
their onsets and land in the region their onset falls in. The first note
of a region locks the soprano for that region. Timed notes running past
the final bar stretch the last region so nothing is dropped.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union
import logging

from .errors import ChordLabError, Failure, Ok, ParseFailure, Result
from .theory.chords import ChordEvent, parse_chord_identifier
from .theory.keys import Key
from .theory.melody import MelodyEvent, parse_melody_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineSpec:
    """
    Tick grid and meter.

    Attributes:
        ticks_per_quarter: Grid resolution (default 4 = sixteenths).
        tempo_bpm: Playback tempo; ``None`` leaves it to the renderer.
        time_sig_numerator: Beats per bar, default 4.
        time_sig_denominator: Beat unit, default 4.
    """
    ticks_per_quarter: int = 4
    tempo_bpm: Optional[float] = None
    time_sig_numerator: Optional[int] = None
    time_sig_denominator: Optional[int] = None

    def __post_init__(self):
        if self.ticks_per_quarter <= 0:
            raise ValueError("ticks_per_quarter must be positive")

    @property
    def numerator(self) -> int:
        return self.time_sig_numerator or 4

    @property
    def denominator(self) -> int:
        return self.time_sig_denominator or 4

    @property
    def bar_ticks(self) -> int:
        return self.ticks_per_quarter * self.numerator * 4 // self.denominator

    def beats_to_ticks(self, beats: float) -> int:
        return int(round(beats * self.ticks_per_quarter))

    def ticks_to_beats(self, ticks: int) -> float:
        return ticks / self.ticks_per_quarter


@dataclass(frozen=True)
class TimedMelodyNote:
    start_tick: int
    duration_ticks: int
    midi: int

    @property
    def end_tick(self) -> int:
        return self.start_tick + self.duration_ticks


@dataclass(frozen=True)
class ChordRegion:
    """
    One chord's time span, the unit of voicing.

    Attributes:
        start_tick: Onset on the tick grid.
        duration_ticks: Length on the tick grid.
        chord_event: The chord with its optional melody lock.
        debug_label: Token the chord was entered as.
        melody: Melody notes whose onset falls inside the region.
    """
    start_tick: int
    duration_ticks: int
    chord_event: ChordEvent
    debug_label: str = ""
    melody: Tuple[TimedMelodyNote, ...] = field(default_factory=tuple)

    @property
    def end_tick(self) -> int:
        return self.start_tick + self.duration_ticks


MelodyInput = Union[str, Sequence[int], Sequence[MelodyEvent], None]


def _spread_melody(pitches: Sequence[int], region_count: int, bar: int) -> List[TimedMelodyNote]:
    """
    Share a bare pitch list across the regions in order.

    Region ``i`` takes pitches ``[i*n//r, (i+1)*n//r)`` spaced evenly
    inside its bar. With fewer pitches than regions the leading regions
    take one pitch each and the rest stay unlocked.
    """
    count = len(pitches)
    if count == 0:
        return []
    if count < region_count:
        return [TimedMelodyNote(index * bar, bar, midi) for index, midi in enumerate(pitches)]

    notes: List[TimedMelodyNote] = []
    for region in range(region_count):
        share = pitches[region * count // region_count:(region + 1) * count // region_count]
        length = max(1, bar // len(share))
        for offset, midi in enumerate(share):
            notes.append(TimedMelodyNote(region * bar + offset * bar // len(share), length, midi))
    return notes


def _timed_melody(melody: MelodyInput, spec: TimelineSpec, region_count: int) -> List[TimedMelodyNote]:
    if melody is None:
        return []
    if isinstance(melody, str):
        melody = [event.midi for event in parse_melody_line(melody)]

    items = list(melody)
    if items and all(isinstance(item, MelodyEvent) for item in items):
        return [
            TimedMelodyNote(
                spec.beats_to_ticks(item.time_beats),
                max(1, spec.beats_to_ticks(item.duration_beats)),
                item.midi,
            )
            for item in items
        ]

    pitches = []
    for item in items:
        if isinstance(item, MelodyEvent):
            raise ValueError("Cannot mix MelodyEvent objects with bare pitches")
        midi = int(item)
        if not 0 <= midi <= 127:
            raise ValueError(f"Melody pitch out of MIDI range: {midi}")
        pitches.append(midi)
    return _spread_melody(pitches, region_count, spec.bar_ticks)


def build_regions(
    progression_text: str,
    key: Key,
    spec: Optional[TimelineSpec] = None,
    melody: MelodyInput = None,
) -> Result:
    """
    Build chord regions from progression text and an optional melody.

    Args:
        progression_text: Whitespace-separated chord identifiers, Roman
            numerals or absolute symbols (``"I IV V7 I"``, ``"G7 C"``).
        key: Key the identifiers are read in.
        spec: Tick grid; defaults to :class:`TimelineSpec`.
        melody: Melody line text (``"E4 E4 C4"``) or MIDI pitches, shared
            out across the regions in order, or timed
            :class:`MelodyEvent` objects placed by onset.

    Returns:
        ``Ok(list of ChordRegion)``, or ``Failure`` carrying the first
        :class:`ParseFailure` / :class:`MelodyParseFailure`. A single bad
        token fails the whole progression.
    """
    if spec is None:
        spec = TimelineSpec()

    tokens = progression_text.split()
    if not tokens:
        return Failure(ParseFailure(progression_text, "empty progression"))

    recipes = []
    for index, token in enumerate(tokens):
        try:
            recipes.append(parse_chord_identifier(key, token))
        except ParseFailure as e:
            logger.debug("Token #%d %r failed: %s", index, token, e.reason)
            return Failure(
                ParseFailure(token, e.reason, token_index=index),
                context={"progression": progression_text},
            )

    try:
        notes = _timed_melody(melody, spec, len(tokens))
    except ChordLabError as e:
        return Failure(e, context={"melody": melody})
    except ValueError as e:
        return Failure(ParseFailure(str(melody), str(e)), context={"melody": melody})

    bar = spec.bar_ticks
    melody_end = max((n.end_tick for n in notes), default=0)
    regions: List[ChordRegion] = []
    for index, (token, recipe) in enumerate(zip(tokens, recipes)):
        start = index * bar
        duration = bar
        is_last = index == len(tokens) - 1
        if is_last and melody_end > start + bar:
            duration = melody_end - start
        end = start + duration
        owned = tuple(
            n for n in notes
            if start <= n.start_tick < end
        )
        event = ChordEvent(
            key=key,
            recipe=recipe,
            time_beats=spec.ticks_to_beats(start),
            melody_midi=owned[0].midi if owned else None,
            label=token,
        )
        regions.append(ChordRegion(start, duration, event, token, owned))

    logger.debug("Built %d regions from %r (%d melody notes)",
                 len(regions), progression_text, len(notes))
    return Ok(regions)


def regions_from_chord_events(
    events: Sequence[ChordEvent],
    spec: Optional[TimelineSpec] = None,
) -> List[ChordRegion]:
    """
    Place harmonized chord events on the grid, one region per event.

    Each region lasts until the next event's onset; the last lasts one
    quarter note.
    """
    if spec is None:
        spec = TimelineSpec()
    regions: List[ChordRegion] = []
    for index, event in enumerate(events):
        start = spec.beats_to_ticks(event.time_beats)
        if index + 1 < len(events):
            end = spec.beats_to_ticks(events[index + 1].time_beats)
        else:
            end = start + spec.ticks_per_quarter
        duration = max(1, end - start)
        melody: Tuple[TimedMelodyNote, ...] = ()
        if event.melody_midi is not None:
            melody = (TimedMelodyNote(start, duration, event.melody_midi),)
        regions.append(ChordRegion(start, duration, event, event.label, melody))
    return regions
