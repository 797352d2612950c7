"""
Region diagnostics for the voicing engine.

Diagnostics are a side channel passed into the engine as a sink object.
The engine asks ``sink.enabled`` before building any message, so the
default :class:`NullSink` costs a single attribute read per checkpoint
and its ``emit`` is never called. :class:`DiagnosticsCollector` keeps
events grouped by region for display and for regression reports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class DiagSeverity(Enum):
    INFO = "Info"
    WARNING = "Warning"
    FORCED = "Forced"


class DiagCode:
    """Diagnostic event codes."""

    # Voicing lifecycle
    VOICING_START = "VOICING_START"
    VOICING_DONE = "VOICING_DONE"
    VOICED_REGION = "VOICED_REGION"

    # Forced events
    FORCED_7TH_RESOLUTION = "FORCED_7TH_RESOLUTION"
    FORCED_AUG5_RESOLUTION = "FORCED_AUG5_RESOLUTION"
    BLOCKED_ILLEGAL_RESOLUTION = "BLOCKED_ILLEGAL_RESOLUTION"

    # Warnings
    REGISTER_CLAMPED = "REGISTER_CLAMPED"
    MELODY_CONSTRAINT_BLOCKED = "MELODY_CONSTRAINT_BLOCKED"

    # Coverage audit
    MISSING_REQUIRED_TONE = "MISSING_REQUIRED_TONE"
    MISSING_MULTIPLE_REQUIRED_TONES = "MISSING_MULTIPLE_REQUIRED_TONES"
    MISSING_7TH_IN_7TH_CHORD = "MISSING_7TH_IN_7TH_CHORD"
    NON_CHORD_TONE_PRESENT = "NON_CHORD_TONE_PRESENT"
    UNUSUAL_DOUBLING = "UNUSUAL_DOUBLING"
    UNISON_STACK = "UNISON_STACK"

    # Tensions
    SUS4_CLASH_WITH_THIRD = "SUS4_CLASH_WITH_THIRD"
    TENSION_PRESENT = "TENSION_PRESENT"

    OMITTED = "(...more omitted)"


@dataclass(frozen=True)
class RegionDiagEvent:
    """
    A single diagnostic event for a chord region.

    Attributes:
        region_index: Zero-based region index.
        severity: Event severity.
        code: One of the :class:`DiagCode` constants.
        message: Human-readable description.
        voice_index: 0=Bass .. 3=Soprano, or -1.
        before_midi: Pitch before the event, or -1.
        after_midi: Pitch after the event, or -1.
    """
    region_index: int
    severity: DiagSeverity
    code: str
    message: str
    voice_index: int = -1
    before_midi: int = -1
    after_midi: int = -1


class DiagnosticsSink:
    """Interface the engine writes diagnostics to."""

    enabled: bool = True

    def emit(self, event: RegionDiagEvent) -> None:
        raise NotImplementedError


class NullSink(DiagnosticsSink):
    """Discards everything; the engine never calls :meth:`emit` on it."""

    enabled = False

    def emit(self, event: RegionDiagEvent) -> None:
        pass


@dataclass
class RegionDiagnostics:
    region_index: int
    events: List[RegionDiagEvent] = field(default_factory=list)


class DiagnosticsCollector(DiagnosticsSink):
    """
    Collects events grouped by region index.

    Identical events are kept once; each region holds at most
    ``max_events_per_region`` events followed by one omission marker.
    """

    enabled = True

    def __init__(self, max_events_per_region: int = 10):
        self.max_events_per_region = max_events_per_region
        self._regions: Dict[int, RegionDiagnostics] = {}

    def emit(self, event: RegionDiagEvent) -> None:
        region = self._regions.get(event.region_index)
        if region is None:
            region = RegionDiagnostics(event.region_index)
            self._regions[event.region_index] = region

        if len(region.events) >= self.max_events_per_region:
            if not any(e.code == DiagCode.OMITTED for e in region.events):
                region.events.append(RegionDiagEvent(
                    event.region_index, DiagSeverity.INFO, DiagCode.OMITTED,
                    f"(Max {self.max_events_per_region} events per region)",
                ))
            return

        if event not in region.events:
            region.events.append(event)

    def add(self, region_index: int, severity: DiagSeverity, code: str, message: str,
            voice_index: int = -1, before_midi: int = -1, after_midi: int = -1) -> None:
        self.emit(RegionDiagEvent(region_index, severity, code, message,
                                  voice_index, before_midi, after_midi))

    def get_all(self) -> List[RegionDiagnostics]:
        return [self._regions[i] for i in sorted(self._regions)]

    def events(self) -> List[RegionDiagEvent]:
        return [e for region in self.get_all() for e in region.events]

    def codes(self) -> List[str]:
        return [e.code for e in self.events()]

    def clear(self) -> None:
        self._regions.clear()

    @property
    def region_count(self) -> int:
        return len(self._regions)
