"""Tests for region diagnostics and the coverage audit."""
import pytest

from chordlab.theory.chords import ChordEvent, parse_roman_numeral
from chordlab.voicing.coverage_audit import MAX_AUDIT_EVENTS, audit_voiced_chord
from chordlab.voicing.diagnostics import (
    DiagCode,
    DiagSeverity,
    DiagnosticsCollector,
    NullSink,
    RegionDiagEvent,
)


def _event(key, numeral, melody=None):
    return ChordEvent(key, parse_roman_numeral(key, numeral), melody_midi=melody)


class TestDiagnosticsCollector:
    """Test event grouping, dedupe and caps."""

    def test_groups_by_region(self):
        collector = DiagnosticsCollector()
        collector.add(2, DiagSeverity.INFO, DiagCode.VOICED_REGION, "b")
        collector.add(0, DiagSeverity.INFO, DiagCode.VOICED_REGION, "a")
        assert [r.region_index for r in collector.get_all()] == [0, 2]
        assert collector.region_count == 2

    def test_identical_events_kept_once(self):
        collector = DiagnosticsCollector()
        event = RegionDiagEvent(0, DiagSeverity.WARNING, DiagCode.REGISTER_CLAMPED, "x")
        collector.emit(event)
        collector.emit(event)
        assert collector.codes() == [DiagCode.REGISTER_CLAMPED]

    def test_cap_adds_single_omission_marker(self):
        collector = DiagnosticsCollector(max_events_per_region=3)
        for i in range(6):
            collector.add(0, DiagSeverity.INFO, DiagCode.VOICED_REGION, f"event {i}")
        codes = collector.codes()
        assert len(codes) == 4
        assert codes[-1] == DiagCode.OMITTED

    def test_clear(self):
        collector = DiagnosticsCollector()
        collector.add(0, DiagSeverity.INFO, DiagCode.VOICING_START, "start")
        collector.clear()
        assert collector.events() == []

    def test_null_sink_is_disabled(self):
        assert NullSink.enabled is False
        assert DiagnosticsCollector.enabled is True


class TestCoverageAudit:
    """Test per-region coverage findings."""

    def test_clean_voicing(self, c_major):
        collector = DiagnosticsCollector()
        assert audit_voiced_chord(0, _event(c_major, "I"), [48, 52, 55, 60], collector) == []

    def test_missing_third_and_thin_texture(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(0, _event(c_major, "I"), [48, 55, 60, 67], collector)
        assert [e.code for e in emitted] == [DiagCode.MISSING_REQUIRED_TONE, DiagCode.UNUSUAL_DOUBLING]
        assert "PC=4" in emitted[0].message

    def test_missing_seventh(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(1, _event(c_major, "V7"), [43, 59, 62, 67], collector)
        assert [e.code for e in emitted] == [DiagCode.MISSING_REQUIRED_TONE,
                                             DiagCode.MISSING_7TH_IN_7TH_CHORD]
        assert all(e.region_index == 1 for e in emitted)

    def test_non_chord_tone(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(0, _event(c_major, "I"), [48, 50, 55, 64], collector)
        assert [e.code for e in emitted] == [DiagCode.NON_CHORD_TONE_PRESENT]

    def test_melody_non_chord_tone_is_allowed(self, c_major):
        collector = DiagnosticsCollector()
        event = _event(c_major, "I", melody=74)
        assert audit_voiced_chord(0, event, [48, 55, 64, 74], collector) == []

    def test_suspension_clash(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(0, _event(c_major, "I"), [48, 55, 64, 65], collector)
        assert [e.code for e in emitted] == [DiagCode.SUS4_CLASH_WITH_THIRD]

    def test_colour_tension(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(0, _event(c_major, "I"), [48, 55, 64, 66], collector)
        assert [e.code for e in emitted] == [DiagCode.TENSION_PRESENT]

    def test_event_cap(self, c_major):
        collector = DiagnosticsCollector()
        emitted = audit_voiced_chord(0, _event(c_major, "V7"), [43, 61, 61, 61], collector)
        assert len(emitted) == MAX_AUDIT_EVENTS

    def test_disabled_sink_skips_audit(self, c_major):
        assert audit_voiced_chord(0, _event(c_major, "I"), [48, 55, 60, 67], NullSink()) == []
