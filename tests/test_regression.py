"""Tests for the built-in regression cases and their checks."""
import pytest

from chordlab.regression.harness import (
    FAIL,
    PASS,
    SKIP,
    RegressionCase,
    RegressionChecks,
    check_required_tones,
    check_seventh_resolution,
    default_regression_cases,
    find_case,
    run_all_cases,
    run_case,
)
from chordlab.theory.keys import ScaleMode
from chordlab.voicing.engine import VoicedChord


class TestBuiltInCases:
    """The shipped case list must pass as a whole."""

    def test_all_cases_pass(self):
        report = run_all_cases()
        assert report.ok, report.summary()
        assert report.case_count == len(default_regression_cases())
        assert report.pass_count == report.case_count

    def test_case_names_are_unique(self):
        names = [c.name for c in default_regression_cases()]
        assert len(names) == len(set(names))

    def test_fresh_list_each_call(self):
        assert default_regression_cases() is not default_regression_cases()

    def test_find_case(self):
        case = find_case("DimTriad_Fdim")
        assert case is not None
        assert case.progression == "Fdim"
        assert find_case("no_such_case") is None

    def test_name_filter(self):
        report = run_all_cases(name_filter="DimTriad")
        assert report.case_count == 3
        assert report.ok


class TestCaseOutcomes:
    """Test per-case outcome details."""

    def test_no_target_is_skipped(self):
        report = run_case(find_case("C7_to_C_no_resolution_target"))
        outcomes = report.outcomes["C7_to_C_no_resolution_target"]
        assert [o.result for o in outcomes] == [SKIP]
        assert report.ok

    def test_seventh_resolution_passes(self):
        report = run_case(find_case("G7_to_C_seventh_must_resolve"))
        outcome = report.outcomes["G7_to_C_seventh_must_resolve"][0]
        assert outcome.result == PASS
        assert outcome.from_midi - outcome.to_midi == 1

    def test_half_step_preferred_case(self):
        report = run_case(find_case("Cmaj7_to_Bbmaj7_prefers_half_step"))
        outcome = report.outcomes["Cmaj7_to_Bbmaj7_prefers_half_step"][0]
        assert outcome.result == PASS
        assert outcome.to_midi % 12 == 10

    def test_aug5_case_outcomes(self):
        name = "Aug5_Caug_to_F_withMelody_mustResolve"
        report = run_case(find_case(name))
        by_check = {o.check: o for o in report.outcomes[name]}
        assert by_check["AUG5_RESOLVES_UP"].result == PASS
        assert by_check["SOPRANO_LOCK"].result == PASS
        assert by_check["FINAL_INNER_VOICES"].result == PASS

    def test_melody_parsing_case(self):
        name = "Timeline_MelodyParsing_NoDroppedFinalNote"
        report = run_case(find_case(name))
        checks = [o.check for o in report.outcomes[name]]
        assert checks == ["MELODY_EVENT_COUNT", "MELODY_LAST_NOTE"]
        assert report.ok

    def test_diagnostics_collected_on_request(self):
        report = run_case(find_case("DimTriad_Fdim"), collect_diagnostics=True)
        assert "DimTriad_Fdim" in report.diagnostics
        assert report.diagnostics["DimTriad_Fdim"].region_count == 1

    def test_failed_expectation_is_reported(self):
        case = RegressionCase("wrong_sopranos", 0, ScaleMode.IONIAN, "I IV",
                              melody="C5 C5", expected_sopranos=(72, 60))
        report = run_case(case)
        assert not report.ok
        assert report.failures[0].case_name == "wrong_sopranos"
        assert "FAIL wrong_sopranos" in report.summary()

    def test_parse_failure_is_setup_failure(self):
        case = RegressionCase("bad_progression", 0, ScaleMode.IONIAN, "I Qq",
                              checks=RegressionChecks.REQUIRED_TONES_PRESENT)
        report = run_case(case)
        assert report.fail_count == 1
        assert report.failures[0].stage == "parse"
        assert report.failures[0].region_index == -1

    def test_bad_melody_is_setup_failure(self):
        case = RegressionCase("bad_melody", 0, ScaleMode.IONIAN, "I", melody="C4 H2")
        report = run_case(case)
        assert report.failures[0].stage == "melody"


class TestChecks:
    """Run individual checks over hand-built voicings."""

    def _voiced(self, regions, voicings):
        return [
            VoicedChord(
                region_index=i,
                voices_midi=list(v),
                chord_symbol="",
                chord_tones=[],
                time_beats=0.0,
                duration_beats=4.0,
            )
            for i, v in enumerate(voicings)
        ]

    def test_seventh_held_is_failure(self, c_major, timeline_spec):
        from chordlab.timeline import build_regions

        regions = build_regions("G7 C", c_major, timeline_spec).unwrap()
        voiced = self._voiced(regions, [[43, 59, 62, 65], [48, 55, 64, 67]])
        outcomes = check_seventh_resolution(regions, voiced)
        assert [o.result for o in outcomes] == [FAIL]
        assert outcomes[0].voice_index == 3

    def test_whole_step_when_half_step_available_is_failure(self, c_major, timeline_spec):
        from chordlab.timeline import build_regions

        regions = build_regions("Cmaj7 Bbmaj7", c_major, timeline_spec).unwrap()
        voiced = self._voiced(regions, [[48, 55, 64, 71], [46, 53, 62, 69]])
        outcomes = check_seventh_resolution(regions, voiced)
        assert [o.result for o in outcomes] == [FAIL]
        assert outcomes[0].voice_index == 3
        assert "half step" in outcomes[0].message

    def test_half_step_resolution_passes(self, c_major, timeline_spec):
        from chordlab.timeline import build_regions

        regions = build_regions("Cmaj7 Bbmaj7", c_major, timeline_spec).unwrap()
        voiced = self._voiced(regions, [[48, 55, 64, 71], [46, 57, 62, 70]])
        outcomes = check_seventh_resolution(regions, voiced)
        assert [o.result for o in outcomes] == [PASS]

    def test_missing_tone_is_failure(self, c_major, timeline_spec):
        from chordlab.timeline import build_regions

        regions = build_regions("I", c_major, timeline_spec).unwrap()
        voiced = self._voiced(regions, [[48, 55, 60, 67]])
        outcomes = check_required_tones(regions, voiced)
        assert outcomes[0].result == FAIL
        assert "[4]" in outcomes[0].message
