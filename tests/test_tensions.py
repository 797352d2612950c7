"""Tests for ninth and eleventh tension detection."""
import pytest

from chordlab.theory.chords import TensionKind, parse_chord_symbol, parse_roman_numeral
from chordlab.theory.tensions import (
    ChordTension,
    TensionClassification,
    classify_eleventh,
    detect_eleventh_tensions,
    detect_ninth_tensions,
    detect_tensions,
    eleventh_kind,
    ninth_kind,
)


class TestIntervalKinds:

    @pytest.mark.parametrize("interval,kind", [
        (1, TensionKind.FLAT_NINE),
        (2, TensionKind.NINE),
        (15, TensionKind.SHARP_NINE),
        (4, None),
    ])
    def test_ninth_kind(self, interval, kind):
        assert ninth_kind(interval) is kind

    @pytest.mark.parametrize("interval,kind", [
        (5, TensionKind.ELEVEN),
        (-6, TensionKind.SHARP_ELEVEN),
        (7, None),
    ])
    def test_eleventh_kind(self, interval, kind):
        assert eleventh_kind(interval) is kind


class TestNinths:
    """Test ninth detection in realized voicings."""

    def test_flat_nine_over_dominant(self, c_major):
        recipe = parse_roman_numeral(c_major, "V7")
        found = detect_ninth_tensions(c_major, recipe, [43, 59, 65, 68])
        assert found == [ChordTension(TensionKind.FLAT_NINE, TensionClassification.COLOR_TONE)]

    def test_added_nine(self, c_major):
        recipe = parse_chord_symbol(c_major, "Cadd9")
        found = detect_ninth_tensions(c_major, recipe, [48, 55, 64, 62])
        assert [t.kind for t in found] == [TensionKind.NINE]

    def test_duplicates_reported_once(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        found = detect_ninth_tensions(c_major, recipe, [48, 62, 64, 74])
        assert len(found) == 1

    def test_ninth_in_bass_is_detected(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        found = detect_ninth_tensions(c_major, recipe, [50, 55, 64, 72])
        assert [t.kind for t in found] == [TensionKind.NINE]

    def test_chord_tones_are_not_tensions(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        assert detect_ninth_tensions(c_major, recipe, [48, 55, 64, 72]) == []


class TestElevenths:
    """Test soprano eleventh classification."""

    def test_suspension_over_triad(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        found = detect_eleventh_tensions(c_major, recipe, [48, 55, 64, 65])
        assert found == [ChordTension(TensionKind.ELEVEN, TensionClassification.SUSPENSION)]

    def test_natural_eleven_over_dominant_is_suspension(self, c_major):
        """C over G7 with B sounding stays a suspension; the clash is flagged apart."""
        recipe = parse_roman_numeral(c_major, "V7")
        found = detect_eleventh_tensions(c_major, recipe, [43, 59, 65, 72])
        assert found == [ChordTension(TensionKind.ELEVEN, TensionClassification.SUSPENSION)]
        assert detect_tensions(c_major, recipe, [43, 59, 65, 72]).third_clash

    def test_sharp_eleven_colours_major(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        found = detect_eleventh_tensions(c_major, recipe, [48, 55, 64, 66])
        assert found == [ChordTension(TensionKind.SHARP_ELEVEN, TensionClassification.COLOR_TONE)]

    def test_sharp_eleven_over_minor_is_non_chord_tone(self, c_major):
        recipe = parse_chord_symbol(c_major, "Cm")
        found = detect_eleventh_tensions(c_major, recipe, [48, 55, 63, 66])
        assert found[0].classification is TensionClassification.NON_CHORD_TONE

    def test_only_soprano_is_checked(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        assert detect_eleventh_tensions(c_major, recipe, [48, 53, 64, 72]) == []

    def test_classify_rejects_ninths(self, c_major):
        with pytest.raises(ValueError):
            classify_eleventh(TensionKind.NINE, parse_roman_numeral(c_major, "I"))


class TestDetectTensions:

    def test_third_clash(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        detected = detect_tensions(c_major, recipe, [48, 55, 64, 65])
        assert detected.third_clash
        assert detected.has_tensions
        assert detected.analyzed_pcs == [0, 7, 4, 5]

    def test_ninth_and_eleventh_together(self, c_major):
        recipe = parse_roman_numeral(c_major, "I")
        detected = detect_tensions(c_major, recipe, [48, 62, 64, 66])
        assert [t.label for t in detected.tensions] == ["9", "#11"]
        assert not detected.third_clash

    def test_empty_voicing(self, c_major):
        detected = detect_tensions(c_major, parse_roman_numeral(c_major, "I"), [])
        assert not detected.has_tensions
