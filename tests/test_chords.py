"""Tests for chord recipes, identifier parsing and display names."""
import pytest

from chordlab.errors import ParseFailure
from chordlab.theory.chords import (
    ChordEvent,
    ChordExtension,
    ChordInversion,
    ChordQuality,
    ChordRecipe,
    ChordToneRole,
    SeventhQuality,
    TensionKind,
    bass_pitch_class,
    build_chord_pitches,
    chord_tone_pitch_classes,
    is_augmented_fifth,
    parse_chord_identifier,
    parse_chord_symbol,
    parse_roman_numeral,
    recipe_to_roman,
    recipe_to_symbol,
    root_pitch_class,
)
from chordlab.theory.keys import Key, ScaleMode


def _all_recipes():
    for degree in range(1, 8):
        for quality in ChordQuality:
            yield ChordRecipe(degree=degree, quality=quality)
            for seventh in SeventhQuality:
                if seventh is SeventhQuality.NONE:
                    continue
                yield ChordRecipe(degree=degree, quality=quality,
                                  extension=ChordExtension.SEVENTH, seventh_quality=seventh)


class TestChordRecipe:
    """Test recipe validation and tone ordering."""

    def test_degree_range(self):
        with pytest.raises(ValueError):
            ChordRecipe(degree=8)
        with pytest.raises(ValueError):
            ChordRecipe(degree=0)

    def test_seventh_fields_must_agree(self):
        with pytest.raises(ValueError):
            ChordRecipe(degree=1, extension=ChordExtension.SEVENTH)
        with pytest.raises(ValueError):
            ChordRecipe(degree=1, seventh_quality=SeventhQuality.DOMINANT7)

    def test_third_inversion_needs_seventh(self):
        with pytest.raises(ValueError):
            ChordRecipe(degree=1, inversion=ChordInversion.THIRD)

    @pytest.mark.parametrize("tonic", [0, 3, 7, 11])
    def test_tone_order_for_every_recipe(self, tonic):
        """Root first, no duplicates, three or four tones."""
        key = Key(tonic)
        for recipe in _all_recipes():
            tones = chord_tone_pitch_classes(key, recipe)
            assert len(tones) == (4 if recipe.has_seventh else 3)
            assert len(set(tones)) == len(tones)
            assert tones[0] == root_pitch_class(key, recipe)

    def test_tone_order_ignores_inversion(self, c_major):
        recipe = parse_roman_numeral(c_major, "V7/3rd")
        assert chord_tone_pitch_classes(c_major, recipe) == [7, 11, 2, 5]
        assert bass_pitch_class(c_major, recipe) == 11

    def test_dominant_seventh_tones(self, c_major):
        recipe = parse_roman_numeral(c_major, "V7")
        assert chord_tone_pitch_classes(c_major, recipe) == [7, 11, 2, 5]

    def test_augmented_and_diminished_fifths(self, c_major):
        assert chord_tone_pitch_classes(c_major, parse_roman_numeral(c_major, "I+")) == [0, 4, 8]
        assert chord_tone_pitch_classes(c_major, parse_roman_numeral(c_major, "vii°")) == [11, 2, 5]

    def test_is_augmented_fifth(self, c_major):
        aug = parse_roman_numeral(c_major, "I+")
        assert is_augmented_fifth(aug, ChordToneRole.FIFTH)
        assert not is_augmented_fifth(aug, ChordToneRole.THIRD)
        assert not is_augmented_fifth(parse_roman_numeral(c_major, "I"), ChordToneRole.FIFTH)

    def test_build_chord_pitches(self, c_major):
        assert build_chord_pitches(c_major, parse_roman_numeral(c_major, "I")) == [60, 64, 67]
        assert build_chord_pitches(c_major, parse_roman_numeral(c_major, "I/3rd")) == [64, 67, 72]
        assert build_chord_pitches(c_major, parse_roman_numeral(c_major, "V7"), 4) == [67, 71, 74, 77]

    def test_chord_event_tones(self, c_major):
        event = ChordEvent(c_major, parse_roman_numeral(c_major, "IV"), melody_midi=65)
        assert event.tone_pitch_classes() == [5, 9, 0]


class TestRomanNumerals:
    """Test Roman numeral parsing."""

    def test_major_and_minor_case(self, c_major):
        assert parse_roman_numeral(c_major, "IV").quality is ChordQuality.MAJOR
        assert parse_roman_numeral(c_major, "vi").quality is ChordQuality.MINOR

    def test_sevenths(self, c_major):
        v7 = parse_roman_numeral(c_major, "V7")
        assert v7.degree == 5
        assert v7.seventh_quality is SeventhQuality.DOMINANT7
        ii7 = parse_roman_numeral(c_major, "ii7")
        assert ii7.quality is ChordQuality.MINOR
        assert ii7.seventh_quality is SeventhQuality.MINOR7
        assert parse_roman_numeral(c_major, "IVmaj7").seventh_quality is SeventhQuality.MAJOR7

    def test_diminished_sevenths(self, c_major):
        half = parse_roman_numeral(c_major, "viiø7")
        assert half.quality is ChordQuality.DIMINISHED
        assert half.seventh_quality is SeventhQuality.HALF_DIMINISHED7
        full = parse_roman_numeral(c_major, "vii°7")
        assert full.seventh_quality is SeventhQuality.DIMINISHED7
        assert chord_tone_pitch_classes(c_major, full) == [11, 2, 5, 8]

    def test_chromatic_roots(self, c_major):
        flat_six = parse_roman_numeral(c_major, "bVI")
        assert (flat_six.degree, flat_six.root_offset) == (6, -1)
        assert root_pitch_class(c_major, flat_six) == 8
        assert root_pitch_class(c_major, parse_roman_numeral(c_major, "#IV")) == 6

    def test_natural_prefix_uses_parallel_ionian(self, a_minor):
        recipe = parse_roman_numeral(a_minor, "nVII")
        assert root_pitch_class(a_minor, recipe) == 8

    def test_inversions(self, c_major):
        assert parse_roman_numeral(c_major, "V/3rd").inversion is ChordInversion.FIRST
        assert parse_roman_numeral(c_major, "I/5th").inversion is ChordInversion.SECOND
        assert parse_roman_numeral(c_major, "V7/7th").inversion is ChordInversion.THIRD

    @pytest.mark.parametrize("text", ["", "X", "Vsus", "V/7th", "bb"])
    def test_invalid_numerals(self, c_major, text):
        with pytest.raises(ParseFailure):
            parse_roman_numeral(c_major, text)

    def test_parse_failure_is_value_error(self, c_major):
        with pytest.raises(ValueError):
            parse_roman_numeral(c_major, "Q7")


class TestChordSymbols:
    """Test absolute chord symbol parsing."""

    def test_diatonic_root(self, c_major):
        recipe = parse_chord_symbol(c_major, "G7")
        assert recipe.degree == 5
        assert recipe.root_offset == 0
        assert recipe.seventh_quality is SeventhQuality.DOMINANT7

    def test_flat_root_reads_as_lowered_degree(self, c_major):
        recipe = parse_chord_symbol(c_major, "Ab")
        assert (recipe.degree, recipe.root_offset) == (6, -1)
        recipe = parse_chord_symbol(c_major, "Bb")
        assert (recipe.degree, recipe.root_offset) == (7, -1)

    def test_sharp_root_reads_as_raised_degree(self, c_major):
        recipe = parse_chord_symbol(c_major, "F#dim")
        assert (recipe.degree, recipe.root_offset) == (4, 1)
        assert recipe.quality is ChordQuality.DIMINISHED

    def test_qualities(self, c_major):
        assert parse_chord_symbol(c_major, "Caug").quality is ChordQuality.AUGMENTED
        assert parse_chord_symbol(c_major, "Dm7").seventh_quality is SeventhQuality.MINOR7
        half = parse_chord_symbol(c_major, "Bm7b5")
        assert half.quality is ChordQuality.DIMINISHED
        assert half.seventh_quality is SeventhQuality.HALF_DIMINISHED7
        assert parse_chord_symbol(c_major, "Cmaj7").seventh_quality is SeventhQuality.MAJOR7
        assert parse_chord_symbol(c_major, "Bdim7").seventh_quality is SeventhQuality.DIMINISHED7

    def test_tensions(self):
        e_major = Key(4)
        recipe = parse_chord_symbol(e_major, "B7b9")
        assert recipe.seventh_quality is SeventhQuality.DOMINANT7
        assert recipe.tensions == (TensionKind.FLAT_NINE,)

        c_major = Key(0)
        add9 = parse_chord_symbol(c_major, "Cadd9")
        assert add9.tensions == (TensionKind.NINE,)
        assert not add9.has_seventh
        nine = parse_chord_symbol(c_major, "C9")
        assert nine.seventh_quality is SeventhQuality.DOMINANT7
        assert nine.tensions == (TensionKind.NINE,)

    def test_slash_bass(self, c_major):
        recipe = parse_chord_symbol(c_major, "C/E")
        assert recipe.inversion is ChordInversion.FIRST
        assert bass_pitch_class(c_major, recipe) == 4

    @pytest.mark.parametrize("text", ["C/D", "Csus4", "H7", "C7b10"])
    def test_invalid_symbols(self, c_major, text):
        with pytest.raises(ParseFailure):
            parse_chord_symbol(c_major, text)

    def test_symbol_and_numeral_agree(self, c_major):
        """'G7' and 'V7' in C describe the same recipe."""
        assert parse_chord_identifier(c_major, "G7") == parse_chord_identifier(c_major, "V7")
        assert parse_chord_identifier(c_major, "Am") == parse_chord_identifier(c_major, "vi")

    def test_identifier_rejects_empty(self, c_major):
        with pytest.raises(ParseFailure):
            parse_chord_identifier(c_major, "   ")


class TestDisplayNames:
    """Test Roman numeral and symbol rendering."""

    @pytest.mark.parametrize("numeral", ["V7", "vii°", "iiø7", "bVI", "I+", "Imaj7", "V/3rd", "vii°7"])
    def test_roman_round_trip(self, c_major, numeral):
        assert recipe_to_roman(c_major, parse_roman_numeral(c_major, numeral)) == numeral

    @pytest.mark.parametrize("numeral,symbol", [
        ("V7", "G7"),
        ("bVI", "Ab"),
        ("vii°", "Bdim"),
        ("I+", "Caug"),
        ("ii7", "Dm7"),
        ("I/3rd", "C/E"),
        ("viiø7", "Bm7b5"),
        ("bVImaj7", "Abmaj7"),
    ])
    def test_symbols_in_c(self, c_major, numeral, symbol):
        assert recipe_to_symbol(c_major, parse_roman_numeral(c_major, numeral)) == symbol

    def test_symbol_keeps_tensions(self):
        e_major = Key(4)
        assert recipe_to_symbol(e_major, parse_chord_symbol(e_major, "B7b9")) == "B7b9"

    def test_symbol_spelling_follows_key(self):
        f_major = Key(5)
        assert recipe_to_symbol(f_major, parse_roman_numeral(f_major, "IV")) == "Bb"
        d_minor = Key(2, ScaleMode.AEOLIAN)
        assert recipe_to_symbol(d_minor, parse_chord_symbol(d_minor, "A7")) == "A7"
