"""Tests for the four-voice voicing engine."""
import pytest

from chordlab.errors import Failure, InvalidVoicingRequest, VoicingInfeasible
from chordlab.theory.keys import Key, ScaleMode
from chordlab.theory.tone_priority import required_pitch_classes
from chordlab.timeline import build_regions
from chordlab.voicing.diagnostics import DiagCode, DiagnosticsCollector, NullSink
from chordlab.voicing.engine import (
    ALTO,
    BASS,
    SOPRANO,
    TENOR,
    VoiceRanges,
    VoicingEngine,
    VoicingSettings,
    voice_lead_regions,
)


class CountingNullSink(NullSink):
    """Disabled sink that records any call it should never receive."""

    def __init__(self):
        self.calls = 0

    def emit(self, event):
        self.calls += 1


def _lane_with(voicing, pc):
    return [m % 12 for m in voicing].index(pc)


class TestVoicingSettings:

    def test_default_ranges(self):
        ranges = VoiceRanges.from_settings(VoicingSettings())
        assert ranges.bands() == [(40, 60), (48, 67), (55, 74), (60, 81)]

    def test_relaxed_ranges_share_one_band(self):
        relaxed = VoiceRanges.from_settings(VoicingSettings()).relaxed()
        assert relaxed.bands() == [(40, 81)] * 4

    def test_inverted_limits_rejected(self):
        with pytest.raises(InvalidVoicingRequest):
            VoicingSettings(upper_min=80, upper_max=60)

    def test_empty_band_rejected(self):
        with pytest.raises(InvalidVoicingRequest):
            VoiceRanges.from_settings(VoicingSettings(upper_max=55))

    def test_from_dict(self):
        settings = VoicingSettings.from_dict({
            "registers": {"root_octave": 5},
            "spacing": {"soprano_alto": 7},
            "doubling": {"third": 9},
        })
        assert settings.root_octave == 5
        assert settings.bass_octave == 3
        assert settings.max_soprano_alto == 7
        assert settings.doubling_weights == (0, 9, 1, 5)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CHORDLAB_BASS_OCTAVE", "2")
        monkeypatch.setenv("CHORDLAB_UPPER_MAX", "79")
        settings = VoicingSettings.from_env(VoicingSettings(max_tenor_bass=19))
        assert settings.bass_octave == 2
        assert settings.upper_max == 79
        assert settings.root_octave == 4
        assert settings.max_tenor_bass == 19


class TestInvariants:
    """Properties that hold for every voiced region."""

    PROGRESSIONS = [
        ("I IV V I", 0, ScaleMode.IONIAN),
        ("I vi ii7 V7 I", 0, ScaleMode.IONIAN),
        ("ii7 V7 Imaj7", 10, ScaleMode.IONIAN),
        ("C Caug F", 0, ScaleMode.IONIAN),
        ("Am Dm E7 Am", 9, ScaleMode.AEOLIAN),
        ("F#m7b5 B7 Em", 4, ScaleMode.AEOLIAN),
        ("Bdim Ddim Fdim Abdim Bdim Ddim Fdim Abdim", 0, ScaleMode.IONIAN),
        ("I bVI bVII I", 0, ScaleMode.IONIAN),
        ("i iv V7/3rd i", 2, ScaleMode.DORIAN),
    ]

    @pytest.mark.parametrize("progression,tonic,mode", PROGRESSIONS)
    def test_voices_never_cross(self, voice_progression, progression, tonic, mode):
        _, voiced = voice_progression(progression, Key(tonic, mode))
        for chord in voiced:
            b, t, a, s = chord.voices_midi
            assert b < t <= a <= s

    @pytest.mark.parametrize("progression,tonic,mode", PROGRESSIONS)
    def test_required_tones_present(self, voice_progression, progression, tonic, mode):
        regions, voiced = voice_progression(progression, Key(tonic, mode))
        for region, chord in zip(regions, voiced):
            event = region.chord_event
            required = set(required_pitch_classes(event.key, event.recipe))
            assert required <= set(chord.pitch_classes)

    @pytest.mark.parametrize("progression,tonic,mode", PROGRESSIONS)
    def test_bass_follows_inversion(self, voice_progression, progression, tonic, mode):
        from chordlab.theory.chords import bass_pitch_class

        regions, voiced = voice_progression(progression, Key(tonic, mode))
        for region, chord in zip(regions, voiced):
            event = region.chord_event
            assert chord.bass % 12 == bass_pitch_class(event.key, event.recipe)

    def test_diminished_chain_keeps_identity(self, voice_progression):
        regions, voiced = voice_progression("Bdim Ddim Fdim Abdim Bdim Ddim Fdim Abdim")
        assert len(voiced) == 8
        for region, chord in zip(regions, voiced):
            root = region.chord_event.tone_pitch_classes()[0]
            assert {root, (root + 3) % 12, (root + 6) % 12} <= set(chord.pitch_classes)

    def test_melody_lock(self, voice_progression):
        melody = [72, 69, 71, 72]
        _, voiced = voice_progression("I IV V I", melody=melody)
        assert [v.soprano for v in voiced] == melody
        assert [v.melody_midi for v in voiced] == melody


class TestScenarios:
    """Literal progressions with known outcomes."""

    def test_seventh_of_g7_falls_to_e(self, voice_progression):
        _, voiced = voice_progression("G7 C")
        lane = _lane_with(voiced[0].voices_midi, 5)
        assert voiced[1].voices_midi[lane] % 12 == 4
        assert voiced[0].voices_midi[lane] - voiced[1].voices_midi[lane] == 1

    def test_seventh_of_c7_falls_to_a_flat(self, voice_progression):
        _, voiced = voice_progression("C7 Fm")
        lane = _lane_with(voiced[0].voices_midi, 10)
        assert voiced[1].voices_midi[lane] % 12 == 8
        assert voiced[0].voices_midi[lane] - voiced[1].voices_midi[lane] == 2

    def test_seventh_resolves_in_minor(self, voice_progression, a_minor):
        _, voiced = voice_progression("E7 Am", a_minor)
        lane = _lane_with(voiced[0].voices_midi, 2)
        assert voiced[1].voices_midi[lane] % 12 == 0

    def test_seventh_prefers_half_step(self, voice_progression):
        """B in Cmaj7 can fall to Bb or A in Bbmaj7; the half step wins."""
        _, voiced = voice_progression("Cmaj7 Bbmaj7")
        lane = _lane_with(voiced[0].voices_midi, 11)
        assert voiced[1].voices_midi[lane] % 12 == 10

    def test_augmented_fifth_rises(self, voice_progression):
        _, voiced = voice_progression("C Caug F", melody="E4 E4 C4")
        assert [v.soprano for v in voiced] == [64, 64, 60]
        lane = _lane_with(voiced[1].voices_midi, 8)
        assert voiced[2].voices_midi[lane] % 12 == 9
        last = voiced[2]
        assert last.tenor % 12 == 9
        assert last.alto % 12 == 9
        assert last.alto >= last.tenor

    def test_augmented_fifth_exact_voicing(self, voice_progression):
        _, voiced = voice_progression("C Caug F", melody="E4 E4 C4")
        assert [v.voices_midi for v in voiced] == [
            [48, 55, 60, 64],
            [48, 56, 60, 64],
            [53, 57, 57, 60],
        ]

    def test_diminished_triad_doubles_one_tone(self, voice_progression):
        _, voiced = voice_progression("Fdim")
        pcs = voiced[0].pitch_classes
        assert set(pcs) == {5, 8, 11}
        assert len(pcs) == 4
        assert voiced[0].voices_midi == [53, 56, 65, 71]

    def test_no_resolution_target_leaves_lane_free(self, voice_progression):
        """Bb in C7 has neither A nor Ab to fall to in C major."""
        _, voiced = voice_progression("C7 C")
        assert set(voiced[1].pitch_classes) <= {0, 4, 7}

    def test_melody_lock_wins_over_resolution(self, timeline_spec, c_major):
        regions = build_regions("G7 C", c_major, timeline_spec, melody="F5 F5").unwrap()
        collector = DiagnosticsCollector()
        voiced = voice_lead_regions(c_major, timeline_spec, regions, diagnostics=collector).unwrap()
        assert [v.soprano for v in voiced] == [77, 77]
        assert DiagCode.MELODY_CONSTRAINT_BLOCKED in collector.codes()


class TestVoicedChordMetadata:

    def test_region_fields(self, voice_progression):
        _, voiced = voice_progression("C Caug F", melody="E4 E4 C4")
        assert [v.region_index for v in voiced] == [0, 1, 2]
        assert [v.chord_symbol for v in voiced] == ["C", "Caug", "F"]
        assert [v.time_beats for v in voiced] == [0.0, 4.0, 8.0]
        assert all(v.duration_beats == 4.0 for v in voiced)
        assert voiced[1].chord_tones == [0, 4, 8]

    def test_motion_bookkeeping(self, voice_progression):
        _, voiced = voice_progression("C Caug F", melody="E4 E4 C4")
        assert voiced[0].voice_leading_cost == 0
        assert voiced[1].voice_leading_cost == 1
        assert voiced[1].common_tones_retained == 3
        assert voiced[2].voice_leading_cost == 13

    def test_lane_properties(self, voice_progression):
        _, voiced = voice_progression("Fdim")
        chord = voiced[0]
        assert (chord.bass, chord.tenor, chord.alto, chord.soprano) == tuple(
            chord.voices_midi[i] for i in (BASS, TENOR, ALTO, SOPRANO)
        )


class TestVoiceLeadRegions:
    """Test the tagged-result entry point."""

    def test_rejects_other_voice_counts(self, c_major, timeline_spec):
        regions = build_regions("I V", c_major, timeline_spec).unwrap()
        result = voice_lead_regions(c_major, timeline_spec, regions, voice_count=3)
        assert isinstance(result, Failure)
        assert isinstance(result.error, InvalidVoicingRequest)

    def test_invalid_registers(self, c_major, timeline_spec):
        regions = build_regions("I", c_major, timeline_spec).unwrap()
        result = voice_lead_regions(c_major, timeline_spec, regions, upper_min=90, upper_max=70)
        assert isinstance(result, Failure)

    def test_infeasible_region_reports_index(self, c_major, timeline_spec):
        """A soprano locked below the bass floor leaves no legal voicing."""
        regions = build_regions("I", c_major, timeline_spec, melody=[40]).unwrap()
        result = voice_lead_regions(c_major, timeline_spec, regions)
        assert isinstance(result, Failure)
        assert isinstance(result.error, VoicingInfeasible)
        assert result.error.region_index == 0
        assert result.context == {"regions": 1}

    def test_without_melody_lock(self, c_major, timeline_spec):
        regions = build_regions("I", c_major, timeline_spec, melody=[40]).unwrap()
        result = voice_lead_regions(c_major, timeline_spec, regions, use_melody_constraint=False)
        assert result.ok
        assert result.value[0].melody_midi is None

    def test_register_overrides(self, c_major, timeline_spec):
        regions = build_regions("I IV V I", c_major, timeline_spec).unwrap()
        low = voice_lead_regions(c_major, timeline_spec, regions, root_octave=3, bass_octave=2).unwrap()
        high = voice_lead_regions(c_major, timeline_spec, regions).unwrap()
        assert sum(v.soprano for v in low) < sum(v.soprano for v in high)

    def test_empty_regions(self):
        assert VoicingEngine().voice_regions([]) == []


class TestDiagnosticsSink:

    def test_null_sink_is_never_called(self, c_major, timeline_spec):
        sink = CountingNullSink()
        regions = build_regions("G7 C Caug F Fdim", c_major, timeline_spec, melody="F5 F5").unwrap()
        voice_lead_regions(c_major, timeline_spec, regions, diagnostics=sink).unwrap()
        assert sink.calls == 0

    def test_collector_sees_lifecycle(self, c_major, timeline_spec):
        collector = DiagnosticsCollector()
        regions = build_regions("I IV V I", c_major, timeline_spec).unwrap()
        voice_lead_regions(c_major, timeline_spec, regions, diagnostics=collector).unwrap()
        codes = collector.codes()
        assert DiagCode.VOICING_START in codes
        assert DiagCode.VOICING_DONE in codes
        assert codes.count(DiagCode.VOICED_REGION) == 4
        assert collector.region_count == 4

    def test_engine_defaults_to_null_sink(self):
        assert isinstance(VoicingEngine().sink, NullSink)
