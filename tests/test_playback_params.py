import math
import unittest

from audio_engine import AudioEngine, DryRunAudioEngine
from config import PitchMode
from playback_params import (
    PlaybackTranslator,
    compute_playback_parameters,
    pitch_correction_semitones,
)


class RecordingEngine(AudioEngine):
    name = "recording"

    def __init__(self, pitch=True):
        super().__init__()
        self.supports_pitch_shift = pitch
        self.calls = []

    def set_rate(self, value, ramp_seconds=0.0):
        self.calls.append(("rate", value, ramp_seconds))

    def set_pitch_shift(self, semitones, ramp_seconds=0.0):
        self.calls.append(("pitch", semitones, ramp_seconds))


class TestComputePlaybackParameters(unittest.TestCase):
    def test_rate_and_pitch_correction(self):
        params = compute_playback_parameters(1.25, 1.10, PitchMode.PITCH_CORRECTION, 0.05)
        self.assertAlmostEqual(params.rate, 1.136364, places=5)
        self.assertAlmostEqual(params.pitch_semitones, -2.2131, places=3)
        self.assertEqual(params.ramp_seconds, 0.05)

    def test_base_speed_means_no_change(self):
        params = compute_playback_parameters(1.10, 1.10)
        self.assertEqual(params.rate, 1.0)
        self.assertEqual(params.pitch_semitones, 0.0)

    def test_rate_only_has_no_pitch(self):
        params = compute_playback_parameters(1.30, 1.10, PitchMode.RATE_ONLY)
        self.assertAlmostEqual(params.rate, 1.181818, places=5)
        self.assertIsNone(params.pitch_semitones)

    def test_pitch_cancels_resampling_shift(self):
        for rate in (0.8, 1.0, 1.05, 1.2272, 1.5):
            resampled = 12.0 * math.log2(rate)
            self.assertAlmostEqual(resampled + pitch_correction_semitones(rate), 0.0, places=12)

    def test_negative_ramp_clamped(self):
        self.assertEqual(compute_playback_parameters(1.2, 1.1, ramp_seconds=-1).ramp_seconds, 0.0)

    def test_rejects_non_positive_speed(self):
        with self.assertRaises(ValueError):
            compute_playback_parameters(0.0, 1.10)
        with self.assertRaises(ValueError):
            compute_playback_parameters(1.2, 0.0)


class TestPlaybackTranslator(unittest.TestCase):
    def test_not_ready_until_loaded(self):
        engine = RecordingEngine()
        translator = PlaybackTranslator(engine, 1.10)
        self.assertIsNone(translator.apply(1.25, 0.05))
        self.assertEqual(engine.calls, [])

    def test_no_engine(self):
        self.assertIsNone(PlaybackTranslator(None, 1.10).apply(1.25, 0.05))

    def test_applies_rate_then_pitch(self):
        engine = RecordingEngine()
        engine.loaded = True
        translator = PlaybackTranslator(engine, 1.10)

        params = translator.apply(1.25, 0.05)

        self.assertEqual([c[0] for c in engine.calls], ["rate", "pitch"])
        self.assertAlmostEqual(engine.calls[0][1], 1.25 / 1.10)
        self.assertAlmostEqual(engine.calls[1][1], -12.0 * math.log2(1.25 / 1.10))
        self.assertEqual(engine.calls[0][2], 0.05)
        self.assertIs(translator.last_applied, params)

    def test_pitch_mode_requires_pitch_unit(self):
        engine = RecordingEngine(pitch=False)
        engine.loaded = True
        translator = PlaybackTranslator(engine, 1.10, PitchMode.PITCH_CORRECTION)
        self.assertFalse(translator.ready())
        self.assertIsNone(translator.apply(1.25, 0.05))
        self.assertEqual(engine.calls, [])

    def test_rate_only_skips_pitch(self):
        engine = RecordingEngine(pitch=False)
        engine.loaded = True
        translator = PlaybackTranslator(engine, 1.10, PitchMode.RATE_ONLY)
        translator.apply(1.20, 0.0)
        self.assertEqual([c[0] for c in engine.calls], ["rate"])

    def test_dry_run_engine_tracks_values(self):
        engine = DryRunAudioEngine()
        engine.loaded = True
        PlaybackTranslator(engine, 1.10).apply(1.35, 0.05)
        self.assertAlmostEqual(engine.rate, 1.35 / 1.10)
        self.assertAlmostEqual(engine.pitch_semitones, -12.0 * math.log2(1.35 / 1.10))


if __name__ == "__main__":
    unittest.main()
