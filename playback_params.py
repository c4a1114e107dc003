"""
MotionTempo - Playback Parameter Translator
Converts a target speed into what the audio engine is told to do.

rate = target_speed / base_speed. A resampling engine raises pitch by
12*log2(rate) semitones when it speeds up, so in pitch-correction mode we
ask for the exact opposite shift and get tempo change without pitch change.
"""

import math
from dataclasses import dataclass
from typing import Optional

from audio_engine import AudioEngine
from config import PitchMode


@dataclass(frozen=True)
class PlaybackParameters:
    rate: float
    pitch_semitones: Optional[float]  # None in rate-only mode
    ramp_seconds: float = 0.0


def pitch_correction_semitones(rate: float) -> float:
    """Semitone shift that cancels the pitch change of resampling at `rate`."""
    return -12.0 * math.log2(rate)


def compute_playback_parameters(target_speed: float, base_speed: float,
                                mode: PitchMode = PitchMode.PITCH_CORRECTION,
                                ramp_seconds: float = 0.0) -> PlaybackParameters:
    if target_speed <= 0 or base_speed <= 0:
        raise ValueError(f"speeds must be positive (target={target_speed}, base={base_speed})")
    rate = target_speed / base_speed
    pitch = pitch_correction_semitones(rate) if mode == PitchMode.PITCH_CORRECTION else None
    return PlaybackParameters(rate=rate, pitch_semitones=pitch, ramp_seconds=max(0.0, float(ramp_seconds)))


class PlaybackTranslator:
    """Pushes rate (and pitch correction) for a target speed into the engine."""

    def __init__(self, engine: Optional[AudioEngine], base_speed: float,
                 mode: PitchMode = PitchMode.PITCH_CORRECTION):
        self.engine = engine
        self.base_speed = float(base_speed)
        self.mode = PitchMode(mode)
        self.last_applied: Optional[PlaybackParameters] = None

    def ready(self) -> bool:
        engine = self.engine
        if engine is None or not engine.loaded:
            return False
        if self.mode == PitchMode.PITCH_CORRECTION and not engine.supports_pitch_shift:
            return False
        return True

    def apply(self, target_speed: float, ramp_seconds: float) -> Optional[PlaybackParameters]:
        """Apply target_speed over ramp_seconds (0 = instant).
        Silently does nothing until the engine (and pitch unit) is initialized."""
        if not self.ready():
            return None

        params = compute_playback_parameters(target_speed, self.base_speed, self.mode, ramp_seconds)
        self.engine.set_rate(params.rate, params.ramp_seconds)
        if params.pitch_semitones is not None:
            self.engine.set_pitch_shift(params.pitch_semitones, params.ramp_seconds)
        self.last_applied = params
        return params
