# MotionTempo Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass
from enum import IntEnum
from typing import List

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

class PitchMode(IntEnum):
    """How speed changes are presented to the audio engine"""
    PITCH_CORRECTION = 1   # Rate + compensating pitch shift (resampling engines)
    RATE_ONLY = 2          # Rate only (engine already decouples pitch from rate)

@dataclass
class PlaybackConfig:
    """Audio source and playback parameter settings"""
    base_audio_resource: str = "kanon_1.10x.wav"  # Audio file played in a loop
    base_speed: float = 1.10          # Speed at which the source has its natural pitch (rate 1.0)
    loop: bool = True
    pitch_mode: PitchMode = PitchMode.PITCH_CORRECTION
    ramp_seconds: float = 0.05        # Ramp for steady-state rate/pitch updates
    initial_ramp_seconds: float = 0.0 # Ramp applied on first start (0 = instant)
    load_timeout_s: float = 15.0      # Engine load gives up after this long

@dataclass
class MotionConfig:
    """Accelerometer input and activity estimation"""
    enabled: bool = True              # False = motion permission denied
    host: str = "0.0.0.0"             # UDP listen address for sensor datagrams
    port: int = 5555
    window_duration_ms: int = 2000    # Sliding window length
    min_sample_count: int = 10        # Below this the activity is treated as 0
    smoothing_factor: float = 0.05    # Per-tick EMA factor for activity

@dataclass
class SpeedConfig:
    """Activity -> speed step table, offsets are relative to base_speed"""
    # [exclusive upper activity bound, speed offset]
    steps: List[List[float]] = field(default_factory=lambda: [
        [2.0, 0.0],
        [4.0, 0.05],
        [6.0, 0.10],
        [8.0, 0.15],
        [10.0, 0.20],
    ])
    top_offset: float = 0.25          # Catch-all band above the last bound
    deadband: float = 0.01            # Speed control is only rewritten beyond this delta
    slider_min: float = 0.80          # Manual speed control range
    slider_max: float = 1.60

@dataclass
class DisplayConfig:
    """Visualization settings"""
    visual_max_activity: float = 12.0 # Activity at which the bar reads 100%
    status_interval_s: float = 1.0    # Console status line cadence (headless mode)
    history_seconds: float = 20.0     # Activity trace length in the GUI

@dataclass
class ControlConfig:
    """Control loop cadence"""
    tick_hz: float = 60.0             # Render-frame equivalent

@dataclass
class AudioConfig:
    """Audio output settings"""
    # Device index - None means use system default
    device_index: int | None = None
    block_size: int = 0               # 0 lets PortAudio choose
    pitch_window_s: float = 0.1       # Pitch shifter delay window (Tone.js PitchShift default)
    gain: float = 1.0

@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    speed: SpeedConfig = field(default_factory=SpeedConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    control: ControlConfig = field(default_factory=ControlConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)

    # Global
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; IntEnum fields are coerced when possible."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        if isinstance(current, IntEnum):
            try:
                setattr(target, key, current.__class__(value))
                continue
            except (ValueError, TypeError):
                log_event("WARNING", "Config", f"Could not convert {key} to {current.__class__.__name__}, keeping default")
                continue

        setattr(target, key, value)


def _clamped_float(value, default: float, lo: float, hi: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        value = default
    return max(lo, min(hi, value))


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Adds defaults for newly introduced fields and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    if version < 1:
        # Pre-1 configs had no pitch mode / initial ramp and could carry nulls
        if config.playback.pitch_mode is None:
            config.playback.pitch_mode = PitchMode.PITCH_CORRECTION
        if config.playback.initial_ramp_seconds is None:
            config.playback.initial_ramp_seconds = 0.0
        if config.playback.load_timeout_s is None:
            config.playback.load_timeout_s = 15.0
        if not config.speed.steps:
            config.speed.steps = SpeedConfig().steps

    # Always clamp safety ranges
    config.motion.smoothing_factor = _clamped_float(config.motion.smoothing_factor, 0.05, 0.001, 1.0)
    config.motion.window_duration_ms = int(_clamped_float(config.motion.window_duration_ms, 2000, 100, 60000))
    config.motion.min_sample_count = int(_clamped_float(config.motion.min_sample_count, 10, 1, 10000))
    config.control.tick_hz = _clamped_float(config.control.tick_hz, 60.0, 1.0, 240.0)
    config.playback.ramp_seconds = _clamped_float(config.playback.ramp_seconds, 0.05, 0.0, 5.0)
    config.display.visual_max_activity = _clamped_float(config.display.visual_max_activity, 12.0, 0.1, 1000.0)

    config.version = CURRENT_CONFIG_VERSION
