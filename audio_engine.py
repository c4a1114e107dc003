"""
MotionTempo - Audio Engine interface
The control loop only ever talks to an AudioEngine: load, start/stop and
ramped parameter changes. How the audio graph interpolates and renders is
the engine's business.
"""

import asyncio

from logging_utils import log_event


class AudioEngine:
    """Base class for playback engines.

    Subclasses implement load/start/stop/set_rate and, when they can shift
    pitch independently of rate, set_pitch_shift with supports_pitch_shift=True.
    """
    name = "engine"
    supports_pitch_shift = False

    def __init__(self):
        self.loaded = False
        self.playing = False

    async def load(self, resource: str, loop: bool = True) -> bool:
        """Acquire the audio resource. Returns True on success, False on failure."""
        raise NotImplementedError

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def set_rate(self, value: float, ramp_seconds: float = 0.0) -> None:
        raise NotImplementedError

    def set_pitch_shift(self, semitones: float, ramp_seconds: float = 0.0) -> None:
        raise NotImplementedError(f"{self.name} has no pitch shift unit")

    def close(self) -> None:
        """Release engine resources. Safe to call more than once."""
        self.playing = False
        self.loaded = False


class DryRunAudioEngine(AudioEngine):
    """Engine that only logs what it would do. Used for --dry-run and demos
    without an output device."""
    name = "dry-run"
    supports_pitch_shift = True

    def __init__(self, load_delay_s: float = 0.0, fail_load: bool = False):
        super().__init__()
        self.load_delay_s = load_delay_s
        self.fail_load = fail_load
        self.resource = None
        self.rate = 1.0
        self.pitch_semitones = 0.0
        self.load_calls = 0

    async def load(self, resource: str, loop: bool = True) -> bool:
        self.load_calls += 1
        if self.load_delay_s > 0:
            await asyncio.sleep(self.load_delay_s)
        if self.fail_load:
            log_event("ERROR", "AudioEngine", "Dry-run load failure requested", resource=resource)
            return False
        self.resource = resource
        self.loaded = True
        log_event("INFO", "AudioEngine", "Dry-run loaded", resource=resource, loop=loop)
        return True

    def start(self) -> None:
        self.playing = True
        log_event("INFO", "AudioEngine", "Dry-run start", rate=f"{self.rate:.4f}")

    def stop(self) -> None:
        self.playing = False
        log_event("INFO", "AudioEngine", "Dry-run stop")

    def set_rate(self, value: float, ramp_seconds: float = 0.0) -> None:
        if abs(value - self.rate) > 1e-9:
            log_event("DEBUG", "AudioEngine", "rate", value=f"{value:.4f}", ramp=ramp_seconds)
        self.rate = value

    def set_pitch_shift(self, semitones: float, ramp_seconds: float = 0.0) -> None:
        if abs(semitones - self.pitch_semitones) > 1e-9:
            log_event("DEBUG", "AudioEngine", "pitch", semitones=f"{semitones:.3f}", ramp=ramp_seconds)
        self.pitch_semitones = semitones
