"""
MotionTempo - sounddevice playback engine
Decodes the audio resource with soundfile and plays it through a PortAudio
output stream. Rate changes resample the signal (pitch follows rate); the
delay-line pitch shifter provides the compensating shift.
"""

import asyncio
import threading
from pathlib import Path
from typing import Optional

import sounddevice as sd
import soundfile as sf

from audio_dsp import DelayLinePitchShifter, LoopingResampler, ParamRamp
from audio_engine import AudioEngine
from config import Config
from logging_utils import log_event


class SoundDeviceEngine(AudioEngine):
    name = "sounddevice"
    supports_pitch_shift = True

    def __init__(self, config: Config):
        super().__init__()
        self.config = config
        self.sample_rate = 0
        self._lock = threading.Lock()
        self._stream: Optional[sd.OutputStream] = None
        self._resampler: Optional[LoopingResampler] = None
        self._shifter: Optional[DelayLinePitchShifter] = None
        self._rate = ParamRamp(1.0)
        self._pitch = ParamRamp(0.0)
        self._underflows = 0

    async def load(self, resource: str, loop: bool = True) -> bool:
        path = Path(resource).expanduser()
        try:
            data, sample_rate = await asyncio.to_thread(sf.read, str(path), dtype="float32", always_2d=True)
        except (OSError, RuntimeError) as e:
            log_event("ERROR", "AudioEngine", f"Could not decode {path}: {e}")
            return False

        if data.shape[0] == 0:
            log_event("ERROR", "AudioEngine", f"{path} contains no audio frames")
            return False

        channels = data.shape[1]
        self.sample_rate = int(sample_rate)
        self._resampler = LoopingResampler(data, loop=loop)
        self._shifter = DelayLinePitchShifter(self.sample_rate, channels, self.config.audio.pitch_window_s)

        try:
            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=channels,
                dtype="float32",
                device=self.config.audio.device_index,
                blocksize=self.config.audio.block_size,
                callback=self._callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            log_event("ERROR", "AudioEngine", f"Audio output error: {e}")
            self._stream = None
            return False

        self.loaded = True
        log_event("INFO", "AudioEngine", "Loaded", resource=path.name, sample_rate=self.sample_rate,
                  channels=channels, seconds=f"{data.shape[0] / self.sample_rate:.1f}", loop=loop)
        return True

    def _callback(self, outdata, frames, time_info, status):
        if status.output_underflow:
            self._underflows += 1

        with self._lock:
            if not self.playing or self._resampler is None:
                outdata.fill(0.0)
                return
            rates = self._rate.render(frames)
            semitones = self._pitch.render(frames)
            block = self._resampler.read(rates)
            block = self._shifter.process(block, semitones)
            outdata[:] = block * self.config.audio.gain
            if self._resampler.finished:
                self.playing = False

    def start(self) -> None:
        if not self.loaded:
            return
        with self._lock:
            # Starts from the top, like a fresh player start
            self._resampler.reset()
            self._shifter.reset()
            self.playing = True
        log_event("INFO", "AudioEngine", "Playback started", rate=f"{self._rate.target:.4f}",
                  pitch=f"{self._pitch.target:+.3f}")

    def stop(self) -> None:
        with self._lock:
            self.playing = False
        log_event("INFO", "AudioEngine", "Playback stopped", underflows=self._underflows)

    def set_rate(self, value: float, ramp_seconds: float = 0.0) -> None:
        with self._lock:
            if value == self._rate.target and (ramp_seconds > 0 or not self._rate.ramping):
                return
            self._rate.ramp_to(value, ramp_seconds, self.sample_rate)

    def set_pitch_shift(self, semitones: float, ramp_seconds: float = 0.0) -> None:
        with self._lock:
            if semitones == self._pitch.target and (ramp_seconds > 0 or not self._pitch.ramping):
                return
            self._pitch.ramp_to(semitones, ramp_seconds, self.sample_rate)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except sd.PortAudioError as e:
                log_event("WARNING", "AudioEngine", f"Error closing stream: {e}")
        super().close()


def describe_devices() -> str:
    """Human readable output device list for --list-devices."""
    lines = []
    for i, d in enumerate(sd.query_devices()):
        if d['max_output_channels'] <= 0:
            continue
        lines.append(f"[{i}] {d['name']} | out={d['max_output_channels']} sr={d['default_samplerate']:.0f}")
    return "\n".join(lines) if lines else "No output devices found"
