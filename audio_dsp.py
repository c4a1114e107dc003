"""
MotionTempo - block DSP used by the sounddevice engine.

All processors work on float32 (frames, channels) blocks and keep their own
streaming state, so the audio callback only has to chain them.
"""

import math

import numpy as np


class ParamRamp:
    """Per-sample linear ramp toward a target value (0 samples = jump)."""

    def __init__(self, value: float):
        self.value = float(value)
        self.target = float(value)
        self._step = 0.0
        self._remaining = 0

    def ramp_to(self, target: float, ramp_seconds: float, sample_rate: int) -> None:
        n = int(round(max(0.0, ramp_seconds) * sample_rate))
        self.target = float(target)
        if n <= 0:
            self.value = self.target
            self._remaining = 0
            self._step = 0.0
            return
        self._step = (self.target - self.value) / n
        self._remaining = n

    @property
    def ramping(self) -> bool:
        return self._remaining > 0

    def render(self, frames: int) -> np.ndarray:
        out = np.full(frames, self.value, dtype=np.float64)
        if self._remaining <= 0 or frames <= 0:
            return out
        k = min(frames, self._remaining)
        out[:k] = self.value + self._step * np.arange(1, k + 1)
        self._remaining -= k
        self.value = self.target if self._remaining == 0 else float(out[k - 1])
        out[k:] = self.value
        return out


class LoopingResampler:
    """Reads a source buffer at a per-sample variable rate with linear
    interpolation. Speeding up raises pitch, like tape or a simple player."""

    def __init__(self, source: np.ndarray, loop: bool = True):
        if source.ndim == 1:
            source = source[:, None]
        self.source = np.ascontiguousarray(source, dtype=np.float32)
        self.loop = loop
        self.position = 0.0
        self.finished = False

    @property
    def channels(self) -> int:
        return self.source.shape[1]

    def reset(self) -> None:
        self.position = 0.0
        self.finished = False

    def read(self, rates: np.ndarray) -> np.ndarray:
        frames = len(rates)
        n = self.source.shape[0]
        out = np.zeros((frames, self.channels), dtype=np.float32)
        if frames == 0 or n == 0 or self.finished:
            return out

        positions = self.position + np.concatenate(([0.0], np.cumsum(rates[:-1])))
        idx = np.floor(positions).astype(np.int64)
        frac = (positions - idx).astype(np.float32)[:, None]

        if self.loop:
            i0 = idx % n
            i1 = (idx + 1) % n
            out[:] = self.source[i0] * (1.0 - frac) + self.source[i1] * frac
            self.position = float((self.position + float(np.sum(rates))) % n)
            return out

        valid = idx < n
        i0 = np.minimum(idx, n - 1)
        i1 = np.minimum(idx + 1, n - 1)
        mixed = self.source[i0] * (1.0 - frac) + self.source[i1] * frac
        out[valid] = mixed[valid]
        self.position += float(np.sum(rates))
        if self.position >= n:
            self.finished = True
        return out


class DelayLinePitchShifter:
    """Two-tap modulated delay line pitch shifter.

    Each tap's delay sweeps a sawtooth across `window_s`; a delay changing
    at d' samples per sample resamples by (1 - d'), so sweeping at
    1 - 2**(semitones/12) shifts pitch by `semitones`. The taps are half a
    window apart and crossfaded with sine windows (constant power).
    """

    _EPS = 1e-6

    def __init__(self, sample_rate: int, channels: int, window_s: float = 0.1):
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.window = max(2.0, window_s * self.sample_rate)
        self._history_len = int(math.ceil(self.window)) + 3
        self._history = np.zeros((self._history_len, self.channels), dtype=np.float32)
        self.phase = 0.0
        self._bypassed = True

    def reset(self) -> None:
        self._history.fill(0.0)
        self.phase = 0.0
        self._bypassed = True

    def _wet(self, buf: np.ndarray, semitones: np.ndarray, frames: int) -> np.ndarray:
        factor = np.power(2.0, semitones / 12.0)
        increments = (1.0 - factor) / self.window
        phases = self.phase + np.cumsum(increments)
        self.phase = float(phases[-1] % 1.0)

        out = np.zeros((frames, self.channels), dtype=np.float32)
        here = self._history_len + np.arange(frames)
        for offset in (0.0, 0.5):
            ph = (phases + offset) % 1.0
            read_pos = here - 1.0 - ph * self.window
            i0 = np.floor(read_pos).astype(np.int64)
            frac = (read_pos - i0).astype(np.float32)[:, None]
            tap = buf[i0] * (1.0 - frac) + buf[i0 + 1] * frac
            gain = np.sin(np.pi * ph).astype(np.float32)[:, None]
            out += tap * gain
        return out

    def process(self, block: np.ndarray, semitones: np.ndarray) -> np.ndarray:
        frames = block.shape[0]
        if frames == 0:
            return block
        buf = np.concatenate((self._history, block.astype(np.float32, copy=False)))
        self._history = buf[-self._history_len:].copy()

        bypass = bool(np.all(np.abs(semitones) < self._EPS))
        if bypass and self._bypassed:
            return block

        wet = self._wet(buf, semitones, frames)
        if bypass == self._bypassed:
            return wet

        # Crossfade across this block when entering/leaving bypass
        fade = np.linspace(0.0, 1.0, frames, dtype=np.float32)[:, None]
        if bypass:
            out = wet * (1.0 - fade) + block * fade
        else:
            out = block * (1.0 - fade) + wet * fade
        self._bypassed = bypass
        return out
