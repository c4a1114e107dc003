"""
MotionTempo - Motion Sampler
Turns raw accelerometer events into a raw activity estimate.

Each accepted event contributes one magnitude sample to a time-bounded
sliding window. The activity is the population standard deviation of the
window magnitudes: a still device (gravity only) reads ~0 regardless of
orientation, while walking or running produces a jerky magnitude signal.
"""

import math
import time
from collections import deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from logging_utils import log_event


@dataclass(frozen=True)
class Sample:
    """One magnitude reading"""
    timestamp_ms: int
    magnitude: float


@dataclass
class ActivityState:
    """Shared activity values.

    target_activity is written only by MotionSampler, current_activity only
    by ActivitySmoother. Everyone else reads.
    """
    target_activity: float = 0.0
    current_activity: float = 0.0


def monotonic_ms() -> int:
    # Window timestamps must never decrease
    return time.monotonic_ns() // 1_000_000


def _axis(acceleration, name: str, index: int) -> float:
    if isinstance(acceleration, Mapping):
        return acceleration[name]
    if isinstance(acceleration, (Sequence, np.ndarray)) and not isinstance(acceleration, (str, bytes)):
        if len(acceleration) != 3:
            raise IndexError(f"expected 3 axes, got {len(acceleration)}")
        return acceleration[index]
    return getattr(acceleration, name)


def read_acceleration(acceleration) -> Optional[tuple[float, float, float]]:
    """Extract (x, y, z) from a 3-sequence, array, mapping or x/y/z object.
    Returns None for a missing or malformed payload."""
    if acceleration is None:
        return None
    try:
        x, y, z = (float(_axis(acceleration, name, i)) for i, name in enumerate("xyz"))
    except (KeyError, IndexError, AttributeError, TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
        return None
    return x, y, z


class MotionSampler:
    """Sliding-window standard deviation of acceleration magnitude."""

    def __init__(self, state: ActivityState, window_ms: int = 2000, min_samples: int = 10,
                 clock: Callable[[], int] = monotonic_ms):
        self.state = state
        self.window_ms = int(window_ms)
        self.min_samples = int(min_samples)
        self.clock = clock
        self.window: deque[Sample] = deque()

    def handle_motion(self, acceleration, now_ms: Optional[int] = None) -> bool:
        """Ingest one motion event. Returns False if the payload was dropped."""
        axes = read_acceleration(acceleration)
        if axes is None:
            log_event("DEBUG", "Motion", "Dropped motion event without usable acceleration")
            return False

        x, y, z = axes
        now = self.clock() if now_ms is None else int(now_ms)
        if self.window and now < self.window[-1].timestamp_ms:
            now = self.window[-1].timestamp_ms
        self.window.append(Sample(now, math.sqrt(x * x + y * y + z * z)))

        cutoff = now - self.window_ms
        while self.window and self.window[0].timestamp_ms < cutoff:
            self.window.popleft()

        if len(self.window) < self.min_samples:
            self.state.target_activity = 0.0
            return True

        magnitudes = np.fromiter((s.magnitude for s in self.window), dtype=np.float64, count=len(self.window))
        # Population std (ddof=0)
        self.state.target_activity = float(np.std(magnitudes))
        return True

    def reset(self) -> None:
        """Forget all samples, activity goes back to stillness."""
        self.window.clear()
        self.state.target_activity = 0.0

    @property
    def sample_count(self) -> int:
        return len(self.window)
