"""
MotionTempo - synthetic motion source
Generates gravity-inclusive accelerometer events for demos and dry runs
without a phone. Each profile is a vertical bounce (cadence + amplitude)
on top of gravity plus sensor noise.
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from logging_utils import log_event

GRAVITY = 9.81


@dataclass(frozen=True)
class MotionProfile:
    cadence_hz: float     # Steps per second
    amplitude: float      # Peak vertical acceleration on top of gravity
    noise: float          # Per-axis sensor noise (std)


PROFILES = {
    "still": MotionProfile(cadence_hz=0.0, amplitude=0.0, noise=0.02),
    "walk": MotionProfile(cadence_hz=1.9, amplitude=3.5, noise=0.3),
    "jog": MotionProfile(cadence_hz=2.6, amplitude=7.0, noise=0.5),
    "sprint": MotionProfile(cadence_hz=3.2, amplitude=13.0, noise=0.8),
}

# "interval" alternates between these every INTERVAL_PHASE_S seconds
INTERVAL_SEQUENCE = ("walk", "jog", "sprint", "jog")
INTERVAL_PHASE_S = 15.0


def profile_at(name: str, t: float) -> MotionProfile:
    if name == "interval":
        index = int(t // INTERVAL_PHASE_S) % len(INTERVAL_SEQUENCE)
        return PROFILES[INTERVAL_SEQUENCE[index]]
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"unknown motion profile '{name}' (choose from {profile_names()})") from None


def profile_names() -> list[str]:
    return list(PROFILES) + ["interval"]


class SyntheticMotionSource:
    def __init__(self, handler: Callable[[tuple[float, float, float]], object],
                 profile: str = "walk", rate_hz: float = 50.0, seed: Optional[int] = None):
        profile_at(profile, 0.0)
        self.handler = handler
        self.profile = profile
        self.rate_hz = rate_hz
        self._rng = np.random.default_rng(seed)
        self._task: Optional[asyncio.Task] = None

    def sample(self, t: float) -> tuple[float, float, float]:
        p = profile_at(self.profile, t)
        bounce = p.amplitude * math.sin(2.0 * math.pi * p.cadence_hz * t)
        sway = 0.3 * p.amplitude * math.sin(math.pi * p.cadence_hz * t)
        nx, ny, nz = self._rng.normal(0.0, p.noise, 3)
        return float(sway + nx), float(ny), float(GRAVITY + bounce + nz)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run(), name="synthetic-motion")
            log_event("INFO", "Motion", "Synthetic motion source started", profile=self.profile,
                      rate_hz=self.rate_hz)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        interval = 1.0 / self.rate_hz
        while True:
            self.handler(self.sample(loop.time() - t0))
            await asyncio.sleep(interval)
