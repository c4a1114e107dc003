"""
MotionTempo - Speed Mapper
Maps a smoothed activity value onto a discrete playback speed.

Discrete bands instead of a proportional curve keep the applied speed from
wandering with every small activity change.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence

# (exclusive upper activity bound, speed offset from base)
DEFAULT_SPEED_STEPS: tuple[tuple[float, float], ...] = (
    (2.0, 0.0),
    (4.0, 0.05),
    (6.0, 0.10),
    (8.0, 0.15),
    (10.0, 0.20),
)
DEFAULT_TOP_OFFSET = 0.25

# Keeps B + offset free of float noise (1.10 + 0.05 -> 1.15, not 1.1500000000000001)
_SPEED_DECIMALS = 6


@dataclass(frozen=True)
class SpeedBand:
    upper_bound: float
    speed: float


def build_speed_table(base_speed: float, steps: Sequence[Sequence[float]],
                      top_offset: float) -> tuple[tuple[SpeedBand, ...], float]:
    """Anchor (bound, offset) steps at base_speed.
    Raises ValueError unless bounds and speeds are strictly increasing."""
    if base_speed <= 0:
        raise ValueError(f"base_speed must be positive, got {base_speed}")
    bands = []
    for entry in steps:
        bound, offset = float(entry[0]), float(entry[1])
        bands.append(SpeedBand(bound, round(base_speed + offset, _SPEED_DECIMALS)))
    top_speed = round(base_speed + float(top_offset), _SPEED_DECIMALS)

    for prev, cur in zip(bands, bands[1:]):
        if cur.upper_bound <= prev.upper_bound or cur.speed <= prev.speed:
            raise ValueError(f"speed steps must be strictly increasing: {prev} -> {cur}")
    if bands and top_speed <= bands[-1].speed:
        raise ValueError(f"top speed {top_speed} must exceed last band speed {bands[-1].speed}")
    return tuple(bands), top_speed


class SpeedMapper:
    """Pure step function from activity to target speed for a fixed base speed."""

    def __init__(self, base_speed: float, steps: Sequence[Sequence[float]] = DEFAULT_SPEED_STEPS,
                 top_offset: float = DEFAULT_TOP_OFFSET):
        self.base_speed = float(base_speed)
        self.bands, self.top_speed = build_speed_table(self.base_speed, steps, top_offset)
        self._bounds = [band.upper_bound for band in self.bands]

    def target_speed(self, activity: float) -> float:
        # Bounds are exclusive: activity == bound falls into the next band
        index = bisect_right(self._bounds, activity)
        if index < len(self.bands):
            return self.bands[index].speed
        return self.top_speed

    @property
    def speeds(self) -> list[float]:
        return [band.speed for band in self.bands] + [self.top_speed]
