"""
MotionTempo - Activity Smoother
Exponential moving average from the raw activity to the displayed one.
"""

from motion_sampler import ActivityState


class ActivitySmoother:
    """First-order EMA of the raw activity, stepped once per control tick.

    Stepping at the fixed tick rate decouples speed changes from the
    irregular timing of sensor events. Time constant ~ tick_interval / smoothing.
    """

    def __init__(self, state: ActivityState, smoothing: float = 0.05):
        self.state = state
        self.smoothing = float(smoothing)

    def step(self) -> float:
        state = self.state
        state.current_activity += (state.target_activity - state.current_activity) * self.smoothing
        return state.current_activity
