"""
MotionTempo - UI sinks
One-way outputs of the control loop. The loop never reads anything back
from a sink; the speed value it compares against is its own displayed_speed.
"""

import time
from typing import Callable

from logging_utils import log_event


class UiSink:
    """No-op sink. Subclasses override what they can show."""

    def show_activity(self, activity: float, percent: float) -> None:
        pass

    def show_speed(self, speed: float, text: str) -> None:
        """Rewrite the speed control and its numeric display."""

    def set_trigger(self, text: str, enabled: bool) -> None:
        pass

    def set_speed_control_enabled(self, enabled: bool) -> None:
        pass

    def show_error(self, message: str) -> None:
        pass

    def show_notice(self, message: str) -> None:
        pass


def activity_bar(percent: float, width: int = 20) -> str:
    filled = int(round(max(0.0, min(100.0, percent)) / 100.0 * width))
    return "#" * filled + "-" * (width - filled)


class ConsoleUiSink(UiSink):
    """Headless sink: a throttled status line plus every trigger/error change."""

    def __init__(self, interval_s: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.interval_s = interval_s
        self.clock = clock
        self.activity = 0.0
        self.percent = 0.0
        self.speed_text = ""
        self.trigger_text = ""
        self._last_status = None

    def show_activity(self, activity: float, percent: float) -> None:
        self.activity = activity
        self.percent = percent
        now = self.clock()
        if self._last_status is not None and now - self._last_status < self.interval_s:
            return
        self._last_status = now
        log_event("INFO", "Status", f"activity {activity:6.2f} [{activity_bar(percent)}] {percent:5.1f}%",
                  speed=self.speed_text or "-", trigger=self.trigger_text or "-")

    def show_speed(self, speed: float, text: str) -> None:
        self.speed_text = text
        log_event("INFO", "Speed", f"speed -> {text}")

    def set_trigger(self, text: str, enabled: bool) -> None:
        self.trigger_text = text if enabled else f"{text} (disabled)"

    def show_error(self, message: str) -> None:
        log_event("ERROR", "App", message)

    def show_notice(self, message: str) -> None:
        log_event("WARNING", "App", message)
