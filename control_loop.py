"""
MotionTempo - Control Loop
Per-tick driver: motion activity -> smoothed activity -> target speed ->
engine parameters, plus the play/stop trigger and manual speed override.

Everything here runs on one asyncio loop. Motion events, ticks and user
input are plain callbacks that run to completion. The awaits that span ticks
are the engine load, guarded by the session state, and the motion permission
request, which runs as its own task so it never blocks loading.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from activity_smoother import ActivitySmoother
from audio_engine import AudioEngine
from config import Config, PitchMode
from logging_utils import log_event
from motion_sampler import ActivityState, MotionSampler, monotonic_ms
from permission_gate import PermissionGate, StaticPermissionGate
from playback_params import PlaybackParameters, PlaybackTranslator
from playback_session import PlaybackSession, SessionState
from speed_mapper import SpeedMapper
from ui_sink import UiSink


@dataclass(frozen=True)
class ControlStatus:
    """Read-only snapshot for displays"""
    current_activity: float
    target_activity: float
    target_speed: float
    displayed_speed: float
    session_state: SessionState
    rate: Optional[float]
    pitch_semitones: Optional[float]


class ControlLoop:
    def __init__(self, config: Config, engine: AudioEngine, ui: Optional[UiSink] = None,
                 permission_gate: Optional[PermissionGate] = None, sampler_clock=None):
        self.config = config
        playback = config.playback
        motion = config.motion

        self.state = ActivityState()
        self.sampler = MotionSampler(self.state, motion.window_duration_ms, motion.min_sample_count,
                                     clock=sampler_clock or monotonic_ms)
        self.smoother = ActivitySmoother(self.state, motion.smoothing_factor)
        self.mapper = SpeedMapper(playback.base_speed, config.speed.steps, config.speed.top_offset)
        self.translator = PlaybackTranslator(engine, playback.base_speed, playback.pitch_mode)
        if self.translator.mode == PitchMode.PITCH_CORRECTION and not engine.supports_pitch_shift:
            log_event("WARNING", "ControlLoop", f"{engine.name} engine has no pitch shift unit; "
                      "speed updates are skipped in pitch-correction mode")
        self.session = PlaybackSession(engine, playback.base_audio_resource, playback.loop,
                                       playback.load_timeout_s)
        self.ui = ui if ui is not None else UiSink()
        self.permission_gate = permission_gate or StaticPermissionGate(motion.enabled)

        self.motion_listener_attached = False
        self._requesting_permission = False
        self._initializing = False
        self._permission_task: Optional[asyncio.Task] = None

        self.target_speed = self.mapper.target_speed(0.0)
        self.displayed_speed = self.target_speed
        self.tick_count = 0
        self.tick_errors = 0

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    async def request_motion_permission(self) -> bool:
        if self.motion_listener_attached or self._requesting_permission:
            return self.motion_listener_attached
        self._requesting_permission = True
        try:
            granted = await self.permission_gate.request()
        except Exception as e:
            log_event("ERROR", "Motion", f"Permission request failed: {e}")
            granted = False
        finally:
            self._requesting_permission = False

        self.motion_listener_attached = bool(granted)
        if granted:
            log_event("INFO", "Motion", "Motion input attached")
        else:
            self.sampler.reset()
            self.ui.show_notice("Motion sensor permission was denied; speed stays at base.")
        return self.motion_listener_attached

    def _request_permission_in_background(self) -> None:
        """Start a permission request without waiting for it. A prompt the
        user never answers must not hold up loading or the trigger."""
        task = self._permission_task
        if self.motion_listener_attached or (task is not None and not task.done()):
            return
        self._permission_task = asyncio.get_running_loop().create_task(
            self.request_motion_permission(), name="motion-permission")

    def handle_motion(self, acceleration, now_ms: Optional[int] = None) -> bool:
        """Feed one motion event. Ignored until permission is granted."""
        if not self.motion_listener_attached:
            return False
        return self.sampler.handle_motion(acceleration, now_ms)

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """One control tick. Never raises: a failing tick is logged and the
        scheduler keeps calling."""
        self.tick_count += 1
        try:
            self._tick()
        except Exception as e:
            self.tick_errors += 1
            if self.tick_errors == 1 or self.tick_errors % 300 == 0:
                log_event("ERROR", "ControlLoop", f"Tick failed: {e!r}", errors=self.tick_errors)

    def _tick(self) -> None:
        activity = self.smoother.step()

        visual_max = self.config.display.visual_max_activity
        percent = min(activity / visual_max, 1.0) * 100.0
        self.ui.show_activity(activity, percent)

        target = self.mapper.target_speed(activity)
        self.target_speed = target

        if abs(self.displayed_speed - target) > self.config.speed.deadband:
            self.displayed_speed = target
            self.ui.show_speed(target, f"{target:.2f}")

        if self.session.playing:
            self.translator.apply(target, self.config.playback.ramp_seconds)

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    def set_manual_speed(self, value: float) -> Optional[PlaybackParameters]:
        """Speed control dragged by the user: skips the mapper and deadband."""
        value = float(value)
        self.displayed_speed = value
        self.ui.show_speed(value, f"{value:.3f}")
        if self.session.playing:
            return self.translator.apply(value, self.config.playback.ramp_seconds)
        return None

    async def handle_start_trigger(self) -> SessionState:
        """Play button. First press loads, later presses toggle play/stop."""
        state = self.session.state
        if self._initializing or state is SessionState.LOADING:
            log_event("DEBUG", "ControlLoop", "Start trigger ignored while loading")
            return state
        if state in (SessionState.FAILED, SessionState.DISPOSED):
            return state

        if state is SessionState.UNINITIALIZED:
            self._initializing = True
            try:
                await self._initialize()
            finally:
                self._initializing = False
            return self.session.state

        if not self.motion_listener_attached:
            self._request_permission_in_background()

        if self.session.state is SessionState.PLAYING:
            self.session.stop()
            self.ui.set_trigger("Play", True)
        elif self.session.state is SessionState.READY:
            self.translator.apply(self.displayed_speed, self.config.playback.initial_ramp_seconds)
            self.session.start()
            self.ui.set_trigger("Stop", True)
        return self.session.state

    async def _initialize(self) -> None:
        self.ui.set_trigger("Loading...", False)
        self.ui.set_speed_control_enabled(False)

        if not self.motion_listener_attached:
            self._request_permission_in_background()

        if await self.session.load():
            self.ui.set_trigger("Play", True)
            self.ui.set_speed_control_enabled(True)
            return

        if self.session.state is SessionState.FAILED:
            self.ui.set_trigger("Error", False)
            self.ui.show_error(self.session.error or "Audio engine failed to load")

    async def dispose(self) -> None:
        task, self._permission_task = self._permission_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.session.dispose()
        self.ui.set_trigger("Closed", False)

    def status(self) -> ControlStatus:
        applied = self.translator.last_applied
        return ControlStatus(
            current_activity=self.state.current_activity,
            target_activity=self.state.target_activity,
            target_speed=self.target_speed,
            displayed_speed=self.displayed_speed,
            session_state=self.session.state,
            rate=applied.rate if applied else None,
            pitch_semitones=applied.pitch_semitones if applied else None,
        )
