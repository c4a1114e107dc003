"""
MotionTempo - Main Application
Qt window with play button, speed slider, activity bar and activity trace.

The control loop, motion input and engine load all live on an asyncio loop
in a worker thread. The window only sends user actions to that loop and
receives display updates back through Qt signals.
"""

import asyncio
import threading
import time
from collections import deque
from concurrent.futures import Future
from typing import Optional

import numpy as np
from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QGroupBox, QHBoxLayout, QLabel, QMainWindow, QMessageBox, QProgressBar,
    QPushButton, QSlider, QVBoxLayout, QWidget,
)

# PyQtGraph for the real-time activity trace
import pyqtgraph as pg
pg.setConfigOptions(antialias=False, useOpenGL=False)

from audio_engine import AudioEngine
from config import Config
from control_loop import ControlLoop
from logging_utils import log_event
from motion_receiver import open_motion_receiver
from synthetic_motion import SyntheticMotionSource
from tick_scheduler import TickScheduler
from ui_sink import UiSink

SLIDER_SCALE = 1000  # slider ticks per 1.0 speed


class SignalBridge(QObject):
    """Bridge for thread-safe signal emission"""
    activity_changed = pyqtSignal(float, float)
    speed_changed = pyqtSignal(float, str)
    trigger_changed = pyqtSignal(str, bool)
    speed_control_enabled = pyqtSignal(bool)
    error_raised = pyqtSignal(str)
    notice_raised = pyqtSignal(str)


class QtUiSink(UiSink):
    """UiSink that forwards to the GUI thread via queued signals."""

    def __init__(self, bridge: SignalBridge):
        self.bridge = bridge

    def show_activity(self, activity: float, percent: float) -> None:
        self.bridge.activity_changed.emit(activity, percent)

    def show_speed(self, speed: float, text: str) -> None:
        self.bridge.speed_changed.emit(speed, text)

    def set_trigger(self, text: str, enabled: bool) -> None:
        self.bridge.trigger_changed.emit(text, enabled)

    def set_speed_control_enabled(self, enabled: bool) -> None:
        self.bridge.speed_control_enabled.emit(enabled)

    def show_error(self, message: str) -> None:
        self.bridge.error_raised.emit(message)

    def show_notice(self, message: str) -> None:
        self.bridge.notice_raised.emit(message)


class AsyncRuntime:
    """asyncio loop on a daemon thread; the only place control state changes."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, name="motiontempo-loop", daemon=True)

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self) -> None:
        self.thread.start()

    def submit(self, coro) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, fn, *args) -> None:
        self.loop.call_soon_threadsafe(fn, *args)

    def shutdown(self, timeout: float = 2.0) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout)


class ActivityCanvas(pg.PlotWidget):
    """Scrolling trace of smoothed activity with the speed band bounds"""

    def __init__(self, history_len: int, visual_max: float, bounds: list[float], parent=None):
        super().__init__(parent)
        self.setBackground('#232323')
        self.setMouseEnabled(x=False, y=False)
        self.hideButtons()
        self.setYRange(0, visual_max)
        self.setXRange(0, history_len)
        self.getPlotItem().hideAxis('bottom')
        for bound in bounds:
            self.addItem(pg.InfiniteLine(pos=bound, angle=0, pen=pg.mkPen('#555555', style=Qt.PenStyle.DashLine)))
        self._history = deque([0.0] * history_len, maxlen=history_len)
        self._curve = self.plot(pen=pg.mkPen('#4fc3f7', width=2))

    def push(self, value: float) -> None:
        self._history.append(value)

    def redraw(self) -> None:
        self._curve.setData(np.fromiter(self._history, dtype=np.float64, count=len(self._history)))


class MotionTempoWindow(QMainWindow):
    def __init__(self, config: Config, engine: AudioEngine, simulate: Optional[str] = None):
        super().__init__()
        self.config = config
        self.simulate = simulate
        self.signals = SignalBridge()
        self.runtime = AsyncRuntime()
        self.control = ControlLoop(config, engine, QtUiSink(self.signals))
        self.scheduler = TickScheduler(self.control.tick, config.control.tick_hz)
        self._synthetic: Optional[SyntheticMotionSource] = None
        self._transport = None
        self._last_redraw = 0.0

        self._build_ui()
        self._connect_signals()

        self.runtime.start()
        self.runtime.submit(self._start_inputs())

    # ------------------------------------------------------------------
    # UI
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.setWindowTitle("MotionTempo")
        central = QWidget()
        layout = QVBoxLayout(central)

        self.play_button = QPushButton("Play")
        self.play_button.setMinimumHeight(48)
        layout.addWidget(self.play_button)

        speed_group = QGroupBox("Speed")
        speed_layout = QHBoxLayout(speed_group)
        self.speed_slider = QSlider(Qt.Orientation.Horizontal)
        self.speed_slider.setRange(int(self.config.speed.slider_min * SLIDER_SCALE),
                                   int(self.config.speed.slider_max * SLIDER_SCALE))
        self.speed_slider.setSingleStep(10)
        self.speed_slider.setEnabled(False)
        self.speed_slider.setValue(int(round(self.control.displayed_speed * SLIDER_SCALE)))
        self.speed_label = QLabel(f"{self.control.displayed_speed:.2f}")
        self.speed_label.setMinimumWidth(50)
        speed_layout.addWidget(self.speed_slider)
        speed_layout.addWidget(self.speed_label)
        layout.addWidget(speed_group)

        activity_group = QGroupBox("Activity")
        activity_layout = QVBoxLayout(activity_group)
        row = QHBoxLayout()
        self.activity_bar = QProgressBar()
        self.activity_bar.setRange(0, 100)
        self.activity_bar.setTextVisible(False)
        self.activity_label = QLabel("0.00")
        self.activity_label.setMinimumWidth(50)
        row.addWidget(self.activity_bar)
        row.addWidget(self.activity_label)
        activity_layout.addLayout(row)

        history_len = int(self.config.display.history_seconds * self.config.control.tick_hz)
        bounds = [band.upper_bound for band in self.control.mapper.bands]
        self.activity_canvas = ActivityCanvas(history_len, self.config.display.visual_max_activity, bounds)
        self.activity_canvas.setMinimumHeight(160)
        activity_layout.addWidget(self.activity_canvas)
        layout.addWidget(activity_group)

        self.status_label = QLabel("")
        layout.addWidget(self.status_label)

        self.setCentralWidget(central)
        self.resize(480, 420)

    def _connect_signals(self) -> None:
        self.play_button.clicked.connect(self._on_play_clicked)
        self.speed_slider.valueChanged.connect(self._on_slider_changed)
        self.signals.activity_changed.connect(self._on_activity)
        self.signals.speed_changed.connect(self._on_speed)
        self.signals.trigger_changed.connect(self._on_trigger)
        self.signals.speed_control_enabled.connect(self.speed_slider.setEnabled)
        self.signals.error_raised.connect(self._on_error)
        self.signals.notice_raised.connect(self.status_label.setText)

    # ------------------------------------------------------------------
    # Worker-loop side
    # ------------------------------------------------------------------

    async def _start_inputs(self) -> None:
        if self.simulate:
            self._synthetic = SyntheticMotionSource(self.control.handle_motion, self.simulate)
            self._synthetic.start()
        else:
            motion = self.config.motion
            try:
                self._transport, _ = await open_motion_receiver(motion.host, motion.port, self.control.handle_motion)
            except OSError as e:
                log_event("ERROR", "Receiver", f"Could not open UDP {motion.host}:{motion.port}: {e}")
                self.control.ui.show_notice(f"Motion input unavailable: {e}")
        self.scheduler.start()

    async def _shutdown(self) -> None:
        await self.scheduler.stop()
        if self._synthetic is not None:
            await self._synthetic.stop()
        if self._transport is not None:
            self._transport.close()
        await self.control.dispose()

    # ------------------------------------------------------------------
    # GUI-thread handlers
    # ------------------------------------------------------------------

    def _on_play_clicked(self) -> None:
        self.runtime.submit(self.control.handle_start_trigger())

    def _on_slider_changed(self, value: int) -> None:
        speed = value / SLIDER_SCALE
        self.speed_label.setText(f"{speed:.3f}")
        self.runtime.call(self.control.set_manual_speed, speed)

    def _on_activity(self, activity: float, percent: float) -> None:
        self.activity_label.setText(f"{activity:.2f}")
        self.activity_bar.setValue(int(percent))
        self.activity_canvas.push(activity)
        now = time.perf_counter()
        if now - self._last_redraw >= 1.0 / 30.0:
            self._last_redraw = now
            self.activity_canvas.redraw()

    def _on_speed(self, speed: float, text: str) -> None:
        # Programmatic update: must not come back as manual input
        self.speed_slider.blockSignals(True)
        self.speed_slider.setValue(int(round(speed * SLIDER_SCALE)))
        self.speed_slider.blockSignals(False)
        self.speed_label.setText(text)

    def _on_trigger(self, text: str, enabled: bool) -> None:
        self.play_button.setText(text)
        self.play_button.setEnabled(enabled)

    def _on_error(self, message: str) -> None:
        self.status_label.setText(message)
        QMessageBox.warning(self, "MotionTempo", message)

    def closeEvent(self, event):
        """Cleanup on close - stop the worker loop before the UI is destroyed"""
        try:
            self.runtime.submit(self._shutdown()).result(timeout=3.0)
        except Exception as e:
            log_event("WARNING", "App", f"Shutdown incomplete: {e!r}")
        self.runtime.shutdown()
        event.accept()
