#!/usr/bin/env python3
"""
MotionTempo - music that speeds up when you move

Listens for accelerometer data (UDP from a phone, or a synthetic profile),
turns motion intensity into a playback speed and drives the audio engine.
Runs headless by default; --gui opens the Qt window.
"""

import argparse
import asyncio
import cProfile
import sys
from pathlib import Path

from audio_engine import AudioEngine, DryRunAudioEngine
from config import Config, PitchMode
from config_persistence import load_config, save_config
from control_loop import ControlLoop
from logging_utils import log_event, set_log_level
from motion_receiver import open_motion_receiver
from playback_session import SessionState
from synthetic_motion import SyntheticMotionSource, profile_names
from tick_scheduler import TickScheduler
from ui_sink import ConsoleUiSink


def build_engine(config: Config, dry_run: bool) -> AudioEngine:
    if dry_run:
        return DryRunAudioEngine()
    # PortAudio is only needed for real output
    from sounddevice_engine import SoundDeviceEngine
    return SoundDeviceEngine(config)


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.audio:
        config.playback.base_audio_resource = args.audio
    if args.base_speed is not None:
        config.playback.base_speed = args.base_speed
    if args.pitch_mode:
        config.playback.pitch_mode = PitchMode[args.pitch_mode.upper().replace("-", "_")]
    if args.port is not None:
        config.motion.port = args.port
    if args.device is not None:
        config.audio.device_index = args.device
    if args.no_motion:
        config.motion.enabled = False
    if args.log_level:
        config.log_level = args.log_level
    return config


async def run_headless(config: Config, engine: AudioEngine, simulate: str | None = None,
                       duration: float | None = None) -> int:
    control = ControlLoop(config, engine, ConsoleUiSink(config.display.status_interval_s))
    scheduler = TickScheduler(control.tick, config.control.tick_hz)
    synthetic = None
    transport = None

    try:
        if simulate:
            synthetic = SyntheticMotionSource(control.handle_motion, simulate)
            synthetic.start()
        else:
            try:
                transport, _ = await open_motion_receiver(config.motion.host, config.motion.port,
                                                          control.handle_motion)
            except OSError as e:
                log_event("ERROR", "Receiver", f"Could not open UDP {config.motion.host}:{config.motion.port}: {e}")
                log_event("WARNING", "App", "Continuing without motion input; speed stays at base")

        scheduler.start()

        # First trigger loads, second starts playback
        await control.handle_start_trigger()
        if control.session.state is SessionState.FAILED:
            return 1
        await control.handle_start_trigger()

        if duration is not None:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
        return 0
    finally:
        await scheduler.stop()
        if synthetic is not None:
            await synthetic.stop()
        if transport is not None:
            transport.close()
        await control.dispose()
        log_event("INFO", "App", "Shut down", ticks=control.tick_count, tick_errors=control.tick_errors)


def run_gui(config: Config, engine: AudioEngine, simulate: str | None) -> int:
    from PyQt6.QtWidgets import QApplication

    from main import MotionTempoWindow

    app = QApplication([sys.argv[0]])
    app.setStyle("Fusion")
    window = MotionTempoWindow(config, engine, simulate=simulate)
    window.show()
    return app.exec()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run MotionTempo")
    parser.add_argument("--gui", action="store_true", help="Open the Qt window instead of running headless")
    parser.add_argument("--config", type=Path, default=None, help="Config JSON (default: ~/.motiontempo/config.json)")
    parser.add_argument("--audio", help="Audio file to loop (overrides playback.base_audio_resource)")
    parser.add_argument("--base-speed", type=float, default=None,
                        help="Speed at which the audio file has its natural pitch")
    parser.add_argument("--pitch-mode", choices=["pitch-correction", "rate-only"], default=None)
    parser.add_argument("--port", type=int, default=None, help="UDP port for motion datagrams")
    parser.add_argument("--simulate", choices=profile_names(), default=None,
                        help="Use a synthetic motion profile instead of UDP input")
    parser.add_argument("--no-motion", action="store_true", help="Deny motion input (speed stays at base)")
    parser.add_argument("--dry-run", action="store_true", help="Log engine calls instead of playing audio")
    parser.add_argument("--device", type=int, default=None, help="Output device index")
    parser.add_argument("--list-devices", action="store_true", help="List audio output devices and exit")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds (headless)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    parser.add_argument("--save-config", action="store_true",
                        help="Write the effective config (with overrides) to the config file and exit")
    parser.add_argument("--profile", action="store_true",
                        help="Enable cProfile and save stats to --profile-out")
    parser.add_argument("--profile-out", default="profile.prof",
                        help="Path to save cProfile stats (default: profile.prof)")
    return parser


def run_app(args: argparse.Namespace) -> int:
    if args.list_devices:
        from sounddevice_engine import describe_devices
        print(describe_devices())
        return 0

    config = apply_cli_overrides(load_config(args.config), args)
    set_log_level(config.log_level)
    if args.save_config:
        return 0 if save_config(config, args.config) else 1

    try:
        engine = build_engine(config, args.dry_run)
    except OSError as e:
        # sounddevice raises OSError when the PortAudio library is missing
        log_event("ERROR", "App", f"Audio output unavailable: {e} (try --dry-run)")
        return 1

    if args.gui:
        return run_gui(config, engine, args.simulate)
    try:
        return asyncio.run(run_headless(config, engine, args.simulate, args.duration))
    except KeyboardInterrupt:
        return 0


def main() -> None:
    args = build_parser().parse_args()

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_app(args)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_app(args)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
