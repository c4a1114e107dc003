"""
MotionTempo - Playback Session
Lifecycle of one audio engine:

    UNINITIALIZED -> LOADING -> READY <-> PLAYING
                        |
                        +-> FAILED (terminal, no retry)

and DISPOSED from anywhere once the session is closed.
"""

import asyncio
from enum import Enum
from typing import Optional

from audio_engine import AudioEngine
from logging_utils import log_event


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    FAILED = "failed"
    DISPOSED = "disposed"


class PlaybackSession:
    def __init__(self, engine: AudioEngine, resource: str, loop: bool = True,
                 load_timeout_s: Optional[float] = 15.0):
        self.engine = engine
        self.resource = resource
        self.loop = loop
        self.load_timeout_s = load_timeout_s
        self.state = SessionState.UNINITIALIZED
        self.error: Optional[str] = None
        self.load_attempts = 0

    @property
    def playing(self) -> bool:
        return self.state is SessionState.PLAYING

    @property
    def ready(self) -> bool:
        return self.state in (SessionState.READY, SessionState.PLAYING)

    def _set_state(self, state: SessionState) -> None:
        if state is not self.state:
            log_event("INFO", "Session", f"{self.state.value} -> {state.value}")
            self.state = state

    async def load(self) -> bool:
        """Load the engine resource once. Only the first call from
        UNINITIALIZED starts a load; later calls report the current outcome."""
        if self.state is not SessionState.UNINITIALIZED:
            log_event("DEBUG", "Session", "Load request ignored", state=self.state.value)
            return self.ready

        self._set_state(SessionState.LOADING)
        self.load_attempts += 1
        ok = False
        try:
            ok = await asyncio.wait_for(self.engine.load(self.resource, self.loop), timeout=self.load_timeout_s)
        except asyncio.TimeoutError:
            self.error = f"Loading {self.resource} timed out after {self.load_timeout_s:g}s"
        except Exception as e:
            self.error = f"Loading {self.resource} failed: {e}"

        if self.state is SessionState.DISPOSED:
            # dispose() already closed the engine; the late load reopened it
            if ok:
                self.engine.close()
            return False

        if ok:
            self.error = None
            self._set_state(SessionState.READY)
            return True

        if self.error is None:
            self.error = f"Loading {self.resource} failed"
        log_event("ERROR", "Session", self.error)
        self._set_state(SessionState.FAILED)
        return False

    def start(self) -> bool:
        if self.state is not SessionState.READY:
            return False
        self.engine.start()
        self._set_state(SessionState.PLAYING)
        return True

    def stop(self) -> bool:
        if self.state is not SessionState.PLAYING:
            return False
        self.engine.stop()
        self._set_state(SessionState.READY)
        return True

    def dispose(self) -> None:
        if self.state is SessionState.DISPOSED:
            return
        if self.state is SessionState.PLAYING:
            self.engine.stop()
        self.engine.close()
        self._set_state(SessionState.DISPOSED)
