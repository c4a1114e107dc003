import asyncio
from typing import Callable, Optional

from logging_utils import log_event


class TickScheduler:
    """Calls `callback` at a fixed rate on the running asyncio loop.

    Deadlines advance by a fixed interval; if the loop falls behind, the
    schedule re-anchors instead of firing a burst of catch-up ticks.
    """

    def __init__(self, callback: Callable[[], None], hz: float = 60.0):
        if hz <= 0:
            raise ValueError(f"tick rate must be positive, got {hz}")
        self.callback = callback
        self.interval = 1.0 / hz
        self.ticks = 0
        self.errors = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="tick-scheduler")
        log_event("DEBUG", "Scheduler", "Started", hz=f"{1.0 / self.interval:g}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log_event("DEBUG", "Scheduler", "Stopped", ticks=self.ticks)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            try:
                self.callback()
            except Exception as e:
                self.errors += 1
                log_event("ERROR", "Scheduler", f"Tick callback raised: {e!r}")
            self.ticks += 1

            deadline += self.interval
            delay = deadline - loop.time()
            if delay < 0:
                deadline = loop.time()
                delay = 0.0
            await asyncio.sleep(delay)
