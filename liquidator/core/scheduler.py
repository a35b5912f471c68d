# /liquidator/core/scheduler.py
# Periodic, non-overlapping runner for the liquidation pipeline.

import asyncio
from typing import Awaitable, Callable, Optional

from liquidator.core.logger import get_logger, RUNS_SKIPPED

log = get_logger(__name__)


class Scheduler:
    """
    Runs ``job`` once immediately and then on every fixed interval tick.

    A tick that fires while the previous run is still in progress is dropped,
    never queued: the job owns the signing account and its nonce for the whole
    run, so two runs must never overlap.
    """
    def __init__(self, job: Callable[[], Awaitable[object]], interval_seconds: float, name: str = "liquidation"):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval = interval_seconds
        self.name = name
        self.runs_started = 0
        self.ticks_skipped = 0
        self._current: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._current is not None and not self._current.done()

    def trigger(self) -> bool:
        """Starts a run unless one is in progress. Returns whether a run was started."""
        if self.is_running:
            self.ticks_skipped += 1
            RUNS_SKIPPED.inc()
            log.warning("SCHEDULER_TICK_SKIPPED_RUN_IN_PROGRESS", scheduler=self.name)
            return False
        self.runs_started += 1
        self._current = asyncio.create_task(self._run_once())
        return True

    async def _run_once(self):
        try:
            await self.job()
        except Exception as e:
            # Only configuration errors stop the process, and those surface at startup.
            log.error("SCHEDULED_RUN_FAILED", scheduler=self.name, error=str(e), exc_info=True)

    async def run_forever(self):
        loop = asyncio.get_running_loop()
        log.info("SCHEDULER_STARTING", scheduler=self.name, interval_seconds=self.interval)
        self.trigger()
        next_tick = loop.time() + self.interval

        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=max(0.0, next_tick - loop.time()))
            except asyncio.TimeoutError:
                pass
            if self._stopped.is_set():
                break
            self.trigger()
            now = loop.time()
            while next_tick <= now:
                next_tick += self.interval

        if self._current is not None:
            await self._current
        log.info("SCHEDULER_STOPPED", scheduler=self.name, runs=self.runs_started, skipped=self.ticks_skipped)

    def stop(self):
        self._stopped.set()
