"""Repeating poll timer for analysis jobs.

Exactly one asyncio task per scheduler. The task runs while the
``has_work`` predicate holds and exits by itself once it is false, so an
idle scheduler holds no timer at all.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from quantifier.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class PollingScheduler:
    def __init__(
        self,
        tick: Callable[[], Awaitable[None]],
        has_work: Callable[[], bool],
        interval_seconds: Optional[float] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.interval = interval_seconds if interval_seconds is not None else config.poll_interval_seconds
        self._tick = tick
        self._has_work = has_work
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def ensure_running(self) -> bool:
        """Start the timer if there is work and no timer yet. Returns True if a task was created."""
        if self.running or not self._has_work():
            return False
        self._task = asyncio.get_running_loop().create_task(self._run(), name="job-poller")
        logger.info(f"Polling started (every {self.interval}s)")
        return True

    def stop(self) -> None:
        """Cancel the timer. In-flight fetches of the current tick are abandoned.

        Called from inside a tick, the task is not cancelled; it simply exits
        once the tick returns.
        """
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is not asyncio.current_task():
            task.cancel()
        logger.info("Polling stopped")

    async def aclose(self) -> None:
        """Cancel the timer and wait for the task to unwind."""
        task = self._task
        self.stop()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        me = asyncio.current_task()
        try:
            while self._task is me and self._has_work():
                await asyncio.sleep(self.interval)
                self.ticks += 1
                await self._tick()
        except Exception:
            logger.exception("Polling tick failed, timer stopped")
            raise
        finally:
            if self._task is me:
                self._task = None
                logger.info("Polling finished, no active jobs")
