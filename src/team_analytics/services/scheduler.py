"""Periodic background refresh of cached analytics.

Dashboards that stay open keep their figures current by re-aggregating on a
timer. The scheduler owns that timer; the engine itself never polls.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from ..errors import AnalyticsError

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Re-aggregates a set of timeframes every ``interval_seconds``.

    The interval defaults to the engine config's ``refresh_interval_seconds``.
    """

    def __init__(self, engine, timeframes: Iterable[str] = ("month",),
                 interval_seconds: Optional[float] = None):
        if interval_seconds is None:
            interval_seconds = engine.config.refresh_interval_seconds
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.engine = engine
        self.timeframes: List[str] = list(timeframes)
        self.interval_seconds = interval_seconds
        self.refresh_count = 0
        self.failure_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the refresh loop on the running event loop."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._run())
        logger.info(f"Analytics refresh started for {self.timeframes} every {self.interval_seconds}s")
        return self._task

    async def stop(self):
        """Cancel the refresh loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Analytics refresh stopped")

    async def refresh_once(self):
        """Refresh every configured timeframe once."""
        for timeframe in self.timeframes:
            try:
                await self.engine.refresh(timeframe)
                self.refresh_count += 1
            except AnalyticsError as e:
                self.failure_count += 1
                logger.warning(f"Background refresh of '{timeframe}' analytics failed: {e}")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.refresh_once()
