"""
Periodic cleanup of shared in-memory state (caches and rate limiters).
"""

import asyncio
import logging
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def cleanup(self) -> int: ...


class PeriodicSweeper:
    """Calls cleanup() on its targets every interval seconds."""

    def __init__(self, targets: List[Sweepable], interval: float, name: str = "sweeper"):
        self.targets = targets
        self.interval = interval
        self.name = name
        self._task: Optional[asyncio.Task] = None

    def sweep(self) -> int:
        """Run one cleanup pass over every target. Returns total removed."""
        removed = 0
        for target in self.targets:
            try:
                removed += target.cleanup()
            except Exception:
                logger.exception("%s: cleanup failed for %r", self.name, target)
        if removed:
            logger.debug("%s: removed %d expired entries", self.name, removed)
        return removed

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.sweep()

    def start(self):
        """Start the background loop on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self):
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
