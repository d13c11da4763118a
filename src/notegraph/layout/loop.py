"""Cooperative asyncio loop that keeps the layout ticking."""

import asyncio
import contextlib
import logging

from notegraph.config import settings
from notegraph.layout.simulation import ForceSimulation

logger = logging.getLogger(__name__)


class LayoutLoop:
    """Drives a ForceSimulation at the display cadence on the current event loop.

    Each tick runs synchronously between awaits, so ticks never overlap
    with each other or with interaction handlers on the same loop.
    """

    def __init__(self, simulation: ForceSimulation, interval: float | None = None) -> None:
        self.simulation = simulation
        self.interval = interval if interval is not None else settings.tick_interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking. Must be called from inside a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Layout loop started ({len(self.simulation)} nodes)")

    async def stop(self) -> None:
        """Stop ticking and wait for the loop task to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info(f"Layout loop stopped after {self.simulation.tick_count} ticks")

    async def _run(self) -> None:
        while True:
            try:
                self.simulation.tick()
            except Exception:
                logger.exception("Layout tick failed, stopping loop")
                return
            await asyncio.sleep(self.interval)
