"""
Periodic Worker

Shared start/stop and interval loop for the notification workers. The
shutdown event is checked at the top of every pass, and the interval
sleep waits on it so a stop request interrupts the wait.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class PeriodicWorker(ABC):
    name = "worker"

    def __init__(self, interval_seconds: float, startup_delay_seconds: float = 0.0):
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = startup_delay_seconds
        self._shutdown = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    async def start(self) -> None:
        if self.is_running:
            return
        self._shutdown.clear()
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info(f"{self.name} started")

    async def stop(self) -> None:
        """Signal shutdown and wait for the current pass to finish."""
        self._shutdown.set()
        if self._task:
            await self._task
            self._task = None
        logger.info(f"{self.name} stopped")

    async def _run(self) -> None:
        if self.startup_delay_seconds and await self._wait(self.startup_delay_seconds):
            return

        while not self._shutdown.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"{self.name} pass failed: {e}", exc_info=True)

            if await self._wait(self.interval_seconds):
                return

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; True if shutdown was requested meanwhile."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    @abstractmethod
    async def run_once(self) -> int:
        """One pass of work. Returns how many items it handled."""
