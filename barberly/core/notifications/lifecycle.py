"""
Notification Worker Lifecycle

Runs the outbox dispatcher and the reminder scanner alongside the API.

Usage in FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with notification_workers(dispatcher, scanner, settings=settings):
            yield
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from ..config import NotificationSettings
from .worker import PeriodicWorker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def notification_workers(
    *workers: PeriodicWorker,
    settings: NotificationSettings,
) -> AsyncIterator[List[PeriodicWorker]]:
    """Start the given workers if enabled; stop them on exit."""
    if not settings.enabled:
        logger.info("Notification workers disabled: NOTIFICATIONS_WORKERS_ENABLED=false")
        yield []
        return

    started: List[PeriodicWorker] = []
    try:
        for worker in workers:
            await worker.start()
            started.append(worker)
        yield started
    finally:
        logger.info("Stopping notification workers...")
        for worker in reversed(started):
            await worker.stop()
