"""
Notification Workers Runner

Standalone process running the outbox dispatcher and the reminder
scanner, for deployments that keep workers out of the API process
(set NOTIFICATIONS_WORKERS_ENABLED=false on the API in that case).

Usage:
    barberly-workers
    python -m barberly.workers.runner

Environment Variables:
    DATABASE_BACKEND / DATABASE_URL / SQLITE_PATH: storage
    NOTIFICATION_INTERVAL_SECONDS, NOTIFICATION_BATCH_SIZE: dispatcher tuning
    REMINDER_HOURS, REMINDER_INTERVAL_SECONDS: reminder tuning
    SMTP_*: outgoing mail
    LOG_LEVEL: Logging level (default: INFO)
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from .. import __version__
from ..core.config import AppSettings
from ..core.container import Container
from ..core.database import close_database, get_database, init_schema
from ..core.observability import configure_logging, init_metrics, init_tracing

logger = logging.getLogger(__name__)


class WorkersRunner:
    """Runs both workers until SIGTERM/SIGINT, then stops them gracefully."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or AppSettings.from_env()
        self.container: Optional[Container] = None
        self._shutdown_event = asyncio.Event()
        self._shutdown_requested = False

    def _setup_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown_signal, sig)

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _handle_shutdown_signal(self, sig: signal.Signals):
        if self._shutdown_requested:
            logger.warning(f"Received {sig.name} again, forcing exit")
            sys.exit(1)

        logger.info(f"Received {sig.name}, initiating graceful shutdown")
        self.request_shutdown()

    def request_shutdown(self) -> None:
        """Stop the workers and let run() return."""
        self._shutdown_requested = True
        self._shutdown_event.set()

    async def run(self):
        notifications = self.settings.notifications
        logger.info("Starting notification workers")
        logger.info(f"  Dispatch interval: {notifications.interval_seconds}s")
        logger.info(f"  Batch size: {notifications.batch_size}")
        logger.info(f"  Reminder lead time: {notifications.reminder_hours}h")

        self._setup_signal_handlers()

        db = await get_database()
        await init_schema(db)
        self.container = Container.build(db, self.settings)
        workers = (self.container.dispatcher, self.container.reminders)

        try:
            for worker in workers:
                await worker.start()
            logger.info("Notification workers are running")
            await self._shutdown_event.wait()
        except Exception as e:
            logger.error(f"Notification workers error: {e}", exc_info=True)
            raise
        finally:
            logger.info("Stopping notification workers")
            for worker in reversed(workers):
                await worker.stop()
            await self.container.close()
            await close_database()
            self._remove_signal_handlers()
            logger.info("Notification workers stopped")


async def main():
    settings = AppSettings.from_env()
    obs = settings.observability
    configure_logging(obs.log_level, obs.structured_logs, f"{obs.service_name}-workers")
    init_tracing(f"{obs.service_name}-workers", __version__, obs.otlp_endpoint)
    init_metrics(f"{obs.service_name}-workers", obs.otlp_endpoint)

    await WorkersRunner(settings).run()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
