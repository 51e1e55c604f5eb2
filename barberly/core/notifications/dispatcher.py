"""
Notification Dispatcher

Drains the outbox on a fixed interval. Each pass:

1. Returns entries stuck in Processing past the lease back through the
   normal failure path (Pending, or Failed when out of retries).
2. Takes up to batch_size Pending entries, oldest first, and for each one
   claims it (Pending -> Processing), sends it, and records Sent or a
   failed attempt.

Entries are sent one at a time in creation order. There is no backoff
beyond the polling interval. A claim that errors skips only that entry,
which stays Pending for the next pass.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Dict, Optional

from ..config import NotificationSettings
from ..observability import create_span, record_counter, record_histogram
from ..clock import Clock, utc_now
from .email import EmailSender
from .models import NotificationOutbox, NotificationStatus
from .repository import NotificationOutboxRepository
from .worker import PeriodicWorker

logger = logging.getLogger(__name__)

SEND_FAILED_MESSAGE = "Email sending failed (SMTP error or timeout)"
LEASE_EXPIRED_MESSAGE = "processing lease expired"


class NotificationDispatcher(PeriodicWorker):
    name = "notification-dispatcher"

    def __init__(
        self,
        outbox: NotificationOutboxRepository,
        sender: EmailSender,
        settings: Optional[NotificationSettings] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or NotificationSettings()
        super().__init__(interval_seconds=self.settings.interval_seconds)
        self.outbox = outbox
        self.sender = sender
        self.clock = clock

    async def run_once(self) -> int:
        await self.recover_stale()
        return await self.process_batch()

    async def process_batch(self) -> int:
        """Deliver one batch. Returns the number of entries attempted."""
        started = time.perf_counter()
        entries = await self.outbox.get_pending(self.settings.batch_size)
        if not entries:
            return 0

        logger.info(f"Processing {len(entries)} pending notifications")
        attempted = 0
        with create_span("notifications.batch", {"batch.size": len(entries)}):
            for entry in entries:
                if self.shutdown_requested:
                    logger.info("Shutdown requested; leaving the rest of the batch")
                    break
                if await self._deliver(entry):
                    attempted += 1

        record_histogram("notification_batch_duration_seconds", time.perf_counter() - started)
        return attempted

    async def _deliver(self, entry: NotificationOutbox) -> bool:
        previous = entry.status
        entry.mark_as_processing(self.clock())
        try:
            claimed = await self.outbox.update(entry, expected_status=previous)
        except Exception as e:
            logger.error(
                f"Could not claim notification {entry.id}: {e}",
                exc_info=True,
                extra={"correlation_id": str(entry.correlation_id)}
            )
            return False
        if not claimed:
            logger.debug(f"Notification {entry.id} was claimed elsewhere")
            return False

        error = None
        try:
            if not await self.sender.send_email(entry.recipient_email, entry.subject, entry.body):
                error = SEND_FAILED_MESSAGE
        except Exception as e:
            error = f"Exception: {e}"

        if error is None:
            entry.mark_as_sent(self.clock())
            record_counter("notifications_sent_total", attributes={"event_type": entry.event_type})
        else:
            entry.mark_as_failed(error, self.clock())
            self._record_failure(entry)

        try:
            await self.outbox.update(entry)
        except Exception as e:
            # Left in Processing; the stale sweep picks it up after the lease
            logger.error(
                f"Could not record outcome for notification {entry.id}: {e}",
                exc_info=True,
                extra={"correlation_id": str(entry.correlation_id)}
            )
        return True

    async def recover_stale(self) -> int:
        """Fail entries whose Processing lease has expired. Returns how many."""
        now = self.clock()
        cutoff = now - timedelta(seconds=self.settings.stale_after_seconds)
        stale = await self.outbox.get_stale_processing(cutoff, self.settings.batch_size)

        recovered = 0
        for entry in stale:
            entry.mark_as_failed(LEASE_EXPIRED_MESSAGE, now)
            if await self.outbox.update(entry, expected_status=NotificationStatus.PROCESSING):
                self._record_failure(entry)
                recovered += 1

        if recovered:
            logger.warning(f"Recovered {recovered} notifications stuck in Processing")
        return recovered

    def _record_failure(self, entry: NotificationOutbox) -> None:
        record_counter("notifications_failed_total", attributes={"event_type": entry.event_type})
        if entry.status == NotificationStatus.FAILED:
            record_counter("notifications_dead_total", attributes={"event_type": entry.event_type})
            logger.error(
                f"Notification {entry.id} failed permanently after {entry.retry_count} attempts: "
                f"{entry.error_message}",
                extra={"correlation_id": str(entry.correlation_id)}
            )
        else:
            logger.warning(
                f"Notification {entry.id} failed (attempt {entry.retry_count}/{entry.max_retries}): "
                f"{entry.error_message}",
                extra={"correlation_id": str(entry.correlation_id)}
            )

    async def get_stats(self) -> Dict[str, int]:
        stats = await self.outbox.count_by_status()
        stats["pending_count"] = stats.get(NotificationStatus.PENDING.value, 0)
        return stats

    async def requeue(self, entry: NotificationOutbox, now: Optional[datetime] = None) -> bool:
        """Give a Failed entry another full set of attempts."""
        entry.requeue(now or self.clock())
        return await self.outbox.update(entry, expected_status=NotificationStatus.FAILED)
