"""
Reminder Scanner

Once an interval, finds live appointments starting one hour-wide window
ahead (reminder_hours from now) and queues a reminder for each customer.
Windows from consecutive passes tile, so every appointment falls in
exactly one. The reminder dedupe key makes a repeated pass harmless.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..clock import Clock, utc_now
from ..config import NotificationSettings
from ..observability import record_counter
from ..scheduling.repository import AppointmentRepository
from .handlers import NotificationComposer, reminder_dedupe_key
from .repository import NotificationOutboxRepository
from .worker import PeriodicWorker

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=1)


class ReminderScanner(PeriodicWorker):
    name = "reminder-scanner"

    def __init__(
        self,
        appointments: AppointmentRepository,
        outbox: NotificationOutboxRepository,
        composer: NotificationComposer,
        settings: Optional[NotificationSettings] = None,
        clock: Clock = utc_now,
    ):
        self.settings = settings or NotificationSettings()
        super().__init__(
            interval_seconds=self.settings.reminder_interval_seconds,
            startup_delay_seconds=self.settings.reminder_startup_delay_seconds,
        )
        self.appointments = appointments
        self.outbox = outbox
        self.composer = composer
        self.clock = clock

    async def run_once(self) -> int:
        """Queue reminders for the current window. Returns how many were queued."""
        window_start = self.clock() + timedelta(hours=self.settings.reminder_hours)
        window_end = window_start + WINDOW
        upcoming = await self.appointments.get_starting_between(window_start, window_end)
        if not upcoming:
            return 0

        logger.info(f"Found {len(upcoming)} appointments needing reminders")
        queued = 0
        for appointment in upcoming:
            if self.shutdown_requested:
                break
            try:
                if await self.outbox.exists_by_dedupe_key(
                    reminder_dedupe_key(appointment.id, appointment.start)
                ):
                    continue
                details = await self.composer.load_for_appointment(appointment)
                if details is None:
                    continue
                entry = self.composer.reminder(details)
                if await self.outbox.add(entry):
                    queued += 1
                    record_counter(
                        "notifications_enqueued_total",
                        attributes={"event_type": entry.event_type}
                    )
                    logger.info(
                        f"Queued reminder for appointment {appointment.id}",
                        extra={"correlation_id": str(appointment.id)}
                    )
            except Exception as e:
                logger.error(
                    f"Reminder for appointment {appointment.id} failed: {e}",
                    exc_info=True,
                    extra={"correlation_id": str(appointment.id)}
                )
        return queued
