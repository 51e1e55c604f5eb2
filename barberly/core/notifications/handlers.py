"""
Outbox-Writing Event Handlers

Turn appointment events into outbox entries: one for the customer and
one for the barber on booking and on cancellation, and one reminder for
the customer from the reminder scanner. Entries carry a dedupe key so a
re-delivered event or a repeated scan cannot enqueue the same message
twice.

When a referenced user, barber, service or shop is missing the event is
skipped with a warning.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from ..directory import BarberRepository, BarberShopRepository, ServiceRepository, UserRepository
from ..events import AppointmentEvent, AppointmentEventType, EventDispatcher
from ..observability import record_counter
from ..scheduling.models import Appointment
from .models import DEFAULT_MAX_RETRIES, NotificationEventType, NotificationOutbox
from .repository import NotificationOutboxRepository
from .templates import AppointmentDetails, render_cancellation, render_confirmation, render_reminder

logger = logging.getLogger(__name__)

SUBJECT_BOOKED_CUSTOMER = "Your appointment is confirmed - Barberly"
SUBJECT_BOOKED_BARBER = "New appointment - Barberly"
SUBJECT_REMINDER = "Appointment reminder - Barberly"
SUBJECT_CANCELLED_CUSTOMER = "Your appointment was cancelled - Barberly"
SUBJECT_CANCELLED_BARBER = "Appointment cancelled - Barberly"


def reminder_dedupe_key(appointment_id: UUID, start: datetime) -> str:
    """One reminder per appointment start time; a reschedule earns a new one."""
    return f"{NotificationEventType.APPOINTMENT_REMINDER.value}:{appointment_id}:{start.isoformat()}"


def _event_dedupe_key(event_type: NotificationEventType, appointment_id: UUID, recipient: str) -> str:
    return f"{event_type.value}:{appointment_id}:{recipient}"


class NotificationComposer:
    """Loads directory records and renders outbox entries."""

    def __init__(
        self,
        users: UserRepository,
        barbers: BarberRepository,
        services: ServiceRepository,
        shops: BarberShopRepository,
        max_retries: int = DEFAULT_MAX_RETRIES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.users = users
        self.barbers = barbers
        self.services = services
        self.shops = shops
        self.max_retries = max_retries
        self.clock = clock

    async def load_details(
        self,
        appointment_id: UUID,
        user_id: UUID,
        barber_id: UUID,
        service_id: UUID,
        start: datetime,
        end: datetime,
        cancelled_at: Optional[datetime] = None,
    ) -> Optional[AppointmentDetails]:
        user = await self.users.get_by_id(user_id)
        barber = await self.barbers.get_by_id(barber_id)
        service = await self.services.get_by_id(service_id)
        shop = await self.shops.get_by_id(barber.barber_shop_id) if barber else None

        missing = [
            name for name, record in
            (("user", user), ("barber", barber), ("service", service), ("shop", shop))
            if record is None
        ]
        if missing:
            logger.warning(
                f"Skipping notifications for appointment {appointment_id}: missing {', '.join(missing)}",
                extra={"correlation_id": str(appointment_id)}
            )
            return None

        return AppointmentDetails(
            appointment_id=appointment_id,
            start=start,
            end=end,
            user=user,
            barber=barber,
            service=service,
            shop=shop,
            cancelled_at=cancelled_at,
        )

    async def load_for_appointment(self, appointment: Appointment) -> Optional[AppointmentDetails]:
        return await self.load_details(
            appointment.id,
            appointment.user_id,
            appointment.barber_id,
            appointment.service_id,
            appointment.start,
            appointment.end,
            appointment.cancelled_at,
        )

    def _entry(
        self,
        event_type: NotificationEventType,
        details: AppointmentDetails,
        email: str,
        name: str,
        subject: str,
        body: str,
        dedupe_key: str,
    ) -> NotificationOutbox:
        return NotificationOutbox.create(
            event_type=event_type.value,
            recipient_email=email,
            recipient_name=name,
            subject=subject,
            body=body,
            metadata={
                "appointment_id": str(details.appointment_id),
                "start": details.start.isoformat(),
                "end": details.end.isoformat(),
            },
            correlation_id=details.appointment_id,
            dedupe_key=dedupe_key,
            max_retries=self.max_retries,
            now=self.clock() if self.clock else None,
        )

    def booked(self, details: AppointmentDetails) -> List[NotificationOutbox]:
        kind = NotificationEventType.APPOINTMENT_BOOKED
        user, barber = details.user, details.barber
        return [
            self._entry(
                kind, details, user.email, user.full_name, SUBJECT_BOOKED_CUSTOMER,
                render_confirmation(details, user.full_name),
                _event_dedupe_key(kind, details.appointment_id, "customer"),
            ),
            self._entry(
                kind, details, barber.email, barber.full_name, SUBJECT_BOOKED_BARBER,
                render_confirmation(details, barber.full_name),
                _event_dedupe_key(kind, details.appointment_id, "barber"),
            ),
        ]

    def cancelled(self, details: AppointmentDetails) -> List[NotificationOutbox]:
        kind = NotificationEventType.APPOINTMENT_CANCELLED
        user, barber = details.user, details.barber
        return [
            self._entry(
                kind, details, user.email, user.full_name, SUBJECT_CANCELLED_CUSTOMER,
                render_cancellation(details, user.full_name),
                _event_dedupe_key(kind, details.appointment_id, "customer"),
            ),
            self._entry(
                kind, details, barber.email, barber.full_name, SUBJECT_CANCELLED_BARBER,
                render_cancellation(details, barber.full_name),
                _event_dedupe_key(kind, details.appointment_id, "barber"),
            ),
        ]

    def reminder(self, details: AppointmentDetails) -> NotificationOutbox:
        user = details.user
        return self._entry(
            NotificationEventType.APPOINTMENT_REMINDER, details, user.email, user.full_name,
            SUBJECT_REMINDER,
            render_reminder(details, user.full_name),
            reminder_dedupe_key(details.appointment_id, details.start),
        )


class OutboxEventHandlers:
    """Subscribes to appointment events and writes outbox entries."""

    def __init__(self, composer: NotificationComposer, outbox: NotificationOutboxRepository):
        self.composer = composer
        self.outbox = outbox

    def register(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(AppointmentEventType.BOOKED, self.on_booked)
        dispatcher.subscribe(AppointmentEventType.CANCELLED, self.on_cancelled)

    async def on_booked(self, event: AppointmentEvent) -> None:
        details = await self._details(event)
        if details:
            await self._enqueue(self.composer.booked(details))

    async def on_cancelled(self, event: AppointmentEvent) -> None:
        details = await self._details(event)
        if details:
            await self._enqueue(self.composer.cancelled(details))

    async def _details(self, event: AppointmentEvent) -> Optional[AppointmentDetails]:
        return await self.composer.load_details(
            event.appointment_id,
            event.user_id,
            event.barber_id,
            event.service_id,
            event.start,
            event.end,
            event.cancelled_at,
        )

    async def _enqueue(self, entries: List[NotificationOutbox]) -> None:
        for entry in entries:
            if await self.outbox.add(entry):
                record_counter("notifications_enqueued_total", attributes={"event_type": entry.event_type})
                logger.info(
                    f"Queued {entry.event_type} notification for {entry.recipient_email}",
                    extra={"correlation_id": str(entry.correlation_id)}
                )
