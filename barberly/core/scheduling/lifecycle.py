"""
Cancellation and Reschedule

Both operations load the appointment, apply the entity's own state checks,
then write back under the version read. A concurrent change surfaces as
ConcurrencyError rather than a lost update.
"""

import asyncio
import logging
from datetime import datetime
from uuid import UUID

from ..errors import ConcurrencyError, ConflictError, NotFoundError
from ..events import AppointmentEvent, AppointmentEventType, EventDispatcher
from ..observability import add_correlation_id_to_span, record_counter, traced
from ..clock import Clock, utc_now
from .models import Appointment
from .repository import AppointmentRepository
from .slot_cache import SlotCache

logger = logging.getLogger(__name__)

RESCHEDULE_CONFLICT_MESSAGE = "New time slot is already booked"


class _AppointmentMutation:
    def __init__(
        self,
        appointments: AppointmentRepository,
        cache: SlotCache,
        events: EventDispatcher,
        clock: Clock = utc_now,
    ):
        self.appointments = appointments
        self.cache = cache
        self.events = events
        self.clock = clock

    async def _load(self, appointment_id: UUID) -> Appointment:
        appointment = await self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        add_correlation_id_to_span(str(appointment_id))
        return appointment


class CancellationService(_AppointmentMutation):
    @traced("appointment.cancel")
    async def cancel(self, appointment_id: UUID) -> Appointment:
        """
        Cancel an upcoming appointment.

        Raises:
            NotFoundError: no such appointment
            InvalidStateError: already cancelled, or already started
            ConcurrencyError: changed by someone else meanwhile
        """
        appointment = await self._load(appointment_id)
        expected_version = appointment.version
        appointment.cancel(self.clock())

        await asyncio.shield(self.appointments.update(appointment, expected_version))

        record_counter("appointments_cancelled_total")
        logger.info(
            f"Cancelled appointment {appointment.id}",
            extra={"correlation_id": str(appointment.id)}
        )

        await self.events.dispatch(
            AppointmentEvent.from_appointment(AppointmentEventType.CANCELLED, appointment)
        )
        await self.cache.invalidate(
            appointment.barber_id, appointment.slot_date, appointment.service_id
        )
        return appointment


class RescheduleService(_AppointmentMutation):
    @traced("appointment.reschedule")
    async def reschedule(
        self,
        appointment_id: UUID,
        new_start: datetime,
        new_end: datetime,
    ) -> Appointment:
        """
        Move an appointment to a new window.

        Raises:
            NotFoundError: no such appointment
            InvalidStateError: the appointment is cancelled
            ValidationError: inverted window or a start that is not in the future
            ConflictError: the new window overlaps another live booking
            ConcurrencyError: changed by someone else meanwhile
        """
        appointment = await self._load(appointment_id)
        expected_version = appointment.version
        previous_start, previous_end = appointment.start, appointment.end
        previous_date = appointment.slot_date

        appointment.reschedule(new_start, new_end, self.clock())

        overlapping = await self.appointments.get_by_barber_and_range(
            appointment.barber_id, appointment.start, appointment.end
        )
        if any(other.id != appointment.id for other in overlapping):
            record_counter("booking_conflicts_total", attributes={"operation": "reschedule"})
            raise ConflictError(RESCHEDULE_CONFLICT_MESSAGE)

        try:
            await asyncio.shield(self.appointments.update(appointment, expected_version))
        except ConcurrencyError:
            raise
        except ConflictError as e:
            record_counter("booking_conflicts_total", attributes={"operation": "reschedule"})
            raise ConflictError(RESCHEDULE_CONFLICT_MESSAGE) from e

        record_counter("appointments_rescheduled_total")
        logger.info(
            f"Rescheduled appointment {appointment.id} to {appointment.start.isoformat()}",
            extra={"correlation_id": str(appointment.id)}
        )

        await self.events.dispatch(
            AppointmentEvent.from_appointment(
                AppointmentEventType.RESCHEDULED,
                appointment,
                previous_start=previous_start,
                previous_end=previous_end,
            )
        )
        await self.cache.invalidate(appointment.barber_id, previous_date, appointment.service_id)
        if appointment.slot_date != previous_date:
            await self.cache.invalidate(
                appointment.barber_id, appointment.slot_date, appointment.service_id
            )
        return appointment
