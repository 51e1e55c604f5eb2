"""
Booking Service

Creates appointments. A repeated idempotency key returns the original
appointment instead of booking again. Overlap is checked against the
store before writing and enforced again by the write itself, so two
concurrent requests for the same barber and window cannot both succeed.

After the row is committed the booked event is dispatched (outbox entries
for customer and barber) and the day's slot cache is dropped. Neither step
can fail the booking.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from ..clock import Clock, utc_now
from ..directory import BarberRepository, ServiceRepository
from ..errors import ConflictError, NotFoundError
from ..events import AppointmentEvent, AppointmentEventType, EventDispatcher
from ..observability import add_correlation_id_to_span, record_counter, traced
from .models import Appointment, normalize_idempotency_key
from .repository import SLOT_TAKEN_MESSAGE, AppointmentRepository, DuplicateIdempotencyKey
from .slot_cache import SlotCache

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    appointment: Appointment
    idempotent_hit: bool = False

    @property
    def appointment_id(self) -> UUID:
        return self.appointment.id


class BookingService:
    def __init__(
        self,
        appointments: AppointmentRepository,
        barbers: BarberRepository,
        services: ServiceRepository,
        cache: SlotCache,
        events: EventDispatcher,
        clock: Clock = utc_now,
    ):
        self.appointments = appointments
        self.barbers = barbers
        self.services = services
        self.cache = cache
        self.events = events
        self.clock = clock

    @traced("booking.create")
    async def create_appointment(
        self,
        user_id: UUID,
        barber_id: UUID,
        service_id: UUID,
        start: datetime,
        end: datetime,
        idempotency_key: Optional[str] = None,
    ) -> BookingResult:
        """
        Book [start, end) with a barber.

        Raises:
            ValidationError: invalid ids, times or idempotency key
            NotFoundError: unknown barber or service
            ConflictError: the window overlaps a live booking
        """
        idempotency_key = normalize_idempotency_key(idempotency_key)
        if idempotency_key:
            existing = await self.appointments.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return self._replay(existing)

        appointment = Appointment.create(
            user_id=user_id,
            barber_id=barber_id,
            service_id=service_id,
            start=start,
            end=end,
            idempotency_key=idempotency_key,
            now=self.clock(),
        )

        if await self.barbers.get_by_id(barber_id) is None:
            raise NotFoundError("Barber", barber_id)
        if await self.services.get_by_id(service_id) is None:
            raise NotFoundError("Service", service_id)

        conflicts = await self.appointments.get_by_barber_and_range(
            barber_id, appointment.start, appointment.end
        )
        if conflicts:
            return await self._replay_or_conflict(idempotency_key)

        try:
            # Once the write starts it completes even if the caller goes away
            await asyncio.shield(self.appointments.add(appointment))
        except DuplicateIdempotencyKey as e:
            return self._replay(e.existing)
        except ConflictError:
            return await self._replay_or_conflict(idempotency_key)

        add_correlation_id_to_span(str(appointment.id))
        record_counter("appointments_booked_total")
        logger.info(
            f"Booked appointment {appointment.id} with barber {barber_id}",
            extra={"correlation_id": str(appointment.id)}
        )

        await self.events.dispatch(
            AppointmentEvent.from_appointment(AppointmentEventType.BOOKED, appointment)
        )
        await self.cache.invalidate(barber_id, appointment.slot_date, service_id)

        return BookingResult(appointment=appointment)

    async def _replay_or_conflict(self, idempotency_key: Optional[str]) -> BookingResult:
        # A concurrent request under the same key may be the booking in the way
        if idempotency_key:
            existing = await self.appointments.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return self._replay(existing)
        record_counter("booking_conflicts_total", attributes={"operation": "create"})
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    def _replay(self, existing: Appointment) -> BookingResult:
        record_counter("appointments_idempotent_replays_total")
        logger.info(
            f"Idempotent booking hit for appointment {existing.id}",
            extra={"correlation_id": str(existing.id)}
        )
        return BookingResult(appointment=existing, idempotent_hit=True)
