"""
Availability

Open slots for a barber on a UTC day. Candidates start at opening time and
step by the service duration; a candidate is offered when no live
appointment overlaps it under the half-open rule. Existing bookings for
the whole window are read once and each candidate is checked in memory.
"""

import logging
import time as clock
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from ..config import SchedulingSettings
from ..directory import BarberRepository, ServiceRepository
from ..errors import NotFoundError, ValidationError
from ..observability import record_histogram, traced
from .models import Slot
from .repository import AppointmentRepository
from .slot_cache import SlotCache

logger = logging.getLogger(__name__)


class AvailabilityCalculator:
    def __init__(
        self,
        appointments: AppointmentRepository,
        settings: Optional[SchedulingSettings] = None,
    ):
        self.appointments = appointments
        self.settings = settings or SchedulingSettings()

    def business_window(self, day: date) -> tuple:
        opens = datetime.combine(day, time(hour=self.settings.open_hour), tzinfo=timezone.utc)
        closes = datetime.combine(day, time(hour=self.settings.close_hour), tzinfo=timezone.utc)
        return opens, closes

    async def compute_slots(
        self,
        barber_id: UUID,
        day: date,
        duration_minutes: Optional[int] = None,
    ) -> List[Slot]:
        """
        Free slots of `duration_minutes` inside the business window, in order.

        A trailing candidate that would run past closing time is not offered.
        """
        if duration_minutes is None:
            duration_minutes = self.settings.default_duration_minutes
        if duration_minutes <= 0:
            raise ValidationError("Service duration must be positive")

        started = clock.perf_counter()
        opens, closes = self.business_window(day)
        booked = await self.appointments.get_by_barber_and_range(barber_id, opens, closes)

        step = timedelta(minutes=duration_minutes)
        slots = []
        candidate = opens
        while candidate + step <= closes:
            candidate_end = candidate + step
            if not any(a.overlaps(candidate, candidate_end) for a in booked):
                slots.append(Slot(start=candidate, end=candidate_end))
            candidate = candidate_end

        record_histogram("availability_compute_duration_seconds", clock.perf_counter() - started)
        return slots


class AvailabilityService:
    """Availability lookup through the slot cache."""

    def __init__(
        self,
        barbers: BarberRepository,
        services: ServiceRepository,
        calculator: AvailabilityCalculator,
        cache: SlotCache,
    ):
        self.barbers = barbers
        self.services = services
        self.calculator = calculator
        self.cache = cache

    @traced("availability.get")
    async def get_availability(
        self,
        barber_id: UUID,
        day: date,
        service_id: Optional[UUID] = None,
    ) -> List[Slot]:
        """
        Raises:
            NotFoundError: unknown barber or service
        """
        if await self.barbers.get_by_id(barber_id) is None:
            raise NotFoundError("Barber", barber_id)

        duration = None
        if service_id:
            service = await self.services.get_by_id(service_id)
            if service is None:
                raise NotFoundError("Service", service_id)
            duration = service.duration_minutes

        cached = await self.cache.get(barber_id, day, service_id)
        if cached is not None:
            return cached

        slots = await self.calculator.compute_slots(barber_id, day, duration)
        await self.cache.set(barber_id, day, service_id, slots)
        return slots
