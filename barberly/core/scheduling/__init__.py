from .availability import AvailabilityCalculator, AvailabilityService
from .booking import BookingResult, BookingService
from .lifecycle import CancellationService, RescheduleService
from .models import Appointment, Slot
from .repository import AppointmentRepository, SqlAppointmentRepository
from .slot_cache import SlotCache, slot_cache_key

__all__ = [
    "Appointment",
    "AppointmentRepository",
    "AvailabilityCalculator",
    "AvailabilityService",
    "BookingResult",
    "BookingService",
    "CancellationService",
    "RescheduleService",
    "Slot",
    "SlotCache",
    "SqlAppointmentRepository",
    "slot_cache_key",
]
