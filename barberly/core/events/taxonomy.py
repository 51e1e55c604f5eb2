"""
Appointment Event Taxonomy

Event naming convention: {domain}.{action}, action in past tense.
Handlers subscribe by event type; there is no event class hierarchy.
"""

from enum import Enum


class AppointmentEventType(str, Enum):
    BOOKED = "appointment.booked"
    CANCELLED = "appointment.cancelled"
    RESCHEDULED = "appointment.rescheduled"
