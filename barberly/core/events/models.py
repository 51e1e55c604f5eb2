"""
Event Models
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .taxonomy import AppointmentEventType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentEvent(BaseModel):
    """
    Something that happened to an appointment.

    `start` and `end` carry the window the event is about. For a reschedule
    they are the new window and `previous_start`/`previous_end` the old one.
    """

    id: UUID = Field(default_factory=uuid4)
    event_type: AppointmentEventType
    appointment_id: UUID
    user_id: UUID
    barber_id: UUID
    service_id: UUID
    start: datetime
    end: datetime
    previous_start: Optional[datetime] = None
    previous_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    occurred_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_appointment(cls, event_type: AppointmentEventType, appointment, **extra) -> "AppointmentEvent":
        return cls(
            event_type=event_type,
            appointment_id=appointment.id,
            user_id=appointment.user_id,
            barber_id=appointment.barber_id,
            service_id=appointment.service_id,
            start=appointment.start,
            end=appointment.end,
            cancelled_at=appointment.cancelled_at,
            **extra
        )
