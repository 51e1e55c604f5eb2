"""
Scheduling Models

The Appointment aggregate and the derived availability slot.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..errors import InvalidStateError, ValidationError

IDEMPOTENCY_KEY_MAX_LENGTH = 64
NIL_UUID = UUID(int=0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_aware(value: datetime, field_name: str) -> datetime:
    """Reject naive datetimes and normalise aware ones to UTC."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{field_name} must include a timezone offset")
    return value.astimezone(timezone.utc)


def _require_id(value: Optional[UUID], field_name: str) -> UUID:
    if value is None or value == NIL_UUID:
        raise ValidationError(f"{field_name} is required")
    return value


def normalize_idempotency_key(key: Optional[str]) -> Optional[str]:
    """Blank keys mean "no key"; over-long keys are rejected."""
    if key is None:
        return None
    key = key.strip()
    if not key:
        return None
    if len(key) > IDEMPOTENCY_KEY_MAX_LENGTH:
        raise ValidationError(
            f"Idempotency key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters"
        )
    return key


class Slot(BaseModel):
    """A bookable [start, end) window."""

    start: datetime
    end: datetime


class Appointment(BaseModel):
    """
    A customer's booking with one barber for one service.

    Appointments are never deleted. `version` is replaced on every mutation
    and is compared on write so that two concurrent writers cannot both
    succeed.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    barber_id: UUID
    service_id: UUID
    start: datetime
    end: datetime
    idempotency_key: Optional[str] = None
    is_cancelled: bool = False
    cancelled_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    version: UUID = Field(default_factory=uuid4)

    @classmethod
    def create(
        cls,
        user_id: UUID,
        barber_id: UUID,
        service_id: UUID,
        start: datetime,
        end: datetime,
        idempotency_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Appointment":
        """
        Build a new appointment, validating every field.

        Raises:
            ValidationError: missing ids, naive or inverted times, start not in the future
        """
        now = now or _utcnow()
        user_id = _require_id(user_id, "User id")
        barber_id = _require_id(barber_id, "Barber id")
        service_id = _require_id(service_id, "Service id")
        start = require_aware(start, "Start time")
        end = require_aware(end, "End time")

        if start >= end:
            raise ValidationError("Start time must be before end time")
        if start <= now:
            raise ValidationError("Start time must be in the future")

        return cls(
            user_id=user_id,
            barber_id=barber_id,
            service_id=service_id,
            start=start,
            end=end,
            idempotency_key=normalize_idempotency_key(idempotency_key),
            created_at=now,
        )

    @property
    def slot_date(self) -> date:
        """UTC calendar day the appointment starts on."""
        return self.start.astimezone(timezone.utc).date()

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    def cancel(self, now: Optional[datetime] = None) -> None:
        now = now or _utcnow()
        if self.is_cancelled:
            raise InvalidStateError("Appointment is already cancelled")
        if self.start <= now:
            raise InvalidStateError("Cannot cancel appointment that has already started")

        self.is_cancelled = True
        self.cancelled_at = now
        self.version = uuid4()

    def reschedule(
        self,
        new_start: datetime,
        new_end: datetime,
        now: Optional[datetime] = None,
    ) -> None:
        now = now or _utcnow()
        if self.is_cancelled:
            raise InvalidStateError("Cannot reschedule cancelled appointment")

        new_start = require_aware(new_start, "New start time")
        new_end = require_aware(new_end, "New end time")
        if new_start >= new_end:
            raise ValidationError("New start time must be before end time")
        if new_start <= now:
            raise ValidationError("Cannot reschedule to a past time")

        self.start = new_start
        self.end = new_end
        self.version = uuid4()
