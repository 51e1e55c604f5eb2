"""
Notification Outbox Models

An outbox entry is a pre-rendered e-mail waiting to be delivered. The
dispatcher drives it through this state machine:

    Pending -> Processing -> Sent
    Processing -> Pending            (failed, retries left)
    Pending/Processing -> Failed     (failed, retries exhausted; terminal)
    Failed -> Processing             (operator retry)
    Failed -> Pending                (operator requeue, retries reset)

Entries are never deleted.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..errors import InvalidStateError, ValidationError

DEFAULT_MAX_RETRIES = 3
ERROR_MESSAGE_MAX_LENGTH = 2000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SENT = "Sent"
    FAILED = "Failed"


class NotificationEventType(str, Enum):
    APPOINTMENT_BOOKED = "AppointmentBooked"
    APPOINTMENT_REMINDER = "AppointmentReminder"
    APPOINTMENT_CANCELLED = "AppointmentCancelled"


def _require_text(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value


class NotificationOutbox(BaseModel):
    """One notification attempt record."""

    id: UUID = Field(default_factory=uuid4)
    event_type: str
    recipient_email: str
    recipient_name: str
    subject: str
    body: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[UUID] = None
    dedupe_key: Optional[str] = None

    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        event_type: str,
        recipient_email: str,
        recipient_name: str,
        subject: str,
        body: str,
        metadata: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[UUID] = None,
        dedupe_key: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        now: Optional[datetime] = None,
    ) -> "NotificationOutbox":
        """
        Build a Pending entry.

        Raises:
            ValidationError: a required text field is blank or max_retries is negative
        """
        if max_retries < 0:
            raise ValidationError("Max retries cannot be negative")
        now = now or _utcnow()
        return cls(
            event_type=_require_text(
                event_type.value if isinstance(event_type, Enum) else event_type,
                "Event type",
            ),
            recipient_email=_require_text(recipient_email, "Recipient email"),
            recipient_name=_require_text(recipient_name, "Recipient name"),
            subject=_require_text(subject, "Subject"),
            body=_require_text(body, "Body"),
            metadata=metadata or {},
            correlation_id=correlation_id,
            dedupe_key=dedupe_key,
            max_retries=max_retries,
            created_at=now,
            updated_at=now,
        )

    def mark_as_processing(self, now: Optional[datetime] = None) -> None:
        if self.status not in (NotificationStatus.PENDING, NotificationStatus.FAILED):
            raise InvalidStateError(
                f"Cannot start processing a notification in status {self.status.value}"
            )
        self.status = NotificationStatus.PROCESSING
        self.updated_at = now or _utcnow()

    def mark_as_sent(self, now: Optional[datetime] = None) -> None:
        if self.status != NotificationStatus.PROCESSING:
            raise InvalidStateError("Only a notification being processed can be marked as sent")
        now = now or _utcnow()
        self.status = NotificationStatus.SENT
        self.processed_at = now
        self.error_message = None
        self.updated_at = now

    def mark_as_failed(self, error: str, now: Optional[datetime] = None) -> None:
        """
        Record a failed attempt.

        The entry returns to Pending while retries remain and becomes
        terminally Failed once retry_count reaches max_retries.
        """
        if not error or not error.strip():
            raise ValidationError("Error message is required")
        if self.status not in (NotificationStatus.PENDING, NotificationStatus.PROCESSING):
            raise InvalidStateError(
                f"Cannot record a failure for a notification in status {self.status.value}"
            )

        self.retry_count += 1
        self.error_message = error[:ERROR_MESSAGE_MAX_LENGTH]
        if self.retry_count >= self.max_retries:
            self.status = NotificationStatus.FAILED
        else:
            self.status = NotificationStatus.PENDING
        self.updated_at = now or _utcnow()

    def can_retry(self) -> bool:
        return self.status == NotificationStatus.PENDING and self.retry_count < self.max_retries

    def requeue(self, now: Optional[datetime] = None) -> None:
        """Give a Failed entry a fresh set of retries."""
        if self.status != NotificationStatus.FAILED:
            raise InvalidStateError("Only failed notifications can be requeued")
        self.status = NotificationStatus.PENDING
        self.retry_count = 0
        self.updated_at = now or _utcnow()

    def is_stale(self, now: datetime, stale_after: timedelta) -> bool:
        return self.status == NotificationStatus.PROCESSING and now - self.updated_at >= stale_after
