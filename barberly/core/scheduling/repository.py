"""
Appointment Repository

The appointment store is the single source of truth for conflict
decisions. Overlap uses half-open windows on both backends:

    existing.start < end AND existing.end > start

Race protection on insert differs per backend:
- PostgreSQL: the ex_appointments_barber_overlap exclusion constraint
- SQLite: a conditional INSERT ... WHERE NOT EXISTS, which runs under
  SQLite's single-writer lock
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..database import (
    DatabaseAdapter,
    DatabaseBackend,
    IntegrityConflict,
    rows_affected,
    to_datetime,
    to_uuid,
)
from ..errors import ConcurrencyError, ConflictError
from .models import Appointment

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "Time slot already booked"

_COLUMNS = """
    id, user_id, barber_id, service_id, start_at, end_at, idempotency_key,
    is_cancelled, cancelled_at, created_at, version
"""

_INSERT = f"""
    INSERT INTO appointments ({_COLUMNS})
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
"""

_INSERT_IF_FREE = f"""
    INSERT INTO appointments ({_COLUMNS})
    SELECT $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11
    WHERE NOT EXISTS (
        SELECT 1 FROM appointments
        WHERE barber_id = $3
          AND NOT is_cancelled
          AND start_at < $6
          AND end_at > $5
    )
"""

_UPDATE = """
    UPDATE appointments
    SET start_at = $2, end_at = $3, is_cancelled = $4, cancelled_at = $5, version = $6
    WHERE id = $1
      AND version = $7
      AND ($4 OR NOT EXISTS (
          SELECT 1 FROM appointments other
          WHERE other.barber_id = appointments.barber_id
            AND other.id <> $1
            AND NOT other.is_cancelled
            AND other.start_at < $3
            AND other.end_at > $2
      ))
"""


class DuplicateIdempotencyKey(ConflictError):
    """Another request already stored an appointment under this key."""

    def __init__(self, existing: Appointment):
        super().__init__("Idempotency key already used")
        self.existing = existing


class AppointmentRepository(ABC):
    """Storage interface for appointments."""

    @abstractmethod
    async def get_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        ...

    @abstractmethod
    async def get_by_idempotency_key(self, key: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    async def add(self, appointment: Appointment) -> None:
        """
        Persist a new appointment.

        Raises:
            DuplicateIdempotencyKey: the key was claimed by a concurrent request
            ConflictError: the window overlaps a live booking for the barber
        """

    @abstractmethod
    async def update(self, appointment: Appointment, expected_version: UUID) -> None:
        """
        Write back a mutated appointment if nobody else changed it.

        Raises:
            ConcurrencyError: the stored version is no longer expected_version
            ConflictError: a live appointment's new window overlaps another booking
        """

    @abstractmethod
    async def get_by_barber_and_range(
        self,
        barber_id: UUID,
        start: datetime,
        end: datetime,
    ) -> List[Appointment]:
        """Live appointments for the barber overlapping [start, end), by start time."""

    @abstractmethod
    async def get_starting_between(self, start: datetime, end: datetime) -> List[Appointment]:
        """Live appointments whose start falls in [start, end)."""


class SqlAppointmentRepository(AppointmentRepository):
    """Appointment repository over the DatabaseAdapter."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    async def get_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        row = await self.db.fetchrow(
            f"SELECT {_COLUMNS} FROM appointments WHERE id = $1",
            appointment_id
        )
        return _to_appointment(row) if row else None

    async def get_by_idempotency_key(self, key: str) -> Optional[Appointment]:
        row = await self.db.fetchrow(
            f"SELECT {_COLUMNS} FROM appointments WHERE idempotency_key = $1",
            key
        )
        return _to_appointment(row) if row else None

    async def add(self, appointment: Appointment) -> None:
        query = _INSERT_IF_FREE if self.db.backend == DatabaseBackend.SQLITE else _INSERT
        try:
            status = await self.db.execute(
                query,
                appointment.id,
                appointment.user_id,
                appointment.barber_id,
                appointment.service_id,
                appointment.start,
                appointment.end,
                appointment.idempotency_key,
                appointment.is_cancelled,
                appointment.cancelled_at,
                appointment.created_at,
                appointment.version,
            )
        except IntegrityConflict as e:
            await self._raise_for_integrity(appointment, e)

        if rows_affected(status) == 0:
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        logger.debug(f"Stored appointment {appointment.id}")

    async def _raise_for_integrity(self, appointment: Appointment, error: IntegrityConflict):
        if appointment.idempotency_key:
            existing = await self.get_by_idempotency_key(appointment.idempotency_key)
            if existing is not None:
                raise DuplicateIdempotencyKey(existing) from error
        raise ConflictError(SLOT_TAKEN_MESSAGE) from error

    async def update(self, appointment: Appointment, expected_version: UUID) -> None:
        try:
            status = await self.db.execute(
                _UPDATE,
                appointment.id,
                appointment.start,
                appointment.end,
                appointment.is_cancelled,
                appointment.cancelled_at,
                appointment.version,
                expected_version,
            )
        except IntegrityConflict as e:
            raise ConflictError(SLOT_TAKEN_MESSAGE) from e

        if rows_affected(status) == 1:
            return

        current = await self.get_by_id(appointment.id)
        if current is None or current.version != expected_version:
            raise ConcurrencyError()
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    async def get_by_barber_and_range(
        self,
        barber_id: UUID,
        start: datetime,
        end: datetime,
    ) -> List[Appointment]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM appointments
            WHERE barber_id = $1
              AND NOT is_cancelled
              AND start_at < $3
              AND end_at > $2
            ORDER BY start_at
            """,
            barber_id,
            start,
            end,
        )
        return [_to_appointment(row) for row in rows]

    async def get_starting_between(self, start: datetime, end: datetime) -> List[Appointment]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM appointments
            WHERE NOT is_cancelled
              AND start_at >= $1
              AND start_at < $2
            ORDER BY start_at
            """,
            start,
            end,
        )
        return [_to_appointment(row) for row in rows]


def _to_appointment(row: Dict[str, Any]) -> Appointment:
    return Appointment(
        id=to_uuid(row["id"]),
        user_id=to_uuid(row["user_id"]),
        barber_id=to_uuid(row["barber_id"]),
        service_id=to_uuid(row["service_id"]),
        start=to_datetime(row["start_at"]),
        end=to_datetime(row["end_at"]),
        idempotency_key=row["idempotency_key"],
        is_cancelled=bool(row["is_cancelled"]),
        cancelled_at=to_datetime(row["cancelled_at"]),
        created_at=to_datetime(row["created_at"]),
        version=to_uuid(row["version"]),
    )
