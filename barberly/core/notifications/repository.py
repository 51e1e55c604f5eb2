"""
Notification Outbox Repository
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..database import DatabaseAdapter, IntegrityConflict, rows_affected, to_datetime, to_uuid
from .models import NotificationOutbox, NotificationStatus

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, event_type, recipient_email, recipient_name, subject, body, metadata,
    correlation_id, dedupe_key, status, retry_count, max_retries,
    processed_at, error_message, created_at, updated_at
"""


class NotificationOutboxRepository(ABC):
    @abstractmethod
    async def add(self, entry: NotificationOutbox) -> bool:
        """Store a new entry. False when its dedupe key is already taken."""

    @abstractmethod
    async def get_by_id(self, entry_id: UUID) -> Optional[NotificationOutbox]:
        ...

    @abstractmethod
    async def get_pending(self, batch_size: int) -> List[NotificationOutbox]:
        """Oldest Pending entries first."""

    @abstractmethod
    async def update(
        self,
        entry: NotificationOutbox,
        expected_status: Optional[NotificationStatus] = None,
    ) -> bool:
        """
        Write back an entry's mutable fields.

        With expected_status the write only applies if the stored status
        still matches, which lets a dispatcher claim an entry. Returns
        whether a row was written.
        """

    @abstractmethod
    async def get_pending_count(self) -> int:
        ...

    @abstractmethod
    async def get_failed(self, limit: int) -> List[NotificationOutbox]:
        """Most recently failed first."""

    @abstractmethod
    async def exists_by_dedupe_key(self, dedupe_key: str) -> bool:
        ...

    @abstractmethod
    async def get_stale_processing(self, updated_before: datetime, limit: int) -> List[NotificationOutbox]:
        ...

    @abstractmethod
    async def get_by_correlation_id(self, correlation_id: UUID) -> List[NotificationOutbox]:
        ...

    @abstractmethod
    async def count_by_status(self) -> Dict[str, int]:
        ...


class SqlNotificationOutboxRepository(NotificationOutboxRepository):
    def __init__(self, db: DatabaseAdapter):
        self.db = db

    async def add(self, entry: NotificationOutbox) -> bool:
        try:
            await self.db.execute(
                f"""
                INSERT INTO notification_outbox ({_COLUMNS})
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
                """,
                entry.id,
                entry.event_type,
                entry.recipient_email,
                entry.recipient_name,
                entry.subject,
                entry.body,
                json.dumps(entry.metadata),
                entry.correlation_id,
                entry.dedupe_key,
                entry.status.value,
                entry.retry_count,
                entry.max_retries,
                entry.processed_at,
                entry.error_message,
                entry.created_at,
                entry.updated_at,
            )
        except IntegrityConflict:
            if entry.dedupe_key and await self.exists_by_dedupe_key(entry.dedupe_key):
                logger.debug(f"Outbox entry with dedupe key {entry.dedupe_key} already exists")
                return False
            raise
        return True

    async def get_by_id(self, entry_id: UUID) -> Optional[NotificationOutbox]:
        row = await self.db.fetchrow(
            f"SELECT {_COLUMNS} FROM notification_outbox WHERE id = $1",
            entry_id
        )
        return _to_entry(row) if row else None

    async def get_pending(self, batch_size: int) -> List[NotificationOutbox]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM notification_outbox
            WHERE status = $1
            ORDER BY created_at ASC
            LIMIT $2
            """,
            NotificationStatus.PENDING.value,
            batch_size,
        )
        return [_to_entry(row) for row in rows]

    async def update(
        self,
        entry: NotificationOutbox,
        expected_status: Optional[NotificationStatus] = None,
    ) -> bool:
        query = """
            UPDATE notification_outbox
            SET status = $2, retry_count = $3, processed_at = $4,
                error_message = $5, updated_at = $6
            WHERE id = $1
        """
        args = [
            entry.id,
            entry.status.value,
            entry.retry_count,
            entry.processed_at,
            entry.error_message,
            entry.updated_at,
        ]
        if expected_status is not None:
            query += " AND status = $7"
            args.append(expected_status.value)

        status = await self.db.execute(query, *args)
        return rows_affected(status) == 1

    async def get_pending_count(self) -> int:
        count = await self.db.fetchval(
            "SELECT COUNT(*) FROM notification_outbox WHERE status = $1",
            NotificationStatus.PENDING.value,
        )
        return int(count or 0)

    async def get_failed(self, limit: int) -> List[NotificationOutbox]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM notification_outbox
            WHERE status = $1
            ORDER BY updated_at DESC
            LIMIT $2
            """,
            NotificationStatus.FAILED.value,
            limit,
        )
        return [_to_entry(row) for row in rows]

    async def exists_by_dedupe_key(self, dedupe_key: str) -> bool:
        found = await self.db.fetchval(
            "SELECT 1 FROM notification_outbox WHERE dedupe_key = $1",
            dedupe_key,
        )
        return found is not None

    async def get_stale_processing(self, updated_before: datetime, limit: int) -> List[NotificationOutbox]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM notification_outbox
            WHERE status = $1 AND updated_at < $2
            ORDER BY updated_at ASC
            LIMIT $3
            """,
            NotificationStatus.PROCESSING.value,
            updated_before,
            limit,
        )
        return [_to_entry(row) for row in rows]

    async def get_by_correlation_id(self, correlation_id: UUID) -> List[NotificationOutbox]:
        rows = await self.db.fetch(
            f"""
            SELECT {_COLUMNS} FROM notification_outbox
            WHERE correlation_id = $1
            ORDER BY created_at ASC
            """,
            correlation_id,
        )
        return [_to_entry(row) for row in rows]

    async def count_by_status(self) -> Dict[str, int]:
        rows = await self.db.fetch(
            "SELECT status, COUNT(*) AS count FROM notification_outbox GROUP BY status"
        )
        stats = {status.value: 0 for status in NotificationStatus}
        for row in rows:
            stats[row["status"]] = int(row["count"])
        return stats


def _to_entry(row: Dict[str, Any]) -> NotificationOutbox:
    metadata = row["metadata"]
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return NotificationOutbox(
        id=to_uuid(row["id"]),
        event_type=row["event_type"],
        recipient_email=row["recipient_email"],
        recipient_name=row["recipient_name"],
        subject=row["subject"],
        body=row["body"],
        metadata=metadata or {},
        correlation_id=to_uuid(row["correlation_id"]),
        dedupe_key=row["dedupe_key"],
        status=NotificationStatus(row["status"]),
        retry_count=row["retry_count"],
        max_retries=row["max_retries"],
        processed_at=to_datetime(row["processed_at"]),
        error_message=row["error_message"],
        created_at=to_datetime(row["created_at"]),
        updated_at=to_datetime(row["updated_at"]),
    )
