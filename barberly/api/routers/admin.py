"""
Admin/Operator API

Outbox inspection and manual retry of notifications that ran out of
attempts.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...core.container import Container
from ...core.errors import ConcurrencyError, NotFoundError
from ...core.notifications import NotificationOutbox
from ..dependencies import get_container

router = APIRouter(prefix="/api/admin", tags=["admin"])


class FailedNotification(BaseModel):
    id: UUID
    event_type: str
    recipient_email: str
    subject: str
    retry_count: int
    max_retries: int
    error_message: Optional[str] = None
    correlation_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: NotificationOutbox) -> "FailedNotification":
        return cls(
            id=entry.id,
            event_type=entry.event_type,
            recipient_email=entry.recipient_email,
            subject=entry.subject,
            retry_count=entry.retry_count,
            max_retries=entry.max_retries,
            error_message=entry.error_message,
            correlation_id=entry.correlation_id,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


@router.get("/notifications/stats")
async def notification_stats(container: Container = Depends(get_container)) -> Dict[str, int]:
    """Outbox counts per status."""
    return await container.dispatcher.get_stats()


@router.get("/notifications/failed")
async def list_failed_notifications(
    limit: int = Query(100, ge=1, le=1000),
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    """Notifications that exhausted their retries, most recent first."""
    entries = await container.outbox.get_failed(limit)
    items: List[FailedNotification] = [FailedNotification.from_entry(e) for e in entries]
    return {
        "entries": [item.model_dump(mode="json") for item in items],
        "count": len(items),
        "limit": limit,
    }


@router.post("/notifications/{entry_id}/retry")
async def retry_notification(
    entry_id: UUID,
    container: Container = Depends(get_container),
) -> Dict[str, str]:
    """Return a Failed notification to Pending with its retry count reset."""
    entry = await container.outbox.get_by_id(entry_id)
    if entry is None:
        raise NotFoundError("Notification", entry_id)

    if not await container.dispatcher.requeue(entry):
        raise ConcurrencyError("Notification was modified concurrently")

    return {"status": "queued_for_retry", "entry_id": str(entry_id)}
