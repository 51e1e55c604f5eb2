"""
Error Response Models

Shape of every error body:

    {
        "error": {
            "code": "SLOT_UNAVAILABLE",
            "message": "Time slot already booked",
            "details": [],
            "trace_id": "abc-123",
            "timestamp": "2024-06-01T09:00:00Z"
        }
    }
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """One field-level problem."""

    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ErrorBody(BaseModel):
    code: str
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)
    trace_id: str
    timestamp: datetime = Field(default_factory=_utcnow)


class MessageResponse(BaseModel):
    message: str
