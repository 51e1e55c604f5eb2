"""
Directory Models

Read models for shops, barbers, services and users. The scheduling core
only looks these up by id; they are maintained elsewhere.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    full_name: str
    role: str = "Customer"
    created_at: datetime = Field(default_factory=_utcnow)


class BarberShop(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    street: str = ""
    city: str = ""
    phone: str = ""
    email: str = ""
    open_time: str = "09:00"
    close_time: str = "17:00"
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Barber(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    barber_shop_id: UUID
    full_name: str
    email: str
    phone: str = ""
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Service(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    barber_shop_id: UUID
    name: str
    duration_minutes: int = Field(gt=0)
    price: Decimal = Decimal("0")
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
