"""
Directory Repositories

Lookups by id for users, shops, barbers and services. `add` exists for
seeding and tests; directory maintenance is not part of this service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Generic, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel

from ..database import DatabaseAdapter, to_datetime, to_uuid
from .models import Barber, BarberShop, Service, User

ModelT = TypeVar("ModelT", bound=BaseModel)


class DirectoryRepository(ABC, Generic[ModelT]):
    @abstractmethod
    async def get_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        ...

    @abstractmethod
    async def add(self, entity: ModelT) -> None:
        ...


class SqlDirectoryRepository(DirectoryRepository[ModelT]):
    """
    Table-per-model repository.

    Subclasses name the table and model; columns are the model's fields.
    """

    table: str
    model: Type[ModelT]
    uuid_fields = ("id",)
    datetime_fields = ("created_at",)
    bool_fields = ("is_active",)

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    @property
    def columns(self):
        return list(self.model.model_fields.keys())

    async def get_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        row = await self.db.fetchrow(
            f"SELECT {', '.join(self.columns)} FROM {self.table} WHERE id = $1",
            entity_id
        )
        return self._to_model(row) if row else None

    async def add(self, entity: ModelT) -> None:
        columns = self.columns
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        await self.db.execute(
            f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})",
            *(getattr(entity, column) for column in columns)
        )

    def _to_model(self, row: Dict[str, Any]) -> ModelT:
        data = dict(row)
        for name in self.uuid_fields:
            if name in data:
                data[name] = to_uuid(data[name])
        for name in self.datetime_fields:
            if name in data:
                data[name] = to_datetime(data[name])
        for name in self.bool_fields:
            if name in data:
                data[name] = bool(data[name])
        return self.model(**data)


class UserRepository(SqlDirectoryRepository[User]):
    table = "users"
    model = User
    bool_fields = ()


class BarberShopRepository(SqlDirectoryRepository[BarberShop]):
    table = "barber_shops"
    model = BarberShop


class BarberRepository(SqlDirectoryRepository[Barber]):
    table = "barbers"
    model = Barber
    uuid_fields = ("id", "barber_shop_id")


class ServiceRepository(SqlDirectoryRepository[Service]):
    table = "services"
    model = Service
    uuid_fields = ("id", "barber_shop_id")

    def _to_model(self, row: Dict[str, Any]) -> Service:
        data = dict(row)
        data["price"] = Decimal(str(data["price"]))
        return super()._to_model(data)
