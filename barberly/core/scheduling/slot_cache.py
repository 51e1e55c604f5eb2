"""
Slot Cache

Read-through cache of computed availability, keyed by barber, UTC day and
service. Every backend call fails open: an error is logged and behaves
like a miss or a no-op, so availability and bookings never depend on the
cache being up. Bookings always re-check conflicts against the store.
"""

import json
import logging
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..cache import CacheBackend
from ..observability import record_counter
from .models import Slot

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_SERVICE_SEGMENT = "default"

_slots_adapter = TypeAdapter(List[Slot])


def slot_cache_key(barber_id: UUID, day: date, service_id: Optional[UUID] = None) -> str:
    segment = str(service_id) if service_id else DEFAULT_SERVICE_SEGMENT
    return f"barbers:{barber_id}:slots:{day.isoformat()}:{segment}"


class SlotCache:
    def __init__(self, backend: CacheBackend, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    async def get(
        self,
        barber_id: UUID,
        day: date,
        service_id: Optional[UUID] = None,
    ) -> Optional[List[Slot]]:
        key = slot_cache_key(barber_id, day, service_id)
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            self._absorb("get", key, e)
            return None

        if raw is None:
            return None
        try:
            return _slots_adapter.validate_json(raw)
        except PydanticValidationError:
            logger.warning(f"Discarding unreadable slot cache entry {key}")
            return None

    async def set(
        self,
        barber_id: UUID,
        day: date,
        service_id: Optional[UUID],
        slots: List[Slot],
    ) -> None:
        key = slot_cache_key(barber_id, day, service_id)
        payload = json.dumps([slot.model_dump(mode="json") for slot in slots])
        try:
            await self.backend.set(key, payload, self.ttl_seconds)
        except Exception as e:
            self._absorb("set", key, e)

    async def invalidate(
        self,
        barber_id: UUID,
        day: date,
        service_id: Optional[UUID] = None,
    ) -> None:
        """
        Drop cached slots for the day.

        Both the service-specific view and the default-duration view are
        removed since either may list the changed window.
        """
        keys = {slot_cache_key(barber_id, day, None)}
        if service_id:
            keys.add(slot_cache_key(barber_id, day, service_id))
        await self._delete(sorted(keys))

    async def _delete(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        try:
            await self.backend.delete(*keys)
        except Exception as e:
            self._absorb("delete", ",".join(keys), e)

    @staticmethod
    def _absorb(operation: str, key: str, error: Exception) -> None:
        record_counter("slot_cache_errors_total", attributes={"operation": operation})
        logger.warning(
            f"Slot cache {operation} failed for {key}: {error}",
            extra={"cache_key": key, "operation": operation}
        )
