"""
Tests for the slot cache and the in-memory cache backend.
"""

import asyncio
from datetime import date
from uuid import uuid4

from barberly.core.cache import MemoryCacheBackend
from barberly.core.scheduling import SlotCache, slot_cache_key
from barberly.core.scheduling.models import Slot
from tests.support import FailingCacheBackend, at

DAY = date(2024, 6, 1)


class TestSlotCacheKey:
    def test_key_with_service(self):
        """Keys carry barber, date and service."""
        barber_id, service_id = uuid4(), uuid4()

        assert slot_cache_key(barber_id, DAY, service_id) == (
            f"barbers:{barber_id}:slots:2024-06-01:{service_id}"
        )

    def test_key_without_service_uses_default(self):
        """No service id means the default-duration key."""
        barber_id = uuid4()

        assert slot_cache_key(barber_id, DAY) == f"barbers:{barber_id}:slots:2024-06-01:default"


class TestSlotCache:
    async def test_round_trip(self):
        """Slots read back as written."""
        cache = SlotCache(MemoryCacheBackend())
        barber_id = uuid4()
        slots = [Slot(start=at(9), end=at(9, 30)), Slot(start=at(10), end=at(10, 30))]

        await cache.set(barber_id, DAY, None, slots)

        assert await cache.get(barber_id, DAY) == slots

    async def test_miss_returns_none(self):
        assert await SlotCache(MemoryCacheBackend()).get(uuid4(), DAY) is None

    async def test_invalidate_drops_service_and_default_views(self):
        """Invalidation drops the service and default keys."""
        backend = MemoryCacheBackend()
        cache = SlotCache(backend)
        barber_id, service_id = uuid4(), uuid4()
        slots = [Slot(start=at(9), end=at(9, 30))]
        await cache.set(barber_id, DAY, None, slots)
        await cache.set(barber_id, DAY, service_id, slots)

        await cache.invalidate(barber_id, DAY, service_id)

        assert await cache.get(barber_id, DAY) is None
        assert await cache.get(barber_id, DAY, service_id) is None

    async def test_invalidate_leaves_other_days(self):
        """Invalidation is scoped to one date."""
        cache = SlotCache(MemoryCacheBackend())
        barber_id = uuid4()
        other_day = date(2024, 6, 2)
        slots = [Slot(start=at(9, day=2), end=at(9, 30, day=2))]
        await cache.set(barber_id, other_day, None, slots)

        await cache.invalidate(barber_id, DAY)

        assert await cache.get(barber_id, other_day) == slots

    async def test_unreadable_entry_is_a_miss(self):
        """Corrupt cached values are treated as misses."""
        backend = MemoryCacheBackend()
        barber_id = uuid4()
        await backend.set(slot_cache_key(barber_id, DAY), "not json", 60)

        assert await SlotCache(backend).get(barber_id, DAY) is None

    async def test_backend_errors_fail_open(self):
        """Backend errors never reach the caller."""
        backend = FailingCacheBackend()
        cache = SlotCache(backend)
        barber_id = uuid4()

        assert await cache.get(barber_id, DAY) is None
        await cache.set(barber_id, DAY, None, [])
        await cache.invalidate(barber_id, DAY, uuid4())

        assert backend.calls == 3


class TestMemoryCacheBackend:
    async def test_expired_entry_is_gone(self):
        """Entries past their TTL are not returned."""
        backend = MemoryCacheBackend()
        await backend.set("k", "v", 0)

        assert await backend.get("k") is None

    async def test_delete_many(self):
        """Delete takes several keys and ignores missing ones."""
        backend = MemoryCacheBackend()
        await backend.set("a", "1", 60)
        await backend.set("b", "2", 60)

        await backend.delete("a", "b", "missing")

        assert await backend.get("a") is None
        assert await backend.get("b") is None

    async def test_eviction_bounds_size(self):
        """The soonest-expiring entry is evicted when full."""
        backend = MemoryCacheBackend(max_entries=2)
        await backend.set("a", "1", 10)
        await backend.set("b", "2", 20)
        await backend.set("c", "3", 30)

        assert await backend.get("a") is None
        assert await backend.get("c") == "3"

    async def test_concurrent_writers(self):
        """Concurrent writes all land."""
        backend = MemoryCacheBackend()

        await asyncio.gather(*(backend.set(f"k{i}", str(i), 60) for i in range(50)))

        assert await backend.get("k49") == "49"
