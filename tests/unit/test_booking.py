"""
Tests for booking: idempotency, conflict detection and side effects.
"""

import asyncio
import random
from datetime import timedelta
from uuid import uuid4

import pytest

from barberly.core.errors import ConflictError, NotFoundError, ValidationError
from barberly.core.scheduling import SlotCache
from tests.support import FailingCacheBackend, at


async def _book(container, directory, start, end, key=None, barber=None):
    return await container.booking.create_appointment(
        user_id=directory.user.id,
        barber_id=(barber or directory.barber).id,
        service_id=directory.service.id,
        start=start,
        end=end,
        idempotency_key=key,
    )


async def _count(db) -> int:
    return await db.fetchval("SELECT COUNT(*) FROM appointments")


class TestIdempotency:
    async def test_same_key_returns_same_appointment(self, container, directory, db):
        """Repeating a key returns the original booking."""
        first = await _book(container, directory, at(10), at(10, 30), key="k1")
        second = await _book(container, directory, at(10), at(10, 30), key="k1")

        assert first.idempotent_hit is False
        assert second.idempotent_hit is True
        assert second.appointment_id == first.appointment_id
        assert await _count(db) == 1

    async def test_replay_ignores_a_different_window(self, container, directory, db):
        """A replayed key wins over a changed request body."""
        first = await _book(container, directory, at(10), at(10, 30), key="k1")
        second = await _book(container, directory, at(14), at(14, 30), key="k1")

        assert second.idempotent_hit is True
        assert second.appointment.start == first.appointment.start
        assert await _count(db) == 1

    async def test_replay_does_not_enqueue_again(self, container, directory):
        """Replays do not queue more notifications."""
        first = await _book(container, directory, at(10), at(10, 30), key="k1")
        await _book(container, directory, at(10), at(10, 30), key="k1")

        entries = await container.outbox.get_by_correlation_id(first.appointment_id)
        assert len(entries) == 2

    async def test_concurrent_same_key_books_once(self, container, directory, db):
        """Concurrent requests under one key create one booking."""
        results = await asyncio.gather(
            *(_book(container, directory, at(10), at(10, 30), key="race") for _ in range(5))
        )

        assert len({r.appointment_id for r in results}) == 1
        assert sum(not r.idempotent_hit for r in results) == 1
        assert await _count(db) == 1

    async def test_blank_key_is_no_key(self, container, directory, db):
        """Blank keys do not deduplicate bookings."""
        await _book(container, directory, at(10), at(10, 30), key="  ")
        await _book(container, directory, at(11), at(11, 30), key="")

        assert await _count(db) == 2

    async def test_long_key_rejected(self, container, directory):
        """Keys longer than 64 characters are refused."""
        with pytest.raises(ValidationError):
            await _book(container, directory, at(10), at(10, 30), key="x" * 65)


class TestConflicts:
    async def test_overlap_rejected(self, container, directory, db):
        """An overlapping booking is refused and not stored."""
        await _book(container, directory, at(10), at(10, 30))

        with pytest.raises(ConflictError, match="Time slot already booked"):
            await _book(container, directory, at(10, 15), at(10, 45))
        assert await _count(db) == 1

    async def test_adjacent_booking_allowed(self, container, directory, db):
        """Back-to-back bookings are allowed."""
        await _book(container, directory, at(10), at(10, 30))
        await _book(container, directory, at(10, 30), at(11))
        await _book(container, directory, at(9, 30), at(10))

        assert await _count(db) == 3

    async def test_other_barber_not_in_conflict(self, container, directory, db):
        """Overlap is only checked per barber."""
        await _book(container, directory, at(10), at(10, 30))
        await _book(container, directory, at(10), at(10, 30), barber=directory.others[0])

        assert await _count(db) == 2

    async def test_cancelled_booking_frees_window(self, container, directory, db):
        """A cancelled booking's window can be booked again."""
        first = await _book(container, directory, at(10), at(10, 30))
        await container.cancellation.cancel(first.appointment_id)

        await _book(container, directory, at(10), at(10, 30))

        assert await _count(db) == 2

    async def test_concurrent_overlapping_requests_book_once(self, container, directory, db):
        """Concurrent requests for one window book once."""
        results = await asyncio.gather(
            *(_book(container, directory, at(10), at(10, 30)) for _ in range(5)),
            return_exceptions=True,
        )

        booked = [r for r in results if not isinstance(r, Exception)]
        assert len(booked) == 1
        assert all(isinstance(r, ConflictError) for r in results if isinstance(r, Exception))
        assert await _count(db) == 1

    async def test_store_guard_rejects_insert_past_stale_check(self, container, directory):
        """The conditional insert holds even when the pre-check saw nothing."""
        await _book(container, directory, at(10), at(10, 30))
        real_lookup = container.appointments.get_by_barber_and_range

        async def blind_lookup(*args, **kwargs):
            return []

        container.appointments.get_by_barber_and_range = blind_lookup
        try:
            with pytest.raises(ConflictError):
                await _book(container, directory, at(10), at(10, 30))
        finally:
            container.appointments.get_by_barber_and_range = real_lookup

    async def test_random_bookings_never_overlap(self, container, directory):
        """No sequence of bookings leaves two live overlaps."""
        rng = random.Random(20240601)
        accepted = []

        for _ in range(60):
            start = at(9) + timedelta(minutes=15 * rng.randrange(0, 30))
            end = start + timedelta(minutes=15 * rng.randint(1, 4))
            try:
                result = await _book(container, directory, start, end)
            except ConflictError:
                assert any(a.start < end and a.end > start for a in accepted)
                continue
            accepted.append(result.appointment)

        for i, a in enumerate(accepted):
            for b in accepted[i + 1:]:
                assert not (a.start < b.end and a.end > b.start)


class TestValidation:
    async def test_unknown_barber(self, container, directory):
        """Booking an unknown barber raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await container.booking.create_appointment(
                directory.user.id, uuid4(), directory.service.id, at(10), at(10, 30)
            )

    async def test_unknown_service(self, container, directory):
        """Booking an unknown service raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await container.booking.create_appointment(
                directory.user.id, directory.barber.id, uuid4(), at(10), at(10, 30)
            )

    async def test_past_start_rejected(self, container, directory, clock):
        """Bookings must start in the future."""
        with pytest.raises(ValidationError, match="in the future"):
            await _book(container, directory, clock.now - timedelta(hours=1), clock.now)


class TestSideEffects:
    async def test_booking_enqueues_customer_and_barber(self, container, directory):
        """A booking queues a confirmation for both parties."""
        result = await _book(container, directory, at(10), at(10, 30))

        entries = await container.outbox.get_by_correlation_id(result.appointment_id)
        recipients = sorted(e.recipient_email for e in entries)

        assert recipients == ["ali@example.com", "bob@example.com"]
        assert all(e.event_type == "AppointmentBooked" for e in entries)
        assert all(e.metadata["appointment_id"] == str(result.appointment_id) for e in entries)

    async def test_cache_outage_does_not_fail_booking(self, container, directory, db):
        """Cache errors after commit do not fail the booking."""
        container.booking.cache = SlotCache(FailingCacheBackend())

        result = await _book(container, directory, at(10), at(10, 30))

        assert result.idempotent_hit is False
        assert await _count(db) == 1

    async def test_notification_failure_does_not_fail_booking(self, container, directory, db):
        """Outbox errors after commit do not fail the booking."""
        async def broken(*args, **kwargs):
            raise RuntimeError("outbox unavailable")

        container.outbox.add = broken

        await _book(container, directory, at(10), at(10, 30))

        assert await _count(db) == 1

    async def test_missing_user_skips_notifications(self, container, directory):
        """No notifications are queued for an unknown customer."""
        result = await container.booking.create_appointment(
            uuid4(), directory.barber.id, directory.service.id, at(10), at(10, 30)
        )

        assert await container.outbox.get_by_correlation_id(result.appointment_id) == []
