"""
Tests for the Appointment entity.
"""

from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest

from barberly.core.errors import InvalidStateError, ValidationError
from barberly.core.scheduling import Appointment
from barberly.core.scheduling.models import normalize_idempotency_key
from tests.support import NOW, at


def _create(**overrides) -> Appointment:
    fields = dict(
        user_id=uuid4(),
        barber_id=uuid4(),
        service_id=uuid4(),
        start=at(10),
        end=at(10, 30),
        now=NOW,
    )
    fields.update(overrides)
    return Appointment.create(**fields)


class TestCreate:
    """Construction validates every field."""

    def test_valid_appointment(self):
        """A valid request yields a live appointment."""
        appointment = _create(idempotency_key="k1")

        assert appointment.start == at(10)
        assert appointment.end == at(10, 30)
        assert appointment.idempotency_key == "k1"
        assert appointment.is_cancelled is False
        assert appointment.cancelled_at is None
        assert appointment.created_at == NOW

    @pytest.mark.parametrize("field", ["user_id", "barber_id", "service_id"])
    def test_nil_id_rejected(self, field):
        """Nil user, barber and service ids are refused."""
        with pytest.raises(ValidationError, match="is required"):
            _create(**{field: UUID(int=0)})

    def test_start_equal_to_end_rejected(self):
        """A zero-length window is refused."""
        with pytest.raises(ValidationError, match="Start time must be before end time"):
            _create(start=at(10), end=at(10))

    def test_inverted_window_rejected(self):
        """End before start is refused."""
        with pytest.raises(ValidationError, match="Start time must be before end time"):
            _create(start=at(11), end=at(10))

    def test_start_in_past_rejected(self):
        """Windows that already began are refused."""
        with pytest.raises(ValidationError, match="Start time must be in the future"):
            _create(start=NOW - timedelta(hours=1), end=NOW + timedelta(hours=1))

    def test_start_exactly_now_rejected(self):
        """Start must be strictly after now."""
        with pytest.raises(ValidationError, match="in the future"):
            _create(start=NOW, end=NOW + timedelta(minutes=30))

    def test_naive_datetime_rejected(self):
        """Times without a timezone are refused."""
        with pytest.raises(ValidationError, match="timezone"):
            _create(start=datetime(2024, 6, 1, 10), end=at(10, 30))

    def test_blank_idempotency_key_means_none(self):
        """Whitespace-only keys count as no key."""
        assert _create(idempotency_key="   ").idempotency_key is None

    def test_long_idempotency_key_rejected(self):
        """Keys longer than 64 characters are refused."""
        with pytest.raises(ValidationError, match="at most 64"):
            normalize_idempotency_key("x" * 65)

    def test_64_character_key_accepted(self):
        """The 64 character limit is inclusive."""
        assert normalize_idempotency_key("x" * 64) == "x" * 64


class TestOverlap:
    """Half-open windows: touching is not overlapping."""

    def test_adjacent_windows_do_not_overlap(self):
        """Windows that only touch do not overlap."""
        appointment = _create()

        assert not appointment.overlaps(at(10, 30), at(11))
        assert not appointment.overlaps(at(9, 30), at(10))

    def test_partial_overlap(self):
        """Overlap on either side is detected."""
        appointment = _create()

        assert appointment.overlaps(at(10, 15), at(10, 45))
        assert appointment.overlaps(at(9, 45), at(10, 15))

    def test_containing_window_overlaps(self):
        assert _create().overlaps(at(9), at(12))


class TestCancel:
    def test_cancel_sets_fields_and_new_version(self):
        """Cancel records the time and bumps the version."""
        appointment = _create()
        version = appointment.version

        appointment.cancel(NOW)

        assert appointment.is_cancelled is True
        assert appointment.cancelled_at == NOW
        assert appointment.version != version

    def test_cancel_twice_rejected(self):
        """A cancelled appointment cannot be cancelled again."""
        appointment = _create()
        appointment.cancel(NOW)

        with pytest.raises(InvalidStateError, match="already cancelled"):
            appointment.cancel(NOW)

    def test_cancel_after_start_rejected(self):
        """Appointments that started cannot be cancelled."""
        appointment = _create()

        with pytest.raises(InvalidStateError, match="already started"):
            appointment.cancel(at(10, 5))


class TestReschedule:
    def test_reschedule_moves_window(self):
        """Reschedule replaces the window and bumps the version."""
        appointment = _create()
        version = appointment.version

        appointment.reschedule(at(14), at(14, 30), NOW)

        assert appointment.start == at(14)
        assert appointment.end == at(14, 30)
        assert appointment.version != version

    def test_reschedule_cancelled_rejected(self):
        """Cancelled appointments cannot be moved."""
        appointment = _create()
        appointment.cancel(NOW)

        with pytest.raises(InvalidStateError, match="cancelled"):
            appointment.reschedule(at(14), at(14, 30), NOW)

    def test_reschedule_inverted_rejected(self):
        """An inverted new window is refused."""
        with pytest.raises(ValidationError, match="before end time"):
            _create().reschedule(at(15), at(14), NOW)

    def test_reschedule_to_past_rejected(self):
        """The new start must be in the future."""
        with pytest.raises(ValidationError, match="past time"):
            _create().reschedule(NOW - timedelta(hours=2), NOW - timedelta(hours=1), NOW)

    def test_failed_reschedule_leaves_appointment_unchanged(self):
        """A refused reschedule changes nothing."""
        appointment = _create()
        before = appointment.model_copy()

        with pytest.raises(ValidationError):
            appointment.reschedule(at(15), at(14), NOW)

        assert appointment == before
