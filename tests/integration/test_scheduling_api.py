"""
End-to-end tests for the scheduling API.
"""

from uuid import uuid4

import pytest


def _booking_body(directory, start="2024-06-01T10:00:00Z", end="2024-06-01T10:30:00Z"):
    return {
        "userId": str(directory.user.id),
        "barberId": str(directory.barber.id),
        "serviceId": str(directory.service.id),
        "start": start,
        "end": end,
    }


async def _book(client, directory, key=None, **window):
    headers = {"Idempotency-Key": key} if key else {}
    return await client.post(
        "/api/v1/appointments", json=_booking_body(directory, **window), headers=headers
    )


class TestAvailability:
    async def test_slots_for_day(self, client, directory):
        """Availability lists the day's free slots."""
        response = await client.get(
            f"/api/v1/barbers/{directory.barber.id}/availability",
            params={"date": "2024-06-01", "serviceId": str(directory.service.id)},
        )

        assert response.status_code == 200
        slots = response.json()
        assert len(slots) == 16
        assert slots[0] == {"start": "2024-06-01T09:00:00Z", "end": "2024-06-01T09:30:00Z"}

    async def test_unknown_barber_is_404(self, client, directory):
        """Unknown barber returns the error envelope with 404."""
        response = await client.get(
            f"/api/v1/barbers/{uuid4()}/availability", params={"date": "2024-06-01"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "BARBER_NOT_FOUND"

    async def test_malformed_date_is_400(self, client, directory):
        """An unparseable date returns 400."""
        response = await client.get(
            f"/api/v1/barbers/{directory.barber.id}/availability", params={"date": "June 1st"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestBookingFlow:
    async def test_book_replay_and_conflict(self, client, directory, db):
        """201 on booking, 200 on replay, 409 on overlap."""
        first = await _book(client, directory, key="k1")
        assert first.status_code == 201
        appointment_id = first.json()["id"]
        assert first.headers["Location"] == f"/api/v1/appointments/{appointment_id}"

        replay = await _book(client, directory, key="k1")
        assert replay.status_code == 200
        assert replay.json() == {"id": appointment_id}
        assert await db.fetchval("SELECT COUNT(*) FROM appointments") == 1

        overlap = await _book(
            client, directory, start="2024-06-01T10:15:00Z", end="2024-06-01T10:45:00Z"
        )
        assert overlap.status_code == 409
        error = overlap.json()["error"]
        assert error["code"] == "SLOT_UNAVAILABLE"
        assert error["message"] == "Time slot already booked"
        assert error["trace_id"]

        slots = await client.get(
            f"/api/v1/barbers/{directory.barber.id}/availability",
            params={"date": "2024-06-01", "serviceId": str(directory.service.id)},
        )
        assert len(slots.json()) == 15

    async def test_get_appointment(self, client, directory):
        """A booked appointment can be read back."""
        created = await _book(client, directory)
        appointment_id = created.json()["id"]

        response = await client.get(f"/api/v1/appointments/{appointment_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == appointment_id
        assert body["barberId"] == str(directory.barber.id)
        assert body["start"] == "2024-06-01T10:00:00Z"
        assert body["isCancelled"] is False
        assert body["cancelledAt"] is None

    async def test_get_unknown_appointment(self, client, directory):
        """Unknown appointment returns 404."""
        response = await client.get(f"/api/v1/appointments/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Appointment not found"

    async def test_inverted_window_is_400(self, client, directory):
        """An inverted window returns 400."""
        response = await _book(
            client, directory, start="2024-06-01T11:00:00Z", end="2024-06-01T10:00:00Z"
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Start time must be before end time"

    async def test_past_start_is_400(self, client, directory):
        """A past start returns 400."""
        response = await _book(
            client, directory, start="2024-05-01T10:00:00Z", end="2024-05-01T10:30:00Z"
        )

        assert response.status_code == 400

    async def test_missing_field_is_400(self, client, directory):
        """Request validation errors return 400."""
        body = _booking_body(directory)
        del body["barberId"]

        response = await client.post("/api/v1/appointments", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "body.barberId"

    async def test_trace_id_echoed(self, client, directory):
        """X-Trace-ID is echoed back."""
        response = await client.get("/health", headers={"X-Trace-ID": "trace-123"})

        assert response.headers["X-Trace-ID"] == "trace-123"

    async def test_correlation_id_echoed(self, client, directory):
        """X-Correlation-ID is echoed back when the caller sends one."""
        response = await client.get("/health", headers={"X-Correlation-ID": "visit-9"})

        assert response.headers["X-Correlation-ID"] == "visit-9"
        assert "X-Correlation-ID" not in (await client.get("/health")).headers


class TestCancelAndReschedule:
    async def test_cancel(self, client, directory):
        """DELETE cancels and confirms."""
        appointment_id = (await _book(client, directory)).json()["id"]

        response = await client.delete(f"/api/v1/appointments/{appointment_id}")
        assert response.status_code == 200
        assert response.json() == {"message": "Appointment cancelled successfully"}

        again = await client.delete(f"/api/v1/appointments/{appointment_id}")
        assert again.status_code == 400
        assert again.json()["error"]["message"] == "Appointment is already cancelled"

    async def test_cancel_unknown(self, client, directory):
        """Cancelling an unknown id returns 404."""
        response = await client.delete(f"/api/v1/appointments/{uuid4()}")

        assert response.status_code == 404

    async def test_reschedule(self, client, directory):
        """PATCH moves the appointment and returns the new window."""
        appointment_id = (await _book(client, directory)).json()["id"]

        response = await client.patch(
            f"/api/v1/appointments/{appointment_id}",
            json={"newStart": "2024-06-01T14:00:00Z", "newEnd": "2024-06-01T14:30:00Z"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "message": "Appointment rescheduled successfully",
            "appointment": {
                "id": appointment_id,
                "start": "2024-06-01T14:00:00Z",
                "end": "2024-06-01T14:30:00Z",
            },
        }

    async def test_reschedule_conflict(self, client, directory):
        """Moving onto another booking returns 409."""
        appointment_id = (await _book(client, directory)).json()["id"]
        await _book(client, directory, start="2024-06-01T14:00:00Z", end="2024-06-01T14:30:00Z")

        response = await client.patch(
            f"/api/v1/appointments/{appointment_id}",
            json={"newStart": "2024-06-01T14:00:00Z", "newEnd": "2024-06-01T14:30:00Z"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "New time slot is already booked"

    @pytest.mark.parametrize("window", [
        {"newStart": "2024-06-01T15:00:00Z", "newEnd": "2024-06-01T14:00:00Z"},
        {"newStart": "2024-05-01T15:00:00Z", "newEnd": "2024-05-01T16:00:00Z"},
    ])
    async def test_reschedule_invalid_window(self, client, directory, window):
        """Invalid new windows return 400."""
        appointment_id = (await _book(client, directory)).json()["id"]

        response = await client.patch(f"/api/v1/appointments/{appointment_id}", json=window)

        assert response.status_code == 400
