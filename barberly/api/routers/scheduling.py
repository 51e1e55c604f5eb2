"""
Scheduling API

Availability lookup and the appointment lifecycle: book, view, cancel,
reschedule. Domain errors propagate to the global error handler.
"""

from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...core.container import Container
from ...core.errors import NotFoundError
from ...core.scheduling import Appointment
from ..dependencies import get_container
from ..shared.responses import MessageResponse

router = APIRouter(prefix="/api/v1", tags=["scheduling"])

CANCELLED_MESSAGE = "Appointment cancelled successfully"
RESCHEDULED_MESSAGE = "Appointment rescheduled successfully"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlotResponse(CamelModel):
    start: datetime
    end: datetime


class CreateAppointmentRequest(CamelModel):
    user_id: UUID
    barber_id: UUID
    service_id: UUID
    start: datetime
    end: datetime


class RescheduleAppointmentRequest(CamelModel):
    new_start: datetime
    new_end: datetime


class AppointmentCreatedResponse(CamelModel):
    id: UUID


class AppointmentResponse(CamelModel):
    id: UUID
    user_id: UUID
    barber_id: UUID
    service_id: UUID
    start: datetime
    end: datetime
    is_cancelled: bool
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            user_id=appointment.user_id,
            barber_id=appointment.barber_id,
            service_id=appointment.service_id,
            start=appointment.start,
            end=appointment.end,
            is_cancelled=appointment.is_cancelled,
            cancelled_at=appointment.cancelled_at,
            created_at=appointment.created_at,
        )


class RescheduledWindow(CamelModel):
    id: UUID
    start: datetime
    end: datetime


class RescheduleResponse(CamelModel):
    message: str
    appointment: RescheduledWindow


@router.get("/barbers/{barber_id}/availability", response_model=List[SlotResponse])
async def get_availability(
    barber_id: UUID,
    day: Optional[date] = Query(None, alias="date"),
    service_id: Optional[UUID] = Query(None, alias="serviceId"),
    container: Container = Depends(get_container),
):
    """Open slots for the barber on a UTC day (today when omitted)."""
    day = day or datetime.now(timezone.utc).date()
    slots = await container.availability.get_availability(barber_id, day, service_id)
    return [SlotResponse(start=slot.start, end=slot.end) for slot in slots]


@router.post(
    "/appointments",
    response_model=AppointmentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(
    body: CreateAppointmentRequest,
    response: Response,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    container: Container = Depends(get_container),
):
    """
    Book an appointment.

    201 for a new booking; 200 with the original id when the
    Idempotency-Key has been seen before.
    """
    result = await container.booking.create_appointment(
        user_id=body.user_id,
        barber_id=body.barber_id,
        service_id=body.service_id,
        start=body.start,
        end=body.end,
        idempotency_key=idempotency_key,
    )
    if result.idempotent_hit:
        response.status_code = status.HTTP_200_OK
    else:
        response.headers["Location"] = f"/api/v1/appointments/{result.appointment_id}"
    return AppointmentCreatedResponse(id=result.appointment_id)


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    container: Container = Depends(get_container),
):
    appointment = await container.appointments.get_by_id(appointment_id)
    if appointment is None:
        raise NotFoundError("Appointment", appointment_id)
    return AppointmentResponse.from_appointment(appointment)


@router.delete("/appointments/{appointment_id}", response_model=MessageResponse)
async def cancel_appointment(
    appointment_id: UUID,
    container: Container = Depends(get_container),
):
    await container.cancellation.cancel(appointment_id)
    return MessageResponse(message=CANCELLED_MESSAGE)


@router.patch("/appointments/{appointment_id}", response_model=RescheduleResponse)
async def reschedule_appointment(
    appointment_id: UUID,
    body: RescheduleAppointmentRequest,
    container: Container = Depends(get_container),
):
    appointment = await container.reschedule.reschedule(
        appointment_id, body.new_start, body.new_end
    )
    return RescheduleResponse(
        message=RESCHEDULED_MESSAGE,
        appointment=RescheduledWindow(
            id=appointment.id, start=appointment.start, end=appointment.end
        ),
    )
