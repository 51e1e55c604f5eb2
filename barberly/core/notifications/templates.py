"""
E-mail Templates

Pure functions from appointment details to an HTML body. Every
interpolated value is HTML-escaped.
"""

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional
from uuid import UUID

from ..directory import Barber, BarberShop, Service, User


@dataclass(frozen=True)
class AppointmentDetails:
    """Everything a notification about one appointment can mention."""

    appointment_id: UUID
    start: datetime
    end: datetime
    user: User
    barber: Barber
    service: Service
    shop: BarberShop
    cancelled_at: Optional[datetime] = None


def _e(value: object) -> str:
    return escape("" if value is None else str(value), quote=True)


def _when(value: datetime) -> str:
    return value.strftime("%A, %d %B %Y %H:%M UTC")


def _details_table(details: AppointmentDetails) -> str:
    return f"""
        <table style="width: 100%; border-collapse: collapse;">
            <tr><td style="padding: 8px 0;"><strong>Barber:</strong></td><td>{_e(details.barber.full_name)}</td></tr>
            <tr><td style="padding: 8px 0;"><strong>Shop:</strong></td><td>{_e(details.shop.name)}</td></tr>
            <tr><td style="padding: 8px 0;"><strong>Service:</strong></td><td>{_e(details.service.name)}</td></tr>
            <tr><td style="padding: 8px 0;"><strong>Date:</strong></td><td>{_e(_when(details.start))}</td></tr>
            <tr><td style="padding: 8px 0;"><strong>Duration:</strong></td><td>{_e(details.service.duration_minutes)} minutes</td></tr>
            <tr><td style="padding: 8px 0;"><strong>Price:</strong></td><td>{_e(details.service.price)}</td></tr>
        </table>"""


def _shop_contact(details: AppointmentDetails) -> str:
    shop = details.shop
    return f"""
        <p><strong>Address:</strong> {_e(shop.street)}, {_e(shop.city)}</p>
        <p><strong>Phone:</strong> {_e(shop.phone)}</p>"""


def _layout(heading: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Barberly</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">
    <h1 style="color: #2c3e50;">Barberly</h1>
    <h2>{heading}</h2>
    {body}
    <p style="color: #7f8c8d; font-size: 12px;">This is an automated message from Barberly.</p>
</body>
</html>"""


def render_confirmation(details: AppointmentDetails, recipient_name: str) -> str:
    body = f"""
    <p>Hello <strong>{_e(recipient_name)}</strong>,</p>
    <p>The appointment below has been booked.</p>
    {_details_table(details)}
    {_shop_contact(details)}
    <p>To cancel or change the appointment, please contact the shop.</p>"""
    return _layout("Appointment confirmed", body)


def render_reminder(details: AppointmentDetails, recipient_name: str) -> str:
    body = f"""
    <p>Hello <strong>{_e(recipient_name)}</strong>,</p>
    <p>This is a reminder of your upcoming appointment. Please arrive on time.</p>
    {_details_table(details)}
    {_shop_contact(details)}"""
    return _layout("Appointment reminder", body)


def render_cancellation(details: AppointmentDetails, recipient_name: str) -> str:
    cancelled = ""
    if details.cancelled_at:
        cancelled = f"<p><strong>Cancelled at:</strong> {_e(_when(details.cancelled_at))}</p>"
    body = f"""
    <p>Hello <strong>{_e(recipient_name)}</strong>,</p>
    <p>The following appointment has been cancelled:</p>
    {_details_table(details)}
    {cancelled}
    <p>You are welcome to book a new appointment at any time.</p>"""
    return _layout("Appointment cancelled", body)
