from __future__ import annotations

import base64
import io
import random

import qrcode

from eventhub.errors import ValidationFailed
from eventhub.models import EventOut, RegistrationOut, RegistrationStatus, TicketOut

TICKET_PREFIX = "TKT-"
TICKET_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
QR_PREFIX = "eventhub:ticket:"
MAX_ALLOCATION_ATTEMPTS = 20


def generate_ticket_number() -> str:
    return TICKET_PREFIX + "".join(random.choices(TICKET_ALPHABET, k=8))


def allocate_ticket_number(exists) -> str:
    """Return a ticket number for which ``exists(number)`` is false."""
    for _ in range(MAX_ALLOCATION_ATTEMPTS):
        number = generate_ticket_number()
        if not exists(number):
            return number
    raise RuntimeError("Unable to allocate ticket number")


def qr_payload(ticket_number: str) -> str:
    return f"{QR_PREFIX}{ticket_number}"


def parse_qr_payload(payload: str) -> str:
    payload = (payload or "").strip()
    if not payload.startswith(QR_PREFIX):
        raise ValidationFailed("Invalid QR code")
    ticket_number = payload[len(QR_PREFIX):]
    if len(ticket_number) != len(TICKET_PREFIX) + 8 or not ticket_number.startswith(TICKET_PREFIX):
        raise ValidationFailed("Invalid QR code")
    return ticket_number


def render_qr_png(payload: str) -> bytes:
    image = qrcode.make(payload)
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()


def qr_data_uri(payload: str) -> str:
    encoded = base64.b64encode(render_qr_png(payload)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def ensure_ticket_issued(registration: RegistrationOut) -> None:
    if registration.status != RegistrationStatus.confirmed:
        raise ValidationFailed(f"Tickets are only issued for confirmed registrations (status: {registration.status.value})")


def build_ticket(registration: RegistrationOut, event: EventOut) -> TicketOut:
    ensure_ticket_issued(registration)
    payload = qr_payload(registration.ticket_number)
    return TicketOut(
        ticket_number=registration.ticket_number,
        qr_payload=payload,
        qr_code=qr_data_uri(payload),
        attendee_name=registration.full_name,
        email=registration.email,
        event_id=event.id,
        event_title=event.title,
        event_start_date=event.start_date,
        event_location=event.location,
        seats=registration.seats,
        ticket_type=registration.ticket_type,
        amount_cents=registration.amount_cents,
        currency=registration.currency,
        status=registration.status,
    )
