from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable

from eventhub.models import RegistrationOut
from eventhub.pricing import format_cents

CSV_HEADER = [
    "Ticket Number",
    "Name",
    "Email",
    "Event",
    "Seats",
    "Status",
    "Payment Status",
    "Amount",
    "Registered At",
]


def registration_row(registration: RegistrationOut) -> list:
    return [
        registration.ticket_number,
        registration.full_name,
        registration.email,
        registration.event_title or "",
        registration.seats,
        registration.status.value,
        registration.payment_status.value,
        format_cents(registration.amount_cents),
        registration.registered_at.isoformat(),
    ]


def registrations_csv(registrations: Iterable[RegistrationOut]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for registration in registrations:
        writer.writerow(registration_row(registration))
    return buffer.getvalue()


def export_filename(prefix: str = "registrations") -> str:
    return f"{prefix}-{date.today().isoformat()}.csv"
