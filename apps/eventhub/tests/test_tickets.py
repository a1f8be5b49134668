from __future__ import annotations

import base64

import pytest

from eventhub.errors import ValidationFailed
from eventhub.tickets import (
    TICKET_ALPHABET,
    allocate_ticket_number,
    build_ticket,
    generate_ticket_number,
    parse_qr_payload,
    qr_data_uri,
    qr_payload,
    render_qr_png,
)
from test_listing import _event, _registration

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def test_ticket_number_shape():
    for _ in range(50):
        number = generate_ticket_number()
        assert number.startswith("TKT-")
        assert len(number) == 12
        assert all(ch in TICKET_ALPHABET for ch in number[4:])
    assert not set("01OI") & set(TICKET_ALPHABET)


def test_allocation_retries_until_free():
    seen = []

    def exists(number):
        seen.append(number)
        return len(seen) < 3

    number = allocate_ticket_number(exists)
    assert number == seen[-1]
    assert len(seen) == 3


def test_allocation_gives_up():
    with pytest.raises(RuntimeError):
        allocate_ticket_number(lambda number: True)


def test_qr_payload_round_trip():
    assert parse_qr_payload(qr_payload("TKT-ABCD2345")) == "TKT-ABCD2345"
    assert parse_qr_payload("  eventhub:ticket:TKT-ABCD2345\n") == "TKT-ABCD2345"


@pytest.mark.parametrize("payload", ["", "TKT-ABCD2345", "eventhub:ticket:", "eventhub:ticket:XYZ", "other:TKT-ABCD2345"])
def test_invalid_qr_payload(payload):
    with pytest.raises(ValidationFailed):
        parse_qr_payload(payload)


def test_render_png_and_data_uri():
    png = render_qr_png("eventhub:ticket:TKT-ABCD2345")
    assert png.startswith(PNG_MAGIC)
    uri = qr_data_uri("eventhub:ticket:TKT-ABCD2345")
    assert uri.startswith("data:image/png;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]).startswith(PNG_MAGIC)


def test_build_ticket_for_confirmed_registration():
    registration = _registration(1, "Ada", "ada@eventhub.io", ticket_number="TKT-ABCD2345", seats=2)
    event = _event(1, "Data Summit", location="Lima")
    ticket = build_ticket(registration, event)
    assert ticket.ticket_number == "TKT-ABCD2345"
    assert ticket.qr_payload == "eventhub:ticket:TKT-ABCD2345"
    assert ticket.qr_code.startswith("data:image/png;base64,")
    assert ticket.attendee_name == "Ada Doe"
    assert ticket.event_title == "Data Summit"
    assert ticket.event_location == "Lima"
    assert ticket.seats == 2


@pytest.mark.parametrize("status", ["pending", "waitlisted", "cancelled"])
def test_no_ticket_unless_confirmed(status):
    registration = _registration(1, "Ada", "ada@eventhub.io", status=status)
    with pytest.raises(ValidationFailed):
        build_ticket(registration, _event(1, "Data Summit"))
