"""Registration price quotes.

A quote is ``base price x seats x ticket multiplier``, less any coupon
discount, plus tax on the discounted amount. All arithmetic is decimal and
every component is rounded half-up to whole cents, so that
``total = subtotal - discount + tax`` holds exactly.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from eventhub.config import Config
from eventhub.errors import ValidationFailed
from eventhub.models import PriceQuote, TicketType

TICKET_MULTIPLIERS = {
    TicketType.standard: Decimal("1"),
    TicketType.vip: Decimal("1.5"),
    TicketType.early_bird: Decimal("0.8"),
}

COUPON_RATES = {
    "EARLY20": Decimal("0.20"),
    "CORP15": Decimal("0.15"),
    "STUDENT10": Decimal("0.10"),
}

_CENT = Decimal("1")


def to_cents(value: Decimal) -> int:
    return int(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def normalize_coupon(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


def coupon_rate(code: Optional[str]) -> Decimal:
    return COUPON_RATES.get(normalize_coupon(code) or "", Decimal("0"))


def quote_price(
    base_price_cents: int,
    seats: int,
    ticket_type: Union[TicketType, str] = TicketType.standard,
    coupon_code: Optional[str] = None,
    tax_rate: Union[Decimal, str, None] = None,
    currency: Optional[str] = None,
) -> PriceQuote:
    if base_price_cents < 0:
        raise ValidationFailed("base price cannot be negative")
    if seats < 1 or seats > Config.MAX_SEATS_PER_BOOKING:
        raise ValidationFailed(f"seats must be between 1 and {Config.MAX_SEATS_PER_BOOKING}")
    try:
        ticket_type = TicketType(ticket_type)
    except ValueError:
        raise ValidationFailed(f"unknown ticket type: {ticket_type}") from None

    rate = Decimal(str(tax_rate if tax_rate is not None else Config.TAX_RATE))
    code = normalize_coupon(coupon_code)
    discount_rate = coupon_rate(code)

    subtotal = to_cents(Decimal(base_price_cents) * seats * TICKET_MULTIPLIERS[ticket_type])
    discount = to_cents(Decimal(subtotal) * discount_rate)
    tax = to_cents(Decimal(subtotal - discount) * rate)

    return PriceQuote(
        subtotal_cents=subtotal,
        discount_cents=discount,
        tax_cents=tax,
        total_cents=subtotal - discount + tax,
        currency=currency or Config.CURRENCY,
        ticket_type=ticket_type,
        coupon_code=code,
        coupon_applied=discount_rate > 0,
    )


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"
