from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List

from eventhub import queries, services
from eventhub.models import (
    CompanyStatistics,
    EventOut,
    EventStatistics,
    EventStatus,
    PaymentStatus,
    RegistrationOut,
    RegistrationStatistics,
    RegistrationStatus,
    Role,
    as_utc,
)
from eventhub.pricing import to_cents

TOP_EVENTS = 5


def _rate(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return 0.0
    return round(numerator / denominator, 4)


def collected_cents(registration: RegistrationOut) -> int:
    """Money kept from a registration: the paid amount less anything refunded."""
    if registration.payment_status not in (PaymentStatus.paid, PaymentStatus.refunded):
        return 0
    return registration.amount_cents - registration.refunded_cents


def registration_statistics(records: Iterable[RegistrationOut]) -> RegistrationStatistics:
    records = list(records)
    by_status = {status: 0 for status in RegistrationStatus}
    for registration in records:
        by_status[registration.status] += 1

    paying = [r for r in records if r.payment_status in (PaymentStatus.paid, PaymentStatus.refunded)]
    revenue = sum(collected_cents(r) for r in records)
    paid = sum(1 for r in records if r.payment_status == PaymentStatus.paid)
    failed = sum(1 for r in records if r.payment_status == PaymentStatus.failed)
    checked_in = sum(1 for r in records if r.checked_in)
    confirmed = by_status[RegistrationStatus.confirmed]

    return RegistrationStatistics(
        total_registrations=len(records),
        confirmed_registrations=confirmed,
        pending_registrations=by_status[RegistrationStatus.pending],
        cancelled_registrations=by_status[RegistrationStatus.cancelled],
        waitlisted_registrations=by_status[RegistrationStatus.waitlisted],
        total_revenue_cents=revenue,
        average_registration_value_cents=to_cents(Decimal(revenue) / len(paying)) if paying else 0,
        check_in_rate=_rate(checked_in, confirmed),
        payment_success_rate=_rate(paid, paid + failed),
    )


def _top_events(events: List[EventOut]) -> List[dict]:
    ranked = sorted(events, key=lambda event: event.current_attendees, reverse=True)[:TOP_EVENTS]
    return [
        {"id": event.id, "title": event.title, "seats_sold": event.current_attendees}
        for event in ranked
    ]


def _staff_dashboard(events: List[EventOut], registrations: List[RegistrationOut]) -> dict:
    now = datetime.now(timezone.utc)
    stats = registration_statistics(registrations)
    return {
        "total_events": len(events),
        "upcoming_events": sum(
            1 for e in events if e.status == EventStatus.published and as_utc(e.start_date) > now
        ),
        "completed_events": sum(1 for e in events if e.status == EventStatus.completed),
        "total_registrations": stats.total_registrations,
        "pending_registrations": stats.pending_registrations,
        "confirmed_registrations": stats.confirmed_registrations,
        "cancelled_registrations": stats.cancelled_registrations,
        "waitlisted_registrations": stats.waitlisted_registrations,
        "total_revenue_cents": stats.total_revenue_cents,
        "registrations_by_status": {
            status.value: sum(1 for r in registrations if r.status == status) for status in RegistrationStatus
        },
        "top_events": _top_events(events),
    }


def dashboard(runner, actor: dict) -> dict:
    role = actor["role"]
    if role == Role.admin.value:
        data = _staff_dashboard(queries.list_events(runner), queries.list_registrations(runner))
        data["active_users"] = queries.count_active_users(runner)
    elif role == Role.manager.value:
        events = services.managed_events(runner, actor)
        data = _staff_dashboard(events, queries.list_registrations(runner, event_ids=[e.id for e in events]))
    else:
        now = datetime.now(timezone.utc)
        registrations = queries.list_registrations(runner, user_id=actor["id"])
        data = {
            "total_registrations": len(registrations),
            "upcoming_registrations": sum(
                1
                for r in registrations
                if r.status != RegistrationStatus.cancelled
                and r.event_start_date is not None
                and as_utc(r.event_start_date) > now
            ),
            "total_spent_cents": sum(collected_cents(r) for r in registrations),
        }
    data["role"] = role
    return data


def event_statistics(runner, event: EventOut) -> EventStatistics:
    registrations = queries.list_registrations(runner, event_id=event.id)
    return EventStatistics(
        event_id=event.id,
        registrations=registration_statistics(registrations),
        seats_sold=event.current_attendees,
        available_seats=event.available_seats,
        waitlist_length=sum(1 for r in registrations if r.status == RegistrationStatus.waitlisted),
    )


def company_statistics(runner, company_id: int) -> CompanyStatistics:
    events = queries.list_events(runner, company_id=company_id)
    registrations = queries.list_registrations(runner, event_ids=[e.id for e in events])
    return CompanyStatistics(
        company_id=company_id,
        users=queries.count_users(runner, company_id),
        events=len(events),
        registrations=len(registrations),
        total_revenue_cents=sum(collected_cents(r) for r in registrations),
    )
