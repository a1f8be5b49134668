from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from eventhub import services
from eventhub.auth import require_user, staff_required
from eventhub.db import get_runner_dep
from eventhub.export import export_filename, registrations_csv
from eventhub.listing import REGISTRATION_SORT_KEYS, filter_registrations, sort_and_paginate, sort_records
from eventhub.models import (
    AuditEntryOut,
    BulkIdsRequest,
    BulkResult,
    CancelRequest,
    CheckInRequest,
    Page,
    PaymentRequest,
    PriceQuote,
    PriceQuoteRequest,
    RefundRequest,
    RegistrationCreate,
    RegistrationFilters,
    RegistrationOut,
    RegistrationUpdate,
    SortDirection,
    TicketOut,
)
from eventhub.pricing import quote_price
from eventhub.tickets import build_ticket, ensure_ticket_issued, qr_payload, render_qr_png

router = APIRouter(prefix="/api/registrations", tags=["registrations"])


@router.post("/quote", response_model=PriceQuote)
def quote(data: PriceQuoteRequest, runner=Depends(get_runner_dep)):
    event = services.get_event_or_404(runner, data.event_id)
    return quote_price(event.price_cents, data.seats, data.ticket_type, data.coupon_code, currency=event.currency)


@router.post("", response_model=RegistrationOut, status_code=status.HTTP_201_CREATED)
def register(data: RegistrationCreate, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.register(runner, user, data)


@router.get("", response_model=Page[RegistrationOut])
def list_registrations(
    filters: RegistrationFilters = Depends(),
    sort: str = "registered_at",
    direction: SortDirection = SortDirection.desc,
    page: int = 1,
    per_page: Optional[int] = None,
    user: dict = Depends(require_user),
    runner=Depends(get_runner_dep),
):
    records = filter_registrations(services.visible_registrations(runner, user), filters)
    return sort_and_paginate(records, sort, direction, REGISTRATION_SORT_KEYS, page, per_page)


@router.get("/export")
def export_registrations(
    filters: RegistrationFilters = Depends(),
    sort: str = "registered_at",
    direction: SortDirection = SortDirection.desc,
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    records = filter_registrations(services.visible_registrations(runner, user), filters)
    body = registrations_csv(sort_records(records, sort, direction, REGISTRATION_SORT_KEYS))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/check-in", response_model=RegistrationOut)
def check_in_by_qr(data: CheckInRequest, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.check_in_by_qr(runner, user, data.qr_payload)


@router.post("/bulk/check-in", response_model=BulkResult)
def bulk_check_in(data: BulkIdsRequest, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.bulk_check_in(runner, user, data.ids)


@router.post("/bulk/cancel", response_model=BulkResult)
def bulk_cancel(data: BulkIdsRequest, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.bulk_cancel(runner, user, data.ids)


@router.post("/bulk/delete", response_model=BulkResult)
def bulk_delete(data: BulkIdsRequest, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.bulk_delete(runner, user, data.ids)


@router.get("/{registration_id}", response_model=RegistrationOut)
def get_registration(registration_id: int, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.get_accessible_registration(runner, user, registration_id)


@router.patch("/{registration_id}", response_model=RegistrationOut)
def update_registration(
    registration_id: int,
    data: RegistrationUpdate,
    user: dict = Depends(require_user),
    runner=Depends(get_runner_dep),
):
    return services.update_registration(runner, user, registration_id, data)


@router.delete("/{registration_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_registration(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    services.delete_registration(runner, user, registration_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{registration_id}/confirm", response_model=RegistrationOut)
def confirm(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.confirm(runner, user, registration_id)


@router.post("/{registration_id}/cancel", response_model=RegistrationOut)
def cancel(
    registration_id: int,
    data: Optional[CancelRequest] = None,
    user: dict = Depends(require_user),
    runner=Depends(get_runner_dep),
):
    return services.cancel(runner, user, registration_id, data.reason if data else None)


@router.post("/{registration_id}/waitlist", response_model=RegistrationOut)
def waitlist(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.waitlist(runner, user, registration_id)


@router.post("/{registration_id}/promote", response_model=RegistrationOut)
def promote(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.promote(runner, user, registration_id)


@router.post("/{registration_id}/check-in", response_model=RegistrationOut)
def check_in(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.check_in(runner, user, registration_id)


@router.post("/{registration_id}/undo-check-in", response_model=RegistrationOut)
def undo_check_in(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.undo_check_in(runner, user, registration_id)


@router.post("/{registration_id}/pay", response_model=RegistrationOut)
def pay(registration_id: int, data: PaymentRequest, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.pay(runner, user, registration_id, data)


@router.post("/{registration_id}/payment-failed", response_model=RegistrationOut)
def payment_failed(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.mark_payment_failed(runner, user, registration_id)


@router.post("/{registration_id}/refund", response_model=RegistrationOut)
def refund(registration_id: int, data: RefundRequest, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.refund(runner, user, registration_id, data)


@router.get("/{registration_id}/ticket", response_model=TicketOut)
def ticket(registration_id: int, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    registration = services.get_accessible_registration(runner, user, registration_id)
    event = services.get_event_or_404(runner, registration.event_id)
    return build_ticket(registration, event)


@router.get("/{registration_id}/ticket.png")
def ticket_qr(registration_id: int, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    registration = services.get_accessible_registration(runner, user, registration_id)
    ensure_ticket_issued(registration)
    return Response(content=render_qr_png(qr_payload(registration.ticket_number)), media_type="image/png")


@router.get("/{registration_id}/audit", response_model=List[AuditEntryOut])
def audit_trail(registration_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.audit_trail(runner, user, registration_id)
