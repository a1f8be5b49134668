"""Business rules for users, companies, events and the registration lifecycle.

Functions take an open runner and, where permissions matter, the session user
dict (``{"id", "role", "display_name"}``). Rule violations raise the errors in
:mod:`eventhub.errors`; nothing here returns error values.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from eventhub import queries
from eventhub.auth import hash_password, verify_password
from eventhub.errors import Conflict, EventHubError, NotAuthenticated, NotFound, PermissionDenied, ValidationFailed
from eventhub.models import (
    SEAT_HOLDING_STATUSES,
    BulkResult,
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    EventCreate,
    EventOut,
    EventStatus,
    EventUpdate,
    PasswordChange,
    PaymentRequest,
    PaymentStatus,
    PreferencesUpdate,
    RefundRequest,
    RegistrationCreate,
    RegistrationOut,
    RegistrationStatus,
    RegistrationUpdate,
    Role,
    SignupRequest,
    UserCreate,
    UserOut,
    UserUpdate,
    as_utc,
)
from eventhub.pricing import normalize_coupon, quote_price
from eventhub.tickets import allocate_ticket_number, parse_qr_payload

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"first_name", "last_name", "phone", "department", "job_title"}
REQUIRED_NAME_FIELDS = {"first_name", "last_name"}
PRICING_FIELDS = {"seats", "ticket_type", "coupon_code"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Users


def get_user_or_404(runner, user_id: int) -> UserOut:
    user = queries.get_user(runner, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _check_company(runner, company_id: Optional[int]) -> None:
    if company_id is not None and queries.get_company(runner, company_id) is None:
        raise ValidationFailed("Company does not exist")


def signup(runner, data: SignupRequest) -> UserOut:
    return create_user(runner, UserCreate(**data.model_dump(), role=Role.user))


def create_user(runner, data: UserCreate) -> UserOut:
    if queries.email_taken(runner, data.email):
        raise Conflict("Email is already registered")
    _check_company(runner, data.company_id)
    values = data.model_dump(exclude={"password"})
    values["role"] = data.role.value
    user_id = queries.create_user(runner, values, hash_password(data.password))
    logger.info("Created user %s (%s) with role %s", user_id, data.email, data.role.value)
    return get_user_or_404(runner, user_id)


def authenticate(runner, email: str, password: str) -> UserOut:
    creds = queries.get_user_credentials(runner, email)
    if creds is None or not verify_password(password, creds["password_hash"]):
        logger.info("Failed login for %s", email)
        raise NotAuthenticated("Invalid email or password")
    if not creds["is_active"]:
        raise PermissionDenied("Account is deactivated")
    queries.touch_last_login(runner, int(creds["id"]))
    return get_user_or_404(runner, int(creds["id"]))


def update_profile(runner, user_id: int, data: UserUpdate) -> UserOut:
    changes = data.model_dump(exclude_unset=True, include=PROFILE_FIELDS)
    changes = {key: value for key, value in changes.items() if value is not None or key not in REQUIRED_NAME_FIELDS}
    if changes:
        queries.update_user(runner, user_id, changes)
    return get_user_or_404(runner, user_id)


def change_password(runner, user_id: int, data: PasswordChange) -> None:
    if not verify_password(data.current_password, queries.get_password_hash(runner, user_id)):
        raise ValidationFailed("Current password is incorrect")
    queries.update_user(runner, user_id, {"password_hash": hash_password(data.new_password)})
    logger.info("User %s changed password", user_id)


def update_preferences(runner, user_id: int, data: PreferencesUpdate) -> UserOut:
    user = get_user_or_404(runner, user_id)
    merged = user.preferences.model_copy(update=data.model_dump(exclude_unset=True, exclude_none=True))
    queries.update_user(runner, user_id, {"preferences": merged.model_dump()})
    return get_user_or_404(runner, user_id)


def admin_update_user(runner, actor: dict, user_id: int, data: UserUpdate) -> UserOut:
    user = get_user_or_404(runner, user_id)
    changes = data.model_dump(exclude_unset=True)
    if user.id == actor["id"]:
        if changes.get("role") not in (None, Role.admin):
            raise ValidationFailed("You cannot change your own role")
        if changes.get("is_active") is False:
            raise ValidationFailed("You cannot deactivate your own account")
    if "company_id" in changes:
        _check_company(runner, changes["company_id"])
    if "role" in changes and changes["role"] is not None:
        changes["role"] = Role(changes["role"]).value
    changes = {key: value for key, value in changes.items() if value is not None or key in ("company_id", "phone")}
    if changes:
        queries.update_user(runner, user_id, changes)
        logger.info("User %s updated by %s: %s", user_id, actor["id"], sorted(changes))
    return get_user_or_404(runner, user_id)


def set_user_active(runner, actor: dict, user_id: int, active: bool) -> UserOut:
    return admin_update_user(runner, actor, user_id, UserUpdate(is_active=active))


def delete_user(runner, actor: dict, user_id: int) -> None:
    get_user_or_404(runner, user_id)
    if user_id == actor["id"]:
        raise ValidationFailed("You cannot delete your own account")
    if queries.count_events_created_by(runner, user_id):
        raise Conflict("User still owns events; reassign or delete them first")
    queries.delete_user(runner, user_id)
    logger.info("User %s deleted by %s", user_id, actor["id"])


def visible_users(runner, actor: dict) -> List[UserOut]:
    if actor["role"] == Role.admin.value:
        return queries.list_users(runner)
    manager = get_user_or_404(runner, actor["id"])
    if manager.company_id is None:
        return [manager]
    return queries.list_users(runner, company_id=manager.company_id)


# Companies


def get_company_or_404(runner, company_id: int) -> CompanyOut:
    company = queries.get_company(runner, company_id)
    if company is None:
        raise NotFound("Company not found")
    return company


def create_company(runner, data: CompanyCreate) -> CompanyOut:
    if queries.company_name_taken(runner, data.name):
        raise Conflict("Company name already exists")
    company_id = queries.create_company(runner, data.model_dump())
    logger.info("Created company %s (%s)", company_id, data.name)
    return get_company_or_404(runner, company_id)


def update_company(runner, company_id: int, data: CompanyUpdate) -> CompanyOut:
    get_company_or_404(runner, company_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("name") and queries.company_name_taken(runner, changes["name"], exclude_id=company_id):
        raise Conflict("Company name already exists")
    if changes:
        queries.update_company(runner, company_id, changes)
    return get_company_or_404(runner, company_id)


def delete_company(runner, company_id: int) -> None:
    get_company_or_404(runner, company_id)
    queries.delete_company(runner, company_id)
    logger.info("Deleted company %s", company_id)


# Events


def get_event_or_404(runner, event_id: int) -> EventOut:
    event = queries.get_event(runner, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def can_manage_event(runner, actor: Optional[dict], event: EventOut) -> bool:
    if actor is None:
        return False
    if actor["role"] == Role.admin.value:
        return True
    if actor["role"] != Role.manager.value:
        return False
    if event.created_by == actor["id"]:
        return True
    manager = queries.get_user(runner, actor["id"])
    return manager is not None and manager.company_id is not None and manager.company_id == event.company_id


def get_managed_event(runner, actor: dict, event_id: int) -> EventOut:
    event = get_event_or_404(runner, event_id)
    if not can_manage_event(runner, actor, event):
        raise PermissionDenied("You cannot manage this event")
    return event


def get_visible_event(runner, actor: Optional[dict], event_id: int) -> EventOut:
    event = get_event_or_404(runner, event_id)
    if event.status == EventStatus.published and event.is_public:
        return event
    if can_manage_event(runner, actor, event):
        return event
    raise NotFound("Event not found")


def public_events(runner) -> List[EventOut]:
    return queries.list_events(runner, status=EventStatus.published.value, public_only=True)


def managed_events(runner, actor: dict) -> List[EventOut]:
    if actor["role"] == Role.admin.value:
        return queries.list_events(runner)
    manager = get_user_or_404(runner, actor["id"])
    return queries.list_events(runner, company_id=manager.company_id, created_by=manager.id)


def _manager_company_id(runner, actor: dict, requested: Optional[int]) -> Optional[int]:
    if actor["role"] == Role.admin.value:
        _check_company(runner, requested)
        return requested
    manager = get_user_or_404(runner, actor["id"])
    if requested is not None and requested != manager.company_id:
        raise PermissionDenied("Managers can only create events for their own company")
    return manager.company_id


def create_event(runner, actor: dict, data: EventCreate) -> EventOut:
    values = data.model_dump()
    values["company_id"] = _manager_company_id(runner, actor, data.company_id)
    event_id = queries.create_event(runner, values, created_by=actor["id"])
    logger.info("Event %s created by user %s", event_id, actor["id"])
    return get_event_or_404(runner, event_id)


def update_event(runner, actor: dict, event_id: int, data: EventUpdate) -> EventOut:
    event = get_managed_event(runner, actor, event_id)
    if event.status in (EventStatus.cancelled, EventStatus.completed):
        raise Conflict(f"A {event.status.value} event cannot be edited")
    changes = data.model_dump(exclude_unset=True)
    if "company_id" in changes:
        changes["company_id"] = _manager_company_id(runner, actor, changes["company_id"])
    current = event.model_dump(include=set(EventCreate.model_fields))
    merged = EventCreate.model_validate({**current, **changes})
    if merged.max_attendees < event.current_attendees:
        raise ValidationFailed(
            f"max_attendees cannot be lower than the {event.current_attendees} seats already held"
        )
    if changes:
        with runner.transaction():
            queries.update_event(runner, event_id, merged.model_dump(include=set(changes)))
            if merged.max_attendees > event.max_attendees:
                promote_waitlist(runner, event_id, actor)
    return get_event_or_404(runner, event_id)


def _transition_event(runner, actor: dict, event_id: int, allowed_from: Iterable[EventStatus], target: EventStatus) -> EventOut:
    event = get_managed_event(runner, actor, event_id)
    if event.status not in allowed_from:
        raise Conflict(f"Cannot move a {event.status.value} event to {target.value}")
    queries.set_event_status(runner, event_id, target.value)
    logger.info("Event %s %s -> %s by user %s", event_id, event.status.value, target.value, actor["id"])
    return get_event_or_404(runner, event_id)


def publish_event(runner, actor: dict, event_id: int) -> EventOut:
    return _transition_event(runner, actor, event_id, (EventStatus.draft,), EventStatus.published)


def cancel_event(runner, actor: dict, event_id: int) -> EventOut:
    return _transition_event(runner, actor, event_id, (EventStatus.draft, EventStatus.published), EventStatus.cancelled)


def complete_event(runner, actor: dict, event_id: int) -> EventOut:
    return _transition_event(runner, actor, event_id, (EventStatus.published,), EventStatus.completed)


def duplicate_event(runner, actor: dict, event_id: int) -> EventOut:
    event = get_managed_event(runner, actor, event_id)
    values = event.model_dump(include=set(EventCreate.model_fields))
    values["title"] = f"{event.title[:193]} (Copy)"
    new_id = queries.create_event(runner, values, created_by=actor["id"], status=EventStatus.draft.value)
    logger.info("Event %s duplicated as %s by user %s", event_id, new_id, actor["id"])
    return get_event_or_404(runner, new_id)


def delete_event(runner, actor: dict, event_id: int) -> None:
    get_managed_event(runner, actor, event_id)
    queries.delete_event(runner, event_id)
    logger.info("Event %s deleted by user %s", event_id, actor["id"])


# Registrations


def get_registration_or_404(runner, registration_id: int) -> RegistrationOut:
    registration = queries.get_registration(runner, registration_id)
    if registration is None:
        raise NotFound("Registration not found")
    return registration


def get_accessible_registration(runner, actor: dict, registration_id: int, manage: bool = False) -> RegistrationOut:
    """Load a registration the actor may see; ``manage`` restricts it to event staff."""
    registration = get_registration_or_404(runner, registration_id)
    if actor["role"] in (Role.admin.value, Role.manager.value):
        event = get_event_or_404(runner, registration.event_id)
        if can_manage_event(runner, actor, event):
            return registration
    if not manage and registration.user_id == actor["id"]:
        return registration
    raise PermissionDenied("You cannot access this registration")


def visible_registrations(runner, actor: dict) -> List[RegistrationOut]:
    if actor["role"] == Role.admin.value:
        return queries.list_registrations(runner)
    if actor["role"] == Role.manager.value:
        event_ids = [event.id for event in managed_events(runner, actor)]
        return queries.list_registrations(runner, event_ids=event_ids)
    return queries.list_registrations(runner, user_id=actor["id"])


def _fits(runner, event: EventOut, seats: int, exclude_id: Optional[int] = None) -> bool:
    held = queries.seats_held_for_event(runner, event.id, exclude_id=exclude_id)
    return held + seats <= event.max_attendees


def _audit(runner, registration_id: int, actor: Optional[dict], action: str, detail: Optional[str] = None) -> None:
    queries.add_audit_entry(runner, registration_id, actor["id"] if actor else None, action, detail)


def register(runner, actor: dict, data: RegistrationCreate) -> RegistrationOut:
    event = get_event_or_404(runner, data.event_id)
    if event.status != EventStatus.published:
        raise ValidationFailed("Event is not open for registration")
    if as_utc(event.start_date) <= _utcnow():
        raise ValidationFailed("Event has already started")
    quote = quote_price(event.price_cents, data.seats, data.ticket_type, data.coupon_code, currency=event.currency)

    with runner.transaction():
        if queries.active_registration_exists(runner, event.id, actor["id"]):
            raise Conflict("You are already registered for this event")
        if _fits(runner, event, data.seats):
            status = RegistrationStatus.pending if event.requires_approval else RegistrationStatus.confirmed
        else:
            status = RegistrationStatus.waitlisted
        ticket_number = allocate_ticket_number(lambda number: queries.ticket_number_exists(runner, number))
        values = data.model_dump(exclude={"coupon_code", "payment_method"})
        values.update(
            user_id=actor["id"],
            email=data.email.lower(),
            ticket_type=quote.ticket_type.value,
            coupon_code=quote.coupon_code,
            status=status.value,
            payment_status=(PaymentStatus.paid if quote.total_cents == 0 else PaymentStatus.pending).value,
            payment_method=data.payment_method.value if data.payment_method else None,
            subtotal_cents=quote.subtotal_cents,
            discount_cents=quote.discount_cents,
            tax_cents=quote.tax_cents,
            amount_cents=quote.total_cents,
            currency=quote.currency,
            ticket_number=ticket_number,
        )
        registration_id = queries.create_registration(runner, values)
        _audit(runner, registration_id, actor, "registered", status.value)

    logger.info(
        "Registration %s (%s) for event %s: %s seat(s), status %s",
        registration_id,
        ticket_number,
        event.id,
        data.seats,
        status.value,
    )
    return get_registration_or_404(runner, registration_id)


def _set_status(runner, actor: Optional[dict], registration: RegistrationOut, status: RegistrationStatus, detail: Optional[str] = None) -> None:
    queries.update_registration(runner, registration.id, {"status": status.value})
    _audit(runner, registration.id, actor, status.value, detail)


def promote_waitlist(runner, event_id: int, actor: Optional[dict] = None) -> List[int]:
    """Confirm waitlisted registrations in arrival order while the head of the queue fits."""
    event = get_event_or_404(runner, event_id)
    if event.status != EventStatus.published:
        return []
    promoted = []
    available = event.max_attendees - queries.seats_held_for_event(runner, event_id)
    for registration in queries.list_waitlist(runner, event_id):
        if registration.seats > available:
            break
        _set_status(runner, actor, registration, RegistrationStatus.confirmed, "promoted from waitlist")
        available -= registration.seats
        promoted.append(registration.id)
    if promoted:
        logger.info("Promoted %d waitlisted registration(s) for event %s: %s", len(promoted), event_id, promoted)
    return promoted


def confirm(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.status == RegistrationStatus.waitlisted:
        raise Conflict("Waitlisted registrations must be promoted")
    if registration.status != RegistrationStatus.pending:
        raise Conflict(f"Cannot confirm a {registration.status.value} registration")
    event = get_event_or_404(runner, registration.event_id)
    with runner.transaction():
        if not _fits(runner, event, registration.seats, exclude_id=registration.id):
            raise Conflict("Not enough seats available")
        _set_status(runner, actor, registration, RegistrationStatus.confirmed)
    logger.info("Registration %s confirmed by user %s", registration_id, actor["id"])
    return get_registration_or_404(runner, registration_id)


def cancel(runner, actor: dict, registration_id: int, reason: Optional[str] = None) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id)
    if registration.status == RegistrationStatus.cancelled:
        raise Conflict("Registration is already cancelled")
    with runner.transaction():
        _set_status(runner, actor, registration, RegistrationStatus.cancelled, reason)
        promote_waitlist(runner, registration.event_id, actor)
    logger.info("Registration %s cancelled by user %s", registration_id, actor["id"])
    return get_registration_or_404(runner, registration_id)


def waitlist(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.status.value not in SEAT_HOLDING_STATUSES:
        raise Conflict(f"Cannot waitlist a {registration.status.value} registration")
    if registration.checked_in:
        raise Conflict("Checked-in registrations cannot be waitlisted")
    with runner.transaction():
        _set_status(runner, actor, registration, RegistrationStatus.waitlisted)
    return get_registration_or_404(runner, registration_id)


def promote(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.status != RegistrationStatus.waitlisted:
        raise Conflict("Only waitlisted registrations can be promoted")
    event = get_event_or_404(runner, registration.event_id)
    with runner.transaction():
        if not _fits(runner, event, registration.seats):
            raise Conflict("Not enough seats available")
        _set_status(runner, actor, registration, RegistrationStatus.confirmed, "promoted from waitlist")
    logger.info("Registration %s promoted by user %s", registration_id, actor["id"])
    return get_registration_or_404(runner, registration_id)


def check_in(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.status != RegistrationStatus.confirmed:
        raise Conflict("Only confirmed registrations can be checked in")
    if registration.checked_in:
        raise Conflict("Registration is already checked in")
    with runner.transaction():
        queries.update_registration(
            runner,
            registration_id,
            {"checked_in": True, "checked_in_at": queries.now_iso(), "checked_in_by": actor["id"]},
        )
        _audit(runner, registration_id, actor, "checked_in")
    logger.info("Registration %s checked in by user %s", registration_id, actor["id"])
    return get_registration_or_404(runner, registration_id)


def check_in_by_qr(runner, actor: dict, payload: str) -> RegistrationOut:
    registration = queries.get_registration_by_ticket(runner, parse_qr_payload(payload))
    if registration is None:
        raise NotFound("Ticket not found")
    return check_in(runner, actor, registration.id)


def undo_check_in(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if not registration.checked_in:
        raise Conflict("Registration is not checked in")
    with runner.transaction():
        queries.update_registration(
            runner,
            registration_id,
            {"checked_in": False, "checked_in_at": None, "checked_in_by": None},
        )
        _audit(runner, registration_id, actor, "check_in_undone")
    return get_registration_or_404(runner, registration_id)


def pay(runner, actor: dict, registration_id: int, data: PaymentRequest) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id)
    if registration.status == RegistrationStatus.cancelled:
        raise Conflict("Cancelled registrations cannot be paid")
    if registration.payment_status not in (PaymentStatus.pending, PaymentStatus.failed):
        raise Conflict(f"Payment is already {registration.payment_status.value}")
    transaction_id = data.transaction_id or f"TXN-{uuid.uuid4().hex[:12].upper()}"
    with runner.transaction():
        queries.update_registration(
            runner,
            registration_id,
            {
                "payment_status": PaymentStatus.paid.value,
                "payment_method": data.payment_method.value,
                "transaction_id": transaction_id,
            },
        )
        _audit(runner, registration_id, actor, "paid", transaction_id)
    logger.info("Registration %s paid (%s, %s)", registration_id, data.payment_method.value, transaction_id)
    return get_registration_or_404(runner, registration_id)


def mark_payment_failed(runner, actor: dict, registration_id: int) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.payment_status != PaymentStatus.pending:
        raise Conflict("Only pending payments can fail")
    with runner.transaction():
        queries.update_registration(runner, registration_id, {"payment_status": PaymentStatus.failed.value})
        _audit(runner, registration_id, actor, "payment_failed")
    return get_registration_or_404(runner, registration_id)


def refund(runner, actor: dict, registration_id: int, data: RefundRequest) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    if registration.payment_status != PaymentStatus.paid:
        raise Conflict("Only paid registrations can be refunded")
    remaining = registration.amount_cents - registration.refunded_cents
    if remaining <= 0:
        raise ValidationFailed("Nothing left to refund")
    amount = remaining if data.full_refund else data.amount_cents
    if amount > remaining:
        raise ValidationFailed(f"Refund cannot exceed the remaining {remaining} cents")
    refunded = registration.refunded_cents + amount
    values = {"refunded_cents": refunded}
    if refunded == registration.amount_cents:
        values["payment_status"] = PaymentStatus.refunded.value
    with runner.transaction():
        queries.update_registration(runner, registration_id, values)
        _audit(runner, registration_id, actor, "refunded", f"{amount} cents: {data.reason}")
    logger.info("Registration %s refunded %s cents by user %s", registration_id, amount, actor["id"])
    return get_registration_or_404(runner, registration_id)


def update_registration(runner, actor: dict, registration_id: int, data: RegistrationUpdate) -> RegistrationOut:
    registration = get_accessible_registration(runner, actor, registration_id)
    if registration.status == RegistrationStatus.cancelled:
        raise Conflict("Cancelled registrations cannot be edited")
    changes = data.model_dump(exclude_unset=True)
    if "coupon_code" in changes:
        changes["coupon_code"] = normalize_coupon(changes["coupon_code"])
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    for key in ("first_name", "last_name", "email", "seats", "ticket_type"):
        if key in changes and changes[key] is None:
            del changes[key]

    repriced = any(
        key in changes and changes[key] != getattr(registration, key) for key in PRICING_FIELDS
    )
    with runner.transaction():
        if repriced:
            if registration.payment_status not in (PaymentStatus.pending, PaymentStatus.failed):
                raise Conflict("Pricing cannot change after payment")
            event = get_event_or_404(runner, registration.event_id)
            seats = changes.get("seats", registration.seats)
            if registration.status.value in SEAT_HOLDING_STATUSES and not _fits(
                runner, event, seats, exclude_id=registration.id
            ):
                raise Conflict("Not enough seats available")
            quote = quote_price(
                event.price_cents,
                seats,
                changes.get("ticket_type", registration.ticket_type),
                changes.get("coupon_code", registration.coupon_code),
                currency=event.currency,
            )
            changes.update(
                ticket_type=quote.ticket_type.value,
                coupon_code=quote.coupon_code,
                subtotal_cents=quote.subtotal_cents,
                discount_cents=quote.discount_cents,
                tax_cents=quote.tax_cents,
                amount_cents=quote.total_cents,
            )
        elif "ticket_type" in changes:
            changes["ticket_type"] = changes["ticket_type"].value
        if changes:
            queries.update_registration(runner, registration_id, changes)
            _audit(runner, registration_id, actor, "updated", ", ".join(sorted(changes)))
        if (
            registration.status.value in SEAT_HOLDING_STATUSES
            and changes.get("seats", registration.seats) < registration.seats
        ):
            promote_waitlist(runner, registration.event_id, actor)
    return get_registration_or_404(runner, registration_id)


def delete_registration(runner, actor: dict, registration_id: int) -> None:
    registration = get_accessible_registration(runner, actor, registration_id, manage=True)
    with runner.transaction():
        queries.delete_registration(runner, registration_id)
        _audit(runner, registration_id, actor, "deleted", registration.ticket_number)
        if registration.status.value in SEAT_HOLDING_STATUSES:
            promote_waitlist(runner, registration.event_id, actor)
    logger.info("Registration %s deleted by user %s", registration_id, actor["id"])


def audit_trail(runner, actor: dict, registration_id: int):
    get_accessible_registration(runner, actor, registration_id, manage=True)
    return queries.list_audit_entries(runner, registration_id)


def _bulk(ids: Iterable[int], operation: Callable[[int], object]) -> BulkResult:
    result = BulkResult()
    for registration_id in dict.fromkeys(ids):
        try:
            operation(registration_id)
        except EventHubError as exc:
            result.failed[registration_id] = exc.message
        else:
            result.succeeded.append(registration_id)
    return result


def bulk_check_in(runner, actor: dict, ids: Iterable[int]) -> BulkResult:
    return _bulk(ids, lambda registration_id: check_in(runner, actor, registration_id))


def bulk_cancel(runner, actor: dict, ids: Iterable[int]) -> BulkResult:
    return _bulk(ids, lambda registration_id: cancel(runner, actor, registration_id))


def bulk_delete(runner, actor: dict, ids: Iterable[int]) -> BulkResult:
    return _bulk(ids, lambda registration_id: delete_registration(runner, actor, registration_id))
