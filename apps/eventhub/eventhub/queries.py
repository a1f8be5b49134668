from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlstratum import (
    SELECT,
    INSERT,
    UPDATE,
    DELETE,
    COUNT,
    SUM,
    AND,
    OR,
    ASC,
    DESC,
    Table,
    col,
)
from sqlstratum.hydrate.pydantic import using_pydantic

from eventhub.models import (
    SEAT_HOLDING_STATUSES,
    AuditEntryOut,
    CompanyOut,
    EventOut,
    RegistrationOut,
    UserOut,
)


companies = Table(
    "companies",
    col("id", int),
    col("name", str),
    col("industry", str),
    col("website", str),
    col("created_at", str),
)

users = Table(
    "users",
    col("id", int),
    col("email", str),
    col("password_hash", str),
    col("first_name", str),
    col("last_name", str),
    col("phone", str),
    col("role", str),
    col("company_id", int),
    col("department", str),
    col("job_title", str),
    col("preferences", str),
    col("is_active", int),
    col("last_login", str),
    col("created_at", str),
    col("updated_at", str),
)

events = Table(
    "events",
    col("id", int),
    col("title", str),
    col("description", str),
    col("category", str),
    col("location", str),
    col("start_date", str),
    col("end_date", str),
    col("max_attendees", int),
    col("price_cents", int),
    col("currency", str),
    col("status", str),
    col("is_public", int),
    col("requires_approval", int),
    col("tags", str),
    col("created_by", int),
    col("company_id", int),
    col("created_at", str),
    col("updated_at", str),
)

registrations = Table(
    "registrations",
    col("id", int),
    col("event_id", int),
    col("user_id", int),
    col("first_name", str),
    col("last_name", str),
    col("email", str),
    col("phone", str),
    col("company", str),
    col("job_title", str),
    col("dietary_restrictions", str),
    col("special_requirements", str),
    col("seats", int),
    col("ticket_type", str),
    col("coupon_code", str),
    col("status", str),
    col("payment_status", str),
    col("payment_method", str),
    col("subtotal_cents", int),
    col("discount_cents", int),
    col("tax_cents", int),
    col("amount_cents", int),
    col("refunded_cents", int),
    col("currency", str),
    col("transaction_id", str),
    col("ticket_number", str),
    col("checked_in", int),
    col("checked_in_at", str),
    col("checked_in_by", int),
    col("registered_at", str),
    col("updated_at", str),
)

audit_log = Table(
    "audit_log",
    col("id", int),
    col("registration_id", int),
    col("actor_id", int),
    col("action", str),
    col("detail", str),
    col("created_at", str),
)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _count(runner, q) -> int:
    row = runner.fetch_one(q)
    return int(row["n"] or 0) if row else 0


# Companies


def _company_select():
    return SELECT(
        companies.c.id.AS("id"),
        companies.c.name.AS("name"),
        companies.c.industry.AS("industry"),
        companies.c.website.AS("website"),
        companies.c.created_at.AS("created_at"),
    ).FROM(companies)


def get_company(runner, company_id: int):
    q = using_pydantic(_company_select().WHERE(companies.c.id == company_id).LIMIT(1)).hydrate(CompanyOut)
    return runner.fetch_one(q)


def company_name_taken(runner, name: str, exclude_id: Optional[int] = None) -> bool:
    predicates = [companies.c.name == name]
    if exclude_id is not None:
        predicates.append(companies.c.id != exclude_id)
    q = SELECT(companies.c.id.AS("id")).FROM(companies).WHERE(*predicates).LIMIT(1)
    return runner.fetch_one(q) is not None


def list_companies(runner):
    q = using_pydantic(_company_select().ORDER_BY(ASC(companies.c.name))).hydrate(CompanyOut)
    return runner.fetch_all(q)


def create_company(runner, data: dict) -> int:
    result = runner.execute(
        INSERT(companies).VALUES(
            name=data["name"],
            industry=data.get("industry"),
            website=data.get("website"),
            created_at=now_iso(),
        )
    )
    return int(result.lastrowid)


def update_company(runner, company_id: int, values: dict) -> None:
    runner.execute(UPDATE(companies).SET(**values).WHERE(companies.c.id == company_id))


def delete_company(runner, company_id: int) -> None:
    runner.execute(DELETE(companies).WHERE(companies.c.id == company_id))


# Users


def _user_select():
    return SELECT(
        users.c.id.AS("id"),
        users.c.email.AS("email"),
        users.c.first_name.AS("first_name"),
        users.c.last_name.AS("last_name"),
        users.c.phone.AS("phone"),
        users.c.role.AS("role"),
        users.c.company_id.AS("company_id"),
        users.c.department.AS("department"),
        users.c.job_title.AS("job_title"),
        users.c.preferences.AS("preferences"),
        users.c.is_active.AS("is_active"),
        users.c.last_login.AS("last_login"),
        users.c.created_at.AS("created_at"),
        users.c.updated_at.AS("updated_at"),
    ).FROM(users)


def get_user(runner, user_id: int):
    q = using_pydantic(_user_select().WHERE(users.c.id == user_id).LIMIT(1)).hydrate(UserOut)
    return runner.fetch_one(q)


def get_user_credentials(runner, email: str):
    q = (
        SELECT(
            users.c.id.AS("id"),
            users.c.email.AS("email"),
            users.c.password_hash.AS("password_hash"),
            users.c.first_name.AS("first_name"),
            users.c.last_name.AS("last_name"),
            users.c.role.AS("role"),
            users.c.is_active.AS("is_active"),
        )
        .FROM(users)
        .WHERE(users.c.email == email.lower())
        .LIMIT(1)
    )
    return runner.fetch_one(q)


def get_password_hash(runner, user_id: int) -> Optional[str]:
    row = runner.fetch_one(SELECT(users.c.password_hash.AS("password_hash")).FROM(users).WHERE(users.c.id == user_id))
    return row["password_hash"] if row else None


def email_taken(runner, email: str) -> bool:
    q = SELECT(users.c.id.AS("id")).FROM(users).WHERE(users.c.email == email.lower()).LIMIT(1)
    return runner.fetch_one(q) is not None


def list_users(runner, company_id: Optional[int] = None):
    q = _user_select()
    if company_id is not None:
        q = q.WHERE(users.c.company_id == company_id)
    q = using_pydantic(q.ORDER_BY(ASC(users.c.id))).hydrate(UserOut)
    return runner.fetch_all(q)


def create_user(runner, data: dict, password_hash: str) -> int:
    now = now_iso()
    result = runner.execute(
        INSERT(users).VALUES(
            email=data["email"].lower(),
            password_hash=password_hash,
            first_name=data["first_name"],
            last_name=data["last_name"],
            phone=data.get("phone"),
            role=data.get("role", "user"),
            company_id=data.get("company_id"),
            department=data.get("department"),
            job_title=data.get("job_title"),
            preferences=json.dumps(data.get("preferences") or {}),
            is_active=1,
            created_at=now,
            updated_at=now,
        )
    )
    return int(result.lastrowid)


def update_user(runner, user_id: int, values: dict) -> None:
    values = dict(values)
    if "preferences" in values:
        values["preferences"] = json.dumps(values["preferences"])
    if "is_active" in values:
        values["is_active"] = int(bool(values["is_active"]))
    values["updated_at"] = now_iso()
    runner.execute(UPDATE(users).SET(**values).WHERE(users.c.id == user_id))


def touch_last_login(runner, user_id: int) -> None:
    runner.execute(UPDATE(users).SET(last_login=now_iso()).WHERE(users.c.id == user_id))


def delete_user(runner, user_id: int) -> None:
    runner.execute(DELETE(users).WHERE(users.c.id == user_id))


def count_active_users(runner, company_id: Optional[int] = None) -> int:
    predicates = [users.c.is_active == 1]
    if company_id is not None:
        predicates.append(users.c.company_id == company_id)
    return _count(runner, SELECT(COUNT(users.c.id).AS("n")).FROM(users).WHERE(*predicates))


def count_users(runner, company_id: int) -> int:
    return _count(runner, SELECT(COUNT(users.c.id).AS("n")).FROM(users).WHERE(users.c.company_id == company_id))


# Events


def _event_select():
    return (
        SELECT(
            events.c.id.AS("id"),
            events.c.title.AS("title"),
            events.c.description.AS("description"),
            events.c.category.AS("category"),
            events.c.location.AS("location"),
            events.c.start_date.AS("start_date"),
            events.c.end_date.AS("end_date"),
            events.c.max_attendees.AS("max_attendees"),
            events.c.price_cents.AS("price_cents"),
            events.c.currency.AS("currency"),
            events.c.status.AS("status"),
            events.c.is_public.AS("is_public"),
            events.c.requires_approval.AS("requires_approval"),
            events.c.tags.AS("tags"),
            events.c.created_by.AS("created_by"),
            events.c.company_id.AS("company_id"),
            events.c.created_at.AS("created_at"),
            events.c.updated_at.AS("updated_at"),
            SUM(registrations.c.seats).AS("current_attendees"),
        )
        .FROM(events)
        .LEFT_JOIN(
            registrations,
            ON=AND(
                registrations.c.event_id == events.c.id,
                registrations.c.status.IN(SEAT_HOLDING_STATUSES),
            ),
        )
    )


def get_event(runner, event_id: int):
    q = using_pydantic(
        _event_select()
        .WHERE(events.c.id == event_id)
        .GROUP_BY(events.c.id)
        .LIMIT(1)
    ).hydrate(EventOut)
    return runner.fetch_one(q)


def list_events(
    runner,
    status: Optional[str] = None,
    public_only: bool = False,
    company_id: Optional[int] = None,
    created_by: Optional[int] = None,
):
    """List events with seat usage; ``company_id`` and ``created_by`` together mean either one matches."""
    predicates = []
    if status:
        predicates.append(events.c.status == status)
    if public_only:
        predicates.append(events.c.is_public == 1)
    if company_id is not None and created_by is not None:
        predicates.append(OR(events.c.company_id == company_id, events.c.created_by == created_by))
    elif company_id is not None:
        predicates.append(events.c.company_id == company_id)
    elif created_by is not None:
        predicates.append(events.c.created_by == created_by)

    q = _event_select()
    if predicates:
        q = q.WHERE(*predicates)
    q = using_pydantic(q.GROUP_BY(events.c.id).ORDER_BY(ASC(events.c.start_date))).hydrate(EventOut)
    return runner.fetch_all(q)


def _event_values(data: dict) -> dict:
    values = dict(data)
    for key in ("start_date", "end_date"):
        if isinstance(values.get(key), datetime):
            values[key] = values[key].isoformat()
    if "tags" in values:
        values["tags"] = ",".join(values["tags"] or [])
    for key in ("is_public", "requires_approval"):
        if key in values:
            values[key] = int(bool(values[key]))
    return values


def create_event(runner, data: dict, created_by: int, status: str = "draft") -> int:
    now = now_iso()
    values = _event_values(data)
    result = runner.execute(
        INSERT(events).VALUES(
            title=values["title"],
            description=values.get("description"),
            category=values["category"],
            location=values.get("location"),
            start_date=values["start_date"],
            end_date=values["end_date"],
            max_attendees=values["max_attendees"],
            price_cents=values["price_cents"],
            currency=values.get("currency", "USD"),
            status=status,
            is_public=values.get("is_public", 1),
            requires_approval=values.get("requires_approval", 0),
            tags=values.get("tags", ""),
            created_by=created_by,
            company_id=values.get("company_id"),
            created_at=now,
            updated_at=now,
        )
    )
    return int(result.lastrowid)


def update_event(runner, event_id: int, data: dict) -> None:
    values = _event_values(data)
    values["updated_at"] = now_iso()
    runner.execute(UPDATE(events).SET(**values).WHERE(events.c.id == event_id))


def set_event_status(runner, event_id: int, status: str) -> None:
    runner.execute(UPDATE(events).SET(status=status, updated_at=now_iso()).WHERE(events.c.id == event_id))


def delete_event(runner, event_id: int) -> None:
    runner.execute(DELETE(events).WHERE(events.c.id == event_id))


def count_events_created_by(runner, user_id: int) -> int:
    return _count(runner, SELECT(COUNT(events.c.id).AS("n")).FROM(events).WHERE(events.c.created_by == user_id))


# Registrations


def _registration_select():
    return (
        SELECT(
            registrations.c.id.AS("id"),
            registrations.c.event_id.AS("event_id"),
            registrations.c.user_id.AS("user_id"),
            registrations.c.first_name.AS("first_name"),
            registrations.c.last_name.AS("last_name"),
            registrations.c.email.AS("email"),
            registrations.c.phone.AS("phone"),
            registrations.c.company.AS("company"),
            registrations.c.job_title.AS("job_title"),
            registrations.c.dietary_restrictions.AS("dietary_restrictions"),
            registrations.c.special_requirements.AS("special_requirements"),
            registrations.c.seats.AS("seats"),
            registrations.c.ticket_type.AS("ticket_type"),
            registrations.c.coupon_code.AS("coupon_code"),
            registrations.c.status.AS("status"),
            registrations.c.payment_status.AS("payment_status"),
            registrations.c.payment_method.AS("payment_method"),
            registrations.c.subtotal_cents.AS("subtotal_cents"),
            registrations.c.discount_cents.AS("discount_cents"),
            registrations.c.tax_cents.AS("tax_cents"),
            registrations.c.amount_cents.AS("amount_cents"),
            registrations.c.refunded_cents.AS("refunded_cents"),
            registrations.c.currency.AS("currency"),
            registrations.c.transaction_id.AS("transaction_id"),
            registrations.c.ticket_number.AS("ticket_number"),
            registrations.c.checked_in.AS("checked_in"),
            registrations.c.checked_in_at.AS("checked_in_at"),
            registrations.c.checked_in_by.AS("checked_in_by"),
            registrations.c.registered_at.AS("registered_at"),
            registrations.c.updated_at.AS("updated_at"),
            events.c.title.AS("event_title"),
            events.c.start_date.AS("event_start_date"),
            events.c.location.AS("event_location"),
        )
        .FROM(registrations)
        .JOIN(events, ON=events.c.id == registrations.c.event_id)
    )


def get_registration(runner, registration_id: int):
    q = using_pydantic(
        _registration_select().WHERE(registrations.c.id == registration_id).LIMIT(1)
    ).hydrate(RegistrationOut)
    return runner.fetch_one(q)


def get_registration_by_ticket(runner, ticket_number: str):
    q = using_pydantic(
        _registration_select().WHERE(registrations.c.ticket_number == ticket_number).LIMIT(1)
    ).hydrate(RegistrationOut)
    return runner.fetch_one(q)


def list_registrations(
    runner,
    event_id: Optional[int] = None,
    user_id: Optional[int] = None,
    event_ids: Optional[Sequence[int]] = None,
    status: Optional[str] = None,
):
    predicates = []
    if event_id is not None:
        predicates.append(registrations.c.event_id == event_id)
    if user_id is not None:
        predicates.append(registrations.c.user_id == user_id)
    if event_ids is not None:
        if not event_ids:
            return []
        predicates.append(registrations.c.event_id.IN(list(event_ids)))
    if status:
        predicates.append(registrations.c.status == status)

    q = _registration_select()
    if predicates:
        q = q.WHERE(*predicates)
    q = using_pydantic(
        q.ORDER_BY(DESC(registrations.c.registered_at), DESC(registrations.c.id))
    ).hydrate(RegistrationOut)
    return runner.fetch_all(q)


def list_waitlist(runner, event_id: int):
    """Waitlisted registrations of an event, first come first served."""
    q = using_pydantic(
        _registration_select()
        .WHERE(registrations.c.event_id == event_id, registrations.c.status == "waitlisted")
        .ORDER_BY(ASC(registrations.c.registered_at), ASC(registrations.c.id))
    ).hydrate(RegistrationOut)
    return runner.fetch_all(q)


def seats_held_for_event(runner, event_id: int, exclude_id: Optional[int] = None) -> int:
    predicates = [
        registrations.c.event_id == event_id,
        registrations.c.status.IN(SEAT_HOLDING_STATUSES),
    ]
    if exclude_id is not None:
        predicates.append(registrations.c.id != exclude_id)
    q = SELECT(SUM(registrations.c.seats).AS("total")).FROM(registrations).WHERE(*predicates)
    row = runner.fetch_one(q)
    if not row:
        return 0
    return int(row["total"] or 0)


def active_registration_exists(runner, event_id: int, user_id: int) -> bool:
    q = (
        SELECT(registrations.c.id.AS("id"))
        .FROM(registrations)
        .WHERE(
            registrations.c.event_id == event_id,
            registrations.c.user_id == user_id,
            registrations.c.status != "cancelled",
        )
        .LIMIT(1)
    )
    return runner.fetch_one(q) is not None


def ticket_number_exists(runner, ticket_number: str) -> bool:
    q = (
        SELECT(registrations.c.id.AS("id"))
        .FROM(registrations)
        .WHERE(registrations.c.ticket_number == ticket_number)
        .LIMIT(1)
    )
    return runner.fetch_one(q) is not None


def create_registration(runner, data: dict) -> int:
    now = now_iso()
    values = dict(data)
    values.setdefault("registered_at", now)
    values["updated_at"] = now
    result = runner.execute(INSERT(registrations).VALUES(**values))
    return int(result.lastrowid)


def update_registration(runner, registration_id: int, values: dict) -> None:
    values = dict(values)
    if "checked_in" in values:
        values["checked_in"] = int(bool(values["checked_in"]))
    values["updated_at"] = now_iso()
    runner.execute(UPDATE(registrations).SET(**values).WHERE(registrations.c.id == registration_id))


def delete_registration(runner, registration_id: int) -> None:
    runner.execute(DELETE(registrations).WHERE(registrations.c.id == registration_id))


# Audit log


def add_audit_entry(runner, registration_id: int, actor_id: Optional[int], action: str, detail: Optional[str] = None) -> int:
    result = runner.execute(
        INSERT(audit_log).VALUES(
            registration_id=registration_id,
            actor_id=actor_id,
            action=action,
            detail=detail,
            created_at=now_iso(),
        )
    )
    return int(result.lastrowid)


def list_audit_entries(runner, registration_id: int):
    q = using_pydantic(
        SELECT(
            audit_log.c.id.AS("id"),
            audit_log.c.registration_id.AS("registration_id"),
            audit_log.c.actor_id.AS("actor_id"),
            audit_log.c.action.AS("action"),
            audit_log.c.detail.AS("detail"),
            audit_log.c.created_at.AS("created_at"),
        )
        .FROM(audit_log)
        .WHERE(audit_log.c.registration_id == registration_id)
        .ORDER_BY(ASC(audit_log.c.id))
    ).hydrate(AuditEntryOut)
    return runner.fetch_all(q)
