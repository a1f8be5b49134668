from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, TypeVar

from eventhub.config import Config
from eventhub.errors import ValidationFailed
from eventhub.models import (
    EventFilters,
    EventOut,
    Page,
    RegistrationFilters,
    RegistrationOut,
    SortDirection,
    UserFilters,
    UserOut,
)

T = TypeVar("T")

REGISTRATION_SORT_KEYS = (
    "registered_at",
    "first_name",
    "last_name",
    "email",
    "status",
    "payment_status",
    "seats",
    "amount_cents",
    "event_title",
)
EVENT_SORT_KEYS = ("title", "start_date", "price_cents", "created_at")
USER_SORT_KEYS = ("full_name", "email", "role", "created_at")


def _matches(term: str, *values: Optional[str]) -> bool:
    return any(term in value.lower() for value in values if value)


def _term(search: Optional[str]) -> str:
    return (search or "").strip().lower()


def _on_or_after(value: Optional[datetime], bound) -> bool:
    return value is not None and value.date() >= bound


def _on_or_before(value: Optional[datetime], bound) -> bool:
    return value is not None and value.date() <= bound


def filter_registrations(items: Iterable[RegistrationOut], filters: RegistrationFilters) -> List[RegistrationOut]:
    term = _term(filters.search)
    result = []
    for reg in items:
        if term and not _matches(term, reg.full_name, reg.email, reg.event_title, reg.ticket_number):
            continue
        if filters.event_id is not None and reg.event_id != filters.event_id:
            continue
        if filters.user_id is not None and reg.user_id != filters.user_id:
            continue
        if filters.status is not None and reg.status != filters.status:
            continue
        if filters.payment_status is not None and reg.payment_status != filters.payment_status:
            continue
        if filters.checked_in is not None and reg.checked_in != filters.checked_in:
            continue
        if filters.date_from is not None and not _on_or_after(reg.event_start_date, filters.date_from):
            continue
        if filters.date_to is not None and not _on_or_before(reg.event_start_date, filters.date_to):
            continue
        result.append(reg)
    return result


def filter_events(items: Iterable[EventOut], filters: EventFilters) -> List[EventOut]:
    term = _term(filters.search)
    category = _term(filters.category)
    result = []
    for event in items:
        if term and not _matches(term, event.title, event.description, event.location):
            continue
        if category and event.category.lower() != category:
            continue
        if filters.status is not None and event.status != filters.status:
            continue
        if filters.start_from is not None and not _on_or_after(event.start_date, filters.start_from):
            continue
        if filters.start_to is not None and not _on_or_before(event.start_date, filters.start_to):
            continue
        if filters.min_price is not None and event.price_cents < filters.min_price:
            continue
        if filters.max_price is not None and event.price_cents > filters.max_price:
            continue
        result.append(event)
    return result


def filter_users(items: Iterable[UserOut], filters: UserFilters) -> List[UserOut]:
    term = _term(filters.search)
    result = []
    for user in items:
        if term and not _matches(term, user.full_name, user.email, user.department):
            continue
        if filters.role is not None and user.role != filters.role:
            continue
        if filters.company_id is not None and user.company_id != filters.company_id:
            continue
        if filters.is_active is not None and user.is_active != filters.is_active:
            continue
        result.append(user)
    return result


def _sort_value(item, key: str):
    value = getattr(item, key)
    if isinstance(value, str):
        return value.lower()
    return value


def sort_records(
    items: Sequence[T],
    key: str,
    direction: SortDirection = SortDirection.asc,
    allowed: Sequence[str] = (),
) -> List[T]:
    """Stable sort by attribute; strings compare case-insensitively and None always sorts last."""
    if allowed and key not in allowed:
        raise ValidationFailed(f"cannot sort by '{key}'", errors=[f"allowed sort keys: {', '.join(allowed)}"])
    reverse = SortDirection(direction) == SortDirection.desc
    present = [item for item in items if getattr(item, key) is not None]
    missing = [item for item in items if getattr(item, key) is None]
    return sorted(present, key=lambda item: _sort_value(item, key), reverse=reverse) + missing


def paginate(items: Sequence[T], page: int = 1, per_page: Optional[int] = None) -> Page:
    if per_page is None:
        per_page = Config.ITEMS_PER_PAGE
    if page < 1:
        raise ValidationFailed("page must be 1 or greater")
    if per_page < 1:
        raise ValidationFailed("per_page must be 1 or greater")
    per_page = min(per_page, Config.MAX_PAGE_SIZE)
    total = len(items)
    start = (page - 1) * per_page
    return Page(
        items=list(items[start:start + per_page]),
        total=total,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total / per_page),
    )


def sort_and_paginate(
    items: Sequence[T],
    sort: str,
    direction: SortDirection,
    allowed: Sequence[str],
    page: int = 1,
    per_page: Optional[int] = None,
) -> Page:
    return paginate(sort_records(items, sort, direction, allowed), page, per_page)
