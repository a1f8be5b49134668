from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from eventhub import analytics, queries, services
from eventhub.auth import current_user, staff_required
from eventhub.db import get_runner_dep
from eventhub.export import export_filename, registrations_csv
from eventhub.listing import (
    EVENT_SORT_KEYS,
    REGISTRATION_SORT_KEYS,
    filter_events,
    filter_registrations,
    sort_and_paginate,
    sort_records,
)
from eventhub.models import (
    EventCreate,
    EventFilters,
    EventOut,
    EventStatistics,
    EventUpdate,
    Page,
    RegistrationFilters,
    RegistrationOut,
    SortDirection,
)

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=Page[EventOut])
def list_events(
    filters: EventFilters = Depends(),
    sort: str = "start_date",
    direction: SortDirection = SortDirection.asc,
    page: int = 1,
    per_page: Optional[int] = None,
    runner=Depends(get_runner_dep),
):
    events = filter_events(services.public_events(runner), filters)
    return sort_and_paginate(events, sort, direction, EVENT_SORT_KEYS, page, per_page)


@router.get("/managed", response_model=Page[EventOut])
def list_managed_events(
    filters: EventFilters = Depends(),
    sort: str = "start_date",
    direction: SortDirection = SortDirection.asc,
    page: int = 1,
    per_page: Optional[int] = None,
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    events = filter_events(services.managed_events(runner, user), filters)
    return sort_and_paginate(events, sort, direction, EVENT_SORT_KEYS, page, per_page)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(data: EventCreate, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.create_event(runner, user, data)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: int, user: Optional[dict] = Depends(current_user), runner=Depends(get_runner_dep)):
    return services.get_visible_event(runner, user, event_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(event_id: int, data: EventUpdate, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.update_event(runner, user, event_id, data)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    services.delete_event(runner, user, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/publish", response_model=EventOut)
def publish_event(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.publish_event(runner, user, event_id)


@router.post("/{event_id}/cancel", response_model=EventOut)
def cancel_event(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.cancel_event(runner, user, event_id)


@router.post("/{event_id}/complete", response_model=EventOut)
def complete_event(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.complete_event(runner, user, event_id)


@router.post("/{event_id}/duplicate", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def duplicate_event(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.duplicate_event(runner, user, event_id)


@router.get("/{event_id}/registrations", response_model=Page[RegistrationOut])
def event_registrations(
    event_id: int,
    filters: RegistrationFilters = Depends(),
    sort: str = "registered_at",
    direction: SortDirection = SortDirection.desc,
    page: int = 1,
    per_page: Optional[int] = None,
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    services.get_managed_event(runner, user, event_id)
    records = filter_registrations(queries.list_registrations(runner, event_id=event_id), filters)
    return sort_and_paginate(records, sort, direction, REGISTRATION_SORT_KEYS, page, per_page)


@router.get("/{event_id}/waitlist", response_model=List[RegistrationOut])
def event_waitlist(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    services.get_managed_event(runner, user, event_id)
    return queries.list_waitlist(runner, event_id)


@router.get("/{event_id}/statistics", response_model=EventStatistics)
def event_statistics(event_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    event = services.get_managed_event(runner, user, event_id)
    return analytics.event_statistics(runner, event)


@router.get("/{event_id}/export")
def export_event_registrations(
    event_id: int,
    filters: RegistrationFilters = Depends(),
    sort: str = "registered_at",
    direction: SortDirection = SortDirection.desc,
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    services.get_managed_event(runner, user, event_id)
    records = filter_registrations(queries.list_registrations(runner, event_id=event_id), filters)
    body = registrations_csv(sort_records(records, sort, direction, REGISTRATION_SORT_KEYS))
    filename = export_filename(f"event-{event_id}-registrations")
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
