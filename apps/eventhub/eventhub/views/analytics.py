from __future__ import annotations

from fastapi import APIRouter, Depends

from eventhub import analytics, services
from eventhub.auth import require_user, staff_required
from eventhub.db import get_runner_dep
from eventhub.listing import filter_registrations
from eventhub.models import RegistrationFilters, RegistrationStatistics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/dashboard")
def dashboard(user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return analytics.dashboard(runner, user)


@router.get("/registrations", response_model=RegistrationStatistics)
def registration_statistics(
    filters: RegistrationFilters = Depends(),
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    records = filter_registrations(services.visible_registrations(runner, user), filters)
    return analytics.registration_statistics(records)
