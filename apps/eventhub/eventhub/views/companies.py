from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from eventhub import analytics, queries, services
from eventhub.auth import admin_required, staff_required
from eventhub.db import get_runner_dep
from eventhub.errors import PermissionDenied
from eventhub.models import CompanyCreate, CompanyOut, CompanyStatistics, CompanyUpdate, Role

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("", response_model=List[CompanyOut])
def list_companies(user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return queries.list_companies(runner)


@router.post("", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
def create_company(data: CompanyCreate, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.create_company(runner, data)


@router.get("/{company_id}", response_model=CompanyOut)
def get_company(company_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    return services.get_company_or_404(runner, company_id)


@router.patch("/{company_id}", response_model=CompanyOut)
def update_company(company_id: int, data: CompanyUpdate, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.update_company(runner, company_id, data)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(company_id: int, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    services.delete_company(runner, company_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{company_id}/statistics", response_model=CompanyStatistics)
def company_statistics(company_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    services.get_company_or_404(runner, company_id)
    if user["role"] == Role.manager.value:
        manager = services.get_user_or_404(runner, user["id"])
        if manager.company_id != company_id:
            raise PermissionDenied("Managers can only view their own company")
    return analytics.company_statistics(runner, company_id)
