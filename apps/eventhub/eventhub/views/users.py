from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from eventhub import services
from eventhub.auth import admin_required, staff_required
from eventhub.db import get_runner_dep
from eventhub.errors import NotFound
from eventhub.listing import USER_SORT_KEYS, filter_users, sort_and_paginate
from eventhub.models import Page, SortDirection, UserCreate, UserFilters, UserOut, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=Page[UserOut])
def list_users(
    filters: UserFilters = Depends(),
    sort: str = "created_at",
    direction: SortDirection = SortDirection.desc,
    page: int = 1,
    per_page: Optional[int] = None,
    user: dict = Depends(staff_required),
    runner=Depends(get_runner_dep),
):
    users = filter_users(services.visible_users(runner, user), filters)
    return sort_and_paginate(users, sort, direction, USER_SORT_KEYS, page, per_page)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(data: UserCreate, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.create_user(runner, data)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, user: dict = Depends(staff_required), runner=Depends(get_runner_dep)):
    for candidate in services.visible_users(runner, user):
        if candidate.id == user_id:
            return candidate
    raise NotFound("User not found")


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int, data: UserUpdate, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.admin_update_user(runner, user, user_id, data)


@router.post("/{user_id}/activate", response_model=UserOut)
def activate_user(user_id: int, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.set_user_active(runner, user, user_id, True)


@router.post("/{user_id}/deactivate", response_model=UserOut)
def deactivate_user(user_id: int, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    return services.set_user_active(runner, user, user_id, False)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, user: dict = Depends(admin_required), runner=Depends(get_runner_dep)):
    services.delete_user(runner, user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
