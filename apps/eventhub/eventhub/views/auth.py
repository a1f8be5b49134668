from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from eventhub import services
from eventhub.auth import login_user, logout_user, require_user
from eventhub.db import get_runner_dep
from eventhub.models import LoginRequest, PasswordChange, PreferencesUpdate, SignupRequest, UserOut, UserUpdate

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _start_session(request: Request, user: UserOut) -> None:
    login_user(request, user.id, user.role.value, user.full_name)


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, request: Request, runner=Depends(get_runner_dep)):
    user = services.signup(runner, data)
    _start_session(request, user)
    return user


@router.post("/login", response_model=UserOut)
def login(data: LoginRequest, request: Request, runner=Depends(get_runner_dep)):
    user = services.authenticate(runner, data.email, data.password)
    _start_session(request, user)
    return user


@router.post("/logout")
def logout(request: Request):
    logout_user(request)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserOut)
def me(user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.get_user_or_404(runner, user["id"])


@router.patch("/me", response_model=UserOut)
def update_me(data: UserUpdate, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.update_profile(runner, user["id"], data)


@router.post("/me/password")
def change_password(data: PasswordChange, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    services.change_password(runner, user["id"], data)
    return {"message": "Password updated"}


@router.patch("/me/preferences", response_model=UserOut)
def update_preferences(data: PreferencesUpdate, user: dict = Depends(require_user), runner=Depends(get_runner_dep)):
    return services.update_preferences(runner, user["id"], data)
