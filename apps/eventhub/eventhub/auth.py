from __future__ import annotations

from typing import Optional

import bcrypt
from fastapi import Depends
from sqlstratum.runner import Runner
from starlette.requests import Request

from eventhub import queries
from eventhub.db import get_runner_dep
from eventhub.errors import NotAuthenticated, PermissionDenied


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def login_user(request: Request, user_id: int, role: str, display_name: str) -> None:
    request.session.clear()
    request.session["user_id"] = user_id
    request.session["role"] = role
    request.session["display_name"] = display_name


def logout_user(request: Request) -> None:
    request.session.clear()


def get_session_user(request: Request) -> Optional[dict]:
    user_id = request.session.get("user_id")
    role = request.session.get("role")
    display_name = request.session.get("display_name")
    if user_id is None or role is None:
        return None
    return {"id": user_id, "role": role, "display_name": display_name}


def current_user(request: Request, runner: Runner = Depends(get_runner_dep)) -> Optional[dict]:
    """The session user reloaded from the database, so role and active-state changes apply at once."""
    session_user = get_session_user(request)
    if session_user is None:
        return None
    user = queries.get_user(runner, session_user["id"])
    if user is None or not user.is_active:
        logout_user(request)
        return None
    if user.role.value != session_user["role"]:
        request.session["role"] = user.role.value
    return {"id": user.id, "role": user.role.value, "display_name": user.full_name}


def require_user(user: Optional[dict] = Depends(current_user)) -> dict:
    if user is None:
        raise NotAuthenticated("Authentication required")
    return user


def require_role(*roles: str):
    """Dependency factory: the session user must hold one of ``roles``."""

    def dependency(user: dict = Depends(require_user)) -> dict:
        if roles and user["role"] not in roles:
            raise PermissionDenied("Insufficient permissions")
        return user

    return dependency


admin_required = require_role("admin")
staff_required = require_role("admin", "manager")
