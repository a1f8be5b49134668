from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from eventhub import services
from eventhub.app import create_app
from eventhub.config import Config
from eventhub.db import init_db, runner_scope
from eventhub.models import CompanyCreate, EventCreate, RegistrationCreate, UserCreate

PASSWORD = "s3cret-pass"


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "eventhub.db"
    monkeypatch.setattr(Config, "DB_PATH", str(path))
    init_db()
    return path


@pytest.fixture
def runner(db_path):
    with runner_scope() as runner:
        yield runner


@pytest.fixture
def app(db_path):
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def actor_for(user) -> dict:
    return {"id": user.id, "role": user.role.value, "display_name": user.full_name}


def make_user(runner, email: str, role: str = "user", company_id=None):
    return services.create_user(
        runner,
        UserCreate(
            email=email,
            password=PASSWORD,
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            phone="+1 555-010-0000",
            role=role,
            company_id=company_id,
        ),
    )


def make_event(runner, actor: dict, publish: bool = True, **overrides):
    start = datetime.now(timezone.utc) + timedelta(days=7)
    data = {
        "title": "PyCon Local",
        "description": "Talks and sprints",
        "category": "conference",
        "location": "Lima",
        "start_date": start,
        "end_date": start + timedelta(hours=8),
        "max_attendees": 10,
        "price_cents": 5000,
        "tags": ["Python", "community"],
    }
    data.update(overrides)
    event = services.create_event(runner, actor, EventCreate(**data))
    if publish:
        event = services.publish_event(runner, actor, event.id)
    return event


def registration_data(event_id: int, email: str = "guest@eventhub.io", **overrides) -> RegistrationCreate:
    data = {
        "event_id": event_id,
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": email,
        "phone": "+1 555-123-4567",
        "seats": 1,
    }
    data.update(overrides)
    return RegistrationCreate(**data)


@pytest.fixture
def admin(runner):
    return actor_for(make_user(runner, "admin@eventhub.io", role="admin"))


@pytest.fixture
def company(runner):
    return services.create_company(runner, CompanyCreate(name="Acme Events", industry="Media"))


@pytest.fixture
def manager(runner, company):
    return actor_for(make_user(runner, "manager@eventhub.io", role="manager", company_id=company.id))


@pytest.fixture
def attendee(runner):
    return actor_for(make_user(runner, "ana@eventhub.io"))


@pytest.fixture
def login(app):
    """Return a factory that opens a TestClient logged in as ``email``."""
    clients = []

    def _login(email: str, password: str = PASSWORD) -> TestClient:
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return client

    yield _login
    for client in clients:
        client.__exit__(None, None, None)
