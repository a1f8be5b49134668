from __future__ import annotations

from datetime import datetime, timedelta, timezone

from eventhub import services
from eventhub.models import UserUpdate

from conftest import PASSWORD, make_event, make_user


def _event_payload(**overrides) -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=10)
    payload = {
        "title": "Data Engineering Day",
        "category": "workshop",
        "location": "Cusco",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=6)).isoformat(),
        "max_attendees": 2,
        "price_cents": 2500,
        "tags": ["data"],
    }
    payload.update(overrides)
    return payload


def _registration_payload(event_id: int, **overrides) -> dict:
    payload = {
        "event_id": event_id,
        "first_name": "Ana",
        "last_name": "Lopez",
        "email": "ana@eventhub.io",
        "phone": "+51 999 888 777",
        "seats": 1,
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_signup_login_and_profile(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "new@eventhub.io", "password": "longenough", "first_name": "New", "last_name": "Person"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "user"
    assert body["full_name"] == "New Person"
    assert "password_hash" not in body

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "new@eventhub.io"

    updated = client.patch("/api/auth/me", json={"job_title": "Analyst", "role": "admin"})
    assert updated.json()["job_title"] == "Analyst"
    assert updated.json()["role"] == "user"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_signup_validation_errors(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "not-an-email", "password": "short", "first_name": "", "last_name": "X"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation Error"
    assert any(message.startswith("password") for message in body["errors"])


def test_bad_login(client, runner):
    make_user(runner, "someone@eventhub.io")
    response = client.post("/api/auth/login", json={"email": "someone@eventhub.io", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid email or password", "errors": []}


def test_role_checks(client, runner, login, admin, attendee):
    assert client.get("/api/users").status_code == 401
    user_client = login("ana@eventhub.io")
    assert user_client.get("/api/users").status_code == 403
    assert user_client.post("/api/events", json=_event_payload()).status_code == 403

    admin_client = login("admin@eventhub.io")
    page = admin_client.get("/api/users", params={"sort": "email", "direction": "asc"}).json()
    assert page["total"] == 2
    assert [u["email"] for u in page["items"]] == ["admin@eventhub.io", "ana@eventhub.io"]
    assert admin_client.get("/api/users", params={"sort": "password"}).status_code == 400
    assert admin_client.get("/api/users", params={"per_page": 0}).status_code == 400


def test_event_and_registration_flow(runner, login, manager, attendee):
    staff = login("manager@eventhub.io")
    created = staff.post("/api/events", json=_event_payload())
    assert created.status_code == 201
    event = created.json()
    assert event["status"] == "draft"
    assert event["available_seats"] == 2

    public = login("ana@eventhub.io")
    assert public.get(f"/api/events/{event['id']}").status_code == 404
    assert staff.post(f"/api/events/{event['id']}/publish").json()["status"] == "published"

    listing = public.get("/api/events", params={"search": "engineering"}).json()
    assert listing["total"] == 1

    quote = public.post("/api/registrations/quote", json={"event_id": event["id"], "seats": 2, "coupon_code": "corp15"})
    assert quote.json()["total_cents"] == 4590

    registered = public.post("/api/registrations", json=_registration_payload(event["id"], seats=2))
    assert registered.status_code == 201
    registration = registered.json()
    assert registration["status"] == "confirmed"
    assert public.post("/api/registrations", json=_registration_payload(event["id"])).status_code == 409

    ticket = public.get(f"/api/registrations/{registration['id']}/ticket").json()
    assert ticket["qr_payload"] == f"eventhub:ticket:{registration['ticket_number']}"
    png = public.get(f"/api/registrations/{registration['id']}/ticket.png")
    assert png.headers["content-type"] == "image/png"

    checked = staff.post("/api/registrations/check-in", json={"qr_payload": ticket["qr_payload"]})
    assert checked.status_code == 200
    assert checked.json()["checked_in"] is True
    assert staff.post(f"/api/registrations/{registration['id']}/check-in").status_code == 409

    stats = staff.get(f"/api/events/{event['id']}/statistics").json()
    assert stats["seats_sold"] == 2
    assert stats["registrations"]["check_in_rate"] == 1.0

    export = staff.get(f"/api/events/{event['id']}/export")
    assert export.headers["content-type"].startswith("text/csv")
    lines = export.text.strip().split("\n")
    assert lines[0].startswith("Ticket Number,Name,Email,Event")
    assert registration["ticket_number"] in lines[1]


def test_waitlist_over_http(runner, login, manager):
    event = make_event(runner, manager, max_attendees=1)
    make_user(runner, "first@eventhub.io")
    make_user(runner, "second@eventhub.io")
    first = login("first@eventhub.io")
    second = login("second@eventhub.io")

    held = first.post("/api/registrations", json=_registration_payload(event.id, email="first@eventhub.io")).json()
    queued = second.post("/api/registrations", json=_registration_payload(event.id, email="second@eventhub.io")).json()
    assert queued["status"] == "waitlisted"

    staff = login("manager@eventhub.io")
    waitlist = staff.get(f"/api/events/{event.id}/waitlist").json()
    assert [r["id"] for r in waitlist] == [queued["id"]]

    assert second.get(f"/api/registrations/{held['id']}").status_code == 403
    cancelled = first.post(f"/api/registrations/{held['id']}/cancel", json={"reason": "sick"})
    assert cancelled.json()["status"] == "cancelled"
    assert second.get(f"/api/registrations/{queued['id']}").json()["status"] == "confirmed"

    audit = staff.get(f"/api/registrations/{queued['id']}/audit").json()
    assert [entry["action"] for entry in audit] == ["registered", "confirmed"]


def test_registration_listing_is_scoped(runner, login, manager, attendee):
    event = make_event(runner, manager)
    make_user(runner, "other@eventhub.io")
    mine = login("ana@eventhub.io")
    other = login("other@eventhub.io")
    mine.post("/api/registrations", json=_registration_payload(event.id))
    other.post("/api/registrations", json=_registration_payload(event.id, first_name="Olga", email="other@eventhub.io"))

    assert mine.get("/api/registrations").json()["total"] == 1
    staff_page = login("manager@eventhub.io").get(
        "/api/registrations", params={"sort": "first_name", "direction": "asc", "per_page": 1, "page": 2}
    ).json()
    assert staff_page["total"] == 2
    assert staff_page["total_pages"] == 2
    assert staff_page["items"][0]["first_name"] == "Olga"


def test_dashboard_endpoint(login, admin, attendee):
    assert login("admin@eventhub.io").get("/api/analytics/dashboard").json()["role"] == "admin"
    user_view = login("ana@eventhub.io").get("/api/analytics/dashboard").json()
    assert user_view["total_registrations"] == 0


def test_company_admin(login, admin):
    client = login("admin@eventhub.io")
    created = client.post("/api/companies", json={"name": "Initech", "industry": "Software"})
    assert created.status_code == 201
    assert client.post("/api/companies", json={"name": "Initech"}).status_code == 409
    company_id = created.json()["id"]
    stats = client.get(f"/api/companies/{company_id}/statistics").json()
    assert stats == {"company_id": company_id, "users": 0, "events": 0, "registrations": 0, "total_revenue_cents": 0}
    assert client.delete(f"/api/companies/{company_id}").status_code == 204
    assert client.get(f"/api/companies/{company_id}").status_code == 404


def test_inactive_user_cannot_login(client, runner, login, admin):
    user = make_user(runner, "gone@eventhub.io")
    admin_client = login("admin@eventhub.io")
    assert admin_client.post(f"/api/users/{user.id}/deactivate").json()["is_active"] is False
    response = client.post("/api/auth/login", json={"email": "gone@eventhub.io", "password": PASSWORD})
    assert response.status_code == 403


def test_deactivated_user_loses_session(runner, login, admin):
    make_user(runner, "leaving@eventhub.io")
    session = login("leaving@eventhub.io")
    user_id = session.get("/api/auth/me").json()["id"]
    services.set_user_active(runner, admin, user_id, False)

    assert session.get("/api/auth/me").status_code == 401
    services.set_user_active(runner, admin, user_id, True)
    assert session.get("/api/auth/me").status_code == 401


def test_demoted_manager_loses_staff_access(runner, login, admin, manager):
    session = login("manager@eventhub.io")
    draft = make_event(runner, manager, publish=False)
    assert session.get(f"/api/events/{draft.id}").status_code == 200
    assert session.get("/api/users").status_code == 200
    services.admin_update_user(runner, admin, manager["id"], UserUpdate(role="user"))

    assert session.get("/api/users").status_code == 403
    assert session.post("/api/events", json=_event_payload()).status_code == 403
    assert session.get("/api/auth/me").json()["role"] == "user"
    assert session.get(f"/api/events/{draft.id}").status_code == 404


def test_deleted_user_session_is_rejected(runner, login, admin, manager):
    event = make_event(runner, manager)
    make_user(runner, "removed@eventhub.io")
    session = login("removed@eventhub.io")
    user_id = session.get("/api/auth/me").json()["id"]
    services.delete_user(runner, admin, user_id)

    response = session.post("/api/registrations", json=_registration_payload(event.id, email="removed@eventhub.io"))
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required", "errors": []}
