from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from eventhub import queries, services
from eventhub.errors import Conflict, NotAuthenticated, PermissionDenied, ValidationFailed
from eventhub.models import (
    EventUpdate,
    PasswordChange,
    PaymentMethod,
    PaymentRequest,
    PreferencesUpdate,
    RefundRequest,
    RegistrationUpdate,
    UserUpdate,
)
from eventhub.tickets import qr_payload

from conftest import PASSWORD, actor_for, make_event, make_user, registration_data


@pytest.fixture
def users(runner):
    return [actor_for(make_user(runner, f"user{i}@eventhub.io")) for i in range(4)]


def test_register_confirms_when_seats_fit(runner, manager, attendee):
    event = make_event(runner, manager)
    registration = services.register(runner, attendee, registration_data(event.id, seats=3, coupon_code="early20"))
    assert registration.status == "confirmed"
    assert registration.payment_status == "pending"
    assert registration.coupon_code == "EARLY20"
    assert registration.subtotal_cents == 15000
    assert registration.discount_cents == 3000
    assert registration.amount_cents == 12960
    assert registration.ticket_number.startswith("TKT-")
    assert registration.event_title == event.title
    assert services.get_event_or_404(runner, event.id).current_attendees == 3
    assert [entry.action for entry in queries.list_audit_entries(runner, registration.id)] == ["registered"]


def test_register_requires_approval_goes_pending(runner, manager, attendee):
    event = make_event(runner, manager, requires_approval=True)
    registration = services.register(runner, attendee, registration_data(event.id))
    assert registration.status == "pending"
    confirmed = services.confirm(runner, manager, registration.id)
    assert confirmed.status == "confirmed"


def test_register_free_event_is_paid(runner, manager, attendee):
    event = make_event(runner, manager, price_cents=0)
    registration = services.register(runner, attendee, registration_data(event.id))
    assert registration.amount_cents == 0
    assert registration.payment_status == "paid"


def test_register_rejects_unpublished_and_started_events(runner, manager, attendee):
    draft = make_event(runner, manager, publish=False)
    with pytest.raises(ValidationFailed):
        services.register(runner, attendee, registration_data(draft.id))

    started = make_event(runner, manager)
    queries.update_event(
        runner,
        started.id,
        {"start_date": datetime.now(timezone.utc) - timedelta(hours=1)},
    )
    with pytest.raises(ValidationFailed):
        services.register(runner, attendee, registration_data(started.id))


def test_one_active_registration_per_event(runner, manager, attendee):
    event = make_event(runner, manager)
    first = services.register(runner, attendee, registration_data(event.id))
    with pytest.raises(Conflict):
        services.register(runner, attendee, registration_data(event.id))
    services.cancel(runner, attendee, first.id)
    again = services.register(runner, attendee, registration_data(event.id))
    assert again.status == "confirmed"


def test_full_event_waitlists_and_promotes_fifo(runner, manager, users):
    event = make_event(runner, manager, max_attendees=3)
    holder = services.register(runner, users[0], registration_data(event.id, seats=3))
    big = services.register(runner, users[1], registration_data(event.id, seats=3))
    small = services.register(runner, users[2], registration_data(event.id, seats=1))
    assert holder.status == "confirmed"
    assert big.status == "waitlisted"
    assert small.status == "waitlisted"
    assert services.get_event_or_404(runner, event.id).available_seats == 0

    services.cancel(runner, users[0], holder.id, reason="cannot attend")
    assert services.get_registration_or_404(runner, big.id).status == "confirmed"
    assert services.get_registration_or_404(runner, small.id).status == "waitlisted"


def test_waitlist_head_that_does_not_fit_blocks_the_rest(runner, manager, users):
    event = make_event(runner, manager, max_attendees=3)
    first = services.register(runner, users[0], registration_data(event.id, seats=1))
    services.register(runner, users[1], registration_data(event.id, seats=2))
    big = services.register(runner, users[2], registration_data(event.id, seats=3))
    small = services.register(runner, users[3], registration_data(event.id, seats=1))
    assert big.status == "waitlisted"

    services.cancel(runner, users[0], first.id)
    assert services.get_registration_or_404(runner, big.id).status == "waitlisted"
    assert services.get_registration_or_404(runner, small.id).status == "waitlisted"


def test_promote_and_waitlist_transitions(runner, manager, users):
    event = make_event(runner, manager, max_attendees=2)
    first = services.register(runner, users[0], registration_data(event.id, seats=2))
    second = services.register(runner, users[1], registration_data(event.id, seats=1))
    with pytest.raises(Conflict):
        services.promote(runner, manager, second.id)
    with pytest.raises(Conflict):
        services.confirm(runner, manager, second.id)

    services.waitlist(runner, manager, first.id)
    promoted = services.promote(runner, manager, second.id)
    assert promoted.status == "confirmed"
    with pytest.raises(Conflict):
        services.promote(runner, manager, promoted.id)


def test_check_in_rules(runner, manager, attendee):
    event = make_event(runner, manager)
    registration = services.register(runner, attendee, registration_data(event.id))
    checked = services.check_in_by_qr(runner, manager, qr_payload(registration.ticket_number))
    assert checked.checked_in is True
    assert checked.checked_in_by == manager["id"]
    assert checked.checked_in_at is not None
    with pytest.raises(Conflict):
        services.check_in(runner, manager, registration.id)

    undone = services.undo_check_in(runner, manager, registration.id)
    assert undone.checked_in is False
    assert undone.checked_in_at is None
    with pytest.raises(Conflict):
        services.undo_check_in(runner, manager, registration.id)


def test_check_in_requires_confirmed(runner, manager, attendee):
    event = make_event(runner, manager, requires_approval=True)
    registration = services.register(runner, attendee, registration_data(event.id))
    with pytest.raises(Conflict):
        services.check_in(runner, manager, registration.id)


def test_attendee_cannot_manage(runner, manager, attendee):
    event = make_event(runner, manager)
    registration = services.register(runner, attendee, registration_data(event.id))
    with pytest.raises(PermissionDenied):
        services.check_in(runner, attendee, registration.id)


def test_payment_and_refunds(runner, manager, attendee):
    event = make_event(runner, manager)
    registration = services.register(runner, attendee, registration_data(event.id))
    failed = services.mark_payment_failed(runner, manager, registration.id)
    assert failed.payment_status == "failed"

    paid = services.pay(runner, attendee, registration.id, PaymentRequest(payment_method=PaymentMethod.credit_card))
    assert paid.payment_status == "paid"
    assert paid.transaction_id.startswith("TXN-")
    with pytest.raises(Conflict):
        services.pay(runner, attendee, registration.id, PaymentRequest(payment_method=PaymentMethod.paypal))

    partial = services.refund(
        runner, manager, registration.id, RefundRequest(reason="partial", full_refund=False, amount_cents=400)
    )
    assert partial.refunded_cents == 400
    assert partial.payment_status == "paid"
    with pytest.raises(ValidationFailed):
        services.refund(
            runner, manager, registration.id, RefundRequest(reason="too much", full_refund=False, amount_cents=10**6)
        )

    full = services.refund(runner, manager, registration.id, RefundRequest(reason="event moved"))
    assert full.refunded_cents == full.amount_cents
    assert full.payment_status == "refunded"
    with pytest.raises(Conflict):
        services.refund(runner, manager, registration.id, RefundRequest(reason="again"))


def test_cancelled_registration_cannot_pay(runner, manager, attendee):
    event = make_event(runner, manager)
    registration = services.register(runner, attendee, registration_data(event.id))
    services.cancel(runner, attendee, registration.id)
    with pytest.raises(Conflict):
        services.pay(runner, attendee, registration.id, PaymentRequest(payment_method=PaymentMethod.crypto))
    with pytest.raises(Conflict):
        services.cancel(runner, attendee, registration.id)


def test_update_registration_requotes(runner, manager, attendee):
    event = make_event(runner, manager, max_attendees=3)
    registration = services.register(runner, attendee, registration_data(event.id))
    updated = services.update_registration(
        runner,
        attendee,
        registration.id,
        RegistrationUpdate(seats=2, ticket_type="vip", dietary_restrictions="vegan"),
    )
    assert updated.seats == 2
    assert updated.ticket_type == "vip"
    assert updated.subtotal_cents == 15000
    assert updated.amount_cents == 16200
    assert updated.dietary_restrictions == "vegan"

    with pytest.raises(Conflict):
        services.update_registration(runner, attendee, registration.id, RegistrationUpdate(seats=4))


def test_bulk_operations_report_per_id(runner, manager, users):
    event = make_event(runner, manager)
    a = services.register(runner, users[0], registration_data(event.id))
    b = services.register(runner, users[1], registration_data(event.id))
    services.check_in(runner, manager, b.id)

    result = services.bulk_check_in(runner, manager, [a.id, b.id, 9999])
    assert result.succeeded == [a.id]
    assert set(result.failed) == {b.id, 9999}
    assert result.failed[9999] == "Registration not found"

    deleted = services.bulk_delete(runner, manager, [a.id, b.id])
    assert deleted.succeeded == [a.id, b.id]
    assert queries.list_registrations(runner, event_id=event.id) == []


def test_delete_registration_promotes_waitlist(runner, manager, users):
    event = make_event(runner, manager, max_attendees=1)
    first = services.register(runner, users[0], registration_data(event.id))
    second = services.register(runner, users[1], registration_data(event.id))
    services.delete_registration(runner, manager, first.id)
    assert services.get_registration_or_404(runner, second.id).status == "confirmed"


def test_fewer_seats_promotes_waitlist(runner, manager, users):
    event = make_event(runner, manager, max_attendees=3)
    holder = services.register(runner, users[0], registration_data(event.id, seats=3))
    queued = services.register(runner, users[1], registration_data(event.id))
    assert queued.status == "waitlisted"

    services.update_registration(runner, users[0], holder.id, RegistrationUpdate(seats=1))
    assert services.get_registration_or_404(runner, queued.id).status == "confirmed"
    assert services.get_event_or_404(runner, event.id).available_seats == 1


def test_more_capacity_promotes_waitlist(runner, manager, users):
    event = make_event(runner, manager, max_attendees=1)
    services.register(runner, users[0], registration_data(event.id))
    queued = services.register(runner, users[1], registration_data(event.id, seats=2))
    assert queued.status == "waitlisted"

    services.update_event(runner, manager, event.id, EventUpdate(max_attendees=5))
    assert services.get_registration_or_404(runner, queued.id).status == "confirmed"
    assert services.get_event_or_404(runner, event.id).available_seats == 2


def test_manager_scope_for_events(runner, manager, attendee):
    outsider = actor_for(make_user(runner, "outsider@eventhub.io", role="manager"))
    event = make_event(runner, manager)
    with pytest.raises(PermissionDenied):
        services.update_event(runner, outsider, event.id, EventUpdate(title="Hijacked"))
    with pytest.raises(PermissionDenied):
        services.get_accessible_registration(
            runner, outsider, services.register(runner, attendee, registration_data(event.id)).id
        )
    assert services.managed_events(runner, outsider) == []


def test_event_update_validation(runner, manager, attendee):
    event = make_event(runner, manager, max_attendees=5)
    services.register(runner, attendee, registration_data(event.id, seats=3))
    with pytest.raises(ValidationFailed):
        services.update_event(runner, manager, event.id, EventUpdate(max_attendees=2))
    updated = services.update_event(runner, manager, event.id, EventUpdate(title="Renamed", tags=["A", "b", "a"]))
    assert updated.title == "Renamed"
    assert updated.tags == ["a", "b"]


def test_event_lifecycle_and_duplicate(runner, manager):
    event = make_event(runner, manager, publish=False)
    with pytest.raises(Conflict):
        services.complete_event(runner, manager, event.id)
    published = services.publish_event(runner, manager, event.id)
    assert published.status == "published"
    copy = services.duplicate_event(runner, manager, event.id)
    assert copy.title == "PyCon Local (Copy)"
    assert copy.status == "draft"
    assert copy.tags == published.tags
    cancelled = services.cancel_event(runner, manager, event.id)
    assert cancelled.status == "cancelled"
    with pytest.raises(Conflict):
        services.publish_event(runner, manager, event.id)


def test_authentication_and_profile(runner, admin):
    user = make_user(runner, "Mixed.Case@EventHub.io")
    assert user.email == "mixed.case@eventhub.io"
    assert services.authenticate(runner, "mixed.case@eventhub.io", PASSWORD).last_login is not None
    with pytest.raises(NotAuthenticated):
        services.authenticate(runner, "mixed.case@eventhub.io", "wrong-password")

    services.change_password(runner, user.id, PasswordChange(current_password=PASSWORD, new_password="another-pass"))
    assert services.authenticate(runner, user.email, "another-pass").id == user.id
    with pytest.raises(ValidationFailed):
        services.change_password(runner, user.id, PasswordChange(current_password=PASSWORD, new_password="x" * 8))

    prefs = services.update_preferences(runner, user.id, PreferencesUpdate(theme="dark"))
    assert prefs.preferences.theme == "dark"
    assert prefs.preferences.email_notifications is True

    services.set_user_active(runner, admin, user.id, False)
    with pytest.raises(PermissionDenied):
        services.authenticate(runner, user.email, "another-pass")


def test_admin_cannot_lock_themselves_out(runner, admin):
    with pytest.raises(ValidationFailed):
        services.admin_update_user(runner, admin, admin["id"], UserUpdate(is_active=False))
    with pytest.raises(ValidationFailed):
        services.delete_user(runner, admin, admin["id"])


def test_duplicate_email_conflicts(runner):
    make_user(runner, "dup@eventhub.io")
    with pytest.raises(Conflict):
        make_user(runner, "DUP@eventhub.io")
