# booking_core/notifications/tests/test_fanout.py
import threading
import time
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from booking_core.appointments.services import BookingService
from booking_core.common.events import publish
from booking_core.notifications import background
from booking_core.notifications.channels import DispatchResult, EmailChannel, WhatsAppChannel
from booking_core.notifications.models import NotificationDispatch
from booking_core.notifications.services import NotificationFanout
from booking_core.tenants.models import PlanTier

pytestmark = pytest.mark.django_db

UTC = dt_timezone.utc
TUESDAY_10 = datetime(2025, 6, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def outbox(monkeypatch):
    sent = {"email": [], "whatsapp": []}

    def fake_email(*, to, subject, html):
        sent["email"].append({"to": list(to), "subject": subject, "html": html})
        return DispatchResult(ok=True)

    def fake_whatsapp(*, to, body):
        sent["whatsapp"].append({"to": to, "body": body})
        return DispatchResult(ok=True)

    monkeypatch.setattr(EmailChannel, "send", staticmethod(fake_email))
    monkeypatch.setattr(WhatsAppChannel, "send", staticmethod(fake_whatsapp))
    return sent


def _book(tenant, now, **contact):
    return BookingService.create_booking(
        tenant=tenant,
        full_name="Ana Diaz",
        email=contact.get("email", "ana.diaz@example.com"),
        phone=contact.get("phone", "+1 555 123 4567"),
        start_time=TUESDAY_10,
        end_time=TUESDAY_10 + timedelta(minutes=30),
        now=now,
    )


def test_created_notifies_patient_and_clinic_by_email(tenant, now, outbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        appt = _book(tenant, now)

    assert [m["to"] for m in outbox["email"]] == [["ana.diaz@example.com"], ["frontdesk@brightsmiles.test"]]
    assert outbox["email"][0]["subject"] == "Appointment confirmed - Bright Smiles Dental"
    assert "June 10, 2025 at 10:00 AM" in outbox["email"][0]["html"]
    # starter plan: no WhatsApp
    assert outbox["whatsapp"] == []

    dispatches = NotificationDispatch.objects.filter(appointment=appt)
    assert dispatches.count() == 2
    assert all(d.ok for d in dispatches)


def test_nothing_is_sent_before_commit(tenant, now, outbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        _book(tenant, now)

    assert len(callbacks) == 1
    assert outbox["email"] == []


def test_elite_plan_adds_whatsapp(tenant, now, outbox, django_capture_on_commit_callbacks):
    tenant.plan = PlanTier.ELITE
    tenant.whatsapp_phone = "+1 555 999 0000"
    tenant.save(update_fields=["plan", "whatsapp_phone"])

    with django_capture_on_commit_callbacks(execute=True):
        _book(tenant, now)

    assert [m["to"] for m in outbox["whatsapp"]] == ["+1 555 999 0000", "+1 555 123 4567"]
    assert outbox["whatsapp"][0]["body"].startswith("New appointment at Bright Smiles Dental: Ana Diaz")


def test_patient_without_usable_phone_gets_no_whatsapp(tenant, now, outbox, django_capture_on_commit_callbacks):
    tenant.plan = PlanTier.ELITE
    tenant.save(update_fields=["plan"])

    with django_capture_on_commit_callbacks(execute=True):
        _book(tenant, now, phone="")

    # clinic still hears about it
    assert [m["to"] for m in outbox["whatsapp"]] == ["+1 555 010 0000"]


def test_unconfigured_channels_are_recorded_not_raised(tenant, now, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        appt = _book(tenant, now)

    dispatches = list(NotificationDispatch.objects.filter(appointment=appt))
    assert len(dispatches) == 2
    assert {d.error for d in dispatches} == {"not configured"}
    assert not any(d.ok for d in dispatches)


def test_failure_inside_fanout_never_reaches_the_caller(tenant, now, monkeypatch, django_capture_on_commit_callbacks):
    def boom(**kwargs):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(NotificationFanout, "appointment_created", staticmethod(boom))

    with django_capture_on_commit_callbacks(execute=True):
        appt = _book(tenant, now)

    appt.refresh_from_db()
    assert appt.status == "scheduled"


def test_cancel_emails_the_patient(tenant, patient, make_appointment, now, outbox, django_capture_on_commit_callbacks):
    make_appointment(start=TUESDAY_10)

    with django_capture_on_commit_callbacks(execute=True):
        BookingService.modify_or_cancel(tenant=tenant, action="cancel", email=patient.email, now=now)

    assert len(outbox["email"]) == 1
    assert outbox["email"][0]["subject"] == "Appointment cancelled - Bright Smiles Dental"
    assert "has been cancelled" in outbox["email"][0]["html"]


def test_reschedule_mentions_old_and_new_time(tenant, patient, make_appointment, now, outbox, django_capture_on_commit_callbacks):
    make_appointment(start=TUESDAY_10)
    new_start = datetime(2025, 6, 12, 19, 0, tzinfo=UTC)

    with django_capture_on_commit_callbacks(execute=True):
        BookingService.modify_or_cancel(
            tenant=tenant,
            action="modify",
            email=patient.email,
            new_start_time=new_start,
            new_end_time=new_start + timedelta(minutes=30),
            now=now,
        )

    html = outbox["email"][0]["html"]
    assert "June 10, 2025 at 10:00 AM" in html
    assert "June 12, 2025 at 2:00 PM" in html


def test_patient_name_is_escaped_in_email(tenant, now, outbox, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        BookingService.create_booking(
            tenant=tenant,
            full_name="<script>alert(1)</script>",
            email="ana.diaz@example.com",
            start_time=TUESDAY_10,
            end_time=TUESDAY_10 + timedelta(minutes=30),
            now=now,
        )

    html = outbox["email"][0]["html"]
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_publish_with_unknown_appointment_is_logged(caplog, db):
    publish("appointment.created", {"tenant_id": "x", "appointment_id": "00000000-0000-0000-0000-000000000000"})
    assert "notification fan-out failed" in caplog.text


def test_slow_provider_does_not_hold_up_the_booking(tenant, now, settings, monkeypatch, django_capture_on_commit_callbacks):
    settings.NOTIFICATIONS_ASYNC = True
    release = threading.Event()
    delivered = []

    def slow_fanout(*, appointment_id):
        release.wait(5)
        delivered.append((appointment_id, threading.current_thread().name))

    monkeypatch.setattr(NotificationFanout, "appointment_created", staticmethod(slow_fanout))

    futures = []
    real_submit = background.submit

    def tracking_submit(fn, **kwargs):
        future = real_submit(fn, **kwargs)
        futures.append(future)
        return future

    monkeypatch.setattr(background, "submit", tracking_submit)

    started = time.monotonic()
    with django_capture_on_commit_callbacks(execute=True):
        appt = _book(tenant, now)
    elapsed = time.monotonic() - started

    assert elapsed < 1
    assert delivered == []

    release.set()
    futures[0].result(timeout=5)
    assert delivered[0][0] == str(appt.id)
    assert delivered[0][1].startswith("notifications")
