# booking_core/embed/tests/test_embed_api.py
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from booking_core.appointments.models import Appointment, AppointmentStatus
from booking_core.conversations.guard import UNCLEAR_MESSAGE
from booking_core.tenants import signing

pytestmark = pytest.mark.django_db

UTC = dt_timezone.utc

SLOTS_URL = "/api/v1/embed/slots/"
BOOKINGS_URL = "/api/v1/embed/bookings/"
VERIFY_URL = "/api/v1/embed/verify-patient/"
MODIFY_CANCEL_URL = "/api/v1/embed/modify-cancel/"
CHAT_GUARD_URL = "/api/v1/embed/chat/guard/"


def embed_params(tenant, sig=None, **extra):
    return {
        "clinic_slug": tenant.slug,
        "sig": sig if sig is not None else signing.issue(tenant.slug),
        **extra,
    }


# -------------------------
# Signature / tenancy
# -------------------------
@pytest.mark.parametrize("url", [BOOKINGS_URL, VERIFY_URL, MODIFY_CANCEL_URL, CHAT_GUARD_URL])
def test_post_endpoints_reject_bad_signature_first(api_client, tenant, url):
    # also missing every other field: signature is still what fails
    r = api_client.post(url, {"clinic_slug": tenant.slug, "sig": "nope"}, format="json")

    assert r.status_code == 403, r.data
    assert r.data["error"]["code"] == "permission_denied"
    assert r.data["error"]["request_id"]


def test_slots_require_signature(api_client, tenant):
    r = api_client.get(SLOTS_URL, {"clinic_slug": tenant.slug})
    assert r.status_code == 403


def test_signature_of_one_clinic_cannot_read_another(api_client, tenant, other_tenant, signature):
    r = api_client.get(SLOTS_URL, {"clinic_slug": other_tenant.slug, "sig": signature})
    assert r.status_code == 403


def test_signed_unknown_clinic_is_404(api_client, db):
    r = api_client.get(SLOTS_URL, {"clinic_slug": "gone", "sig": signing.issue("gone")})
    assert r.status_code == 404
    assert r.data["error"]["code"] == "not_found"


def test_request_id_header_is_echoed(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant), HTTP_X_REQUEST_ID="proxy-req-0001")
    assert r["X-Request-Id"] == "proxy-req-0001"


def test_cors_allows_any_origin_on_embed(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant), HTTP_ORIGIN="https://brightsmiles.example")
    assert r["Access-Control-Allow-Origin"] == "*"


# -------------------------
# Slots
# -------------------------
def test_next_slots_with_today_flag(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant, count=3))

    assert r.status_code == 200, r.data
    assert r.data["has_slots_today"] is True
    assert [s["label"] for s in r.data["slots"]] == ["Today 9:00 AM", "Today 9:30 AM", "Today 10:00 AM"]
    assert r.data["slots"][0]["start"] == "2025-06-09T14:00:00Z"


def test_default_count_is_twelve(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant))
    assert len(r.data["slots"]) == 12


def test_slots_for_a_date(api_client, tenant, frozen_now, make_appointment):
    make_appointment(start=datetime(2025, 6, 16, 14, 0, tzinfo=UTC))

    r = api_client.get(SLOTS_URL, embed_params(tenant, date="2025-06-16"))

    assert r.status_code == 200
    assert "has_slots_today" not in r.data
    labels = [s["label"] for s in r.data["slots"]]
    assert labels[0] == "9:30 AM"
    assert labels[-1] == "4:30 PM"
    assert len(labels) == 15


def test_days_mode(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant, days="1"))

    assert r.data["slots"] == []
    assert [d["date"] for d in r.data["working_days"]] == [
        "2025-06-09",
        "2025-06-10",
        "2025-06-11",
        "2025-06-12",
        "2025-06-13",
    ]


def test_location_slots(api_client, tenant, location, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant, location=str(location.id), date="2025-06-09"))
    assert [s["label"] for s in r.data["slots"]] == ["12:00 PM", "12:30 PM", "1:00 PM", "1:30 PM"]


def test_bad_date_is_validation_error(api_client, tenant, frozen_now):
    r = api_client.get(SLOTS_URL, embed_params(tenant, date="June 16"))
    assert r.status_code == 400
    assert r.data["error"]["code"] == "validation_error"


# -------------------------
# Bookings
# -------------------------
def _booking_payload(tenant, **overrides):
    payload = embed_params(
        tenant,
        name="Ana Diaz",
        email="ana.diaz@example.com",
        phone="+1 555 123 4567",
        start_time="2025-06-10T15:00:00Z",
        end_time="2025-06-10T15:30:00Z",
    )
    payload.update(overrides)
    return payload


def test_create_booking(api_client, tenant, frozen_now):
    r = api_client.post(BOOKINGS_URL, _booking_payload(tenant), format="json")

    assert r.status_code == 201, r.data
    assert r.data["ok"] is True
    assert r.data["appointment"]["status"] == "scheduled"
    appt = Appointment.objects.get(id=r.data["appointment"]["id"])
    assert appt.tenant_id == tenant.id


def test_second_booking_same_day(api_client, tenant, patient, make_appointment, frozen_now):
    make_appointment(start=datetime(2025, 6, 10, 14, 0, tzinfo=UTC))

    r = api_client.post(BOOKINGS_URL, _booking_payload(tenant), format="json")

    assert r.status_code == 400
    assert r.data["error"]["code"] == "already_booked_today"
    assert "one appointment per day" in r.data["error"]["message"]


def test_booking_time_without_offset_is_clinic_local(api_client, tenant, frozen_now):
    # 10:00 in Bogota is 15:00 UTC
    payload = _booking_payload(tenant, start_time="2025-06-10T10:00:00", end_time="2025-06-10T10:30:00")

    r = api_client.post(BOOKINGS_URL, payload, format="json")

    assert r.status_code == 201, r.data
    appt = Appointment.objects.get(id=r.data["appointment"]["id"])
    assert appt.start_time == datetime(2025, 6, 10, 15, 0, tzinfo=UTC)


def test_booking_between_slots_is_rejected(api_client, tenant, frozen_now):
    payload = _booking_payload(tenant, start_time="2025-06-10T15:15:00Z", end_time="2025-06-10T15:45:00Z")

    r = api_client.post(BOOKINGS_URL, payload, format="json")

    assert r.status_code == 400
    assert r.data["error"]["code"] == "not_a_slot"
    assert not Appointment.objects.exists()


def test_booking_requires_times(api_client, tenant, frozen_now):
    payload = _booking_payload(tenant)
    del payload["start_time"]

    r = api_client.post(BOOKINGS_URL, payload, format="json")
    assert r.status_code == 400
    assert "start_time" in r.data["error"]["details"]


def test_booking_with_disposable_email(api_client, tenant, frozen_now):
    r = api_client.post(BOOKINGS_URL, _booking_payload(tenant, email="x@mailinator.com"), format="json")
    assert r.status_code == 400
    assert r.data["error"]["message"] == "Please use a permanent email address."


def test_booking_on_expired_plan(api_client, tenant, frozen_now):
    tenant.plan_expires_at = frozen_now - timedelta(days=1)
    tenant.save(update_fields=["plan_expires_at"])

    r = api_client.post(BOOKINGS_URL, _booking_payload(tenant), format="json")
    assert r.status_code == 403
    assert r.data["error"]["code"] == "plan_expired"


def test_booking_taken_slot(api_client, tenant, frozen_now, make_appointment):
    from booking_core.patients.models import Patient

    other = Patient.objects.create(tenant=tenant, full_name="Bo", email="bo@example.org")
    make_appointment(start=datetime(2025, 6, 10, 15, 0, tzinfo=UTC), for_patient=other)

    r = api_client.post(BOOKINGS_URL, _booking_payload(tenant), format="json")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "slot_taken"


# -------------------------
# Verify
# -------------------------
def test_verify_known_patient(api_client, tenant, patient, make_appointment, frozen_now):
    appt = make_appointment(start=datetime(2025, 6, 10, 15, 0, tzinfo=UTC))

    r = api_client.post(VERIFY_URL, embed_params(tenant, phone="+1 555 123 4567"), format="json")

    assert r.status_code == 200, r.data
    assert r.data["ok"] is True
    assert r.data["patient_name"] == "Ana Diaz"
    assert [a["id"] for a in r.data["appointments"]] == [str(appt.id)]


def test_verify_unknown_patient_is_vague(api_client, tenant, frozen_now):
    r = api_client.post(VERIFY_URL, embed_params(tenant, email="ghost@example.org"), format="json")

    assert r.status_code == 200
    assert r.data == {"ok": False, "message": "No appointment found for that email or number"}


def test_verify_needs_contact(api_client, tenant, frozen_now):
    r = api_client.post(VERIFY_URL, embed_params(tenant), format="json")
    assert r.status_code == 400


# -------------------------
# Modify / cancel
# -------------------------
def test_cancel(api_client, tenant, patient, make_appointment, frozen_now):
    appt = make_appointment(start=datetime(2025, 6, 10, 15, 0, tzinfo=UTC))

    r = api_client.post(MODIFY_CANCEL_URL, embed_params(tenant, action="cancel", email=patient.email), format="json")

    assert r.status_code == 200, r.data
    assert r.data["message"] == "Appointment cancelled."
    appt.refresh_from_db()
    assert appt.status == AppointmentStatus.CANCELLED


def test_cancel_within_ninety_minutes(api_client, tenant, patient, make_appointment, frozen_now):
    make_appointment(start=frozen_now + timedelta(minutes=90))

    r = api_client.post(MODIFY_CANCEL_URL, embed_params(tenant, action="cancel", email=patient.email), format="json")

    assert r.status_code == 400
    assert r.data["error"]["code"] == "within_cutoff"
    assert r.data["error"]["message"] == "Please call the clinic directly for urgent changes."


def test_modify(api_client, tenant, patient, make_appointment, frozen_now):
    appt = make_appointment(start=datetime(2025, 6, 10, 15, 0, tzinfo=UTC))

    r = api_client.post(
        MODIFY_CANCEL_URL,
        embed_params(
            tenant,
            action="modify",
            email=patient.email,
            new_start_time="2025-06-11T16:00:00Z",
            new_end_time="2025-06-11T16:30:00Z",
        ),
        format="json",
    )

    assert r.status_code == 200, r.data
    assert r.data["message"] == "Appointment rescheduled."
    appt.refresh_from_db()
    assert appt.start_time == datetime(2025, 6, 11, 16, 0, tzinfo=UTC)


def test_modify_cancel_unknown_patient(api_client, tenant, frozen_now):
    r = api_client.post(MODIFY_CANCEL_URL, embed_params(tenant, action="cancel", email="ghost@example.org"), format="json")
    assert r.status_code == 404


def test_modify_cancel_no_upcoming(api_client, tenant, patient, frozen_now):
    r = api_client.post(MODIFY_CANCEL_URL, embed_params(tenant, action="cancel", email=patient.email), format="json")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "no_upcoming_appointment"


def test_modify_cancel_invalid_action(api_client, tenant, patient, frozen_now):
    r = api_client.post(MODIFY_CANCEL_URL, embed_params(tenant, action="delete", email=patient.email), format="json")
    assert r.status_code == 400
    assert r.data["error"]["code"] == "validation_error"


# -------------------------
# Chat guard
# -------------------------
def test_chat_guard_accepts_and_forwards(api_client, tenant, frozen_now):
    r = api_client.post(
        CHAT_GUARD_URL,
        embed_params(tenant, messages=[{"role": "user", "content": "Can I book a cleaning?"}]),
        format="json",
    )

    assert r.status_code == 200, r.data
    assert r.data["reject"] is False
    assert r.data["forward"] is True


def test_chat_guard_round_trips_counter(api_client, tenant, frozen_now):
    r = api_client.post(
        CHAT_GUARD_URL,
        embed_params(tenant, messages=[{"role": "user", "content": "aaaaaaaaaa"}], failed_unclear_attempts=1),
        format="json",
    )

    assert r.data["reject"] is True
    assert r.data["message"] == UNCLEAR_MESSAGE
    assert r.data["failed_unclear_attempts"] == 2


def test_chat_guard_on_expired_plan(api_client, tenant, frozen_now):
    tenant.plan_expires_at = frozen_now - timedelta(minutes=1)
    tenant.save(update_fields=["plan_expires_at"])

    r = api_client.post(
        CHAT_GUARD_URL,
        embed_params(tenant, messages=[{"role": "user", "content": "hello"}]),
        format="json",
    )
    assert r.status_code == 403
