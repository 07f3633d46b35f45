# conftest.py
from datetime import datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from booking_core.appointments.models import Appointment, AppointmentStatus
from booking_core.locations.models import Agent, Location
from booking_core.patients.models import Patient
from booking_core.tenants import signing
from booking_core.tenants.models import PlanTier, Tenant

# America/Bogota is UTC-5 all year (no DST), which keeps the arithmetic in tests obvious.
CLINIC_TZ = "America/Bogota"

WEEKDAY_HOURS = {
    day: {"open": "09:00", "close": "17:00"}
    for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
}


@pytest.fixture
def now():
    # Monday 2025-06-09, 08:00 clinic time
    return datetime(2025, 6, 9, 13, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def frozen_now(monkeypatch, now):
    """Pin django.utils.timezone.now() for code paths that don't take ``now``."""
    monkeypatch.setattr(timezone, "now", lambda: now)
    return now


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(
        name="Bright Smiles Dental",
        slug="bright-smiles",
        timezone=CLINIC_TZ,
        working_hours=WEEKDAY_HOURS,
        plan=PlanTier.STARTER,
        phone="+1 555 010 0000",
        notification_emails=["frontdesk@brightsmiles.test"],
    )


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(
        name="Other Clinic",
        slug="other-clinic",
        timezone=CLINIC_TZ,
        working_hours=WEEKDAY_HOURS,
    )


@pytest.fixture
def location(db, tenant):
    return Location.objects.create(
        tenant=tenant,
        name="Downtown",
        working_hours={"Monday": {"open": "12:00", "close": "14:00"}},
    )


@pytest.fixture
def agent(db, tenant, location):
    return Agent.objects.create(tenant=tenant, name="Front desk bot", location=location)


@pytest.fixture
def patient(db, tenant):
    return Patient.objects.create(
        tenant=tenant,
        full_name="Ana Diaz",
        email="ana.diaz@example.com",
        phone="+1 (555) 123-4567",
    )


@pytest.fixture
def make_appointment(db, tenant, patient):
    def _make(*, start, minutes=30, status=AppointmentStatus.SCHEDULED, for_patient=None, for_tenant=None):
        owner = for_tenant or tenant
        return Appointment.objects.create(
            tenant=owner,
            patient=for_patient or patient,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            local_date=start.astimezone(ZoneInfo(owner.timezone)).date(),
            status=status,
        )

    return _make


@pytest.fixture
def signature(tenant):
    return signing.issue(tenant.slug)


@pytest.fixture
def api_client():
    return APIClient()
