# booking_core/appointments/selectors.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from booking_core.appointments.models import ACTIVE_STATUSES, Appointment, AppointmentStatus
from booking_core.patients.models import Patient
from booking_core.tenants.models import Tenant


def booked_start_times(*, tenant: Tenant, start: datetime, end: datetime) -> list[datetime]:
    """Start instants of active appointments in [start, end]."""
    return list(
        Appointment.objects.filter(
            tenant=tenant,
            status__in=ACTIVE_STATUSES,
            start_time__gte=start,
            start_time__lte=end,
        ).values_list("start_time", flat=True)
    )


def upcoming_for_patient(*, tenant: Tenant, patient: Patient, now: datetime) -> QuerySet[Appointment]:
    return Appointment.objects.filter(
        tenant=tenant,
        patient=patient,
        status__in=ACTIVE_STATUSES,
        start_time__gt=now,
    ).order_by("start_time")


def patient_has_active_on_day(
    *,
    tenant: Tenant,
    patient: Patient,
    local_date: date,
    exclude_id: Optional[UUID] = None,
) -> bool:
    qs = Appointment.objects.filter(
        tenant=tenant,
        patient=patient,
        local_date=local_date,
        status__in=ACTIVE_STATUSES,
    )
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


def slot_is_taken(*, tenant: Tenant, start: datetime, end: datetime, exclude_id: Optional[UUID] = None) -> bool:
    """Any active appointment of the clinic overlapping [start, end)."""
    qs = Appointment.objects.filter(
        tenant=tenant,
        status__in=ACTIVE_STATUSES,
        start_time__lt=end,
        end_time__gt=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


REMINDER_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


def starting_between(*, start: datetime, end: datetime) -> QuerySet[Appointment]:
    """Scheduled or confirmed appointments of every clinic starting in [start, end]."""
    return (
        Appointment.objects.select_related("tenant", "patient")
        .filter(status__in=REMINDER_STATUSES, start_time__gte=start, start_time__lte=end)
        .order_by("start_time")
    )
