# booking_core/scheduling/services.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.utils import timezone

from booking_core.appointments.selectors import booked_start_times
from booking_core.locations.selectors import effective_working_hours
from booking_core.scheduling.availability import AvailabilityCalculator, get_zone
from booking_core.tenants.models import Tenant


class AvailabilityService:
    """
    Read-only glue between the store and the pure calculator.
    Two visitors can be shown the same open slot; the appointment constraints,
    not this service, stop the double-book.
    """

    @staticmethod
    def calculator_for(
        *,
        tenant: Tenant,
        location_id: Optional[UUID | str] = None,
        agent_id: Optional[UUID | str] = None,
        target_date: Optional[date] = None,
        now: Optional[datetime] = None,
        with_bookings: bool = True,
    ) -> AvailabilityCalculator:
        now = now or timezone.now()
        working_hours = effective_working_hours(tenant=tenant, location_id=location_id, agent_id=agent_id)

        booked: list[datetime] = []
        if with_bookings:
            until = now + timedelta(days=int(getattr(settings, "BOOKING_HORIZON_DAYS", 14)))
            if target_date is not None:
                day_end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=get_zone(tenant.timezone))
                until = max(until, day_end)
            booked = booked_start_times(tenant=tenant, start=now, end=until)

        return AvailabilityCalculator(
            working_hours=working_hours,
            timezone_name=tenant.timezone,
            booked_starts=booked,
            now=now,
        )
