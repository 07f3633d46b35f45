# booking_core/appointments/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from booking_core.appointments.models import Appointment, AppointmentStatus
from booking_core.appointments.selectors import (
    patient_has_active_on_day,
    slot_is_taken,
    upcoming_for_patient,
)
from booking_core.audit.services import AuditService
from booking_core.common.api.exceptions import (
    AlreadyBookedToday,
    BookingRuleError,
    NoUpcomingAppointment,
    NotASlot,
    OutsideWorkingHours,
    SlotTaken,
    WithinCutoff,
)
from booking_core.common.events import publish
from booking_core.patients.models import Patient
from booking_core.patients.selectors import find_patient_by_contact
from booking_core.patients.services import PatientService
from booking_core.patients.validators import validate_contact
from booking_core.scheduling.availability import AvailabilityCalculator
from booking_core.scheduling.services import AvailabilityService
from booking_core.tenants.models import Tenant
from booking_core.tenants.services import TenantPlanService

logger = logging.getLogger(__name__)

ACTION_MODIFY = "modify"
ACTION_CANCEL = "cancel"
ACTIONS = (ACTION_MODIFY, ACTION_CANCEL)

PATIENT_NOT_FOUND_MSG = "No appointment found for that email or number"


@dataclass(frozen=True)
class PatientLookup:
    found: bool
    patient: Optional[Patient] = None
    appointments: list[Appointment] = field(default_factory=list)


class BookingService:
    """
    Booking write-model for the public widget (create / verify / modify / cancel).

    Notes:
    - Daily uniqueness and one-booking-per-slot are checked up front for a
      friendly message AND enforced by unique constraints on Appointment, so two
      concurrent requests cannot both win. An IntegrityError is mapped back to
      the same visitor-facing error.
    - Notification fan-out is published on commit; its outcome never changes
      the result of the mutation.
    - Nothing here retries: store failures propagate as a generic 500.
    """

    # -------------------------
    # Internal helpers
    # -------------------------
    @staticmethod
    def _cutoff() -> timedelta:
        return timedelta(minutes=int(getattr(settings, "BOOKING_CUTOFF_MINUTES", 120)))

    @staticmethod
    def _validate_window(
        calc: AvailabilityCalculator,
        *,
        start: datetime,
        end: datetime,
        now: datetime,
    ) -> None:
        if start >= end:
            raise ValidationError({"detail": "The end time must be after the start time."})
        if start <= now:
            raise BookingRuleError("That time has already passed. Please pick an upcoming slot.", code="in_the_past")
        if not calc.fits_working_hours(start, end):
            raise OutsideWorkingHours()
        if not calc.is_slot(start, end):
            # the start-time constraint only rules out overlaps between aligned units
            raise NotASlot()

    @staticmethod
    def _conflict_for(
        *,
        tenant: Tenant,
        patient: Patient,
        local_date,
        start: datetime,
        end: datetime,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[BookingRuleError]:
        if patient_has_active_on_day(tenant=tenant, patient=patient, local_date=local_date, exclude_id=exclude_id):
            return AlreadyBookedToday()
        if slot_is_taken(tenant=tenant, start=start, end=end, exclude_id=exclude_id):
            return SlotTaken()
        return None

    @staticmethod
    def _lock_patient(patient: Patient) -> None:
        # serializes concurrent bookings of the same patient on backends with row locks
        Patient.objects.select_for_update().filter(id=patient.id).first()

    @staticmethod
    def _publish_on_commit(event_name: str, appointment: Appointment, **extra) -> None:
        payload = {
            "tenant_id": str(appointment.tenant_id),
            "appointment_id": str(appointment.id),
            **extra,
        }
        transaction.on_commit(lambda: publish(event_name, payload))

    @staticmethod
    def _find_patient_or_404(*, tenant: Tenant, email: str, phone: str) -> Patient:
        patient = find_patient_by_contact(tenant=tenant, email=email, phone=phone)
        if patient is None:
            # deliberately vague: do not say which part did not match
            raise NotFound(PATIENT_NOT_FOUND_MSG)
        return patient

    # -------------------------
    # Create
    # -------------------------
    @staticmethod
    @transaction.atomic
    def create_booking(
        *,
        tenant: Tenant,
        start_time: datetime,
        end_time: datetime,
        full_name: str = "",
        email: str = "",
        phone: str = "",
        reason: str = "",
        location_id: Optional[UUID | str] = None,
        agent_id: Optional[UUID | str] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        now = now or timezone.now()

        TenantPlanService.require_active_plan(tenant=tenant, at=now)
        email, phone = validate_contact(email=email, phone=phone)

        calc = AvailabilityService.calculator_for(
            tenant=tenant,
            location_id=location_id,
            agent_id=agent_id,
            now=now,
            with_bookings=False,
        )
        BookingService._validate_window(calc, start=start_time, end=end_time, now=now)
        local_date = calc.local_date(start_time)

        patient = PatientService.resolve_or_create(tenant=tenant, full_name=full_name, email=email, phone=phone)
        BookingService._lock_patient(patient)

        conflict = BookingService._conflict_for(
            tenant=tenant, patient=patient, local_date=local_date, start=start_time, end=end_time
        )
        if conflict is not None:
            logger.info("booking rejected tenant=%s patient=%s code=%s", tenant.slug, patient.id, conflict.default_code)
            raise conflict

        try:
            with transaction.atomic():
                appt = Appointment.objects.create(
                    tenant=tenant,
                    patient=patient,
                    start_time=start_time,
                    end_time=end_time,
                    local_date=local_date,
                    status=AppointmentStatus.SCHEDULED,
                    reason=(reason or "").strip(),
                )
        except IntegrityError:
            # lost a race against a concurrent request for the same day or slot
            conflict = BookingService._conflict_for(
                tenant=tenant, patient=patient, local_date=local_date, start=start_time, end=end_time
            )
            if conflict is None:
                raise
            logger.info("booking race lost tenant=%s patient=%s code=%s", tenant.slug, patient.id, conflict.default_code)
            raise conflict

        AuditService.log(
            event_code="appointment.created",
            entity_type="Appointment",
            entity_id=appt.id,
            tenant_id=tenant.id,
            metadata={"start_time": appt.start_time.isoformat(), "patient_id": str(patient.id)},
        )
        BookingService._publish_on_commit("appointment.created", appt)

        logger.info("booking created tenant=%s appointment=%s start=%s", tenant.slug, appt.id, appt.start_time.isoformat())
        return appt

    # -------------------------
    # Verify (read-only)
    # -------------------------
    @staticmethod
    def verify_patient(
        *,
        tenant: Tenant,
        email: str = "",
        phone: str = "",
        now: Optional[datetime] = None,
    ) -> PatientLookup:
        now = now or timezone.now()

        TenantPlanService.require_active_plan(tenant=tenant, at=now)
        email, phone = validate_contact(email=email, phone=phone)

        patient = find_patient_by_contact(tenant=tenant, email=email, phone=phone)
        if patient is None:
            return PatientLookup(found=False)

        appointments = list(upcoming_for_patient(tenant=tenant, patient=patient, now=now))
        return PatientLookup(found=True, patient=patient, appointments=appointments)

    # -------------------------
    # Modify / cancel
    # -------------------------
    @staticmethod
    @transaction.atomic
    def modify_or_cancel(
        *,
        tenant: Tenant,
        action: str,
        email: str = "",
        phone: str = "",
        new_start_time: Optional[datetime] = None,
        new_end_time: Optional[datetime] = None,
        location_id: Optional[UUID | str] = None,
        agent_id: Optional[UUID | str] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        now = now or timezone.now()

        if action not in ACTIONS:
            raise ValidationError({"action": f"Invalid action. Allowed: {list(ACTIONS)}"})

        TenantPlanService.require_active_plan(tenant=tenant, at=now)

        email = (email or "").strip()
        phone = (phone or "").strip()
        if not email and not phone:
            raise ValidationError({"detail": "Please share your email or WhatsApp number."})

        patient = BookingService._find_patient_or_404(tenant=tenant, email=email, phone=phone)

        appt = (
            upcoming_for_patient(tenant=tenant, patient=patient, now=now)
            .select_for_update()
            .first()
        )
        if appt is None:
            raise NoUpcomingAppointment()

        # same rule for both actions
        if appt.start_time - now < BookingService._cutoff():
            logger.info("modify/cancel within cutoff tenant=%s appointment=%s", tenant.slug, appt.id)
            raise WithinCutoff()

        if action == ACTION_CANCEL:
            return BookingService._cancel(tenant=tenant, appt=appt)

        return BookingService._reschedule(
            tenant=tenant,
            appt=appt,
            new_start_time=new_start_time,
            new_end_time=new_end_time,
            location_id=location_id,
            agent_id=agent_id,
            now=now,
        )

    @staticmethod
    def _cancel(*, tenant: Tenant, appt: Appointment) -> Appointment:
        if not appt.can_transition_to(AppointmentStatus.CANCELLED):
            raise BookingRuleError("This appointment can no longer be cancelled.", code="invalid_transition")

        appt.status = AppointmentStatus.CANCELLED
        appt.save(update_fields=["status", "updated_at"])

        AuditService.log(
            event_code="appointment.cancelled",
            entity_type="Appointment",
            entity_id=appt.id,
            tenant_id=tenant.id,
            metadata={"start_time": appt.start_time.isoformat()},
        )
        BookingService._publish_on_commit("appointment.cancelled", appt)

        logger.info("booking cancelled tenant=%s appointment=%s", tenant.slug, appt.id)
        return appt

    @staticmethod
    def _reschedule(
        *,
        tenant: Tenant,
        appt: Appointment,
        new_start_time: Optional[datetime],
        new_end_time: Optional[datetime],
        location_id,
        agent_id,
        now: datetime,
    ) -> Appointment:
        if new_start_time is None or new_end_time is None:
            raise ValidationError({"detail": "new_start_time and new_end_time are required to modify."})

        calc = AvailabilityService.calculator_for(
            tenant=tenant,
            location_id=location_id,
            agent_id=agent_id,
            now=now,
            with_bookings=False,
        )
        BookingService._validate_window(calc, start=new_start_time, end=new_end_time, now=now)
        local_date = calc.local_date(new_start_time)

        conflict = BookingService._conflict_for(
            tenant=tenant,
            patient=appt.patient,
            local_date=local_date,
            start=new_start_time,
            end=new_end_time,
            exclude_id=appt.id,
        )
        if conflict is not None:
            raise conflict

        previous_start = appt.start_time
        appt.start_time = new_start_time
        appt.end_time = new_end_time
        appt.local_date = local_date

        try:
            with transaction.atomic():
                appt.save(update_fields=["start_time", "end_time", "local_date", "updated_at"])
        except IntegrityError:
            conflict = BookingService._conflict_for(
                tenant=tenant,
                patient=appt.patient,
                local_date=local_date,
                start=new_start_time,
                end=new_end_time,
                exclude_id=appt.id,
            )
            if conflict is None:
                raise
            raise conflict

        AuditService.log(
            event_code="appointment.rescheduled",
            entity_type="Appointment",
            entity_id=appt.id,
            tenant_id=tenant.id,
            metadata={
                "previous_start_time": previous_start.isoformat(),
                "start_time": appt.start_time.isoformat(),
            },
        )
        BookingService._publish_on_commit(
            "appointment.rescheduled",
            appt,
            previous_start_time=previous_start.isoformat(),
        )

        logger.info("booking rescheduled tenant=%s appointment=%s start=%s", tenant.slug, appt.id, appt.start_time.isoformat())
        return appt
