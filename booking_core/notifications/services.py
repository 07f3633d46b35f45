# booking_core/notifications/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from booking_core.appointments.models import Appointment
from booking_core.appointments.selectors import starting_between
from booking_core.notifications.channels import DispatchResult, EmailChannel, WhatsAppChannel
from booking_core.notifications.models import NotificationChannel, NotificationDispatch
from booking_core.patients.validators import phone_digits
from booking_core.scheduling.availability import format_time, get_zone, parse_instant
from booking_core.tenants.plans import has_plan_feature

logger = logging.getLogger(__name__)

MIN_WHATSAPP_DIGITS = 10

REMINDER_DAY_BEFORE = "day_before"
REMINDER_MORNING_OF = "morning_of"

# how far ahead of now an appointment must start to get each reminder
REMINDER_WINDOWS = {
    REMINDER_DAY_BEFORE: (timedelta(hours=20), timedelta(hours=28)),
    REMINDER_MORNING_OF: (timedelta(hours=1), timedelta(hours=6)),
}


def _when(appointment: Appointment, instant=None) -> str:
    zone = get_zone(appointment.tenant.timezone)
    local = (instant or appointment.start_time).astimezone(zone)
    return f"{local.strftime('%B')} {local.day}, {local.year} at {format_time(local)}"


def _until(appointment: Appointment) -> str:
    zone = get_zone(appointment.tenant.timezone)
    return format_time(appointment.end_time.astimezone(zone))


def _can_whatsapp(phone: str) -> bool:
    return len(phone_digits(phone or "")) >= MIN_WHATSAPP_DIGITS


class NotificationFanout:
    """
    Tells the patient and the clinic about a booking change.

    Runs after the booking committed. Every attempt is logged and stored as a
    NotificationDispatch; a failed channel never stops the other recipients.
    """

    @staticmethod
    def _record(
        *,
        appointment: Appointment,
        event: str,
        channel: str,
        recipient: str,
        result: DispatchResult,
    ) -> NotificationDispatch:
        if result.ok:
            logger.info("notification sent event=%s channel=%s appointment=%s", event, channel, appointment.id)
        else:
            logger.warning(
                "notification failed event=%s channel=%s appointment=%s error=%s",
                event,
                channel,
                appointment.id,
                result.error,
            )
        return NotificationDispatch.objects.create(
            tenant_id=appointment.tenant_id,
            appointment=appointment,
            event=event,
            channel=channel,
            recipient=recipient[:320],
            ok=result.ok,
            error=result.error or "",
        )

    @staticmethod
    def _email(*, appointment: Appointment, event: str, to: list[str], subject: str, template: str, context: dict):
        html = render_to_string(f"notifications/{template}", context)
        result = EmailChannel.send(to=to, subject=subject, html=html)
        return NotificationFanout._record(
            appointment=appointment,
            event=event,
            channel=NotificationChannel.EMAIL,
            recipient=", ".join(to),
            result=result,
        )

    @staticmethod
    def _whatsapp(*, appointment: Appointment, event: str, to: str, body: str):
        result = WhatsAppChannel.send(to=to, body=body)
        return NotificationFanout._record(
            appointment=appointment,
            event=event,
            channel=NotificationChannel.WHATSAPP,
            recipient=to,
            result=result,
        )

    @staticmethod
    def _load(appointment_id) -> Appointment:
        return Appointment.objects.select_related("tenant", "patient").get(id=appointment_id)

    @staticmethod
    def _context(appointment: Appointment, **extra) -> dict:
        return {
            "clinic_name": appointment.tenant.name,
            "patient_name": appointment.patient.full_name,
            "patient_email": appointment.patient.email,
            "when": _when(appointment),
            "until": _until(appointment),
            "app_url": getattr(settings, "APP_BASE_URL", ""),
            **extra,
        }

    # -------------------------
    # Events
    # -------------------------
    @staticmethod
    def appointment_created(*, appointment_id) -> list[NotificationDispatch]:
        event = "appointment.created"
        appt = NotificationFanout._load(appointment_id)
        tenant, patient = appt.tenant, appt.patient
        ctx = NotificationFanout._context(appt)
        out: list[NotificationDispatch] = []

        if patient.email:
            out.append(
                NotificationFanout._email(
                    appointment=appt,
                    event=event,
                    to=[patient.email],
                    subject=f"Appointment confirmed - {tenant.name}",
                    template="appointment_created_patient.html",
                    context=ctx,
                )
            )

        staff_emails = [e for e in (tenant.notification_emails or []) if isinstance(e, str) and e.strip()]
        if staff_emails:
            out.append(
                NotificationFanout._email(
                    appointment=appt,
                    event=event,
                    to=staff_emails,
                    subject=f"New appointment (from chat) - {tenant.name}",
                    template="appointment_created_staff.html",
                    context=ctx,
                )
            )

        clinic_phone = tenant.staff_phone
        if has_plan_feature(tenant.plan, "whatsapp") and _can_whatsapp(clinic_phone):
            out.append(
                NotificationFanout._whatsapp(
                    appointment=appt,
                    event=event,
                    to=clinic_phone,
                    body=f"New appointment at {tenant.name}: {patient.full_name} - {ctx['when']} - {ctx['until']}.",
                )
            )
            if _can_whatsapp(patient.phone):
                out.append(
                    NotificationFanout._whatsapp(
                        appointment=appt,
                        event=event,
                        to=patient.phone,
                        body=(
                            f"Hi {patient.full_name}, your appointment at {tenant.name} is confirmed for "
                            f"{ctx['when']} - {ctx['until']}. Reply if you need to change or cancel."
                        ),
                    )
                )
        return out

    @staticmethod
    def appointment_cancelled(*, appointment_id) -> list[NotificationDispatch]:
        event = "appointment.cancelled"
        appt = NotificationFanout._load(appointment_id)
        tenant, patient = appt.tenant, appt.patient
        ctx = NotificationFanout._context(appt)
        out: list[NotificationDispatch] = []

        if patient.email:
            out.append(
                NotificationFanout._email(
                    appointment=appt,
                    event=event,
                    to=[patient.email],
                    subject=f"Appointment cancelled - {tenant.name}",
                    template="appointment_cancelled_patient.html",
                    context=ctx,
                )
            )

        if has_plan_feature(tenant.plan, "whatsapp") and _can_whatsapp(patient.phone):
            out.append(
                NotificationFanout._whatsapp(
                    appointment=appt,
                    event=event,
                    to=patient.phone,
                    body=(
                        f"Hi {patient.full_name}, your appointment at {tenant.name} on {ctx['when']} "
                        f"has been cancelled. Reply to book again."
                    ),
                )
            )
        return out

    @staticmethod
    def appointment_rescheduled(*, appointment_id, previous_start_time: Optional[str] = None) -> list[NotificationDispatch]:
        event = "appointment.rescheduled"
        appt = NotificationFanout._load(appointment_id)
        tenant, patient = appt.tenant, appt.patient

        previous = parse_instant(previous_start_time) if previous_start_time else None
        ctx = NotificationFanout._context(appt, previous_when=_when(appt, previous) if previous else "")
        out: list[NotificationDispatch] = []

        if patient.email:
            out.append(
                NotificationFanout._email(
                    appointment=appt,
                    event=event,
                    to=[patient.email],
                    subject=f"Appointment rescheduled - {tenant.name}",
                    template="appointment_rescheduled_patient.html",
                    context=ctx,
                )
            )

        if has_plan_feature(tenant.plan, "whatsapp") and _can_whatsapp(patient.phone):
            out.append(
                NotificationFanout._whatsapp(
                    appointment=appt,
                    event=event,
                    to=patient.phone,
                    body=f"Hi {patient.full_name}, your appointment at {tenant.name} is now {ctx['when']} - {ctx['until']}.",
                )
            )
        return out

    # -------------------------
    # Reminders (elite)
    # -------------------------
    @staticmethod
    def appointment_reminder(*, appointment: Appointment, kind: str) -> list[NotificationDispatch]:
        """
        WhatsApp reminder to the clinic and the patient. Skipped when the plan
        has no WhatsApp, the clinic has no usable number, or this reminder was
        already delivered for the appointment.
        """
        event = f"appointment.reminder.{kind}"
        tenant, patient = appointment.tenant, appointment.patient
        clinic_phone = tenant.staff_phone

        if not has_plan_feature(tenant.plan, "whatsapp") or not _can_whatsapp(clinic_phone):
            return []
        if NotificationDispatch.objects.filter(appointment=appointment, event=event, ok=True).exists():
            return []

        when = _when(appointment)
        name = patient.full_name or "Patient"
        if kind == REMINDER_DAY_BEFORE:
            staff_body = f"Reminder: appointment tomorrow - {name}, {when} at {tenant.name}."
            patient_body = f"Hi {name}, reminder: your appointment at {tenant.name} is tomorrow, {when}."
        else:
            staff_body = f"Reminder: appointment today - {name}, {when} at {tenant.name}."
            patient_body = f"Hi {name}, reminder: your appointment at {tenant.name} is today, {when}. See you soon!"

        out = [NotificationFanout._whatsapp(appointment=appointment, event=event, to=clinic_phone, body=staff_body)]
        if _can_whatsapp(patient.phone):
            out.append(
                NotificationFanout._whatsapp(appointment=appointment, event=event, to=patient.phone, body=patient_body)
            )
        return out


@dataclass(frozen=True)
class ReminderRun:
    day_before: int
    morning_of: int
    sent: int
    failed: int


class ReminderService:
    """
    Periodic sweep (run it at least twice a day) that sends the day-before and
    the morning-of reminders. Safe to re-run: a delivered reminder is not sent again.
    """

    @staticmethod
    def run(*, now: Optional[datetime] = None) -> ReminderRun:
        now = now or timezone.now()
        found = {}
        sent = failed = 0

        for kind, (ahead_from, ahead_to) in REMINDER_WINDOWS.items():
            appointments = list(starting_between(start=now + ahead_from, end=now + ahead_to))
            found[kind] = len(appointments)
            for appt in appointments:
                for dispatch in NotificationFanout.appointment_reminder(appointment=appt, kind=kind):
                    if dispatch.ok:
                        sent += 1
                    else:
                        failed += 1

        logger.info(
            "reminder sweep day_before=%s morning_of=%s sent=%s failed=%s",
            found[REMINDER_DAY_BEFORE],
            found[REMINDER_MORNING_OF],
            sent,
            failed,
        )
        return ReminderRun(
            day_before=found[REMINDER_DAY_BEFORE],
            morning_of=found[REMINDER_MORNING_OF],
            sent=sent,
            failed=failed,
        )
