# booking_core/appointments/models.py
from django.db import models
from django.db.models import Q

from booking_core.common.models import TenantScopedModel
from booking_core.patients.models import Patient


class AppointmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SCHEDULED = "scheduled", "Scheduled"
    CONFIRMED = "confirmed", "Confirmed"
    CANCELLED = "cancelled", "Cancelled"


ACTIVE_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.SCHEDULED.value,
    AppointmentStatus.CONFIRMED.value,
)

# (none) -> scheduled -> confirmed | cancelled; rescheduling keeps the status.
# Nothing leaves CANCELLED.
ALLOWED_TRANSITIONS = {
    "pending": {"scheduled", "confirmed", "cancelled"},
    "scheduled": {"confirmed", "cancelled"},
    "confirmed": {"cancelled"},
    "cancelled": set(),
}


class AppointmentSource(models.TextChoices):
    WIDGET = "widget", "Chat widget"
    STAFF = "staff", "Staff"


class Appointment(TenantScopedModel):
    """
    A booked [start_time, end_time) for a patient at a clinic.

    local_date is the calendar day of start_time in the clinic's zone. It exists
    so the database itself can enforce "one active appointment per patient per day".
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="appointments")

    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    local_date = models.DateField()

    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
        db_index=True,
    )
    source = models.CharField(max_length=16, choices=AppointmentSource.choices, default=AppointmentSource.WIDGET)
    reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "appointments_appointment"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "patient", "local_date"],
                condition=Q(status__in=ACTIVE_STATUSES),
                name="uq_appt_active_patient_day",
            ),
            models.UniqueConstraint(
                fields=["tenant", "start_time"],
                condition=Q(status__in=ACTIVE_STATUSES),
                name="uq_appt_active_tenant_start",
            ),
            models.CheckConstraint(
                condition=Q(end_time__gt=models.F("start_time")),
                name="ck_appt_end_after_start",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status", "start_time"]),
            models.Index(fields=["tenant", "patient", "start_time"]),
        ]

    def __str__(self) -> str:
        return f"{self.patient_id} @ {self.start_time:%Y-%m-%d %H:%M} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def can_transition_to(self, status: str) -> bool:
        return str(status) in ALLOWED_TRANSITIONS.get(str(self.status), set())
