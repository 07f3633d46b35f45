# booking_core/notifications/models.py
from __future__ import annotations

from django.db import models

from booking_core.common.models import TenantScopedModel


class NotificationChannel(models.TextChoices):
    EMAIL = "email", "Email"
    WHATSAPP = "whatsapp", "WhatsApp"


class NotificationDispatch(TenantScopedModel):
    """
    One attempted delivery. Written after the booking committed, so a failed
    send never rolls anything back; it only leaves ok=False here.
    """
    appointment = models.ForeignKey(
        "appointments.Appointment",
        on_delete=models.CASCADE,
        related_name="notification_dispatches",
    )
    event = models.CharField(max_length=64)
    channel = models.CharField(max_length=16, choices=NotificationChannel.choices)
    recipient = models.CharField(max_length=320)
    ok = models.BooleanField(default=False)
    error = models.TextField(blank=True, default="")

    class Meta:
        db_table = "notifications_dispatch"
        indexes = [
            models.Index(fields=["tenant", "event"]),
            models.Index(fields=["appointment", "channel"]),
        ]

    def __str__(self) -> str:
        state = "ok" if self.ok else "failed"
        return f"{self.event} {self.channel} -> {self.recipient} ({state})"
