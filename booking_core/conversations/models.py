# booking_core/conversations/models.py
from __future__ import annotations

from django.db import models

from booking_core.common.models import TimeStampedModel


class ChatUsage(TimeStampedModel):
    """
    Messages a clinic's widget chat let through on one (UTC) day.
    """
    tenant = models.ForeignKey("tenants.Tenant", on_delete=models.CASCADE, related_name="chat_usage")
    day = models.DateField()
    message_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "conversations_chat_usage"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "day"], name="uq_chat_usage_tenant_day"),
        ]

    def __str__(self) -> str:
        return f"{self.tenant_id} {self.day}: {self.message_count}"
