# booking_core/audit/models.py
import uuid

from django.db import models


class AuditEvent(models.Model):
    """
    Immutable audit record of widget-driven booking changes.
    Staff tooling reads it to answer "who moved this appointment, and when".
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant_id = models.UUIDField(db_index=True)
    event_code = models.CharField(max_length=128, db_index=True)  # e.g. "appointment.cancelled"
    entity_type = models.CharField(max_length=128, db_index=True)  # e.g. "Appointment"
    entity_id = models.UUIDField(db_index=True)

    source = models.CharField(max_length=32, default="widget")
    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "occurred_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
        ]
