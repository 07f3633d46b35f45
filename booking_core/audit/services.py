# booking_core/audit/services.py
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from booking_core.audit.models import AuditEvent


class AuditService:
    """
    Central audit writer. Rows are written in the same transaction as the
    change they describe, so a rolled-back booking leaves no ghost history.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: UUID,
        tenant_id: UUID,
        metadata: Optional[Dict[str, Any]] = None,
        source: str = "widget",
    ) -> AuditEvent:
        return AuditEvent.objects.create(
            tenant_id=tenant_id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            source=source,
            metadata=metadata or {},
        )
