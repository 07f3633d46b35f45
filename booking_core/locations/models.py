# booking_core/locations/models.py
from __future__ import annotations

from django.db import models

from booking_core.common.models import TenantScopedModel


class Location(TenantScopedModel):
    """
    A branch of a clinic with its own opening hours.
    Staff-managed; the booking core only reads it.
    """

    name = models.CharField(max_length=255)

    # Same shape as Tenant.working_hours; null means "use the clinic's hours"
    working_hours = models.JSONField(null=True, blank=True)
    insurance_notes = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        db_table = "locations_location"
        indexes = [
            models.Index(fields=["tenant", "is_active"]),
        ]

    def __str__(self) -> str:
        return self.name


class Agent(TenantScopedModel):
    """
    A named assistant behind a widget install, optionally pinned to one location.
    """

    name = models.CharField(max_length=255)
    location = models.ForeignKey(
        Location,
        on_delete=models.SET_NULL,
        related_name="agents",
        null=True,
        blank=True,
    )
    working_hours = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "locations_agent"

    def __str__(self) -> str:
        return self.name
