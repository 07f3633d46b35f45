# booking_core/patients/models.py
from django.db import models
from django.db.models import Q

from booking_core.common.models import TenantScopedModel


class Patient(TenantScopedModel):
    """
    A person who booked (or asked about a booking) through the widget.
    Deduplicated per clinic by email (case-insensitive), then by phone digits.
    """
    full_name = models.CharField(max_length=255)

    # stored lower-cased; "" when the visitor only gave a phone
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    # digits-only copy of phone for matching "+1 (555) 010-0000" against "15550100000"
    phone_digits = models.CharField(max_length=20, blank=True, default="", db_index=True)

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "email"],
                condition=~Q(email=""),
                name="uq_patient_tenant_email",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "phone_digits"]),
        ]

    def __str__(self) -> str:
        return self.full_name

    def save(self, *args, **kwargs):
        self.email = (self.email or "").strip().lower()
        self.phone = (self.phone or "").strip()
        self.phone_digits = "".join(ch for ch in self.phone if ch.isdigit())
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "phone" in update_fields and "phone_digits" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "phone_digits"]
        super().save(*args, **kwargs)
