# booking_core/tenants/models.py
import uuid
from django.db import models


class PlanTier(models.TextChoices):
    STARTER = "starter", "Starter"
    PRO = "pro", "Pro"
    ELITE = "elite", "Elite"


class Tenant(models.Model):
    """
    A clinic using the product.
    Root of all scoping in the system (it *is* the tenant).

    The booking core only reads clinics; signup, settings and billing write them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    # public and guessable: never accepted on its own, always with a signature
    slug = models.SlugField(max_length=64, unique=True)

    timezone = models.CharField(max_length=64, default="America/New_York")

    # {"Monday": {"open": "09:00", "close": "17:00"}, ...}; a missing day is closed
    working_hours = models.JSONField(default=dict, blank=True)

    plan = models.CharField(max_length=16, choices=PlanTier.choices, default=PlanTier.STARTER)
    plan_expires_at = models.DateTimeField(null=True, blank=True)

    # Contact used by notification fan-out
    phone = models.CharField(max_length=32, blank=True, default="")
    whatsapp_phone = models.CharField(max_length=32, blank=True, default="")
    notification_emails = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tenants_tenant"

    def __str__(self) -> str:
        return f"{self.name} ({self.slug})"

    @property
    def staff_phone(self) -> str:
        return (self.whatsapp_phone or "").strip() or (self.phone or "").strip()
