# booking_core/patients/selectors.py
from __future__ import annotations

from typing import Optional

from booking_core.patients.models import Patient
from booking_core.patients.validators import normalize_email, phone_digits
from booking_core.tenants.models import Tenant


def find_patient_by_contact(*, tenant: Tenant, email: str = "", phone: str = "") -> Optional[Patient]:
    """
    Resolution order: case-insensitive email first, then digits-only phone.
    """
    email = normalize_email(email)
    if email:
        patient = Patient.objects.filter(tenant=tenant, email__iexact=email).order_by("created_at").first()
        if patient is not None:
            return patient

    digits = phone_digits(phone)
    if digits:
        return (
            Patient.objects.filter(tenant=tenant, phone_digits=digits)
            .order_by("created_at")
            .first()
        )

    return None
