# booking_core/patients/services.py
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from booking_core.patients.models import Patient
from booking_core.patients.selectors import find_patient_by_contact
from booking_core.tenants.models import Tenant

logger = logging.getLogger(__name__)

DEFAULT_PATIENT_NAME = "Patient"


class PatientService:
    @staticmethod
    @transaction.atomic
    def resolve_or_create(
        *,
        tenant: Tenant,
        full_name: str = "",
        email: str = "",
        phone: str = "",
    ) -> Patient:
        """
        Find the clinic's patient by email, else by phone; otherwise create one.
        An email match that has no phone yet gets the newly supplied phone.
        """
        patient = find_patient_by_contact(tenant=tenant, email=email, phone=phone)

        if patient is not None:
            if phone and not patient.phone:
                patient.phone = phone
                patient.save(update_fields=["phone", "updated_at"])
            return patient

        try:
            # savepoint: a concurrent first booking with the same email must not
            # break the surrounding transaction
            with transaction.atomic():
                patient = Patient.objects.create(
                    tenant=tenant,
                    full_name=(full_name or "").strip() or DEFAULT_PATIENT_NAME,
                    email=email,
                    phone=phone,
                )
        except IntegrityError:
            patient = find_patient_by_contact(tenant=tenant, email=email, phone=phone)
            if patient is None:
                raise
            return patient

        logger.info("patient created tenant=%s patient=%s", tenant.slug, patient.id)
        return patient
