# booking_core/tenants/services.py
from __future__ import annotations

import logging
from datetime import datetime

from django.utils import timezone

from booking_core.common.api.exceptions import PlanExpired
from booking_core.tenants.models import Tenant

logger = logging.getLogger(__name__)


class TenantPlanService:
    """
    Consumes the *effect* of billing: a clinic whose plan expired may still be
    read by staff tooling, but every booking mutation from the widget stops.
    """

    @staticmethod
    def is_plan_active(*, tenant: Tenant, at: datetime | None = None) -> bool:
        if tenant.plan_expires_at is None:
            return True
        return tenant.plan_expires_at > (at or timezone.now())

    @staticmethod
    def require_active_plan(*, tenant: Tenant, at: datetime | None = None) -> None:
        if not TenantPlanService.is_plan_active(tenant=tenant, at=at):
            logger.info("plan expired tenant=%s expired_at=%s", tenant.slug, tenant.plan_expires_at)
            raise PlanExpired()
