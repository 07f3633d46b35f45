# booking_core/tenants/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from booking_core.tenants.models import Tenant
from booking_core.tenants.signing import normalize_slug


def get_tenant(*, tenant_id: UUID) -> Tenant:
    return Tenant.objects.get(id=tenant_id)


def get_tenant_by_slug_or_none(*, slug: str) -> Optional[Tenant]:
    return Tenant.objects.filter(slug=normalize_slug(slug)).first()
