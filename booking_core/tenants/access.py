# booking_core/tenants/access.py
from __future__ import annotations

import logging

from rest_framework.exceptions import NotFound, PermissionDenied

from booking_core.tenants import signing
from booking_core.tenants.models import Tenant
from booking_core.tenants.selectors import get_tenant_by_slug_or_none

logger = logging.getLogger(__name__)

INVALID_SIGNATURE_MSG = "Invalid or missing signature."
TENANT_NOT_FOUND_MSG = "Clinic not found."


def resolve_signed_tenant(*, slug: str | None, signature: str | None) -> Tenant:
    """
    Public entrypoint used by every embed view.

    - Verifies the signature against the slug supplied in this same request.
    - Only then looks the clinic up, so an unsigned request never learns
      whether a slug exists.
    - Raises 403 on a bad/missing signature, 404 when a correctly signed slug
      has no clinic (e.g. it was renamed).
    """
    if not signing.verify(slug, signature):
        logger.info("embed signature rejected slug=%r", (slug or "")[:64])
        raise PermissionDenied(INVALID_SIGNATURE_MSG)

    tenant = get_tenant_by_slug_or_none(slug=slug)
    if tenant is None:
        raise NotFound(TENANT_NOT_FOUND_MSG)
    return tenant
