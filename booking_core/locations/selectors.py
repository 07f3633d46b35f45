# booking_core/locations/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework.exceptions import NotFound

from booking_core.locations.models import Agent, Location
from booking_core.tenants.models import Tenant

LOCATION_NOT_FOUND_MSG = "Location not found."
AGENT_NOT_FOUND_MSG = "Agent not found."


def _get_scoped_or_404(model, *, tenant: Tenant, obj_id, message: str):
    try:
        obj = model.objects.filter(tenant=tenant, id=obj_id).first()
    except (DjangoValidationError, ValueError):
        # malformed UUID from a query string
        obj = None
    if obj is None:
        raise NotFound(message)
    return obj


def get_location(*, tenant: Tenant, location_id: UUID | str) -> Location:
    return _get_scoped_or_404(Location, tenant=tenant, obj_id=location_id, message=LOCATION_NOT_FOUND_MSG)


def get_agent(*, tenant: Tenant, agent_id: UUID | str) -> Agent:
    return _get_scoped_or_404(Agent, tenant=tenant, obj_id=agent_id, message=AGENT_NOT_FOUND_MSG)


def effective_working_hours(
    *,
    tenant: Tenant,
    location_id: Optional[UUID | str] = None,
    agent_id: Optional[UUID | str] = None,
) -> Optional[dict]:
    """
    Precedence (first non-empty wins):
      1. the agent's own hours
      2. the hours of the location the agent is pinned to
      3. the hours of the requested location
      4. the clinic's default hours
    """
    if agent_id:
        agent = get_agent(tenant=tenant, agent_id=agent_id)
        if agent.working_hours:
            return agent.working_hours
        if agent.location_id:
            location_id = agent.location_id

    if location_id:
        location = get_location(tenant=tenant, location_id=location_id)
        if location.working_hours:
            return location.working_hours

    return tenant.working_hours or None
