# booking_core/notifications/subscribers.py
from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from booking_core.common.events import subscribe
from booking_core.notifications import background
from booking_core.notifications.services import NotificationFanout

logger = logging.getLogger(__name__)


def _deliver(*, event: str, action: Callable[..., Any], payload: Dict[str, Any], **kwargs) -> None:
    try:
        action(**kwargs)
    except Exception:
        # booking already committed; the visitor still gets their confirmation
        logger.exception("notification fan-out failed event=%s payload=%s", event, payload)


@subscribe("appointment.created")
def on_appointment_created(payload: Dict[str, Any]) -> Optional[Future]:
    return background.submit(
        _deliver,
        event="appointment.created",
        action=NotificationFanout.appointment_created,
        payload=payload,
        appointment_id=payload.get("appointment_id"),
    )


@subscribe("appointment.cancelled")
def on_appointment_cancelled(payload: Dict[str, Any]) -> Optional[Future]:
    return background.submit(
        _deliver,
        event="appointment.cancelled",
        action=NotificationFanout.appointment_cancelled,
        payload=payload,
        appointment_id=payload.get("appointment_id"),
    )


@subscribe("appointment.rescheduled")
def on_appointment_rescheduled(payload: Dict[str, Any]) -> Optional[Future]:
    return background.submit(
        _deliver,
        event="appointment.rescheduled",
        action=NotificationFanout.appointment_rescheduled,
        payload=payload,
        appointment_id=payload.get("appointment_id"),
        previous_start_time=payload.get("previous_start_time"),
    )
