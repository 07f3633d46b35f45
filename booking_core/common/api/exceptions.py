# booking_core/common/api/exceptions.py
from __future__ import annotations

import logging
import uuid
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope for the widget API.
    Reusable from Django middleware (JsonResponse) and DRF (Response).
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


class PlanExpired(APIException):
    """
    403 for clinics whose subscription has lapsed. Booking mutations stop;
    nothing else about the clinic is revealed.
    """
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Plan expired."
    default_code = "plan_expired"


class BookingRuleError(APIException):
    """
    400 for booking rules the visitor can act on (pick another day, call the clinic, ...).
    The message is shown to the visitor verbatim, so keep it human.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Booking request rejected."
    default_code = "booking_rule"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class AlreadyBookedToday(BookingRuleError):
    default_detail = "You already have an appointment on that day. We allow one appointment per day."
    default_code = "already_booked_today"


class SlotTaken(BookingRuleError):
    default_detail = "That time was just booked. Please pick another slot."
    default_code = "slot_taken"


class OutsideWorkingHours(BookingRuleError):
    default_detail = "The clinic is closed at that time. Please pick one of the available slots."
    default_code = "outside_working_hours"


class NotASlot(BookingRuleError):
    default_detail = "Please pick one of the available slots."
    default_code = "not_a_slot"


class WithinCutoff(BookingRuleError):
    default_detail = "Please call the clinic directly for urgent changes."
    default_code = "within_cutoff"


class NoUpcomingAppointment(BookingRuleError):
    default_detail = "No upcoming appointment found."
    default_code = "no_upcoming_appointment"


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, (Http404, NotFound)):
        return "not_found"
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str) and codes:
            return codes
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def _first_message(value: Any) -> str:
    if isinstance(value, (list, tuple)) and value:
        return _first_message(value[0])
    if isinstance(value, dict) and value:
        return _first_message(next(iter(value.values())))
    return str(value)


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    # Truly unhandled error (store failures end up here). Never retried.
    if response is None:
        logger.exception(
            "unhandled error request_id=%s view=%s",
            ensure_request_id(request),
            type(context.get("view")).__name__,
            exc_info=exc,
        )
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    # DRF standardizes errors into response.data
    data = response.data

    # Message + details rules:
    # 1) {"detail": "..."} -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) a bare list of messages -> message=first, details=None
    # 4) otherwise (field errors) -> message=first field error, details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = _first_message(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None
    elif isinstance(data, list) and data:
        message = _first_message(data)
        details = None if len(data) == 1 else data
    elif isinstance(data, dict) and data:
        message = _first_message(data)

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
