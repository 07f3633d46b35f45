# booking_core/embed/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from booking_core.appointments.services import ACTION_CANCEL, PATIENT_NOT_FOUND_MSG, BookingService
from booking_core.conversations.services import ChatGuardService
from booking_core.embed.api.serializers import (
    AppointmentSummarySerializer,
    BookingCreateResponseSerializer,
    BookingCreateSerializer,
    ChatGuardResponseSerializer,
    ChatGuardSerializer,
    ModifyCancelResponseSerializer,
    ModifyCancelSerializer,
    SlotsQuerySerializer,
    SlotsResponseSerializer,
    VerifyPatientResponseSerializer,
    VerifyPatientSerializer,
)
from booking_core.scheduling.availability import get_zone
from booking_core.scheduling.services import AvailabilityService
from booking_core.tenants.access import resolve_signed_tenant
from booking_core.tenants.models import Tenant

SIGNED_QUERY_PARAMS = [
    OpenApiParameter(
        name="clinic_slug",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=True,
        description="Public slug of the clinic the widget is embedded for.",
    ),
    OpenApiParameter(
        name="sig",
        type=OpenApiTypes.STR,
        location=OpenApiParameter.QUERY,
        required=True,
        description="Embed signature issued for clinic_slug.",
    ),
]


def _signed_tenant(data) -> Tenant:
    """
    Signature first: a bad or missing signature is a 403 even when the rest
    of the payload is also invalid.
    """
    source = data if hasattr(data, "get") else {}
    return resolve_signed_tenant(slug=source.get("clinic_slug"), signature=source.get("sig"))


def _clinic_context(tenant: Tenant) -> dict:
    return {"clinic_zone": get_zone(tenant.timezone)}


def _blank_to_none(value):
    value = (value or "").strip() if isinstance(value, str) else value
    return value or None


class EmbedAPIView(APIView):
    """
    Base for the public widget endpoints: no session auth, the signed clinic
    slug is the only credential.
    """
    authentication_classes = []
    permission_classes = [AllowAny]


class SlotsView(EmbedAPIView):
    @extend_schema(
        tags=["Embed"],
        parameters=[
            *SIGNED_QUERY_PARAMS,
            OpenApiParameter(
                name="location",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Use this location's working hours.",
            ),
            OpenApiParameter(
                name="agent",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Use this agent's working hours (wins over location).",
            ),
            OpenApiParameter(
                name="date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM-DD: every open slot on that clinic-local day.",
            ),
            OpenApiParameter(
                name="days",
                type=OpenApiTypes.BOOL,
                location=OpenApiParameter.QUERY,
                required=False,
                description="1: the next days that still have an open slot (labels only).",
            ),
            OpenApiParameter(
                name="count",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=False,
                description="How many upcoming slots to return (default 12, max 50).",
            ),
        ],
        responses={200: SlotsResponseSerializer},
    )
    def get(self, request):
        tenant = _signed_tenant(request.query_params)

        ser = SlotsQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        params = ser.validated_data

        calc = AvailabilityService.calculator_for(
            tenant=tenant,
            location_id=_blank_to_none(params["location"]),
            agent_id=_blank_to_none(params["agent"]),
            target_date=params["date"],
        )

        if params["days"]:
            body = {
                "working_days": [d.as_dict() for d in calc.next_days_with_slots()],
                "slots": [],
            }
        elif params["date"] is not None:
            body = {"slots": [s.as_dict() for s in calc.slots_for_date(params["date"])]}
        else:
            body = {
                "slots": [s.as_dict() for s in calc.next_slots(params["count"])],
                "has_slots_today": calc.has_slots_today(),
            }
        return Response(body, status=status.HTTP_200_OK)


class BookingCreateView(EmbedAPIView):
    @extend_schema(
        tags=["Embed"],
        request=BookingCreateSerializer,
        responses={201: BookingCreateResponseSerializer},
    )
    def post(self, request):
        tenant = _signed_tenant(request.data)

        ser = BookingCreateSerializer(data=request.data, context=_clinic_context(tenant))
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        appt = BookingService.create_booking(
            tenant=tenant,
            full_name=data["name"],
            email=data["email"],
            phone=data["phone"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            reason=data["reason"],
            location_id=_blank_to_none(data["location"]),
            agent_id=_blank_to_none(data["agent"]),
        )
        return Response(
            {"ok": True, "appointment": AppointmentSummarySerializer(appt).data},
            status=status.HTTP_201_CREATED,
        )


class VerifyPatientView(EmbedAPIView):
    @extend_schema(
        tags=["Embed"],
        request=VerifyPatientSerializer,
        responses={200: VerifyPatientResponseSerializer},
    )
    def post(self, request):
        tenant = _signed_tenant(request.data)

        ser = VerifyPatientSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        lookup = BookingService.verify_patient(
            tenant=tenant,
            email=ser.validated_data["email"],
            phone=ser.validated_data["phone"],
        )
        if not lookup.found:
            return Response({"ok": False, "message": PATIENT_NOT_FOUND_MSG}, status=status.HTTP_200_OK)

        return Response(
            {
                "ok": True,
                "patient_name": lookup.patient.full_name,
                "appointments": AppointmentSummarySerializer(lookup.appointments, many=True).data,
            },
            status=status.HTTP_200_OK,
        )


class ModifyCancelView(EmbedAPIView):
    @extend_schema(
        tags=["Embed"],
        request=ModifyCancelSerializer,
        responses={200: ModifyCancelResponseSerializer},
    )
    def post(self, request):
        tenant = _signed_tenant(request.data)

        ser = ModifyCancelSerializer(data=request.data, context=_clinic_context(tenant))
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        appt = BookingService.modify_or_cancel(
            tenant=tenant,
            action=data["action"],
            email=data["email"],
            phone=data["phone"],
            new_start_time=data["new_start_time"],
            new_end_time=data["new_end_time"],
            location_id=_blank_to_none(data["location"]),
            agent_id=_blank_to_none(data["agent"]),
        )
        message = "Appointment cancelled." if data["action"] == ACTION_CANCEL else "Appointment rescheduled."
        return Response(
            {"ok": True, "message": message, "appointment": AppointmentSummarySerializer(appt).data},
            status=status.HTTP_200_OK,
        )


class ChatGuardView(EmbedAPIView):
    @extend_schema(
        tags=["Embed"],
        request=ChatGuardSerializer,
        responses={200: ChatGuardResponseSerializer},
    )
    def post(self, request):
        tenant = _signed_tenant(request.data)

        ser = ChatGuardSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        turn = ChatGuardService.handle(
            tenant=tenant,
            messages=[dict(m) for m in ser.validated_data["messages"]],
            failed_unclear_attempts=ser.validated_data["failed_unclear_attempts"],
        )
        return Response(turn.as_dict(), status=status.HTTP_200_OK)
