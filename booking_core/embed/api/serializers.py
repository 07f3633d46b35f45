# booking_core/embed/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from booking_core.appointments.models import Appointment
from booking_core.appointments.services import ACTIONS

DEFAULT_SLOT_COUNT = 12
MAX_SLOT_COUNT = 50


class ClinicDateTimeField(serializers.DateTimeField):
    """
    A value without a UTC offset is wall-clock time in the clinic's zone
    (``clinic_zone`` in the serializer context), not the server's.
    """

    def default_timezone(self):
        return self.context.get("clinic_zone") or super().default_timezone()


class SignedRequestSerializer(serializers.Serializer):
    """
    Every widget call carries the clinic slug and its signature.
    Checked by the view before the rest of the payload is validated.
    """
    clinic_slug = serializers.CharField(max_length=120)
    sig = serializers.CharField(max_length=128)


class SlotsQuerySerializer(SignedRequestSerializer):
    location = serializers.CharField(required=False, allow_blank=True, default="")
    agent = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False, allow_null=True, default=None, input_formats=["%Y-%m-%d"])
    days = serializers.BooleanField(required=False, default=False)
    count = serializers.IntegerField(required=False, min_value=1, max_value=MAX_SLOT_COUNT, default=DEFAULT_SLOT_COUNT)


class SlotSerializer(serializers.Serializer):
    label = serializers.CharField()
    start = serializers.CharField()
    end = serializers.CharField()


class DayOptionSerializer(serializers.Serializer):
    date = serializers.CharField()
    label = serializers.CharField()


class SlotsResponseSerializer(serializers.Serializer):
    slots = SlotSerializer(many=True)
    has_slots_today = serializers.BooleanField(required=False)
    working_days = DayOptionSerializer(many=True, required=False)


class BookingCreateSerializer(SignedRequestSerializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    email = serializers.CharField(max_length=320, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    start_time = ClinicDateTimeField()
    end_time = ClinicDateTimeField()
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")
    agent = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Appointment
        fields = ["id", "start_time", "end_time", "status", "reason"]
        read_only_fields = fields


class BookingCreateResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    appointment = AppointmentSummarySerializer()


class VerifyPatientSerializer(SignedRequestSerializer):
    email = serializers.CharField(max_length=320, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")


class VerifyPatientResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    message = serializers.CharField(required=False)
    patient_name = serializers.CharField(required=False)
    appointments = AppointmentSummarySerializer(many=True, required=False)


class ModifyCancelSerializer(SignedRequestSerializer):
    action = serializers.ChoiceField(choices=list(ACTIONS))
    email = serializers.CharField(max_length=320, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    new_start_time = ClinicDateTimeField(required=False, allow_null=True, default=None)
    new_end_time = ClinicDateTimeField(required=False, allow_null=True, default=None)
    location = serializers.CharField(required=False, allow_blank=True, default="")
    agent = serializers.CharField(required=False, allow_blank=True, default="")


class ModifyCancelResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    message = serializers.CharField()
    appointment = AppointmentSummarySerializer()


class ChatMessageSerializer(serializers.Serializer):
    role = serializers.CharField(max_length=32)
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ChatGuardSerializer(SignedRequestSerializer):
    messages = ChatMessageSerializer(many=True)
    failed_unclear_attempts = serializers.IntegerField(required=False, min_value=0, default=0)


class ChatGuardResponseSerializer(serializers.Serializer):
    reject = serializers.BooleanField()
    message = serializers.CharField(allow_null=True)
    failed_unclear_attempts = serializers.IntegerField(allow_null=True)
    reset_conversation = serializers.BooleanField()
    human_takeover = serializers.BooleanField()
    forward = serializers.BooleanField()
    reply = serializers.CharField(allow_null=True)
