# booking_core/embed/api/urls.py
from __future__ import annotations

from django.urls import path

from booking_core.embed.api.views import (
    BookingCreateView,
    ChatGuardView,
    ModifyCancelView,
    SlotsView,
    VerifyPatientView,
)

app_name = "embed"

urlpatterns = [
    path("slots/", SlotsView.as_view(), name="slots"),
    path("bookings/", BookingCreateView.as_view(), name="bookings"),
    path("verify-patient/", VerifyPatientView.as_view(), name="verify-patient"),
    path("modify-cancel/", ModifyCancelView.as_view(), name="modify-cancel"),
    path("chat/guard/", ChatGuardView.as_view(), name="chat-guard"),
]
