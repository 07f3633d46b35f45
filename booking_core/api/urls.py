# booking_core/api/urls.py
from __future__ import annotations

from django.urls import include, path

urlpatterns = [
    # Public widget surface (signed clinic slug, no session auth)
    path("embed/", include(("booking_core.embed.api.urls", "embed"), namespace="embed")),
]
