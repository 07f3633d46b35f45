# booking_core/embed/apps.py
from django.apps import AppConfig


class EmbedConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "booking_core.embed"
