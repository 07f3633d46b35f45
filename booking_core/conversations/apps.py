# booking_core/conversations/apps.py
from django.apps import AppConfig


class ConversationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "booking_core.conversations"
