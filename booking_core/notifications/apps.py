# booking_core/notifications/apps.py
from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "booking_core.notifications"

    def ready(self):
        # registers event handlers
        from booking_core.notifications import subscribers  # noqa: F401
