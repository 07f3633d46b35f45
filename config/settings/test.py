# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

EMBED_SIGNING_SECRET = "test-embed-secret"

# Never reach real providers from tests
RESEND_API_KEY = ""
TWILIO_ACCOUNT_SID = ""
TWILIO_AUTH_TOKEN = ""
TWILIO_API_KEY_SID = ""
TWILIO_API_KEY_SECRET = ""
TWILIO_WHATSAPP_FROM = ""
EMBED_CHAT_RESPONDER = ""

# fan-out runs inline under test
NOTIFICATIONS_ASYNC = False

LOGGING["loggers"]["booking_core"]["level"] = "WARNING"  # noqa: F405
# let pytest's caplog see application logs
LOGGING["loggers"]["booking_core"]["propagate"] = True  # noqa: F405
LOGGING["loggers"]["booking_core"]["handlers"] = []  # noqa: F405
