# config/settings/base.py
from pathlib import Path
import os
from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "unsafe-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Django
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",

    # Third-party
    "corsheaders",
    "rest_framework",
    "drf_spectacular",

    # Domain apps (modular monolith)
    "booking_core.common.apps.CommonConfig",
    "booking_core.tenants",
    "booking_core.locations",
    "booking_core.scheduling",
    "booking_core.patients",
    "booking_core.appointments",
    "booking_core.audit",
    "booking_core.conversations",
    "booking_core.notifications.apps.NotificationsConfig",
    "booking_core.embed",
]

MIDDLEWARE = [
    # CORS must run before CommonMiddleware so preflight requests from
    # clinic websites get their headers.
    "booking_core.common.middleware.RequestIdMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "booking"),
        "USER": os.getenv("DB_USER", "booking"),
        "PASSWORD": os.getenv("DB_PASSWORD", "booking"),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    # The widget API is public; every embed view authorizes through the
    # clinic signature instead of a user session.
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.AllowAny",
    ),
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",

    # Standard error envelope
    "EXCEPTION_HANDLER": "booking_core.common.api.exceptions.api_exception_handler",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Booking Widget API",
    "DESCRIPTION": "Public, clinic-signed endpoints used by the embeddable booking chat widget",
    "VERSION": "0.1.0",
    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": True,
    "SORT_OPERATION_PARAMETERS": True,
}

# CORS: the widget is embedded on arbitrary clinic websites, so the embed API
# accepts any origin. Nothing else is exposed cross-origin.
CORS_URLS_REGEX = r"^/api/(v1/)?embed/.*$"
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_CREDENTIALS = False

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "booking_core": {
            "handlers": ["console"],
            "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# -------------------------------------------------------------------
# Booking widget
# -------------------------------------------------------------------

# Rotating this secret invalidates every embed signature for every clinic.
EMBED_SIGNING_SECRET = os.getenv("EMBED_SIGNING_SECRET", "")

BOOKING_SLOT_MINUTES = int(os.getenv("BOOKING_SLOT_MINUTES", "30"))
BOOKING_HORIZON_DAYS = int(os.getenv("BOOKING_HORIZON_DAYS", "14"))
BOOKING_CUTOFF_MINUTES = int(os.getenv("BOOKING_CUTOFF_MINUTES", "120"))
BOOKING_DEFAULT_TIMEZONE = os.getenv("BOOKING_DEFAULT_TIMEZONE", "America/New_York")

# Dotted path to a callable(tenant, messages) -> str | None that produces the
# assistant reply once the guard lets a message through. Unset: the widget's
# own relay continues the turn.
EMBED_CHAT_RESPONDER = os.getenv("EMBED_CHAT_RESPONDER", "")

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/")

# Outbound channels. Missing credentials degrade fan-out to "log and continue".
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_FROM = os.getenv("RESEND_FROM") or os.getenv("RESEND_FROM_EMAIL") or "Bookings <bookings@example.com>"

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "").strip()
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "").strip()
TWILIO_API_KEY_SID = os.getenv("TWILIO_API_KEY_SID", "").strip()
TWILIO_API_KEY_SECRET = os.getenv("TWILIO_API_KEY_SECRET", "").strip()
TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM", "").strip()

NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))

# Fan-out runs on a small worker pool after commit so the widget never waits
# on a provider. Off: run inline in the committing thread.
NOTIFICATIONS_ASYNC = os.getenv("NOTIFICATIONS_ASYNC", "1") == "1"
NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "4"))
