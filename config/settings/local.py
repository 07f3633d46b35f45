# config/settings/local.py
from .base import *  # noqa

DEBUG = True

# Local development works without a signing secret configured in .env
EMBED_SIGNING_SECRET = EMBED_SIGNING_SECRET or "local-dev-embed-secret"  # noqa: F405
