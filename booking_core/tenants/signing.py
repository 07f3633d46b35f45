# booking_core/tenants/signing.py
"""
Static capability tokens for the embeddable widget.

A token is the HMAC-SHA256 of the normalized clinic slug under a single
server-held secret. There is no expiry and no nonce: whoever holds the token
may act for that clinic's public widget. Rotating EMBED_SIGNING_SECRET
invalidates the tokens of every clinic at the same time.
"""
from __future__ import annotations

import hashlib
import hmac

from django.conf import settings


def _secret() -> bytes:
    return (getattr(settings, "EMBED_SIGNING_SECRET", "") or "").encode("utf-8")


def normalize_slug(slug: str | None) -> str:
    return (slug or "").strip().lower()


def issue(slug: str) -> str | None:
    """Return the hex token for ``slug``, or None when no secret is configured."""
    secret = _secret()
    if not secret:
        return None
    return hmac.new(secret, normalize_slug(slug).encode("utf-8"), hashlib.sha256).hexdigest()


def verify(slug: str | None, token: str | None) -> bool:
    if not _secret() or not normalize_slug(slug) or not (token or "").strip():
        return False

    expected = issue(slug)
    if not expected:
        return False

    try:
        supplied = bytes.fromhex(token.strip())
    except ValueError:
        return False
    return hmac.compare_digest(supplied, bytes.fromhex(expected))
