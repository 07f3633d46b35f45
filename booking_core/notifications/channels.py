# booking_core/notifications/channels.py
"""
Delivery adapters. Each one reports what happened instead of raising, so the
fan-out can record the outcome and move on to the next recipient.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx
import resend
from django.conf import settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "not configured"

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    error: Optional[str] = None


def to_e164(phone: str) -> str:
    digits = re.sub(r"\D", "", phone or "")
    return f"+{digits}" if digits else ""


def _timeout() -> float:
    return float(getattr(settings, "NOTIFICATION_TIMEOUT_SECONDS", 10))


class EmailChannel:
    name = "email"

    @staticmethod
    def send(*, to: str | Sequence[str], subject: str, html: str) -> DispatchResult:
        api_key = (getattr(settings, "RESEND_API_KEY", "") or "").strip()
        if not api_key:
            return DispatchResult(ok=False, error=NOT_CONFIGURED)

        recipients = [to] if isinstance(to, str) else [r for r in to if r]
        if not recipients:
            return DispatchResult(ok=False, error="no recipient")

        resend.api_key = api_key
        # the SDK default is 30s per request
        resend.default_http_client = resend.RequestsClient(timeout=_timeout())
        try:
            response = resend.Emails.send(
                {
                    "from": settings.RESEND_FROM,
                    "to": recipients,
                    "subject": subject,
                    "html": html,
                }
            )
        except Exception as exc:  # resend raises its own hierarchy plus transport errors
            return DispatchResult(ok=False, error=str(exc) or exc.__class__.__name__)

        logger.debug("resend accepted email id=%s", (response or {}).get("id"))
        return DispatchResult(ok=True)


class WhatsAppChannel:
    """
    Twilio Messages API with the whatsapp: address prefix.
    Auth is either account SID + auth token or an API key pair.
    """
    name = "whatsapp"

    @staticmethod
    def _credentials() -> Optional[tuple[str, str]]:
        api_key_sid = (getattr(settings, "TWILIO_API_KEY_SID", "") or "").strip()
        api_key_secret = (getattr(settings, "TWILIO_API_KEY_SECRET", "") or "").strip()
        if api_key_sid and api_key_secret:
            return api_key_sid, api_key_secret

        auth_token = (getattr(settings, "TWILIO_AUTH_TOKEN", "") or "").strip()
        if auth_token:
            return settings.TWILIO_ACCOUNT_SID, auth_token
        return None

    @staticmethod
    def send(*, to: str, body: str) -> DispatchResult:
        account_sid = (getattr(settings, "TWILIO_ACCOUNT_SID", "") or "").strip()
        sender = (getattr(settings, "TWILIO_WHATSAPP_FROM", "") or "").strip()
        credentials = WhatsAppChannel._credentials()
        if not account_sid or not sender or credentials is None:
            return DispatchResult(ok=False, error=NOT_CONFIGURED)

        recipient = to_e164(to)
        if not recipient:
            return DispatchResult(ok=False, error="no recipient")

        from_addr = sender if sender.startswith("whatsapp:") else f"whatsapp:{to_e164(sender)}"
        try:
            response = httpx.post(
                TWILIO_MESSAGES_URL.format(account_sid=account_sid),
                auth=credentials,
                data={"To": f"whatsapp:{recipient}", "From": from_addr, "Body": body},
                timeout=_timeout(),
            )
        except httpx.HTTPError as exc:
            return DispatchResult(ok=False, error=str(exc) or exc.__class__.__name__)

        if response.status_code not in (200, 201):
            return DispatchResult(ok=False, error=response.text or f"HTTP {response.status_code}")
        return DispatchResult(ok=True)
