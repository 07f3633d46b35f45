# booking_core/patients/validators.py
"""
Lightweight contact checks for the chat widget.
They reject obviously fake or throwaway values; they do not prove ownership.
"""
from __future__ import annotations

import re

from rest_framework.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_EMAIL_LENGTH = 254

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

# Common disposable/temporary email domains (subset)
DISPOSABLE_DOMAINS = frozenset({
    "tempmail.com", "throwaway.email", "guerrillamail.com", "10minutemail.com",
    "mailinator.com", "fakeinbox.com", "trashmail.com", "yopmail.com",
    "temp-mail.org", "getnada.com", "maildrop.cc", "sharklasers.com",
    "grr.la", "guerrillamail.info", "discard.email", "tempail.com",
    "emailondeck.com", "mohmal.com", "dispostable.com", "mailnesia.com",
})


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def phone_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def email_error(value: str) -> str | None:
    email = normalize_email(value)
    if not email:
        return "Email is required."
    if len(email) > MAX_EMAIL_LENGTH:
        return "Email is too long."
    if not EMAIL_RE.match(email):
        return "Please enter a valid email address."
    if email.split("@", 1)[1] in DISPOSABLE_DOMAINS:
        return "Please use a permanent email address."
    return None


def phone_error(value: str) -> str | None:
    digits = phone_digits(value)
    if len(digits) < MIN_PHONE_DIGITS:
        return "Please enter a valid phone number with country code."
    if len(digits) > MAX_PHONE_DIGITS:
        return "Phone number is too long."
    # 0000000000, 1111111111, ...
    if len(set(digits)) == 1:
        return "Please enter a valid phone number."
    return None


def validate_contact(*, email: str | None, phone: str | None) -> tuple[str, str]:
    """
    Returns (normalized_email, trimmed_phone); raises 400 with a visitor-facing message.
    At least one of the two is required.
    """
    email = normalize_email(email)
    phone = (phone or "").strip()

    if not email and not phone:
        raise ValidationError({"detail": "Please share your email or WhatsApp number."})

    errors = {}
    if email:
        msg = email_error(email)
        if msg:
            errors["email"] = msg
    if phone:
        msg = phone_error(phone)
        if msg:
            errors["phone"] = msg

    if errors:
        first = next(iter(errors.values()))
        raise ValidationError({"detail": first, **errors})

    return email, phone
