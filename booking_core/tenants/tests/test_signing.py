# booking_core/tenants/tests/test_signing.py
import pytest
from django.test import override_settings

from booking_core.tenants import signing


def test_issued_token_verifies_for_its_slug():
    token = signing.issue("clinic-a")
    assert token
    assert signing.verify("clinic-a", token) is True


def test_slug_is_normalized_before_signing():
    assert signing.issue("  Clinic-A ") == signing.issue("clinic-a")
    assert signing.verify("CLINIC-A", signing.issue("clinic-a")) is True


def test_token_for_one_clinic_never_authorizes_another():
    token = signing.issue("clinic-a")
    assert signing.verify("clinic-b", token) is False


@pytest.mark.parametrize("token", ["", None, "   ", "not-hex", "abc", "00" * 32])
def test_bad_tokens_are_rejected(token):
    assert signing.verify("clinic-a", token) is False


def test_truncated_token_is_rejected():
    token = signing.issue("clinic-a")
    assert signing.verify("clinic-a", token[:-2]) is False


def test_missing_slug_is_rejected():
    assert signing.verify("", signing.issue("clinic-a")) is False


@override_settings(EMBED_SIGNING_SECRET="")
def test_nothing_verifies_without_a_secret():
    assert signing.issue("clinic-a") is None
    assert signing.verify("clinic-a", "00" * 32) is False


def test_rotating_the_secret_invalidates_old_tokens():
    token = signing.issue("clinic-a")
    with override_settings(EMBED_SIGNING_SECRET="rotated-secret"):
        assert signing.verify("clinic-a", token) is False
