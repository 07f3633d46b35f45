# booking_core/conversations/services.py
from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.module_loading import import_string

from booking_core.conversations.guard import check_message
from booking_core.conversations.models import ChatUsage
from booking_core.tenants.models import Tenant
from booking_core.tenants.plans import chat_usage_limits
from booking_core.tenants.services import TenantPlanService

logger = logging.getLogger(__name__)

CHAT_LIMIT_MESSAGE = "Clinic chat limit reached today. Please call the clinic."
OFF_TOPIC_MESSAGE = "I can only help with dental appointments."

URL_RE = re.compile(r"https?://\S+", re.I)
SESSION_ROLES = ("user", "assistant")


def session_length(messages) -> int:
    """Non-empty user and assistant turns, the size a session is billed by."""
    return sum(
        1
        for m in messages or []
        if isinstance(m, dict) and m.get("role") in SESSION_ROLES and str(m.get("content") or "").strip()
    )


def contains_link(messages) -> bool:
    user_texts = [
        str(m.get("content") or "").strip()
        for m in messages or []
        if isinstance(m, dict) and m.get("role") == "user"
    ]
    user_texts = [t for t in user_texts if t]
    return bool(user_texts) and URL_RE.search(user_texts[-1]) is not None


@dataclass(frozen=True)
class ChatTurn:
    reject: bool
    message: Optional[str] = None
    failed_unclear_attempts: Optional[int] = None
    reset_conversation: bool = False
    human_takeover: bool = False
    forward: bool = False
    reply: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


class ChatUsageService:
    @staticmethod
    @transaction.atomic
    def consume(*, tenant: Tenant, session_messages: int, day: Optional[date] = None) -> bool:
        """
        Count one message against the clinic's plan limits.
        Returns False (and counts nothing) once either limit is reached.
        """
        limits = chat_usage_limits(tenant.plan)
        if session_messages >= limits["per_session"]:
            return False

        day = day or timezone.now().date()
        usage, _ = ChatUsage.objects.get_or_create(tenant=tenant, day=day)

        # conditional increment: concurrent widgets cannot push past per_day
        updated = ChatUsage.objects.filter(pk=usage.pk, message_count__lt=limits["per_day"]).update(
            message_count=F("message_count") + 1,
            updated_at=timezone.now(),
        )
        return updated == 1


class ChatGuardService:
    @staticmethod
    def _responder():
        path = (getattr(settings, "EMBED_CHAT_RESPONDER", "") or "").strip()
        return import_string(path) if path else None

    @staticmethod
    def handle(
        *,
        tenant: Tenant,
        messages: list[dict],
        failed_unclear_attempts: int = 0,
        now: Optional[datetime] = None,
    ) -> ChatTurn:
        TenantPlanService.require_active_plan(tenant=tenant, at=now)

        verdict = check_message(messages, failed_unclear_attempts)
        if verdict.reject:
            if verdict.human_takeover:
                logger.warning("chat human takeover requested tenant=%s", tenant.slug)
            else:
                logger.info(
                    "chat message rejected tenant=%s attempts=%s reset=%s",
                    tenant.slug,
                    verdict.failed_unclear_attempts,
                    verdict.reset_conversation,
                )
            return ChatTurn(**verdict.as_dict())

        session_messages = session_length(messages)
        day = (now or timezone.now()).date()
        if not ChatUsageService.consume(tenant=tenant, session_messages=session_messages, day=day):
            logger.info("chat usage limit reached tenant=%s plan=%s", tenant.slug, tenant.plan)
            return ChatTurn(reject=True, message=CHAT_LIMIT_MESSAGE)

        if contains_link(messages):
            logger.info("chat message with link rejected tenant=%s", tenant.slug)
            return ChatTurn(reject=True, message=OFF_TOPIC_MESSAGE)

        responder = ChatGuardService._responder()
        if responder is None:
            # the widget's own relay answers
            return ChatTurn(reject=False, forward=True)

        reply = responder(tenant=tenant, messages=messages)
        return ChatTurn(reject=False, reply=str(reply) if reply is not None else None)
