# booking_core/conversations/guard.py
"""
Cheap, stateless screen run on every widget chat message before anything
downstream (and paid) sees it.

The caller owns the conversation: it sends the whole transcript plus the
``failed_unclear_attempts`` counter it got back last time. Rules are checked in
order against the latest user message and the first match wins.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

MAX_MESSAGE_LENGTH = 250
SAME_MESSAGE_REPEAT_THRESHOLD = 2
USER_BURST_LENGTH = 5
UNCLEAR_RESET_AFTER = 3

HUMAN_TAKEOVER_MESSAGE = "I'll notify the clinic team to assist you directly."
UNCLEAR_MESSAGE = "I'm having trouble understanding that. Please type a date like: May 20."
RESET_MESSAGE = "Let's start fresh \U0001F642\nWhat can we help with? Cleaning • Checkup • Pain • Book"

HUMAN_TAKEOVER_TRIGGERS = ("complaint", "refund", "angry", "lawyer", "sue")

_WEEKDAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"

DATE_PATTERNS = (
    re.compile(r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b"),
    re.compile(r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2}(?:st|nd|rd|th)?(?:\s*,?\s*\d{4})?", re.I),
    re.compile(r"\btomorrow\b", re.I),
    re.compile(rf"\bnext\s+{_WEEKDAY}\b", re.I),
    re.compile(rf"\b{_WEEKDAY}\b", re.I),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
)

REAL_WORD_RE = re.compile(
    r"\b(?:the|and|for|you|book|cleaning|checkup|pain|hours|insurance|appointment|tomorrow"
    r"|monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|january|february|march|april|may|june|july|august|september|october|november|december"
    r"|yes|no|please|help|want|need|hi|hello|thanks|thank)\b",
    re.I,
)
HAS_NUMBER_RE = re.compile(r"\d")
SPECIAL_ONLY_RE = re.compile(r"^[\s\W_]+$")


@dataclass(frozen=True)
class GuardVerdict:
    reject: bool
    message: Optional[str] = None
    failed_unclear_attempts: Optional[int] = None
    reset_conversation: bool = False
    human_takeover: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


ACCEPT = GuardVerdict(reject=False)


def _role(message) -> str:
    return str((message or {}).get("role") or "") if isinstance(message, dict) else ""


def _content(message) -> str:
    return str((message or {}).get("content") or "").strip() if isinstance(message, dict) else ""


def looks_like_date(text: str) -> bool:
    value = str(text or "").strip()
    if not value or len(value) > 80:
        return False
    return any(p.search(value) for p in DATE_PATTERNS)


def _unclear(failed_unclear_attempts: int) -> GuardVerdict:
    attempts = max(int(failed_unclear_attempts or 0), 0) + 1
    if attempts >= UNCLEAR_RESET_AFTER:
        return GuardVerdict(
            reject=True,
            message=RESET_MESSAGE,
            failed_unclear_attempts=0,
            reset_conversation=True,
        )
    return GuardVerdict(reject=True, message=UNCLEAR_MESSAGE, failed_unclear_attempts=attempts)


def _is_keyboard_mash(text: str) -> bool:
    if REAL_WORD_RE.search(text) or HAS_NUMBER_RE.search(text) or any(p.search(text) for p in DATE_PATTERNS):
        return False
    compact = re.sub(r"\s", "", text)
    return len(compact) >= 8 and len(set(compact.lower())) <= 12


def check_message(messages: Iterable[dict], failed_unclear_attempts: int = 0) -> GuardVerdict:
    """
    Decide whether the latest user message may go through.
    Never raises: garbage input is treated as an empty transcript.
    """
    transcript = list(messages or [])
    user_texts = [_content(m) for m in transcript if _role(m) == "user"]
    user_texts = [t for t in user_texts if t]
    if not user_texts:
        return ACCEPT

    last = user_texts[-1]
    lower = last.lower()

    # substring match: "suede" trips "sue", same as the widget always did
    if any(trigger in lower for trigger in HUMAN_TAKEOVER_TRIGGERS):
        return GuardVerdict(reject=True, message=HUMAN_TAKEOVER_MESSAGE, human_takeover=True)

    if len(last) > MAX_MESSAGE_LENGTH:
        return _unclear(failed_unclear_attempts)

    if SPECIAL_ONLY_RE.match(last):
        return _unclear(failed_unclear_attempts)

    if user_texts.count(last) >= SAME_MESSAGE_REPEAT_THRESHOLD:
        return _unclear(failed_unclear_attempts)

    if _is_keyboard_mash(last):
        return _unclear(failed_unclear_attempts)

    tail = [_role(m) for m in transcript[-USER_BURST_LENGTH:]]
    if len(tail) == USER_BURST_LENGTH and all(r == "user" for r in tail):
        return _unclear(failed_unclear_attempts)

    return ACCEPT
