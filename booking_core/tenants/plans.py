# booking_core/tenants/plans.py
from __future__ import annotations

# starter < pro < elite
PLAN_ORDER = {
    "starter": 0,
    "pro": 1,
    "elite": 2,
}

# Features the booking widget cares about and the lowest plan that includes them
PLAN_FEATURES = {
    "modify_cancel_via_ai": "pro",
    "whatsapp": "elite",
}

# Chat cost protection: max user messages per session and per clinic per day
CHAT_USAGE_LIMITS = {
    "starter": {"per_session": 40, "per_day": 300},
    "pro": {"per_session": 120, "per_day": 1500},
    "elite": {"per_session": 300, "per_day": 5000},
}


def normalize_plan(plan: str | None) -> str:
    value = (plan or "").strip().lower()
    if value in ("pro", "elite"):
        return value
    # legacy name
    if value == "enterprise":
        return "elite"
    return "starter"


def plan_at_least(plan: str | None, min_plan: str) -> bool:
    return PLAN_ORDER[normalize_plan(plan)] >= PLAN_ORDER[min_plan]


def has_plan_feature(plan: str | None, feature: str) -> bool:
    min_plan = PLAN_FEATURES.get(feature)
    if min_plan is None:
        return False
    return plan_at_least(plan, min_plan)


def chat_usage_limits(plan: str | None) -> dict[str, int]:
    return CHAT_USAGE_LIMITS[normalize_plan(plan)]
