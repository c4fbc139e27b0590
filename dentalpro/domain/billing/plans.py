"""
Plan tiers, pricing and the default feature matrix for clinic subscriptions.
"""

import math
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from ...config import IQD_PER_USD

PLAN_TIERS = ("basic", "premium", "enterprise")

# Amount thresholds (IQD) used to infer a plan from a reported payment
PREMIUM_THRESHOLD_IQD = 20000
ENTERPRISE_THRESHOLD_IQD = 30000

PLAN_PRICING = {
    "basic": {"iqd": 10000, "usd": 7.60},
    "premium": {"iqd": 20000, "usd": 15.20},
    "enterprise": {"iqd": 30000, "usd": 22.80},
}

PAYMENT_METHODS = ("stripe", "qi_card", "zain_cash", "bank_transfer", "fib")
MANUAL_PAYMENT_METHODS = ("qi_card", "zain_cash", "bank_transfer")

# Used when the subscription_features table has no rows for a plan.
# None as a limit means unlimited.
DEFAULT_PLAN_FEATURES = {
    "basic": {
        "max_patients": (True, 50),
        "max_staff": (True, 2),
        "max_appointments_per_month": (True, 100),
        "max_clinics": (True, 1),
        "medical_images": (False, None),
        "prescription_management": (True, None),
        "advanced_analytics": (False, None),
        "communication_features": (False, None),
        "backup_restore": (False, None),
        "advanced_reports": (False, None),
        "priority_support": (False, None),
        "advanced_security": (False, None),
    },
    "premium": {
        "max_patients": (True, 500),
        "max_staff": (True, 10),
        "max_appointments_per_month": (True, 1000),
        "max_clinics": (True, 1),
        "medical_images": (True, None),
        "prescription_management": (True, None),
        "advanced_analytics": (True, None),
        "communication_features": (True, None),
        "backup_restore": (True, None),
        "advanced_reports": (False, None),
        "priority_support": (False, None),
        "advanced_security": (False, None),
    },
    "enterprise": {
        "max_patients": (True, None),
        "max_staff": (True, None),
        "max_appointments_per_month": (True, None),
        "max_clinics": (True, 5),
        "medical_images": (True, None),
        "prescription_management": (True, None),
        "advanced_analytics": (True, None),
        "communication_features": (True, None),
        "backup_restore": (True, None),
        "advanced_reports": (True, None),
        "priority_support": (True, None),
        "advanced_security": (True, None),
    },
}


def infer_plan(amount_iqd: float) -> str:
    """Bucket a payment amount into a plan tier"""
    if amount_iqd >= ENTERPRISE_THRESHOLD_IQD:
        return "enterprise"
    if amount_iqd >= PREMIUM_THRESHOLD_IQD:
        return "premium"
    return "basic"


def is_valid_plan(plan: Optional[str]) -> bool:
    return plan in PLAN_TIERS


def iqd_to_usd(amount_iqd: float) -> int:
    """Approximate USD value, rounded half up to a whole dollar"""
    return int(math.floor(amount_iqd / IQD_PER_USD + 0.5))


def subscription_period(start: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """One calendar month starting at `start` (defaults to now, UTC)"""
    start = start or datetime.utcnow()
    return start, start + relativedelta(months=1)


def default_features(plan: str) -> list[dict]:
    features = DEFAULT_PLAN_FEATURES.get(plan, DEFAULT_PLAN_FEATURES["basic"])
    return [
        {"feature_name": name, "is_enabled": enabled, "feature_limit": limit}
        for name, (enabled, limit) in features.items()
    ]
