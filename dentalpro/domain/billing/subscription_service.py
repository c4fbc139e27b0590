"""Subscription service - Business logic for subscription management"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import API_BASE_URL
from ...models import Profile
from ...models_billing import Subscription
from .fib_service import FIBClient, FIBPaymentError, map_fib_status
from .plans import PLAN_PRICING, default_features, iqd_to_usd, is_valid_plan, subscription_period
from .repository import BillingRepository
from .schemas import FIBPaymentRequest, SubscriptionRequest

logger = logging.getLogger(__name__)

# Statuses that grant access while the period is running.
# Manual approvals write "approved"; the FIB callback writes "active".
GRANTING_STATUSES = ("approved", "active")


class SubscriptionService:
    """Service for subscription management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def check_subscription(self, profile: Profile) -> dict:
        """Report whether the caller's clinic holds a running subscription"""
        if not profile.clinic_id:
            raise HTTPException(status_code=400, detail="User clinic not found")

        subscription = self.repo.get_active_subscription(
            self.db, profile.clinic_id, datetime.utcnow(), GRANTING_STATUSES
        )

        if not subscription:
            logger.info(f"🔍 No active subscription for clinic {profile.clinic_id}")
            return {"subscribed": False, "plan": None, "subscription_end": None}

        return {
            "subscribed": True,
            "plan": subscription.plan,
            "subscription_end": subscription.current_period_end,
            "payment_method": subscription.payment_method,
        }

    def request_subscription(self, body: SubscriptionRequest, profile: Profile) -> dict:
        """Open a pending subscription priced from the plan table"""
        if not profile.clinic_id:
            raise HTTPException(status_code=400, detail="User clinic not found")

        pricing = PLAN_PRICING[body.plan]
        subscription = Subscription(
            clinic_id=profile.clinic_id,
            plan=body.plan,
            status="pending",
            amount_iqd=pricing["iqd"],
            amount_usd=pricing["usd"],
            payment_method=body.payment_method,
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"✅ Pending {body.plan} subscription {subscription.id} for clinic {profile.clinic_id}")
        return {
            "success": True,
            "subscription_id": subscription.id,
            "plan": subscription.plan,
            "status": subscription.status,
            "amount_iqd": subscription.amount_iqd,
            "amount_usd": subscription.amount_usd,
        }

    def get_features(self, profile: Profile) -> dict:
        """Features of the clinic's current plan, basic when nothing is running"""
        plan = "basic"
        try:
            status = self.check_subscription(profile)
            if status["subscribed"] and status["plan"]:
                plan = status["plan"]

            rows = self.repo.get_plan_features(self.db, plan)
            features = [
                {
                    "feature_name": row.feature_name,
                    "is_enabled": row.is_enabled,
                    "feature_limit": row.feature_limit,
                }
                for row in rows
            ]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"❌ Failed to load plan features, using defaults: {e}")
            features = []

        if not features:
            features = default_features(plan)
        return {"plan": plan, "features": features}

    async def create_fib_payment(
        self, body: FIBPaymentRequest, profile: Profile, fib: FIBClient
    ) -> dict:
        """Start an FIB payment and record a pending subscription for it"""
        if not body.amount or not body.plan:
            raise HTTPException(status_code=400, detail="Amount and plan are required")
        if not is_valid_plan(body.plan):
            raise HTTPException(status_code=400, detail="Invalid plan selected")
        if not fib.is_configured():
            logger.error("❌ FIB credentials not configured")
            raise HTTPException(status_code=500, detail="FIB credentials not configured")

        description = body.description or f"Subscription payment for {body.plan} plan"
        callback_url = f"{API_BASE_URL.rstrip('/')}/webhooks/fib"

        try:
            payment = await fib.create_payment(body.amount, description, callback_url)
        except FIBPaymentError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

        subscription = Subscription(
            clinic_id=profile.clinic_id,
            plan=body.plan,
            status="pending",
            amount_iqd=body.amount,
            amount_usd=iqd_to_usd(body.amount),
            payment_method="fib",
            provider_payment_id=payment["paymentId"],
        )
        self.db.add(subscription)
        self.db.commit()

        return {
            "success": True,
            "paymentId": payment["paymentId"],
            "qrCode": payment.get("qrCode"),
            "readableCode": payment.get("readableCode"),
            "personalAppLink": payment.get("personalAppLink"),
            "businessAppLink": payment.get("businessAppLink"),
            "corporateAppLink": payment.get("corporateAppLink"),
            "validUntil": payment.get("validUntil"),
            "message": "Payment created successfully. Please scan the QR code or use the payment link.",
        }

    def handle_fib_callback(self, payment_id: str, provider_status: str) -> str:
        """Apply a provider status callback; returns the mapped subscription status"""
        subscription = self.repo.get_subscription_by_provider_payment(self.db, payment_id)
        if not subscription:
            logger.warning(f"⚠️ FIB callback for unknown payment {payment_id}")
            raise HTTPException(status_code=406, detail="Subscription not found")

        new_status = map_fib_status(provider_status)
        subscription.status = new_status

        if new_status == "active":
            period_start, period_end = subscription_period()
            subscription.current_period_start = period_start
            subscription.current_period_end = period_end
        self.db.commit()
        logger.info(f"✅ Subscription {subscription.id} is now {new_status} (FIB: {provider_status})")

        if new_status == "active" and subscription.clinic_id:
            try:
                clinic = self.repo.get_clinic(self.db, subscription.clinic_id)
                if clinic:
                    self.repo.activate_clinic(
                        self.db, clinic, subscription.plan, subscription.current_period_end
                    )
                    self.db.commit()
            except Exception as e:
                # The subscription update already stands
                self.db.rollback()
                logger.error(f"❌ Failed to activate clinic {subscription.clinic_id}: {e}")

        return new_status
