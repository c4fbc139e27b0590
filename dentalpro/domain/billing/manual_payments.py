"""Manual payment service - Review workflow for offline transfers"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from ...config import PAYMENT_SCREENSHOTS_BUCKET
from ...models import Profile
from ...models_billing import ManualPayment, Subscription
from ...storage import generate_presigned_url, upload_image
from .plans import MANUAL_PAYMENT_METHODS, iqd_to_usd, infer_plan, subscription_period
from .repository import BillingRepository

logger = logging.getLogger(__name__)


def serialize_manual_payment(payment: ManualPayment) -> dict:
    return {
        "id": payment.id,
        "user_id": payment.user_id,
        "clinic_id": payment.clinic_id,
        "clinic_name": payment.clinic.name if payment.clinic else None,
        "subscription_id": payment.subscription_id,
        "amount_iqd": payment.amount_iqd,
        "payment_method": payment.payment_method,
        "sender_name": payment.sender_name,
        "sender_phone": payment.sender_phone,
        "transaction_reference": payment.transaction_reference,
        "screenshot_url": payment.screenshot_url,
        "notes": payment.notes,
        "status": payment.status,
        "rejection_reason": payment.rejection_reason,
        "reviewed_by": payment.reviewed_by,
        "reviewed_at": payment.reviewed_at,
        "created_at": payment.created_at,
    }


class ManualPaymentService:
    """Service for reporting and reviewing manual payments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    async def submit(
        self,
        profile: Profile,
        amount_iqd: int,
        payment_method: str,
        sender_name: str,
        sender_phone: str,
        screenshot: UploadFile,
        transaction_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict:
        """Record a transfer reported by the caller; it waits for review as pending"""
        if amount_iqd <= 0:
            raise HTTPException(status_code=400, detail="Amount must be greater than zero")
        if payment_method not in MANUAL_PAYMENT_METHODS:
            raise HTTPException(status_code=400, detail="Invalid payment method")
        if not sender_name.strip() or not sender_phone.strip():
            raise HTTPException(status_code=400, detail="Sender name and phone are required")

        screenshot_key = await upload_image(
            PAYMENT_SCREENSHOTS_BUCKET, profile.user_id, screenshot
        )

        payment = ManualPayment(
            user_id=profile.user_id,
            clinic_id=profile.clinic_id,
            amount_iqd=amount_iqd,
            payment_method=payment_method,
            sender_name=sender_name.strip(),
            sender_phone=sender_phone.strip(),
            transaction_reference=transaction_reference,
            screenshot_url=screenshot_key,
            notes=notes,
            status="pending",
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        logger.info(
            f"📥 Manual payment {payment.id} submitted by {profile.email}: "
            f"{amount_iqd} IQD via {payment_method}"
        )
        return serialize_manual_payment(payment)

    def list_payments(self, status: Optional[str] = None) -> list[dict]:
        return [serialize_manual_payment(p) for p in self.repo.list_manual_payments(self.db, status)]

    def _get_pending(self, payment_id: str) -> ManualPayment:
        payment = self.repo.get_manual_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.status != "pending":
            raise HTTPException(
                status_code=409, detail=f"Payment has already been {payment.status}"
            )
        return payment

    def approve(self, payment_id: str, reviewer: Profile) -> dict:
        """
        Approve a pending payment and grant the matching plan for one month.

        The clinic's most recent subscription is renewed in place; a clinic
        without one gets a new subscription linked back to the payment.
        """
        payment = self._get_pending(payment_id)
        now = datetime.utcnow()

        try:
            if not self.repo.transition_manual_payment(
                self.db,
                payment_id,
                "approved",
                {"reviewed_by": reviewer.id, "reviewed_at": now},
            ):
                raise HTTPException(status_code=409, detail="Payment is no longer pending")

            plan = infer_plan(payment.amount_iqd)
            period_start, period_end = subscription_period(now)

            subscription = None
            if payment.clinic_id:
                subscription = self.repo.get_latest_subscription(self.db, payment.clinic_id)

            if subscription:
                logger.info(f"🔄 Renewing subscription {subscription.id} for clinic {payment.clinic_id}")
            else:
                subscription = Subscription(clinic_id=payment.clinic_id)
                self.db.add(subscription)

            subscription.status = "approved"
            subscription.plan = plan
            subscription.amount_iqd = payment.amount_iqd
            subscription.amount_usd = iqd_to_usd(payment.amount_iqd)
            subscription.payment_method = payment.payment_method
            subscription.current_period_start = period_start
            subscription.current_period_end = period_end
            self.db.flush()

            payment.subscription_id = subscription.id

            clinic = self.repo.get_clinic(self.db, payment.clinic_id)
            if clinic:
                self.repo.activate_clinic(self.db, clinic, plan, period_end)

            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to approve manual payment {payment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to approve payment") from e

        logger.info(
            f"✅ Manual payment {payment_id} approved by {reviewer.email}: {plan} plan until {period_end}"
        )
        return {
            "success": True,
            "payment_id": payment_id,
            "subscription_id": subscription.id,
            "plan": plan,
            "current_period_end": period_end,
        }

    def reject(self, payment_id: str, reviewer: Profile, reason: Optional[str]) -> dict:
        if not reason or not reason.strip():
            raise HTTPException(status_code=422, detail="A rejection reason is required")

        self._get_pending(payment_id)

        if not self.repo.transition_manual_payment(
            self.db,
            payment_id,
            "rejected",
            {
                "reviewed_by": reviewer.id,
                "reviewed_at": datetime.utcnow(),
                "rejection_reason": reason.strip(),
            },
        ):
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Payment is no longer pending")
        self.db.commit()

        payment = self.repo.get_manual_payment(self.db, payment_id)
        self.db.refresh(payment)
        logger.info(f"🚫 Manual payment {payment_id} rejected by {reviewer.email}")
        return serialize_manual_payment(payment)

    def screenshot_url(self, payment_id: str) -> str:
        payment = self.repo.get_manual_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        try:
            return generate_presigned_url(PAYMENT_SCREENSHOTS_BUCKET, payment.screenshot_url)
        except Exception as e:
            raise HTTPException(status_code=500, detail="Failed to generate screenshot URL") from e
