"""Billing repository - Database operations for subscriptions and manual payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Clinic
from ...models_billing import ManualPayment, Subscription, SubscriptionFeature


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_clinic(db: Session, clinic_id: Optional[str]) -> Optional[Clinic]:
        if not clinic_id:
            return None
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    @staticmethod
    def get_manual_payment(db: Session, payment_id: str) -> Optional[ManualPayment]:
        return db.query(ManualPayment).filter(ManualPayment.id == payment_id).first()

    @staticmethod
    def list_manual_payments(db: Session, status: Optional[str] = None) -> list[ManualPayment]:
        """All manual payments, newest first, with their clinic loaded"""
        query = db.query(ManualPayment).options(joinedload(ManualPayment.clinic))
        if status:
            query = query.filter(ManualPayment.status == status)
        return query.order_by(ManualPayment.created_at.desc()).all()

    @staticmethod
    def transition_manual_payment(
        db: Session, payment_id: str, new_status: str, values: dict
    ) -> bool:
        """
        Move a pending payment to `new_status`.
        Returns False when the payment is no longer pending, so a repeated
        review never applies twice.
        """
        updated = (
            db.query(ManualPayment)
            .filter(ManualPayment.id == payment_id, ManualPayment.status == "pending")
            .update({**values, "status": new_status}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def get_latest_subscription(db: Session, clinic_id: str) -> Optional[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.clinic_id == clinic_id)
            .order_by(Subscription.created_at.desc())
            .first()
        )

    @staticmethod
    def get_active_subscription(
        db: Session, clinic_id: str, now: datetime, statuses: tuple = ("approved",)
    ) -> Optional[Subscription]:
        """Newest subscription in one of `statuses` whose period has not ended"""
        return (
            db.query(Subscription)
            .filter(
                Subscription.clinic_id == clinic_id,
                Subscription.status.in_(statuses),
                Subscription.current_period_end >= now,
            )
            .order_by(Subscription.created_at.desc())
            .first()
        )

    @staticmethod
    def get_subscription_by_provider_payment(
        db: Session, provider_payment_id: str
    ) -> Optional[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.provider_payment_id == provider_payment_id)
            .first()
        )

    @staticmethod
    def get_plan_features(db: Session, plan: str) -> list[SubscriptionFeature]:
        return db.query(SubscriptionFeature).filter(SubscriptionFeature.plan == plan).all()

    @staticmethod
    def activate_clinic(
        db: Session, clinic: Clinic, plan: Optional[str], period_end: datetime
    ) -> Clinic:
        clinic.subscription_status = "active"
        if plan:
            clinic.subscription_plan = plan
        clinic.subscription_end_date = period_end
        return clinic
