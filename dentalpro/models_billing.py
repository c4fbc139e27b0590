"""
Subscription billing models: clinic subscriptions, manually reported payments
and the per-plan feature matrix
"""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_uuid


class Subscription(Base):
    """A clinic's subscription to a plan for one billing period"""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # Null for users who paid before creating their clinic
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    plan = Column(String(20), nullable=False)  # basic, premium, enterprise
    # pending, approved, rejected, expired; the FIB callback also writes active / cancelled
    status = Column(String(20), default="pending", nullable=False)
    amount_iqd = Column(Integer, nullable=False)
    amount_usd = Column(Float, nullable=False)
    payment_method = Column(String(30), nullable=False)  # stripe, qi_card, zain_cash, bank_transfer, fib
    # Provider-assigned payment identifier (FIB paymentId)
    provider_payment_id = Column(String(255), nullable=True, index=True)
    provider_customer_id = Column(String(255), nullable=True)
    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    trial_end = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic")


class ManualPayment(Base):
    """Offline transfer reported by a user and reviewed by a super admin"""

    __tablename__ = "manual_payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)  # Auth subject of the submitter
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=True)
    amount_iqd = Column(Integer, nullable=False)
    payment_method = Column(String(30), nullable=False)  # qi_card, zain_cash, bank_transfer
    sender_name = Column(String(255), nullable=False)
    sender_phone = Column(String(50), nullable=False)
    transaction_reference = Column(String(255), nullable=True)
    screenshot_url = Column(String(500), nullable=False)  # Key inside the payment-screenshots bucket
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic")
    subscription = relationship("Subscription")


class SubscriptionFeature(Base):
    """Feature switch or limit granted by a plan"""

    __tablename__ = "subscription_features"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    plan = Column(String(20), nullable=False, index=True)
    feature_name = Column(String(100), nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    feature_limit = Column(Integer, nullable=True)  # None means unlimited
    created_at = Column(DateTime, server_default=func.now())
