"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .plans import PAYMENT_METHODS, PLAN_TIERS


class RejectPaymentRequest(BaseModel):
    """Schema for rejecting a manual payment"""

    reason: Optional[str] = None


class ManualPaymentResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    clinic_id: Optional[str] = None
    clinic_name: Optional[str] = None
    subscription_id: Optional[str] = None
    amount_iqd: int
    payment_method: str
    sender_name: str
    sender_phone: str
    transaction_reference: Optional[str] = None
    screenshot_url: str
    notes: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ApprovalResponse(BaseModel):
    success: bool = True
    payment_id: str
    subscription_id: str
    plan: str
    current_period_end: datetime


class SubscriptionStatusResponse(BaseModel):
    subscribed: bool
    plan: Optional[str] = None
    subscription_end: Optional[datetime] = None
    payment_method: Optional[str] = None


class SubscriptionRequest(BaseModel):
    """Schema for requesting a plan; payment happens through FIB or a manual transfer"""

    plan: str
    payment_method: str = "bank_transfer"

    @field_validator("plan")
    @classmethod
    def validate_plan(cls, v: str) -> str:
        if v not in PLAN_TIERS:
            raise ValueError("Invalid plan selected")
        return v

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v: str) -> str:
        if v not in PAYMENT_METHODS:
            raise ValueError("Invalid payment method")
        return v


class FeatureResponse(BaseModel):
    feature_name: str
    is_enabled: bool
    feature_limit: Optional[int] = None


class FIBPaymentRequest(BaseModel):
    """Schema for starting an FIB payment. Presence of amount and plan is checked in the service."""

    amount: Optional[int] = None
    plan: Optional[str] = None
    description: Optional[str] = None


class FIBPaymentResponse(BaseModel):
    success: bool = True
    paymentId: str
    qrCode: Optional[str] = None
    readableCode: Optional[str] = None
    personalAppLink: Optional[str] = None
    businessAppLink: Optional[str] = None
    corporateAppLink: Optional[str] = None
    validUntil: Optional[str] = None
    message: str
