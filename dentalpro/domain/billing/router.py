"""Billing router - FastAPI endpoints for billing operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_profile, require_clinic_member, require_super_admin
from ...database import get_db
from ...models import Profile
from ...rate_limiter import rate_limit_manual_payment, rate_limit_payment_creation
from .fib_service import FIBClient, get_fib_client
from .manual_payments import ManualPaymentService
from .schemas import (
    ApprovalResponse,
    FIBPaymentRequest,
    FIBPaymentResponse,
    ManualPaymentResponse,
    RejectPaymentRequest,
    SubscriptionRequest,
    SubscriptionStatusResponse,
)
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


def get_manual_payment_service(db: Session = Depends(get_db)) -> ManualPaymentService:
    """Dependency injection for ManualPaymentService"""
    return ManualPaymentService(db)


# ============================================================================
# SUBSCRIPTION STATUS
# ============================================================================


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def check_subscription(
    profile: Profile = Depends(require_clinic_member),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Whether the caller's clinic has a running subscription"""
    return service.check_subscription(profile)


@router.post("/subscription")
async def request_subscription(
    body: SubscriptionRequest,
    profile: Profile = Depends(require_clinic_member),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Open a pending subscription for a plan"""
    return service.request_subscription(body, profile)


@router.get("/subscription/features")
async def get_subscription_features(
    profile: Profile = Depends(require_clinic_member),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Features and limits of the clinic's current plan"""
    return service.get_features(profile)


# ============================================================================
# FIB PAYMENTS
# ============================================================================


@router.post("/fib/payments", response_model=FIBPaymentResponse)
async def create_fib_payment(
    body: FIBPaymentRequest,
    profile: Profile = Depends(get_current_profile),
    service: SubscriptionService = Depends(get_subscription_service),
    fib: FIBClient = Depends(get_fib_client),
    _: None = Depends(rate_limit_payment_creation),
):
    """Create an FIB payment (QR code and app links) for a plan"""
    return await service.create_fib_payment(body, profile, fib)


# ============================================================================
# MANUAL PAYMENTS
# ============================================================================


@router.post("/manual-payments", response_model=ManualPaymentResponse, status_code=201)
async def submit_manual_payment(
    amount_iqd: int = Form(...),
    payment_method: str = Form(...),
    sender_name: str = Form(...),
    sender_phone: str = Form(...),
    transaction_reference: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    screenshot: UploadFile = File(...),
    profile: Profile = Depends(get_current_profile),
    service: ManualPaymentService = Depends(get_manual_payment_service),
    _: None = Depends(rate_limit_manual_payment),
):
    """Report an offline transfer with its receipt screenshot"""
    return await service.submit(
        profile,
        amount_iqd=amount_iqd,
        payment_method=payment_method,
        sender_name=sender_name,
        sender_phone=sender_phone,
        screenshot=screenshot,
        transaction_reference=transaction_reference,
        notes=notes,
    )


@router.get("/manual-payments", response_model=list[ManualPaymentResponse])
async def list_manual_payments(
    status: Optional[str] = None,
    admin: Profile = Depends(require_super_admin),
    service: ManualPaymentService = Depends(get_manual_payment_service),
):
    """All reported payments, newest first"""
    return service.list_payments(status)


@router.post("/manual-payments/{payment_id}/approve", response_model=ApprovalResponse)
async def approve_manual_payment(
    payment_id: str,
    admin: Profile = Depends(require_super_admin),
    service: ManualPaymentService = Depends(get_manual_payment_service),
):
    return service.approve(payment_id, admin)


@router.post("/manual-payments/{payment_id}/reject", response_model=ManualPaymentResponse)
async def reject_manual_payment(
    payment_id: str,
    body: RejectPaymentRequest,
    admin: Profile = Depends(require_super_admin),
    service: ManualPaymentService = Depends(get_manual_payment_service),
):
    return service.reject(payment_id, admin, body.reason)


@router.get("/manual-payments/{payment_id}/screenshot")
async def get_manual_payment_screenshot(
    payment_id: str,
    admin: Profile = Depends(require_super_admin),
    service: ManualPaymentService = Depends(get_manual_payment_service),
):
    """Short-lived link to the uploaded receipt"""
    return {"url": service.screenshot_url(payment_id)}
