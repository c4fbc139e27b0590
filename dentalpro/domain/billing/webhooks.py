"""
FIB Webhook Handler
Receives payment status callbacks and activates subscriptions
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...config import FIB_WEBHOOK_SECRET
from ...database import get_db
from ...webhook_security import verify_fib_webhook
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

webhooks_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhooks_router.post("/fib", status_code=202)
async def handle_fib_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle an FIB payment status callback: {"id": <paymentId>, "status": <status>}.
    Rejections use 406 so the provider does not keep retrying unknown payments.
    """
    raw_body = await verify_fib_webhook(request, FIB_WEBHOOK_SECRET)

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("❌ Invalid JSON payload")
        raise HTTPException(status_code=406, detail="Invalid JSON") from None

    if not isinstance(payload, dict):
        raise HTTPException(status_code=406, detail="Invalid webhook payload")

    payment_id = payload.get("id")
    provider_status = payload.get("status")
    logger.info(f"📥 Received FIB webhook: payment={payment_id} status={provider_status}")

    if not payment_id or not provider_status:
        raise HTTPException(status_code=406, detail="Invalid webhook payload")

    try:
        SubscriptionService(db).handle_fib_callback(payment_id, provider_status)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Webhook processing error: {str(e)}")
        raise HTTPException(status_code=406, detail="Webhook processing failed") from e

    return JSONResponse(status_code=202, content={"success": True})
