"""
Email Routes - Auth hook for account confirmation emails
"""

import json
import logging
from typing import Optional
from urllib.parse import quote, urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, ValidationError

from ..config import FRONTEND_URL, SEND_EMAIL_HOOK_SECRET, SUPABASE_URL
from ..email_service import EmailDeliveryError, send_welcome_email
from ..rate_limiter import rate_limit_welcome_email
from ..security_headers import FRONTEND_ORIGINS
from ..webhook_security import verify_standard_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])


def _origin(url: str) -> str:
    parts = urlsplit(url.strip())
    return f"{parts.scheme}://{parts.netloc}".lower()


# Direct calls may only link to the auth service or our own frontend
CONFIRMATION_ORIGINS = {
    _origin(url)
    for url in [SUPABASE_URL, FRONTEND_URL, *FRONTEND_ORIGINS.split(",")]
    if url.strip()
}


class WelcomeEmailRequest(BaseModel):
    """Direct call body, used when no hook secret is configured"""

    email: EmailStr
    confirmationUrl: str
    firstName: Optional[str] = None
    userType: Optional[str] = None


def is_allowed_confirmation_url(url: str) -> bool:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False
    return _origin(url) in CONFIRMATION_ORIGINS


async def limit_direct_calls(request: Request) -> None:
    """Throttle direct calls per client; signed hook calls come from the auth service"""
    if not SEND_EMAIL_HOOK_SECRET:
        await rate_limit_welcome_email(request)


def build_confirmation_url(token_hash: str, email_action_type: str, redirect_to: str) -> str:
    return (
        f"{SUPABASE_URL}/auth/v1/verify?token={quote(token_hash, safe='')}"
        f"&type={quote(email_action_type, safe='')}&redirect_to={quote(redirect_to, safe=':/')}"
    )


async def _handle_auth_hook(request: Request) -> dict:
    raw_body = await verify_standard_webhook(request, SEND_EMAIL_HOOK_SECRET)

    try:
        payload = json.loads(raw_body.decode("utf-8"))
        user = payload["user"]
        email_data = payload["email_data"]
        email = user["email"]
        email_action_type = email_data["email_action_type"]
    except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError):
        raise HTTPException(status_code=400, detail="Invalid hook payload") from None

    if email_action_type != "signup":
        logger.info(f"ℹ️ Skipping auth email of type {email_action_type}")
        return {"message": "Not a signup confirmation"}

    metadata = user.get("user_metadata") or {}
    confirmation_url = build_confirmation_url(
        email_data.get("token_hash", ""),
        email_action_type,
        email_data.get("redirect_to", ""),
    )

    await send_welcome_email(
        to=email,
        first_name=metadata.get("first_name"),
        confirmation_url=confirmation_url,
        user_type=metadata.get("role"),
    )
    logger.info(f"✅ Welcome email sent to {email}")
    return {"success": True}


async def _handle_direct_call(request: Request) -> dict:
    try:
        body = WelcomeEmailRequest.model_validate(await request.json())
    except (json.JSONDecodeError, ValidationError) as e:
        raise HTTPException(status_code=422, detail="Invalid welcome email request") from e

    if not is_allowed_confirmation_url(body.confirmationUrl):
        logger.warning(f"🚫 Refused welcome email to {body.email}: foreign confirmation link")
        raise HTTPException(status_code=400, detail="Confirmation URL is not allowed")

    await send_welcome_email(
        to=body.email,
        first_name=body.firstName,
        confirmation_url=body.confirmationUrl,
        user_type=body.userType,
    )
    logger.info(f"✅ Welcome email sent to {body.email}")
    return {"success": True}


@router.post("/welcome")
async def send_welcome(
    request: Request,
    _: None = Depends(limit_direct_calls),
):
    """
    Send the welcome / activation email.

    With SEND_EMAIL_HOOK_SECRET set this endpoint is the auth service's
    "send email" hook and only signup confirmations are sent.
    Otherwise the body names the recipient and the link, which must point
    at the auth service or the frontend.
    """
    try:
        if SEND_EMAIL_HOOK_SECRET:
            return await _handle_auth_hook(request)
        return await _handle_direct_call(request)
    except EmailDeliveryError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
