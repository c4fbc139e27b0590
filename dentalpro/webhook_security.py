"""
Webhook Security Module

Signature verification for inbound webhooks:
- Standard Webhooks (auth email hook): webhook-id / webhook-timestamp / webhook-signature headers
- FIB payment callbacks: optional hex HMAC-SHA256 of the raw body
"""

import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

FIB_SIGNATURE_HEADER = "X-Fib-Signature"


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def extract_signing_key(secret: str) -> bytes:
    """
    Signing key bytes from a Standard Webhooks secret.

    Secrets look like "whsec_BASE64KEY", or "v1,whsec_BASE64KEY" as issued
    for auth hooks; the key is the base64-decoded part after "whsec_".
    """
    if secret.startswith("v1,"):
        secret = secret[3:]
    if secret.startswith("whsec_"):
        secret = secret[6:]
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        # Not base64; use the raw secret
        return secret.encode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject webhooks whose timestamp is outside the allowed window"""
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    age = abs(int(time.time()) - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def sign_standard_webhook(secret: str, webhook_id: str, timestamp: str, body: bytes) -> str:
    """Signature header value ("v1,<base64>") for a Standard Webhooks message"""
    signed_message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), body])
    digest = hmac.new(extract_signing_key(secret), signed_message, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode("utf-8")


async def verify_standard_webhook(request: Request, secret: str) -> bytes:
    """
    Verify a Standard Webhooks request and return the raw body.

    The signed message is webhook-id.webhook-timestamp.body; the signature
    header may carry several space-separated "v1,<base64>" entries.
    """
    raw_body = await request.body()

    webhook_id = request.headers.get("webhook-id", "")
    timestamp = request.headers.get("webhook-timestamp", "")
    signature_header = request.headers.get("webhook-signature", "")

    logger.info(f"📥 Signed webhook received: id={webhook_id or 'unknown'}")

    if not webhook_id or not signature_header:
        logger.error("❌ Missing webhook-id or webhook-signature header")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    if not verify_timestamp(timestamp):
        raise HTTPException(status_code=401, detail="Webhook timestamp expired")

    expected = sign_standard_webhook(secret, webhook_id, timestamp, raw_body)[3:]

    for candidate in signature_header.split(" "):
        version, _, signature = candidate.partition(",")
        if version == "v1" and constant_time_compare(expected, signature):
            logger.info(f"✅ Webhook signature verified: {webhook_id}")
            return raw_body

    logger.warning(f"🚫 Webhook signature mismatch for id={webhook_id}")
    raise HTTPException(status_code=401, detail="Invalid webhook signature")


async def verify_fib_webhook(request: Request, secret: Optional[str]) -> bytes:
    """
    Verify an FIB status callback and return the raw body.
    Without a configured secret the callback is accepted unverified.
    """
    raw_body = await request.body()

    if not secret:
        logger.warning("⚠️ FIB_WEBHOOK_SECRET not configured, skipping verification")
        return raw_body

    signature = request.headers.get(FIB_SIGNATURE_HEADER, "")
    if not signature:
        logger.warning("🚫 FIB webhook missing signature header")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    expected = compute_hmac_sha256(secret, raw_body)
    if not constant_time_compare(expected, signature.lower()):
        logger.warning("🚫 FIB webhook signature mismatch")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.debug("✅ FIB webhook signature verified")
    return raw_body
