import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .models import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()

ALGORITHM = "HS256"


def verify_access_token(token: str) -> dict:
    """
    Verify a Supabase-issued access token and return its claims.
    Signature, expiry and audience are checked by python-jose.
    """
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        payload = jose_jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing subject claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return payload


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller's profile from the bearer token"""
    token = credentials.credentials

    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = verify_access_token(token)
    user_id = claims["sub"]

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if not profile:
        logger.warning(f"⚠️ No profile for authenticated user {user_id}")
        raise HTTPException(status_code=403, detail="User profile not found")

    if profile.is_active is False:
        raise HTTPException(status_code=403, detail="Account is disabled")

    logger.debug(f"✅ User authenticated: {profile.email}")
    return profile


async def require_clinic_member(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Caller must belong to a clinic; used for every clinic-scoped read"""
    if not profile.clinic_id:
        raise HTTPException(status_code=400, detail="User clinic not found")
    return profile


async def require_super_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Caller must hold the platform super_admin system role"""
    if profile.system_role != "super_admin":
        logger.warning(f"⚠️ {profile.email} attempted a super-admin operation")
        raise HTTPException(status_code=403, detail="Super admin access required")
    return profile
